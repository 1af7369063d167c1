import logging

import pandas as pd

import surveytab
from surveytab.config import configure_logging


def test_public_api_is_exported():
    for name in surveytab.__all__:
        assert callable(getattr(surveytab, name))


def test_configure_logging_sets_package_level():
    configure_logging("debug")
    assert logging.getLogger("surveytab").level == logging.DEBUG
    configure_logging("not-a-level")
    assert logging.getLogger("surveytab").level == logging.INFO


def test_multi_split_feeds_multi_table():
    v = pd.Series(["red/blue", "green", "red/green", "blue/red"], name="color")
    res = surveytab.multi_table(surveytab.multi_split(v))
    assert res.loc["color.red", "n"] == 3.0
    assert res.loc["color.red", "%multi"] == 75.0
