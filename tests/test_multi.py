import math

import numpy as np
import pandas as pd
import pytest

from surveytab.core.multi import (
    MultiChoiceError,
    cross_multi_table,
    multi_collapse,
    multi_split,
    multi_table,
)


@pytest.fixture
def music():
    return pd.DataFrame(
        {
            "jazz": [0, 1, 1, 0],
            "rock": [True, False, True, True],
            "electronic": ["Y", "N", "Y", "N"],
        }
    )


# ---------------------------------------------------------------------------
# multi_split / multi_collapse
# ---------------------------------------------------------------------------

def test_multi_split_builds_indicator_columns():
    v = pd.Series(["red/blue", "green", "red/green", "blue/red"], name="color")
    res = multi_split(v)
    # choices come from the sorted answers: "blue/red", "green", "red/blue", ...
    assert list(res.columns) == ["color.blue", "color.red", "color.green"]
    assert res.to_numpy().tolist() == [
        [1, 1, 0],
        [0, 0, 1],
        [0, 1, 1],
        [1, 1, 0],
    ]


def test_multi_split_default_name_and_custom_separator():
    res = multi_split(["a;b", "b"], split_char=";")
    assert list(res.columns) == ["var.a", "var.b"]
    assert res["var.b"].tolist() == [1, 1]


def test_multi_split_replaces_spaces_in_generated_names():
    res = multi_split(["light blue/red"], name="c")
    assert list(res.columns) == ["c.light_blue", "c.red"]


def test_multi_split_custom_names():
    res = multi_split(["x/y", "y"], mnames=["first", "second"], name="q")
    assert list(res.columns) == ["q.first", "q.second"]


def test_multi_split_mnames_length_mismatch_raises():
    with pytest.raises(MultiChoiceError, match="mnames"):
        multi_split(["x/y"], mnames=["only_one"])


def test_multi_split_matches_whole_choices_only():
    res = multi_split(["red", "darkred"], name="c")
    assert res["c.red"].tolist() == [1, 0]
    assert res["c.darkred"].tolist() == [0, 1]


def test_multi_split_missing_answer_gives_zero_row():
    res = multi_split(pd.Series(["a", None, "b"], name="q"))
    assert res.iloc[1].tolist() == [0, 0]


def test_multi_split_keeps_series_index():
    v = pd.Series(["a", "b"], index=[7, 9], name="q")
    assert list(multi_split(v).index) == [7, 9]


def test_multi_collapse_inverts_split():
    v = pd.Series(["red/blue", "green", "red/green"], name="color")
    collapsed = multi_collapse(multi_split(v))
    assert collapsed.name == "color"
    # choices ordered as first seen in the sorted answers: green, red, blue
    assert collapsed.tolist() == ["red/blue", "green", "green/red"]


def test_multi_collapse_row_without_choice_is_missing():
    df = pd.DataFrame({"q.a": [1, 0], "q.b": [0, 0]})
    res = multi_collapse(df, split_char="+")
    assert res.iloc[0] == "a"
    assert pd.isna(res.iloc[1])


def test_multi_collapse_custom_labels_and_true_codes(music):
    res = multi_collapse(music, labels=["J", "R", "E"], true_codes=["Y"])
    assert res.tolist() == ["R/E", "J", "J/R/E", "R"]


def test_multi_collapse_labels_length_mismatch_raises(music):
    with pytest.raises(MultiChoiceError):
        multi_collapse(music, labels=["J"])


# ---------------------------------------------------------------------------
# multi_table
# ---------------------------------------------------------------------------

def test_multi_table_counts_and_percentages(music):
    res = multi_table(music, true_codes=["Y"])
    assert list(res.columns) == ["n", "%multi"]
    assert res["n"].to_dict() == {"jazz": 2.0, "rock": 3.0, "electronic": 2.0}
    assert res["%multi"].to_dict() == {"jazz": 50.0, "rock": 75.0, "electronic": 50.0}


def test_multi_table_only_true_and_one_by_default(music):
    res = multi_table(music, freq=False)
    assert res.name == "n"
    assert res.to_dict() == {"jazz": 2.0, "rock": 3.0, "electronic": 0.0}


def test_multi_table_weighted(music):
    res = multi_table(music, true_codes=["Y"], weights=[1, 2, 3, 4])
    assert res["n"].to_dict() == {"jazz": 5.0, "rock": 8.0, "electronic": 4.0}
    assert res["%multi"].to_dict() == {"jazz": 50.0, "rock": 80.0, "electronic": 40.0}


def test_multi_table_matches_text_forms_of_true():
    df = pd.DataFrame({"a": [1.0, 0.0], "b": ["1", "0"], "c": ["TRUE", "FALSE"], "d": [np.nan, 1]})
    res = multi_table(df, freq=False)
    assert res.tolist() == [1.0, 1.0, 1.0, 1.0]


def test_multi_table_rounds_to_digits():
    df = pd.DataFrame({"a": [1, 0, 0]})
    assert multi_table(df)["%multi"]["a"] == pytest.approx(33.3)
    assert multi_table(df, digits=3)["%multi"]["a"] == pytest.approx(33.333)


def test_multi_table_weights_length_mismatch_raises(music):
    with pytest.raises(MultiChoiceError, match="weights length"):
        multi_table(music, weights=[1, 2])


# ---------------------------------------------------------------------------
# cross_multi_table
# ---------------------------------------------------------------------------

def test_cross_multi_table_without_freq(music):
    sex = ["m", "f", "f", "m"]
    res = cross_multi_table(music, sex, freq=False)
    assert list(res.columns) == ["f", "m"]
    assert res.loc["jazz", "f"] == 2.0
    assert res.loc["jazz", "m"] == 0.0
    assert res.loc["rock", "m"] == 2.0


def test_cross_multi_table_with_freq_uses_group_totals(music):
    sex = pd.Series(["m", "f", "f", "m"], name="sex")
    res = cross_multi_table(music, sex, true_codes=["Y"])
    assert res.columns.names == ["sex", None]
    assert res[("f", "%multi")]["jazz"] == 100.0
    assert res[("m", "%multi")]["rock"] == 100.0
    assert res[("m", "n")]["electronic"] == 1.0


def test_cross_multi_table_weighted(music):
    res = cross_multi_table(music, ["m", "f", "f", "m"], weights=[1, 2, 3, 4])
    assert res[("f", "n")]["jazz"] == 5.0
    assert res[("f", "%multi")]["jazz"] == 100.0
    assert res[("f", "%multi")]["rock"] == 60.0
    assert res[("m", "%multi")]["rock"] == 100.0


def test_cross_multi_table_drops_missing_groups(music):
    res = cross_multi_table(music, ["m", None, "f", "m"], freq=False)
    assert list(res.columns) == ["f", "m"]
    assert res.loc["jazz", "f"] == 1.0


def test_cross_multi_table_length_mismatch_raises(music):
    with pytest.raises(MultiChoiceError, match="crossvar length"):
        cross_multi_table(music, ["m", "f"])


def test_multi_collapse_inverts_split_for_dotted_choices():
    v = pd.Series(["a.b/a.c", "a.c"], name="q")
    indicators = multi_split(v)
    assert list(indicators.columns) == ["q.a.b", "q.a.c"]
    collapsed = multi_collapse(indicators)
    assert collapsed.name == "q"
    assert collapsed.tolist() == ["a.b/a.c", "a.c"]


def test_multi_split_names_whole_float_codes_as_integers():
    res = multi_split(pd.Series([1.0, 2.0, np.nan], name="q"))
    assert list(res.columns) == ["q.1", "q.2"]
    assert res.to_numpy().tolist() == [[1, 0], [0, 1], [0, 0]]


def test_multi_table_rounding_default_is_one_digit(monkeypatch):
    from surveytab import config

    monkeypatch.setattr(config, "DEFAULT_DIGITS", 4)
    df = pd.DataFrame({"a": [1, 0, 0]})
    assert multi_table(df)["%multi"]["a"] == 33.3
