from __future__ import annotations

import logging
import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Local survey extracts (CSV / Excel) shown in the viewer's file picker
DATA_DIR = Path(os.getenv("SURVEYTAB_DATA_DIR", "").strip() or PROJECT_ROOT / "data")

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Survey Tabulation Toolkit"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("SURVEYTAB_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Decimal places used when rendering cross-tabulation reports
try:
    DEFAULT_DIGITS = int(os.getenv("SURVEYTAB_DIGITS", "1").strip() or "1")
except ValueError:
    DEFAULT_DIGITS = 1

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Apply the configured log level to the root logger.

    Library code only creates module loggers; the entry point decides
    where records go.
    """
    name = (level or LOG_LEVEL).upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger("surveytab").setLevel(numeric)
