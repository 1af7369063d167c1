from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Set, Union

import logging
import math

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TABLE_TYPES = ("percent", "proportion", "counts")
OVERALL_LABEL = "Overall"


class TableError(Exception):
    """Raised when a frequency table cannot be built from the given inputs."""


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def as_series(values: Any) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.reset_index(drop=True)
    if isinstance(values, (np.ndarray, pd.Categorical, pd.Index)):
        return pd.Series(values)
    return pd.Series(list(values))


def code_key(value: Any) -> Optional[str]:
    """
    Text form used to compare survey codes across types.

    True / 1 / 1.0 / "1" / "TRUE" all compare equal; missing values never
    match anything.
    """
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        if math.isnan(value):
            return None
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)


def _matches_any(s: pd.Series, keys: Set[str]) -> np.ndarray:
    return s.astype(object).map(code_key).isin(keys).to_numpy()


def _as_weights(weights: Any, n: int) -> np.ndarray:
    if weights is None:
        return np.ones(n, dtype=float)
    series = as_series(weights)
    try:
        numeric = pd.to_numeric(series, errors="raise")
    except (TypeError, ValueError) as exc:
        raise TableError(f"weights must be numeric: {exc}") from exc
    return numeric.to_numpy(dtype=float, na_value=np.nan)


def _sorted_distinct(s: pd.Series) -> List[Any]:
    distinct = list(pd.unique(s.dropna()))
    try:
        return sorted(distinct)
    except TypeError:
        # mixed types (e.g. ints and strings) have no natural order
        return sorted(distinct, key=str)


def factor_levels(s: pd.Series, drop_unused: bool = False) -> List[Any]:
    """Category levels of s: declared categories, else sorted distinct values."""
    if isinstance(s.dtype, pd.CategoricalDtype):
        levels = list(s.cat.categories)
        if drop_unused:
            present = set(s.dropna().unique())
            levels = [lev for lev in levels if lev in present]
        return levels
    return _sorted_distinct(s)


def _codes(s: pd.Series, levels: List[Any], na_show: bool) -> np.ndarray:
    codes = pd.Categorical(s, categories=levels).codes.astype(np.int64)
    if na_show:
        codes = np.where(codes < 0, len(levels), codes)
    return codes


def _labels(levels: List[Any], na_show: bool, name: Any) -> pd.Index:
    labels = list(levels) + ([np.nan] if na_show else [])
    return pd.Index(labels, name=name)


# ---------------------------------------------------------------------------
# Weighted frequency tables
# ---------------------------------------------------------------------------

def wtd_table(
    x: Any,
    y: Any = None,
    weights: Any = None,
    normwt: bool = False,
    na_rm: bool = True,
    na_show: bool = False,
    exclude: Optional[Iterable[Any]] = None,
) -> Union[pd.Series, pd.DataFrame]:
    """
    Weighted one-way (x only) or two-way (x by y) frequency table.

    Returns a Series of weighted counts indexed by the levels of x, or a
    DataFrame with the levels of x as rows and the levels of y as columns.
    Levels come from the categories of a Categorical input, otherwise from
    the sorted distinct values. Cells with no observation are 0.

    Rules applied, in order:
      - na_show: missing x / y values form their own trailing NaN level and
        survive na_rm
      - na_rm: drop rows with missing x, y or weight
      - exclude: drop rows whose x or y matches a listed code (compared as
        text, so "9" drops 9); levels left empty are dropped
      - normwt: rescale weights to sum to the number of remaining rows
    """
    xs = as_series(x)
    ys = as_series(y) if y is not None else None
    n = len(xs)

    w = _as_weights(weights, n)
    if len(w) != n:
        raise TableError("x and weights lengths must be the same")
    if ys is not None and len(ys) != n:
        raise TableError("x and y lengths must be the same")

    keep = np.ones(n, dtype=bool)
    if na_rm:
        keep &= ~np.isnan(w)
        if not na_show:
            keep &= ~xs.isna().to_numpy()
            if ys is not None:
                keep &= ~ys.isna().to_numpy()

    exclude_list = list(exclude) if exclude is not None else None
    if exclude_list is not None:
        # codes typed as text ("9") still drop numeric levels (9, 9.0)
        exclude_keys = {k for k in map(code_key, exclude_list) if k is not None}
        keep &= ~_matches_any(xs, exclude_keys)
        if ys is not None:
            keep &= ~_matches_any(ys, exclude_keys)

    dropped = int((~keep).sum())
    if dropped:
        logger.debug("wtd_table: dropping %d of %d rows (na_rm=%s, exclude=%s).", dropped, n, na_rm, exclude_list)

    xs = xs[keep].reset_index(drop=True)
    w = w[keep]
    if ys is not None:
        ys = ys[keep].reset_index(drop=True)

    if normwt:
        total = np.nansum(w)
        if total == 0:
            logger.warning("Sum of weights is zero; normwt has no effect.")
        else:
            w = w * len(w) / total

    drop_unused = exclude_list is not None
    x_levels = factor_levels(xs, drop_unused)
    x_codes = _codes(xs, x_levels, na_show)
    nx = len(x_levels) + (1 if na_show else 0)

    if ys is None:
        valid = x_codes >= 0
        counts = np.bincount(x_codes[valid], weights=w[valid], minlength=nx)
        counts = np.where(np.isnan(counts), 0.0, counts)
        return pd.Series(counts, index=_labels(x_levels, na_show, xs.name), dtype=float)

    y_levels = factor_levels(ys, drop_unused)
    y_codes = _codes(ys, y_levels, na_show)
    ny = len(y_levels) + (1 if na_show else 0)

    valid = (x_codes >= 0) & (y_codes >= 0)
    flat = x_codes[valid] * ny + y_codes[valid]
    counts = np.bincount(flat, weights=w[valid], minlength=nx * ny).reshape(nx, ny)
    counts = np.where(np.isnan(counts), 0.0, counts)
    return pd.DataFrame(
        counts,
        index=_labels(x_levels, na_show, xs.name),
        columns=_labels(y_levels, na_show, ys.name),
        dtype=float,
    )


# ---------------------------------------------------------------------------
# Cross-tabulation report
# ---------------------------------------------------------------------------

@dataclass
class PropTab:
    """
    Cross-tabulation report returned by `tabs`.

    `table` holds the numbers (full sample first, then one block of columns
    per crossing variable). `percent` and `digits` only affect rendering.
    """
    table: pd.DataFrame
    type: str = "percent"
    percent: bool = False
    digits: int = 1

    def format(self, digits: Optional[int] = None, percent: Optional[bool] = None) -> pd.DataFrame:
        d = self.digits if digits is None else int(digits)
        show_pct = self.percent if percent is None else bool(percent)
        suffix = "%" if show_pct else ""

        def fmt(v: Any) -> str:
            if pd.isna(v):
                return ""
            return f"{float(v):.{d}f}{suffix}"

        return self.table.map(fmt)

    def __str__(self) -> str:
        return self.format().to_string()


def _sum_one(table: Union[pd.Series, pd.DataFrame]) -> Union[pd.Series, pd.DataFrame]:
    total = float(np.nansum(table.to_numpy()))
    if total == 0:
        logger.warning("Table total is zero; proportions are undefined.")
        return table * np.nan
    return table / total


def _normalize_names(y: Union[str, Sequence[str], None]) -> List[str]:
    if y is None:
        return []
    if isinstance(y, str):
        return [y]
    return list(y)


def tabs(
    df: pd.DataFrame,
    x: str,
    y: Union[str, Sequence[str], None] = None,
    type: str = "percent",
    percent: bool = False,
    weight: Optional[str] = None,
    normwt: bool = False,
    na_rm: bool = True,
    na_show: bool = False,
    exclude: Optional[Iterable[Any]] = None,
    digits: int = 1,
) -> PropTab:
    """
    Weighted cross-tabulation of `x` against each variable named in `y`.

    The first column ("Overall") is the one-way table of x over the full
    sample; each y variable then contributes one column per level. With
    type "percent" or "proportion" every block is divided by its own grand
    total (percent of total, not of column).
    """
    if type not in TABLE_TYPES:
        raise TableError("type must either be 'percent', 'proportion', or 'counts'.")

    if not isinstance(df, pd.DataFrame):
        raise TableError("df must be a pandas DataFrame")

    if x not in df.columns:
        raise TableError(f"{x} not found in data frame.")

    y_names = _normalize_names(y)
    missing = [v for v in y_names if v not in df.columns]
    if missing:
        raise TableError(f"{', '.join(map(str, missing))} not found in data frame.")

    if weight is not None and weight not in df.columns:
        raise TableError(f"{weight} not found in data frame.")

    w = df[weight] if weight is not None else None
    opts = dict(weights=w, normwt=normwt, na_rm=na_rm, na_show=na_show, exclude=exclude)
    proportional = type in ("percent", "proportion")

    overall = wtd_table(df[x], **opts)
    if proportional:
        overall = _sum_one(overall)

    blocks: List[pd.DataFrame] = [overall.to_frame(OVERALL_LABEL)]
    for v in y_names:
        tmp = wtd_table(df[x], df[v], **opts)
        if proportional:
            tmp = _sum_one(tmp)
        blocks.append(tmp.reindex(overall.index, fill_value=0.0))

    result = pd.concat(blocks, axis=1)
    result.columns = [str(c) if not pd.isna(c) else "NaN" for c in result.columns]
    result.index.name = x

    if type == "percent":
        result = result * 100

    logger.debug("tabs: %s by %s -> %d rows x %d columns", x, y_names, result.shape[0], result.shape[1])

    return PropTab(
        table=result,
        type=type,
        percent=bool(percent) if type == "percent" else False,
        digits=int(digits),
    )
