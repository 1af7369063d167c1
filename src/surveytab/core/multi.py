from __future__ import annotations

from os.path import commonprefix
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

import logging

import numpy as np
import pandas as pd

from surveytab.core.tables import as_series, code_key, factor_levels

logger = logging.getLogger(__name__)

N_COL = "n"
PCT_COL = "%multi"

# Values always counted as "chosen" in an indicator column
DEFAULT_TRUE_KEYS = frozenset({"TRUE", "1"})


class MultiChoiceError(Exception):
    """Raised for malformed multiple-choice inputs."""


# ---------------------------------------------------------------------------
# Value matching
# ---------------------------------------------------------------------------

def _true_keys(true_codes: Optional[Iterable[Any]]) -> Set[str]:
    keys: Set[str] = set(DEFAULT_TRUE_KEYS)
    for code in true_codes or []:
        key = code_key(code)
        if key is not None:
            keys.add(key)
    return keys


def _chosen(column: pd.Series, keys: Set[str]) -> np.ndarray:
    return column.map(code_key).isin(keys).to_numpy()


def _weights_array(weights: Any, n: int) -> Optional[np.ndarray]:
    if weights is None:
        return None
    try:
        numeric = pd.to_numeric(as_series(weights), errors="raise")
    except (TypeError, ValueError) as exc:
        raise MultiChoiceError(f"weights must be numeric: {exc}") from exc
    w = numeric.to_numpy(dtype=float, na_value=np.nan)
    if len(w) != n:
        raise MultiChoiceError(f"weights length ({len(w)}) must match the number of rows ({n}).")
    return w


# ---------------------------------------------------------------------------
# Split / collapse
# ---------------------------------------------------------------------------

def multi_split(
    var: Any,
    split_char: str = "/",
    mnames: Optional[Sequence[str]] = None,
    name: Optional[str] = None,
) -> pd.DataFrame:
    """
    Split a delimited multiple-choice variable into binary indicator columns.

    Answers such as "red/blue" or "red/green/yellow" produce one column per
    distinct choice, holding 1 when the row's answer includes that choice
    and 0 otherwise. Column names are "<name>.<choice>" with spaces turned
    into underscores, or "<name>.<mname>" when mnames is given.
    """
    if not split_char:
        raise MultiChoiceError("split_char must be a non-empty string.")

    s = var if isinstance(var, pd.Series) else as_series(var)
    vname = name or (str(s.name) if s.name is not None else "var")

    choices: List[str] = []
    seen: Set[str] = set()
    for level in factor_levels(s):
        for token in code_key(level).split(split_char):
            if token and token not in seen:
                seen.add(token)
                choices.append(token)

    if mnames is None:
        columns = [f"{vname}.{c}".replace(" ", "_") for c in choices]
    else:
        mnames = list(mnames)
        if len(mnames) != len(choices):
            raise MultiChoiceError(
                f"mnames has {len(mnames)} names but the variable has {len(choices)} distinct choices: {choices}"
            )
        columns = [f"{vname}.{m}" for m in mnames]

    data = np.zeros((len(s), len(choices)), dtype=int)
    position = {c: i for i, c in enumerate(choices)}
    for row, value in enumerate(s.tolist()):
        text = code_key(value)
        if text is None:
            continue
        for token in text.split(split_char):
            idx = position.get(token)
            if idx is not None:
                data[row, idx] = 1

    logger.debug("multi_split: %s -> %d indicator columns", vname, len(columns))
    return pd.DataFrame(data, columns=columns, index=s.index)


def _strip_common_prefix(columns: List[str]) -> List[str]:
    prefix = commonprefix(columns)
    # the variable name ends at the first dot added by multi_split
    cut = prefix.find(".")
    if cut < 0:
        return columns
    return [c[cut + 1:] for c in columns]


def multi_collapse(
    df: pd.DataFrame,
    split_char: str = "/",
    labels: Optional[Sequence[str]] = None,
    true_codes: Optional[Iterable[Any]] = None,
) -> pd.Series:
    """
    Collapse binary indicator columns back into one delimited string per row.

    Rows without any chosen column give NaN. Labels default to the column
    names with their shared "<name>." prefix removed.
    """
    if not isinstance(df, pd.DataFrame):
        raise MultiChoiceError("df must be a pandas DataFrame of indicator columns.")

    columns = [str(c) for c in df.columns]
    if labels is None:
        labels = _strip_common_prefix(columns)
    else:
        labels = [str(lab) for lab in labels]
        if len(labels) != len(columns):
            raise MultiChoiceError(f"labels has {len(labels)} entries for {len(columns)} columns.")

    keys = _true_keys(true_codes)
    chosen = np.column_stack([_chosen(df[c], keys) for c in df.columns]) if len(columns) else np.zeros((len(df), 0), dtype=bool)

    values: List[Any] = []
    for row in chosen:
        picked = [lab for lab, hit in zip(labels, row) if hit]
        values.append(split_char.join(picked) if picked else np.nan)

    prefix = commonprefix(columns)
    series_name = prefix[: prefix.find(".")] if "." in prefix else None
    return pd.Series(values, index=df.index, name=series_name or None, dtype=object)


# ---------------------------------------------------------------------------
# Frequency tables over indicator columns
# ---------------------------------------------------------------------------

def multi_table(
    df: pd.DataFrame,
    true_codes: Optional[Iterable[Any]] = None,
    weights: Any = None,
    digits: int = 1,
    freq: bool = True,
) -> Union[pd.Series, pd.DataFrame]:
    """
    One-way frequency table of a multiple-choice question.

    Each column of df is the indicator of one choice. True and 1 always count
    as chosen; true_codes adds more values (e.g. "Y"). With freq, a "%multi"
    column gives each count as a percentage of the (weighted) number of
    respondents, so the column can sum above 100.
    """
    if not isinstance(df, pd.DataFrame):
        raise MultiChoiceError("df must be a pandas DataFrame of indicator columns.")

    keys = _true_keys(true_codes)
    w = _weights_array(weights, len(df))

    counts: Dict[Any, float] = {}
    for col in df.columns:
        sel = _chosen(df[col], keys).astype(float)
        if w is not None:
            sel = sel * w
        counts[col] = float(sel.sum())

    res = pd.Series(counts, name=N_COL, dtype=float)
    if not freq:
        return res.round(digits)

    total = float(w.sum()) if w is not None else float(len(df))
    if total == 0:
        logger.warning("multi_table: no respondents (total weight is zero); percentages are undefined.")
        pct = res * np.nan
    else:
        pct = res / total * 100

    out = pd.DataFrame({N_COL: res, PCT_COL: pct})
    return out.round(digits)


def cross_multi_table(
    df: pd.DataFrame,
    crossvar: Any,
    weights: Any = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """
    Two-way frequency table between a multiple-choice question and a factor.

    multi_table is applied to the rows of each level of crossvar, using that
    group's own weights. Without freq the result has one column per level;
    with freq the columns are (level, "n" / "%multi") pairs.
    """
    if not isinstance(df, pd.DataFrame):
        raise MultiChoiceError("df must be a pandas DataFrame of indicator columns.")
    if "weights" in kwargs:
        raise MultiChoiceError("pass weights as the weights argument of cross_multi_table.")

    cv = as_series(crossvar)
    if len(cv) != len(df):
        raise MultiChoiceError(f"crossvar length ({len(cv)}) must match the number of rows ({len(df)}).")
    w = _weights_array(weights, len(df))

    data = df.reset_index(drop=True)
    groups: Dict[Any, Union[pd.Series, pd.DataFrame]] = {}
    for level in factor_levels(cv):
        mask = (cv == level).to_numpy()
        group_w = w[mask] if w is not None else None
        groups[level] = multi_table(data[mask], weights=group_w, **kwargs)

    if not groups:
        logger.warning("cross_multi_table: crossvar has no non-missing values.")
        return pd.DataFrame(index=df.columns)

    result = pd.concat(groups, axis=1)
    if isinstance(result.columns, pd.MultiIndex):
        result.columns = result.columns.set_names([cv.name, None])
    else:
        result.columns.name = cv.name
    return result
