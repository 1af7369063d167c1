from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class WeightedStatsError(Exception):
    """Raised when inputs to a weighted statistic are malformed."""


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def _to_float_array(values: Any, name: str) -> np.ndarray:
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype=object)
    try:
        numeric = pd.to_numeric(series, errors="raise")
    except (TypeError, ValueError) as exc:
        raise WeightedStatsError(f"{name} must contain only numeric values: {exc}") from exc
    return numeric.to_numpy(dtype=float, na_value=np.nan)


def _has_weights(weights: Optional[Sequence[float]]) -> bool:
    return weights is not None and len(weights) > 0


def _prepare(
    x: Any,
    weights: Any,
    na_rm: bool,
) -> Tuple[np.ndarray, np.ndarray]:
    xv = _to_float_array(x, "x")
    wv = _to_float_array(weights, "weights")
    if len(xv) != len(wv):
        raise WeightedStatsError(
            f"x and weights lengths must be the same (got {len(xv)} and {len(wv)})."
        )

    if na_rm:
        keep = ~np.isnan(xv + wv)
        dropped = int((~keep).sum())
        if dropped:
            logger.debug("Dropping %d observation(s) with missing value or weight.", dropped)
        xv = xv[keep]
        wv = wv[keep]
    return xv, wv


def _ratio(num: float, den: float) -> float:
    if den == 0 or np.isnan(den):
        return float("nan")
    return float(num / den)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def wtd_mean(
    x: Any,
    weights: Any = None,
    normwt: Any = "ignored",
    na_rm: bool = True,
) -> float:
    """
    Weighted mean of x.

    Without weights this is the ordinary mean. With weights, positions where
    either the value or its weight is missing are dropped (when na_rm) and the
    result is sum(w * x) / sum(w). `normwt` is accepted for symmetry with
    wtd_var; rescaling weights cannot change a mean.
    """
    if not _has_weights(weights):
        xv = _to_float_array(x, "x")
        if na_rm:
            xv = xv[~np.isnan(xv)]
        if xv.size == 0:
            return float("nan")
        return float(xv.mean())

    xv, wv = _prepare(x, weights, na_rm)
    total = wv.sum()
    if total == 0:
        logger.warning("Sum of weights is zero; weighted mean is undefined.")
    return _ratio((wv * xv).sum(), total)


def wtd_var(
    x: Any,
    weights: Any = None,
    normwt: bool = False,
    na_rm: bool = True,
) -> float:
    """
    Weighted variance of x with a frequency-weight Bessel correction.

    Result is sum(w * (x - xbar)^2) / (sum(w) - 1). If normwt is True the
    weights are first rescaled so that they sum to the number of
    observations, which makes the correction behave like the unweighted
    n - 1. Without weights this is the sample variance (ddof=1).
    """
    if not _has_weights(weights):
        xv = _to_float_array(x, "x")
        if na_rm:
            xv = xv[~np.isnan(xv)]
        if xv.size < 2:
            return float("nan")
        return float(np.var(xv, ddof=1))

    xv, wv = _prepare(x, weights, na_rm)
    if normwt and wv.sum() != 0:
        wv = wv * len(xv) / wv.sum()

    total = wv.sum()
    xbar = _ratio((wv * xv).sum(), total)
    return _ratio((wv * (xv - xbar) ** 2).sum(), total - 1)
