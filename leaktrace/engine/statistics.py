"""
Statistics primitives for the LeakTrace inference pipeline.

Small, dependency-light numeric building blocks used by every other engine
component: mean, sample standard deviation, z-score, Pearson correlation
(optionally lagged) and Welch's two-sample t-test.

Degenerate inputs never raise. Each primitive has a documented neutral value
for insufficient data so the pipeline completes with lower confidence
instead of failing:

    mean            -> 0 for an empty series
    sample_stddev   -> 0 for fewer than 2 samples
    z_score         -> 0 when the standard deviation is 0
    pearson         -> 0 for fewer than 3 overlapping samples or zero variance
    welch_t_test    -> t=0, not significant, when a sample has < 2 points
                       or the pooled standard error is 0

Version: stats_primitives_v1
"""

import math
from typing import Sequence

import numpy as np
import structlog
from scipy import stats

from leaktrace.models.analysis import WelchResult

logger = structlog.get_logger()

MIN_STDDEV_SAMPLES = 2
MIN_PEARSON_SAMPLES = 3
DEFAULT_T_THRESHOLD = 2.0


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(_as_array(values)))


def sample_stddev(values: Sequence[float]) -> float:
    """Unbiased (n-1) standard deviation; 0 for fewer than 2 samples."""
    if len(values) < MIN_STDDEV_SAMPLES:
        return 0.0
    return float(np.std(_as_array(values), ddof=1))


def z_score(value: float, mean_value: float, stddev: float) -> float:
    """Standard score of ``value``; 0 for a flat series (no signal, not infinity)."""
    if stddev == 0:
        return 0.0
    return (value - mean_value) / stddev


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson correlation over the overlapping prefix of two series.

    Args:
        xs: First series
        ys: Second series; only the first ``min(len(xs), len(ys))`` points
            of each are used

    Returns:
        Correlation coefficient clamped to [-1, 1]; 0 when fewer than three
        points overlap or either series has zero variance
    """
    n = min(len(xs), len(ys))
    if n < MIN_PEARSON_SAMPLES:
        return 0.0

    x = _as_array(xs[:n])
    y = _as_array(ys[:n])
    dx = x - x.mean()
    dy = y - y.mean()

    dx2 = float(np.sum(dx * dx))
    dy2 = float(np.sum(dy * dy))
    if dx2 == 0.0 or dy2 == 0.0:
        return 0.0

    product = dx2 * dy2
    if product > 0.0 and math.isfinite(product):
        denom = math.sqrt(product)
    else:
        # Product over/underflowed
        denom = math.sqrt(dx2) * math.sqrt(dy2)
    if denom == 0.0 or not math.isfinite(denom):
        return 0.0

    r = float(np.sum(dx * dy)) / denom
    return max(-1.0, min(1.0, r))


def lagged_pearson(xs: Sequence[float], ys: Sequence[float], lag: int) -> float:
    """
    Pearson correlation of ``xs[0 : n-lag]`` against ``ys[lag : n]``.

    Positive lag means "xs leads ys by ``lag`` days".

    Raises:
        ValueError: If ``lag`` is negative
    """
    if lag < 0:
        raise ValueError(f"lag must be non-negative, got {lag}")
    n = min(len(xs), len(ys))
    if lag >= n:
        return 0.0
    return pearson(list(xs[: n - lag]), list(ys[lag:n]))


def welch_t_test(
    sample_a: Sequence[float],
    sample_b: Sequence[float],
    threshold: float = DEFAULT_T_THRESHOLD,
) -> WelchResult:
    """
    Welch's t-test for two independent samples with unequal variance.

    ``t = (mean_a - mean_b) / sqrt(var_a/n_a + var_b/n_b)``; the difference
    is significant when ``|t| > threshold`` (2.0 approximates p < 0.05).
    Degrees of freedom follow Welch-Satterthwaite and the two-sided p-value
    is taken from the Student t distribution.

    Args:
        sample_a: First sample
        sample_b: Second sample
        threshold: |t| above which the shift is declared significant

    Returns:
        WelchResult; neutral (t=0, not significant, p=1) on degenerate input
    """
    n1, n2 = len(sample_a), len(sample_b)
    if n1 < MIN_STDDEV_SAMPLES or n2 < MIN_STDDEV_SAMPLES:
        logger.debug("welch_insufficient_samples", n_a=n1, n_b=n2)
        return WelchResult()

    a = _as_array(sample_a)
    b = _as_array(sample_b)
    v1 = float(np.var(a, ddof=1)) / n1
    v2 = float(np.var(b, ddof=1)) / n2
    se = math.sqrt(v1 + v2)
    if se == 0.0:
        return WelchResult()

    t = (float(a.mean()) - float(b.mean())) / se

    df_denom = (v1 * v1) / (n1 - 1) + (v2 * v2) / (n2 - 1)
    df = (v1 + v2) ** 2 / df_denom if df_denom > 0 else 0.0
    p_value = float(2.0 * stats.t.sf(abs(t), df)) if df > 0 else 1.0

    return WelchResult(
        t=t,
        significant=abs(t) > threshold,
        degrees_of_freedom=df,
        p_value=min(1.0, max(0.0, p_value)),
    )


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))
