"""
Best-lag Correlation Engine.

Searches lags 0..max_lag for the Pearson correlation between two aligned
daily signals, where a positive lag means the first signal leads the second.
The lag with the largest |r| wins; ties favor the smaller lag.

Strength buckets on |r|:
    >= 0.7  STRONG
    >= 0.4  MODERATE
    >= 0.2  WEAK
    else    NEGLIGIBLE

The engine scores one hop at a time. It does not infer significance of a
multi-hop chain; callers compose chains such as
deployment indicator -> anomaly rate -> failure count -> churn value.

Version: lag_correlation_v1
"""

from typing import Optional, Sequence

import structlog

from leaktrace.engine.parameters import CorrelationParameters
from leaktrace.engine.statistics import lagged_pearson, pearson
from leaktrace.models.analysis import LagCorrelation
from leaktrace.models.enums import CorrelationStrength

logger = structlog.get_logger()


class CorrelationEngine:
    """
    Computes best-lag correlations between daily signal pairs.

    Attributes:
        params: Correlation parameters (max lag, strength buckets)

    Example:
        >>> engine = CorrelationEngine()
        >>> result = engine.best_lag_correlation(
        ...     [0, 0, 1, 0, 0, 0], [0.02, 0.02, 0.02, 0.35, 0.33, 0.34]
        ... )
        >>> print(f"r={result.r:.2f} at lag {result.lag} ({result.strength.value})")
    """

    def __init__(self, params: Optional[CorrelationParameters] = None):
        """
        Initialize the correlation engine.

        Args:
            params: Correlation parameters (default max lag 3)
        """
        self.params = params or CorrelationParameters()
        self.logger = structlog.get_logger()

    def best_lag_correlation(
        self,
        xs: Sequence[float],
        ys: Sequence[float],
        max_lag: Optional[int] = None,
    ) -> LagCorrelation:
        """
        Find the lag in ``[0, max_lag]`` maximizing |r| between xs and ys.

        Args:
            xs: Leading signal (daily values)
            ys: Lagging signal (daily values)
            max_lag: Largest lag to try (default from params)

        Returns:
            LagCorrelation; ``r = 0`` at lag 0 when no lag has enough overlap

        Raises:
            ValueError: If ``max_lag`` is negative
        """
        max_lag = self.params.max_lag if max_lag is None else max_lag
        if max_lag < 0:
            raise ValueError(f"max_lag must be non-negative, got {max_lag}")

        n = min(len(xs), len(ys))
        best_lag = 0
        best_r = pearson(xs, ys)
        for lag in range(1, max_lag + 1):
            r = lagged_pearson(xs, ys, lag)
            # Strict comparison keeps the smaller lag on ties
            if abs(r) > abs(best_r):
                best_lag, best_r = lag, r

        result = LagCorrelation(
            lag=best_lag,
            r=best_r,
            strength=self.classify_strength(best_r),
            samples=max(0, n - best_lag),
        )

        self.logger.debug(
            "best_lag_computed",
            lag=result.lag,
            r=round(result.r, 4),
            strength=result.strength.value,
            length=n,
        )
        return result

    def classify_strength(self, r: float) -> CorrelationStrength:
        """Bucket |r| into a correlation strength."""
        magnitude = abs(r)
        if magnitude >= self.params.strong:
            return CorrelationStrength.STRONG
        if magnitude >= self.params.moderate:
            return CorrelationStrength.MODERATE
        if magnitude >= self.params.weak:
            return CorrelationStrength.WEAK
        return CorrelationStrength.NEGLIGIBLE

    def correlate_pairs(
        self,
        pairs: dict[str, tuple[Sequence[float], Sequence[float]]],
        max_lag: Optional[int] = None,
    ) -> dict[str, LagCorrelation]:
        """
        Best-lag correlation for several named signal pairs.

        Args:
            pairs: Dict mapping hop name -> (leading series, lagging series)
            max_lag: Largest lag to try (default from params)

        Returns:
            Dict mapping hop name -> LagCorrelation, in input order

        Example:
            >>> chain = engine.correlate_pairs({
            ...     "deployment->anomaly_rate": (deploys, rates),
            ...     "anomaly_rate->failures": (rates, failures),
            ... })
        """
        results = {
            name: self.best_lag_correlation(xs, ys, max_lag=max_lag)
            for name, (xs, ys) in pairs.items()
        }

        self.logger.info(
            "correlation_chain_computed",
            hop_count=len(results),
            strong_count=sum(
                1 for r in results.values() if r.strength == CorrelationStrength.STRONG
            ),
        )
        return results
