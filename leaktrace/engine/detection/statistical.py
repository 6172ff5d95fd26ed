"""
Per-day Z-score Outlier Scan.

Flags individual days of a daily metric series (daily loss, daily anomaly
rate, ...) that deviate from the series' own mean by more than a z threshold.
This complements the baseline/recent drift detector: drift answers "has the
recent window shifted?", the scan answers "which days stand out?".

Detection Algorithm:
    1. mean and sample stddev over the whole series
    2. z = (value - mean) / stddev for each day
    3. Flag the day if |z| > threshold (default 2.0)
    4. Tag ABOVE_NORMAL for positive z, BELOW_NORMAL otherwise

A series with fewer than two days or zero variance yields no outliers.

Version: zscore_scan_v1
"""

from typing import Optional, Sequence

import structlog

from leaktrace.engine.aggregation import bucket_billing
from leaktrace.engine.parameters import ScanParameters
from leaktrace.engine.statistics import mean, sample_stddev, z_score
from leaktrace.models.analysis import ZScoreAnomaly
from leaktrace.models.enums import Direction
from leaktrace.models.records import BillingRecord

logger = structlog.get_logger()


class ZScoreScanner:
    """
    Z-score outlier scanner over a daily metric series.

    Attributes:
        params: Scan parameters (z threshold)

    Example:
        >>> scanner = ZScoreScanner()
        >>> outliers = scanner.scan("daily_loss", ["2026-02-01", ...], [12.0, ...])
        >>> [o.day for o in outliers if o.direction == Direction.ABOVE_NORMAL]
    """

    def __init__(self, params: Optional[ScanParameters] = None):
        self.params = params or ScanParameters()
        self.logger = structlog.get_logger()

    def scan(
        self,
        metric: str,
        days: Sequence[str],
        values: Sequence[float],
        threshold: Optional[float] = None,
    ) -> list[ZScoreAnomaly]:
        """
        Flag days whose value deviates beyond the z threshold.

        Args:
            metric: Metric name carried onto each outlier
            days: Day labels aligned with ``values``
            values: Daily metric values, chronologically ordered
            threshold: Absolute z-score threshold (default from params)

        Returns:
            Outlier days in chronological order

        Raises:
            ValueError: If ``days`` and ``values`` differ in length
        """
        if len(days) != len(values):
            raise ValueError(
                f"Series length mismatch: days={len(days)}, values={len(values)}"
            )
        threshold = self.params.z_threshold if threshold is None else threshold

        mu = mean(values)
        sd = sample_stddev(values)
        if sd == 0:
            self.logger.debug("zscore_scan_flat_series", metric=metric, length=len(values))
            return []

        outliers = []
        for day, value in zip(days, values):
            z = z_score(value, mu, sd)
            if abs(z) > threshold:
                outliers.append(
                    ZScoreAnomaly(
                        day=day,
                        metric=metric,
                        value=value,
                        mean=mu,
                        stddev=sd,
                        z_score=z,
                        direction=Direction.ABOVE_NORMAL if z > 0 else Direction.BELOW_NORMAL,
                    )
                )

        if outliers:
            self.logger.info(
                "zscore_outliers_detected",
                metric=metric,
                outlier_count=len(outliers),
                threshold=threshold,
            )
        return outliers

    def scan_billing(self, records: Sequence[BillingRecord]) -> list[ZScoreAnomaly]:
        """Scan daily loss and daily anomaly rate of billing records."""
        buckets = bucket_billing(records)
        days = [b.day for b in buckets]
        return self.scan("daily_loss", days, [b.loss for b in buckets]) + self.scan(
            "daily_anomaly_rate", days, [b.anomaly_rate for b in buckets]
        )
