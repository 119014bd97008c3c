"""
Temporal Analysis Module

Moving-average heuristics over a vital-sign series. Series are ordered
newest first, as they come back from the vital-sign history.
"""
from dataclasses import dataclass
from typing import Dict, Any, List, Mapping, Optional, Sequence

import numpy as np

from healthrisk.utils import get_logger

logger = get_logger(__name__)

MIN_POINTS = 3
RECENT_WINDOW = 5
TREND_DIRECTION_THRESHOLD = 5.0  # percent

TREND_METRICS = (
    "blood_pressure_systolic",
    "blood_pressure_diastolic",
    "heart_rate",
    "blood_glucose",
    "weight",
)


@dataclass(frozen=True)
class TemporalSignal:
    """Trend, volatility and seasonality of one metric."""
    trend: float = 0.0
    volatility: float = 0.0
    seasonality: float = 0.0
    samples: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trend": round(self.trend, 4),
            "volatility": round(self.volatility, 4),
            "seasonality": round(self.seasonality, 4),
            "samples": self.samples,
        }


def _usable(values: Sequence[Optional[float]]) -> List[float]:
    return [float(v) for v in values if v]


def analyze_series(values: Sequence[Optional[float]]) -> TemporalSignal:
    """
    Heuristic temporal signal for a single metric.

    trend: recent (first five points) mean relative to the overall mean.
    volatility: coefficient of variation (population standard deviation).
    seasonality: imbalance between rising and falling consecutive steps,
    0 for a balanced series and 1 for a strictly one-directional one.

    Fewer than three usable points yield a neutral zero signal.
    """
    series = _usable(values)
    if len(series) < MIN_POINTS:
        return TemporalSignal(samples=len(series))

    arr = np.asarray(series, dtype=float)
    overall = float(arr.mean())
    if overall == 0:
        return TemporalSignal(samples=len(series))

    recent = float(arr[:RECENT_WINDOW].mean())
    trend = (recent - overall) / overall
    volatility = float(arr.std()) / overall

    diffs = np.diff(arr)
    rising = int(np.count_nonzero(diffs > 0))
    seasonality = abs(rising / len(diffs) - 0.5) * 2

    return TemporalSignal(
        trend=float(trend),
        volatility=float(volatility),
        seasonality=float(seasonality),
        samples=len(series),
    )


def analyze_metric(records: Sequence[Mapping[str, Any]], metric: str) -> TemporalSignal:
    """Temporal signal for one column of a vital-sign history."""
    return analyze_series([record.get(metric) for record in records])


@dataclass(frozen=True)
class VitalTrend:
    """Recent-half versus older-half comparison of a metric."""
    current: float
    previous: float
    change_percent: float

    @property
    def direction(self) -> str:
        if self.change_percent > TREND_DIRECTION_THRESHOLD:
            return "increasing"
        elif self.change_percent < -TREND_DIRECTION_THRESHOLD:
            return "decreasing"
        return "stable"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": round(self.current, 1),
            "previous": round(self.previous, 1),
            "change_percent": round(self.change_percent, 1),
            "direction": self.direction,
        }


def compute_vital_trends(
    records: Optional[Sequence[Mapping[str, Any]]],
    metrics: Sequence[str] = TREND_METRICS,
) -> Optional[Dict[str, VitalTrend]]:
    """
    Compare the newer half of each metric's history against the older half.

    Returns None when fewer than two records exist or no metric has two values.
    """
    if not records or len(records) < 2:
        return None

    trends: Dict[str, VitalTrend] = {}
    for metric in metrics:
        values = _usable([record.get(metric) for record in records])
        if len(values) < 2:
            continue
        split = (len(values) + 1) // 2
        recent_avg = float(np.mean(values[:split]))
        older_avg = float(np.mean(values[split:]))
        if older_avg == 0:
            continue
        trends[metric] = VitalTrend(
            current=recent_avg,
            previous=older_avg,
            change_percent=(recent_avg - older_avg) / older_avg * 100,
        )

    return trends or None
