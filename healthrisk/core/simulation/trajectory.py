"""
Trajectory Simulation Module

Monte Carlo projection of a vital sign with percentile bands, and a
closed-form disease-progression projection.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, Any, List, Optional
import math

import numpy as np

from healthrisk.utils import get_logger

logger = get_logger(__name__)

DEFAULT_PATHS = 1000
LOWER_QUANTILE = 0.05
MEDIAN_QUANTILE = 0.5
UPPER_QUANTILE = 0.95


@dataclass
class TrajectoryPoint:
    """One projected time step."""
    step: int
    predicted: float
    lower_bound: float
    upper_bound: float
    confidence: float
    period: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "step": self.step,
            "predicted": round(self.predicted, 1),
            "lower_bound": round(self.lower_bound, 1),
            "upper_bound": round(self.upper_bound, 1),
            "confidence": round(self.confidence, 2),
        }
        if self.period is not None:
            result["period"] = self.period
        return result


def step_confidence(step: int) -> float:
    """Fixed linear confidence decay, floored at 0.5."""
    return max(0.5, 0.95 - step * 0.03)


def add_months(start: date, months: int) -> date:
    """Same day-of-month ``months`` later, clipped to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    if month == 12:
        days_in_month = 31
    else:
        days_in_month = (date(year, month + 1, 1) - date(year, month, 1)).days
    return date(year, month, min(start.day, days_in_month))


def simulate_trajectory(
    current_value: float,
    trend: float,
    volatility: float,
    steps: int,
    paths: int = DEFAULT_PATHS,
    rng: Optional[np.random.Generator] = None,
    start: Optional[date] = None,
) -> List[TrajectoryPoint]:
    """
    Random walk with drift, summarized by cross-path percentiles.

    For each path and step s in 1..steps:
        value += trend * value * (s / steps) + U(-1, 1) * volatility * value
    and the value is floored at 0. Step 0 is the current value.

    Args:
        current_value: Starting value
        trend: Relative drift per horizon
        volatility: Relative noise amplitude
        steps: Number of future steps
        paths: Number of simulated paths
        rng: Random source; a fresh unseeded generator if omitted
        start: Optional start date used to label monthly steps

    Returns:
        steps + 1 TrajectoryPoints (median, 5th and 95th percentile)
    """
    steps = max(int(steps), 0)
    paths = max(int(paths), 1)
    rng = rng if rng is not None else np.random.default_rng()

    values = np.full(paths, float(current_value))
    history = np.empty((steps + 1, paths))
    history[0] = values

    for step in range(1, steps + 1):
        drift = trend * values * (step / steps)
        noise = rng.uniform(-1.0, 1.0, size=paths) * volatility * values
        values = np.maximum(values + drift + noise, 0.0)
        history[step] = values

    ordered = np.sort(history, axis=1)
    lower_idx = int(math.floor(paths * LOWER_QUANTILE))
    median_idx = int(math.floor(paths * MEDIAN_QUANTILE))
    upper_idx = min(int(math.floor(paths * UPPER_QUANTILE)), paths - 1)

    return [
        TrajectoryPoint(
            step=step,
            predicted=float(ordered[step, median_idx]),
            lower_bound=float(ordered[step, lower_idx]),
            upper_bound=float(ordered[step, upper_idx]),
            confidence=step_confidence(step),
            period=add_months(start, step).strftime("%Y-%m") if start else None,
        )
        for step in range(steps + 1)
    ]


BASE_PROGRESSION_RATE = 0.02


def project_disease_progression(
    current_risk: float,
    horizon_months: int = 24,
    treatment_effect: float = 0.0,
    start: Optional[date] = None,
) -> List[TrajectoryPoint]:
    """
    Deterministic disease-risk projection.

    Risk approaches 100 exponentially at a base monthly rate slowed by the
    treatment effect (percent, clamped to [0, 100]). A small periodic term
    models patient variability and the band widens linearly with horizon.
    """
    horizon_months = max(int(horizon_months), 1)
    effect = float(np.clip(treatment_effect, 0.0, 100.0))
    rate = BASE_PROGRESSION_RATE * (1 - effect / 100)

    points: List[TrajectoryPoint] = []
    for month in range(horizon_months + 1):
        progression = current_risk + (100 - current_risk) * (1 - math.exp(-rate * month))
        variability = math.sin(month * 0.5) * 3
        predicted = float(np.clip(progression + variability, 5, 95))
        uncertainty = 5 + month * 1.5

        points.append(TrajectoryPoint(
            step=month,
            predicted=predicted,
            lower_bound=max(0.0, predicted - uncertainty),
            upper_bound=min(100.0, predicted + uncertainty),
            confidence=1 - month / (horizon_months * 1.5),
            period=add_months(start, month).isoformat() if start else None,
        ))

    return points
