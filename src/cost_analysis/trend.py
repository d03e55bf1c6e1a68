"""
Coarse cost trend estimation.

Compares the average of the first half of a chronological series with the
average of the second half. This is a two-bucket comparison, not a
regression; the split point matters for short series.
"""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from .models import DailyCostPoint


class Trend(BaseModel):
    """Magnitude and direction of a cost change."""

    model_config = ConfigDict(frozen=True)

    percent: float = 0.0
    is_up: bool = False

    @property
    def direction(self) -> str:
        if self.percent == 0:
            return "flat"
        return "up" if self.is_up else "down"


NEUTRAL_TREND = Trend(percent=0.0, is_up=False)


def _mean(points: Sequence[DailyCostPoint]) -> float:
    return sum(point.total_cost for point in points) / (len(points) or 1)


def compute_trend(series: Sequence[DailyCostPoint]) -> Trend:
    """
    Compute the trend of a chronological cost series.

    Args:
        series: Daily cost points in ascending date order

    Returns:
        Trend with absolute percent change and direction. Series shorter
        than two points, or with a zero first-half average, are flat.
    """
    if len(series) < 2:
        return NEUTRAL_TREND

    midpoint = len(series) // 2
    first_avg = _mean(series[:midpoint])
    second_avg = _mean(series[midpoint:])

    if first_avg == 0:
        return NEUTRAL_TREND

    raw_percent = (second_avg - first_avg) / first_avg * 100
    return Trend(percent=abs(raw_percent), is_up=raw_percent > 0)
