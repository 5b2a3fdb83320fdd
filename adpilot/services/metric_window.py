"""
Rolling aggregates and streaks over a campaign's daily records.

Records are walked newest first. Missing calendar days are not filled in:
a streak runs over the records that exist.
"""
from typing import Any, Iterable, List, Mapping, Optional, Union

from adpilot.models.campaign import Aggregate, DailyRecord, Streak
from adpilot.utils.helpers import calculate_roas

METRICS = ("spend", "revenue", "profit", "roas", "mcv", "cv")


class MetricWindow:
    """A campaign's daily records, sorted newest first."""

    def __init__(self, records: Iterable[Union[DailyRecord, Mapping[str, Any]]]):
        coerced = [r if isinstance(r, DailyRecord) else DailyRecord.from_mapping(r) for r in records]
        self._records: List[DailyRecord] = sorted(coerced, key=lambda r: r.date, reverse=True)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[DailyRecord]:
        return list(self._records)

    @property
    def latest(self) -> Optional[DailyRecord]:
        return self._records[0] if self._records else None

    @property
    def today_profit(self) -> float:
        latest = self.latest
        return latest.profit if latest is not None else 0.0

    def last_n_days(self, n: int) -> Aggregate:
        """
        Sum the n most recent records.

        ROAS is computed from the summed spend/revenue, not averaged per day.
        """
        window = self._records[:max(n, 0)]
        total_spend = sum(r.spend for r in window)
        total_revenue = sum(r.revenue for r in window)
        total_profit = sum(r.profit for r in window)
        return Aggregate(
            total_spend=total_spend,
            total_revenue=total_revenue,
            total_profit=total_profit,
            roas=calculate_roas(total_revenue, total_spend),
            days_counted=len(window),
        )

    def series(self, metric: str, skip_latest: bool = False) -> List[float]:
        """Values of one metric, oldest -> newest."""
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric}")
        records = self._records[1:] if skip_latest else self._records
        return [getattr(r, metric) for r in reversed(records)]


def consecutive_loss_days(window: MetricWindow) -> int:
    """Most-recent run of days with profit < 0."""
    days = 0
    for record in window.records:
        if record.profit >= 0:
            break
        days += 1
    return days


def consecutive_profit_days(window: MetricWindow) -> int:
    """Most-recent run of days with profit > 0."""
    days = 0
    for record in window.records:
        if record.profit <= 0:
            break
        days += 1
    return days


def calculate_streaks(window: MetricWindow) -> Streak:
    return Streak(
        loss_days=consecutive_loss_days(window),
        profit_days=consecutive_profit_days(window),
    )
