"""
RedemptionAggregator - summary statistics over applied redemptions.

Every metric is computed from the records of its own window only. Daily
trend points carry no running totals, so any sub-range reproduces the
same per-day values.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

import pandas as pd

from promolens.analytics.filters import DateRange, RedemptionFilter, as_filter
from promolens.analytics.policy import classify_trend
from promolens.analytics.schema import RedemptionStatus, TrendDirection, to_frame

if TYPE_CHECKING:
    from promolens.stores.base import RedemptionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverviewMetrics:
    """Headline redemption metrics for one window.

    Ratios are fractions in [0, 1].
    """

    total_redemptions: int = 0
    unique_users: int = 0
    total_revenue: float = 0.0
    total_discount_given: float = 0.0
    average_order_value: float = 0.0
    average_discount_amount: float = 0.0
    new_customers: int = 0
    existing_customers: int = 0
    mobile_redemptions: int = 0
    desktop_redemptions: int = 0
    discount_rate: float = 0.0
    new_customer_rate: float = 0.0
    mobile_rate: float = 0.0

    @classmethod
    def empty(cls) -> OverviewMetrics:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.total_redemptions == 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_overview(frame: pd.DataFrame) -> OverviewMetrics:
    """Compute overview metrics from a redemption frame."""
    total = len(frame)
    if total == 0:
        return OverviewMetrics.empty()

    revenue = float(frame["final_amount"].sum())
    discount = float(frame["discount_amount"].sum())
    new_customers = int(frame["is_new_customer"].astype(bool).sum())
    mobile = int((frame["device_type"] == "mobile").sum())
    gross = revenue + discount

    return OverviewMetrics(
        total_redemptions=total,
        unique_users=int(frame["user_id"].nunique()),
        total_revenue=revenue,
        total_discount_given=discount,
        average_order_value=revenue / total,
        average_discount_amount=discount / total,
        new_customers=new_customers,
        existing_customers=total - new_customers,
        mobile_redemptions=mobile,
        desktop_redemptions=total - mobile,
        discount_rate=discount / gross if gross > 0 else 0.0,
        new_customer_rate=new_customers / total,
        mobile_rate=mobile / total,
    )


@dataclass(frozen=True)
class DailyTrend:
    """Overview metrics for a single calendar day (UTC)."""

    day: date
    metrics: OverviewMetrics

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.day.isoformat(), **self.metrics.to_dict()}


@dataclass(frozen=True)
class PeriodComparison:
    """Current window against the same-length window before it."""

    current: OverviewMetrics
    previous: OverviewMetrics
    previous_period: DateRange

    @property
    def revenue_change(self) -> float:
        return self.current.total_revenue - self.previous.total_revenue

    @property
    def redemption_change(self) -> int:
        return self.current.total_redemptions - self.previous.total_redemptions

    @property
    def growth_rate(self) -> float | None:
        """Relative revenue change; None when the previous window had no revenue."""
        if self.previous.total_revenue == 0:
            return None
        return self.revenue_change / self.previous.total_revenue

    @property
    def trend(self) -> TrendDirection:
        return classify_trend(self.revenue_change)

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous_period": self.previous_period.to_dict(),
            "previous": self.previous.to_dict(),
            "revenue_change": self.revenue_change,
            "redemption_change": self.redemption_change,
            "growth_rate": self.growth_rate,
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class RedemptionOverview:
    """Overview section of a performance report."""

    period: DateRange
    metrics: OverviewMetrics
    comparison: PeriodComparison
    trends: list[DailyTrend] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "metrics": self.metrics.to_dict(),
            "comparison": self.comparison.to_dict(),
            "trends": [t.to_dict() for t in self.trends],
        }


class RedemptionAggregator:
    """
    Summarize applied redemptions from an injected store.

    Example:
        aggregator = RedemptionAggregator(store)
        metrics = aggregator.summarize(RedemptionFilter(date_range=window))
        daily = aggregator.trends(window)
    """

    def __init__(self, store: RedemptionStore):
        self.store = store

    def _load(self, redemption_filter: RedemptionFilter) -> pd.DataFrame:
        redemptions = [
            r
            for r in self.store.query(redemption_filter)
            if r.status == RedemptionStatus.APPLIED
        ]
        return to_frame(redemptions)

    def summarize(self, redemption_filter: RedemptionFilter | DateRange) -> OverviewMetrics:
        """Overview metrics for the filtered window (all zeros when empty)."""
        redemption_filter = as_filter(redemption_filter)
        metrics = compute_overview(self._load(redemption_filter))
        if metrics.is_empty:
            logger.info("No redemption data found for the specified period")
        else:
            logger.info(
                f"Summarized {metrics.total_redemptions} redemptions "
                f"({metrics.total_revenue:,.2f} revenue)"
            )
        return metrics

    def trends(self, redemption_filter: RedemptionFilter | DateRange) -> list[DailyTrend]:
        """One trend point per calendar day in the range, zero-filled."""
        redemption_filter = as_filter(redemption_filter)
        return daily_trends(self._load(redemption_filter), redemption_filter.date_range)

    def compare_periods(
        self,
        redemption_filter: RedemptionFilter | DateRange,
    ) -> PeriodComparison:
        """Compare the window with the same-length window preceding it."""
        redemption_filter = as_filter(redemption_filter)
        current = compute_overview(self._load(redemption_filter))
        return self._comparison(redemption_filter, current)

    def overview(self, redemption_filter: RedemptionFilter | DateRange) -> RedemptionOverview:
        """Metrics, period comparison and daily trends in one pass."""
        redemption_filter = as_filter(redemption_filter)
        frame = self._load(redemption_filter)
        metrics = compute_overview(frame)
        return RedemptionOverview(
            period=redemption_filter.date_range,
            metrics=metrics,
            comparison=self._comparison(redemption_filter, metrics),
            trends=daily_trends(frame, redemption_filter.date_range),
        )

    def _comparison(
        self,
        redemption_filter: RedemptionFilter,
        current: OverviewMetrics,
    ) -> PeriodComparison:
        previous_range = redemption_filter.date_range.previous()
        previous = compute_overview(self._load(redemption_filter.with_range(previous_range)))
        return PeriodComparison(
            current=current,
            previous=previous,
            previous_period=previous_range,
        )


def daily_trends(frame: pd.DataFrame, date_range: DateRange) -> list[DailyTrend]:
    """Per-day overview metrics for every day in the range."""
    by_day: dict[date, pd.DataFrame] = {}
    if not frame.empty:
        by_day = {day: group for day, group in frame.groupby(frame["timestamp"].dt.date)}

    trends = []
    day = date_range.start.date()
    last_day = date_range.end.date()
    while day <= last_day:
        day_frame = by_day.get(day)
        metrics = compute_overview(day_frame) if day_frame is not None else OverviewMetrics.empty()
        trends.append(DailyTrend(day=day, metrics=metrics))
        day += timedelta(days=1)
    return trends
