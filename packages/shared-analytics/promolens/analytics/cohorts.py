"""
CohortAnalyzer - acquisition cohorts, retention and realised LTV.

A user's cohort is fixed by their earliest applied redemption. Retention
at a horizon is the share of members with at least one additional
redemption within that many days of acquisition. A horizon that has not
fully elapsed for every member is reported as None (not yet available),
never as zero.

LTV is realised revenue to date divided by cohort size; it is a lower
bound, not a forecast.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import pandas as pd

from promolens.analytics.exceptions import InvalidFilterError
from promolens.analytics.filters import DateRange, RedemptionFilter, as_filter
from promolens.analytics.schema import RedemptionStatus, to_frame

if TYPE_CHECKING:
    from promolens.stores.base import RedemptionStore

logger = logging.getLogger(__name__)

# Retention horizons in days
RETENTION_HORIZONS = {
    "week1": 7,
    "week4": 28,
    "week12": 84,
    "week24": 168,
}


class CohortGranularity(str, Enum):
    """Size of the acquisition period bucket."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: CohortGranularity | str) -> CohortGranularity:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidFilterError(f"Unsupported cohort granularity: {value}") from e


def cohort_period(moment: datetime, granularity: CohortGranularity) -> tuple[str, datetime]:
    """Return (cohort key, period start) for an acquisition time."""
    day_start = datetime(moment.year, moment.month, moment.day, tzinfo=UTC)
    if granularity == CohortGranularity.DAY:
        return day_start.strftime("%Y-%m-%d"), day_start
    if granularity == CohortGranularity.WEEK:
        iso = moment.isocalendar()
        return f"{iso.year}-W{iso.week:02d}", day_start - timedelta(days=moment.weekday())
    return f"{moment.year}-{moment.month:02d}", day_start.replace(day=1)


@dataclass(frozen=True)
class CohortRetention:
    """Retention fractions per horizon; None means not yet available."""

    week1: float | None = None
    week4: float | None = None
    week12: float | None = None
    week24: float | None = None

    def to_dict(self) -> dict[str, float | None]:
        return {
            "week1": self.week1,
            "week4": self.week4,
            "week12": self.week12,
            "week24": self.week24,
        }


@dataclass(frozen=True)
class CohortSummary:
    """Size, retention and realised value of one acquisition cohort."""

    cohort_key: str
    period_start: datetime
    size: int
    retention: CohortRetention
    ltv: float
    total_revenue: float
    transactions_per_user: float
    average_transaction_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "cohort_key": self.cohort_key,
            "period_start": self.period_start.isoformat(),
            "size": self.size,
            "retention": self.retention.to_dict(),
            "ltv": self.ltv,
            "total_revenue": self.total_revenue,
            "transactions_per_user": self.transactions_per_user,
            "average_transaction_value": self.average_transaction_value,
        }


class CohortAnalyzer:
    """
    Bucket users into acquisition cohorts and measure retention and LTV.

    Example:
        analyzer = CohortAnalyzer(store)
        cohorts = analyzer.cohorts(window, CohortGranularity.MONTH)
    """

    def __init__(self, store: RedemptionStore):
        self.store = store

    def cohorts(
        self,
        redemption_filter: RedemptionFilter | DateRange,
        granularity: CohortGranularity | str = CohortGranularity.MONTH,
    ) -> list[CohortSummary]:
        """
        Summaries for every cohort acquired within the range.

        Args:
            redemption_filter: Acquisition window (and optional criteria).
                The window end is also the snapshot time for retention.
            granularity: Period size used for cohort keys

        Returns:
            Cohort summaries ordered by period start
        """
        redemption_filter = as_filter(redemption_filter)
        granularity = CohortGranularity.parse(granularity)
        window = redemption_filter.date_range

        history = [
            r
            for r in self.store.query(redemption_filter.with_range(window.history()))
            if r.status == RedemptionStatus.APPLIED
        ]
        frame = to_frame(history)
        if frame.empty:
            logger.info("No redemption history for cohort analysis")
            return []

        acquired = frame.groupby("user_id")["timestamp"].min().rename("acquired_at")
        members = acquired[(acquired >= window.start) & (acquired <= window.end)]
        if members.empty:
            return []

        frame = frame.join(acquired, on="user_id")

        buckets: dict[str, tuple[datetime, list[str]]] = {}
        for user_id, acquired_at in members.items():
            key, start = cohort_period(acquired_at.to_pydatetime(), granularity)
            buckets.setdefault(key, (start, []))[1].append(user_id)

        summaries = [
            self._summarize(key, start, users, frame, members, window.end)
            for key, (start, users) in buckets.items()
        ]
        summaries.sort(key=lambda s: s.period_start)

        logger.info(
            f"Built {len(summaries)} {granularity.value} cohorts covering {len(members)} users"
        )
        return summaries

    def _summarize(
        self,
        key: str,
        period_start: datetime,
        users: list[str],
        frame: pd.DataFrame,
        acquired: pd.Series,
        as_of: datetime,
    ) -> CohortSummary:
        size = len(users)
        cohort_frame = frame[frame["user_id"].isin(users)]
        latest_acquisition = acquired[users].max().to_pydatetime()

        retention = {}
        for name, days in RETENTION_HORIZONS.items():
            if latest_acquisition + timedelta(days=days) > as_of:
                retention[name] = None
                continue
            in_horizon = cohort_frame[
                cohort_frame["timestamp"] <= cohort_frame["acquired_at"] + pd.Timedelta(days=days)
            ]
            redemptions_per_user = in_horizon.groupby("user_id").size()
            retained = int((redemptions_per_user > 1).sum())
            retention[name] = retained / size

        revenue = float(cohort_frame["final_amount"].sum())
        transactions = len(cohort_frame)

        return CohortSummary(
            cohort_key=key,
            period_start=period_start,
            size=size,
            retention=CohortRetention(**retention),
            ltv=revenue / size,
            total_revenue=revenue,
            transactions_per_user=transactions / size,
            average_transaction_value=revenue / transactions if transactions else 0.0,
        )
