"""
IncrementalRevenueAnalyzer - incremental revenue and cannibalization.

Known limitation: there is no randomized holdout group. Every
existing-customer redemption is treated as fully cannibalized (the
customer would have bought at full price anyway) and every new-customer
redemption as fully incremental. The result is a heuristic proxy for
incrementality, not a causal estimate.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import pandas as pd

from promolens.analytics.filters import DateRange, RedemptionFilter, as_filter
from promolens.analytics.policy import classify_cannibalization_risk
from promolens.analytics.schema import RedemptionStatus, RiskLevel, to_frame

if TYPE_CHECKING:
    from promolens.stores.base import RedemptionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentMetrics:
    """Count and value of one customer segment."""

    count: int = 0
    revenue: float = 0.0
    discount: float = 0.0
    average_order_value: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def segment_metrics(frame: pd.DataFrame) -> SegmentMetrics:
    count = len(frame)
    if count == 0:
        return SegmentMetrics()
    revenue = float(frame["final_amount"].sum())
    return SegmentMetrics(
        count=count,
        revenue=revenue,
        discount=float(frame["discount_amount"].sum()),
        average_order_value=revenue / count,
    )


@dataclass(frozen=True)
class CannibalizationAnalysis:
    """Share of discounted revenue that would likely have occurred anyway."""

    cannibalization_rate: float
    new_customer_revenue: float
    existing_customer_revenue: float
    cannibalization_value: float
    net_incremental_revenue: float
    cannibalization_percentage: float
    risk_level: RiskLevel

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        return data


@dataclass(frozen=True)
class IncrementalImpact:
    """Revenue attributed to the promotion and what it cost."""

    new_customers: int
    net_incremental_revenue: float
    total_discount_cost: float
    incremental_discount_cost: float
    discount_roi: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IncrementalAnalysis:
    """Incremental revenue section of a performance report.

    ``baseline`` is the existing-customer segment, ``with_discount`` covers
    every redemption and ``new_customers`` is the incremental segment.
    """

    baseline: SegmentMetrics
    with_discount: SegmentMetrics
    new_customers: SegmentMetrics
    incremental: IncrementalImpact
    cannibalization: CannibalizationAnalysis

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline": self.baseline.to_dict(),
            "with_discount": self.with_discount.to_dict(),
            "new_customers": self.new_customers.to_dict(),
            "incremental": self.incremental.to_dict(),
            "cannibalization": self.cannibalization.to_dict(),
        }


def analyze_segments(new: SegmentMetrics, existing: SegmentMetrics) -> IncrementalAnalysis:
    """Derive incremental and cannibalization metrics from the two segments."""
    total_count = new.count + existing.count
    total_revenue = new.revenue + existing.revenue
    total_discount = new.discount + existing.discount

    rate = existing.count / total_count if total_count else 0.0
    cannibalization = CannibalizationAnalysis(
        cannibalization_rate=rate,
        new_customer_revenue=new.revenue,
        existing_customer_revenue=existing.revenue,
        cannibalization_value=existing.revenue,
        net_incremental_revenue=new.revenue,
        cannibalization_percentage=existing.revenue / total_revenue if total_revenue else 0.0,
        risk_level=classify_cannibalization_risk(rate),
    )

    incremental = IncrementalImpact(
        new_customers=new.count,
        net_incremental_revenue=new.revenue,
        total_discount_cost=total_discount,
        incremental_discount_cost=new.discount,
        discount_roi=(new.revenue - total_discount) / total_discount if total_discount else 0.0,
    )

    with_discount = SegmentMetrics(
        count=total_count,
        revenue=total_revenue,
        discount=total_discount,
        average_order_value=total_revenue / total_count if total_count else 0.0,
    )

    return IncrementalAnalysis(
        baseline=existing,
        with_discount=with_discount,
        new_customers=new,
        incremental=incremental,
        cannibalization=cannibalization,
    )


class IncrementalRevenueAnalyzer:
    """
    Split redemptions into new and existing customers and estimate lift.

    Example:
        analyzer = IncrementalRevenueAnalyzer(store)
        analysis = analyzer.analyze(RedemptionFilter(date_range=window, campaign_id="SPRING-25"))
        analysis.cannibalization.risk_level  # RiskLevel.HIGH
    """

    def __init__(self, store: RedemptionStore):
        self.store = store

    def analyze(self, redemption_filter: RedemptionFilter | DateRange) -> IncrementalAnalysis:
        redemption_filter = as_filter(redemption_filter)
        frame = to_frame([
            r
            for r in self.store.query(redemption_filter)
            if r.status == RedemptionStatus.APPLIED
        ])

        if frame.empty:
            new, existing = SegmentMetrics(), SegmentMetrics()
        else:
            is_new = frame["is_new_customer"].astype(bool)
            new = segment_metrics(frame[is_new])
            existing = segment_metrics(frame[~is_new])

        analysis = analyze_segments(new, existing)
        logger.info(
            f"Incremental analysis: {new.count} new / {existing.count} existing, "
            f"cannibalization risk {analysis.cannibalization.risk_level.value}"
        )
        return analysis
