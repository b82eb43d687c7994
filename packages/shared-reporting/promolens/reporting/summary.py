"""
Executive summary and rule-based recommendations.

Recommendations come from a fixed, ordered list of threshold rules over the
report sections. The same section inputs always yield the same
recommendations in the same order; sections that are unavailable simply do
not trigger their rules.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from promolens.analytics import policy
from promolens.analytics.cohorts import CohortSummary
from promolens.analytics.fraud import FraudSummary
from promolens.analytics.incremental import IncrementalAnalysis
from promolens.analytics.redemptions import RedemptionOverview
from promolens.analytics.schema import RiskLevel, TrendDirection


@dataclass(frozen=True)
class Recommendation:
    """A single actionable recommendation."""

    code: str
    priority: RiskLevel
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "priority": self.priority.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class ExecutiveSummary:
    """Headline totals and direction of a performance report."""

    total_redemptions: int | None = None
    total_revenue: float | None = None
    total_discount_given: float | None = None
    net_incremental_revenue: float | None = None
    discount_roi: float | None = None
    cannibalization_risk: RiskLevel | None = None
    flagged_rate: float | None = None
    trend: TrendDirection = TrendDirection.STABLE
    growth_rate: float | None = None
    highlights: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_redemptions": self.total_redemptions,
            "total_revenue": self.total_revenue,
            "total_discount_given": self.total_discount_given,
            "net_incremental_revenue": self.net_incremental_revenue,
            "discount_roi": self.discount_roi,
            "cannibalization_risk": (
                self.cannibalization_risk.value if self.cannibalization_risk else None
            ),
            "flagged_rate": self.flagged_rate,
            "trend": self.trend.value,
            "growth_rate": self.growth_rate,
            "highlights": list(self.highlights),
            "concerns": list(self.concerns),
        }


@dataclass(frozen=True)
class ReportSections:
    """Sub-analysis results feeding the summary; None marks a failed section."""

    overview: RedemptionOverview | None = None
    incremental: IncrementalAnalysis | None = None
    cohorts: list[CohortSummary] | None = None
    fraud: FraudSummary | None = None


def build_summary(sections: ReportSections) -> ExecutiveSummary:
    """Compose headline totals, trend direction, highlights and concerns."""
    values: dict[str, Any] = {}
    highlights: list[str] = []
    concerns: list[str] = []

    if sections.overview is not None:
        metrics = sections.overview.metrics
        comparison = sections.overview.comparison
        values.update(
            total_redemptions=metrics.total_redemptions,
            total_revenue=metrics.total_revenue,
            total_discount_given=metrics.total_discount_given,
            trend=comparison.trend,
            growth_rate=comparison.growth_rate,
        )
        if comparison.trend == TrendDirection.POSITIVE:
            highlights.append(
                f"Revenue up {comparison.revenue_change:,.2f} on the previous period"
            )
        elif comparison.trend == TrendDirection.NEGATIVE:
            concerns.append(
                f"Revenue down {-comparison.revenue_change:,.2f} on the previous period"
            )

    if sections.incremental is not None:
        impact = sections.incremental.incremental
        risk = sections.incremental.cannibalization.risk_level
        values.update(
            net_incremental_revenue=impact.net_incremental_revenue,
            discount_roi=impact.discount_roi,
            cannibalization_risk=risk,
        )
        if impact.net_incremental_revenue > 0:
            highlights.append(
                f"{impact.new_customers} new customers generated "
                f"{impact.net_incremental_revenue:,.2f} incremental revenue"
            )
        if risk == RiskLevel.HIGH:
            concerns.append("High cannibalization of existing-customer revenue")

    if sections.fraud is not None:
        values["flagged_rate"] = sections.fraud.flagged_rate
        if sections.fraud.flagged_rate > policy.ELEVATED_FRAUD_RATE:
            concerns.append(
                f"{sections.fraud.flagged_rate:.1%} of redemptions flagged for fraud review"
            )

    return ExecutiveSummary(highlights=highlights, concerns=concerns, **values)


# =============================================================================
# Recommendation rules
# =============================================================================

Rule = Callable[[ReportSections], Recommendation | None]


def _cannibalization_rule(sections: ReportSections) -> Recommendation | None:
    if sections.incremental is None:
        return None
    risk = sections.incremental.cannibalization.risk_level
    if risk == RiskLevel.HIGH:
        return Recommendation(
            code="review_targeting",
            priority=RiskLevel.HIGH,
            message="Review targeting: most redemptions come from existing customers "
            "who would likely have purchased at full price.",
        )
    if risk == RiskLevel.MEDIUM:
        return Recommendation(
            code="monitor_cannibalization",
            priority=RiskLevel.MEDIUM,
            message="Monitor cannibalization and consider new-customer-only codes.",
        )
    return None


def _fraud_rule(sections: ReportSections) -> Recommendation | None:
    if sections.fraud is None or sections.fraud.flagged_rate <= policy.ELEVATED_FRAUD_RATE:
        return None
    return Recommendation(
        code="tighten_eligibility",
        priority=RiskLevel.HIGH,
        message="Tighten eligibility rules: the share of redemptions flagged for "
        "fraud review is elevated.",
    )


def _discount_depth_rule(sections: ReportSections) -> Recommendation | None:
    if sections.overview is None:
        return None
    if sections.overview.metrics.discount_rate <= policy.EXCESSIVE_DISCOUNT_RATE:
        return None
    return Recommendation(
        code="reduce_discount_depth",
        priority=RiskLevel.MEDIUM,
        message="Reduce discount depth: discounts exceed 30% of gross order value.",
    )


def _trend_rule(sections: ReportSections) -> Recommendation | None:
    if sections.overview is None:
        return None
    if sections.overview.comparison.trend != TrendDirection.NEGATIVE:
        return None
    return Recommendation(
        code="refresh_offer",
        priority=RiskLevel.MEDIUM,
        message="Refresh the offer: revenue declined against the previous period.",
    )


def _retention_rule(sections: ReportSections) -> Recommendation | None:
    if not sections.cohorts:
        return None
    measured = [
        c.retention.week4 for c in sections.cohorts if c.retention.week4 is not None
    ]
    if not measured or max(measured) >= policy.LOW_WEEK4_RETENTION:
        return None
    return Recommendation(
        code="improve_retention",
        priority=RiskLevel.MEDIUM,
        message="Add a follow-up incentive: fewer than 20% of acquired customers "
        "return within four weeks.",
    )


def _acquisition_rule(sections: ReportSections) -> Recommendation | None:
    if sections.overview is None:
        return None
    metrics = sections.overview.metrics
    if metrics.is_empty or metrics.new_customer_rate >= policy.LOW_NEW_CUSTOMER_RATE:
        return None
    return Recommendation(
        code="target_new_customers",
        priority=RiskLevel.LOW,
        message="Target acquisition channels: few redemptions come from new customers.",
    )


RULES: tuple[Rule, ...] = (
    _cannibalization_rule,
    _fraud_rule,
    _discount_depth_rule,
    _trend_rule,
    _retention_rule,
    _acquisition_rule,
)


def recommend(sections: ReportSections, limit: int = 3) -> list[Recommendation]:
    """
    Evaluate every rule and return the top recommendations.

    Args:
        sections: Sub-analysis results (None for unavailable sections)
        limit: Maximum number of recommendations

    Returns:
        Recommendations ordered by priority, then by rule order
    """
    triggered = []
    for order, rule in enumerate(RULES):
        recommendation = rule(sections)
        if recommendation is not None:
            triggered.append((order, recommendation))

    triggered.sort(key=lambda item: (-item[1].priority.rank, item[0]))
    return [recommendation for _, recommendation in triggered[:limit]]
