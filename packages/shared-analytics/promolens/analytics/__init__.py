"""
PromoLens Analytics - financial health of discount and promotion programs.

Provides:
- Typed, construction-validated filters (DateRange, RedemptionFilter)
- RedemptionAggregator: totals, splits, ratios and daily trends
- CohortAnalyzer: acquisition cohorts, retention horizons and realised LTV
- IncrementalRevenueAnalyzer: incremental revenue and cannibalization risk
- FraudRiskScorer: risk tiers and ranked abuse patterns

Every analyzer reads through an injected RedemptionStore and never
mutates records, except FraudRiskScorer.assess which attaches an
assessment through the store.

Usage:
    from promolens.analytics import (
        DateRange,
        RedemptionAggregator,
        RedemptionFilter,
    )

    window = DateRange.last_days(30)
    metrics = RedemptionAggregator(store).summarize(RedemptionFilter(date_range=window))
"""

from promolens.analytics.cohorts import (
    CohortAnalyzer,
    CohortGranularity,
    CohortRetention,
    CohortSummary,
)
from promolens.analytics.config import AnalyticsConfig
from promolens.analytics.exceptions import (
    AggregationTimeoutError,
    AnalyticsError,
    DataUnavailableError,
    InvalidFilterError,
    PartialAggregationError,
    UnorderedJourneyError,
)
from promolens.analytics.filters import DateRange, DiscountType, RedemptionFilter
from promolens.analytics.fraud import (
    FraudContext,
    FraudPattern,
    FraudRiskScorer,
    FraudSummary,
)
from promolens.analytics.incremental import (
    CannibalizationAnalysis,
    IncrementalAnalysis,
    IncrementalRevenueAnalyzer,
)
from promolens.analytics.redemptions import (
    DailyTrend,
    OverviewMetrics,
    PeriodComparison,
    RedemptionAggregator,
    RedemptionOverview,
)
from promolens.analytics.schema import (
    DetectedPattern,
    FraudAssessment,
    Redemption,
    RedemptionStatus,
    RiskLevel,
    TrendDirection,
)

__all__ = [
    # Filters
    "DateRange",
    "DiscountType",
    "RedemptionFilter",
    # Schema
    "Redemption",
    "RedemptionStatus",
    "DetectedPattern",
    "FraudAssessment",
    "RiskLevel",
    "TrendDirection",
    # Errors
    "AnalyticsError",
    "InvalidFilterError",
    "UnorderedJourneyError",
    "DataUnavailableError",
    "PartialAggregationError",
    "AggregationTimeoutError",
    # Config
    "AnalyticsConfig",
    # Redemptions
    "RedemptionAggregator",
    "OverviewMetrics",
    "DailyTrend",
    "PeriodComparison",
    "RedemptionOverview",
    # Cohorts
    "CohortAnalyzer",
    "CohortGranularity",
    "CohortRetention",
    "CohortSummary",
    # Incremental
    "IncrementalRevenueAnalyzer",
    "IncrementalAnalysis",
    "CannibalizationAnalysis",
    # Fraud
    "FraudRiskScorer",
    "FraudContext",
    "FraudPattern",
    "FraudSummary",
]
