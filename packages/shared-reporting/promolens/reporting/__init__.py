"""
PromoLens Reporting - promotion performance reports.

Supports:
- Concurrent fan-out of the overview, incremental, cohort and fraud analyses
- Degraded sections instead of silently incomplete reports
- Executive summary with trend direction
- Deterministic, rule-based recommendations
- Lossless JSON export

Usage:
    from promolens.reporting import ReportAggregator

    aggregator = ReportAggregator(redemption_store, campaign_store=campaigns)
    report = aggregator.generate(RedemptionFilter(date_range=window, campaign_id="SPRING-25"))

    if report.is_degraded:
        print(report.degraded_sections)
    payload = report.to_json()
"""

from promolens.reporting.report import SECTIONS, PerformanceReport, ReportAggregator
from promolens.reporting.summary import (
    ExecutiveSummary,
    Recommendation,
    ReportSections,
    build_summary,
    recommend,
)

__all__ = [
    "ReportAggregator",
    "PerformanceReport",
    "SECTIONS",
    "ExecutiveSummary",
    "Recommendation",
    "ReportSections",
    "build_summary",
    "recommend",
]
