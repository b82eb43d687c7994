"""
ReportAggregator - fan out the sub-analyses and compose a PerformanceReport.

The overview, incremental, cohort and fraud analyses are read-only and
independent, so they run concurrently in worker threads against the same
filter snapshot. A section that fails is recorded as degraded (None in the
report, its error listed in ``degraded_sections``); the request only fails
outright when every section fails, when ``strict=True`` is requested, or
when the caller's timeout elapses.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from promolens.analytics.cohorts import CohortAnalyzer, CohortGranularity, CohortSummary
from promolens.analytics.config import AnalyticsConfig
from promolens.analytics.exceptions import (
    AggregationTimeoutError,
    DataUnavailableError,
    InvalidFilterError,
    PartialAggregationError,
)
from promolens.analytics.filters import DateRange, RedemptionFilter, as_filter
from promolens.analytics.fraud import FraudRiskScorer, FraudSummary
from promolens.analytics.incremental import IncrementalAnalysis, IncrementalRevenueAnalyzer
from promolens.analytics.redemptions import RedemptionAggregator, RedemptionOverview
from promolens.reporting.summary import (
    ExecutiveSummary,
    Recommendation,
    ReportSections,
    build_summary,
    recommend,
)

if TYPE_CHECKING:
    from promolens.stores.base import CampaignMetadata, CampaignStore, RedemptionStore

logger = logging.getLogger(__name__)

SECTIONS = ("overview", "incremental", "cohorts", "fraud")


@dataclass(frozen=True)
class PerformanceReport:
    """Complete promotion performance report.

    Every field serializes to JSON without loss through ``to_dict``.
    """

    period: DateRange
    filters: RedemptionFilter
    overview: RedemptionOverview | None
    incremental: IncrementalAnalysis | None
    cohorts: list[CohortSummary] | None
    fraud: FraudSummary | None
    executive_summary: ExecutiveSummary
    recommendations: list[Recommendation] = field(default_factory=list)
    degraded_sections: dict[str, str] = field(default_factory=dict)
    campaign: CampaignMetadata | None = None
    report_id: str = field(default_factory=lambda: f"RPT_{uuid.uuid4().hex[:12].upper()}")
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_sections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "generated_at": self.generated_at.isoformat(),
            "period": self.period.to_dict(),
            "filters": self.filters.to_dict(),
            "campaign": self.campaign.to_dict() if self.campaign else None,
            "overview": self.overview.to_dict() if self.overview else None,
            "incremental": self.incremental.to_dict() if self.incremental else None,
            "cohorts": (
                [c.to_dict() for c in self.cohorts] if self.cohorts is not None else None
            ),
            "fraud": self.fraud.to_dict() if self.fraud else None,
            "executive_summary": self.executive_summary.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "degraded_sections": dict(self.degraded_sections),
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class ReportAggregator:
    """
    Generate performance reports over a redemption store.

    Example:
        aggregator = ReportAggregator(redemption_store, campaign_store=campaigns)
        report = aggregator.generate(RedemptionFilter(date_range=window))
        payload = report.to_json()

        # From async code
        report = await aggregator.generate_async(window, timeout=30)
    """

    def __init__(
        self,
        redemption_store: RedemptionStore,
        campaign_store: CampaignStore | None = None,
        config: AnalyticsConfig | None = None,
        granularity: CohortGranularity | str = CohortGranularity.MONTH,
    ):
        self.config = config or AnalyticsConfig()
        self.redemption_store = redemption_store
        self.campaign_store = campaign_store
        self.granularity = CohortGranularity.parse(granularity)

        self.aggregator = RedemptionAggregator(redemption_store)
        self.incremental_analyzer = IncrementalRevenueAnalyzer(redemption_store)
        self.cohort_analyzer = CohortAnalyzer(redemption_store)
        self.fraud_scorer = FraudRiskScorer(
            redemption_store, pattern_limit=self.config.pattern_limit
        )

    def _section_tasks(self, redemption_filter: RedemptionFilter) -> dict[str, Callable[[], Any]]:
        return {
            "overview": lambda: self.aggregator.overview(redemption_filter),
            "incremental": lambda: self.incremental_analyzer.analyze(redemption_filter),
            "cohorts": lambda: self.cohort_analyzer.cohorts(redemption_filter, self.granularity),
            "fraud": lambda: self.fraud_scorer.summarize(redemption_filter),
        }

    async def generate_async(
        self,
        redemption_filter: RedemptionFilter | DateRange,
        timeout: float | None = None,
        strict: bool = False,
    ) -> PerformanceReport:
        """
        Run every sub-analysis concurrently and compose the report.

        Args:
            redemption_filter: Window and criteria shared by every section
            timeout: Seconds before the whole aggregation is abandoned
                (defaults to config.report_timeout_seconds)
            strict: Raise PartialAggregationError instead of returning a
                degraded report

        Returns:
            PerformanceReport, possibly with degraded sections

        Raises:
            InvalidFilterError: If the timeout is not positive
            AggregationTimeoutError: If the timeout elapses
            DataUnavailableError: If every section fails
            PartialAggregationError: If strict and any section fails
        """
        redemption_filter = as_filter(redemption_filter)
        if timeout is None:
            timeout = self.config.report_timeout_seconds
        if timeout is not None and timeout <= 0:
            raise InvalidFilterError(f"timeout must be positive, got {timeout}")

        tasks = self._section_tasks(redemption_filter)
        loop = asyncio.get_running_loop()
        # Per-call pool, shut down without waiting on the way out
        executor = ThreadPoolExecutor(
            max_workers=len(tasks) + 1, thread_name_prefix="promolens-report"
        )
        try:
            fan_out = asyncio.gather(
                *(loop.run_in_executor(executor, task) for task in tasks.values()),
                return_exceptions=True,
            )
            try:
                outcomes = await asyncio.wait_for(fan_out, timeout=timeout)
            except TimeoutError as e:
                logger.warning(f"Report aggregation abandoned after {timeout} seconds")
                raise AggregationTimeoutError(
                    f"Report aggregation exceeded {timeout} seconds"
                ) from e
            campaign = await loop.run_in_executor(executor, self._campaign, redemption_filter)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results: dict[str, Any] = {}
        failed: dict[str, str] = {}
        for name, outcome in zip(tasks, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.exception(f"Report section '{name}' failed", exc_info=outcome)
                failed[name] = str(outcome) or type(outcome).__name__
                results[name] = None
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[name] = outcome

        if len(failed) == len(tasks):
            raise DataUnavailableError(
                "All report sections failed: "
                + "; ".join(f"{name}: {message}" for name, message in failed.items())
            )
        if failed:
            if strict:
                raise PartialAggregationError(failed)
            logger.warning(f"Report degraded, unavailable sections: {', '.join(failed)}")

        sections = ReportSections(**results)

        report = PerformanceReport(
            period=redemption_filter.date_range,
            filters=redemption_filter,
            overview=sections.overview,
            incremental=sections.incremental,
            cohorts=sections.cohorts,
            fraud=sections.fraud,
            executive_summary=build_summary(sections),
            recommendations=recommend(sections, self.config.max_recommendations),
            degraded_sections=failed,
            campaign=campaign,
        )
        logger.info(
            f"Generated report {report.report_id} with "
            f"{len(report.recommendations)} recommendations"
        )
        return report

    def generate(
        self,
        redemption_filter: RedemptionFilter | DateRange,
        timeout: float | None = None,
        strict: bool = False,
    ) -> PerformanceReport:
        """Blocking wrapper around generate_async (not for use inside a running loop)."""
        return asyncio.run(self.generate_async(redemption_filter, timeout=timeout, strict=strict))

    def _campaign(self, redemption_filter: RedemptionFilter) -> CampaignMetadata | None:
        """Campaign labels; a missing or failing lookup leaves the report unlabelled."""
        if self.campaign_store is None or not redemption_filter.campaign_id:
            return None
        try:
            return self.campaign_store.get(redemption_filter.campaign_id)
        except DataUnavailableError as e:
            logger.warning(f"Campaign metadata unavailable for {redemption_filter.campaign_id}: {e}")
            return None
