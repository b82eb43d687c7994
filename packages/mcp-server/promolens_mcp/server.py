"""
PromoLens MCP Server - Main entry point.

MCP server exposing the PromoLens analytics engine:
- Touchpoint attribution and model comparison
- Redemption overview and daily trends
- Cohort retention and LTV
- Incremental revenue and cannibalization
- Fraud pattern ranking and risk scoring
- Performance report generation

Records are read from BigQuery; see BigQueryStoreConfig.from_env for the
environment variables used.
"""

from __future__ import annotations

import logging
from typing import Any

from fastmcp import FastMCP

from promolens.analytics.exceptions import AnalyticsError, InvalidFilterError

logger = logging.getLogger(__name__)

# Initialize server
mcp = FastMCP("PromoLens Promotion Analytics")


# =============================================================================
# Store factories
# =============================================================================


def _table_client():
    from promolens.stores import BigQueryStoreConfig, BigQueryTableClient

    return BigQueryTableClient(BigQueryStoreConfig.from_env())


def _redemption_store():
    from promolens.stores import BigQueryRedemptionStore

    return BigQueryRedemptionStore(_table_client())


def _touchpoint_store():
    from promolens.stores import BigQueryTouchpointStore

    return BigQueryTouchpointStore(_table_client())


def _campaign_store():
    from promolens.stores import BigQueryCampaignStore

    return BigQueryCampaignStore(_table_client())


def _build_filter(
    start_date: str,
    end_date: str,
    campaign_id: str | None = None,
    channel: str | None = None,
    discount_type: str | None = None,
    country: str | None = None,
):
    from promolens.analytics import RedemptionFilter

    return RedemptionFilter.from_dict({
        "start_date": start_date,
        "end_date": end_date,
        "campaign_id": campaign_id,
        "channel": channel,
        "discount_type": discount_type,
        "country": country,
    })


def _error(e: Exception) -> dict[str, Any]:
    logger.warning(f"Tool call failed: {type(e).__name__}: {e}")
    return {"success": False, "error": str(e), "error_type": type(e).__name__}


# =============================================================================
# Attribution Tools
# =============================================================================


@mcp.tool()
def attribute_journey(
    touchpoints: list[dict],
    model: str = "linear",
    decay_factor: float = 0.7,
) -> dict:
    """
    Distribute conversion credit across a touchpoint journey.

    Args:
        touchpoints: Touchpoints sorted ascending by timestamp. Each needs
            channel, type, session_or_user_id and timestamp (ISO-8601);
            campaign_id is optional.
        model: first_touch, last_touch, linear or time_decay
        decay_factor: Per-step decay for time_decay (default 0.7)

    Returns:
        Per-touchpoint weights and credit per campaign
    """
    from promolens.attribution import (
        AttributionEngine,
        Touchpoint,
        credit_by_campaign,
    )

    try:
        journey = [Touchpoint.from_dict(tp) for tp in touchpoints]
        engine = AttributionEngine(decay_factor=decay_factor)
        results = engine.attribute(journey, model)
    except AnalyticsError as e:
        return _error(e)

    return {
        "success": True,
        "model": results[0].model.value if results else model,
        "results": [r.to_dict() for r in results],
        "campaign_credit": credit_by_campaign(results),
    }


@mcp.tool()
def compare_attribution_models(
    subject_id: str,
    start_date: str,
    end_date: str,
    preferred_model: str | None = None,
) -> dict:
    """
    Attribute a stored journey under every model and pick a winner.

    Args:
        subject_id: User or session identifier
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        preferred_model: Model to report as the winner. Defaults to
            last_touch; "most_concentrated" selects the model giving the
            largest single-touchpoint credit.

    Returns:
        Per-model results, winning model and campaign credit
    """
    from promolens.analytics import DateRange
    from promolens.attribution import AttributionEngine, most_concentrated, prefer_model

    try:
        date_range = DateRange.parse(start_date, end_date)
        comparator = None
        if preferred_model == "most_concentrated":
            comparator = most_concentrated
        elif preferred_model:
            comparator = prefer_model(preferred_model)
        engine = AttributionEngine(touchpoint_store=_touchpoint_store())
        analysis = engine.analyze_journey(subject_id, date_range, comparator=comparator)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, **analysis.to_dict()}


# =============================================================================
# Redemption Tools
# =============================================================================


@mcp.tool()
def redemption_overview(
    start_date: str,
    end_date: str,
    campaign_id: str | None = None,
    channel: str | None = None,
    discount_type: str | None = None,
    country: str | None = None,
) -> dict:
    """
    Headline redemption metrics with a previous-period comparison.

    Args:
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        campaign_id: Restrict to one campaign
        channel: Restrict to one channel
        discount_type: percentage, fixed_amount, free_shipping, buy_x_get_y or free_trial
        country: ISO country code

    Returns:
        Overview metrics, comparison and daily trends
    """
    from promolens.analytics import RedemptionAggregator

    try:
        redemption_filter = _build_filter(
            start_date, end_date, campaign_id, channel, discount_type, country
        )
        overview = RedemptionAggregator(_redemption_store()).overview(redemption_filter)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, **overview.to_dict()}


@mcp.tool()
def redemption_trends(
    start_date: str,
    end_date: str,
    campaign_id: str | None = None,
) -> dict:
    """
    Daily redemption metrics, one point per calendar day (zero-filled).

    Args:
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        campaign_id: Restrict to one campaign

    Returns:
        List of daily trend points
    """
    from promolens.analytics import RedemptionAggregator

    try:
        redemption_filter = _build_filter(start_date, end_date, campaign_id)
        trends = RedemptionAggregator(_redemption_store()).trends(redemption_filter)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, "trends": [t.to_dict() for t in trends]}


# =============================================================================
# Cohort and Incremental Tools
# =============================================================================


@mcp.tool()
def cohort_analysis(
    start_date: str,
    end_date: str,
    granularity: str = "month",
    campaign_id: str | None = None,
) -> dict:
    """
    Acquisition cohorts with retention horizons and realised LTV.

    Retention horizons that have not fully elapsed are returned as null.

    Args:
        start_date: Acquisition window start (ISO-8601)
        end_date: Acquisition window end, also the retention snapshot time
        granularity: day, week or month
        campaign_id: Restrict to one campaign

    Returns:
        Cohort summaries ordered by period
    """
    from promolens.analytics import CohortAnalyzer

    try:
        redemption_filter = _build_filter(start_date, end_date, campaign_id)
        cohorts = CohortAnalyzer(_redemption_store()).cohorts(redemption_filter, granularity)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, "cohorts": [c.to_dict() for c in cohorts]}


@mcp.tool()
def incremental_revenue(
    start_date: str,
    end_date: str,
    campaign_id: str | None = None,
    channel: str | None = None,
) -> dict:
    """
    Incremental revenue and cannibalization risk.

    Existing-customer redemptions are treated as cannibalized and
    new-customer redemptions as incremental. This is a heuristic, not a
    holdout-based causal estimate.

    Args:
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        campaign_id: Restrict to one campaign
        channel: Restrict to one channel

    Returns:
        Baseline, with-discount, incremental and cannibalization metrics
    """
    from promolens.analytics import IncrementalRevenueAnalyzer

    try:
        redemption_filter = _build_filter(start_date, end_date, campaign_id, channel)
        analysis = IncrementalRevenueAnalyzer(_redemption_store()).analyze(redemption_filter)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, **analysis.to_dict()}


# =============================================================================
# Fraud Tools
# =============================================================================


@mcp.tool()
def fraud_patterns(
    start_date: str,
    end_date: str,
    limit: int = 20,
    campaign_id: str | None = None,
) -> dict:
    """
    Rank previously tagged abuse patterns for manual review.

    Args:
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        limit: Maximum patterns to return (default 20)
        campaign_id: Restrict to one campaign

    Returns:
        Patterns by descending occurrence with revenue impact and countries
    """
    from promolens.analytics import FraudRiskScorer

    try:
        if limit < 1:
            raise InvalidFilterError("limit must be at least 1")
        redemption_filter = _build_filter(start_date, end_date, campaign_id)
        patterns = FraudRiskScorer(_redemption_store(), pattern_limit=limit).detect_patterns(
            redemption_filter
        )
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, "patterns": [p.to_dict() for p in patterns]}


@mcp.tool()
def score_redemption_risk(
    redemption: dict,
    velocity_exceeded: bool = False,
    geo_restricted: bool = False,
    bot_detected: bool = False,
    recent_attempts: int = 0,
    ip_reputation_score: float = 0.0,
    ip_blocked: bool = False,
    attach: bool = False,
) -> dict:
    """
    Score one redemption's fraud risk from behavioural signals.

    Args:
        redemption: Redemption record (user_id, amounts, detected_patterns, ...)
        velocity_exceeded: User exceeded the redemption velocity limit
        geo_restricted: Redemption came from a restricted region
        bot_detected: Bot signature detected
        recent_attempts: Redemption attempts by the user in the last 24h
        ip_reputation_score: Risk points from IP reputation (0-100)
        ip_blocked: IP is on the block list
        attach: Also record the assessment on the stored redemption

    Returns:
        Risk score, tier, review flag and reasons
    """
    from promolens.analytics import FraudContext, FraudRiskScorer, Redemption

    context = FraudContext(
        velocity_exceeded=velocity_exceeded,
        geo_restricted=geo_restricted,
        bot_detected=bot_detected,
        recent_attempts=recent_attempts,
        ip_reputation_score=ip_reputation_score,
        ip_blocked=ip_blocked,
    )

    try:
        record = Redemption.from_dict(redemption)
        if attach:
            assessment = FraudRiskScorer(_redemption_store()).assess(record, context)
        else:
            assessment = FraudRiskScorer().score(record, context)
    except AnalyticsError as e:
        return _error(e)

    return {
        "success": True,
        "redemption_id": record.redemption_id,
        "attached": attach,
        **assessment.to_dict(),
    }


# =============================================================================
# Report Tools
# =============================================================================


@mcp.tool()
async def generate_performance_report(
    start_date: str,
    end_date: str,
    campaign_id: str | None = None,
    channel: str | None = None,
    discount_type: str | None = None,
    country: str | None = None,
    granularity: str = "month",
    timeout_seconds: float | None = None,
) -> dict:
    """
    Generate a full promotion performance report.

    Runs the overview, incremental, cohort and fraud analyses concurrently.
    Sections that fail are returned as null and listed under
    degraded_sections.

    Args:
        start_date: Window start (ISO-8601)
        end_date: Window end (ISO-8601)
        campaign_id: Restrict to one campaign (adds campaign labels)
        channel: Restrict to one channel
        discount_type: Restrict to one discount type
        country: ISO country code
        granularity: Cohort granularity (day, week, month)
        timeout_seconds: Abort the whole aggregation after this many seconds

    Returns:
        The report as a JSON-compatible dictionary
    """
    from promolens.analytics import AnalyticsConfig
    from promolens.reporting import ReportAggregator

    try:
        redemption_filter = _build_filter(
            start_date, end_date, campaign_id, channel, discount_type, country
        )
        aggregator = ReportAggregator(
            _redemption_store(),
            campaign_store=_campaign_store(),
            config=AnalyticsConfig.from_env(),
            granularity=granularity,
        )
        report = await aggregator.generate_async(redemption_filter, timeout=timeout_seconds)
    except AnalyticsError as e:
        return _error(e)

    return {"success": True, **report.to_dict()}


# =============================================================================
# Resources
# =============================================================================


@mcp.resource("attribution-models://list")
def list_attribution_models() -> str:
    """List supported attribution models."""
    from promolens.attribution import AttributionModel

    return "\n".join(f"- {m.value}" for m in AttributionModel)


# =============================================================================
# Prompts
# =============================================================================


@mcp.prompt()
def review_promotion(campaign_id: str, start_date: str, end_date: str) -> str:
    """Prompt for reviewing a promotion's performance."""
    return f"""Review the performance of promotion "{campaign_id}" from {start_date} to {end_date}.

Steps:
1. Generate a performance report with generate_performance_report
2. Check degraded_sections; mention any section that was unavailable
3. Compare incremental revenue against the discount cost
4. Review the top fraud patterns with fraud_patterns
5. Summarize the recommendations and add any follow-up you would suggest
"""


# =============================================================================
# Entry Point
# =============================================================================


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
