"""Tests for promolens.analytics public API."""


def test_public_exports():
    """Every name in __all__ is importable from the package."""
    import promolens.analytics as analytics

    for name in analytics.__all__:
        assert hasattr(analytics, name), name


def test_import_analyzers():
    from promolens.analytics import (
        CohortAnalyzer,
        FraudRiskScorer,
        IncrementalRevenueAnalyzer,
        RedemptionAggregator,
    )

    assert hasattr(RedemptionAggregator, "summarize")
    assert hasattr(CohortAnalyzer, "cohorts")
    assert hasattr(IncrementalRevenueAnalyzer, "analyze")
    assert hasattr(FraudRiskScorer, "detect_patterns")


def test_error_hierarchy():
    from promolens.analytics import (
        AggregationTimeoutError,
        AnalyticsError,
        DataUnavailableError,
        InvalidFilterError,
        PartialAggregationError,
        UnorderedJourneyError,
    )

    assert issubclass(InvalidFilterError, ValueError)
    assert issubclass(UnorderedJourneyError, InvalidFilterError)
    assert issubclass(AggregationTimeoutError, TimeoutError)
    for error in (DataUnavailableError, PartialAggregationError, AggregationTimeoutError):
        assert issubclass(error, AnalyticsError)

    error = PartialAggregationError({"fraud": "boom", "cohorts": "down"})
    assert error.failed_sections == {"fraud": "boom", "cohorts": "down"}
    assert str(error) == "Report sections unavailable: cohorts, fraud"
