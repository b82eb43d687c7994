"""Custom exceptions for promotional analytics."""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base exception for analytics errors."""

    pass


class InvalidFilterError(AnalyticsError, ValueError):
    """Raised when a filter, date range or model name is malformed."""

    pass


class UnorderedJourneyError(InvalidFilterError):
    """Raised when touchpoints are not sorted ascending by timestamp."""

    pass


class DataUnavailableError(AnalyticsError):
    """Raised when the underlying record store fails or times out."""

    pass


class PartialAggregationError(AnalyticsError):
    """Raised when some report sections failed while others succeeded.

    Attributes:
        failed_sections: Mapping of section name to error message.
    """

    def __init__(self, failed_sections: dict[str, str]):
        self.failed_sections = dict(failed_sections)
        names = ", ".join(sorted(self.failed_sections))
        super().__init__(f"Report sections unavailable: {names}")


class AggregationTimeoutError(AnalyticsError, TimeoutError):
    """Raised when report aggregation exceeds the caller-supplied timeout."""

    pass
