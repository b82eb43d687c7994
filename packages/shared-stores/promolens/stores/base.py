"""Abstract record stores consumed by the analytics engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from promolens.analytics.filters import DateRange, RedemptionFilter
    from promolens.analytics.schema import FraudAssessment, Redemption
    from promolens.attribution.schema import Touchpoint


@dataclass(frozen=True)
class CampaignMetadata:
    """Read-only campaign details used to label reports."""

    campaign_id: str
    name: str
    budget: float | None = None
    objectives: tuple[str, ...] = ()
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "campaign_id": self.campaign_id,
            "name": self.name,
            "budget": self.budget,
            "objectives": list(self.objectives),
            "timeline": {
                "starts_at": self.starts_at.isoformat() if self.starts_at else None,
                "ends_at": self.ends_at.isoformat() if self.ends_at else None,
            },
        }


class TouchpointStore(ABC):
    """Read access to recorded touchpoints.

    Subclasses must implement:
    - query(): Return a subject's touchpoints, sorted ascending by timestamp
    """

    @abstractmethod
    def query(self, subject_id: str, date_range: DateRange) -> list[Touchpoint]:
        """Return touchpoints for a user or session within the range.

        Raises:
            DataUnavailableError: If the backing store cannot be read.
        """
        pass  # pragma: no cover


class RedemptionStore(ABC):
    """Read access to redemptions plus fraud-assessment attachment.

    Subclasses must implement:
    - query(): Return redemptions matching a filter
    - attach_fraud_assessment(): Record a fraud assessment on a redemption
    """

    @abstractmethod
    def query(self, redemption_filter: RedemptionFilter) -> list[Redemption]:
        """Return redemptions matching the filter.

        An empty list means no matching records, not a failure.

        Raises:
            DataUnavailableError: If the backing store cannot be read.
        """
        pass  # pragma: no cover

    @abstractmethod
    def attach_fraud_assessment(
        self,
        redemption_id: str,
        assessment: FraudAssessment,
    ) -> None:
        """Attach a fraud assessment to a stored redemption.

        Raises:
            DataUnavailableError: If the write fails.
        """
        pass  # pragma: no cover


class CampaignStore(ABC):
    """Read-only campaign metadata lookup."""

    @abstractmethod
    def get(self, campaign_id: str) -> CampaignMetadata | None:
        """Return campaign metadata, or None if unknown."""
        pass  # pragma: no cover
