"""
PromoLens Attribution - distribute conversion credit across touchpoints.

Provides:
- Touchpoint schema for recorded marketing interactions
- First-touch, last-touch, linear and time-decay attribution models
- Multi-model comparison with a pluggable winning-model comparator

Every model yields weights that sum to 1.0 for a non-empty journey and an
empty result for an empty journey.

Usage:
    from promolens.attribution import (
        AttributionEngine,
        AttributionModel,
        Touchpoint,
        attribute,
    )

    # Weights for an ordered journey
    results = attribute(journey, AttributionModel.TIME_DECAY)

    # All models at once, winner chosen by comparator
    engine = AttributionEngine(touchpoint_store=store)
    analysis = engine.analyze_journey("USER-001", window)
"""

from promolens.attribution.engine import (
    AttributionEngine,
    JourneyAttribution,
    attribute,
    attribute_all,
    credit_by_campaign,
    most_concentrated,
    prefer_model,
)
from promolens.attribution.schema import (
    AttributionModel,
    AttributionResult,
    Touchpoint,
    TouchpointType,
)

__all__ = [
    # Schema
    "Touchpoint",
    "TouchpointType",
    "AttributionModel",
    "AttributionResult",
    # Engine
    "AttributionEngine",
    "JourneyAttribution",
    "attribute",
    "attribute_all",
    "credit_by_campaign",
    # Comparators
    "prefer_model",
    "most_concentrated",
]
