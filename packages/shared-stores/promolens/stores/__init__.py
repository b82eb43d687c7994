"""
PromoLens Stores - read access to historical marketing records.

Provides:
- Abstract TouchpointStore, RedemptionStore and CampaignStore interfaces
- In-memory implementations (one instance per run, no shared state)
- BigQuery-backed implementations with parameterized queries

Usage:
    from promolens.stores import BigQueryRedemptionStore, InMemoryRedemptionStore

    store = InMemoryRedemptionStore(redemptions)
    records = store.query(RedemptionFilter(date_range=window))
"""

from promolens.stores.base import (
    CampaignMetadata,
    CampaignStore,
    RedemptionStore,
    TouchpointStore,
)
from promolens.stores.bigquery import (
    BigQueryCampaignStore,
    BigQueryRedemptionStore,
    BigQueryStoreConfig,
    BigQueryTableClient,
    BigQueryTouchpointStore,
)
from promolens.stores.memory import (
    InMemoryCampaignStore,
    InMemoryRedemptionStore,
    InMemoryTouchpointStore,
)

__all__ = [
    # Interfaces
    "TouchpointStore",
    "RedemptionStore",
    "CampaignStore",
    "CampaignMetadata",
    # In-memory
    "InMemoryTouchpointStore",
    "InMemoryRedemptionStore",
    "InMemoryCampaignStore",
    # BigQuery
    "BigQueryStoreConfig",
    "BigQueryTableClient",
    "BigQueryRedemptionStore",
    "BigQueryTouchpointStore",
    "BigQueryCampaignStore",
]
