"""Tests for promolens.stores package exports."""

import pytest


def test_public_exports():
    import promolens.stores as stores

    for name in stores.__all__:
        assert hasattr(stores, name), name


def test_interfaces_are_abstract():
    from promolens.stores import CampaignStore, RedemptionStore, TouchpointStore

    for interface in (TouchpointStore, RedemptionStore, CampaignStore):
        with pytest.raises(TypeError):
            interface()


def test_memory_stores_implement_interfaces():
    from promolens.stores import (
        InMemoryCampaignStore,
        InMemoryRedemptionStore,
        InMemoryTouchpointStore,
        RedemptionStore,
    )

    assert isinstance(InMemoryRedemptionStore(), RedemptionStore)
    assert InMemoryTouchpointStore() is not None
    assert InMemoryCampaignStore().get("x") is None
