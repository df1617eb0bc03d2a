from __future__ import annotations

import pytest

from mesabot.core.availability import AvailabilityCache
from mesabot.core.schemas import AvailabilitySnapshot, TableInfo, ZoneInfo
from tests.fakes import VENUE_ID, FakeKeyValueStore, FakeReservationStore, seed_venue


def _cache(store: FakeReservationStore, ttl: int = 3600) -> tuple[AvailabilityCache, FakeKeyValueStore]:
    kv = FakeKeyValueStore()
    return AvailabilityCache(kv, store, ttl_seconds=ttl), kv


@pytest.mark.asyncio
async def test_miss_loads_and_caches_snapshot():
    store = FakeReservationStore()
    seed_venue(store)
    cache, kv = _cache(store, ttl=60)

    snapshot = await cache.get(VENUE_ID)
    again = await cache.get(VENUE_ID)

    assert [z.name for z in snapshot.zones] == ["Patio", "Salon"]
    assert len(snapshot.tables) == 2
    assert again == snapshot
    assert store.list_calls == 1
    assert kv.ttls[f"venue:zones:{VENUE_ID}"] == 60


@pytest.mark.asyncio
async def test_store_failure_returns_none_and_caches_nothing():
    store = FakeReservationStore()
    seed_venue(store)
    store.fail_listing = True
    cache, kv = _cache(store)

    assert await cache.get(VENUE_ID) is None
    assert kv.data == {}


@pytest.mark.asyncio
async def test_incomplete_table_rows_are_skipped():
    store = FakeReservationStore()
    store.add_venue()
    store.add_zone(VENUE_ID, "z1", "Barra")
    store.add_table(VENUE_ID, "t1", "z1", 4)
    store.add_table(VENUE_ID, "t2", None, 4)
    store.add_table(VENUE_ID, "t3", "z1", None)
    cache, _ = _cache(store)

    snapshot = await cache.get(VENUE_ID)

    assert [t.id for t in snapshot.tables] == ["t1"]


@pytest.mark.asyncio
async def test_refresh_rebuilds_from_store():
    store = FakeReservationStore()
    seed_venue(store)
    cache, _ = _cache(store)
    await cache.get(VENUE_ID)
    store.add_zone(VENUE_ID, "zone-terraza", "Terraza", priority=20)

    snapshot = await cache.refresh(VENUE_ID)

    assert "Terraza" in [z.name for z in snapshot.zones]
    assert store.list_calls == 2


@pytest.mark.asyncio
async def test_invalidate_forces_reload():
    store = FakeReservationStore()
    seed_venue(store)
    cache, kv = _cache(store)
    await cache.get(VENUE_ID)

    await cache.invalidate(VENUE_ID)

    assert kv.data == {}
    await cache.get(VENUE_ID)
    assert store.list_calls == 2


def test_filter_by_party_size_orders_by_priority_then_name():
    snapshot = AvailabilitySnapshot(
        zones=[
            ZoneInfo(id="a", name="Terraza", priority=1),
            ZoneInfo(id="b", name="Barra", priority=5),
            ZoneInfo(id="c", name="Altillo", priority=5),
            ZoneInfo(id="d", name="VIP", priority=9),
        ],
        tables=[
            TableInfo(id="1", zone_id="a", capacity=6, number="1"),
            TableInfo(id="2", zone_id="b", capacity=4, number="2"),
            TableInfo(id="3", zone_id="c", capacity=8, number="3"),
            TableInfo(id="4", zone_id="d", capacity=10, number="4", occupied=True),
        ],
    )

    assert AvailabilityCache.filter_by_party_size(snapshot, 4) == ["Altillo", "Barra", "Terraza"]
    assert AvailabilityCache.filter_by_party_size(snapshot, 7) == ["Altillo"]
    assert AvailabilityCache.filter_by_party_size(snapshot, 11) == []


def test_filter_ignores_inactive_tables():
    snapshot = AvailabilitySnapshot(
        zones=[ZoneInfo(id="a", name="Patio")],
        tables=[TableInfo(id="1", zone_id="a", capacity=4, number="1", active=False)],
    )

    assert AvailabilityCache.filter_by_party_size(snapshot, 2) == []
