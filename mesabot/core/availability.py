"""
Availability Cache — zones x tables per venue, derived from the store.

The snapshot is always rebuilt wholesale (miss, invalidation or TTL expiry)
and never patched in place. Change notifications call invalidate/refresh.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from mesabot.core.keystore import KeyValueStore
from mesabot.core.schemas import AvailabilitySnapshot, TableInfo

logger = logging.getLogger(__name__)

KEY_PREFIX = "venue:zones:"
_REQUIRED_TABLE_FIELDS = ("zone_id", "capacity", "number")


class AvailabilityCache:
    def __init__(self, kv: KeyValueStore, store, ttl_seconds: int = 3600):
        self.kv = kv
        self.store = store
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(venue_id: str) -> str:
        return f"{KEY_PREFIX}{venue_id}"

    async def get(self, venue_id: str) -> AvailabilitySnapshot | None:
        """Cached snapshot, loading it from the store on a miss. None if the store fails."""
        raw = await self.kv.get(self._key(venue_id))
        if raw is not None:
            try:
                return AvailabilitySnapshot.model_validate_json(raw)
            except ValidationError:
                logger.warning("Unreadable availability snapshot for venue %s, rebuilding", venue_id)
        return await self._load(venue_id)

    async def invalidate(self, venue_id: str) -> None:
        await self.kv.delete(self._key(venue_id))
        logger.info("Availability invalidated for venue %s", venue_id)

    async def refresh(self, venue_id: str) -> AvailabilitySnapshot | None:
        await self.invalidate(venue_id)
        return await self._load(venue_id)

    async def _load(self, venue_id: str) -> AvailabilitySnapshot | None:
        try:
            zones = await self.store.list_zones(venue_id)
            rows = await self.store.list_available_tables(venue_id)
        except Exception:
            logger.exception("Failed to load availability for venue %s", venue_id)
            return None

        snapshot = AvailabilitySnapshot(zones=zones, tables=_build_tables(rows))
        await self.kv.set(self._key(venue_id), snapshot.model_dump_json(), self.ttl_seconds)
        logger.info(
            "Availability cached for venue %s: %s zones, %s tables",
            venue_id,
            len(snapshot.zones),
            len(snapshot.tables),
        )
        return snapshot

    @staticmethod
    def filter_by_party_size(snapshot: AvailabilitySnapshot, party_size: int) -> list[str]:
        """
        Zone names that can seat `party_size`, highest priority first, then by name.

        A zone qualifies iff it has at least one active, unoccupied table with
        capacity >= party_size.
        """
        seating = {
            table.zone_id
            for table in snapshot.tables
            if table.active and not table.occupied and table.capacity >= party_size
        }
        zones = [zone for zone in snapshot.zones if zone.id in seating]
        zones.sort(key=lambda z: (-z.priority, z.name))
        return [zone.name for zone in zones]


def _build_tables(rows: list[dict]) -> list[TableInfo]:
    tables: list[TableInfo] = []
    for row in rows:
        if any(row.get(field) is None for field in _REQUIRED_TABLE_FIELDS):
            logger.debug("Skipping incomplete table row %s", row.get("id"))
            continue
        tables.append(
            TableInfo(
                id=str(row["id"]),
                zone_id=str(row["zone_id"]),
                capacity=int(row["capacity"]),
                number=str(row["number"]),
                active=bool(row.get("active", True)),
                occupied=bool(row.get("occupied", False)),
            )
        )
    return tables
