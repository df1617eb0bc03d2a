"""
Reservation Store — the authoritative relational data seen by the engine.

`SqlReservationStore` opens one session per call and returns detached
pydantic records, so callers never hold ORM objects across awaits.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mesabot.core import crud
from mesabot.core.schemas import (
    CustomerInfo,
    ReservationInfo,
    ReservationStatus,
    VenueInfo,
    ZoneInfo,
)
from mesabot.models import Customer, Reservation, VenueTable, Zone

logger = logging.getLogger(__name__)


class ReservationStore(Protocol):
    async def get_venue(self, venue_id: str) -> VenueInfo | None: ...

    async def list_zones(self, venue_id: str) -> list[ZoneInfo]: ...

    async def list_available_tables(self, venue_id: str) -> list[dict]: ...

    async def upsert_customer(self, venue_id: str, name: str, phone: str) -> CustomerInfo: ...

    async def insert_reservation(
        self,
        venue_id: str,
        customer_id: str,
        party_size: int,
        zone_name: str | None,
        display_code: str,
        status: ReservationStatus,
    ) -> ReservationInfo: ...

    async def update_reservation_status(self, reservation_id: str, status: ReservationStatus) -> bool: ...

    async def update_reservation(
        self,
        reservation_id: str,
        party_size: int | None = None,
        zone_name: str | None = None,
    ) -> ReservationInfo | None: ...

    async def find_active_today(self, venue_id: str, phone: str) -> ReservationInfo | None: ...

    async def display_code_in_use(self, venue_id: str, code: str) -> bool: ...

    async def get_customer(self, customer_id: str) -> CustomerInfo | None: ...

    async def get_zone_name(self, zone_id: str | None, table_id: str | None = None) -> str | None: ...


def start_of_today() -> datetime:
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


class SqlReservationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_venue(self, venue_id: str) -> VenueInfo | None:
        async with self.session_factory() as db:
            venue = await crud.get_venue(db, UUID(venue_id))
            if venue is None:
                return None
            return VenueInfo(
                id=str(venue.id),
                name=venue.name,
                venue_type=venue.venue_type,
                auto_accept_reservations=venue.auto_accept_reservations,
                bot_active=venue.bot_active,
            )

    async def list_zones(self, venue_id: str) -> list[ZoneInfo]:
        async with self.session_factory() as db:
            zones = await crud.list_zones(db, UUID(venue_id))
            return [ZoneInfo(id=str(z.id), name=z.name, priority=z.priority) for z in zones]

    async def list_available_tables(self, venue_id: str) -> list[dict]:
        async with self.session_factory() as db:
            tables = await crud.list_available_tables(db, UUID(venue_id))
            return [
                {
                    "id": str(t.id),
                    "zone_id": str(t.zone_id) if t.zone_id else None,
                    "capacity": t.capacity,
                    "number": t.table_number,
                    "active": t.is_active,
                    "occupied": t.is_occupied,
                }
                for t in tables
            ]

    async def upsert_customer(self, venue_id: str, name: str, phone: str) -> CustomerInfo:
        async with self.session_factory() as db:
            customer = await crud.upsert_customer(db, UUID(venue_id), name, phone)
            await db.commit()
            return CustomerInfo(id=str(customer.id), venue_id=venue_id, name=customer.name, phone=customer.phone)

    async def insert_reservation(
        self,
        venue_id: str,
        customer_id: str,
        party_size: int,
        zone_name: str | None,
        display_code: str,
        status: ReservationStatus,
    ) -> ReservationInfo:
        async with self.session_factory() as db:
            zone = await crud.get_zone_by_name(db, UUID(venue_id), zone_name) if zone_name else None
            table = await crud.pick_table(db, zone.id, party_size) if zone else None
            if zone is not None and table is None:
                logger.warning("No free table in zone %s for %s people", zone_name, party_size)

            reservation = await crud.create_reservation(
                db,
                venue_id=UUID(venue_id),
                customer_id=UUID(customer_id),
                party_size=party_size,
                display_code=display_code,
                status=status,
                zone=zone,
                table=table,
            )
            await db.commit()
            logger.info("Reservation %s created (%s) in venue %s", display_code, status.value, venue_id)
            return _to_info(reservation, zone_name=zone.name if zone else None)

    async def update_reservation_status(self, reservation_id: str, status: ReservationStatus) -> bool:
        async with self.session_factory() as db:
            reservation = await crud.get_reservation(db, UUID(reservation_id))
            if reservation is None:
                return False
            reservation.status = status.value
            now = datetime.now(timezone.utc)
            if status == ReservationStatus.CONFIRMED:
                reservation.confirmed_at = now
            elif status == ReservationStatus.SEATED:
                reservation.seated_at = now
            await db.commit()
            logger.info("Reservation %s -> %s", reservation_id, status.value)
            return True

    async def update_reservation(
        self,
        reservation_id: str,
        party_size: int | None = None,
        zone_name: str | None = None,
    ) -> ReservationInfo | None:
        async with self.session_factory() as db:
            reservation = await crud.get_reservation(db, UUID(reservation_id))
            if reservation is None:
                return None

            if party_size is not None:
                reservation.party_size = party_size
            if zone_name is not None:
                zone = await crud.get_zone_by_name(db, reservation.venue_id, zone_name)
                reservation.zone_id = zone.id if zone else None

            if reservation.zone_id is not None:
                table = await crud.pick_table(db, reservation.zone_id, reservation.party_size)
                reservation.table_id = table.id if table else None
                if table is None:
                    logger.warning("No free table for %s people in zone %s", reservation.party_size, reservation.zone_id)

            await db.flush()
            name = await self._zone_name(db, reservation.zone_id)
            await db.commit()
            return _to_info(reservation, zone_name=name)

    async def find_active_today(self, venue_id: str, phone: str) -> ReservationInfo | None:
        async with self.session_factory() as db:
            reservation = await crud.find_active_since(db, UUID(venue_id), phone, start_of_today())
            if reservation is None:
                return None
            customer = await db.get(Customer, reservation.customer_id)
            return _to_info(
                reservation,
                zone_name=await self._zone_name(db, reservation.zone_id),
                customer_name=customer.name if customer else None,
            )

    async def display_code_in_use(self, venue_id: str, code: str) -> bool:
        async with self.session_factory() as db:
            return await crud.display_code_in_use(db, UUID(venue_id), code)

    async def get_customer(self, customer_id: str) -> CustomerInfo | None:
        async with self.session_factory() as db:
            customer = await db.get(Customer, UUID(customer_id))
            if customer is None:
                return None
            return CustomerInfo(
                id=str(customer.id),
                venue_id=str(customer.venue_id),
                name=customer.name,
                phone=customer.phone,
            )

    async def get_zone_name(self, zone_id: str | None, table_id: str | None = None) -> str | None:
        async with self.session_factory() as db:
            if zone_id:
                return await self._zone_name(db, UUID(zone_id))
            if table_id:
                table = await db.get(VenueTable, UUID(table_id))
                if table is not None:
                    return await self._zone_name(db, table.zone_id)
            return None

    @staticmethod
    async def _zone_name(db: AsyncSession, zone_id: UUID | None) -> str | None:
        if zone_id is None:
            return None
        zone = await db.get(Zone, zone_id)
        return zone.name if zone else None


def _to_info(
    reservation: Reservation,
    zone_name: str | None = None,
    customer_name: str | None = None,
) -> ReservationInfo:
    return ReservationInfo(
        id=str(reservation.id),
        venue_id=str(reservation.venue_id),
        customer_id=str(reservation.customer_id),
        display_code=reservation.display_code,
        status=ReservationStatus(reservation.status),
        party_size=reservation.party_size,
        customer_name=customer_name,
        zone_name=zone_name,
        table_id=str(reservation.table_id) if reservation.table_id else None,
    )
