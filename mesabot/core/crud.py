from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mesabot.core.schemas import ACTIVE_STATUSES, ReservationStatus
from mesabot.models import Customer, Reservation, Venue, VenueTable, Zone

_ACTIVE = [status.value for status in ACTIVE_STATUSES]


async def get_venue(db: AsyncSession, venue_id: UUID) -> Venue | None:
    return await db.get(Venue, venue_id)


async def list_zones(db: AsyncSession, venue_id: UUID) -> list[Zone]:
    result = await db.execute(select(Zone).where(Zone.venue_id == venue_id).order_by(Zone.name))
    return list(result.scalars().all())


async def get_zone_by_name(db: AsyncSession, venue_id: UUID, name: str) -> Zone | None:
    result = await db.execute(select(Zone).where(Zone.venue_id == venue_id, Zone.name == name))
    return result.scalar_one_or_none()


async def list_available_tables(db: AsyncSession, venue_id: UUID) -> list[VenueTable]:
    result = await db.execute(
        select(VenueTable).where(
            VenueTable.venue_id == venue_id,
            VenueTable.is_active == True,  # noqa: E712
            VenueTable.is_occupied == False,  # noqa: E712
        )
    )
    return list(result.scalars().all())


async def pick_table(db: AsyncSession, zone_id: UUID, party_size: int) -> VenueTable | None:
    """Smallest active, unoccupied table of the zone that seats `party_size`."""
    result = await db.execute(
        select(VenueTable)
        .where(
            VenueTable.zone_id == zone_id,
            VenueTable.is_active == True,  # noqa: E712
            VenueTable.is_occupied == False,  # noqa: E712
            VenueTable.capacity >= party_size,
        )
        .order_by(VenueTable.capacity, VenueTable.table_number)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_customer_by_phone(db: AsyncSession, venue_id: UUID, phone: str) -> Customer | None:
    result = await db.execute(select(Customer).where(Customer.venue_id == venue_id, Customer.phone == phone))
    return result.scalar_one_or_none()


async def upsert_customer(db: AsyncSession, venue_id: UUID, name: str, phone: str) -> Customer:
    customer = await get_customer_by_phone(db, venue_id, phone)
    now = datetime.now(timezone.utc)
    if customer is None:
        customer = Customer(venue_id=venue_id, name=name, phone=phone, last_seen_at=now)
        db.add(customer)
    else:
        customer.name = name
        customer.last_seen_at = now
    await db.flush()
    return customer


async def create_reservation(
    db: AsyncSession,
    venue_id: UUID,
    customer_id: UUID,
    party_size: int,
    display_code: str,
    status: ReservationStatus,
    zone: Zone | None = None,
    table: VenueTable | None = None,
) -> Reservation:
    reservation = Reservation(
        venue_id=venue_id,
        customer_id=customer_id,
        party_size=party_size,
        display_code=display_code,
        status=status.value,
        zone_id=zone.id if zone else None,
        table_id=table.id if table else None,
        confirmed_at=datetime.now(timezone.utc) if status == ReservationStatus.CONFIRMED else None,
    )
    db.add(reservation)
    await db.flush()
    return reservation


async def get_reservation(db: AsyncSession, reservation_id: UUID) -> Reservation | None:
    return await db.get(Reservation, reservation_id)


async def find_active_since(
    db: AsyncSession,
    venue_id: UUID,
    phone: str,
    since: datetime,
) -> Reservation | None:
    """Latest PENDING/CONFIRMED reservation of the customer created after `since`."""
    result = await db.execute(
        select(Reservation)
        .join(Customer, Reservation.customer_id == Customer.id)
        .where(
            Reservation.venue_id == venue_id,
            Customer.phone == phone,
            Reservation.status.in_(_ACTIVE),
            Reservation.created_at >= since,
        )
        .order_by(Reservation.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def display_code_in_use(db: AsyncSession, venue_id: UUID, code: str) -> bool:
    result = await db.execute(
        select(Reservation.id)
        .where(
            Reservation.venue_id == venue_id,
            Reservation.display_code == code,
            Reservation.status.in_(_ACTIVE),
        )
        .limit(1)
    )
    return result.first() is not None
