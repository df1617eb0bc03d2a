"""
Change Listener — reacts to out-of-band changes in the relational store.

Venue, zone and table changes rebuild the affected venue's availability
snapshot. A reservation switching to CONFIRMED (e.g. approved by staff)
notifies the customer on the address they last wrote from.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from mesabot.core import messages
from mesabot.core.availability import AvailabilityCache
from mesabot.core.history import AddressBook
from mesabot.core.schemas import ReservationStatus

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[str, dict | None, dict | None], Awaitable[None]]

DEFAULT_ZONE_LABEL = "Zona asignada"


class ChangeFeed(Protocol):
    def subscribe(self, entity_type: str, handler: ChangeHandler) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class ChangeListener:
    def __init__(
        self,
        feed: ChangeFeed,
        availability: AvailabilityCache,
        store,
        transport,
        address_book: AddressBook,
    ):
        self.feed = feed
        self.availability = availability
        self.store = store
        self.transport = transport
        self.address_book = address_book

    def attach(self) -> None:
        self.feed.subscribe("venue", self.on_venue_change)
        self.feed.subscribe("zone", self.on_layout_change)
        self.feed.subscribe("table", self.on_layout_change)
        self.feed.subscribe("reservation", self.on_reservation_change)

    async def on_venue_change(self, event_type: str, before: dict | None, after: dict | None) -> None:
        row = after or before or {}
        venue_id = row.get("id")
        if not venue_id:
            return
        try:
            if event_type == "DELETE":
                await self.availability.invalidate(str(venue_id))
            else:
                await self.availability.refresh(str(venue_id))
        except Exception:
            logger.exception("Failed to handle venue %s change for %s", event_type, venue_id)

    async def on_layout_change(self, event_type: str, before: dict | None, after: dict | None) -> None:
        row = after or before or {}
        venue_id = row.get("venue_id")
        if not venue_id:
            logger.debug("Layout %s without venue_id ignored", event_type)
            return
        try:
            await self.availability.refresh(str(venue_id))
        except Exception:
            logger.exception("Failed to refresh availability for venue %s", venue_id)

    async def on_reservation_change(self, event_type: str, before: dict | None, after: dict | None) -> None:
        if event_type != "UPDATE" or not after:
            return
        confirmed = ReservationStatus.CONFIRMED.value
        if after.get("status") != confirmed or (before or {}).get("status") == confirmed:
            return
        try:
            await self._notify_confirmed(after)
        except Exception:
            logger.exception("Failed to notify confirmation of reservation %s", after.get("id"))

    async def _notify_confirmed(self, row: dict) -> None:
        venue_id = str(row["venue_id"])
        customer = await self.store.get_customer(str(row["customer_id"]))
        if customer is None:
            logger.error("Customer %s not found for confirmed reservation %s", row.get("customer_id"), row.get("id"))
            return

        venue = await self.store.get_venue(venue_id)
        zone = await self.store.get_zone_name(
            str(row["zone_id"]) if row.get("zone_id") else None,
            str(row["table_id"]) if row.get("table_id") else None,
        )
        address = await self.address_book.get(venue_id, customer.phone) or customer.phone

        text = messages.reservation_confirmed_notice(
            code=row.get("display_code") or "",
            zone=zone or DEFAULT_ZONE_LABEL,
            venue_type=venue.venue_type if venue else "negocio",
        )
        sent = await self.transport.send(venue_id, address, text)
        if sent:
            logger.info("Confirmation for %s sent to %s", row.get("display_code"), address)
        else:
            logger.error("Confirmation for %s could not be delivered to %s", row.get("display_code"), address)
