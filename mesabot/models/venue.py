from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mesabot.models.base import Base, TimestampMixin, UUIDMixin


class Venue(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "venues"

    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    venue_type: Mapped[str] = mapped_column(String(64), default="restaurante", nullable=False)
    auto_accept_reservations: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bot_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    settings: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    zones: Mapped[list["Zone"]] = relationship(back_populates="venue")


class Zone(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "zones"
    __table_args__ = (
        UniqueConstraint("venue_id", "name", name="uq_zones_venue_id_name"),
        Index("ix_zones_venue_id", "venue_id"),
    )

    venue_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("venues.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    venue: Mapped["Venue"] = relationship(back_populates="zones")
    tables: Mapped[list["VenueTable"]] = relationship(back_populates="zone")


class VenueTable(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tables"
    __table_args__ = (
        Index("ix_tables_venue_id", "venue_id"),
        Index("ix_tables_zone_id", "zone_id"),
    )

    venue_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("venues.id"),
        nullable=False,
    )
    zone_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("zones.id"),
        nullable=True,
    )
    table_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    zone: Mapped["Zone"] = relationship(back_populates="tables")
