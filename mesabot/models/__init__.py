from mesabot.models.reservation import Customer, Reservation
from mesabot.models.venue import Venue, VenueTable, Zone

__all__ = ["Customer", "Reservation", "Venue", "VenueTable", "Zone"]
