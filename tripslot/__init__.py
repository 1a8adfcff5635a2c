"""TripSlot — itinerary scheduling and constraint-validation engine."""

__version__ = "1.0.0"
