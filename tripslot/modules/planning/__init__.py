"""Itinerary construction: per-day packing, greedy builder, hotel phases."""
