"""
modules/reoptimization
----------------------
Changes to an already-built itinerary: ranked alternates for one stop and
the hotel check-in / check-out replanner.
"""

from tripslot.modules.reoptimization.alternative_generator import AlternativeGenerator
from tripslot.modules.reoptimization.replanner import DynamicReplanner, ReplanResult

__all__ = ["AlternativeGenerator", "DynamicReplanner", "ReplanResult"]
