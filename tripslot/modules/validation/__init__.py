"""
modules/validation
------------------
Placement verdicts for single places and schema guards for whole stop
sequences.

Usage:
    from tripslot.modules.validation import PlacementValidator, validate_stop_sequence
"""

from tripslot.modules.validation.itinerary_validator import ValidationResult, validate_stop_sequence
from tripslot.modules.validation.placement_validator import PlacementValidator

__all__ = ["PlacementValidator", "ValidationResult", "validate_stop_sequence"]
