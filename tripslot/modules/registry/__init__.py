"""modules/registry — candidate pools per destination."""

from tripslot.modules.registry.candidate_registry import CandidateRegistry, normalise_destination

__all__ = ["CandidateRegistry", "normalise_destination"]
