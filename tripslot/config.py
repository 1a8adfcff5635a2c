"""
config.py
---------
Central configuration for the TripSlot scheduling engine.
Every knob is read from environment variables (optionally via a .env file
next to the package root); defaults are safe for local development.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (if it exists). Won't override vars already
# set in the shell.
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── Slot template ─────────────────────────────────────────────────────────────
# Window per slot name, "HH:MM-HH:MM". An end earlier than the start spans
# midnight (night slot).
SLOT_WINDOWS: dict[str, str] = {
    "morning":   os.getenv("SLOT_MORNING",   "08:00-12:00"),
    "afternoon": os.getenv("SLOT_AFTERNOON", "13:00-17:00"),
    "evening":   os.getenv("SLOT_EVENING",   "17:00-20:30"),
    "night":     os.getenv("SLOT_NIGHT",     "21:00-00:00"),
}

# Meal break that follows a slot (rendered by the client as a gap marker)
SLOT_MEAL_GAPS: dict[str, str] = {
    "morning": "lunch",
    "evening": "dinner",
}

# Times before this belong to the previous trip day's night slot
DAY_ROLLOVER_TIME: str = os.getenv("DAY_ROLLOVER_TIME", "04:00")

MAX_TRIP_DAYS: int = int(os.getenv("MAX_TRIP_DAYS", "14"))

# ── Builder policy ────────────────────────────────────────────────────────────
# Candidate ordering, applied left to right.
#   priority → higher first
#   duration → shorter first
#   best_slot → candidates with a slot hint first
BUILDER_SORT_KEYS: list[str] = [
    k.strip() for k in os.getenv("BUILDER_SORT_KEYS", "priority,duration").split(",") if k.strip()
]
BUILDER_HONOUR_BEST_SLOT: bool = _flag("BUILDER_HONOUR_BEST_SLOT", "true")
MODEL_NAME: str = os.getenv("MODEL_NAME", "greedy-slot-packer-v1")

# Priority adjustments applied when a pool is prepared for a TripRequest
INTEREST_PRIORITY_BOOST: int = int(os.getenv("INTEREST_PRIORITY_BOOST", "2"))
MOOD_PRIORITY_BOOST:     int = int(os.getenv("MOOD_PRIORITY_BOOST", "1"))
CROWDED_PRIORITY_PENALTY: int = int(os.getenv("CROWDED_PRIORITY_PENALTY", "2"))

# ── Transit estimation ────────────────────────────────────────────────────────
TRANSIT_SPEED_KMH:       float = float(os.getenv("TRANSIT_SPEED_KMH", "20.0"))   # city auto / cab
TRANSIT_DEFAULT_MINUTES: int   = int(os.getenv("TRANSIT_DEFAULT_MINUTES", "15"))  # coords missing
TRANSIT_MAX_MINUTES:     int   = int(os.getenv("TRANSIT_MAX_MINUTES", "120"))

# ── Budget tiers ──────────────────────────────────────────────────────────────
# Entry fee ceiling implied by each budget tier (INR, per person)
BUDGET_FEE_CEILINGS: dict[str, float] = {
    "low":    float(os.getenv("BUDGET_CEILING_LOW",    "200")),
    "medium": float(os.getenv("BUDGET_CEILING_MEDIUM", "1000")),
    "high":   float(os.getenv("BUDGET_CEILING_HIGH",   "5000")),
}
# A fee "materially exceeds" the ceiling beyond this factor
BUDGET_FEE_TOLERANCE: float = float(os.getenv("BUDGET_FEE_TOLERANCE", "1.2"))

# Nightly hotel price band per budget tier (INR)
HOTEL_PRICE_BANDS: dict[str, tuple[float, float]] = {
    "low":    (0.0,    3000.0),
    "medium": (2500.0, 8000.0),
    "high":   (7000.0, 1_000_000.0),
}

# ── Dynamic replanning ────────────────────────────────────────────────────────
PLANNED_CHECKIN_TIME:  str = os.getenv("PLANNED_CHECKIN_TIME",  "13:00")
PLANNED_CHECKOUT_TIME: str = os.getenv("PLANNED_CHECKOUT_TIME", "11:00")
MIN_STOP_MINUTES:        int   = int(os.getenv("MIN_STOP_MINUTES", "30"))
MIN_COMPRESS_RATIO:      float = float(os.getenv("MIN_COMPRESS_RATIO", "0.5"))
REALLOCATE_MIN_PRIORITY: int   = int(os.getenv("REALLOCATE_MIN_PRIORITY", "7"))
MAX_EXTEND_RATIO:        float = float(os.getenv("MAX_EXTEND_RATIO", "1.5"))

# ── Hotel phases ──────────────────────────────────────────────────────────────
PHASE_SPLIT_KM:   float = float(os.getenv("PHASE_SPLIT_KM", "25.0"))
HOTELS_PER_PHASE: int   = int(os.getenv("HOTELS_PER_PHASE", "3"))

# ── Alternate suggestions ─────────────────────────────────────────────────────
MAX_ALTERNATES: int = int(os.getenv("MAX_ALTERNATES", "5"))

# ── Persistence ───────────────────────────────────────────────────────────────
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "in_memory")   # "in_memory" | "redis"

REDIS_HOST:     str = os.getenv("REDIS_HOST",     "localhost")
REDIS_PORT:     int = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB:       int = int(os.getenv("REDIS_DB",   "0"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
# redis:// or rediss:// URL; takes precedence over the host/port/db settings
REDIS_URL:        str = os.getenv("REDIS_URL", "")
REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "tripslot")
# 0 = no expiry
ITINERARY_TTL:  int = int(os.getenv("ITINERARY_TTL", "0"))

# ── Observability ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOGS_DIR:  str = os.getenv("LOGS_DIR", str(Path(__file__).resolve().parent.parent / "logs"))
STRUCTURED_LOG_ENABLED: bool = _flag("STRUCTURED_LOG_ENABLED", "true")
