"""Centralized constants for kivocab.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
DEFAULT_INTERVAL = 1
SECOND_INTERVAL = 6
MAX_INTERVAL_DAYS = 36500
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5
EASE_DECIMALS = 2

# ---------- Learning Stats ----------
LEARNING_MAX_REPETITIONS = 2
MASTERED_MIN_REPETITIONS = 5
MASTERED_MIN_EASE = 2.5
OVERDUE_THRESHOLD_DAYS = 1.0

# ---------- Sessions ----------
DEFAULT_SESSION_SIZE = 20

# ---------- Storage ----------
ITEM_ID_PREFIX = "custom_"
STORE_FORMAT_VERSION = "1.0"

# ---------- Display ----------
QUALITY_LABELS: dict[int, tuple[str, str]] = {
    0: ("Blackout", "No idea at all"),
    1: ("Wrong", "Wrong, but the answer felt familiar"),
    2: ("Hard wrong", "Wrong, but easy to remember once shown"),
    3: ("Hard right", "Right with serious effort"),
    4: ("Right", "Right after some hesitation"),
    5: ("Perfect", "Instant recall"),
}
