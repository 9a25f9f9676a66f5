"""Centralized constants for the LifeDeck engine.

All magic numbers and policy defaults live here so every layer
imports from a single source of truth.
"""

from datetime import timedelta

# ---------- Domain scores ----------
SCORE_MIN = 0.0
SCORE_MAX = 100.0
DOMAIN_SCORE_MULTIPLIER = 2.0  # score gain = difficulty * multiplier

# ---------- Score bands ----------
LOW_BAND_CEILING = 30.0  # low: [0, 30)
HIGH_BAND_FLOOR = 60.0  # high: [60, 100]

# Jitter ranges applied when a template is materialized into a card.
BAND_DIFFICULTY_RANGE = {
    "low": (1.0, 1.5),
    "mid": (1.5, 2.2),
    "high": (2.0, 3.0),
}
BAND_POINTS_RANGE = {
    "low": (5, 8),
    "mid": (8, 15),
    "high": (15, 25),
}

# ---------- Completion scoring ----------
BASE_COMPLETION_POINTS = 10
DIFFICULTY_POINTS_MULTIPLIER = 2
PREMIUM_CARD_BONUS = 5
MORNING_BONUS = 3
MORNING_START_HOUR = 6  # inclusive
MORNING_END_HOUR = 10  # exclusive

# ---------- Subscription tiers ----------
FREE_MAX_DAILY_CARDS = 5
PREMIUM_MAX_DAILY_CARDS = 50  # "unlimited", capped to bound generation cost
FREE_TEMPLATES_PER_DOMAIN = 2
UNLIMITED_TEMPLATES_PER_DOMAIN = 3

# ---------- Gestures ----------
SWIPE_THRESHOLD = 80.0

# ---------- Snooze ----------
DEFAULT_SNOOZE = timedelta(hours=2)

# ---------- AI personalization ----------
AI_REQUEST_TIMEOUT = 3.0  # seconds, per deck generation

# ---------- Persistence ----------
SNAPSHOT_FILENAME = "snapshot.json"
SAVE_RETRY_ATTEMPTS = 3
SAVE_RETRY_DELAY = 0.1  # seconds

# ---------- Analytics ----------
EVENT_RETENTION = timedelta(days=90)
