# config.py
# Simple centralized configuration values.
import os

DATABASE_FILE = os.getenv("DATABASE_FILE", "vivahmatch.db")

# Matching bands (inclusive). Groom is older and taller than the bride.
AGE_GAP_MIN = 3
AGE_GAP_MAX = 6
HEIGHT_GAP_MIN = 6  # inches
HEIGHT_GAP_MAX = 8

# How many recently returned profile ids to steer away from
MAX_RECENT_MATCHES = 3

# Compatibility score: BASE_SCORE + bonus + random(0..SCORE_JITTER_MAX), capped
BASE_SCORE = 85
PROFESSION_BONUS = 5
SCORE_JITTER_MAX = 9
MAX_SCORE = 100

GENDERS = ("Male", "Female")
