"""Centralized constants for the hafiz engine.

All magic numbers and storage keys live here so every layer
imports from a single source of truth.
"""

from datetime import datetime, timezone

# ---------- Ease factor ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0

# Binary (correct/incorrect) path
OUTCOME_EASE_BONUS = 0.1
OUTCOME_EASE_PENALTY = 0.2
OUTCOME_RETRY_HOURS = 1

# ---------- Quality ----------
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # quality below this is a failed recall
GOOD_QUALITY = 4

# ---------- Intervals (days) ----------
FIRST_INTERVAL_GOOD = 3
FIRST_INTERVAL_PASS = 2
FIRST_INTERVAL_FAIL = 1
SECOND_INTERVAL = 6

# "Never reviewed" marker for ReviewState.last_reviewed
NEVER_REVIEWED = datetime(1970, 1, 1, tzinfo=timezone.utc)

# ---------- Review queue ----------
DEFAULT_DUE_LIMIT = 10

# ---------- Progress ----------
HISTORY_RETENTION_DAYS = 30
DEFAULT_HISTORY_DAYS = 7
CORRECT_ANSWERS_PER_LEARNED_WORD = 3

# ---------- Vocabulary import ----------
BEGINNER_MAX_RANK = 300
INTERMEDIATE_MAX_RANK = 700
DEFAULT_FIND_LIMIT = 20

# ---------- Settings keys ----------
KEY_LEARNED_WORDS = "learnedWordsCount"
KEY_REVIEWS_TODAY = "reviewsToday"
KEY_REVIEWS_TOTAL = "reviewsTotal"
KEY_CORRECT_ANSWERS = "correctAnswers"
KEY_INCORRECT_ANSWERS = "incorrectAnswers"
KEY_STREAK = "streak"
KEY_LAST_REVIEW_DATE = "lastReviewDate"
KEY_PROGRESS_HISTORY = "progressHistory"

PROGRESS_KEYS = [
    KEY_LEARNED_WORDS,
    KEY_REVIEWS_TODAY,
    KEY_REVIEWS_TOTAL,
    KEY_CORRECT_ANSWERS,
    KEY_INCORRECT_ANSWERS,
    KEY_STREAK,
    KEY_LAST_REVIEW_DATE,
    KEY_PROGRESS_HISTORY,
]
