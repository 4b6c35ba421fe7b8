"""
Domain models for vocabulary review.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from .constants import DEFAULT_EASE_FACTOR, NEVER_REVIEWED

Difficulty = Literal["beginner", "intermediate", "advanced"]
DIFFICULTIES: tuple[str, ...] = ("beginner", "intermediate", "advanced")


@dataclass(frozen=True)
class VocabularyItem:
    """
    A single vocabulary entry.

    Attributes:
        id: Unique item id (doubles as frequency rank on import).
        word: Surface form as it appears in text.
        transliteration: Latin-script rendering, may be empty.
        translation: Gloss in the learner's language.
        difficulty: beginner, intermediate or advanced.
        tags: Free-form labels used for filtering.
    """

    id: int
    word: str
    transliteration: str
    translation: str
    difficulty: Difficulty = "beginner"
    tags: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)
    etymology: str | None = None
    audio_url: str | None = None


@dataclass(frozen=True)
class ReviewState:
    """
    Scheduling state for one vocabulary item.

    Attributes:
        word_id: The item this state belongs to.
        correct_count: Reviews answered correctly.
        incorrect_count: Reviews answered incorrectly.
        last_reviewed: When the item was last reviewed (NEVER_REVIEWED if never).
        next_review: When the item is due again.
        ease_factor: SM-2 multiplier, kept within [1.3, 3.0].
    """

    word_id: int
    correct_count: int = 0
    incorrect_count: int = 0
    last_reviewed: datetime = NEVER_REVIEWED
    next_review: datetime = NEVER_REVIEWED
    ease_factor: float = DEFAULT_EASE_FACTOR

    @property
    def total_reviews(self) -> int:
        return self.correct_count + self.incorrect_count

    @property
    def is_new(self) -> bool:
        return self.last_reviewed <= NEVER_REVIEWED

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordId": self.word_id,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
            "lastReviewed": self.last_reviewed.isoformat(),
            "nextReview": self.next_review.isoformat(),
            "easeFactor": self.ease_factor,
        }


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of a graded review: when to show the item next and with what ease."""

    next_review: datetime
    ease_factor: float
    interval: int  # days


@dataclass(frozen=True)
class DailyProgressEntry:
    """Review totals for one calendar day."""

    date: date
    review_count: int = 0
    correct_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "reviewCount": self.review_count,
            "correctCount": self.correct_count,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DailyProgressEntry":
        return cls(
            date=date.fromisoformat(str(raw["date"])[:10]),
            review_count=int(raw.get("reviewCount", 0)),
            correct_count=int(raw.get("correctCount", 0)),
        )


@dataclass(frozen=True)
class AggregateStats:
    """
    Process-wide learning statistics.

    learned_words_count is a coarse proxy: every three correct answers,
    on any item, count as one learned word (capped at total_words).
    """

    total_words: int = 0
    learned_words_count: int = 0
    reviews_today: int = 0
    reviews_total: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    streak_days: int = 0
    last_review_date: date | None = None

    @property
    def accuracy_percentage(self) -> int:
        answered = self.correct_answers + self.incorrect_answers
        if answered == 0:
            return 0
        return int(self.correct_answers * 100 / answered + 0.5)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWords": self.total_words,
            "learnedWordsCount": self.learned_words_count,
            "reviewsToday": self.reviews_today,
            "reviewsTotal": self.reviews_total,
            "correctAnswers": self.correct_answers,
            "incorrectAnswers": self.incorrect_answers,
            "streak": self.streak_days,
            "lastReviewDate": (
                self.last_review_date.isoformat() if self.last_review_date else None
            ),
            "accuracy": self.accuracy_percentage,
        }
