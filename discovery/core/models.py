"""
Canonical data models for the discovery engine.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union


Timestamp = Union[datetime, str, None]

SIGNAL_SAVE = "save"
SIGNAL_RUN = "run"
SIGNAL_VIEW = "view"
SIGNAL_KINDS = (SIGNAL_SAVE, SIGNAL_RUN, SIGNAL_VIEW)


@dataclass(frozen=True)
class Author:
    id: str
    display_name: str = ""
    username: str = ""

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Author id cannot be empty")

    @property
    def label(self) -> str:
        return self.display_name or self.username or self.id


@dataclass(frozen=True)
class ItemStats:
    views: int = 0
    copies: int = 0
    saves: int = 0
    rating: float = 0.0
    rating_count: int = 0

    def __post_init__(self):
        counts = [self.views, self.copies, self.saves, self.rating_count]
        for count in counts:
            if not isinstance(count, (int, float)) or isinstance(count, bool):
                raise ValueError("All counts must be numeric values")
            if not math.isfinite(count):
                raise ValueError("Counts must be finite numbers")
            if count < 0:
                raise ValueError("Counts cannot be negative")
        if not isinstance(self.rating, (int, float)) or isinstance(self.rating, bool):
            raise ValueError("Rating must be a numeric value")
        if not math.isfinite(self.rating):
            raise ValueError("Rating must be a finite number")
        if not 0.0 <= self.rating <= 5.0:
            raise ValueError("Rating must be between 0.0 and 5.0")


@dataclass(frozen=True)
class ContentItem:
    id: str
    category: str
    author: Author
    stats: ItemStats = field(default_factory=ItemStats)
    tags: Tuple[str, ...] = ()
    updated_at: Timestamp = None
    title: str = ""
    created_at: Timestamp = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Item id cannot be empty")
        if not isinstance(self.category, str):
            raise ValueError("Item category must be a string")
        # Accept any sequence of tags but store an immutable copy
        object.__setattr__(self, "tags", tuple(self.tags or ()))


@dataclass(frozen=True)
class ScoringContext:
    """Batch maxima used to normalize absolute counts, plus the scoring clock."""
    max_views: float
    max_copies: float
    max_saves: float
    max_rating_count: float
    now: datetime


@dataclass(frozen=True)
class ScoreComponents:
    view_score: float
    copy_score: float
    save_score: float
    rating_score: float
    freshness_score: float


@dataclass(frozen=True)
class ScoreBreakdown:
    prompt_id: str
    total_score: float
    components: ScoreComponents
    weights: Dict[str, float]


@dataclass
class Recommendation:
    item: ContentItem
    score: float
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class HistorySignal:
    """One weighted piece of a user's affinity history.

    ``kind`` names where the signal came from (see ``SIGNAL_KINDS``) and picks
    the wording of recommendation reasons. ``occurred_at`` lets old activity
    decay; signals without a readable timestamp keep their full weight.
    """
    item: ContentItem
    weight: float = 1.0
    kind: Optional[str] = None
    occurred_at: Timestamp = None

    def __post_init__(self):
        if not isinstance(self.weight, (int, float)) or isinstance(self.weight, bool):
            raise ValueError("Signal weight must be a numeric value")
        if self.weight < 0:
            raise ValueError("Signal weight cannot be negative")
        if self.kind is not None and self.kind not in SIGNAL_KINDS:
            raise ValueError(f"Unknown signal kind: {self.kind}")


@dataclass(frozen=True)
class RecommendationPreferences:
    tags: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    exclude_tags: Tuple[str, ...] = ()
    exclude_categories: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ("tags", "categories", "exclude_tags", "exclude_categories"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))

    @property
    def has_boosts(self) -> bool:
        return bool(self.tags) or bool(self.categories)


@dataclass(frozen=True)
class UserHistory:
    viewed: Sequence[Union[ContentItem, HistorySignal]] = ()
    saved: Sequence[Union[ContentItem, HistorySignal]] = ()
    runs: Sequence[Union[ContentItem, HistorySignal]] = ()
    preferences: Optional[RecommendationPreferences] = None


def _validate_weights(weights: Dict[str, float]) -> None:
    for name, weight in weights.items():
        if not isinstance(weight, (int, float)):
            raise ValueError("All weights must be numeric values")
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"{name} must be between 0.0 and 1.0")
    total_weight = sum(weights.values())
    if not 0.99 <= total_weight <= 1.01:
        raise ValueError(f"Scoring weights must sum to 1.0, got {total_weight}")


@dataclass
class TrendingConfig:
    views_weight: float = 0.25
    copies_weight: float = 0.30
    saves_weight: float = 0.15
    rating_weight: float = 0.20
    freshness_weight: float = 0.10
    # Freshness halves every half_life_weeks and never drops below min_freshness
    half_life_weeks: float = 4.0
    min_freshness: float = 0.1
    max_freshness: float = 1.0
    # Prior for items with few ratings: 3 of 5 stars
    rating_prior: float = 0.6

    def __post_init__(self):
        _validate_weights(self.weights())

        if not isinstance(self.half_life_weeks, (int, float)) or self.half_life_weeks <= 0:
            raise ValueError("half_life_weeks must be a positive number")
        if not 0.0 <= self.min_freshness <= self.max_freshness <= 1.0:
            raise ValueError("Freshness bounds must satisfy 0 <= min_freshness <= max_freshness <= 1")
        if not 0.0 <= self.rating_prior <= 1.0:
            raise ValueError("rating_prior must be between 0.0 and 1.0")

    def weights(self) -> Dict[str, float]:
        return {
            "views": self.views_weight,
            "copies": self.copies_weight,
            "saves": self.saves_weight,
            "rating": self.rating_weight,
            "freshness": self.freshness_weight,
        }


@dataclass
class RecommendationConfig:
    tag_weight: float = 0.6
    category_weight: float = 0.2
    author_weight: float = 0.1
    popularity_weight: float = 0.1
    max_recommendations: int = 10
    # Fixed floor for history-based results, unrelated to caller min_score
    history_min_score: float = 0.1
    cold_start_copies_divisor: float = 1000.0
    saved_signal_weight: float = 2.0
    run_signal_weight: float = 1.5
    viewed_signal_weight: float = 1.0
    preference_tag_boost: float = 0.9
    preference_category_boost: float = 0.6
    # Activity loses half its weight every recency_half_life_days
    recency_half_life_days: float = 21.0

    def __post_init__(self):
        _validate_weights({
            "tag_weight": self.tag_weight,
            "category_weight": self.category_weight,
            "author_weight": self.author_weight,
            "popularity_weight": self.popularity_weight,
        })

        if not isinstance(self.max_recommendations, int) or self.max_recommendations < 1:
            raise ValueError("max_recommendations must be a positive integer")
        if self.cold_start_copies_divisor <= 0:
            raise ValueError("cold_start_copies_divisor must be a positive number")
        if not isinstance(self.recency_half_life_days, (int, float)) or self.recency_half_life_days <= 0:
            raise ValueError("recency_half_life_days must be a positive number")
        signal_weights = [
            self.saved_signal_weight,
            self.run_signal_weight,
            self.viewed_signal_weight,
            self.preference_tag_boost,
            self.preference_category_boost,
        ]
        for weight in signal_weights:
            if not isinstance(weight, (int, float)) or weight < 0:
                raise ValueError("Signal weights and boosts must be non-negative numbers")
