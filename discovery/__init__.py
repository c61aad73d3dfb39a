"""Prompt discovery package: trending scores and personalized recommendations."""

from discovery.core.models import (
    Author,
    ContentItem,
    HistorySignal,
    ItemStats,
    Recommendation,
    RecommendationConfig,
    RecommendationPreferences,
    ScoreBreakdown,
    TrendingConfig,
    UserHistory,
)
from discovery.services.recommendations import (
    get_for_you_recommendations,
    get_recommendations_from_history,
    get_related_recommendations,
)
from discovery.services.trending import (
    compute_trending_score,
    get_trending_prompts,
    get_trending_prompts_with_scores,
    sort_by_trending,
)

__all__ = [
    "Author",
    "ContentItem",
    "HistorySignal",
    "ItemStats",
    "Recommendation",
    "RecommendationConfig",
    "RecommendationPreferences",
    "ScoreBreakdown",
    "TrendingConfig",
    "UserHistory",
    "compute_trending_score",
    "get_for_you_recommendations",
    "get_recommendations_from_history",
    "get_related_recommendations",
    "get_trending_prompts",
    "get_trending_prompts_with_scores",
    "sort_by_trending",
]
