"""
Trending score engine.

Ranks community prompts by combining:
- Engagement (views, copies, saves), normalized against the batch maximum
- Quality (rating, blended toward a neutral prior when few ratings exist)
- Freshness (exponential decay with a half-life and a floor)

Recent, well-rated content can surface without being crowded out by old
high-volume content, and stale content decays gradually instead of vanishing.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Collection, List, Optional, Sequence, Tuple

from discovery.core.models import (
    ContentItem,
    ScoreBreakdown,
    ScoreComponents,
    ScoringContext,
    Timestamp,
    TrendingConfig,
)
from discovery.core.monitoring import get_logger, log_ranking_outcome, track_scoring_operation
from discovery.core.utils import age_in_weeks, clamp, compute_batch_maxima, normalize, resolve_now


logger = get_logger(__name__)

DEFAULT_TRENDING_CONFIG = TrendingConfig()


def compute_freshness_score(
    updated_at: Timestamp,
    now: datetime,
    config: TrendingConfig = DEFAULT_TRENDING_CONFIG,
) -> float:
    """Exponential time decay scaled into [min_freshness, max_freshness].

    A missing or unparseable timestamp counts as fully stale.
    """
    age_weeks = age_in_weeks(updated_at, now)
    if age_weeks is None:
        logger.warning("Unreadable updated_at, treating item as stale", updated_at=str(updated_at))
        return config.min_freshness

    decay_rate = math.log(2) / config.half_life_weeks
    decay_factor = math.exp(-age_weeks * decay_rate)

    freshness = config.min_freshness + (config.max_freshness - config.min_freshness) * decay_factor
    return clamp(freshness, config.min_freshness, config.max_freshness)


def compute_rating_score(
    rating: float,
    rating_count: float,
    max_rating_count: float,
    config: TrendingConfig = DEFAULT_TRENDING_CONFIG,
) -> float:
    """Confidence-weighted rating on [0, 1].

    Few ratings pull the score toward ``config.rating_prior``; a rating count
    equal to the batch maximum uses the raw rating alone.
    """
    normalized_rating = rating / 5.0
    confidence = min(1.0, math.sqrt(rating_count / max(1.0, max_rating_count)))
    return confidence * normalized_rating + (1.0 - confidence) * config.rating_prior


def compute_trending_score(
    item: ContentItem,
    context: ScoringContext,
    config: Optional[TrendingConfig] = None,
) -> ScoreBreakdown:
    """Score a single item against a batch normalization context."""
    config = config or DEFAULT_TRENDING_CONFIG
    stats = item.stats

    components = ScoreComponents(
        view_score=normalize(stats.views, context.max_views),
        copy_score=normalize(stats.copies, context.max_copies),
        save_score=normalize(stats.saves, context.max_saves),
        rating_score=compute_rating_score(stats.rating, stats.rating_count, context.max_rating_count, config),
        freshness_score=compute_freshness_score(item.updated_at, context.now, config),
    )

    total_score = (
        components.view_score * config.views_weight +
        components.copy_score * config.copies_weight +
        components.save_score * config.saves_weight +
        components.rating_score * config.rating_weight +
        components.freshness_score * config.freshness_weight
    )

    return ScoreBreakdown(
        prompt_id=item.id,
        total_score=total_score,
        components=components,
        weights=config.weights(),
    )


def _score_pool(
    items: Sequence[ContentItem],
    candidates: Sequence[ContentItem],
    now: Optional[datetime],
    config: Optional[TrendingConfig],
) -> List[Tuple[ContentItem, ScoreBreakdown]]:
    # Maxima come from the whole pool, not the filtered candidates
    context = compute_batch_maxima(items, resolve_now(now))
    return [(item, compute_trending_score(item, context, config)) for item in candidates]


def _rank(scored: List[Tuple[ContentItem, ScoreBreakdown]], limit: Optional[int]) -> List[Tuple[ContentItem, ScoreBreakdown]]:
    # sorted() is stable, so equal scores keep input order
    ranked = sorted(scored, key=lambda pair: pair[1].total_score, reverse=True)
    return ranked[:limit] if limit else ranked


@track_scoring_operation("trending")
def get_trending_prompts(
    items: Sequence[ContentItem],
    limit: Optional[int] = None,
    min_score: Optional[float] = None,
    category: Optional[str] = None,
    exclude_ids: Optional[Collection[str]] = None,
    now: Optional[datetime] = None,
    config: Optional[TrendingConfig] = None,
) -> List[ContentItem]:
    """Return items ordered by trending score, highest first."""
    excluded = set(exclude_ids or ())
    candidates = [
        item for item in items
        if item.id not in excluded and (not category or item.category == category)
    ]

    scored = _score_pool(items, candidates, now, config)
    if min_score:
        scored = [pair for pair in scored if pair[1].total_score >= min_score]

    ranked = _rank(scored, limit)
    log_ranking_outcome("trending", candidates=len(items), returned=len(ranked), category=category)
    return [item for item, _ in ranked]


@track_scoring_operation("trending_with_scores")
def get_trending_prompts_with_scores(
    items: Sequence[ContentItem],
    limit: Optional[int] = None,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
    config: Optional[TrendingConfig] = None,
) -> List[Tuple[ContentItem, ScoreBreakdown]]:
    """Trending order with the score breakdown kept for analytics."""
    candidates = [item for item in items if not category or item.category == category]

    ranked = _rank(_score_pool(items, candidates, now, config), limit)
    log_ranking_outcome("trending_with_scores", candidates=len(items), returned=len(ranked), category=category)
    return ranked


def sort_by_trending(items: Sequence[ContentItem], now: Optional[datetime] = None) -> List[ContentItem]:
    """Drop-in replacement for a plain popularity sort."""
    return get_trending_prompts(items, now=now)
