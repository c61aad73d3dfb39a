"""
Personalized recommendation engine.

Ranks the catalog against either a single source prompt (related items) or a
user's weighted history (saved, run and viewed prompts plus optional tag and
category preferences). Every recommendation carries human-readable reasons
so the caller can explain the match.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Union

from discovery.core.models import (
    ContentItem,
    HistorySignal,
    Recommendation,
    RecommendationConfig,
    RecommendationPreferences,
    SIGNAL_RUN,
    SIGNAL_SAVE,
    SIGNAL_VIEW,
    Timestamp,
    UserHistory,
)
from discovery.core.monitoring import get_logger, log_ranking_outcome, track_scoring_operation
from discovery.core.utils import age_in_days, normalize_tag, resolve_now, tag_set, tag_similarity


logger = get_logger(__name__)

DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()

HistoryEntry = Union[ContentItem, HistorySignal]

PREFERENCE = "preference"


def popularity_score(item: ContentItem, max_views: float, max_copies: float) -> float:
    """Unweighted mean of normalized views, normalized copies and rating/5."""
    view_score = item.stats.views / max(1.0, max_views)
    copy_score = item.stats.copies / max(1.0, max_copies)
    rating_score = item.stats.rating / 5.0
    return (view_score + copy_score + rating_score) / 3.0


def _pool_maxima(items: Sequence[ContentItem]):
    max_views = max([1.0, *(i.stats.views for i in items)])
    max_copies = max([1.0, *(i.stats.copies for i in items)])
    return max_views, max_copies


def _rank(recommendations: List[Recommendation], limit: int) -> List[Recommendation]:
    recommendations.sort(key=lambda rec: rec.score, reverse=True)
    return recommendations[:limit]


def _format_tags(tags: Iterable[str]) -> str:
    return ", ".join(list(tags)[:3])


@track_scoring_operation("related")
def get_related_recommendations(
    source: ContentItem,
    items: Sequence[ContentItem],
    limit: Optional[int] = None,
    exclude_ids: Optional[Collection[str]] = None,
    min_score: Optional[float] = None,
    config: Optional[RecommendationConfig] = None,
) -> List[Recommendation]:
    """Items similar to ``source``, ordered by score. ``source`` is never returned."""
    config = config or DEFAULT_RECOMMENDATION_CONFIG
    limit = limit or config.max_recommendations
    threshold = min_score or 0.0
    excluded = {source.id, *(exclude_ids or ())}

    max_views, max_copies = _pool_maxima(items)
    recommendations: List[Recommendation] = []

    for candidate in items:
        if candidate.id in excluded:
            continue

        reasons: List[str] = []
        score = 0.0

        similarity = tag_similarity(source.tags, candidate.tags)
        if similarity > 0:
            score += similarity * config.tag_weight
            candidate_tags = {t.lower() for t in candidate.tags}
            common = [t for t in source.tags if t.lower() in candidate_tags]
            if common:
                reasons.append(f"Similar tags: {_format_tags(common)}")

        if candidate.category == source.category:
            score += config.category_weight
            reasons.append(f"Same category: {candidate.category}")

        if candidate.author.id == source.author.id:
            score += config.author_weight
            reasons.append(f"By the same author: {candidate.author.label}")

        # Popularity contributes to the score but never to the reasons
        score += popularity_score(candidate, max_views, max_copies) * config.popularity_weight

        if score > threshold:
            recommendations.append(Recommendation(item=candidate, score=score, reasons=reasons))

    ranked = _rank(recommendations, limit)
    log_ranking_outcome("related", candidates=len(items), returned=len(ranked), source_id=source.id)
    return ranked


_TAG_REASONS = {
    SIGNAL_SAVE: "Because you saved prompts tagged: {}",
    SIGNAL_RUN: "Based on prompts you've run: {}",
    SIGNAL_VIEW: "Based on recent views: {}",
    PREFERENCE: "Matches your preferences: {}",
    None: "Matches your interests: {}",
}

_CATEGORY_REASONS = {
    SIGNAL_SAVE: "Because you saved prompts in {}",
    SIGNAL_RUN: "Based on runs in {}",
    SIGNAL_VIEW: "Based on recent views in {}",
    PREFERENCE: "Preferred category: {}",
    None: "In a category you like: {}",
}


def _as_signals(
    entries: Iterable[HistoryEntry],
    weight: float = 1.0,
    kind: Optional[str] = None,
) -> List[HistorySignal]:
    signals = []
    for entry in entries:
        if isinstance(entry, HistorySignal):
            if entry.kind is None and kind is not None:
                entry = replace(entry, kind=kind)
            signals.append(entry)
        else:
            signals.append(HistorySignal(item=entry, weight=weight, kind=kind))
    return signals


def _normalize_category(category: str) -> str:
    return category.strip().lower()


def _is_filtered_out(candidate: ContentItem, preferences: Optional[RecommendationPreferences]) -> bool:
    if preferences is None:
        return False
    excluded_categories = {_normalize_category(c) for c in preferences.exclude_categories}
    if _normalize_category(candidate.category) in excluded_categories:
        return True
    return bool(tag_set(candidate.tags) & tag_set(preferences.exclude_tags))


def recency_weight(occurred_at: Timestamp, now: datetime, half_life_days: float) -> float:
    """Decay factor for a signal of the given age; 1.0 when the time is unknown."""
    age_days = age_in_days(occurred_at, now)
    if age_days is None:
        return 1.0
    return math.exp(-(math.log(2) / half_life_days) * max(0.0, age_days))


def _pick_top_source(sources: Optional[Dict[Optional[str], float]]) -> Optional[str]:
    # First source wins ties
    if not sources:
        return None
    top, top_weight = None, -math.inf
    for source, weight in sources.items():
        if weight > top_weight:
            top, top_weight = source, weight
    return top


class _Affinity:
    """Weighted tag and category frequencies, with the weight per signal kind."""

    def __init__(self):
        self.tags: Dict[str, float] = defaultdict(float)
        self.categories: Dict[str, float] = defaultdict(float)
        self.tag_sources: Dict[str, Dict[Optional[str], float]] = defaultdict(lambda: defaultdict(float))
        self.category_sources: Dict[str, Dict[Optional[str], float]] = defaultdict(lambda: defaultdict(float))

    def add_tag(self, tag: str, source: Optional[str], weight: float):
        key = normalize_tag(tag)
        self.tags[key] += weight
        self.tag_sources[key][source] += weight

    def add_category(self, category: str, source: Optional[str], weight: float):
        key = _normalize_category(category)
        self.categories[key] += weight
        self.category_sources[key][source] += weight


def _build_affinity(
    signals: Sequence[HistorySignal],
    preferences: Optional[RecommendationPreferences],
    config: RecommendationConfig,
    now: datetime,
) -> _Affinity:
    affinity = _Affinity()

    for signal in signals:
        weight = signal.weight * recency_weight(signal.occurred_at, now, config.recency_half_life_days)
        if weight <= 0:
            continue
        for tag in signal.item.tags:
            affinity.add_tag(tag, signal.kind, weight)
        affinity.add_category(signal.item.category, signal.kind, weight)

    if preferences is not None:
        for tag in preferences.tags:
            affinity.add_tag(tag, PREFERENCE, config.preference_tag_boost)
        for category in preferences.categories:
            affinity.add_category(category, PREFERENCE, config.preference_category_boost)

    return affinity


@track_scoring_operation("history")
def get_recommendations_from_history(
    sources: Sequence[HistoryEntry],
    items: Sequence[ContentItem],
    limit: Optional[int] = None,
    exclude_ids: Optional[Collection[str]] = None,
    preferences: Optional[RecommendationPreferences] = None,
    config: Optional[RecommendationConfig] = None,
    now: Optional[datetime] = None,
) -> List[Recommendation]:
    """Items matching the tags and categories of a user's history.

    ``sources`` may mix plain items (weight 1.0) and ``HistorySignal``
    entries; a signal of weight 2.0 counts the same as the item listed twice.
    Signals with an ``occurred_at`` decay with ``config.recency_half_life_days``.
    Reasons name the kind of activity that contributed most to each match.
    """
    config = config or DEFAULT_RECOMMENDATION_CONFIG
    limit = limit or config.max_recommendations
    signals = _as_signals(sources)
    excluded = {s.item.id for s in signals} | set(exclude_ids or ())

    affinity = _build_affinity(signals, preferences, config, resolve_now(now))
    max_tag_weight = max([1.0, *affinity.tags.values()])
    max_category_weight = max([1.0, *affinity.categories.values()])
    max_views, max_copies = _pool_maxima(items)

    recommendations: List[Recommendation] = []

    for candidate in items:
        if candidate.id in excluded or _is_filtered_out(candidate, preferences):
            continue

        reasons: List[str] = []
        score = 0.0

        # Averaged per candidate tag so long tag lists are not favored
        tag_score = 0.0
        matched: List[str] = []
        tag_sources: Dict[Optional[str], float] = defaultdict(float)
        for tag in candidate.tags:
            key = normalize_tag(tag)
            weight = affinity.tags.get(key, 0.0)
            if weight > 0:
                tag_score += weight / max_tag_weight
                matched.append(tag)
                for source, value in affinity.tag_sources[key].items():
                    tag_sources[source] += value
        if matched:
            score += (tag_score / len(candidate.tags)) * config.tag_weight
            reasons.append(_TAG_REASONS[_pick_top_source(tag_sources)].format(_format_tags(matched)))

        category_key = _normalize_category(candidate.category)
        category_weight = affinity.categories.get(category_key, 0.0)
        if category_weight > 0:
            score += (category_weight / max_category_weight) * config.category_weight
            source = _pick_top_source(affinity.category_sources.get(category_key))
            reasons.append(_CATEGORY_REASONS[source].format(candidate.category))

        score += popularity_score(candidate, max_views, max_copies) * config.popularity_weight

        if score > config.history_min_score:
            recommendations.append(Recommendation(item=candidate, score=score, reasons=reasons))

    ranked = _rank(recommendations, limit)
    log_ranking_outcome("history", candidates=len(items), returned=len(ranked), signals=len(signals))
    return ranked


def _cold_start(
    items: Sequence[ContentItem],
    excluded: set,
    limit: int,
    preferences: Optional[RecommendationPreferences],
    config: RecommendationConfig,
) -> List[Recommendation]:
    """Most-copied items for users without any history."""
    pool = [
        item for item in items
        if item.id not in excluded and not _is_filtered_out(item, preferences)
    ]
    pool.sort(key=lambda item: item.stats.copies, reverse=True)

    return [
        Recommendation(
            item=item,
            score=item.stats.copies / config.cold_start_copies_divisor,
            reasons=["Popular in the community"],
        )
        for item in pool[:limit]
    ]


@track_scoring_operation("for_you")
def get_for_you_recommendations(
    history: UserHistory,
    items: Sequence[ContentItem],
    limit: Optional[int] = None,
    exclude_ids: Optional[Collection[str]] = None,
    config: Optional[RecommendationConfig] = None,
    now: Optional[datetime] = None,
) -> List[Recommendation]:
    """The "For You" feed: history-based when possible, popularity otherwise.

    Saved prompts weigh more than runs, which weigh more than views.
    """
    config = config or DEFAULT_RECOMMENDATION_CONFIG
    limit = limit or config.max_recommendations
    excluded = set(exclude_ids or ())

    signals: List[HistorySignal] = []
    signals.extend(_as_signals(history.saved, config.saved_signal_weight, SIGNAL_SAVE))
    signals.extend(_as_signals(history.runs, config.run_signal_weight, SIGNAL_RUN))
    signals.extend(_as_signals(history.viewed, config.viewed_signal_weight, SIGNAL_VIEW))
    excluded.update(s.item.id for s in signals)

    preferences = history.preferences
    if not signals and not (preferences is not None and preferences.has_boosts):
        logger.debug("No user history, falling back to popular items", candidates=len(items))
        ranked = _cold_start(items, excluded, limit, preferences, config)
        log_ranking_outcome("for_you_cold_start", candidates=len(items), returned=len(ranked))
        return ranked

    return get_recommendations_from_history(
        signals,
        items,
        limit=limit,
        exclude_ids=excluded,
        preferences=preferences,
        config=config,
        now=now,
    )
