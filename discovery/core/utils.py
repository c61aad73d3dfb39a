"""
Normalization helpers shared by the trending and recommendation services.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from discovery.core.models import ContentItem, ScoringContext, Timestamp


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return min(upper, max(lower, value))


def normalize(value: float, maximum: float) -> float:
    """Map a count onto [0, 1] relative to a batch maximum (floored at 1)."""
    return clamp(value / max(1.0, maximum))


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def tag_set(tags: Iterable[str]) -> set:
    return {normalize_tag(t) for t in tags}


def tag_similarity(tags_a: Sequence[str], tags_b: Sequence[str]) -> float:
    """Jaccard similarity of two tag lists, compared case-insensitively.

    Tags are lowercased but not trimmed. Returns 0.0 when both lists are empty.
    """
    set_a = {t.lower() for t in tags_a}
    set_b = {t.lower() for t in tags_b}

    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def _batch_max(values: Iterable[float]) -> float:
    return max([1.0, *values])


def compute_batch_maxima(items: Sequence[ContentItem], now: datetime) -> ScoringContext:
    """Build the normalization context for one scoring pass over ``items``."""
    return ScoringContext(
        max_views=_batch_max(i.stats.views for i in items),
        max_copies=_batch_max(i.stats.copies for i in items),
        max_saves=_batch_max(i.stats.saves for i in items),
        max_rating_count=_batch_max(i.stats.rating_count for i in items),
        now=now,
    )


def to_utc(value: datetime) -> datetime:
    """Normalize datetimes to UTC-aware to avoid naive/aware subtraction errors."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_timestamp(value: Timestamp) -> Optional[datetime]:
    """Turn a datetime or ISO-8601 string into a UTC datetime.

    Returns None for missing or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z") or raw.endswith("z"):
            raw = raw[:-1] + "+00:00"
        try:
            return to_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None
    return None


def resolve_now(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return to_utc(now)


def age_in_days(timestamp: Timestamp, now: datetime) -> Optional[float]:
    weeks = age_in_weeks(timestamp, now)
    return None if weeks is None else weeks * 7.0


def age_in_weeks(updated_at: Timestamp, now: datetime) -> Optional[float]:
    """Age of a timestamp in weeks, or None when it cannot be interpreted."""
    updated = coerce_timestamp(updated_at)
    if updated is None:
        return None
    age = (to_utc(now) - updated).total_seconds() / (7 * 86400.0)
    if math.isnan(age):
        return None
    return age
