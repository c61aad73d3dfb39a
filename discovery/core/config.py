"""
Configuration management for the discovery engine.
Handles deploy-time scoring weights and decay parameters.
"""

import os
from typing import Dict, List, Tuple

from dotenv import load_dotenv

from discovery.core.models import RecommendationConfig, TrendingConfig


# Load environment variables
load_dotenv()


def _read_weights(defaults: Dict[str, Tuple[str, float]]) -> Tuple[Dict[str, float], Dict[str, bool]]:
    """Read weight overrides from the environment.

    ``defaults`` maps field name -> (environment variable, default value).
    """
    values = {}
    overridden = {}
    for name, (env_var, default) in defaults.items():
        raw = os.environ.get(env_var)
        overridden[name] = raw is not None
        values[name] = float(raw) if raw is not None else default
    return values, overridden


def _rebalance(values: Dict[str, float], overridden: Dict[str, bool], preference: List[str]) -> None:
    """Adjust one non-overridden weight so the total equals 1.0.

    Caller-provided weights stay intact. Nothing is adjusted when every
    weight was overridden; the config dataclass then rejects a bad total.
    """
    total = sum(values.values())
    if all(overridden.values()) or abs(total - 1.0) <= 1e-6:
        return

    delta = 1.0 - total
    for name in preference:
        if not overridden[name]:
            values[name] = max(0.0, min(1.0, values[name] + delta))
            break


def load_trending_config() -> TrendingConfig:
    """Load trending score configuration from environment variables.

    If only a subset of weights are overridden and the total does not sum
    to 1.0, one non-overridden weight is adjusted (preferring freshness).
    """
    try:
        weights, overridden = _read_weights({
            'views_weight': ('TRENDING_VIEWS_WEIGHT', 0.25),
            'copies_weight': ('TRENDING_COPIES_WEIGHT', 0.30),
            'saves_weight': ('TRENDING_SAVES_WEIGHT', 0.15),
            'rating_weight': ('TRENDING_RATING_WEIGHT', 0.20),
            'freshness_weight': ('TRENDING_FRESHNESS_WEIGHT', 0.10),
        })
        _rebalance(weights, overridden, [
            'freshness_weight',
            'saves_weight',
            'rating_weight',
            'views_weight',
            'copies_weight',
        ])

        return TrendingConfig(
            half_life_weeks=float(os.environ.get('TRENDING_HALF_LIFE_WEEKS', 4.0)),
            min_freshness=float(os.environ.get('TRENDING_MIN_FRESHNESS', 0.1)),
            max_freshness=float(os.environ.get('TRENDING_MAX_FRESHNESS', 1.0)),
            rating_prior=float(os.environ.get('TRENDING_RATING_PRIOR', 0.6)),
            **weights,
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid trending configuration: {e}")


def load_recommendation_config() -> RecommendationConfig:
    """Load recommendation configuration from environment variables.

    Partial weight overrides are rebalanced onto the popularity weight first.
    """
    try:
        weights, overridden = _read_weights({
            'tag_weight': ('RECOMMENDATION_TAG_WEIGHT', 0.6),
            'category_weight': ('RECOMMENDATION_CATEGORY_WEIGHT', 0.2),
            'author_weight': ('RECOMMENDATION_AUTHOR_WEIGHT', 0.1),
            'popularity_weight': ('RECOMMENDATION_POPULARITY_WEIGHT', 0.1),
        })
        _rebalance(weights, overridden, [
            'popularity_weight',
            'author_weight',
            'category_weight',
            'tag_weight',
        ])

        return RecommendationConfig(
            max_recommendations=int(os.environ.get('RECOMMENDATION_LIMIT', 10)),
            saved_signal_weight=float(os.environ.get('RECOMMENDATION_SAVED_SIGNAL_WEIGHT', 2.0)),
            run_signal_weight=float(os.environ.get('RECOMMENDATION_RUN_SIGNAL_WEIGHT', 1.5)),
            viewed_signal_weight=float(os.environ.get('RECOMMENDATION_VIEWED_SIGNAL_WEIGHT', 1.0)),
            recency_half_life_days=float(os.environ.get('RECOMMENDATION_RECENCY_HALF_LIFE_DAYS', 21.0)),
            **weights,
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid recommendation configuration: {e}")


def load_monitoring_config() -> dict:
    """Load logging and error tracking configuration from environment variables.

    Returns:
        Dictionary with monitoring configuration settings
    """
    return {
        'log_level': os.environ.get('LOG_LEVEL', 'INFO').upper(),
        'sentry_dsn': os.environ.get('SENTRY_DSN'),
        'sentry_environment': os.environ.get('SENTRY_ENVIRONMENT', 'development'),
        'sentry_release': os.environ.get('SENTRY_RELEASE', 'unknown'),
    }
