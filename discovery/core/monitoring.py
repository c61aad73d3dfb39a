"""
Observability utilities for the discovery engine
Provides Sentry error tracking, Prometheus metrics, and structured logging
"""

import functools
import logging
from typing import Callable, Optional

import sentry_sdk
import structlog
from prometheus_client import Counter, Histogram

from discovery.core.config import load_monitoring_config


# Prometheus metrics
SCORING_COUNTER = Counter(
    'discovery_scoring_total',
    'Total number of scoring operations',
    ['component', 'status']
)

SCORING_DURATION = Histogram(
    'discovery_scoring_duration_seconds',
    'Time spent on scoring operations',
    ['component']
)

RANKED_ITEMS_COUNTER = Counter(
    'discovery_ranked_items_total',
    'Total number of items returned by ranking operations',
    ['operation']
)

ERROR_COUNTER = Counter(
    'discovery_errors_total',
    'Total number of errors',
    ['error_type', 'component']
)


def init_sentry() -> bool:
    """Initialize Sentry error tracking when a DSN is configured."""
    config = load_monitoring_config()
    if not config['sentry_dsn']:
        return False

    sentry_sdk.init(
        dsn=config['sentry_dsn'],
        environment=config['sentry_environment'],
        release=config['sentry_release'],
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True


def init_structured_logging(log_level: Optional[str] = None):
    """Initialize structured logging with JSON output"""
    log_level = (log_level or load_monitoring_config()['log_level']).upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))


def get_logger(name: str):
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def track_scoring_operation(component: str):
    """Decorator to track scoring operations"""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with SCORING_DURATION.labels(component=component).time():
                try:
                    result = func(*args, **kwargs)
                    SCORING_COUNTER.labels(component=component, status="success").inc()
                    return result
                except Exception as e:
                    SCORING_COUNTER.labels(component=component, status="error").inc()
                    ERROR_COUNTER.labels(error_type=type(e).__name__, component=component).inc()
                    raise
        return wrapper
    return decorator


def log_ranking_outcome(operation: str, candidates: int, returned: int, **extra):
    """Log the outcome of a ranking call and count the items it produced"""
    RANKED_ITEMS_COUNTER.labels(operation=operation).inc(returned)

    logger = get_logger("ranking")
    logger.debug(
        "Ranking completed",
        operation=operation,
        candidates=candidates,
        returned=returned,
        **extra
    )
