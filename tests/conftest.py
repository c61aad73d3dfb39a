import itertools
import os
import sys
from datetime import datetime, timezone

import pytest


def _ensure_project_root_on_path() -> None:
    """Prepend the repository root to sys.path for test imports.

    Allows tests to import `manage_catalog` and `discovery.*`
    without requiring editable installs.
    """
    tests_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.abspath(os.path.join(tests_dir, os.pardir))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_path()

from discovery.core.models import Author, ContentItem, ItemStats  # noqa: E402


NOW = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def build_item(
    item_id=None,
    category="ideation",
    tags=("test",),
    author_id="a1",
    author_name="User 1",
    views=100,
    copies=50,
    saves=25,
    rating=4.0,
    rating_count=10,
    updated_at=NOW,
    title="Test Prompt",
):
    """Create a ContentItem with sensible defaults for tests."""
    return ContentItem(
        id=item_id or f"prompt-{next(_ids)}",
        category=category,
        author=Author(id=author_id, display_name=author_name),
        stats=ItemStats(
            views=views,
            copies=copies,
            saves=saves,
            rating=rating,
            rating_count=rating_count,
        ),
        tags=tuple(tags),
        updated_at=updated_at,
        title=title,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_item():
    return build_item
