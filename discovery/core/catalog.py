"""
Catalog loading and validation.

Turns raw catalog records (as exported by the registry API, camelCase or
snake_case keys) into ``ContentItem`` instances and reports bad records.
"""

import json
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from discovery.core.models import Author, ContentItem, ItemStats
from discovery.core.monitoring import get_logger


logger = get_logger(__name__)


class CatalogValidationError(ValueError):
    """Raised when a catalog record cannot be turned into a ContentItem."""

    def __init__(self, message: str, record_id: str = ""):
        self.record_id = record_id
        super().__init__(f"{record_id}: {message}" if record_id else message)


def _pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _parse_author(raw: Any) -> Author:
    if isinstance(raw, str):
        return Author(id=raw)
    if not isinstance(raw, Mapping):
        raise ValueError("author must be an object or an id string")
    return Author(
        id=str(_pick(raw, "id", default="")),
        display_name=_pick(raw, "displayName", "display_name", default=""),
        username=_pick(raw, "username", default=""),
    )


def _parse_stats(raw: Any) -> ItemStats:
    if raw is None:
        return ItemStats()
    if not isinstance(raw, Mapping):
        raise ValueError("stats must be an object")
    return ItemStats(
        views=_pick(raw, "views", default=0),
        copies=_pick(raw, "copies", default=0),
        saves=_pick(raw, "saves", default=0),
        rating=_pick(raw, "rating", default=0.0),
        rating_count=_pick(raw, "ratingCount", "rating_count", default=0),
    )


def parse_item(record: Mapping[str, Any]) -> ContentItem:
    """Build a ContentItem from one catalog record.

    Raises:
        CatalogValidationError: if required fields are missing or out of range
    """
    if not isinstance(record, Mapping):
        raise CatalogValidationError("Record must be an object")

    record_id = str(_pick(record, "id", default=""))
    try:
        tags = _pick(record, "tags", default=[])
        if isinstance(tags, str) or not isinstance(tags, Sequence):
            raise ValueError("tags must be a list of strings")
        if not all(isinstance(t, str) for t in tags):
            raise ValueError("tags must be a list of strings")

        return ContentItem(
            id=record_id,
            category=_pick(record, "category", default=""),
            author=_parse_author(_pick(record, "author", default={})),
            stats=_parse_stats(_pick(record, "stats")),
            tags=tuple(tags),
            updated_at=_pick(record, "updatedAt", "updated_at"),
            title=_pick(record, "title", default=""),
            created_at=_pick(record, "createdAt", "created_at"),
        )
    except (ValueError, TypeError) as e:
        raise CatalogValidationError(str(e), record_id=record_id) from e


def validate_catalog(records: Sequence[Mapping[str, Any]]) -> Tuple[List[ContentItem], List[str]]:
    """
    Validate a list of records and return valid items and errors separately.

    Args:
        records: Raw catalog records

    Returns:
        Tuple of (valid_items, error_messages)
    """
    items = []
    errors = []
    seen = set()

    for index, record in enumerate(records):
        try:
            item = parse_item(record)
        except CatalogValidationError as e:
            errors.append(f"record {index}: {e}")
            continue
        if item.id in seen:
            errors.append(f"record {index}: duplicate id {item.id}")
            continue
        seen.add(item.id)
        items.append(item)

    if errors:
        logger.warning("Catalog contains invalid records", invalid=len(errors), valid=len(items))
    return items, errors


def read_catalog_records(path: str) -> List[Dict[str, Any]]:
    """Read raw records from a JSON catalog file (a list, or {"prompts": [...]})."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("prompts", data.get("items", []))
    if not isinstance(data, list):
        raise CatalogValidationError("Catalog must be a list of records")
    return data


def load_catalog(path: str, strict: bool = False) -> List[ContentItem]:
    """Load and validate a JSON catalog file, skipping bad records unless strict."""
    items, errors = validate_catalog(read_catalog_records(path))
    if strict and errors:
        raise CatalogValidationError(f"{len(errors)} invalid records; first: {errors[0]}")

    logger.info("Loaded catalog", path=path, items=len(items), skipped=len(errors))
    return items


def index_by_id(items: Sequence[ContentItem]) -> Dict[str, ContentItem]:
    return {item.id: item for item in items}
