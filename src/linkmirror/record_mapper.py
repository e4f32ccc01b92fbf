# SPDX-License-Identifier: MIT
"""Mapping of raw remote rows onto records and snapshots."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from .config import FieldMapping
from .constants import DEFAULT_CATEGORY, DEFAULT_SORT_KEY, FAVICON_URL_TEMPLATE
from .logging_config import get_detail_logger
from .models import DateInfo, Record, Snapshot


detail_logger = get_detail_logger()


MOCK_LINKS: dict[str, list[dict[str, Any]]] = {
    "Code": [
        {"name": "GitHub", "url": "https://github.com", "icon": "🐙", "sort": 1},
        {"name": "Stack Overflow", "url": "https://stackoverflow.com", "icon": "📚", "sort": 2},
        {"name": "VS Code", "url": "https://code.visualstudio.com", "icon": "💻", "sort": 3},
        {"name": "GitLab", "url": "https://gitlab.com", "icon": "🦊", "sort": 4},
    ],
    "Design": [
        {"name": "Figma", "url": "https://figma.com", "icon": "🎨", "sort": 1},
        {"name": "Dribbble", "url": "https://dribbble.com", "icon": "🏀", "sort": 2},
        {"name": "Behance", "url": "https://behance.net", "icon": "📐", "sort": 3},
        {"name": "Pixso", "url": "https://pixso.cc", "icon": "✏️", "sort": 4},
    ],
    "Tools": [
        {"name": "Google", "url": "https://google.com", "icon": "🔍", "sort": 1},
        {"name": "Translate", "url": "https://translate.google.com", "icon": "🌐", "sort": 2},
        {"name": "Time", "url": "https://time.is", "icon": "⏰", "sort": 3},
        {"name": "Notion", "url": "https://notion.so", "icon": "📝", "sort": 4},
    ],
    "Learning": [
        {"name": "MDN", "url": "https://developer.mozilla.org", "icon": "📖", "sort": 1},
        {"name": "W3Schools", "url": "https://w3schools.com", "icon": "🎓", "sort": 2},
        {"name": "freeCodeCamp", "url": "https://freecodecamp.org", "icon": "💡", "sort": 3},
        {"name": "Nowcoder", "url": "https://nowcoder.com", "icon": "🐂", "sort": 4},
    ],
}


def favicon_url(url: str) -> str:
    """Favicon service URL for the host of `url`, or "" if it has no host."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None

    if not host:
        detail_logger.warning(f"Cannot derive icon, unparsable URL: {url!r}")
        return ""
    return FAVICON_URL_TEMPLATE.format(domain=host)


def resolve_icon(icon_ref: str, url: str) -> str:
    """Use an explicit icon reference verbatim, else fall back to the favicon."""
    if icon_ref and icon_ref.strip():
        return icon_ref
    return favicon_url(url)


def _link_value(value: Any) -> str:
    """Read a hyperlink cell, which is either plain text or {link, text}."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        return str(value.get("link") or value.get("text") or "").strip()
    return ""


def _text_value(value: Any) -> str:
    """Read a text cell, which is either plain text or a list of text segments."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return "".join(
            str(segment.get("text", "")) if isinstance(segment, dict) else str(segment)
            for segment in value
        ).strip()
    if value is None:
        return ""
    return str(value).strip()


def _sort_value(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_SORT_KEY
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        detail_logger.debug(f"Non-numeric sort value {value!r}, using default")
        return DEFAULT_SORT_KEY


def map_row(row: dict[str, Any], fields: FieldMapping) -> Record | None:
    """Convert one raw remote row into a record.

    Args:
        row: Raw item with `record_id` and `fields`
        fields: Remote column names

    Returns:
        The record, or None if the row lacks a name or URL
    """
    values = row.get("fields") or {}

    name = _text_value(values.get(fields.name))
    url = _link_value(values.get(fields.url))
    if not name or not url:
        detail_logger.debug(f"Dropping row {row.get('record_id')!r}: missing name or url")
        return None

    category = _text_value(values.get(fields.category)) or DEFAULT_CATEGORY

    return Record(
        id=str(row.get("record_id") or ""),
        name=name,
        url=url,
        category=category,
        sort_key=_sort_value(values.get(fields.sort)),
        icon_ref=resolve_icon(_link_value(values.get(fields.icon)), url),
    )


def group_records(records: Iterable[Record]) -> tuple[list[str], dict[str, list[Record]]]:
    """Group records by category.

    Categories come back sorted lexicographically; records within a category
    by ascending sort key, keeping input order on ties.
    """
    grouped: dict[str, list[Record]] = {}
    for record in records:
        grouped.setdefault(record.category, []).append(record)

    categories = sorted(grouped)
    return categories, {
        category: sorted(grouped[category], key=lambda r: r.sort_key)
        for category in categories
    }


def build_date_info(now: datetime) -> DateInfo:
    return DateInfo(date=now.date().isoformat(), weekday=now.strftime("%A"))


def build_snapshot(
    rows: Iterable[dict[str, Any]], fields: FieldMapping, fetched_at: datetime
) -> Snapshot:
    """Build a snapshot from raw remote rows."""
    records = []
    for row in rows:
        record = map_row(row, fields)
        if record is not None:
            records.append(record)

    categories, records_by_category = group_records(records)
    return Snapshot(
        categories=categories,
        records_by_category=records_by_category,
        fetched_at=fetched_at,
        date_info=build_date_info(fetched_at),
    )


def build_mock_snapshot(fetched_at: datetime) -> Snapshot:
    """Build the fixed snapshot served in test mode."""
    records = [
        Record(
            id=f"mock-{category}-{index}",
            name=item["name"],
            url=item["url"],
            category=category,
            sort_key=item["sort"],
            icon_ref=item["icon"],
        )
        for category, items in MOCK_LINKS.items()
        for index, item in enumerate(items)
    ]
    categories, records_by_category = group_records(records)
    return Snapshot(
        categories=categories,
        records_by_category=records_by_category,
        fetched_at=fetched_at,
        date_info=build_date_info(fetched_at),
    )
