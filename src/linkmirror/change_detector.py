# SPDX-License-Identifier: MIT
"""Detection of meaningful snapshot changes."""

from .logging_config import get_detail_logger
from .models import Snapshot


detail_logger = get_detail_logger()


def has_changed(previous: Snapshot | None, current: Snapshot) -> bool:
    """Compare two snapshots by their categorized records.

    Only the category set and each category's ordered record list count;
    `fetched_at` and `date_info` are ignored, so a resync that returns the
    same rows reports no change.

    Args:
        previous: Cached snapshot, or None if nothing usable is cached
        current: Freshly fetched snapshot

    Returns:
        True if the records differ or nothing was cached
    """
    if previous is None:
        detail_logger.debug("No cached snapshot, treating fetch as a change")
        return True

    changed = previous.records_by_category != current.records_by_category
    detail_logger.debug(f"Snapshot changed: {changed}")
    return changed
