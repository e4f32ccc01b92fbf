# SPDX-License-Identifier: MIT
"""Validation of user-supplied link data."""

from urllib.parse import urlparse

from .constants import MAX_LINK_NAME_LENGTH


def validate_url(url: str | None) -> str | None:
    """Check a link URL.

    Args:
        url: URL to check

    Returns:
        An error message, or None if the URL is usable
    """
    if not url or not url.strip() or url.strip() in ("http://", "https://"):
        return "URL is required"

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return "URL is malformed"

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "URL must be an absolute http(s) address"
    return None


def validate_link(url: str | None, name: str | None, category: str | None) -> dict[str, str]:
    """Validate the fields of a new link.

    Returns:
        Mapping of field name to error message; empty when everything is valid
    """
    errors: dict[str, str] = {}

    url_error = validate_url(url)
    if url_error:
        errors["url"] = url_error

    if not name or not name.strip():
        errors["name"] = "Name is required"
    elif len(name.strip()) > MAX_LINK_NAME_LENGTH:
        errors["name"] = f"Name cannot exceed {MAX_LINK_NAME_LENGTH} characters"

    if not category or not category.strip():
        errors["category"] = "Category is required"

    return errors
