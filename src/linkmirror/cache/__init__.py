# SPDX-License-Identifier: MIT
"""Persisted store for the sync engine.

- KeyValueStore: SQLite-backed get/set/remove/clear of JSON values
- LinkStore: typed access to credential, config, snapshot, status and test-mode keys
"""

from .key_value_store import KeyValueStore
from .link_store import LinkStore, restored_state


# Global store instance with factory pattern
_link_store_instance: LinkStore | None = None


def get_link_store() -> LinkStore:
    """Get or create the global link store instance.

    Returns:
        The global LinkStore instance, using the configured database path
    """
    global _link_store_instance
    if _link_store_instance is None:
        from ..config import get_config_manager

        cache_config = get_config_manager().load_config().cache
        _link_store_instance = LinkStore(
            KeyValueStore(), retention_days=cache_config.retention_days
        )
    return _link_store_instance


def set_link_store(store: LinkStore) -> None:
    """Set the link store instance (primarily for testing)."""
    global _link_store_instance
    _link_store_instance = store


def reset_link_store() -> None:
    """Reset the link store instance (primarily for testing)."""
    global _link_store_instance
    _link_store_instance = None


__all__ = [
    "KeyValueStore",
    "LinkStore",
    "get_link_store",
    "reset_link_store",
    "restored_state",
    "set_link_store",
]
