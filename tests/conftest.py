# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timedelta, timezone

import pytest

from linkmirror.cache import KeyValueStore, LinkStore, reset_link_store
from linkmirror.config import reset_config_manager


class FakeClock:
    """Settable clock for components that take a `clock` callable."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function", autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """
    Run every test in its own working directory with fresh globals.

    Config files, log files and the default store all resolve relative to the
    working directory, so this keeps tests away from a developer's real data.
    """
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("LINK_MIRROR_"):
            monkeypatch.delenv(key)

    reset_config_manager()
    reset_link_store()
    yield
    reset_config_manager()
    reset_link_store()


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return FakeClock(fixed_now)


@pytest.fixture
def kv_store(tmp_path):
    """Key-value store on a temporary database."""
    return KeyValueStore(tmp_path / "store.db")


@pytest.fixture
def link_store(kv_store, clock):
    """Link store on a temporary database with a controllable clock."""
    return LinkStore(kv_store, clock=clock)


@pytest.fixture
def sample_rows():
    """Raw remote rows as returned by the records endpoint."""
    return [
        {
            "record_id": "rec1",
            "fields": {
                "分类": "Tools",
                "站点名称": "Alpha",
                "网址": {"link": "https://alpha.example.com", "text": "Alpha"},
                "排序": 2,
            },
        },
        {
            "record_id": "rec2",
            "fields": {
                "分类": "Tools",
                "站点名称": "Beta",
                "网址": {"link": "https://beta.example.com/path", "text": "Beta"},
                "排序": 1,
                "备用图标": {"link": "https://cdn.example.com/beta.png"},
            },
        },
        {
            "record_id": "rec3",
            "fields": {
                "分类": "Code",
                "站点名称": "Gamma",
                "网址": "https://gamma.example.com",
            },
        },
    ]
