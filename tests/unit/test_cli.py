# SPDX-License-Identifier: MIT
"""Tests for the CLI module."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from linkmirror.cache import LinkStore, set_link_store
from linkmirror.cli import main
from linkmirror.enums import SyncStatus
from linkmirror.models import RemoteConfig, SyncState


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def store(kv_store):
    """Link store installed as the global store for CLI commands."""
    link_store = LinkStore(kv_store)
    set_link_store(link_store)
    return link_store


@pytest.fixture
def test_mode_store(store):
    asyncio.run(store.set_test_mode(True))
    return store


class TestBasicCommands:
    """Test cases for informational commands."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0

    def test_config_shows_yaml(self, runner):
        result = runner.invoke(main, ["config"])

        assert result.exit_code == 0
        assert "interval_minutes: 30" in result.output

    def test_status_without_history(self, runner, store):
        result = runner.invoke(main, ["status"])

        assert result.exit_code == 0

    def test_show_without_snapshot(self, runner, store):
        result = runner.invoke(main, ["show"])

        assert result.exit_code == 0


class TestConfigure:
    """Test cases for the configure command."""

    def test_configure_saves_settings_and_clears_cache(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])
        assert asyncio.run(test_mode_store.load_snapshot()) is not None

        result = runner.invoke(
            main,
            [
                "configure",
                "--app-id", "cli_a",
                "--app-secret", "secret",
                "--app-token", "bascn1",
                "--table-id", "tbl1",
                "--interval", "15",
            ],
        )

        assert result.exit_code == 0
        saved = asyncio.run(test_mode_store.load_remote_config())
        assert saved == RemoteConfig(
            app_id="cli_a",
            app_secret="secret",
            app_token="bascn1",
            table_id="tbl1",
            sync_interval_minutes=15,
        )
        assert asyncio.run(test_mode_store.load_snapshot()) is None

    def test_configure_requires_all_settings(self, runner, store):
        result = runner.invoke(main, ["configure", "--app-id", "cli_a"])

        assert result.exit_code != 0


class TestSyncCommands:
    """Test cases for sync, show and clear-cache."""

    def test_sync_in_test_mode(self, runner, test_mode_store):
        result = runner.invoke(main, ["sync"])

        assert result.exit_code == 0
        state = asyncio.run(test_mode_store.load_sync_state())
        assert state.status is SyncStatus.SUCCESS

    def test_sync_without_configuration_fails(self, runner, store):
        result = runner.invoke(main, ["sync"])

        assert result.exit_code == 1
        state = asyncio.run(store.load_sync_state())
        assert state.status is SyncStatus.ERROR
        assert state.message.startswith("Remote source is not configured")

    def test_show_json_after_sync(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])

        result = runner.invoke(main, ["show", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["categories"] == ["Code", "Design", "Learning", "Tools"]

    def test_show_text_after_sync(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])

        result = runner.invoke(main, ["show"])

        assert result.exit_code == 0
        assert "GitHub: https://github.com" in result.output

    def test_clear_cache(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])

        result = runner.invoke(main, ["clear-cache", "--confirm"])

        assert result.exit_code == 0
        assert asyncio.run(test_mode_store.load_snapshot()) is None

    def test_clear_cache_aborted(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])

        result = runner.invoke(main, ["clear-cache"], input="n\n")

        assert result.exit_code == 1
        assert asyncio.run(test_mode_store.load_snapshot()) is not None

    def test_status_after_sync(self, runner, test_mode_store):
        runner.invoke(main, ["sync"])

        with patch("linkmirror.cli.get_status_logger") as mock_logger:
            result = runner.invoke(main, ["status"])

        assert result.exit_code == 0
        logged = [call.args[0] for call in mock_logger.return_value.info.call_args_list]
        assert "Status: success" in logged

    def test_test_mode_toggle(self, runner, store):
        result = runner.invoke(main, ["test-mode", "on"])
        assert result.exit_code == 0
        assert asyncio.run(store.get_test_mode()) is True

        result = runner.invoke(main, ["test-mode", "off"])
        assert result.exit_code == 0
        assert asyncio.run(store.get_test_mode()) is False


class TestLinkCommands:
    """Test cases for add-link and delete-link."""

    def test_add_link_rejects_invalid_input(self, runner, store):
        result = runner.invoke(
            main, ["add-link", "not-a-url", "x" * 51, "--category", "Tools"]
        )

        assert result.exit_code == 1

    def test_add_link_in_test_mode_skips_remote(self, runner, test_mode_store):
        with patch(
            "linkmirror.cli.RecordEditor.add_record", new_callable=AsyncMock
        ) as mock_add:
            result = runner.invoke(
                main, ["add-link", "https://example.com", "Example", "--category", "Tools"]
            )

        assert result.exit_code == 0
        mock_add.assert_not_awaited()

    def test_add_link_sends_record_and_resyncs(self, runner, store):
        asyncio.run(
            store.save_remote_config(
                RemoteConfig(app_id="a", app_secret="s", app_token="t", table_id="tbl")
            )
        )

        with (
            patch(
                "linkmirror.cli.RecordEditor.add_record",
                new_callable=AsyncMock,
                return_value="recNew",
            ) as mock_add,
            patch(
                "linkmirror.cache_sync.scheduler.SyncScheduler.sync_now",
                new_callable=AsyncMock,
                return_value=SyncState(status=SyncStatus.SUCCESS),
            ) as mock_sync,
        ):
            result = runner.invoke(
                main,
                ["add-link", "https://example.com", "Example", "--category", "Tools", "--sort", "2"],
            )

        assert result.exit_code == 0
        link = mock_add.call_args.args[1]
        assert (link.name, link.category, link.sort_key) == ("Example", "Tools", 2)
        mock_sync.assert_awaited_once()

    def test_delete_link_sends_delete_and_resyncs(self, runner, store):
        asyncio.run(
            store.save_remote_config(
                RemoteConfig(app_id="a", app_secret="s", app_token="t", table_id="tbl")
            )
        )

        with (
            patch(
                "linkmirror.cli.RecordEditor.delete_record", new_callable=AsyncMock
            ) as mock_delete,
            patch(
                "linkmirror.cache_sync.scheduler.SyncScheduler.sync_now",
                new_callable=AsyncMock,
                return_value=SyncState(status=SyncStatus.SUCCESS),
            ) as mock_sync,
        ):
            result = runner.invoke(main, ["delete-link", "rec1"])

        assert result.exit_code == 0
        assert mock_delete.call_args.args[1] == "rec1"
        mock_sync.assert_awaited_once()

    def test_add_link_warns_when_resync_fails(self, runner, store):
        asyncio.run(
            store.save_remote_config(
                RemoteConfig(app_id="a", app_secret="s", app_token="t", table_id="tbl")
            )
        )

        with (
            patch(
                "linkmirror.cli.RecordEditor.add_record",
                new_callable=AsyncMock,
                return_value="recNew",
            ),
            patch(
                "linkmirror.cache_sync.scheduler.SyncScheduler.sync_now",
                new_callable=AsyncMock,
                return_value=SyncState(status=SyncStatus.ERROR, message="network down"),
            ),
            patch("linkmirror.cli.get_status_logger") as mock_logger,
        ):
            result = runner.invoke(
                main, ["add-link", "https://example.com", "Example", "--category", "Tools"]
            )

        assert result.exit_code == 0
        info_messages = [c.args[0] for c in mock_logger.return_value.info.call_args_list]
        assert "Added 'Example' (recNew)" in info_messages
        warnings = [c.args[0] for c in mock_logger.return_value.warning.call_args_list]
        assert any("network down" in message for message in warnings)

    def test_delete_link_warns_when_resync_fails(self, runner, store):
        asyncio.run(
            store.save_remote_config(
                RemoteConfig(app_id="a", app_secret="s", app_token="t", table_id="tbl")
            )
        )

        with (
            patch("linkmirror.cli.RecordEditor.delete_record", new_callable=AsyncMock),
            patch(
                "linkmirror.cache_sync.scheduler.SyncScheduler.sync_now",
                new_callable=AsyncMock,
                return_value=SyncState(status=SyncStatus.ERROR, message="network down"),
            ),
            patch("linkmirror.cli.get_status_logger") as mock_logger,
        ):
            result = runner.invoke(main, ["delete-link", "rec1"])

        assert result.exit_code == 0
        warnings = [c.args[0] for c in mock_logger.return_value.warning.call_args_list]
        assert any("network down" in message for message in warnings)

    def test_successful_resync_logs_no_warning(self, runner, store):
        asyncio.run(
            store.save_remote_config(
                RemoteConfig(app_id="a", app_secret="s", app_token="t", table_id="tbl")
            )
        )

        with (
            patch("linkmirror.cli.RecordEditor.delete_record", new_callable=AsyncMock),
            patch(
                "linkmirror.cache_sync.scheduler.SyncScheduler.sync_now",
                new_callable=AsyncMock,
                return_value=SyncState(status=SyncStatus.SUCCESS),
            ),
            patch("linkmirror.cli.get_status_logger") as mock_logger,
        ):
            result = runner.invoke(main, ["delete-link", "rec1"])

        assert result.exit_code == 0
        mock_logger.return_value.warning.assert_not_called()

    def test_delete_link_failure_exits_with_error(self, runner, store):
        result = runner.invoke(main, ["delete-link", "rec1"])

        assert result.exit_code == 1
