# SPDX-License-Identifier: MIT
"""Command-line interface for the link mirror."""

import asyncio
import functools
import json
import sys
import traceback
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from . import __version__
from .cache import get_link_store
from .cache_sync import SyncController, SyncScheduler, create_sync_scheduler
from .config import get_config_manager
from .credential_broker import CredentialBroker
from .enums import MessageType, SyncStatus
from .logging_config import get_status_logger, setup_logging
from .models import ControlResponse, NewLink, RemoteConfig, SyncState
from .remote_client import RemoteClient
from .remote_records import RecordEditor, RemoteDataFetcher
from .validation import validate_link


F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def handle_cli_errors(func: F) -> F:
    """Decorator to handle common CLI error patterns.

    Logs the exception through the status logger (with a traceback when
    `verbose` is set) and exits with status code 1.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        status_logger = get_status_logger()
        verbose = kwargs.get("verbose", False)

        try:
            return func(*args, **kwargs)
        except Exception as e:
            if verbose:
                status_logger.error(f"Error in {func.__name__}: {e}")
                traceback.print_exc()
            else:
                status_logger.error(f"Error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit if requested."""
    if value:
        # Ensure logging is set up before using it (--version is eager)
        setup_logging()
        status_logger = get_status_logger()
        status_logger.info(f"Link-Mirror version {__version__}")
        ctx.exit(0)


async def _with_scheduler(action: Callable[[SyncScheduler], Awaitable[T]]) -> T:
    """Run `action` against a restored scheduler and close it afterwards."""
    scheduler = create_sync_scheduler()
    try:
        await scheduler.restore()
        return await action(scheduler)
    finally:
        await scheduler.close()


async def _active_remote_config() -> RemoteConfig:
    stored = await get_link_store().load_remote_config()
    if stored is not None:
        return stored
    return get_config_manager().load_config().fallback_remote_config()


def _report(response: ControlResponse) -> None:
    status_logger = get_status_logger()
    if response.status is not None:
        status_logger.info(f"Status: {response.status.status.value}")
        if response.status.message:
            status_logger.info(f"Message: {response.status.message}")
    if not response.success:
        status_logger.error(f"Error: {response.error}")
        sys.exit(1)


def _warn_if_resync_failed(state: SyncState | None) -> None:
    """Warn when the resync after a remote edit ended in the error state."""
    if state is not None and state.status is SyncStatus.ERROR:
        get_status_logger().warning(
            f"Remote table updated, but the resync failed: {state.message}"
        )


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version information and exit",
)
def main() -> None:
    """Link-Mirror - Keep a local snapshot of a remote link table in sync."""
    detail_logger, status_logger = setup_logging()
    detail_logger.debug("CLI initialized")


@main.command()
@handle_cli_errors
def config() -> None:
    """Show the complete current configuration."""
    config_output = get_config_manager().show_config()
    print(config_output)


@main.command()
@click.option("--app-id", required=True, help="Application ID")
@click.option("--app-secret", required=True, help="Application secret")
@click.option("--app-token", required=True, help="Bitable app token")
@click.option("--table-id", required=True, help="Bitable table ID")
@click.option("--interval", type=click.IntRange(min=1), default=None, help="Sync interval in minutes")
@click.option("--no-periodic", is_flag=True, help="Disable periodic sync")
@handle_cli_errors
def configure(
    app_id: str,
    app_secret: str,
    app_token: str,
    table_id: str,
    interval: int | None,
    no_periodic: bool,
) -> None:
    """Store the remote table settings.

    Changing the settings drops the cached credential and snapshot so the
    next sync starts from the new source.
    """
    status_logger = get_status_logger()
    remote_config = RemoteConfig(
        app_id=app_id,
        app_secret=app_secret,
        app_token=app_token,
        table_id=table_id,
        sync_interval_minutes=interval or get_config_manager().load_config().sync.interval_minutes,
        sync_enabled=not no_periodic,
    )

    async def _configure() -> None:
        store = get_link_store()
        await store.save_remote_config(remote_config)
        await store.clear_credential()
        await store.clear_snapshot()

    asyncio.run(_configure())
    status_logger.info("Remote settings saved; cached data cleared")


@main.command()
@handle_cli_errors
def sync() -> None:
    """Run one sync immediately.

    Exits with status 1 if the sync ends in the error state.
    """

    async def _sync(scheduler: SyncScheduler) -> ControlResponse:
        controller = SyncController(scheduler)
        return await controller.handle({"type": MessageType.SYNC_NOW.value})

    _report(asyncio.run(_with_scheduler(_sync)))


@main.command()
@click.option("--interval", type=click.IntRange(min=1), default=None, help="Sync interval in minutes")
@handle_cli_errors
def watch(interval: int | None) -> None:
    """Sync now and then periodically until interrupted."""
    status_logger = get_status_logger()

    async def _watch(scheduler: SyncScheduler) -> None:
        minutes = interval
        if minutes is None:
            remote_config = await _active_remote_config()
            minutes = remote_config.sync_interval_minutes

        await scheduler.start_periodic(minutes)
        await asyncio.Event().wait()

    try:
        asyncio.run(_with_scheduler(_watch))
    except KeyboardInterrupt:
        status_logger.info("Stopped")


@main.command()
@handle_cli_errors
def status() -> None:
    """Show the last persisted sync status."""
    status_logger = get_status_logger()

    async def _status() -> tuple[Any, Any]:
        store = get_link_store()
        return await store.load_sync_state(), await store.load_snapshot()

    state, snapshot = asyncio.run(_status())

    status_logger.info("Sync Status")
    status_logger.info("=" * 40)
    if state is None:
        status_logger.info("No sync has run yet")
    else:
        status_logger.info(f"Status: {state.status.value}")
        if state.message:
            status_logger.info(f"Message: {state.message}")
        if state.last_sync_at:
            status_logger.info(f"Last successful sync: {state.last_sync_at.isoformat()}")
        if state.status is SyncStatus.ERROR and state.retry_count:
            status_logger.info(f"Consecutive failures: {state.retry_count}")

    if snapshot is None:
        status_logger.info("Snapshot: none")
    else:
        status_logger.info(
            f"Snapshot: {snapshot.record_count()} links in "
            f"{len(snapshot.categories)} categories "
            f"(fetched {snapshot.fetched_at.isoformat()})"
        )


@main.command()
@click.option(
    "--format",
    "output_format",
    default="text",
    type=click.Choice(["text", "json"]),
    help="Output format",
)
@handle_cli_errors
def show(output_format: str) -> None:
    """Print the cached links grouped by category."""
    status_logger = get_status_logger()
    snapshot = asyncio.run(get_link_store().load_snapshot())

    if snapshot is None:
        status_logger.info("No cached snapshot. Run 'link-mirror sync' first.")
        return

    if output_format == "json":
        print(json.dumps(snapshot.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    print(f"{snapshot.date_info.date} {snapshot.date_info.weekday}".strip())
    for category in snapshot.categories:
        print(f"\n{category}")
        for record in snapshot.records_by_category.get(category, []):
            print(f"  {record.name}: {record.url}")


@main.command()
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt")
@handle_cli_errors
def clear_cache(confirm: bool) -> None:
    """Remove the cached snapshot and sync status."""
    status_logger = get_status_logger()

    if not confirm:
        click.confirm("This will remove the cached snapshot. Continue?", abort=True)

    asyncio.run(get_link_store().clear_snapshot())
    status_logger.info("Cached snapshot cleared.")


@main.command()
@click.argument("state", type=click.Choice(["on", "off"]))
@handle_cli_errors
def test_mode(state: str) -> None:
    """Serve built-in sample links instead of the remote table."""
    status_logger = get_status_logger()
    enabled = state == "on"

    async def _toggle() -> None:
        store = get_link_store()
        await store.set_test_mode(enabled)
        await store.clear_snapshot()

    asyncio.run(_toggle())
    status_logger.info(f"Test mode {'enabled' if enabled else 'disabled'}")


@main.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def test_connection(verbose: bool) -> None:
    """Check the stored settings by fetching the remote table once."""
    status_logger = get_status_logger()

    async def _check() -> int:
        app_config = get_config_manager().load_config()
        remote_config = await _active_remote_config()
        async with RemoteClient(
            app_config.remote.base_url, app_config.remote.request_timeout
        ) as client:
            broker = CredentialBroker(client, get_link_store())
            fetcher = RemoteDataFetcher(
                client, broker, fields=app_config.fields, page_size=app_config.remote.page_size
            )
            snapshot = await fetcher.fetch_all(remote_config)
        return snapshot.record_count()

    count = asyncio.run(_check())
    status_logger.info(f"Connection OK, {count} link(s) readable")


@main.command()
@click.argument("url")
@click.argument("name")
@click.option("--category", required=True, help="Category for the new link")
@click.option("--sort", "sort_key", type=int, default=None, help="Sort position in the category")
@click.option("--icon", default="", help="Icon URL or inline icon text")
@handle_cli_errors
def add_link(url: str, name: str, category: str, sort_key: int | None, icon: str) -> None:
    """Add a link to the remote table and resync.

    URL: Address of the site
    NAME: Display name (at most 50 characters)
    """
    status_logger = get_status_logger()

    errors = validate_link(url, name, category)
    if errors:
        for field, message in errors.items():
            status_logger.error(f"{field}: {message}")
        sys.exit(1)

    link = NewLink(name=name.strip(), url=url.strip(), category=category.strip(), icon_ref=icon)
    if sort_key is not None:
        link = link.model_copy(update={"sort_key": sort_key})

    async def _add(scheduler: SyncScheduler) -> tuple[str | None, SyncState | None]:
        if await scheduler.is_test_mode():
            return None, None
        remote_config = await _active_remote_config()
        editor = RecordEditor(
            scheduler.fetcher.client, scheduler.fetcher.broker, fields=scheduler.app_config.fields
        )
        record_id = await editor.add_record(remote_config, link)
        return record_id, await scheduler.sync_now()

    record_id, state = asyncio.run(_with_scheduler(_add))
    if record_id is None:
        status_logger.info(f"Test mode: '{link.name}' not sent to the remote table")
    else:
        status_logger.info(f"Added '{link.name}' ({record_id})")
    _warn_if_resync_failed(state)


@main.command()
@click.argument("record_id")
@handle_cli_errors
def delete_link(record_id: str) -> None:
    """Delete a link from the remote table by record ID and resync."""
    status_logger = get_status_logger()

    async def _delete(scheduler: SyncScheduler) -> SyncState | None:
        if await scheduler.is_test_mode():
            return None
        remote_config = await _active_remote_config()
        editor = RecordEditor(
            scheduler.fetcher.client, scheduler.fetcher.broker, fields=scheduler.app_config.fields
        )
        await editor.delete_record(remote_config, record_id)
        return await scheduler.sync_now()

    state = asyncio.run(_with_scheduler(_delete))
    if state is None:
        status_logger.info(f"Test mode: delete of {record_id} not sent to the remote table")
    else:
        status_logger.info(f"Deleted {record_id}")
        _warn_if_resync_failed(state)


if __name__ == "__main__":
    main()
