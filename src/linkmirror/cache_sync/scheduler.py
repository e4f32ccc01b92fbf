# SPDX-License-Identifier: MIT
"""Sync scheduler: periodic and manual syncs with single-flight and retry."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from ..cache import LinkStore, get_link_store, restored_state
from ..cache.link_store import utc_now
from ..change_detector import has_changed
from ..config import AppConfig, get_config_manager
from ..credential_broker import CredentialBroker
from ..enums import SyncStatus, SyncTrigger
from ..exceptions import ConfigurationError, RemoteError, StoreError
from ..logging_config import get_detail_logger, get_status_logger
from ..models import RemoteConfig, Snapshot, SyncComplete, SyncState
from ..record_mapper import build_mock_snapshot
from ..remote_client import RemoteClient
from ..remote_records import RemoteDataFetcher
from ..retry_policy import RetryPolicy


SyncListener = Callable[[SyncComplete], Awaitable[None] | None]

NOT_CONFIGURED_MESSAGE = "Remote source is not configured"


class SyncScheduler:
    """Owns the sync state machine.

    States are idle, syncing, success and error. A sync started while another
    is running returns immediately without queueing. Manual triggers and
    periodic ticks start a fresh attempt chain; retryable failures rearm a
    one-shot retry timer until the retry policy is exhausted.
    """

    def __init__(
        self,
        store: LinkStore,
        fetcher: RemoteDataFetcher,
        app_config: AppConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.fetcher = fetcher
        self.app_config = app_config or AppConfig()
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=self.app_config.sync.max_retries,
            interval=self.app_config.sync.retry_interval_seconds,
        )
        self.initial_delay = self.app_config.sync.initial_delay_seconds
        self.clock = clock
        self.detail_logger = get_detail_logger()
        self.status_logger = get_status_logger()

        self._state = SyncState()
        self._interval_minutes: int | None = None
        self._periodic_task: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[None] | None = None
        self._spawned: set[asyncio.Task[Any]] = set()
        self._listeners: list[SyncListener] = []
        # Bumped by stop_periodic; a sync started before the bump never arms a retry
        self._generation = 0
        self._idle = asyncio.Event()
        self._idle.set()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def restore(self) -> SyncState:
        """Load the persisted status at startup; defaults to idle."""
        try:
            persisted = await self.store.load_sync_state()
        except StoreError as e:
            self.detail_logger.warning(f"Could not restore sync status: {e}")
            persisted = None

        self._state = restored_state(persisted).model_copy(update={"retry_count": 0})
        self.retry_policy.reset()
        self.detail_logger.info(f"Restored sync status: {self._state.status.value}")
        return self.get_status()

    def get_status(self) -> SyncState:
        periodic = self._periodic_task is not None and not self._periodic_task.done()
        return self._state.model_copy(
            update={
                "periodic_enabled": periodic,
                "interval_minutes": self._interval_minutes if periodic else None,
            }
        )

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register a listener for change notifications.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sync_now(self) -> SyncState:
        """Run one sync now unless one is already in flight.

        Returns:
            The state after the sync, or the current state if skipped
        """
        return await self._sync(SyncTrigger.MANUAL)

    async def start_periodic(self, interval_minutes: int) -> SyncState:
        """Install the recurring timer and run one immediate sync.

        Args:
            interval_minutes: Minutes between periodic ticks

        Returns:
            State after the immediate sync
        """
        if interval_minutes < 1:
            raise ValueError("interval_minutes must be at least 1")

        self._cancel_timers()
        self._interval_minutes = interval_minutes
        self._periodic_task = asyncio.create_task(
            self._periodic_loop(interval_minutes * 60.0, self.initial_delay)
        )
        self.status_logger.info(
            f"Periodic sync started, every {interval_minutes} minute(s)"
        )
        return await self._sync(SyncTrigger.PERIODIC)

    def stop_periodic(self) -> None:
        """Cancel the recurring timer and any pending retry.

        The persisted snapshot is left untouched. No tick or retry fires after
        this returns.
        """
        self._cancel_timers()
        self._generation += 1
        self._interval_minutes = None
        self.retry_policy.reset()
        self._state = self._state.model_copy(update={"retry_count": 0})
        self.status_logger.info("Periodic sync stopped")

    async def close(self) -> None:
        """Stop timers, wait for an in-flight sync and release the HTTP session."""
        timers = [t for t in (self._periodic_task, self._retry_task) if t is not None]
        self.stop_periodic()
        if timers or self._spawned:
            await asyncio.gather(*timers, *self._spawned, return_exceptions=True)
        await self._idle.wait()
        await self.fetcher.client.close()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _cancel_timers(self) -> None:
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None
        self._cancel_retry()

    def _cancel_retry(self) -> None:
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None

    async def _periodic_loop(self, interval_seconds: float, initial_delay: float) -> None:
        await asyncio.sleep(initial_delay)
        while True:
            self.detail_logger.info("Periodic sync tick")
            self._spawn_sync(SyncTrigger.PERIODIC)
            await asyncio.sleep(interval_seconds)

    def _spawn_sync(self, trigger: SyncTrigger) -> None:
        # Ticks run the sync in their own task so cancelling a timer never
        # cancels a sync that is already under way
        task = asyncio.create_task(self._sync(trigger))
        self._spawned.add(task)
        task.add_done_callback(self._spawned.discard)

    def _arm_retry(self, delay: float) -> None:
        self._cancel_retry()
        self._retry_task = asyncio.create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        await self._sync(SyncTrigger.RETRY)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def _sync(self, trigger: SyncTrigger) -> SyncState:
        if self._state.status is SyncStatus.SYNCING:
            self.detail_logger.info(f"Sync already in progress, skipping {trigger.value} trigger")
            return self.get_status()

        # Claimed before the first await: this is the single-flight guard
        self._state = self._state.model_copy(
            update={"status": SyncStatus.SYNCING, "message": "Syncing...", "updated_at": self.clock()}
        )
        self._idle.clear()
        generation = self._generation

        if trigger is not SyncTrigger.RETRY:
            self._cancel_retry()
            self.retry_policy.reset()
            self._state = self._state.model_copy(update={"retry_count": 0})

        self.detail_logger.info(f"Starting {trigger.value} sync")

        try:
            await self._persist_state()
            snapshot, changed = await self._run_attempt()
            await self._succeed(snapshot, changed)
        except ConfigurationError as e:
            await self._fail(f"{NOT_CONFIGURED_MESSAGE}: {e}")
        except StoreError as e:
            await self._fail(f"Cache store failure: {e}")
        except RemoteError as e:
            await self._fail_and_retry(e, generation)
        except asyncio.CancelledError:
            self._state = self._state.model_copy(
                update={"status": SyncStatus.IDLE, "message": "Sync cancelled", "updated_at": self.clock()}
            )
            raise
        except Exception as e:
            self.detail_logger.exception(f"Unexpected error during sync: {e}")
            await self._fail(f"Unexpected error: {e}")
        finally:
            self._idle.set()

        return self.get_status()

    async def _run_attempt(self) -> tuple[Snapshot, bool]:
        if await self.is_test_mode():
            self.detail_logger.info("Test mode enabled, using mock snapshot")
            snapshot = build_mock_snapshot(self.clock())
        else:
            config = await self._load_remote_config()
            snapshot = await self.fetcher.fetch_all(config)

        previous = await self.store.load_snapshot()
        changed = has_changed(previous, snapshot)
        if changed:
            await self.store.save_snapshot(snapshot)
        return snapshot, changed

    async def is_test_mode(self) -> bool:
        if self.app_config.sync.test_mode:
            return True
        return await self.store.get_test_mode()

    async def _load_remote_config(self) -> RemoteConfig:
        config = await self.store.load_remote_config()
        if config is None:
            config = self.app_config.fallback_remote_config()

        if not config.has_credentials() or not config.has_table():
            raise ConfigurationError("app_id, app_secret, app_token and table_id are required")
        return config

    async def _succeed(self, snapshot: Snapshot, changed: bool) -> None:
        now = self.clock()
        self.retry_policy.reset()

        if changed:
            message = (
                f"Synced {snapshot.record_count()} links "
                f"in {len(snapshot.categories)} categories"
            )
        else:
            message = "Sync complete, no changes"

        self._state = self._state.model_copy(
            update={
                "status": SyncStatus.SUCCESS,
                "message": message,
                "last_sync_at": now,
                "retry_count": 0,
                "updated_at": now,
            }
        )
        await self._persist_state()
        self.status_logger.info(message)

        if changed:
            await self._notify(SyncComplete(timestamp=now))

    async def _fail(self, message: str) -> None:
        self._state = self._state.model_copy(
            update={"status": SyncStatus.ERROR, "message": message, "updated_at": self.clock()}
        )
        await self._persist_state()
        self.status_logger.error(f"Sync failed: {message}")

    async def _fail_and_retry(self, error: RemoteError, generation: int) -> None:
        if generation != self._generation:
            self.detail_logger.info("Periodic sync was stopped during this attempt, not retrying")
            await self._fail(str(error))
            return

        decision = self.retry_policy.register_failure(error)
        self._state = self._state.model_copy(
            update={
                "status": SyncStatus.ERROR,
                "message": decision.message,
                "retry_count": self.retry_policy.retry_count,
                "updated_at": self.clock(),
            }
        )
        await self._persist_state()

        if decision.retry:
            self.status_logger.warning(decision.message)
            self._arm_retry(decision.delay)
        else:
            self.status_logger.error(decision.message)

    async def _persist_state(self) -> None:
        """Persist the current state; the in-memory state stays authoritative."""
        try:
            await self.store.save_sync_state(self._state)
        except StoreError as e:
            self.detail_logger.warning(f"Could not persist sync status: {e}")

    async def _notify(self, event: SyncComplete) -> None:
        # Delivery is best effort: a failing listener never fails the sync
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.detail_logger.warning(f"Sync listener failed: {e}")


def create_sync_scheduler(
    app_config: AppConfig | None = None,
    store: LinkStore | None = None,
) -> SyncScheduler:
    """Wire a scheduler with its client, credential broker and fetcher.

    Args:
        app_config: Application config; loaded from the config manager if None
        store: Link store; the global store if None

    Returns:
        A scheduler ready to restore() and use
    """
    config = app_config or get_config_manager().load_config()
    link_store = store or get_link_store()

    client = RemoteClient(
        base_url=config.remote.base_url, timeout=config.remote.request_timeout
    )
    broker = CredentialBroker(client, link_store)
    fetcher = RemoteDataFetcher(
        client, broker, fields=config.fields, page_size=config.remote.page_size
    )
    return SyncScheduler(link_store, fetcher, app_config=config)
