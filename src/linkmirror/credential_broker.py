# SPDX-License-Identifier: MIT
"""Acquisition and caching of the tenant bearer credential."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

from .cache.link_store import LinkStore, utc_now
from .constants import AUTH_PATH, SUCCESS_CODE, TOKEN_LIFETIME_SECONDS
from .exceptions import ConfigurationError, RemoteError
from .logging_config import get_detail_logger
from .models import Credential, RemoteConfig
from .remote_client import RemoteClient


detail_logger = get_detail_logger()


class CredentialBroker:
    """Hands out a valid bearer credential, refreshing it when expired.

    The credential is cached in memory and mirrored into the store so a
    restarted process can reuse it. Concurrent callers share one in-flight
    token request.
    """

    def __init__(
        self,
        client: RemoteClient,
        store: LinkStore,
        token_lifetime: timedelta = timedelta(seconds=TOKEN_LIFETIME_SECONDS),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.store = store
        self.token_lifetime = token_lifetime
        self.clock = clock
        self._credential: Credential | None = None
        self._loaded_from_store = False
        self._refresh_lock = asyncio.Lock()

    async def get_token(self, config: RemoteConfig) -> Credential:
        """Return a credential that is valid right now.

        Args:
            config: Remote config supplying app_id and app_secret

        Returns:
            A credential with now < expires_at

        Raises:
            ConfigurationError: If app_id or app_secret is missing
            RemoteError: If the token request fails
        """
        if not config.has_credentials():
            raise ConfigurationError("app_id and app_secret are required")

        cached = await self._cached_credential()
        if cached is not None:
            detail_logger.debug("Using cached access token")
            return cached

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited for the lock
            cached = await self._cached_credential()
            if cached is not None:
                return cached

            credential = await self._request_token(config)
            self._credential = credential
            await self.store.save_credential(credential)
            return credential

    async def invalidate(self) -> None:
        """Forget the cached credential after the remote side rejected it."""
        detail_logger.info("Invalidating cached access token")
        self._credential = None
        self._loaded_from_store = True
        await self.store.clear_credential()

    async def _cached_credential(self) -> Credential | None:
        if self._credential is None and not self._loaded_from_store:
            self._loaded_from_store = True
            self._credential = await self.store.load_credential()

        if self._credential is not None and self._credential.is_valid(self.clock()):
            return self._credential

        if self._credential is not None:
            detail_logger.info("Access token expired, a new one is required")
            self._credential = None
        return None

    async def _request_token(self, config: RemoteConfig) -> Credential:
        detail_logger.info("Requesting new access token")
        requested_at = self.clock()

        result = await self.client.request_json(
            "POST",
            AUTH_PATH,
            json_body={"app_id": config.app_id, "app_secret": config.app_secret},
        )

        code = result.get("code")
        token = result.get("tenant_access_token")
        if code != SUCCESS_CODE:
            raise RemoteError(
                f"Failed to obtain access token: {result.get('msg', 'unknown error')}",
                code=code,
            )
        if not token:
            raise RemoteError("Token response did not contain an access token")

        detail_logger.info("Access token obtained")
        return Credential(token=token, expires_at=requested_at + self.token_lifetime)
