# SPDX-License-Identifier: MIT
"""Authenticated access to the remote link table."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from .cache.link_store import utc_now
from .config import FieldMapping
from .constants import (
    PAGE_SIZE,
    RECORDS_PATH_TEMPLATE,
    SUCCESS_CODE,
    TOKEN_EXPIRED_CODE,
)
from .credential_broker import CredentialBroker
from .exceptions import AuthError, ConfigurationError, RemoteError
from .logging_config import get_detail_logger, get_status_logger
from .models import NewLink, RemoteConfig, Snapshot
from .record_mapper import build_snapshot
from .remote_client import RemoteClient


detail_logger = get_detail_logger()
status_logger = get_status_logger()


class _TableEndpoint:
    """Shared request path for calls against the configured table.

    A response carrying the credential-expired sentinel invalidates the
    credential and the call is repeated exactly once; a second sentinel in the
    same call is reported as RemoteError.
    """

    def __init__(self, client: RemoteClient, broker: CredentialBroker):
        self.client = client
        self.broker = broker

    def _records_path(self, config: RemoteConfig) -> str:
        if not config.has_table():
            raise ConfigurationError("app_token and table_id are required")
        return RECORDS_PATH_TEMPLATE.format(
            app_token=config.app_token, table_id=config.table_id
        )

    async def _call_once(
        self,
        config: RemoteConfig,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        json_body: dict[str, Any] | None,
        action: str,
    ) -> dict[str, Any]:
        credential = await self.broker.get_token(config)
        result = await self.client.request_json(
            method, path, token=credential.token, params=params, json_body=json_body
        )

        code = result.get("code")
        if code == TOKEN_EXPIRED_CODE:
            raise AuthError(code=code)
        if code != SUCCESS_CODE:
            raise RemoteError(
                f"Failed to {action}: {result.get('msg', 'unknown error')}", code=code
            )
        return result

    async def _call(
        self,
        config: RemoteConfig,
        method: str,
        path: str,
        action: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._call_once(config, method, path, params, json_body, action)
        except AuthError:
            detail_logger.info(f"Access token rejected while trying to {action}, re-authenticating")
            await self.broker.invalidate()

        try:
            return await self._call_once(config, method, path, params, json_body, action)
        except AuthError as e:
            raise RemoteError(
                f"Failed to {action}: access token rejected twice", code=e.code
            ) from e


class RemoteDataFetcher(_TableEndpoint):
    """Fetches the link table and turns it into a snapshot."""

    def __init__(
        self,
        client: RemoteClient,
        broker: CredentialBroker,
        fields: FieldMapping | None = None,
        page_size: int = PAGE_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(client, broker)
        self.fields = fields or FieldMapping()
        self.page_size = min(page_size, PAGE_SIZE)
        self.clock = clock

    async def fetch_all(self, config: RemoteConfig) -> Snapshot:
        """Fetch the first page of the table as a snapshot.

        Only one page of at most `page_size` rows is requested; larger tables
        are truncated.

        Args:
            config: Remote config for this attempt

        Returns:
            Snapshot with sorted categories and records

        Raises:
            ConfigurationError: If credentials or table settings are missing
            RemoteError: On a failed response, transport failure, or a second
                credential rejection
        """
        path = self._records_path(config)
        result = await self._call(
            config, "GET", path, "fetch records", params={"page_size": self.page_size}
        )

        data = result.get("data") or {}
        items = data.get("items") or []
        if data.get("has_more"):
            status_logger.warning(
                f"Remote table has more than {self.page_size} rows; "
                "only the first page is mirrored"
            )

        detail_logger.info(f"Fetched {len(items)} rows from remote table")
        return build_snapshot(items, self.fields, self.clock())


class RecordEditor(_TableEndpoint):
    """Adds and deletes rows of the link table."""

    def __init__(
        self,
        client: RemoteClient,
        broker: CredentialBroker,
        fields: FieldMapping | None = None,
    ):
        super().__init__(client, broker)
        self.fields = fields or FieldMapping()

    def _row_fields(self, link: NewLink) -> dict[str, Any]:
        row: dict[str, Any] = {
            self.fields.name: link.name,
            self.fields.category: link.category,
            self.fields.sort: link.sort_key,
            self.fields.url: {"link": link.url, "text": link.name},
        }
        if link.icon_ref:
            row[self.fields.icon] = {"link": link.icon_ref, "text": link.name}
        return row

    async def add_record(self, config: RemoteConfig, link: NewLink) -> str:
        """Create a row and return its record ID."""
        path = self._records_path(config)
        result = await self._call(
            config, "POST", path, "add record", json_body={"fields": self._row_fields(link)}
        )

        record = (result.get("data") or {}).get("record") or {}
        record_id = str(record.get("record_id") or "")
        detail_logger.info(f"Added remote record {record_id!r}")
        return record_id

    async def delete_record(self, config: RemoteConfig, record_id: str) -> None:
        """Delete a row by record ID."""
        if not record_id:
            raise ValueError("record_id is required")

        path = f"{self._records_path(config)}/{record_id}"
        await self._call(config, "DELETE", path, "delete record")
        detail_logger.info(f"Deleted remote record {record_id!r}")
