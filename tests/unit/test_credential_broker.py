# SPDX-License-Identifier: MIT
"""Tests for the credential broker."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from linkmirror.constants import AUTH_PATH
from linkmirror.credential_broker import CredentialBroker
from linkmirror.exceptions import ConfigurationError, RemoteError
from linkmirror.models import Credential, RemoteConfig


@pytest.fixture
def remote_config():
    return RemoteConfig(
        app_id="cli_a", app_secret="secret", app_token="bascn1", table_id="tbl1"
    )


@pytest.fixture
def mock_client():
    client = Mock()
    client.request_json = AsyncMock(
        return_value={
            "code": 0,
            "msg": "ok",
            "tenant_access_token": "t-first",
            "expire": 7200,
        }
    )
    return client


@pytest.fixture
def broker(mock_client, link_store, clock):
    return CredentialBroker(mock_client, link_store, clock=clock)


class TestCredentialBroker:
    """Test cases for CredentialBroker."""

    @pytest.mark.asyncio
    async def test_requests_token_with_app_credentials(
        self, broker, mock_client, remote_config, fixed_now
    ):
        credential = await broker.get_token(remote_config)

        assert credential.token == "t-first"
        assert credential.expires_at == fixed_now + timedelta(hours=2)
        mock_client.request_json.assert_awaited_once_with(
            "POST",
            AUTH_PATH,
            json_body={"app_id": "cli_a", "app_secret": "secret"},
        )

    @pytest.mark.asyncio
    async def test_valid_token_is_reused(self, broker, mock_client, remote_config, clock):
        first = await broker.get_token(remote_config)
        clock.advance(hours=1, minutes=59, seconds=59)
        second = await broker.get_token(remote_config)

        assert first == second
        assert mock_client.request_json.await_count == 1

    @pytest.mark.asyncio
    async def test_token_is_expired_at_its_expiry_instant(
        self, broker, mock_client, remote_config, clock
    ):
        await broker.get_token(remote_config)
        mock_client.request_json.return_value = {
            "code": 0,
            "tenant_access_token": "t-second",
        }

        clock.advance(hours=2)
        credential = await broker.get_token(remote_config)

        assert credential.token == "t-second"
        assert mock_client.request_json.await_count == 2

    @pytest.mark.asyncio
    async def test_token_is_persisted_and_reused_by_new_broker(
        self, broker, mock_client, link_store, clock, remote_config
    ):
        await broker.get_token(remote_config)

        fresh_client = Mock()
        fresh_client.request_json = AsyncMock()
        restarted = CredentialBroker(fresh_client, link_store, clock=clock)
        credential = await restarted.get_token(remote_config)

        assert credential.token == "t-first"
        fresh_client.request_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_request(
        self, broker, mock_client, remote_config
    ):
        async def slow_response(*args, **kwargs):
            await asyncio.sleep(0.05)
            return {"code": 0, "tenant_access_token": "t-shared"}

        mock_client.request_json.side_effect = slow_response

        results = await asyncio.gather(
            broker.get_token(remote_config), broker.get_token(remote_config)
        )

        assert [c.token for c in results] == ["t-shared", "t-shared"]
        assert mock_client.request_json.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_credentials_raise_configuration_error(
        self, broker, mock_client
    ):
        with pytest.raises(ConfigurationError, match="app_id and app_secret"):
            await broker.get_token(RemoteConfig(app_token="bascn1", table_id="tbl1"))

        mock_client.request_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_code_raises_remote_error(
        self, broker, mock_client, remote_config
    ):
        mock_client.request_json.return_value = {"code": 10003, "msg": "invalid param"}

        with pytest.raises(RemoteError, match="invalid param") as exc_info:
            await broker.get_token(remote_config)

        assert exc_info.value.code == 10003

    @pytest.mark.asyncio
    async def test_missing_token_raises_remote_error(
        self, broker, mock_client, remote_config
    ):
        mock_client.request_json.return_value = {"code": 0, "msg": "ok"}

        with pytest.raises(RemoteError, match="did not contain an access token"):
            await broker.get_token(remote_config)

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_request(
        self, broker, mock_client, link_store, remote_config
    ):
        await broker.get_token(remote_config)

        await broker.invalidate()

        assert await link_store.load_credential() is None
        await broker.get_token(remote_config)
        assert mock_client.request_json.await_count == 2

    @pytest.mark.asyncio
    async def test_expired_persisted_token_is_refreshed(
        self, broker, mock_client, link_store, remote_config, fixed_now
    ):
        await link_store.save_credential(
            Credential(token="t-old", expires_at=fixed_now - timedelta(seconds=1))
        )

        credential = await broker.get_token(remote_config)

        assert credential.token == "t-first"
        mock_client.request_json.assert_awaited_once()
