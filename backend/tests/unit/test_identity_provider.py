from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from activity_log.core.config import Settings
from activity_log.core.exceptions import IdentityProviderError
from activity_log.core.identity_provider import GraphIdentityProvider

EXTENSION_APP_ID = "11111111-2222-3333-4444-555555555555"
EXTENSION_PREFIX = "extension_11111111222233334444555555555555_"


def _make_settings(**overrides) -> Settings:
    values = {
        "AZURE_AD_TENANT_ID": "tenant-1",
        "AZURE_AD_CLIENT_ID": "client-1",
        "AZURE_AD_CLIENT_SECRET": "secret-1",
        "GRAPH_EXTENSION_APP_ID": EXTENSION_APP_ID,
    }
    values.update(overrides)
    return Settings(**values)


def _response(status: int, payload=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)
    return response


def _context(response: MagicMock) -> AsyncMock:
    context = AsyncMock()
    context.__aenter__.return_value = response
    context.__aexit__.return_value = None
    return context


def _mock_client_session(session: MagicMock) -> AsyncMock:
    mock_client_session = AsyncMock()
    mock_client_session.__aenter__.return_value = session
    mock_client_session.__aexit__.return_value = None
    return mock_client_session


def _token_response() -> MagicMock:
    return _response(200, {"access_token": "graph-token", "expires_in": 3600})


@pytest.mark.anyio
async def test_initialize_without_credentials_stays_uninitialized():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings(AZURE_AD_CLIENT_SECRET=""))

    assert provider.initialized is False
    with pytest.raises(IdentityProviderError):
        await provider.list_users()


@pytest.mark.anyio
async def test_list_users_follows_next_link_and_maps_attributes():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    first_page = _response(200, {
        "value": [
            {
                "id": "u-1",
                "displayName": "Ana Lima",
                "mail": None,
                "userPrincipalName": "ana@contoso.com",
                "createdDateTime": "2024-01-10T09:00:00Z",
                f"{EXTENSION_PREFIX}funcao": "Fiscal",
                f"{EXTENSION_PREFIX}matricula": "A-1",
            }
        ],
        "@odata.nextLink": "https://graph.microsoft.com/v1.0/users?$skiptoken=abc",
    })
    second_page = _response(200, {
        "value": [
            {
                "id": "u-2",
                "displayName": "Bruno",
                "mail": "bruno@contoso.com",
                "signInActivity": {"lastSignInDateTime": "2024-05-01T12:00:00Z"},
            }
        ],
    })

    session = MagicMock()
    session.post.return_value = _context(_token_response())
    session.get.side_effect = [_context(first_page), _context(second_page)]

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        users = await provider.list_users()

    assert [u.uid for u in users] == ["u-1", "u-2"]
    ana, bruno = users
    assert ana.email == "ana@contoso.com"
    assert ana.custom_attributes == {"funcao": "Fiscal", "matricula": "A-1"}
    assert ana.creation_time.year == 2024
    assert bruno.email == "bruno@contoso.com"
    assert bruno.custom_attributes == {}
    assert bruno.last_sign_in_time.month == 5

    first_url = session.get.call_args_list[0].args[0]
    assert first_url.startswith("https://graph.microsoft.com/v1.0/users?$select=")
    assert f"{EXTENSION_PREFIX}role" in first_url
    assert session.get.call_args_list[1].args[0].endswith("$skiptoken=abc")
    assert session.get.call_args_list[0].kwargs["headers"] == {"Authorization": "Bearer graph-token"}


@pytest.mark.anyio
async def test_sign_in_activity_is_only_selected_when_enabled():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings(GRAPH_EXTENSION_APP_ID=""))
    assert "signInActivity" not in provider._select_fields()
    assert "extension_" not in provider._select_fields()

    enabled = GraphIdentityProvider()
    await enabled.initialize(_make_settings(GRAPH_INCLUDE_SIGN_IN_ACTIVITY=True))
    assert "signInActivity" in enabled._select_fields()


@pytest.mark.anyio
async def test_access_token_is_reused():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    session = MagicMock()
    session.post.return_value = _context(_token_response())
    session.get.side_effect = lambda *args, **kwargs: _context(_response(200, {"value": []}))

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        await provider.list_users()
        await provider.list_users()

    assert session.post.call_count == 1


@pytest.mark.anyio
async def test_token_failure_raises_identity_provider_error():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    session = MagicMock()
    session.post.return_value = _context(_response(401, text="invalid_client"))

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError, match="401"):
            await provider.list_users()


@pytest.mark.anyio
async def test_listing_failure_raises_identity_provider_error():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    session = MagicMock()
    session.post.return_value = _context(_token_response())
    session.get.return_value = _context(_response(403, text="Authorization_RequestDenied"))

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError, match="403"):
            await provider.list_users()


@pytest.mark.anyio
async def test_network_error_is_wrapped():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    session = MagicMock()
    session.post.side_effect = aiohttp.ClientConnectionError("unreachable")

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError, match="unreachable"):
            await provider.list_users()


@pytest.mark.anyio
async def test_check_connection():
    provider = GraphIdentityProvider()
    assert await provider.check_connection() is False

    await provider.initialize(_make_settings())
    session = MagicMock()
    session.post.return_value = _context(_token_response())

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        assert await provider.check_connection() is True


@pytest.mark.anyio
@pytest.mark.parametrize(
    "json_error",
    [json.JSONDecodeError("bad", "", 0), asyncio.TimeoutError()],
)
async def test_unreadable_listing_is_wrapped(json_error):
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    listing = _response(200)
    listing.json = AsyncMock(side_effect=json_error)
    session = MagicMock()
    session.post.return_value = _context(_token_response())
    session.get.return_value = _context(listing)

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError):
            await provider.list_users()


@pytest.mark.anyio
async def test_malformed_payloads_are_wrapped():
    provider = GraphIdentityProvider()
    await provider.initialize(_make_settings())

    session = MagicMock()
    session.post.return_value = _context(_response(200, {"token_type": "Bearer"}))

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError):
            await provider.list_users()

    session.post.return_value = _context(_token_response())
    session.get.return_value = _context(_response(200, {"value": [{"displayName": "No id"}]}))

    with patch(
        "activity_log.core.identity_provider.aiohttp.ClientSession",
        return_value=_mock_client_session(session),
    ):
        with pytest.raises(IdentityProviderError):
            await provider.list_users()
