"""Unit tests for AuthDirectory."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from propdesk.services.auth_directory import AuthDirectory


def _page(users: list[dict]) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock(return_value=None)
    response.json = MagicMock(return_value={"users": users})
    return response


def _mock_client(mock_client_cls, **methods) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    for name, value in methods.items():
        setattr(mock_client, name, value)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.mark.unit
def test_disabled_without_key():
    assert not AuthDirectory("https://auth.example.com", "").is_enabled
    assert not AuthDirectory("", "key").is_enabled
    assert AuthDirectory("https://auth.example.com", "key").is_enabled


@pytest.mark.unit
async def test_list_users_returns_empty_when_disabled():
    with patch("httpx.AsyncClient") as mock_client_cls:
        assert await AuthDirectory("", "").list_users() == []
        mock_client_cls.assert_not_called()


@pytest.mark.unit
async def test_pages_until_short_page():
    directory = AuthDirectory("https://auth.example.com/", "svc-key", page_size=2)
    pages = [
        _page([{"id": "u1", "email": "a@x.com"}, {"id": "u2", "email": "b@x.com"}]),
        _page([{"id": "u3", "email": "c@x.com", "user_metadata": {"name": "Cy"}}]),
    ]
    with patch("httpx.AsyncClient") as mock_client_cls:
        client = _mock_client(mock_client_cls, get=AsyncMock(side_effect=pages))
        users = await directory.list_users()

    assert [u.id for u in users] == ["u1", "u2", "u3"]
    assert users[2].user_metadata == {"name": "Cy"}
    assert client.get.await_count == 2
    url = client.get.await_args_list[0].args[0]
    assert url == "https://auth.example.com/auth/v1/admin/users"
    kwargs = client.get.await_args_list[1].kwargs
    assert kwargs["params"] == {"page": 2, "per_page": 2}
    assert kwargs["headers"]["apikey"] == "svc-key"
    assert kwargs["headers"]["Authorization"] == "Bearer svc-key"


@pytest.mark.unit
async def test_http_error_degrades_to_empty():
    directory = AuthDirectory("https://auth.example.com", "svc-key")
    with patch("httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, get=AsyncMock(side_effect=httpx.ConnectError("refused")))
        assert await directory.list_users() == []


@pytest.mark.unit
async def test_bad_status_degrades_to_empty():
    directory = AuthDirectory("https://auth.example.com", "svc-key")
    response = MagicMock()
    response.raise_for_status = MagicMock(
        side_effect=httpx.HTTPStatusError("401", request=MagicMock(), response=MagicMock())
    )
    with patch("httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, get=AsyncMock(return_value=response))
        assert await directory.list_users() == []


def _payload(body) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock(return_value=None)
    response.json = MagicMock(return_value=body)
    return response


@pytest.mark.unit
class TestUnexpectedPayloads:
    """Whatever the provider answers, the listing degrades instead of raising."""

    @pytest.mark.parametrize("body", [
        [{"id": "u1"}],
        {"users": None},
        {"users": {"id": "u1"}},
        "maintenance",
    ])
    async def test_wrong_shape_degrades_to_empty(self, body):
        directory = AuthDirectory("https://auth.example.com", "svc-key")
        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, get=AsyncMock(return_value=_payload(body)))
            assert await directory.list_users() == []

    async def test_undecodable_body_degrades_to_empty(self):
        directory = AuthDirectory("https://auth.example.com", "svc-key")
        response = _payload(None)
        response.json = MagicMock(side_effect=ValueError("Expecting value"))
        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, get=AsyncMock(return_value=response))
            assert await directory.list_users() == []

    async def test_malformed_entry_is_skipped(self, caplog):
        directory = AuthDirectory("https://auth.example.com", "svc-key", page_size=10)
        page = _page([{"id": "u1", "email": "a@x.com"}, {"email": "no-id@x.com"}, "junk"])
        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, get=AsyncMock(return_value=page))
            users = await directory.list_users()
        assert [u.id for u in users] == ["u1"]
        assert "Skipping malformed auth user entry" in caplog.text
