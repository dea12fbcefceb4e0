"""
Tests for MemoryStorage and HttpPageStorage.

HTTP calls are mocked by patching httpx.AsyncClient.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from builder.kernel.storage import HttpPageStorage, MemoryStorage, PersistenceError


def mock_client_with(method: str, response=None, side_effect=None):
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    setattr(mock_client, method, AsyncMock(return_value=response, side_effect=side_effect))
    return mock_client


def response(status_code: int, body=None):
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = body
    return mock_response


class TestMemoryStorage:
    @pytest.mark.asyncio
    async def test_put_and_get(self):
        storage = MemoryStorage()
        await storage.put("home", {"id": "root", "kind": "root"})
        assert await storage.get("home") == {"id": "root", "kind": "root"}

    @pytest.mark.asyncio
    async def test_missing_is_none(self):
        assert await MemoryStorage().get("home") is None

    @pytest.mark.asyncio
    async def test_stored_copy_is_isolated(self):
        storage = MemoryStorage()
        tree = {"id": "root", "kind": "root", "children": []}
        await storage.put("home", tree)
        tree["children"].append("x")
        assert (await storage.get("home"))["children"] == []

    @pytest.mark.asyncio
    async def test_delete(self):
        storage = MemoryStorage()
        await storage.put("home", {})
        await storage.delete("home")
        await storage.delete("home")
        assert await storage.get("home") is None


class TestHttpPageStorage:
    @pytest.mark.asyncio
    async def test_get_returns_body(self):
        body = {"tree": {"id": "root", "kind": "root"}}
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_client_with("get", response(200, body))
            mock_client_cls.return_value = mock_client

            result = await HttpPageStorage("https://api.test/", token="t0k").get("home")

        assert result == body
        url = mock_client.get.call_args.args[0]
        assert url == "https://api.test/pages/home"
        assert mock_client.get.call_args.kwargs["headers"]["Authorization"] == "Bearer t0k"

    @pytest.mark.asyncio
    async def test_get_404_is_none(self):
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = mock_client_with("get", response(404))
            assert await HttpPageStorage("https://api.test").get("home") is None

    @pytest.mark.asyncio
    async def test_get_server_error_raises(self):
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = mock_client_with("get", response(500))
            with pytest.raises(PersistenceError) as exc:
                await HttpPageStorage("https://api.test").get("home")
        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_put_posts_tree(self):
        tree = {"id": "root", "kind": "root", "children": []}
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_client_with("post", response(200, {"ok": True}))
            mock_client_cls.return_value = mock_client

            await HttpPageStorage("https://api.test").put("about", tree)

        assert mock_client.post.call_args.args[0] == "https://api.test/pages/about"
        assert mock_client.post.call_args.kwargs["json"] == {"tree": tree}
        assert "Authorization" not in mock_client.post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_put_non_2xx_raises(self):
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = mock_client_with("post", response(422))
            with pytest.raises(PersistenceError):
                await HttpPageStorage("https://api.test").put("home", {})

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = mock_client_with("post", side_effect=httpx.ConnectError("refused"))
            with pytest.raises(PersistenceError) as exc:
                await HttpPageStorage("https://api.test").put("home", {})
        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_delete_tolerates_404(self):
        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = mock_client_with("delete", response(404))
            await HttpPageStorage("https://api.test").delete("home")
