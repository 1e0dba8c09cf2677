"""
Unit tests for the page fetcher.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from watcher.document import Document
from watcher.exceptions import FetchFailure
from watcher.fetcher import PageFetcher

URL = "https://fmi.unibuc.ro/category/anunturi-secretariat/"


def mock_response(status_code=200, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.content = text.encode("utf-8")
    return response


class TestPageFetcher:
    """Test cases for PageFetcher."""

    @pytest.fixture
    def fetcher(self):
        return PageFetcher(timeout=5, headers={"User-Agent": "test"})

    def test_client_config(self, fetcher):
        assert fetcher.client_config["timeout"] == 5
        assert fetcher.client_config["headers"] == {"User-Agent": "test"}
        assert fetcher.client_config["follow_redirects"] is True

    @pytest.mark.asyncio
    async def test_fetch_success(self, fetcher, announcements_html):
        with patch('httpx.AsyncClient') as mock_client:
            client = AsyncMock()
            client.get.return_value = mock_response(200, announcements_html(["post-1"]))
            mock_client.return_value.__aenter__.return_value = client

            document = await fetcher.fetch(URL)

            assert isinstance(document, Document)
            assert [item.id for item in document.select("article")] == ["post-1"]
            client.get.assert_awaited_once_with(URL)
            mock_client.assert_called_once_with(**fetcher.client_config)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [301, 404, 500, 503])
    async def test_non_200_is_a_failure(self, fetcher, status_code):
        with patch('httpx.AsyncClient') as mock_client:
            client = AsyncMock()
            client.get.return_value = mock_response(status_code, "<html></html>")
            mock_client.return_value.__aenter__.return_value = client

            with pytest.raises(FetchFailure) as exc_info:
                await fetcher.fetch(URL)

            assert exc_info.value.status_code == status_code
            assert exc_info.value.url == URL

    @pytest.mark.asyncio
    async def test_network_error_is_a_failure(self, fetcher):
        with patch('httpx.AsyncClient') as mock_client:
            client = AsyncMock()
            client.get.side_effect = httpx.ConnectError("connection refused")
            mock_client.return_value.__aenter__.return_value = client

            with pytest.raises(FetchFailure) as exc_info:
                await fetcher.fetch(URL)

            assert exc_info.value.status_code is None
            assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self, fetcher):
        with patch('httpx.AsyncClient') as mock_client:
            client = AsyncMock()
            client.get.side_effect = httpx.ReadTimeout("timed out")
            mock_client.return_value.__aenter__.return_value = client

            with pytest.raises(FetchFailure):
                await fetcher.fetch(URL)
