"""
Async page fetcher.
Retrieves a monitored page and parses it into a Document. Retrying is the
caller's job; every failure surfaces as FetchFailure.
"""

from typing import Dict, Optional

import httpx
import structlog

from .document import Document
from .exceptions import FetchFailure, ParseFailure
from utilities.config import config

logger = structlog.get_logger(__name__)


class PageFetcher:
    """HTTP GET + parse for monitored pages."""

    def __init__(self, timeout: Optional[float] = None, headers: Optional[Dict[str, str]] = None):
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds, defaults to the configured one
            headers: Request headers, defaults to the configured ones
        """
        self.client_config = {
            "timeout": timeout if timeout is not None else config.request_timeout,
            "headers": headers if headers is not None else config.get_headers(),
            "follow_redirects": True,
        }

    async def fetch(self, url: str) -> Document:
        """
        Fetch a page and parse it.

        Args:
            url: Page URL

        Returns:
            Parsed Document

        Raises:
            FetchFailure: On network errors, non-200 responses or unparsable bodies
        """
        try:
            async with httpx.AsyncClient(**self.client_config) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Request failed", url=url, error=str(e))
            raise FetchFailure(url, reason=str(e)) from e

        if response.status_code != 200:
            logger.warning(
                "Something went wrong, unexpected response status",
                url=url,
                status_code=response.status_code
            )
            raise FetchFailure(url, status_code=response.status_code)

        try:
            document = Document.from_html(response.text)
        except ParseFailure as e:
            raise FetchFailure(url, status_code=response.status_code, reason=str(e)) from e

        logger.info("Successfully received response", url=url, size_bytes=len(response.content))
        return document
