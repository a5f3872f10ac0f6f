"""
Downloads answer sheet files from the object store by URL.
"""

import logging
from typing import Optional

import httpx

from ..config.settings import settings
from ..errors import FileFetchError
from .model_invoker import InlineDocument

logger = logging.getLogger(__name__)

# Quiet per-request logging from httpx
logging.getLogger("httpx").setLevel(logging.WARNING)


class FileFetcher:
    """Fetches raw file bytes. Pass a client to reuse connections or mock transport."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout or settings.FILE_FETCH_TIMEOUT

    async def _get(self, url: str) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(url)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url)

    async def fetch(self, url: Optional[str]) -> InlineDocument:
        """Download the file at url and wrap it with its MIME type."""
        if not url:
            raise FileFetchError("Answer sheet has no file_url")

        try:
            response = await self._get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch answer sheet file {url}: {e}")
            raise FileFetchError(f"Failed to fetch answer sheet file: {e}") from e

        logger.info(f"Fetched {len(response.content) / 1024:.1f}KB from {url}")
        return InlineDocument.from_url(response.content, url)
