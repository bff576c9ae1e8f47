from __future__ import annotations

import logging

import httpx

from .models import PageFetchResult

logger = logging.getLogger(__name__)


class PageFetcher:
    """ページのHTMLを1回だけ取得する。失敗は例外ではなく PageFetchResult で返す。"""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 15) -> None:
        self._client = client
        self._timeout = timeout

    async def fetch(self, url: str) -> PageFetchResult:
        try:
            response = await self._client.get(url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("ページを取得できませんでした: %s (HTTP %s)", url, exc.response.status_code)
            return PageFetchResult(url=url, status_code=exc.response.status_code, error=str(exc))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("ページを取得できませんでした: %s (%s)", url, exc)
            return PageFetchResult(url=url, error=str(exc) or exc.__class__.__name__)

        return PageFetchResult(url=url, text=response.text, status_code=response.status_code)
