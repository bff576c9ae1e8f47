from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import DEFAULT_IMAGE_ACCEPT, DEFAULT_USER_AGENT
from .models import InspectionOutcome

logger = logging.getLogger(__name__)


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    if length < 0:
        return None
    return length


class ImageInspector:
    """HEAD リクエストだけで画像の到達可否と Content-Length を調べる。

    4xx/5xx は例外ではなくデータとして扱い、通信エラーは到達不可として返す。
    本文はダウンロードしない。
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = 15,
        user_agent: str = DEFAULT_USER_AGENT,
        accept: str = DEFAULT_IMAGE_ACCEPT,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._user_agent = user_agent
        self._accept = accept

    async def inspect(self, url: str, referer: str) -> InspectionOutcome:
        try:
            headers = {
                "User-Agent": self._user_agent,
                "Accept": self._accept,
                # ヘッダー値は ASCII のみ。日本語を含むページURLはパーセントエンコードして渡す
                "Referer": str(httpx.URL(referer)),
            }
            response = await self._client.head(url, headers=headers, timeout=self._timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("画像を確認できませんでした: %s (%s)", url, str(exc) or exc.__class__.__name__)
            return InspectionOutcome.unreachable()

        status_code = response.status_code
        byte_length = parse_content_length(response.headers.get("content-length"))
        logger.debug("HEAD %s -> %s (%s bytes)", url, status_code, byte_length)
        return InspectionOutcome(
            reachable=200 <= status_code < 300,
            status_code=status_code,
            byte_length=byte_length,
        )
