from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx
from pydantic import BaseModel

from .config import NotionConfig
from .models import Issue

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
TITLE_FALLBACK_LENGTH = 60

# 列の並び順は Notion 側で名前順になるため、数字の接頭辞で固定する
DATABASE_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "Name": {"title": {}},
    "1 Page Link": {"url": {}},
    "2 Issue Type": {"select": {}},
    "3 Broken image url": {"url": {}},
    "4 Oversized Image": {"url": {}},
    "5 Image": {"files": {}},
    "6 Image Size": {"number": {"format": "number"}},
}


class NotionSyncResult(BaseModel):
    database_id: Optional[str] = None
    created: int = 0
    failed: int = 0
    skipped_reason: Optional[str] = None


def row_title(issue: Issue) -> str:
    return issue.page_title or issue.page[:TITLE_FALLBACK_LENGTH] or "Page"


def build_row_properties(issue: Issue) -> Dict[str, Any]:
    files = []
    if issue.oversized_image_url:
        files.append(
            {
                "type": "external",
                "name": "Image",
                "external": {"url": issue.oversized_image_url},
            }
        )
    return {
        "Name": {"title": [{"type": "text", "text": {"content": row_title(issue)}}]},
        "1 Page Link": {"url": issue.page or None},
        "2 Issue Type": {"select": {"name": issue.issue_type.value}},
        "3 Broken image url": {"url": issue.broken_image_url},
        "4 Oversized Image": {"url": issue.oversized_image_url},
        "5 Image": {"files": files},
        "6 Image Size": {"number": issue.image_size_kb},
    }


class NotionSync:
    """検出した Issue を Notion のデータベースへ1行ずつ登録する。

    失敗してもレポート出力には影響させず、ログに残して続行する。
    """

    def __init__(
        self,
        api_key: Optional[str],
        parent_page_id: Optional[str],
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30,
    ) -> None:
        self._api_key = api_key
        self._parent_page_id = parent_page_id
        self._client = client
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: NotionConfig, **kwargs: Any) -> "NotionSync":
        return cls(config.api_key, config.parent_page_id, **kwargs)

    @property
    def configured(self) -> bool:
        return bool(self._api_key) and bool(self._parent_page_id)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
        }

    async def sync(self, issues: Sequence[Issue], title: str) -> NotionSyncResult:
        if not self.configured:
            logger.info("Notion の認証情報 (NOTION_API_KEY / NOTION_PARENT_PAGE_ID) がないため同期をスキップします。")
            return NotionSyncResult(skipped_reason="not configured")
        if not issues:
            logger.info("Issue がないため Notion 同期をスキップします。")
            return NotionSyncResult(skipped_reason="no issues")

        if self._client is not None:
            return await self._sync(self._client, issues, title)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._sync(client, issues, title)

    async def _sync(self, client: httpx.AsyncClient, issues: Sequence[Issue], title: str) -> NotionSyncResult:
        logger.info("Notion データベースを作成します。Issue 件数: %d", len(issues))
        database_id = await self._create_database(client, title)
        if database_id is None:
            return NotionSyncResult(skipped_reason="database creation failed")

        result = NotionSyncResult(database_id=database_id)
        for issue in issues:
            if await self._create_row(client, database_id, issue):
                result.created += 1
            else:
                result.failed += 1

        logger.info("Notion 同期が完了しました。登録: %d 件 / 失敗: %d 件", result.created, result.failed)
        return result

    async def _create_database(self, client: httpx.AsyncClient, title: str) -> Optional[str]:
        payload = {
            "parent": {"type": "page_id", "page_id": self._parent_page_id},
            "title": [{"type": "text", "text": {"content": title}}],
            "properties": DATABASE_PROPERTIES,
        }
        try:
            response = await client.post(
                f"{NOTION_API_URL}/databases",
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Notion データベースの作成に失敗しました: %s", exc)
            return None

        try:
            database_id = response.json().get("id")
        except ValueError:
            database_id = None
        if not database_id:
            logger.warning("Notion から database id が返されなかったため、行を追加できません。")
            return None
        logger.info("Notion データベースを作成しました: %s", database_id)
        return database_id

    async def _create_row(self, client: httpx.AsyncClient, database_id: str, issue: Issue) -> bool:
        payload = {
            "parent": {"database_id": database_id},
            "properties": build_row_properties(issue),
        }
        try:
            response = await client.post(
                f"{NOTION_API_URL}/pages",
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Notion への行追加に失敗しました: %s (%s)", issue.page, exc)
            return False
        return True