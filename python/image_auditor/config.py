from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ImageAuditBot/1.0)"
DEFAULT_IMAGE_ACCEPT = "image/avif,image/webp,image/*,*/*;q=0.8"
OVERSIZED_THRESHOLD_BYTES = 500 * 1024


class OutputConfig(BaseModel):
    directory: Path = Field(default=Path("./reports"))
    write_json: bool = True
    write_csv: bool = True


class NotionConfig(BaseModel):
    api_key: Optional[str] = None
    parent_page_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "NotionConfig":
        return cls(
            api_key=os.getenv("NOTION_API_KEY") or None,
            parent_page_id=os.getenv("NOTION_PARENT_PAGE_ID") or None,
        )


class AuditConfig(BaseModel):
    base_url: HttpUrl
    sitemap_url: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    image_accept: str = DEFAULT_IMAGE_ACCEPT
    concurrency: int = 6
    request_timeout: float = 15
    oversized_threshold_bytes: int = OVERSIZED_THRESHOLD_BYTES
    max_sitemap_depth: int = 5
    output: OutputConfig = Field(default_factory=OutputConfig)
    notion: NotionConfig = Field(default_factory=NotionConfig)

    @field_validator("concurrency")
    @classmethod
    def _validate_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("concurrency は 1 以上を指定してください。")
        return value

    @field_validator("request_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout は 0 より大きい値を指定してください。")
        return value

    @field_validator("max_sitemap_depth")
    @classmethod
    def _validate_sitemap_depth(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_sitemap_depth は 0 以上を指定してください。")
        return value

    @property
    def site_root(self) -> str:
        # HttpUrl はパスが空だと末尾に "/" を補うため、比較用に取り除く
        root = str(self.base_url)
        if root.endswith("/"):
            root = root[:-1]
        return root

    def resolved_sitemap_url(self) -> str:
        if self.sitemap_url:
            return self.sitemap_url
        return f"{self.site_root}/sitemap.xml"
