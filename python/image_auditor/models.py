from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class IssueType(str, Enum):
    BROKEN = "Broken Image Url"
    OVERSIZED = "Oversized Image"


class ImageReference(BaseModel):
    """ページ内で見つかった画像参照。raw_value は正規化前の文字列そのまま。"""

    model_config = ConfigDict(frozen=True)

    raw_value: str
    source_page: str


class InspectionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    reachable: bool
    status_code: Optional[int] = None
    byte_length: Optional[int] = None

    @classmethod
    def unreachable(cls, status_code: Optional[int] = None) -> "InspectionOutcome":
        return cls(reachable=False, status_code=status_code, byte_length=None)


class PageFetchResult(BaseModel):
    url: str
    text: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.text is not None


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: str
    page_title: str = Field(alias="pageTitle")
    issue_type: IssueType = Field(alias="issueType")
    broken_image_url: Optional[str] = Field(default=None, alias="brokenImageUrl")
    oversized_image_url: Optional[str] = Field(default=None, alias="oversizedImageUrl")
    image_size_kb: Optional[int] = Field(default=None, alias="imageSizeKB")

    @model_validator(mode="after")
    def _check_url_matches_type(self) -> "Issue":
        if self.issue_type is IssueType.BROKEN:
            if self.broken_image_url is None or self.oversized_image_url is not None:
                raise ValueError("Broken の Issue には brokenImageUrl のみを設定してください。")
        else:
            if self.oversized_image_url is None or self.broken_image_url is not None:
                raise ValueError("Oversized の Issue には oversizedImageUrl のみを設定してください。")
        return self


class RunStatistics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_images_checked: int = Field(default=0, alias="totalImagesChecked")
    images_with_known_size: int = Field(default=0, alias="imagesWithKnownSize")
    oversized_images_found: int = Field(default=0, alias="oversizedImagesFound")

    def record(self, outcome: InspectionOutcome, issue: Optional[Issue]) -> None:
        # await を挟まずに呼ばれる前提なので、イベントループ上では不可分に更新される
        self.total_images_checked += 1
        if outcome.byte_length is not None:
            self.images_with_known_size += 1
        if issue is not None and issue.issue_type is IssueType.OVERSIZED:
            self.oversized_images_found += 1


class AuditResult(BaseModel):
    pages: List[str] = Field(default_factory=list)
    issues: List[Issue] = Field(default_factory=list)
    statistics: RunStatistics = Field(default_factory=RunStatistics)


class AuditReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(alias="baseUrl")
    sitemap_url: str = Field(alias="sitemap")
    generated_at: datetime = Field(alias="generatedAt")
    issues_count: int = Field(alias="issuesCount")
    issues: List[Issue] = Field(default_factory=list)
    statistics: RunStatistics = Field(default_factory=RunStatistics)
