from __future__ import annotations

from typing import Optional

from .config import OVERSIZED_THRESHOLD_BYTES
from .models import InspectionOutcome, Issue, IssueType
from .urls import contains_whitespace


def size_in_kb(byte_length: int) -> int:
    # Python の round は偶数丸めなので、0.5 は常に切り上げる
    return int(byte_length / 1024 + 0.5)


class IssueClassifier:
    """検査結果1件を、Broken / Oversized の Issue に変換する（該当なしなら None）。"""

    def __init__(self, threshold_bytes: int = OVERSIZED_THRESHOLD_BYTES) -> None:
        self.threshold_bytes = threshold_bytes

    def classify(
        self,
        *,
        page: str,
        page_title: str,
        raw_value: str,
        absolute_url: Optional[str],
        outcome: InspectionOutcome,
    ) -> Optional[Issue]:
        is_broken = contains_whitespace(raw_value) or absolute_url is None or not outcome.reachable
        is_oversized = (
            outcome.reachable
            and outcome.byte_length is not None
            and outcome.byte_length > self.threshold_bytes
        )

        if is_broken:
            # 診断用に、正規化前の生の参照文字列をそのまま残す
            return Issue(
                page=page,
                page_title=page_title,
                issue_type=IssueType.BROKEN,
                broken_image_url=raw_value,
            )
        if is_oversized:
            return Issue(
                page=page,
                page_title=page_title,
                issue_type=IssueType.OVERSIZED,
                oversized_image_url=absolute_url,
                image_size_kb=size_in_kb(outcome.byte_length),
            )
        return None
