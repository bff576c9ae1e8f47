from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

WHITESPACE_PATTERN = re.compile(r"\s")
QUOTE_CHARS = "\"'"


def contains_whitespace(value: str) -> bool:
    return bool(WHITESPACE_PATTERN.search(value or ""))


def strip_quotes(value: str) -> str:
    value = value.strip()
    if value[:1] in QUOTE_CHARS:
        value = value[1:]
    if value[-1:] in QUOTE_CHARS:
        value = value[:-1]
    return value


def normalize_url(base_page_url: str, raw_value: Optional[str]) -> Optional[str]:
    """ページURLを基準に画像参照を絶対URLへ解決する。解決できない場合は None。"""
    if not raw_value:
        return None
    candidate = strip_quotes(str(raw_value))
    if not candidate:
        return None
    try:
        absolute = urljoin(base_page_url, candidate)
        parts = urlsplit(absolute)
        # 不正なポート番号は port 参照時に初めて ValueError になる
        _ = parts.port
    except ValueError:
        return None
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        return None
    return absolute


def strip_fragment(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
