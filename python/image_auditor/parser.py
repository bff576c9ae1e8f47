from __future__ import annotations

import re
from typing import List, Set

from bs4 import BeautifulSoup

from .urls import normalize_url, strip_fragment, strip_quotes

CSS_URL_PATTERN = re.compile(r"url\(([^)]+)\)", re.IGNORECASE)
SOCIAL_IMAGE_META = (
    {"property": "og:image"},
    {"name": "twitter:image"},
)


def parse_srcset(value: str) -> List[str]:
    """srcset の各候補から、最初の空白までの URL 部分だけを取り出す。"""
    urls: List[str] = []
    for candidate in value.split(","):
        tokens = candidate.strip().split()
        if tokens:
            urls.append(tokens[0])
    return urls


def parse_style_urls(style: str) -> List[str]:
    urls: List[str] = []
    for match in CSS_URL_PATTERN.finditer(style):
        url = strip_quotes(match.group(1))
        if url:
            urls.append(url)
    return urls


class ImageReferenceExtractor:
    """HTML とインラインスタイルから画像参照の生文字列を集める。"""

    def extract(self, html: str) -> Set[str]:
        return self.extract_from_soup(BeautifulSoup(html, "lxml"))

    def extract_from_soup(self, soup: BeautifulSoup) -> Set[str]:
        images: Set[str] = set()

        for node in soup.find_all("img"):
            self._add_source_attributes(node, images)

        for picture in soup.find_all("picture"):
            for source in picture.find_all("source"):
                self._add_source_attributes(source, images)

        for node in soup.find_all(style=True):
            images.update(parse_style_urls(node.get("style") or ""))

        for attrs in SOCIAL_IMAGE_META:
            for node in soup.find_all("meta", attrs=attrs):
                content = node.get("content")
                if content:
                    images.add(content)

        return images

    @staticmethod
    def _add_source_attributes(node, images: Set[str]) -> None:
        src = node.get("src")
        if src:
            images.add(src)
        srcset = node.get("srcset")
        if srcset:
            images.update(parse_srcset(srcset))


def extract_title(soup: BeautifulSoup) -> str:
    title_node = soup.find("title")
    if title_node is None:
        return ""
    return title_node.get_text(strip=True)


def extract_site_links(html: str, site_root: str) -> List[str]:
    """site_root 配下を指すリンクを、フラグメントを除いた絶対URLで返す。"""
    soup = BeautifulSoup(html, "lxml")
    links: List[str] = []
    for node in soup.find_all("a", href=True):
        href = node.get("href")
        absolute = normalize_url(site_root, href)
        if absolute and absolute.startswith(site_root):
            links.append(strip_fragment(absolute))
    return links
