from __future__ import annotations

import logging
from typing import List, Optional, Set
from xml.etree import ElementTree

import httpx

logger = logging.getLogger(__name__)


class SitemapResolver:
    """sitemap.xml とサイトマップインデックスを再帰的に展開してページURLを集める。

    取得や解析に失敗した枝は空として扱い、兄弟の枝の処理は続行する。
    一度訪れたサイトマップには再入せず、入れ子の深さも ``max_depth`` で打ち切る。
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = 15,
        max_depth: int = 5,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._max_depth = max_depth

    async def resolve(self, sitemap_url: str) -> List[str]:
        visited: Set[str] = set()
        urls = await self._resolve(sitemap_url, 0, visited)
        # 重複を除きつつ、サイトマップ上の出現順は保つ
        return list(dict.fromkeys(urls))

    async def _resolve(self, sitemap_url: str, depth: int, visited: Set[str]) -> List[str]:
        if sitemap_url in visited:
            logger.warning("サイトマップの循環参照を検出したためスキップします: %s", sitemap_url)
            return []
        if depth > self._max_depth:
            logger.warning(
                "サイトマップの入れ子が上限 (%d) を超えたためスキップします: %s",
                self._max_depth,
                sitemap_url,
            )
            return []
        visited.add(sitemap_url)

        root = await self._fetch_document(sitemap_url)
        if root is None:
            return []

        namespace = self._detect_namespace(root)
        if root.tag.endswith("sitemapindex"):
            discovered: List[str] = []
            for child_url in self._locations(root, "sitemap", namespace):
                discovered.extend(await self._resolve(child_url, depth + 1, visited))
            return discovered
        if root.tag.endswith("urlset"):
            return self._locations(root, "url", namespace)

        logger.warning("サイトマップとして認識できない文書です: %s (%s)", sitemap_url, root.tag)
        return []

    async def _fetch_document(self, sitemap_url: str) -> Optional[ElementTree.Element]:
        try:
            response = await self._client.get(sitemap_url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("サイトマップを取得できませんでした: %s (%s)", sitemap_url, exc)
            return None

        try:
            return ElementTree.fromstring(response.content)
        except ElementTree.ParseError as exc:
            logger.warning("サイトマップのXML解析に失敗しました: %s (%s)", sitemap_url, exc)
            return None

    @staticmethod
    def _locations(root: ElementTree.Element, entry_tag: str, namespace: Optional[str]) -> List[str]:
        entries = root.findall(f".//{{{namespace}}}{entry_tag}") if namespace else root.findall(f".//{entry_tag}")
        locations: List[str] = []
        for entry in entries:
            loc = entry.find(f"{{{namespace}}}loc") if namespace else entry.find("loc")
            if loc is not None and loc.text and loc.text.strip():
                locations.append(loc.text.strip())
        return locations

    @staticmethod
    def _detect_namespace(root: ElementTree.Element) -> Optional[str]:
        if "}" in root.tag:
            return root.tag.split("}")[0].strip("{")
        return None

