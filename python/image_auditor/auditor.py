from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from .classifier import IssueClassifier
from .config import AuditConfig
from .fetcher import PageFetcher
from .inspector import ImageInspector
from .limiter import ConcurrencyLimiter
from .models import AuditResult, ImageReference, InspectionOutcome, Issue, RunStatistics
from .parser import ImageReferenceExtractor, extract_site_links, extract_title
from .sitemap import SitemapResolver
from .urls import contains_whitespace, normalize_url

logger = logging.getLogger(__name__)
console = Console(stderr=True)


class AuditError(Exception):
    pass


class DiscoveryError(AuditError):
    """サイトマップも、フォールバックのベースURL取得も失敗した。"""


class AuditPhase(str, Enum):
    PENDING = "pending"
    DISCOVERING = "discovering"
    SCANNING = "scanning"
    DONE = "done"


class AuditRunner:
    def __init__(
        self,
        config: AuditConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
        show_progress: bool = False,
    ) -> None:
        self.config = config
        self.phase = AuditPhase.PENDING
        self._client = client
        self._limiter = limiter or ConcurrencyLimiter(config.concurrency)
        self._show_progress = show_progress
        self._extractor = ImageReferenceExtractor()
        self._classifier = IssueClassifier(config.oversized_threshold_bytes)
        self._issues: List[Issue] = []
        self._stats = RunStatistics()
        self._fetcher: Optional[PageFetcher] = None
        self._inspector: Optional[ImageInspector] = None

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    async def run(self) -> AuditResult:
        if self._client is not None:
            return await self._run(self._client)

        headers = {"User-Agent": self.config.user_agent}
        async with httpx.AsyncClient(headers=headers, follow_redirects=True) as client:
            return await self._run(client)

    async def _run(self, client: httpx.AsyncClient) -> AuditResult:
        self._issues = []
        self._stats = RunStatistics()
        self._fetcher = PageFetcher(client, timeout=self.config.request_timeout)
        self._inspector = ImageInspector(
            client,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
            accept=self.config.image_accept,
        )

        self.phase = AuditPhase.DISCOVERING
        pages = await self.discover_pages(client)
        logger.info("対象ページ数: %d", len(pages))

        self.phase = AuditPhase.SCANNING
        if self._show_progress:
            progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]検査中...[/] {task.completed}/{task.total} ページ"),
                console=console,
                transient=True,
            )
            with progress:
                task_id = progress.add_task("audit", total=len(pages))
                for page_url in pages:
                    await self._scan_page_safely(page_url)
                    progress.advance(task_id)
        else:
            for page_url in pages:
                await self._scan_page_safely(page_url)

        self.phase = AuditPhase.DONE
        return AuditResult(pages=pages, issues=list(self._issues), statistics=self._stats)

    async def discover_pages(self, client: httpx.AsyncClient) -> List[str]:
        sitemap_url = self.config.resolved_sitemap_url()
        logger.info("サイトマップ: %s", sitemap_url)
        resolver = SitemapResolver(
            client,
            timeout=self.config.request_timeout,
            max_depth=self.config.max_sitemap_depth,
        )
        pages = await resolver.resolve(sitemap_url)
        if pages:
            return pages

        logger.warning("サイトマップにURLがありません。ベースURLのリンクを1階層だけ辿ります。")
        return await self._fallback_pages()

    async def _fallback_pages(self) -> List[str]:
        assert self._fetcher is not None

        site_root = self.config.site_root
        result = await self._fetcher.fetch(site_root)
        if not result.available:
            raise DiscoveryError(
                f"ベースURLを取得できませんでした: {site_root} "
                "サイトの状態を確認するか、有効なサイトマップURLを指定してください。"
            )
        links = [site_root, *extract_site_links(result.text, site_root)]
        return list(dict.fromkeys(links))

    async def _scan_page_safely(self, page_url: str) -> None:
        # 1ページの想定外の失敗で実行全体を止めない
        try:
            await self.scan_page(page_url)
        except Exception as exc:
            logger.warning("ページの検査中にエラーが発生したためスキップします: %s (%s)", page_url, exc, exc_info=True)

    async def scan_page(self, page_url: str) -> None:
        assert self._fetcher is not None

        logger.info("ページを検査中: %s", page_url)
        result = await self._fetcher.fetch(page_url)
        if not result.available:
            logger.warning("ページを読み込めなかったためスキップします: %s", page_url)
            return

        soup = BeautifulSoup(result.text, "lxml")
        page_title = extract_title(soup) or page_url
        references = [
            ImageReference(raw_value=raw_value, source_page=page_url)
            for raw_value in sorted(self._extractor.extract_from_soup(soup))
        ]
        logger.debug("%s: 画像参照 %d 件", page_url, len(references))

        # ページ内の画像はまとめて投入し、共有の limiter が同時実行数を抑える
        await asyncio.gather(*(self._check_image(reference, page_title) for reference in references))

    async def _check_image(self, reference: ImageReference, page_title: str) -> None:
        assert self._inspector is not None

        absolute_url = normalize_url(reference.source_page, reference.raw_value)
        if contains_whitespace(reference.raw_value) or absolute_url is None:
            # 空白を含む参照や解決できない参照は、リクエストせずにリンク切れとする
            outcome = InspectionOutcome.unreachable()
        else:
            async with self._limiter:
                outcome = await self._inspector.inspect(absolute_url, reference.source_page)

        issue = self._classifier.classify(
            page=reference.source_page,
            page_title=page_title,
            raw_value=reference.raw_value,
            absolute_url=absolute_url,
            outcome=outcome,
        )
        self._stats.record(outcome, issue)
        if issue is not None:
            self._issues.append(issue)

