from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from .config import AuditConfig
from .models import AuditReport, Issue, RunStatistics


def report_base_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return now.strftime("report-%Y-%m-%d-%H-%M-%S")


def build_report(
    config: AuditConfig,
    issues: Iterable[Issue],
    statistics: RunStatistics,
    *,
    generated_at: Optional[datetime] = None,
) -> AuditReport:
    issues_list = list(issues)
    return AuditReport(
        base_url=config.site_root,
        sitemap_url=config.resolved_sitemap_url(),
        generated_at=generated_at or datetime.now(timezone.utc),
        issues_count=len(issues_list),
        issues=issues_list,
        statistics=statistics,
    )
