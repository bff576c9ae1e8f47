from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, List

from .config import OutputConfig
from .models import AuditReport, Issue

CSV_HEADER = [
    "Page Link",
    "Broken image url",
    "Oversized Image",
    "Image Size (KB)",
    "Issue Type",
]


def export_csv(issues: Iterable[Issue], path: Path) -> None:
    # QUOTE_MINIMAL: カンマ・引用符・改行を含む値だけを引用符で囲み、内部の " は "" にする
    with path.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for issue in issues:
            writer.writerow(
                [
                    issue.page,
                    issue.broken_image_url or "",
                    issue.oversized_image_url or "",
                    "" if issue.image_size_kb is None else issue.image_size_kb,
                    issue.issue_type.value,
                ]
            )


def export_json(report: AuditReport, path: Path) -> None:
    serializable = report.model_dump(mode="json", by_alias=True)
    with path.open("w", encoding="utf-8") as fp:
        json.dump(serializable, fp, ensure_ascii=False, indent=2)


def write_reports(report: AuditReport, output: OutputConfig, base_name: str) -> List[Path]:
    output.directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    if output.write_csv:
        csv_path = output.directory / f"{base_name}.csv"
        export_csv(report.issues, csv_path)
        written.append(csv_path)
    if output.write_json:
        json_path = output.directory / f"{base_name}.json"
        export_json(report, json_path)
        written.append(json_path)
    return written
