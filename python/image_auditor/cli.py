from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .auditor import AuditError, AuditRunner
from .config import AuditConfig, NotionConfig
from .models import AuditResult
from .notion import NotionSync
from .reporting import build_report, report_base_name
from .storage import write_reports

app = typer.Typer(add_completion=False, help="サイト内の画像のリンク切れとサイズ超過を検出するツール")
console = Console()


def load_config_from_path(path: Optional[Path]) -> dict:
    if path is None:
        return {}
    if not path.exists():
        raise typer.BadParameter(f"設定ファイルが見つかりません: {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise typer.BadParameter("設定ファイルの形式が不正です。")
    return data


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def merge_notion_config(config: AuditConfig, env_config: NotionConfig) -> AuditConfig:
    merged = NotionConfig(
        api_key=env_config.api_key or config.notion.api_key,
        parent_page_id=env_config.parent_page_id or config.notion.parent_page_id,
    )
    return config.model_copy(update={"notion": merged})


@app.command()
def audit(
    base_url: Optional[str] = typer.Argument(
        None,
        help="検査対象サイトのベースURL（設定ファイルで指定する場合は省略可能）",
    ),
    sitemap_url: Optional[str] = typer.Argument(
        None,
        help="サイトマップのURL（省略時は <base>/sitemap.xml）",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML形式の設定ファイル",
    ),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="画像検査の同時実行数の上書き"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="リクエストのタイムアウト秒数の上書き"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="レポート出力ディレクトリの上書き"),
    write_json: Optional[bool] = typer.Option(None, "--json/--no-json", help="JSONレポートの出力を切り替え"),
    write_csv: Optional[bool] = typer.Option(None, "--csv/--no-csv", help="CSVレポートの出力を切り替え"),
    notion: bool = typer.Option(True, "--notion/--no-notion", help="Notion への同期を切り替え"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="詳細なログを出力"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="警告以上のログのみ出力"),
) -> None:
    load_dotenv()
    configure_logging(verbose, quiet)
    config_dict = load_config_from_path(config_path)

    if base_url:
        config_dict["base_url"] = base_url
    elif "base_url" not in config_dict:
        raise typer.BadParameter("URL を指定するか、設定ファイルに base_url を記載してください。")
    if sitemap_url:
        config_dict["sitemap_url"] = sitemap_url

    update_data = {}
    if concurrency is not None:
        update_data["concurrency"] = concurrency
    if timeout is not None:
        update_data["request_timeout"] = timeout
    config_dict.update(update_data)

    try:
        config = AuditConfig(**config_dict)
    except ValidationError as exc:
        raise typer.BadParameter(f"設定の読み込みに失敗しました: {exc}") from exc

    output_update = {}
    if output_dir is not None:
        output_update["directory"] = output_dir
    if write_json is not None:
        output_update["write_json"] = write_json
    if write_csv is not None:
        output_update["write_csv"] = write_csv
    if output_update:
        config = config.model_copy(
            update={"output": config.output.model_copy(update=output_update)}
        )
    config = merge_notion_config(config, NotionConfig.from_env())

    console.print(f"ベースURL: {config.site_root}")
    console.print(f"サイトマップ: {config.resolved_sitemap_url()}")

    try:
        result = asyncio.run(_run_audit(config))
    except AuditError as exc:
        console.print(f"[red]検査を開始できませんでした:[/] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result, config.oversized_threshold_bytes)

    base_name = report_base_name()
    report = build_report(config, result.issues, result.statistics)
    for path in write_reports(report, config.output, base_name):
        console.print(f"レポートを保存しました: {path}")
    console.print(f"[green]検出した問題: {report.issues_count} 件[/]")

    if notion:
        asyncio.run(NotionSync.from_config(config.notion).sync(result.issues, base_name))


async def _run_audit(config: AuditConfig) -> AuditResult:
    runner = AuditRunner(config, show_progress=True)
    return await runner.run()


def _print_summary(result: AuditResult, threshold_bytes: int) -> None:
    stats = result.statistics
    table = Table(title="画像検査結果サマリ")
    table.add_column("項目")
    table.add_column("値", justify="right")
    for label, value in [
        ("対象ページ数", len(result.pages)),
        ("検査した画像数", stats.total_images_checked),
        ("サイズが判明した画像数", stats.images_with_known_size),
        (f"サイズ超過 (> {threshold_bytes // 1024}KB)", stats.oversized_images_found),
        ("検出した問題数", len(result.issues)),
    ]:
        table.add_row(label, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
