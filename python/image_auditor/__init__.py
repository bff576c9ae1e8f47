"""
Image Auditor パッケージ。

サイトマップからページを収集し、各ページが参照する画像のリンク切れと
サイズ超過を検出するモジュール群をまとめる。
"""

__all__ = [
    "config",
    "models",
    "urls",
    "sitemap",
    "fetcher",
    "parser",
    "limiter",
    "inspector",
    "classifier",
    "auditor",
    "reporting",
    "storage",
    "notion",
    "cli",
]
