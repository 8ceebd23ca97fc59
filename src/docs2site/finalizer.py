"""ドキュメント走査の完了後に集計結果を書き出すファイナライザー。"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .aggregation import AggregationEngine
from .config import OutputConfig
from .constants import (
    BROWSER_COMPAT_FILENAME,
    METADATA_FILENAME,
    SEARCH_INDEX_FILENAME,
    SITEMAP_FILENAME,
    SITEMAP_INDEX_FILENAME,
    VALID_LOCALES,
)
from .errors import ArtifactWriteError
from .sitemaps import make_sitemap_index_xml, make_sitemap_xml


@dataclass(slots=True)
class FinalizeResult:
    sitemaps: list[Path] = field(default_factory=list)
    search_indexes: list[Path] = field(default_factory=list)
    metadata_catalogs: list[Path] = field(default_factory=list)
    browser_compat: Path | None = None


@dataclass(slots=True)
class SitemapIndexResult:
    path: Path
    locales: list[str]


class Finalizer:
    """サイトマップ・検索インデックス・メタデータカタログを書き出します。"""

    def __init__(self, output: OutputConfig, base_url: str) -> None:
        self._output = output
        self._base_url = base_url
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    def finalize(self, aggregates: AggregationEngine) -> FinalizeResult:
        result = FinalizeResult()
        for locale, docs in aggregates.slugs_per_locale.items():
            if not docs:
                continue
            path = self.sitemap_path(locale)
            xml = make_sitemap_xml(self._base_url, locale, docs)
            # mtime を固定して同じ入力から同じバイト列を得る
            self._write_bytes(path, gzip.compress(xml.encode("utf-8"), mtime=0))
            result.sitemaps.append(path)
        self._logger.info("サイトマップを %d 件出力しました。", len(result.sitemaps))

        aggregates.search_index.sort()
        for locale, items in aggregates.search_index.get_items().items():
            path = self._output.root / locale / SEARCH_INDEX_FILENAME
            self._write_text(path, json.dumps(items, ensure_ascii=False))
            result.search_indexes.append(path)

        for locale, records in aggregates.metadata.items():
            path = self._output.root / locale.lower() / METADATA_FILENAME
            self._write_text(path, json.dumps(records, ensure_ascii=False))
            result.metadata_catalogs.append(path)

        queries = collect_browser_compat(aggregates.metadata.values())
        result.browser_compat = self._output.root / BROWSER_COMPAT_FILENAME
        self._write_text(result.browser_compat, " ".join(queries))
        self._logger.info("ブラウザー互換性クエリを %d 件出力しました。", len(queries))
        return result

    def build_sitemap_index(
        self, locales: Iterable[str] | None = None, now: datetime | None = None
    ) -> SitemapIndexResult:
        """既存のロケール別サイトマップを探し、サイトマップインデックスを生成します。"""

        found_paths: list[str] = []
        found_locales: list[str] = []
        for locale in locales if locales is not None else VALID_LOCALES.keys():
            path = self.sitemap_path(locale)
            if path.exists():
                found_paths.append("/" + path.relative_to(self._output.root).as_posix())
                found_locales.append(locale)
        timestamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).isoformat(timespec="seconds")
        index_path = self._output.root / SITEMAP_INDEX_FILENAME
        self._write_text(index_path, make_sitemap_index_xml(self._base_url, found_paths, timestamp))
        return SitemapIndexResult(path=index_path, locales=found_locales)

    def sitemap_path(self, locale: str) -> Path:
        return self._output.sitemaps_dir / locale.lower() / SITEMAP_FILENAME

    def _write_text(self, path: Path, content: str) -> None:
        self._write_bytes(path, content.encode("utf-8"))

    def _write_bytes(self, path: Path, content: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            raise ArtifactWriteError(path, str(exc)) from exc


def collect_browser_compat(catalogs: Iterable[Iterable[dict]]) -> list[str]:
    """全メタデータの browserCompat を初出順に重複なく集めます。"""

    seen: dict[str, None] = {}
    for records in catalogs:
        for record in records:
            for query in record.get("browserCompat") or ():
                seen.setdefault(query, None)
    return list(seen)
