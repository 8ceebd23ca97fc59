"""ビルド全体を通じて集計値を蓄積するエンジン。"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from .content import Document
from .runner import Built
from .search_index import SearchIndex


class AggregationEngine:
    """1 回のビルド実行で共有される集計状態。

    すべての操作は追記または単調増加のみで、既存のエントリを削除・書き換え
    しません。そのためドキュメントを 1 度走査するだけで全集計が揃います。
    """

    def __init__(self, search_index: SearchIndex | None = None) -> None:
        self.search_index = search_index if search_index is not None else SearchIndex()
        self._slugs_per_locale: dict[str, list[dict[str, str]]] = {}
        self._metadata: dict[str, list[dict[str, Any]]] = {}
        self._total_flaws: dict[str, int] = {}
        self._peak_memory_bytes = 0
        self._built_count = 0

    def record_slug(self, locale: str, slug: str, modified: str) -> None:
        self._slugs_per_locale.setdefault(locale, []).append({"slug": slug, "modified": modified})

    def record_search_entry(self, document: Document) -> None:
        self.search_index.add(document)

    def record_flaws(self, flaws_by_kind: Mapping[str, Sequence[Any]]) -> None:
        for kind, flaws in flaws_by_kind.items():
            self._total_flaws[kind] = self._total_flaws.get(kind, 0) + len(flaws)

    def record_metadata(self, locale: str, record: dict[str, Any]) -> None:
        self._metadata.setdefault(locale, []).append(record)

    def sample_memory(self, current_bytes: int) -> None:
        if current_bytes > self._peak_memory_bytes:
            self._peak_memory_bytes = current_bytes

    def record_built(self, result: Built, metadata: dict[str, Any]) -> None:
        """ビルド済みドキュメント 1 件分の集計をまとめて反映します。"""

        document = result.document
        built = result.built_document
        self._built_count += 1
        if built.flaws:
            self.record_flaws(built.flaws)
        if not built.no_indexing:
            self.record_slug(document.locale, document.slug, document.modified)
            self.record_search_entry(document)
        self.record_metadata(document.locale, metadata)

    @property
    def slugs_per_locale(self) -> dict[str, list[dict[str, str]]]:
        return self._slugs_per_locale

    @property
    def metadata(self) -> dict[str, list[dict[str, Any]]]:
        return self._metadata

    @property
    def total_flaws(self) -> dict[str, int]:
        return dict(self._total_flaws)

    @property
    def peak_memory_bytes(self) -> int:
        return self._peak_memory_bytes

    @property
    def built_count(self) -> int:
        return self._built_count
