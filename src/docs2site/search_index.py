"""ロケールごとに分割された検索インデックス。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .content import Document


@dataclass(slots=True)
class SearchEntry:
    title: str
    url: str
    popularity: float = 0.0

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url}


class SearchIndex:
    """インデックス対象ドキュメントの簡易表現をロケール別に蓄積します。

    ``sort()`` は人気度の降順、同値の場合は URL の昇順で並べるため、同じ入力に
    対しては常に同じ出力になります。
    """

    def __init__(self, popularities: Mapping[str, float] | None = None) -> None:
        self._popularities = dict(popularities or {})
        self._items_by_locale: dict[str, list[SearchEntry]] = {}

    def add(self, document: Document) -> None:
        locale = document.locale.lower()
        popularity = self._popularities.get(document.url)
        if popularity is None:
            popularity = float(document.metadata.get("popularity") or 0.0)
        self._items_by_locale.setdefault(locale, []).append(
            SearchEntry(title=document.title, url=document.url, popularity=popularity)
        )

    def sort(self) -> None:
        for items in self._items_by_locale.values():
            items.sort(key=lambda entry: (-entry.popularity, entry.url))

    def get_items(self) -> dict[str, list[dict[str, str]]]:
        return {
            locale: [entry.to_dict() for entry in items]
            for locale, items in sorted(self._items_by_locale.items())
        }

    def count(self, locale: str) -> int:
        return len(self._items_by_locale.get(locale.lower(), []))
