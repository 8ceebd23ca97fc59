"""ビルド全体で共有する定数。"""

from __future__ import annotations

DEFAULT_LOCALE = "en-US"

# 小文字化したロケール名 -> 正規のロケール名
VALID_LOCALES: dict[str, str] = {
    locale.lower(): locale
    for locale in (
        "de",
        "en-US",
        "es",
        "fr",
        "ja",
        "ko",
        "pt-BR",
        "ru",
        "zh-CN",
        "zh-TW",
    )
}

DEFAULT_BASE_URL = "http://localhost:5042"
DEFAULT_GITHUB_URL = "https://github.com/mdn/content/blob/main/files"

DOCUMENT_FILENAME = "index.html"
SITEMAP_FILENAME = "sitemap.xml.gz"
SITEMAP_INDEX_FILENAME = "sitemap.xml"
SEARCH_INDEX_FILENAME = "search-index.json"
METADATA_FILENAME = "metadata.json"
BROWSER_COMPAT_FILENAME = "allBrowserCompat.txt"

# metadata.json から除外するレンダリング専用フィールド
RENDER_ONLY_FIELDS: tuple[str, ...] = ("body", "toc", "sidebarHTML", "sidebarMacro")


def normalize_locale(value: str) -> str:
    """大文字小文字を無視してロケール名を正規化します。"""

    try:
        return VALID_LOCALES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"未知のロケールです: {value}") from None
