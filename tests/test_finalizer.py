from __future__ import annotations

import gzip
import json
from datetime import datetime, timezone
from pathlib import Path

from docs2site.aggregation import AggregationEngine
from docs2site.config import OutputConfig
from docs2site.finalizer import Finalizer, collect_browser_compat


def test_finalize_writes_locale_outputs(tmp_path: Path) -> None:
    engine = AggregationEngine()
    engine.record_slug("en-US", "Web/B", "2024-01-02")
    engine.record_slug("en-US", "Web/A", "")
    engine.record_metadata("en-US", {"slug": "Web/A", "browserCompat": ["api.A", "api.B"]})
    engine.record_metadata("fr", {"slug": "Web/A", "browserCompat": ["api.B", "api.C"]})
    finalizer = Finalizer(OutputConfig(tmp_path), "https://example.com")

    result = finalizer.finalize(engine)

    sitemap = gzip.decompress((tmp_path / "sitemaps" / "en-us" / "sitemap.xml.gz").read_bytes()).decode("utf-8")
    assert sitemap.index("/en-US/docs/Web/A") < sitemap.index("/en-US/docs/Web/B")
    assert result.sitemaps == [tmp_path / "sitemaps" / "en-us" / "sitemap.xml.gz"]
    assert json.loads((tmp_path / "fr" / "metadata.json").read_text(encoding="utf-8")) == [
        {"slug": "Web/A", "browserCompat": ["api.B", "api.C"]}
    ]
    assert (tmp_path / "allBrowserCompat.txt").read_text(encoding="utf-8") == "api.A api.B api.C"


def test_sitemap_index_with_no_sitemaps_is_empty(tmp_path: Path) -> None:
    finalizer = Finalizer(OutputConfig(tmp_path), "https://example.com")

    result = finalizer.build_sitemap_index(now=datetime(2024, 3, 1, tzinfo=timezone.utc))

    assert result.locales == []
    index = result.path.read_text(encoding="utf-8")
    assert "<sitemap>" not in index
    assert "sitemapindex" in index


def test_sitemap_index_lists_existing_sitemaps(tmp_path: Path) -> None:
    for locale in ("ja", "en-us"):
        path = tmp_path / "sitemaps" / locale / "sitemap.xml.gz"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"")
    finalizer = Finalizer(OutputConfig(tmp_path), "https://example.com")

    result = finalizer.build_sitemap_index(now=datetime(2024, 3, 1, tzinfo=timezone.utc))

    index = result.path.read_text(encoding="utf-8")
    assert result.locales == ["en-us", "ja"]
    assert "https://example.com/sitemaps/ja/sitemap.xml.gz" in index
    assert "<lastmod>2024-03-01T00:00:00+00:00</lastmod>" in index


def test_collect_browser_compat_deduplicates_in_first_seen_order() -> None:
    catalogs = [[{"browserCompat": ["b", "a"]}, {}], [{"browserCompat": ["a", "c"]}]]

    assert collect_browser_compat(catalogs) == ["b", "a", "c"]
