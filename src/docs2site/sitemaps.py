"""サイトマップおよびサイトマップインデックスの XML 生成。"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterable, Mapping, Sequence

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def make_sitemap_xml(base_url: str, locale: str, docs: Sequence[Mapping[str, str]]) -> str:
    """スラッグ順に並べたロケール単位のサイトマップを生成します。"""

    urlset = ET.Element("urlset", {"xmlns": SITEMAP_NAMESPACE})
    for doc in sorted(docs, key=lambda item: item["slug"]):
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = f"{base_url}/{locale}/docs/{doc['slug']}"
        if doc.get("modified"):
            ET.SubElement(url, "lastmod").text = doc["modified"]
    return _serialize(urlset)


def make_sitemap_index_xml(base_url: str, paths: Iterable[str], lastmod: str) -> str:
    """ロケール別サイトマップを参照するサイトマップインデックスを生成します。"""

    index = ET.Element("sitemapindex", {"xmlns": SITEMAP_NAMESPACE})
    for path in paths:
        sitemap = ET.SubElement(index, "sitemap")
        ET.SubElement(sitemap, "loc").text = f"{base_url}{path}"
        ET.SubElement(sitemap, "lastmod").text = lastmod
    return _serialize(index)


def _serialize(element: ET.Element) -> str:
    return _XML_DECLARATION + ET.tostring(element, encoding="unicode") + "\n"
