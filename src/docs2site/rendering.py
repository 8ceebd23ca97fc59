"""ソースドキュメントをビルド済みドキュメントへ変換するレンダラー。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urldefrag, urlparse

from bs4 import BeautifulSoup, Tag
from slugify import slugify

from .constants import VALID_LOCALES
from .content import ContentRepository, Document
from .page import render_live_sample

Flaws = dict[str, list[dict[str, Any]]]

_REMOTE_PREFIXES = ("http:", "https:", "//", "data:", "mailto:")
_LIVE_SAMPLE_LANGUAGES = ("html", "css", "js")


@dataclass(slots=True)
class DocumentSource:
    """ビルド済みドキュメントの出典情報。"""

    folder: str
    filename: str
    github_url: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"folder": self.folder, "filename": self.filename, "github_url": self.github_url}


@dataclass(slots=True)
class LiveSample:
    """ドキュメントに付随する単独実行可能な HTML 断片。"""

    id: str
    html: str


@dataclass(slots=True)
class BuiltDocument:
    """レンダラーが生成したドキュメント表現。

    ``body`` / ``toc`` / ``sidebar_html`` / ``sidebar_macro`` は描画専用で、
    metadata.json には含まれません。``extra`` の内容はそのまま永続化されます。
    """

    title: str
    slug: str
    locale: str
    mdn_url: str
    modified: str
    source: DocumentSource
    body: list[dict[str, Any]] = field(default_factory=list)
    toc: list[dict[str, str]] = field(default_factory=list)
    sidebar_html: str = ""
    sidebar_macro: str | None = None
    flaws: Flaws = field(default_factory=dict)
    no_indexing: bool = False
    browser_compat: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = dict(self.extra)
        payload.update(
            {
                "title": self.title,
                "slug": self.slug,
                "locale": self.locale,
                "mdn_url": self.mdn_url,
                "modified": self.modified,
                "source": self.source.to_dict(),
                "body": self.body,
                "toc": self.toc,
                "sidebarHTML": self.sidebar_html,
                "sidebarMacro": self.sidebar_macro,
                "flaws": self.flaws,
                "noIndexing": self.no_indexing,
                "browserCompat": self.browser_compat,
            }
        )
        return payload


@dataclass(slots=True)
class RenderedDocument:
    built: BuiltDocument
    live_samples: list[LiveSample] = field(default_factory=list)
    file_attachments: list[Path] = field(default_factory=list)


class Renderer(Protocol):
    def render(self, document: Document) -> RenderedDocument: ...


class DocumentRenderer:
    """BeautifulSoup で本文を解析し、最小限のビルド結果を組み立てます。"""

    def __init__(self, repository: ContentRepository | None = None) -> None:
        self._repository = repository

    def render(self, document: Document) -> RenderedDocument:
        soup = BeautifulSoup(document.raw_html, "html.parser")
        flaws: Flaws = {}
        attachments = self._collect_attachments(document, soup, flaws)
        self._check_links(document, soup, flaws)
        live_samples = self._extract_live_samples(document, soup)
        toc = self._build_toc(soup)
        built = BuiltDocument(
            title=document.title,
            slug=document.slug,
            locale=document.locale,
            mdn_url=document.url,
            modified=document.modified,
            source=DocumentSource(
                folder=document.folder.resolve().relative_to(document.root).as_posix(),
                filename=document.file_path.name,
                github_url=document.github_url,
            ),
            body=self._build_sections(soup),
            toc=toc,
            sidebar_macro=document.metadata.get("sidebar"),
            flaws=flaws,
            no_indexing=bool(document.metadata.get("noindex", False)),
            browser_compat=self._browser_compat(document),
            extra={
                "pageTitle": self._page_title(document),
                "summary": self._extract_summary(soup),
                "parents": self._build_parents(document),
                "otherTranslations": list(document.translations),
                "isTranslated": document.is_translated,
                "popularity": float(document.metadata.get("popularity") or 0.0),
            },
        )
        return RenderedDocument(built=built, live_samples=live_samples, file_attachments=attachments)

    # Internal helpers -------------------------------------------------

    def _collect_attachments(self, document: Document, soup: BeautifulSoup, flaws: Flaws) -> list[Path]:
        attachments: list[Path] = []
        folder = document.folder.resolve()
        for image in soup.find_all("img"):
            src = (image.get("src") or "").strip()
            if not src or src.startswith(_REMOTE_PREFIXES) or src.startswith("/"):
                continue
            candidate = (folder / urlparse(src).path).resolve()
            if folder in candidate.parents and candidate.is_file():
                if candidate not in attachments:
                    attachments.append(candidate)
                continue
            self._add_flaw(flaws, "images", src=src, explanation="画像ファイルが見つかりません")
        return attachments

    def _check_links(self, document: Document, soup: BeautifulSoup, flaws: Flaws) -> None:
        if self._repository is None:
            return
        for anchor in soup.find_all("a"):
            href = urldefrag((anchor.get("href") or "").strip()).url.split("?", 1)[0]
            if not href.startswith("/") or "/docs/" not in href:
                continue
            prefix, _, slug = href.lstrip("/").partition("/docs/")
            locale = VALID_LOCALES.get(prefix.lower())
            if locale is None or not slug or not self._repository.exists(locale, slug.rstrip("/")):
                self._add_flaw(flaws, "broken_links", href=href, explanation="リンク先のドキュメントが存在しません")

    def _extract_live_samples(self, document: Document, soup: BeautifulSoup) -> list[LiveSample]:
        samples: list[LiveSample] = []
        for element in soup.find_all(attrs={"data-live-sample": True}):
            raw_id = element.get("data-live-sample") or element.get("id") or f"sample-{len(samples) + 1}"
            sample_id = slugify(str(raw_id)) or f"sample-{len(samples) + 1}"
            code = {language: "" for language in _LIVE_SAMPLE_LANGUAGES}
            for block in element.find_all("pre"):
                classes = block.get("class") or []
                for language in _LIVE_SAMPLE_LANGUAGES:
                    if language in classes:
                        code[language] += block.get_text()
            samples.append(
                LiveSample(
                    id=sample_id,
                    html=render_live_sample(
                        f"{document.title} - {sample_id}", code["html"], code["css"], code["js"]
                    ),
                )
            )
        return samples

    def _build_toc(self, soup: BeautifulSoup) -> list[dict[str, str]]:
        toc: list[dict[str, str]] = []
        for heading in soup.find_all("h2"):
            text = heading.get_text(" ", strip=True)
            heading_id = heading.get("id") or slugify(text)
            heading["id"] = heading_id
            toc.append({"text": text, "id": heading_id})
        return toc

    def _build_sections(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        sections: list[dict[str, Any]] = []
        current: dict[str, Any] = {"id": None, "title": None, "content": []}
        for node in list(soup.contents):
            if isinstance(node, Tag) and node.name == "h2":
                self._append_section(sections, current)
                current = {"id": node.get("id"), "title": node.get_text(" ", strip=True), "content": []}
                continue
            current["content"].append(str(node))
        self._append_section(sections, current)
        return sections

    def _append_section(self, sections: list[dict[str, Any]], section: dict[str, Any]) -> None:
        content = "".join(section["content"]).strip()
        if not content and not section["title"]:
            return
        sections.append(
            {
                "type": "prose",
                "value": {"id": section["id"], "title": section["title"], "isH3": False, "content": content},
            }
        )

    def _extract_summary(self, soup: BeautifulSoup) -> str:
        paragraph = soup.find("p")
        if paragraph is None:
            return ""
        return paragraph.get_text(" ", strip=True)

    def _build_parents(self, document: Document) -> list[dict[str, str]]:
        parts = document.slug.split("/")
        return [
            {"uri": f"/{document.locale}/docs/{'/'.join(parts[: index + 1])}", "title": part}
            for index, part in enumerate(parts)
        ]

    def _page_title(self, document: Document) -> str:
        section = document.slug.split("/", 1)[0]
        if "/" not in document.slug or section == document.title:
            return document.title
        return f"{document.title} | {section}"

    def _browser_compat(self, document: Document) -> list[str]:
        raw = document.metadata.get("browser-compat") or []
        if isinstance(raw, str):
            return [raw]
        return [str(query) for query in raw]

    def _add_flaw(self, flaws: Flaws, kind: str, **details: Any) -> None:
        entries = flaws.setdefault(kind, [])
        entries.append({"id": f"{kind}{len(entries) + 1}", **details})
