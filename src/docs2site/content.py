"""コンテンツルートからドキュメントを列挙・読み込むリポジトリ。"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

import frontmatter
from charset_normalizer import from_bytes as detect_charset

from .config import ContentConfig
from .constants import DEFAULT_LOCALE, DOCUMENT_FILENAME, VALID_LOCALES
from .errors import DocumentReadError

_FOLDER_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("*", "_star_"),
    ("::", "_doublecolon_"),
    (":", "_colon_"),
    ("?", "_question_"),
    ("\\", "_backslash_"),
)

# 解析済みドキュメントを保持する件数の上限
READ_CACHE_SIZE = 256


def slug_to_folder(slug: str) -> str:
    """スラッグ (または URL パス) を出力先のフォルダ名へ変換します。

    ファイルシステムで扱えない文字は固定の名前に置き換え、大文字小文字を
    畳み込みます。同一ロケール内のスラッグは大文字小文字を区別せず一意である
    ことを前提とします。
    """

    folder = slug.strip("/")
    for source, replacement in _FOLDER_REPLACEMENTS:
        folder = folder.replace(source, replacement)
    parts = []
    for part in folder.lower().split("/"):
        if not part:
            continue
        # "." と ".." は出力ルートの外を指さないよう置き換える
        if part.strip(".") == "":
            part = part.replace(".", "_dot_")
        parts.append(part)
    return "/".join(parts)


@dataclass(slots=True)
class Document:
    """読み込み済みのソースドキュメント。"""

    file_path: Path
    root: Path
    locale: str
    slug: str
    title: str
    modified: str
    contributors: list[str]
    metadata: dict[str, Any]
    raw_html: str
    github_url: str = ""
    translations: list[dict[str, str]] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"/{self.locale}/docs/{self.slug}"

    @property
    def folder(self) -> Path:
        return self.file_path.parent

    @property
    def is_translated(self) -> bool:
        return self.locale != DEFAULT_LOCALE


@dataclass(slots=True)
class DocumentSet:
    """フィルター適用後のドキュメントパス一覧。"""

    paths: tuple[Path, ...]

    @property
    def count(self) -> int:
        return len(self.paths)

    def iter_paths(self) -> Iterator[Path]:
        return iter(self.paths)


class ContentRepository:
    """ファイルシステム上のコンテンツルートを扱うリポジトリ。

    各ルートは ``<ロケール>/<フォルダ>/index.html`` の形でドキュメントを持ち、
    ドキュメント先頭の YAML フロントマターに ``title`` と ``slug`` を記述します。
    """

    def __init__(self, config: ContentConfig, cache_size: int = READ_CACHE_SIZE) -> None:
        self._config = config
        self._cache: OrderedDict[Path, Document] = OrderedDict()
        self._cache_size = max(1, cache_size)
        self._cache_lock = threading.Lock()
        self._slug_index: dict[tuple[str, str], str] | None = None
        self._index_lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    def find_all(
        self,
        files: Iterable[Path] | None = None,
        locales: Iterable[str] | None = None,
        folder_searches: Sequence[str] = (),
    ) -> DocumentSet:
        """条件に一致するドキュメントのパスを決定的な順序で列挙します。"""

        wanted_files = [Path(path).resolve() for path in (files or ())]
        wanted_locales = {locale.lower() for locale in (locales or ())}
        searches = [text.lower() for text in folder_searches if text]
        paths: list[Path] = []
        for root, locale_dir in self._iter_locale_dirs():
            if wanted_locales and locale_dir.name.lower() not in wanted_locales:
                continue
            for path in sorted(locale_dir.rglob(DOCUMENT_FILENAME)):
                if not path.is_file():
                    continue
                resolved = path.resolve()
                if wanted_files and not any(
                    resolved == wanted or wanted in resolved.parents for wanted in wanted_files
                ):
                    continue
                if searches:
                    folder = path.parent.relative_to(root).as_posix().lower()
                    if not any(text in folder for text in searches):
                        continue
                paths.append(path)
        self._logger.info("ドキュメントを %d 件検出しました。", len(paths))
        return DocumentSet(paths=tuple(paths))

    def read(self, path: Path, invalidate: bool = False) -> Document | None:
        """ドキュメントを読み込みます。存在しない場合は ``None`` を返します。

        直近に読み込んだ ``cache_size`` 件だけを保持し、古いものから破棄します。
        """

        key = Path(path)
        if not invalidate:
            with self._cache_lock:
                cached = self._cache.get(key)
                if cached is not None:
                    self._cache.move_to_end(key)
            if cached is not None:
                return cached
        if not key.is_file():
            return None
        document = self._parse(key)
        with self._cache_lock:
            self._cache[key] = document
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return document

    def translations_of(self, slug: str, locale: str) -> list[dict[str, str]]:
        """同じスラッグを持つ他ロケールのドキュメントを返します。"""

        index = self._ensure_slug_index()
        wanted = slug.lower()
        translations = [
            {"locale": other_locale, "title": title}
            for (other_locale, other_slug), title in index.items()
            if other_slug == wanted and other_locale != locale
        ]
        return sorted(translations, key=lambda item: item["locale"])

    def exists(self, locale: str, slug: str) -> bool:
        return (locale, slug.lower()) in self._ensure_slug_index()

    # Internal helpers -------------------------------------------------

    def _iter_locale_dirs(self) -> Iterator[tuple[Path, Path]]:
        for root in self._config.roots:
            if not root.is_dir():
                self._logger.warning("コンテンツルートが見つかりません: %s", root)
                continue
            for locale_dir in sorted(root.iterdir()):
                if locale_dir.is_dir() and locale_dir.name.lower() in VALID_LOCALES:
                    yield root, locale_dir

    def _parse(self, path: Path) -> Document:
        root, locale = self._locate(path)
        text = self._read_text(path)
        try:
            post = frontmatter.loads(text)
        except Exception as exc:
            raise DocumentReadError(path, f"フロントマターの解析に失敗しました: {exc}") from exc
        metadata = dict(post.metadata)
        slug = str(metadata.get("slug") or "").strip()
        if not slug:
            raise DocumentReadError(path, "フロントマターに slug がありません")
        title = str(metadata.get("title") or slug)
        contributors = metadata.get("contributors") or []
        if isinstance(contributors, str):
            contributors = [name.strip() for name in contributors.split(",") if name.strip()]
        relative = path.resolve().relative_to(root).as_posix()
        return Document(
            file_path=path,
            root=root,
            locale=locale,
            slug=slug,
            title=title,
            modified=self._infer_modified(path, metadata.get("modified")),
            contributors=[str(name) for name in contributors],
            metadata=metadata,
            raw_html=post.content,
            github_url=f"{self._config.github_url}/{relative}",
        )

    def _locate(self, path: Path) -> tuple[Path, str]:
        resolved = path.resolve()
        for root in self._config.roots:
            try:
                relative = resolved.relative_to(root.resolve())
            except ValueError:
                continue
            if relative.parts and relative.parts[0].lower() in VALID_LOCALES:
                return root.resolve(), VALID_LOCALES[relative.parts[0].lower()]
        raise DocumentReadError(path, "コンテンツルート配下のロケールフォルダにありません")

    def _read_text(self, path: Path) -> str:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise DocumentReadError(path, str(exc)) from exc
        if not data:
            return ""
        encoding = "utf-8"
        result = detect_charset(data).best()
        if result is not None and result.encoding:
            encoding = result.encoding
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            self._logger.debug("未知のエンコーディング %s のため UTF-8 を使用します。", encoding)
        return data.decode("utf-8", errors="replace")

    def _infer_modified(self, path: Path, declared: Any) -> str:
        if isinstance(declared, datetime):
            return declared.isoformat()
        if isinstance(declared, date):
            return declared.isoformat()
        if declared:
            return str(declared)
        timestamp = path.stat().st_mtime
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()

    def _ensure_slug_index(self) -> dict[tuple[str, str], str]:
        with self._index_lock:
            if self._slug_index is None:
                self._slug_index = self._build_slug_index()
            return self._slug_index

    def _build_slug_index(self) -> dict[tuple[str, str], str]:
        index: dict[tuple[str, str], str] = {}
        for _, locale_dir in self._iter_locale_dirs():
            for path in sorted(locale_dir.rglob(DOCUMENT_FILENAME)):
                # 索引にはタイトルだけを残し、本文はキャッシュしない
                try:
                    document = self._parse(path)
                except DocumentReadError as exc:
                    self._logger.warning("翻訳索引の構築中に読み込めないドキュメントがありました: %s", exc)
                    continue
                index[(document.locale, document.slug.lower())] = document.title
        return index
