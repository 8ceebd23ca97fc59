from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from docs2site.config import ContentConfig
from docs2site.content import ContentRepository, slug_to_folder
from docs2site.errors import DocumentReadError


def _write_document(root: Path, locale: str, slug: str, body: str = "<p>Body text.</p>", **front: object) -> Path:
    folder = root / locale.lower() / slug_to_folder(slug)
    folder.mkdir(parents=True, exist_ok=True)
    lines = ["---", f"title: {front.pop('title', slug.split('/')[-1])}", f"slug: {slug}"]
    lines.extend(f"{key}: {json.dumps(value)}" for key, value in front.items())
    lines.extend(["---", body])
    path = folder / "index.html"
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    ("slug", "expected"),
    [
        ("/en-US/docs/Web/CSS/::after", "en-us/docs/web/css/_doublecolon_after"),
        ("Web/CSS/:hover", "web/css/_colon_hover"),
        ("Glossary/*", "glossary/_star_"),
        ("Web/What?", "web/what_question_"),
        ("../../../escaped", "_dot__dot_/_dot__dot_/_dot__dot_/escaped"),
        ("/en-US/docs/Web/./../A", "en-us/docs/web/_dot_/_dot__dot_/a"),
        ("Web\\..\\A", "web_backslash_.._backslash_a"),
        ("Web/.htaccess", "web/.htaccess"),
    ],
)
def test_slug_to_folder_replaces_unsafe_characters(slug: str, expected: str) -> None:
    assert slug_to_folder(slug) == expected


def test_find_all_filters_by_locale_file_and_folder(tmp_path: Path) -> None:
    root = tmp_path / "content"
    first = _write_document(root, "en-US", "Web/API/Fetch")
    _write_document(root, "en-US", "Web/CSS/Color")
    _write_document(root, "fr", "Web/API/Fetch")
    (root / "unknown-locale" / "x").mkdir(parents=True)
    repository = ContentRepository(ContentConfig(root=root))

    everything = repository.find_all()
    only_fr = repository.find_all(locales=["fr"])
    only_file = repository.find_all(files=[first])
    only_css = repository.find_all(folder_searches=["css"])

    assert everything.count == 3
    assert [path.parent.name for path in only_fr.iter_paths()] == ["fetch"]
    assert list(only_file.iter_paths()) == [first]
    assert [path.parent.name for path in only_css.iter_paths()] == ["color"]


def test_find_all_accepts_folders_as_file_filter(tmp_path: Path) -> None:
    root = tmp_path / "content"
    _write_document(root, "en-US", "Web/API/Fetch")
    _write_document(root, "en-US", "Web/API/Fetch/Headers")
    _write_document(root, "en-US", "Web/CSS")
    repository = ContentRepository(ContentConfig(root=root))

    documents = repository.find_all(files=[root / "en-us" / "web" / "api"])

    assert documents.count == 2


def test_read_memoizes_until_invalidated(tmp_path: Path) -> None:
    root = tmp_path / "content"
    path = _write_document(root, "en-US", "Web/A", title="Original")
    repository = ContentRepository(ContentConfig(root=root))

    first = repository.read(path)
    path.write_text(path.read_text(encoding="utf-8").replace("Original", "Changed"), encoding="utf-8")
    cached = repository.read(path)
    fresh = repository.read(path, invalidate=True)

    assert first is cached
    assert cached is not None and cached.title == "Original"
    assert fresh is not None and fresh.title == "Changed"


def test_read_returns_none_for_missing_file(tmp_path: Path) -> None:
    repository = ContentRepository(ContentConfig(root=tmp_path))

    assert repository.read(tmp_path / "en-us" / "missing" / "index.html") is None


def test_read_rejects_document_without_slug(tmp_path: Path) -> None:
    path = tmp_path / "en-us" / "broken" / "index.html"
    path.parent.mkdir(parents=True)
    path.write_text("---\ntitle: Broken\n---\n<p>text</p>", encoding="utf-8")
    repository = ContentRepository(ContentConfig(root=tmp_path))

    with pytest.raises(DocumentReadError):
        repository.read(path)


def test_read_populates_document_fields(tmp_path: Path) -> None:
    root = tmp_path / "content"
    path = _write_document(root, "en-US", "Web/A", contributors=["alice", "bob"])
    modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    os.utime(path, (modified.timestamp(), modified.timestamp()))
    repository = ContentRepository(ContentConfig(root=root, github_url="https://github.com/org/content/blob/main/files"))

    document = repository.read(path)

    assert document is not None
    assert document.locale == "en-US"
    assert document.url == "/en-US/docs/Web/A"
    assert document.contributors == ["alice", "bob"]
    assert document.modified.startswith("2024-01-02T03:04:05")
    assert document.github_url == "https://github.com/org/content/blob/main/files/en-us/web/a/index.html"
    assert document.raw_html.strip() == "<p>Body text.</p>"


def test_translations_of_lists_other_locales(tmp_path: Path) -> None:
    root = tmp_path / "content"
    translated = tmp_path / "translated"
    _write_document(root, "en-US", "Web/A", title="Alpha")
    _write_document(translated, "fr", "Web/A", title="Alpha FR")
    _write_document(translated, "ja", "web/a", title="Alpha JA")
    _write_document(translated, "ja", "Web/B")
    repository = ContentRepository(ContentConfig(root=root, translated_root=translated))

    translations = repository.translations_of("Web/A", "en-US")

    assert translations == [
        {"locale": "fr", "title": "Alpha FR"},
        {"locale": "ja", "title": "Alpha JA"},
    ]
    assert repository.exists("ja", "Web/B")
    assert not repository.exists("fr", "Web/B")


def test_read_cache_evicts_least_recently_used(tmp_path: Path) -> None:
    root = tmp_path / "content"
    paths = [_write_document(root, "en-US", f"Web/{name}") for name in ("A", "B", "C")]
    repository = ContentRepository(ContentConfig(root=root), cache_size=2)

    first = repository.read(paths[0])
    second = repository.read(paths[1])
    assert repository.read(paths[0]) is first
    repository.read(paths[2])

    assert repository.read(paths[0]) is first
    assert repository.read(paths[1]) is not second


def test_translation_index_does_not_cache_documents(tmp_path: Path) -> None:
    root = tmp_path / "content"
    path = _write_document(root, "fr", "Web/A", title="Avant")
    repository = ContentRepository(ContentConfig(root=root))

    assert repository.exists("fr", "Web/A")
    path.write_text(path.read_text(encoding="utf-8").replace("Avant", "Apres"), encoding="utf-8")
    document = repository.read(path)

    assert document is not None and document.title == "Apres"
