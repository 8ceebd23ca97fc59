from __future__ import annotations

from pathlib import Path

import pytest

from docs2site import cli

_ENV_NAMES = (
    "CONTENT_ROOT",
    "CONTENT_TRANSLATED_ROOT",
    "BUILD_OUT_ROOT",
    "BUILD_NO_PROGRESSBAR",
    "BUILD_FOLDERSEARCH",
    "BUILD_BASE_URL",
    "CONTENT_GITHUB_URL",
    "BUILD_WORKERS",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def _content(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    for folder, slug, front in (
        ("web/a", "Web/A", ""),
        ("web/b", "Web/B", "noindex: true\n"),
        ("web/c", "Web/C", ""),
    ):
        path = root / "en-us" / folder / "index.html"
        path.parent.mkdir(parents=True)
        path.write_text(f"---\ntitle: {slug}\nslug: {slug}\n{front}---\n<p>text</p>\n", encoding="utf-8")
    fr = root / "fr" / "web" / "a" / "index.html"
    fr.parent.mkdir(parents=True)
    fr.write_text("---\ntitle: A\nslug: Web/A\n---\n<p>texte</p>\n", encoding="utf-8")
    return root


def test_main_builds_site_and_prints_summary(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)
    out = tmp_path / "build"

    cli.main(["--content-root", str(content), "--out", str(out), "--no-progressbar"])

    captured = capsys.readouterr().out
    assert "CONTENT_ROOT:" in captured
    assert "not set" in captured
    assert "Built 4 pages in" in captured
    assert (out / "en-us" / "search-index.json").exists()


def test_main_rejects_locale_and_not_locale(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)
    out = tmp_path / "build"

    with pytest.raises(SystemExit) as exc:
        cli.main(["--content-root", str(content), "--out", str(out), "--locale", "fr", "--not-locale", "ja"])

    assert exc.value.code == 2
    assert "[エラー]" in capsys.readouterr().err
    assert not out.exists()


def test_main_requires_content_root(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--out", str(tmp_path / "build")])

    assert exc.value.code == 2
    assert "CONTENT_ROOT" in capsys.readouterr().err


def test_sitemap_index_rejects_build_arguments(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--sitemap-index", "--out", str(tmp_path / "build"), "en-us/web/a/index.html"])

    assert exc.value.code == 2
    assert not (tmp_path / "build").exists()


def test_sitemap_index_without_sitemaps_writes_empty_index(tmp_path: Path, capsys) -> None:
    out = tmp_path / "build"

    cli.main(["--sitemap-index", "--out", str(out)])

    index = (out / "sitemap.xml").read_text(encoding="utf-8")
    assert "<sitemap>" not in index
    assert "Sitemap index file built with locales: ." in capsys.readouterr().out


def test_sitemap_index_after_build_lists_locales(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)
    out = tmp_path / "build"
    cli.main(["--content-root", str(content), "--out", str(out), "-q", "--base-url", "https://example.com"])

    cli.main(["--sitemap-index", "--out", str(out), "--base-url", "https://example.com"])

    index = (out / "sitemap.xml").read_text(encoding="utf-8")
    assert "https://example.com/sitemaps/en-us/sitemap.xml.gz" in index
    assert "Sitemap index file built with locales: en-us, fr." in capsys.readouterr().out


def test_main_reads_defaults_from_env_file(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)
    env_file = tmp_path / "build.env"
    env_file.write_text(f"CONTENT_ROOT={content}\nBUILD_OUT_ROOT={tmp_path / 'envout'}\n", encoding="utf-8")

    cli.main(["--env-file", str(env_file), "-q", "--locale", "fr"])

    assert (tmp_path / "envout" / "fr" / "search-index.json").exists()
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize("extra", [["--nohtml"], ["--folder-search", "css"], ["--workers", "2"], ["-l", "fr"]])
def test_sitemap_index_rejects_each_build_option(tmp_path: Path, capsys, extra: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--sitemap-index", "--out", str(tmp_path / "build"), *extra])

    assert exc.value.code == 2
    assert "--sitemap-index" in capsys.readouterr().err
    assert not (tmp_path / "build").exists()


def test_sitemap_index_ignores_build_defaults_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("BUILD_FOLDERSEARCH", "css")
    monkeypatch.setenv("BUILD_WORKERS", "4")

    cli.main(["--sitemap-index", "-q", "--out", str(tmp_path / "build")])

    assert (tmp_path / "build" / "sitemap.xml").exists()


def test_main_prints_each_output_folder_without_progressbar(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)
    out = tmp_path / "build"

    cli.main(["--content-root", str(content), "--out", str(out), "--no-progressbar"])

    lines = capsys.readouterr().out.splitlines()
    assert str((out / "en-us" / "docs" / "web" / "a").resolve()) in lines
    assert str((out / "fr" / "docs" / "web" / "a").resolve()) in lines


def test_main_quiet_prints_nothing_per_document(tmp_path: Path, capsys) -> None:
    content = _content(tmp_path)

    cli.main(["--content-root", str(content), "--out", str(tmp_path / "build"), "--no-progressbar", "-q"])

    assert capsys.readouterr().out == ""
