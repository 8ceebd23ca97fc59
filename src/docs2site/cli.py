"""docs2site のコマンドラインインターフェース。"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

from .builder import build_documents, build_sitemap_index
from .config import BuildConfig
from .constants import normalize_locale
from .env import ContentSettings, current_content_settings, load_env_file
from .errors import ConfigurationError, Docs2SiteError
from .report import format_summary

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("build")


def _locale_arg(raw: str) -> str:
    try:
        return normalize_locale(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ドキュメント群をビルドしてサイト成果物を生成します")
    parser.add_argument("files", nargs="*", type=Path, help="ビルド対象を特定のファイル・フォルダに限定する")
    parser.add_argument("--content-root", dest="content_root", type=Path, default=None, help="原文コンテンツのルート (既定: $CONTENT_ROOT)")
    parser.add_argument(
        "--translated-root",
        dest="translated_root",
        type=Path,
        default=None,
        help="翻訳コンテンツのルート (既定: $CONTENT_TRANSLATED_ROOT)",
    )
    parser.add_argument("--out", dest="output_dir", type=Path, default=None, help="成果物の出力先 (既定: $BUILD_OUT_ROOT または build)")
    parser.add_argument("-i", "--interactive", dest="interactive", action="store_true", help="ビルド失敗時にどうするか尋ねる")
    parser.add_argument("-n", "--nohtml", dest="no_html", action="store_true", help="index.html を出力しない")
    parser.add_argument(
        "-l",
        "--locale",
        dest="locales",
        type=_locale_arg,
        nargs="+",
        action="extend",
        default=[],
        help="指定したロケールだけをビルドする",
    )
    parser.add_argument(
        "--not-locale",
        dest="not_locales",
        type=_locale_arg,
        nargs="+",
        action="extend",
        default=[],
        help="指定したロケールを除外してビルドする",
    )
    parser.add_argument(
        "--folder-search",
        dest="folder_searches",
        nargs="+",
        action="extend",
        default=[],
        help="フォルダ名に指定文字列を含むドキュメントだけをビルドする",
    )
    parser.add_argument("--no-progressbar", dest="no_progressbar", action="store_true", help="プログレスバーを表示しない")
    parser.add_argument("-q", "--quiet", dest="quiet", action="store_true", help="進捗とサマリーを表示しない")
    parser.add_argument("--sitemap-index", dest="sitemap_index", action="store_true", help="サイトマップインデックスだけを生成する")
    parser.add_argument("--base-url", dest="base_url", type=str, default=None, help="サイトマップに記載する URL の接頭辞")
    parser.add_argument("--github-url", dest="github_url", type=str, default=None, help="ソースファイルの GitHub URL 接頭辞")
    parser.add_argument("--workers", dest="workers", type=int, default=None, help="ビルドと書き出しの並列数 (既定: 1)")
    parser.add_argument("--env-file", dest="env_file", type=Path, default=None, help="読み込む .env ファイル")
    parser.add_argument("--verbose", dest="verbose", action="store_true", help="進捗ログを表示")
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        # 環境変数で補完する前に、コマンドラインで明示された引数だけを検査する
        _check_mode_conflicts(args)
    except ConfigurationError as exc:
        print(f"[エラー] {exc}", file=sys.stderr)
        raise SystemExit(2)
    load_env_file(args.env_file)
    settings = current_content_settings()
    _apply_env_defaults(args, settings)
    _validate_args(args)
    _configure_logging(args.verbose)
    try:
        if args.sitemap_index:
            _run_sitemap_index(args)
            return
        config = BuildConfig.from_args(
            args.content_root,
            args.output_dir,
            translated_root=args.translated_root,
            files=args.files,
            folder_searches=args.folder_searches,
            locales=args.locales,
            not_locales=args.not_locales,
            interactive=args.interactive,
            no_html=args.no_html,
            quiet=args.quiet,
            no_progressbar=args.no_progressbar,
            max_workers=args.workers,
            base_url=args.base_url,
            github_url=args.github_url,
        )
    except ConfigurationError as exc:
        print(f"[エラー] {exc}", file=sys.stderr)
        raise SystemExit(2)

    if not args.quiet:
        _print_roots(args)
    try:
        result = build_documents(config)
    except Docs2SiteError as exc:
        logger.error("ビルドに失敗しました: %s", exc, exc_info=exc)
        print(f"[エラー] {exc}", file=sys.stderr)
        raise SystemExit(1)
    if not args.quiet:
        for line in format_summary(result.summary):
            print(line)


def _run_sitemap_index(args: argparse.Namespace) -> None:
    if not args.quiet:
        print("Building sitemap index file...")
    config = BuildConfig.from_args(args.content_root or Path("."), args.output_dir, base_url=args.base_url)
    try:
        result = build_sitemap_index(config)
    except Docs2SiteError as exc:
        logger.error("サイトマップインデックスの生成に失敗しました: %s", exc, exc_info=exc)
        print(f"[エラー] {exc}", file=sys.stderr)
        raise SystemExit(1)
    if not args.quiet:
        print(f"Sitemap index file built with locales: {', '.join(result.locales)}.")


def _apply_env_defaults(args: argparse.Namespace, settings: ContentSettings) -> None:
    if args.content_root is None:
        args.content_root = settings.content_root
    if args.translated_root is None:
        args.translated_root = settings.translated_root
    if args.output_dir is None:
        args.output_dir = settings.build_out_root or DEFAULT_OUTPUT_DIR
    if not args.folder_searches:
        args.folder_searches = list(settings.folder_searches)
    if settings.no_progressbar:
        args.no_progressbar = True
    if args.base_url is None:
        args.base_url = settings.base_url
    if args.github_url is None:
        args.github_url = settings.github_url
    if args.workers is None:
        args.workers = settings.workers


def _validate_args(args: argparse.Namespace) -> None:
    errors: list[str] = []
    if not args.sitemap_index:
        if args.content_root is None:
            errors.append("[エラー] --content-root または CONTENT_ROOT を指定してください。")
        elif not args.content_root.is_dir():
            errors.append(f"[エラー] コンテンツルートが見つかりません: {args.content_root}")
        if args.translated_root is not None and not args.translated_root.is_dir():
            errors.append(f"[エラー] 翻訳コンテンツのルートが見つかりません: {args.translated_root}")

    if args.output_dir.exists() and not args.output_dir.is_dir():
        errors.append(f"[エラー] 出力パスがディレクトリではありません: {args.output_dir}")

    if args.workers is not None and args.workers < 1:
        errors.append("[エラー] --workers には 1 以上の整数を指定してください。")

    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        raise SystemExit(2)

    if args.content_root is not None:
        args.content_root = args.content_root.resolve()
    if args.translated_root is not None:
        args.translated_root = args.translated_root.resolve()
    args.output_dir = args.output_dir.resolve()


def _check_mode_conflicts(args: argparse.Namespace) -> None:
    if not args.sitemap_index:
        return
    conflicting = []
    if args.files:
        conflicting.append("files")
    if args.locales:
        conflicting.append("--locale")
    if args.not_locales:
        conflicting.append("--not-locale")
    if args.interactive:
        conflicting.append("--interactive")
    if args.no_html:
        conflicting.append("--nohtml")
    if args.folder_searches:
        conflicting.append("--folder-search")
    if args.workers is not None:
        conflicting.append("--workers")
    if conflicting:
        raise ConfigurationError(
            "--sitemap-index はビルド用の引数と同時に指定できません: " + ", ".join(conflicting)
        )


def _print_roots(args: argparse.Namespace) -> None:
    roots = (
        ("CONTENT_ROOT", args.content_root),
        ("CONTENT_TRANSLATED_ROOT", args.translated_root),
    )
    for key, value in roots:
        print(f"{(key + ':').ljust(25)}{value if value else 'not set'}")


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


if __name__ == "__main__":
    main()
