"""docs2site ビルドの設定モデル群。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .constants import DEFAULT_BASE_URL, DEFAULT_GITHUB_URL, VALID_LOCALES, normalize_locale
from .errors import ConfigurationError


def default_timestamp() -> datetime:
    """メタデータ用に現在時刻 (UTC) を返します。"""

    return datetime.now(timezone.utc)


def resolve_locale_filter(
    include: Sequence[str] | None = None, exclude: Sequence[str] | None = None
) -> frozenset[str]:
    """ロケールの包含・除外指定からビルド対象のロケール集合を求めます。

    空集合は「すべてのロケール」を意味します。包含と除外を同時に指定すると
    ``ConfigurationError`` を送出します。
    """

    included = [normalize_locale(locale) for locale in (include or ())]
    excluded = {normalize_locale(locale) for locale in (exclude or ())}
    if excluded:
        if included:
            raise ConfigurationError("--not-locale と --locale は同時に指定できません。")
        return frozenset(locale for locale in VALID_LOCALES.values() if locale not in excluded)
    return frozenset(included)


@dataclass(slots=True)
class ContentConfig:
    """ドキュメントを読み込むコンテンツルートの設定。"""

    root: Path
    translated_root: Path | None = None
    github_url: str = DEFAULT_GITHUB_URL

    @property
    def roots(self) -> tuple[Path, ...]:
        if self.translated_root is None:
            return (self.root,)
        return (self.root, self.translated_root)


@dataclass(slots=True)
class OutputConfig:
    """出力ディレクトリの設定。"""

    root: Path
    logs_dir: Path = field(init=False)
    sitemaps_dir: Path = field(init=False)

    def __post_init__(self) -> None:
        self.logs_dir = self.root / "logs"
        self.sitemaps_dir = self.root / "sitemaps"


@dataclass(slots=True)
class BuildOptions:
    """ビルド対象の絞り込みと実行モードの設定。"""

    files: tuple[Path, ...] = ()
    folder_searches: tuple[str, ...] = ()
    locales: frozenset[str] = frozenset()
    interactive: bool = False
    no_html: bool = False
    quiet: bool = False
    no_progressbar: bool = False
    max_workers: int = 1


@dataclass(slots=True)
class BuildConfig:
    """ドキュメントビルド全体を束ねる設定。"""

    content: ContentConfig
    output: OutputConfig
    options: BuildOptions = field(default_factory=BuildOptions)
    base_url: str = DEFAULT_BASE_URL
    created_at: datetime = field(default_factory=default_timestamp)

    @classmethod
    def from_args(
        cls,
        content_root: Path,
        output_dir: Path,
        translated_root: Optional[Path] = None,
        files: Optional[Iterable[Path]] = None,
        folder_searches: Optional[Iterable[str]] = None,
        locales: Optional[Sequence[str]] = None,
        not_locales: Optional[Sequence[str]] = None,
        interactive: bool = False,
        no_html: bool = False,
        quiet: bool = False,
        no_progressbar: bool = False,
        max_workers: Optional[int] = None,
        base_url: str = DEFAULT_BASE_URL,
        github_url: str = DEFAULT_GITHUB_URL,
    ) -> "BuildConfig":
        resolved_locales = resolve_locale_filter(locales, not_locales)
        workers = max(1, max_workers) if max_workers is not None else 1
        if interactive:
            # 対話モードでは 1 件ずつ確認しながら進める
            workers = 1
        options = BuildOptions(
            files=tuple(Path(path).resolve() for path in (files or ())),
            folder_searches=tuple(text for text in (folder_searches or ()) if text),
            locales=resolved_locales,
            interactive=interactive,
            no_html=no_html,
            quiet=quiet,
            no_progressbar=no_progressbar,
            max_workers=workers,
        )
        return cls(
            content=ContentConfig(
                root=content_root,
                translated_root=translated_root,
                github_url=github_url.rstrip("/"),
            ),
            output=OutputConfig(output_dir),
            options=options,
            base_url=base_url.rstrip("/"),
        )
