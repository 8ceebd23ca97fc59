"""環境変数およびコンテンツ設定のローダー。"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Iterable, Mapping

from .constants import DEFAULT_BASE_URL, DEFAULT_GITHUB_URL

DEFAULT_ENV_NAME = ".env"
CONTENT_ROOT_ENV = "CONTENT_ROOT"
CONTENT_TRANSLATED_ROOT_ENV = "CONTENT_TRANSLATED_ROOT"
BUILD_OUT_ROOT_ENV = "BUILD_OUT_ROOT"
NO_PROGRESSBAR_ENV = "BUILD_NO_PROGRESSBAR"
FOLDERSEARCH_ENV = "BUILD_FOLDERSEARCH"
BASE_URL_ENV = "BUILD_BASE_URL"
GITHUB_URL_ENV = "CONTENT_GITHUB_URL"
WORKERS_ENV = "BUILD_WORKERS"

_TRUTHY = {"1", "true", "yes", "on"}

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ContentSettings:
    """環境変数から読み取ったビルドの既定値。"""

    content_root: Path | None
    translated_root: Path | None
    build_out_root: Path | None
    no_progressbar: bool
    folder_searches: tuple[str, ...]
    base_url: str
    github_url: str
    workers: int | None


def load_env_file(path: str | Path | None = None) -> dict[str, str]:
    """`.env` ファイルを読み込み、未設定の環境変数を補完します。"""

    env_path = _locate_env_file(path)
    if env_path is None or not env_path.exists():
        return {}
    loaded: dict[str, str] = {}
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = _strip_quotes(value.strip())
        if key not in os.environ:
            os.environ[key] = value
        loaded[key] = value
    return loaded


def current_content_settings(source: Mapping[str, str] | None = None) -> ContentSettings:
    """現在の環境変数からビルド設定の既定値を読み取ります。"""

    env = source if source is not None else os.environ
    return ContentSettings(
        content_root=_as_path(env.get(CONTENT_ROOT_ENV)),
        translated_root=_as_path(env.get(CONTENT_TRANSLATED_ROOT_ENV)),
        build_out_root=_as_path(env.get(BUILD_OUT_ROOT_ENV)),
        no_progressbar=(env.get(NO_PROGRESSBAR_ENV) or "").strip().lower() in _TRUTHY,
        folder_searches=tuple(
            chunk.strip() for chunk in (env.get(FOLDERSEARCH_ENV) or "").split(",") if chunk.strip()
        ),
        base_url=(env.get(BASE_URL_ENV) or DEFAULT_BASE_URL).rstrip("/"),
        github_url=(env.get(GITHUB_URL_ENV) or DEFAULT_GITHUB_URL).rstrip("/"),
        workers=_as_int(env.get(WORKERS_ENV), WORKERS_ENV),
    )


def _locate_env_file(path: str | Path | None) -> Path | None:
    if path is not None:
        candidate = Path(path)
        if candidate.is_dir():
            candidate = candidate / DEFAULT_ENV_NAME
        return candidate
    candidates: Iterable[Path] = (
        Path.cwd() / DEFAULT_ENV_NAME,
        Path(__file__).resolve().parents[2] / DEFAULT_ENV_NAME,
    )
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _strip_quotes(value: str) -> str:
    if not value:
        return value
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def _as_path(raw: str | None) -> Path | None:
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


def _as_int(raw: str | None, name: str) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s の値 %r は整数ではないため無視します。", name, raw)
        return None
