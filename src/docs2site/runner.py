"""1 件のドキュメントをビルドし、失敗時の対話的な復旧を扱うランナー。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal

from .content import ContentRepository, Document
from .errors import DocumentReadError, RenderError
from .rendering import BuiltDocument, LiveSample, Renderer

RecoveryAction = Literal["retry", "skip", "quit"]
Prompt = Callable[[Path, Exception], RecoveryAction]

_ANSWERS: dict[str, RecoveryAction] = {
    "": "retry",
    "r": "retry",
    "re-run": "retry",
    "s": "skip",
    "skip": "skip",
    "q": "quit",
    "quit": "quit",
}


@dataclass(slots=True)
class Skipped:
    """オペレーターがビルドを見送ったドキュメント。"""

    path: Path


@dataclass(slots=True)
class Built:
    """ビルドに成功したドキュメントと付随する成果物。"""

    document: Document
    built_document: BuiltDocument
    live_samples: list[LiveSample] = field(default_factory=list)
    file_attachments: list[Path] = field(default_factory=list)


BuildResult = Skipped | Built


def ask_recovery_action(path: Path, error: Exception) -> RecoveryAction:
    """標準入力から復旧方法を尋ねます。空入力は再実行として扱います。"""

    while True:
        answer = input(f"{path.name} をどうしますか? [r]e-run / [s]kip / [q]uit (既定: r): ")
        action = _ANSWERS.get(answer.strip().lower())
        if action is not None:
            return action
        print("r / s / q のいずれかを入力してください。")


class DocumentBuildRunner:
    """リポジトリからドキュメントを読み込み、レンダラーでビルドします。"""

    def __init__(
        self,
        repository: ContentRepository,
        renderer: Renderer,
        prompt: Prompt = ask_recovery_action,
    ) -> None:
        self._repository = repository
        self._renderer = renderer
        self._prompt = prompt
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    def build(self, path: Path, interactive: bool, invalidate_cache: bool = False) -> BuildResult:
        """ドキュメントをビルドします。

        非対話モードでは読み込み・レンダリングの失敗をそのまま送出します。
        対話モードでは再実行 (キャッシュ無効化)・スキップ・中断をオペレーターに
        尋ね、成功するかスキップ・中断が選ばれるまで繰り返します。
        """

        invalidate = invalidate_cache
        attempt = 1
        while True:
            try:
                return self._build_once(path, interactive, invalidate)
            except (DocumentReadError, RenderError) as exc:
                if not interactive:
                    raise
                self._logger.error("ビルドに失敗しました (%d 回目): %s", attempt, exc, exc_info=exc)
                action = self._prompt(path, exc)
                if action == "retry":
                    invalidate = True
                    attempt += 1
                    continue
                if action == "skip":
                    self._logger.warning("ドキュメントをスキップしました: %s", path)
                    return Skipped(path=path)
                raise

    def _build_once(self, path: Path, interactive: bool, invalidate: bool) -> Built:
        try:
            document = self._repository.read(path, invalidate=invalidate)
        except DocumentReadError:
            raise
        except Exception as exc:
            raise DocumentReadError(path, str(exc)) from exc
        if document is None:
            raise DocumentReadError(path)

        if not interactive:
            document.translations = self._repository.translations_of(document.slug, document.locale)

        try:
            rendered = self._renderer.render(document)
        except Exception as exc:
            raise RenderError(path, str(exc)) from exc
        return Built(
            document=document,
            built_document=rendered.built,
            live_samples=list(rendered.live_samples),
            file_attachments=list(rendered.file_attachments),
        )
