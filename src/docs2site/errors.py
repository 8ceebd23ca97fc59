"""ビルド処理で送出される例外の体系。"""

from __future__ import annotations

from pathlib import Path


class Docs2SiteError(RuntimeError):
    """docs2site が送出する例外の基底クラス。"""


class DocumentReadError(Docs2SiteError):
    """ドキュメントの読み込みまたは解析に失敗した際に送出される例外。"""

    def __init__(self, path: Path, reason: str | None = None) -> None:
        self.path = path
        message = f"{path} を読み込めませんでした"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class RenderError(Docs2SiteError):
    """レンダラーがドキュメントのビルドに失敗した際に送出される例外。"""

    def __init__(self, path: Path, reason: str | None = None) -> None:
        self.path = path
        message = f"{path} のレンダリングに失敗しました"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ConfigurationError(Docs2SiteError):
    """矛盾した設定が指定された際に送出される例外。処理開始前に検出されます。"""


class ArtifactWriteError(Docs2SiteError):
    """成果物の書き出しに失敗した際に送出される例外。常にビルド全体を中断します。"""

    def __init__(self, path: Path, reason: str | None = None) -> None:
        self.path = path
        message = f"成果物を書き出せませんでした: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class EmptyCorpusError(Docs2SiteError):
    """フィルター条件に一致するドキュメントが存在しない場合に送出される例外。"""

    def __init__(self) -> None:
        super().__init__("ビルド対象のドキュメントが見つかりませんでした。")


class BuildCancelledError(Docs2SiteError):
    """同じウィンドウ内の別のビルドが失敗したため中止された際に送出される例外。"""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"他のドキュメントのビルドが失敗したため中止しました: {path}")
