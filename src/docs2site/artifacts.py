"""ドキュメント単位の成果物を書き出すライター。"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from .constants import METADATA_FILENAME, RENDER_ONLY_FIELDS
from .content import Document, slug_to_folder
from .errors import ArtifactWriteError
from .page import render_html
from .rendering import BuiltDocument, LiveSample

HtmlRenderer = Callable[[str, Mapping[str, Any]], str]


@dataclass(slots=True)
class WrittenArtifacts:
    """書き出し済みの出力先とメタデータレコード。"""

    out_dir: Path
    metadata: dict[str, Any]


def serialize_document(payload: Mapping[str, Any]) -> str:
    """index.json に書き出す本文 JSON を生成します。"""

    return json.dumps({"doc": payload}, ensure_ascii=False)


def content_hash(doc_string: str) -> str:
    return hashlib.sha256(doc_string.encode("utf-8")).hexdigest()


def build_metadata(payload: Mapping[str, Any], doc_string: str) -> dict[str, Any]:
    """描画専用フィールドを除いたメタデータに本文 JSON のハッシュを付与します。"""

    metadata = {key: value for key, value in payload.items() if key not in RENDER_ONLY_FIELDS}
    metadata["hash"] = content_hash(doc_string)
    return metadata


def render_contributors_txt(contributors: Sequence[str], github_url: str | None = None) -> str:
    """contributors.txt の内容を組み立てます。"""

    text = ""
    if github_url:
        text += f"# Contributors by commit history\n{github_url}\n\n"
    if contributors:
        text += "# Original Wiki contributors\n" + "\n".join(contributors) + "\n"
    return text


class ArtifactWriter:
    """1 件のビルド結果を出力ディレクトリへ永続化します。

    出力先は ``<root>/<slug_to_folder(document.url)>`` で、ドキュメントの
    ロケールとスラッグだけから決まります。
    """

    def __init__(self, root: Path, no_html: bool = False, html_renderer: HtmlRenderer = render_html) -> None:
        self._root = root
        self._no_html = no_html
        self._html_renderer = html_renderer
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    def output_dir(self, document: Document) -> Path:
        return self._root / slug_to_folder(document.url)

    def persist(
        self,
        document: Document,
        built: BuiltDocument,
        live_samples: Sequence[LiveSample],
        file_attachments: Sequence[Path],
    ) -> WrittenArtifacts:
        out_dir = self.output_dir(document)
        payload = built.to_dict()
        # レンダリング前に JSON を確定させる。HTML レンダラーにはコピーだけを渡す。
        doc_string = serialize_document(payload)
        metadata = build_metadata(payload, doc_string)
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            if not self._no_html:
                html = self._html_renderer(document.url, copy.deepcopy(payload))
                (out_dir / "index.html").write_text(html, encoding="utf-8")
            (out_dir / "index.json").write_text(doc_string, encoding="utf-8")
            (out_dir / "contributors.txt").write_text(
                render_contributors_txt(document.contributors, self._commits_url(built)),
                encoding="utf-8",
            )
            for sample in live_samples:
                (out_dir / f"_sample_.{sample.id}.html").write_text(sample.html, encoding="utf-8")
            for attachment in file_attachments:
                # 同名ファイルは後勝ちで上書きされる
                shutil.copyfile(attachment, out_dir / Path(attachment).name)
            (out_dir / METADATA_FILENAME).write_text(json.dumps(metadata, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteError(out_dir, str(exc)) from exc
        self._logger.debug("成果物を書き出しました: %s", out_dir)
        return WrittenArtifacts(out_dir=out_dir, metadata=metadata)

    def _commits_url(self, built: BuiltDocument) -> str | None:
        github_url = built.source.github_url
        if not github_url:
            return None
        return github_url.replace("/blob/", "/commits/")
