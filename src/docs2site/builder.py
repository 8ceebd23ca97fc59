"""ドキュメント群をビルドしてサイト成果物を生成する中核オーケストレーター。"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Any, Callable

import psutil
from tqdm import tqdm

from .aggregation import AggregationEngine
from .artifacts import ArtifactWriter, HtmlRenderer, WrittenArtifacts
from .config import BuildConfig
from .content import ContentRepository, DocumentSet
from .errors import BuildCancelledError, EmptyCorpusError
from .finalizer import FinalizeResult, Finalizer, SitemapIndexResult
from .page import render_html
from .rendering import DocumentRenderer, Renderer
from .report import RunSummary
from .runner import BuildResult, Built, DocumentBuildRunner, Prompt, Skipped, ask_recovery_action

MemoryProbe = Callable[[], int]


def current_memory_bytes() -> int:
    """現在のプロセスの常駐メモリ量 (RSS) を返します。"""

    return psutil.Process(os.getpid()).memory_info().rss


@dataclass(slots=True)
class RunResult:
    summary: RunSummary
    finalized: FinalizeResult
    slugs_per_locale: dict[str, list[dict[str, str]]]
    skipped: list[Path]


class Docs2SiteBuilder:
    """列挙・ビルド・書き出し・集計・最終出力を統括する高レベルパイプライン。"""

    def __init__(
        self,
        config: BuildConfig,
        repository: ContentRepository | None = None,
        renderer: Renderer | None = None,
        prompt: Prompt = ask_recovery_action,
        memory_probe: MemoryProbe = current_memory_bytes,
        html_renderer: HtmlRenderer = render_html,
    ) -> None:
        self.config = config
        self.repository = repository if repository is not None else ContentRepository(config.content)
        self.renderer = renderer if renderer is not None else DocumentRenderer(self.repository)
        self.runner = DocumentBuildRunner(self.repository, self.renderer, prompt=prompt)
        self.writer = ArtifactWriter(config.output.root, no_html=config.options.no_html, html_renderer=html_renderer)
        self.finalizer = Finalizer(config.output, config.base_url)
        self._memory_probe = memory_probe
        self._cancelled = threading.Event()
        self._first_error: BaseException | None = None
        self._error_lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self._summary_base = {
            "content_root": str(config.content.root),
            "output_dir": str(config.output.root),
            "created_at": config.created_at.isoformat(),
        }
        self._summary_path = config.output.logs_dir / "build_summary.json"

    async def build(self) -> RunResult:
        options = self.config.options
        documents = self.repository.find_all(
            files=options.files or None,
            locales=options.locales,
            folder_searches=options.folder_searches,
        )
        if not documents.count:
            raise EmptyCorpusError()
        self._prepare_logging_resources()
        self._update_summary("discovered", total=documents.count, locales=sorted(options.locales))
        self._logger.info("ビルド対象のドキュメントを %d 件検出しました。", documents.count)

        aggregates = AggregationEngine()
        started = time.monotonic()
        try:
            skipped = await self._build_all(documents, aggregates)
            self._update_summary("finalizing", built=aggregates.built_count, skipped=len(skipped))
            finalized = self.finalizer.finalize(aggregates)
        except Exception as exc:
            self._update_summary("failed", built=aggregates.built_count, error=str(exc))
            raise
        seconds = time.monotonic() - started

        summary = RunSummary(
            count=aggregates.built_count,
            seconds=seconds,
            peak_memory_bytes=aggregates.peak_memory_bytes,
            total_flaws=aggregates.total_flaws,
            locales=tuple(sorted(options.locales)),
        )
        self._update_summary("completed", skipped=len(skipped), **summary.to_dict())
        return RunResult(
            summary=summary,
            finalized=finalized,
            slugs_per_locale=aggregates.slugs_per_locale,
            skipped=skipped,
        )

    async def _build_all(self, documents: DocumentSet, aggregates: AggregationEngine) -> list[Path]:
        total = documents.count
        worker_count = self._determine_workers(total)
        progress = self._create_progress(total)
        skipped: list[Path] = []
        completed = 0
        paths = documents.iter_paths()
        self._cancelled.clear()
        self._first_error = None
        try:
            while True:
                batch = list(islice(paths, worker_count))
                if not batch:
                    break
                if worker_count == 1:
                    outcomes = [self._build_and_persist(batch[0])]
                else:
                    # 集計はこのタスクだけが行い、バッチ内は列挙順に反映する
                    try:
                        outcomes = await asyncio.gather(
                            *(asyncio.to_thread(self._build_and_persist, path) for path in batch)
                        )
                    except BuildCancelledError:
                        if self._first_error is not None:
                            raise self._first_error
                        raise
                for path, (result, written) in zip(batch, outcomes):
                    completed += 1
                    self._aggregate(path, result, written, aggregates, skipped)
                    aggregates.sample_memory(self._memory_probe())
                    if progress is not None:
                        progress.update(1)
                    elif not self.config.options.quiet and written is not None:
                        tqdm.write(str(written.out_dir))
                    self._logger.info("ビルド中 (%d/%d): %s", completed, total, path)
                    self._update_summary(
                        "building",
                        total=total,
                        completed=completed,
                        built=aggregates.built_count,
                        skipped=len(skipped),
                        last_file=str(path),
                    )
        finally:
            if progress is not None:
                progress.close()
        if skipped:
            samples = ", ".join(str(path) for path in skipped[:3])
            self._logger.warning("スキップしたドキュメントが %d 件あります。サンプル: %s", len(skipped), samples)
        return skipped

    def _build_and_persist(self, path: Path) -> tuple[BuildResult, WrittenArtifacts | None]:
        if self._cancelled.is_set():
            raise BuildCancelledError(path)
        try:
            result = self.runner.build(path, self.config.options.interactive)
            if isinstance(result, Skipped):
                return result, None
            if self._cancelled.is_set():
                raise BuildCancelledError(path)
            written = self.writer.persist(
                result.document,
                result.built_document,
                result.live_samples,
                result.file_attachments,
            )
        except BuildCancelledError:
            raise
        except Exception as exc:
            # 同じウィンドウの他スレッドに書き出しを中止させる
            with self._error_lock:
                if self._first_error is None:
                    self._first_error = exc
            self._cancelled.set()
            raise
        return result, written

    def _aggregate(
        self,
        path: Path,
        result: BuildResult,
        written: WrittenArtifacts | None,
        aggregates: AggregationEngine,
        skipped: list[Path],
    ) -> None:
        if isinstance(result, Skipped):
            skipped.append(path)
            self._update_summary("skipped", skipped=len(skipped), last_file=str(path))
            return
        if isinstance(result, Built) and written is not None:
            aggregates.record_built(result, written.metadata)
            return
        raise TypeError(f"想定外のビルド結果です: {result!r}")

    def _determine_workers(self, total: int) -> int:
        if self.config.options.interactive:
            return 1
        requested = self.config.options.max_workers
        return max(1, min(total, requested))

    def _create_progress(self, total: int) -> tqdm | None:
        options = self.config.options
        if options.no_progressbar or options.quiet:
            return None
        return tqdm(total=total, unit="doc", dynamic_ncols=True)

    def _prepare_logging_resources(self) -> None:
        self.config.output.root.mkdir(parents=True, exist_ok=True)
        self.config.output.logs_dir.mkdir(parents=True, exist_ok=True)
        self._summary_path.write_text("", encoding="utf-8")

    def _update_summary(self, stage: str, **extra: Any) -> None:
        payload = dict(self._summary_base)
        payload.update(extra)
        payload["stage"] = stage
        self._summary_path.parent.mkdir(parents=True, exist_ok=True)
        with self._summary_path.open("a", encoding="utf-8") as stream:
            stream.write(json.dumps(payload, ensure_ascii=False))
            stream.write("\n")


def build_documents(config: BuildConfig, **kwargs: Any) -> RunResult:
    builder = Docs2SiteBuilder(config, **kwargs)
    return asyncio.run(builder.build())


def build_sitemap_index(config: BuildConfig) -> SitemapIndexResult:
    return Finalizer(config.output, config.base_url).build_sitemap_index()
