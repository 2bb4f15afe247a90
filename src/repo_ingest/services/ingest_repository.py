"""Ingest-repository use case: the main orchestration pipeline.

This is the single entry point for the business logic.  It depends only on
the :class:`SourceProvider` port and the pure service modules; the caller
injects a concrete provider and an explicit :class:`IngestionConfig`.

Stages up to ``TREE_FETCHED`` are fatal on error.  From ``CLASSIFIED`` on,
per-file failures are absorbed into ``failed_paths`` and the pipeline always
completes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace

from repo_ingest.domain.entities import (
    AdditionalFiles,
    ClassifiedFile,
    FetchOutcome,
    FileCategory,
    FileKind,
    IngestionConfig,
    IngestionResult,
    IngestionStage,
    IngestionSummary,
    TreeEntry,
)
from repo_ingest.domain.exceptions import (
    PrivateRepositoryNotSupportedError,
    RepoIngestError,
    SourceUnavailableError,
    TreeFetchFailedError,
)
from repo_ingest.domain.ports.source_provider import SourceProvider
from repo_ingest.domain.value_objects import RepositoryRef
from repo_ingest.services.fetch_coordinator import FetchRequest, fetch_contents
from repo_ingest.services.file_classifier import classify, find_readme
from repo_ingest.services.renderer import format_bytes, render_digest, render_tree

logger = logging.getLogger(__name__)


class IngestRepositoryUseCase:
    """Orchestrates the URL → tree → classification → digest pipeline.

    Parameters
    ----------
    source_provider:
        Adapter that can fetch metadata, tree and file content.
    config:
        Size ceiling, extension denylist, concurrency limit and defaults for
        file selection and fetch timeout.
    """

    def __init__(
        self,
        source_provider: SourceProvider,
        config: IngestionConfig | None = None,
    ) -> None:
        self._provider = source_provider
        self._config = config or IngestionConfig()

    # ── Public entry point ──────────────────────────────────────────────

    async def ingest(
        self,
        url: str,
        *,
        include_all_files: bool | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionResult:
        """Run the full pipeline and return the ingestion artifact."""
        include_all = (
            self._config.include_all_files
            if include_all_files is None
            else include_all_files
        )
        if timeout is None:
            timeout = self._config.fetch_timeout_seconds

        stage = IngestionStage.STARTED
        try:
            ref = RepositoryRef.from_url(url)
            stage = IngestionStage.URL_PARSED
            logger.info("Ingesting %s", ref.full_name)

            metadata = await self._provider.get_repository_metadata(ref)
            if metadata.is_private:
                raise PrivateRepositoryNotSupportedError(
                    f"{ref.full_name} is a private repository. "
                    "Only public repositories are supported."
                )
            ref = ref.with_branch(metadata.default_branch)
            branch = ref.ref_name or metadata.default_branch
            stage = IngestionStage.METADATA_FETCHED

            try:
                tree = await self._provider.get_tree(ref, branch)
            except SourceUnavailableError as exc:
                raise TreeFetchFailedError(
                    f"Failed to fetch tree for {ref.full_name}: {exc}"
                ) from exc
            stage = IngestionStage.TREE_FETCHED
        except RepoIngestError as exc:
            exc.stage = stage.value
            logger.warning("Ingestion failed after %s: %s", stage.value, exc)
            raise

        # 1. Classify
        classified = classify(tree, self._config)
        eligible = [f for f in classified if not f.excluded]
        readme_file = find_readme(eligible)
        candidates = [f for f in eligible if f is not readme_file]
        business = [f for f in candidates if f.is_business_logic]
        others = [f for f in candidates if not f.is_business_logic]
        to_fetch = candidates if include_all else business
        logger.info(
            "Classified %d entries: %d business-logic, %d other, %d excluded",
            len(classified),
            len(business),
            len(others),
            len(classified) - len(eligible),
        )

        # 2. Fetch; the README is scheduled first and shares the deadline
        requests: list[ClassifiedFile | FetchRequest] = list(to_fetch)
        if readme_file is not None:
            requests.insert(0, readme_file)

        logger.info("Fetching %d files from %s", len(requests), ref.full_name)
        outcome = await fetch_contents(
            self._provider,
            ref,
            branch,
            requests,
            concurrency_limit=self._config.concurrency_limit,
            timeout=timeout,
            cancel_event=cancel_event,
        )
        readme, outcome = _split_readme(outcome, readme_file)

        # 3. Render
        summary = IngestionSummary(
            repository=ref.full_name,
            description=metadata.description or "None",
            language=metadata.language or "Unknown",
            total_file_count=sum(1 for e in tree if e.kind is FileKind.FILE),
            fetched_file_count=len(outcome.fetched),
            business_logic_count=len(business),
            other_count=len(others),
        )
        result = IngestionResult(
            ref=ref,
            summary=summary,
            tree_view=render_tree(eligible),
            digest=render_digest(outcome.fetched),
            fetched_files=outcome.fetched,
            failed_paths=outcome.failed_paths,
            total_content_bytes=outcome.total_bytes,
            readme=readme,
            files=tuple(classified),
            all_files_included=include_all,
            cancelled=outcome.cancelled,
        )
        logger.info(
            "Ingested %s: %d file(s), %s, %d failed",
            ref.full_name,
            summary.fetched_file_count,
            format_bytes(result.total_content_bytes),
            len(result.failed_paths),
        )
        return result

    # ── Auxiliary operations ────────────────────────────────────────────

    async def fetch_additional_files(
        self,
        ref: RepositoryRef,
        paths: Iterable[str],
        *,
        previous: IngestionResult | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AdditionalFiles:
        """Fetch *paths* on top of a prior ingestion, without reclassifying.

        Paths already fetched in *previous* are skipped.  Categories come
        from ``previous.files`` when known.
        """
        known_categories: dict[str, FileCategory] = {}
        already_fetched: set[str] = set()
        if previous is not None:
            known_categories = {f.path: f.category for f in previous.files}
            already_fetched = {f.path for f in previous.fetched_files}

        requests = [
            FetchRequest(path, known_categories.get(path, FileCategory.OTHER))
            for path in _unique(paths)
            if path not in already_fetched
        ]
        if not requests:
            return AdditionalFiles(digest="")

        branch = await self._resolve_branch(ref)
        outcome = await fetch_contents(
            self._provider,
            ref,
            branch,
            requests,
            concurrency_limit=self._config.concurrency_limit,
            timeout=timeout if timeout is not None else self._config.fetch_timeout_seconds,
            cancel_event=cancel_event,
        )
        logger.info(
            "Fetched %d additional file(s) from %s", len(outcome.fetched), ref.full_name
        )
        return AdditionalFiles(
            digest=render_digest(outcome.fetched),
            fetched_files=outcome.fetched,
            failed_paths=outcome.failed_paths,
            total_bytes=outcome.total_bytes,
            cancelled=outcome.cancelled,
        )

    async def generate_digest_for_paths(
        self,
        ref: RepositoryRef,
        paths: Iterable[str],
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Produce a digest for an arbitrary subset of paths (e.g. a UI selection)."""
        requests = [FetchRequest(path) for path in _unique(paths)]
        if not requests:
            return ""

        branch = await self._resolve_branch(ref)
        outcome = await fetch_contents(
            self._provider,
            ref,
            branch,
            requests,
            concurrency_limit=self._config.concurrency_limit,
            timeout=timeout if timeout is not None else self._config.fetch_timeout_seconds,
            cancel_event=cancel_event,
        )
        if outcome.failed_paths:
            logger.warning(
                "Digest for %s omits %d unavailable file(s)",
                ref.full_name,
                len(outcome.failed_paths),
            )
        return render_digest(outcome.fetched)

    # ── Helpers ─────────────────────────────────────────────────────────

    async def _resolve_branch(self, ref: RepositoryRef) -> str:
        if ref.ref_name:
            return ref.ref_name
        metadata = await self._provider.get_repository_metadata(ref)
        return metadata.default_branch


def _split_readme(
    outcome: FetchOutcome, readme_file: ClassifiedFile | None
) -> tuple[str | None, FetchOutcome]:
    """Pull the README out of *outcome* so it stays out of the digest and totals.

    A README that could not be fetched stays in ``failed_paths``.
    """
    if readme_file is None:
        return None, outcome

    readme = None
    fetched = []
    for f in outcome.fetched:
        if f.path == readme_file.path:
            readme = f.content
        else:
            fetched.append(f)
    if readme is None:
        logger.warning("README %s could not be fetched", readme_file.path)
        return None, outcome

    return readme, replace(
        outcome,
        fetched=tuple(fetched),
        total_bytes=sum(f.size_bytes for f in fetched),
    )


def extend_result(
    previous: IngestionResult, additional: AdditionalFiles
) -> IngestionResult:
    """Return a new result with *additional* files merged into *previous*.

    The digest is re-rendered from the merged files, so it matches a
    single-pass digest of the same files.  Paths already present are not
    duplicated in the digest or the tree.
    Paths that were fetched successfully this time leave ``failed_paths``.
    """
    known = {f.path for f in previous.fetched_files}
    new_files = tuple(f for f in additional.fetched_files if f.path not in known)
    new_paths = {f.path for f in new_files}
    fetched = previous.fetched_files + new_files

    tree_entries: list[TreeEntry | ClassifiedFile | str] = [
        f for f in previous.files if not f.excluded
    ]
    tree_entries.extend(f.path for f in new_files)

    return replace(
        previous,
        summary=replace(previous.summary, fetched_file_count=len(fetched)),
        tree_view=render_tree(tree_entries),
        digest=render_digest(fetched),
        fetched_files=fetched,
        failed_paths=(previous.failed_paths - new_paths)
        | (additional.failed_paths - known),
        total_content_bytes=previous.total_content_bytes
        + sum(f.size_bytes for f in new_files),
        cancelled=previous.cancelled or additional.cancelled,
    )


def _unique(paths: Iterable[str]) -> list[str]:
    """De-duplicate *paths* while keeping their first-seen order."""
    return list(dict.fromkeys(p.strip("/") for p in paths if p and p.strip("/")))
