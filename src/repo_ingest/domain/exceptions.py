"""Domain exception hierarchy.

Every exception carries a ``kind`` string naming its place in the error
taxonomy, so callers can branch on it without importing each class.
Inner layers raise these; adapters translate transport errors into them.
"""

from __future__ import annotations


class RepoIngestError(Exception):
    """Base exception for the entire application."""

    kind: str = "RepoIngestError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        # Set by the orchestrator to the pipeline stage that failed.
        self.stage: str | None = None


# ── Input validation ────────────────────────────────────────────────────────


class InvalidUrlFormatError(RepoIngestError):
    """The supplied URL does not look like ``<host>/<owner>/<name>``."""

    kind = "InvalidUrlFormat"


# ── Source provider errors (fatal) ──────────────────────────────────────────


class RepositoryNotFoundError(RepoIngestError):
    """The repository does not exist or is not visible (404)."""

    kind = "RepositoryNotFound"


class PrivateRepositoryNotSupportedError(RepoIngestError):
    """The repository is private; only public repositories are ingested."""

    kind = "PrivateRepositoryNotSupported"


class SourceAccessDeniedError(RepoIngestError):
    """Access to the repository was denied (403 without rate-limit headers)."""

    kind = "SourceAccessDenied"


class SourceRateLimitedError(RepoIngestError):
    """The source provider's rate limit is exhausted; retry later."""

    kind = "SourceRateLimited"

    def __init__(self, message: str = "", reset_at: int | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class SourceUnavailableError(RepoIngestError):
    """Transient provider failure (network error or 5xx)."""

    kind = "SourceUnavailable"


class TreeFetchFailedError(RepoIngestError):
    """The repository tree could not be retrieved."""

    kind = "TreeFetchFailed"


# ── Per-file errors (recorded, never propagated) ───────────────────────────


class FileFetchFailedError(RepoIngestError):
    """A single file's content could not be retrieved."""

    kind = "FileFetchFailed"


class ContentDecodeError(FileFetchFailedError):
    """A file's bytes could not be decoded as UTF-8 text."""

    kind = "ContentDecodeError"
