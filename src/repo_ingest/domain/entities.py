"""Domain entities: pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from repo_ingest.domain.value_objects import RepositoryRef


class FileKind(str, Enum):
    """Kind of a tree node as reported by the source provider."""

    FILE = "file"
    DIRECTORY = "directory"


class FileCategory(str, Enum):
    """Classification bucket deciding what gets fetched by default."""

    BUSINESS_LOGIC = "business-logic"
    OTHER = "other"


class IngestionStage(str, Enum):
    """Pipeline stages of a single ingestion request."""

    STARTED = "started"
    URL_PARSED = "url_parsed"
    METADATA_FETCHED = "metadata_fetched"
    TREE_FETCHED = "tree_fetched"
    CLASSIFIED = "classified"
    CONTENT_FETCHED = "content_fetched"
    RENDERED = "rendered"
    COMPLETED = "completed"
    FAILED = "failed"


# ── Configuration defaults ──────────────────────────────────────────────────

DEFAULT_MAX_FILE_SIZE_KB = 500
DEFAULT_CONCURRENCY_LIMIT = 5

DEFAULT_EXCLUDED_EXTENSIONS: frozenset[str] = frozenset(
    {
        # Images
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".svg", ".ico", ".webp", ".tiff",
        # Archives
        ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar", ".jar", ".war",
        # Fonts
        ".woff", ".woff2", ".ttf", ".otf", ".eot",
        # Audio / video
        ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".ogg", ".mkv", ".webm",
        # Documents
        ".pdf",
        # Compiled
        ".exe", ".dll", ".so", ".dylib", ".o", ".class", ".pyc",
    }
)

DEFAULT_IGNORED_DIRECTORIES: frozenset[str] = frozenset(
    {
        # Version control
        ".git", ".svn", ".hg",
        # Dependencies
        "node_modules", "bower_components", "vendor", ".venv", "venv", "__pycache__",
        # Build / output
        "dist", "build", "out", "target", ".next", ".nuxt", "coverage",
        # Editor metadata
        ".idea", ".vscode",
    }
)


@dataclass(frozen=True, slots=True)
class IngestionConfig:
    """Explicit engine configuration, injected by the caller."""

    max_file_size_kb: int = DEFAULT_MAX_FILE_SIZE_KB
    excluded_extensions: frozenset[str] = DEFAULT_EXCLUDED_EXTENSIONS
    ignored_directories: frozenset[str] = DEFAULT_IGNORED_DIRECTORIES
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    include_all_files: bool = False
    fetch_timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        if self.max_file_size_kb < 0:
            raise ValueError("max_file_size_kb must not be negative")

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_kb * 1024


# ── Provider data ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepoMetadata:
    """High-level metadata about a repository."""

    default_branch: str
    description: str | None = None
    language: str | None = None
    is_private: bool = False


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single node from the provider's tree listing."""

    path: str
    kind: FileKind = FileKind.FILE
    size_bytes: int | None = None


@dataclass(frozen=True, slots=True)
class ClassifiedFile:
    """A tree entry annotated by the file classifier."""

    path: str
    kind: FileKind
    size_bytes: int | None
    extension: str
    category: FileCategory
    excluded: bool
    rule: str = ""

    @property
    def is_business_logic(self) -> bool:
        return self.category is FileCategory.BUSINESS_LOGIC


@dataclass(frozen=True, slots=True)
class FetchedFile:
    """A file whose content was retrieved successfully."""

    path: str
    content: str
    category: FileCategory = FileCategory.OTHER

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of one fetch-coordinator run."""

    fetched: tuple[FetchedFile, ...] = ()
    failed_paths: frozenset[str] = frozenset()
    total_bytes: int = 0
    cancelled: bool = False


# ── Ingestion output ────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class IngestionSummary:
    """Headline numbers handed to the analysis collaborator."""

    repository: str
    description: str
    language: str
    total_file_count: int
    fetched_file_count: int
    business_logic_count: int
    other_count: int


@dataclass(frozen=True, slots=True)
class AdditionalFiles:
    """Files fetched on top of a prior ingestion."""

    digest: str
    fetched_files: tuple[FetchedFile, ...] = ()
    failed_paths: frozenset[str] = frozenset()
    total_bytes: int = 0
    cancelled: bool = False


@dataclass(frozen=True, slots=True)
class IngestionResult:
    """The sole artifact produced by an ingestion; immutable once built."""

    ref: RepositoryRef
    summary: IngestionSummary
    tree_view: str
    digest: str
    fetched_files: tuple[FetchedFile, ...]
    failed_paths: frozenset[str]
    total_content_bytes: int
    readme: str | None = None
    files: tuple[ClassifiedFile, ...] = field(default_factory=tuple)
    all_files_included: bool = False
    cancelled: bool = False
    status: IngestionStage = IngestionStage.COMPLETED

