"""File classification: decide which files are fetched and how they are tagged.

The heuristics are an ordered table of :class:`ClassificationRule` entries,
evaluated top to bottom; the first rule whose predicate matches decides the
outcome.  The table is policy, not a correctness contract: callers may pass
their own rules to :func:`classify`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from repo_ingest.domain.entities import (
    ClassifiedFile,
    FileCategory,
    FileKind,
    IngestionConfig,
    TreeEntry,
)

CODE_EXTENSIONS: frozenset[str] = frozenset(
    {".js", ".jsx", ".ts", ".tsx", ".py", ".rb", ".php", ".go", ".java", ".cs"}
)

TEST_MARKERS: tuple[str, ...] = (".test.", ".spec.")

README_NAMES: frozenset[str] = frozenset({"readme", "readme.md", "readme.markdown"})

_BUSINESS_DIR_RE = re.compile(
    r"(?:^|/)(?:controllers|services|models|utils|helpers|core|lib|api)/",
    re.IGNORECASE,
)
_BUSINESS_SUFFIX_RE = re.compile(
    r"\.(?:controller|service|model|util|helper|api)\.[jt]sx?$", re.IGNORECASE
)
_APPLICATION_ENTRY_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:^|/)src/[^/]+\.[jt]sx?$", re.IGNORECASE),  # source root files
    re.compile(r"(?:^|/)app/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)pages/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)components/[^/]+/index\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)hooks/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)context/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)store/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)reducers/[^/]+\.[jt]sx?$", re.IGNORECASE),
    re.compile(r"(?:^|/)actions/[^/]+\.[jt]sx?$", re.IGNORECASE),
)


class RuleOutcome(str, Enum):
    """What a matching rule does to an entry."""

    EXCLUDE = "exclude"
    BUSINESS_LOGIC = "business-logic"
    OTHER = "other"


Predicate = Callable[[TreeEntry, IngestionConfig], bool]


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    """One row of the rule table: a named predicate tagged with an outcome."""

    name: str
    predicate: Predicate
    outcome: RuleOutcome


# ── Path helpers ────────────────────────────────────────────────────────────


def _filename(path: str) -> str:
    return path.rsplit("/", maxsplit=1)[-1]


def _directories(path: str) -> list[str]:
    return path.split("/")[:-1]


def file_extension(path: str) -> str:
    """Return the lower-cased extension of the file name, dot included."""
    name = _filename(path)
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def is_readme(path: str) -> bool:
    """Return *True* for README files at any depth (case-insensitive)."""
    return _filename(path).lower() in README_NAMES


# ── Predicates ──────────────────────────────────────────────────────────────


def _is_directory(entry: TreeEntry, config: IngestionConfig) -> bool:
    return entry.kind is FileKind.DIRECTORY


def _in_ignored_directory(entry: TreeEntry, config: IngestionConfig) -> bool:
    return any(
        part in config.ignored_directories or part.endswith(".egg-info")
        for part in _directories(entry.path)
    )


def _is_test_file(entry: TreeEntry, config: IngestionConfig) -> bool:
    name = _filename(entry.path).lower()
    return any(marker in name for marker in TEST_MARKERS)


def _is_oversized(entry: TreeEntry, config: IngestionConfig) -> bool:
    return (entry.size_bytes or 0) > config.max_file_size_bytes


def _has_denylisted_extension(entry: TreeEntry, config: IngestionConfig) -> bool:
    return file_extension(entry.path) in config.excluded_extensions


def _is_not_code(entry: TreeEntry, config: IngestionConfig) -> bool:
    return file_extension(entry.path) not in CODE_EXTENSIONS


def _in_business_directory(entry: TreeEntry, config: IngestionConfig) -> bool:
    return _BUSINESS_DIR_RE.search(entry.path) is not None


def _has_business_suffix(entry: TreeEntry, config: IngestionConfig) -> bool:
    return _BUSINESS_SUFFIX_RE.search(entry.path) is not None


def _is_application_entry(entry: TreeEntry, config: IngestionConfig) -> bool:
    return any(pattern.search(entry.path) for pattern in _APPLICATION_ENTRY_RES)


def _is_root_source(entry: TreeEntry, config: IngestionConfig) -> bool:
    return "/" not in entry.path


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("directory", _is_directory, RuleOutcome.EXCLUDE),
    ClassificationRule("ignored-directory", _in_ignored_directory, RuleOutcome.EXCLUDE),
    ClassificationRule("test-file", _is_test_file, RuleOutcome.EXCLUDE),
    ClassificationRule("oversized", _is_oversized, RuleOutcome.EXCLUDE),
    ClassificationRule(
        "denylisted-extension", _has_denylisted_extension, RuleOutcome.EXCLUDE
    ),
    ClassificationRule("non-code-extension", _is_not_code, RuleOutcome.OTHER),
    ClassificationRule(
        "business-directory", _in_business_directory, RuleOutcome.BUSINESS_LOGIC
    ),
    ClassificationRule(
        "business-suffix", _has_business_suffix, RuleOutcome.BUSINESS_LOGIC
    ),
    ClassificationRule(
        "application-entry", _is_application_entry, RuleOutcome.BUSINESS_LOGIC
    ),
    ClassificationRule("root-source", _is_root_source, RuleOutcome.BUSINESS_LOGIC),
)

FALLBACK_RULE = "fallback"


# ── Public API ──────────────────────────────────────────────────────────────


def classify_entry(
    entry: TreeEntry,
    config: IngestionConfig | None = None,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> ClassifiedFile:
    """Classify a single entry against *rules*; first match wins."""
    config = config or IngestionConfig()
    outcome, rule_name = RuleOutcome.OTHER, FALLBACK_RULE
    for rule in rules:
        if rule.predicate(entry, config):
            outcome, rule_name = rule.outcome, rule.name
            break

    return ClassifiedFile(
        path=entry.path,
        kind=entry.kind,
        size_bytes=entry.size_bytes,
        extension=file_extension(entry.path),
        category=(
            FileCategory.BUSINESS_LOGIC
            if outcome is RuleOutcome.BUSINESS_LOGIC
            else FileCategory.OTHER
        ),
        excluded=outcome is RuleOutcome.EXCLUDE,
        rule=rule_name,
    )


def classify(
    entries: Iterable[TreeEntry],
    config: IngestionConfig | None = None,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> list[ClassifiedFile]:
    """Classify every entry, preserving input order."""
    config = config or IngestionConfig()
    return [classify_entry(entry, config, rules) for entry in entries]


def find_readme(files: Iterable[ClassifiedFile]) -> ClassifiedFile | None:
    """Return the shallowest non-excluded README, or ``None``."""
    candidates = [f for f in files if not f.excluded and is_readme(f.path)]
    if not candidates:
        return None
    return min(candidates, key=lambda f: f.path.count("/"))
