"""Pytest configuration and shared fixtures.

Provides an in-memory source provider that serves a fixed tree and file
contents, with optional per-path delays and failures.
"""

from __future__ import annotations

import asyncio

import pytest

from repo_ingest.domain.entities import FileKind, RepoMetadata, TreeEntry
from repo_ingest.domain.exceptions import FileFetchFailedError
from repo_ingest.domain.value_objects import RepositoryRef


class FakeSourceProvider:
    """In-memory SourceProvider double."""

    def __init__(
        self,
        tree: list[TreeEntry],
        contents: dict[str, str],
        *,
        metadata: RepoMetadata | None = None,
        failing: set[str] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.tree = tree
        self.contents = contents
        self.metadata = metadata or RepoMetadata(
            default_branch="main", description="A demo", language="JavaScript"
        )
        self.failing = failing or set()
        self.delays = delays or {}
        self.requested: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_repository_metadata(self, ref: RepositoryRef) -> RepoMetadata:
        return self.metadata

    async def get_tree(self, ref: RepositoryRef, branch: str) -> list[TreeEntry]:
        return list(self.tree)

    async def get_file_content(
        self, ref: RepositoryRef, path: str, branch: str
    ) -> str | None:
        self.requested.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(path, 0))
            if path in self.failing:
                raise FileFetchFailedError(f"boom: {path}")
            return self.contents.get(path)
        finally:
            self.in_flight -= 1


def blob(path: str, size: int = 100) -> TreeEntry:
    return TreeEntry(path=path, kind=FileKind.FILE, size_bytes=size)


def directory(path: str) -> TreeEntry:
    return TreeEntry(path=path, kind=FileKind.DIRECTORY)


@pytest.fixture
def ref() -> RepositoryRef:
    return RepositoryRef(owner="octo", name="demo", default_branch="main")


@pytest.fixture
def sample_tree() -> list[TreeEntry]:
    """Tree from the end-to-end scenario: one source file, one dependency, one image."""
    return [
        directory("src"),
        blob("src/index.js", 120),
        blob("node_modules/x.js", 50),
        blob("logo.png", 200),
    ]


@pytest.fixture
def sample_provider(sample_tree: list[TreeEntry]) -> FakeSourceProvider:
    return FakeSourceProvider(
        sample_tree,
        {
            "src/index.js": "console.log('hi');",
            "node_modules/x.js": "module.exports = 1;",
        },
    )
