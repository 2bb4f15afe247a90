"""Port: source provider, defined by the domain and implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_ingest.domain.entities import RepoMetadata, TreeEntry
from repo_ingest.domain.value_objects import RepositoryRef


class SourceProvider(Protocol):
    """Abstract contract for reading a repository from its hosting service."""

    async def get_repository_metadata(self, ref: RepositoryRef) -> RepoMetadata:
        """Return description, language, default branch and visibility."""
        ...

    async def get_tree(self, ref: RepositoryRef, branch: str) -> list[TreeEntry]:
        """Return the recursive file tree for the given branch."""
        ...

    async def get_file_content(
        self, ref: RepositoryRef, path: str, branch: str
    ) -> str | None:
        """Return the decoded text of one file, or ``None`` if it does not exist."""
        ...
