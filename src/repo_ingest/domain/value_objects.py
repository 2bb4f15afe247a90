"""Value objects: self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from urllib.parse import unquote

from repo_ingest.domain.exceptions import InvalidUrlFormatError

_REPO_URL_RE = re.compile(
    r"^(?:[A-Za-z][A-Za-z0-9+.\-]*://)?(?:www\.)?"
    r"(?P<host>(?:[A-Za-z0-9\-]+\.)+[A-Za-z]{2,}|localhost)(?::\d+)?"
    r"/(?P<owner>[^/?#\s]+)/(?P<name>[^/?#\s]+)"
    r"(?P<rest>/[^?#\s]*)?(?:[?#]\S*)?$"
)


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Identity of a repository on a source host.

    Built once from a URL like ``https://github.com/psf/requests``; the
    default branch is unknown until metadata has been fetched and is filled
    in with :meth:`with_branch`.
    """

    owner: str
    name: str
    default_branch: str | None = None
    host: str = "github.com"
    branch: str | None = None

    @classmethod
    def from_url(cls, url: str) -> RepositoryRef:
        """Parse and validate a raw URL string."""
        url = url.strip()
        match = _REPO_URL_RE.match(url)
        if not match:
            raise InvalidUrlFormatError(
                f"Invalid repository URL: '{url}'. "
                "Expected format: https://<host>/<owner>/<repository>"
            )

        owner = unquote(match["owner"]).strip()
        name = unquote(match["name"]).strip().removesuffix(".git")
        if not owner or not name:
            raise InvalidUrlFormatError(
                f"Invalid repository URL: '{url}'. Owner and repository name "
                "must not be empty."
            )
        if "/" in owner or "/" in name:
            raise InvalidUrlFormatError(
                f"Invalid repository URL: '{url}'. Owner and repository name "
                "must be single path segments."
            )

        # Everything after /tree/ is the branch name (may contain slashes)
        branch = None
        rest = (match["rest"] or "").strip("/")
        if rest.startswith("tree/") and len(rest) > len("tree/"):
            branch = unquote(rest[len("tree/") :])

        return cls(owner=owner, name=name, host=match["host"].lower(), branch=branch)

    def with_branch(self, default_branch: str) -> RepositoryRef:
        """Return a copy with the default branch resolved."""
        return replace(self, default_branch=default_branch)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def ref_name(self) -> str | None:
        """The branch content should be read from: explicit, else default."""
        return self.branch or self.default_branch


def parse_repository_url(url: str) -> RepositoryRef:
    """Extract owner/name from a host URL; raise InvalidUrlFormatError otherwise."""
    return RepositoryRef.from_url(url)
