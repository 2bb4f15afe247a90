"""GitHub REST API adapter implementing the SourceProvider port."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import quote

import httpx

from repo_ingest.domain.entities import FileKind, RepoMetadata, TreeEntry
from repo_ingest.domain.exceptions import (
    ContentDecodeError,
    FileFetchFailedError,
    RepoIngestError,
    RepositoryNotFoundError,
    SourceAccessDeniedError,
    SourceRateLimitedError,
    SourceUnavailableError,
    TreeFetchFailedError,
)
from repo_ingest.domain.value_objects import RepositoryRef

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
RAW_BASE = "https://raw.githubusercontent.com"
USER_AGENT = "repo-ingest/1.0"


class GitHubRestAdapter:
    """Concrete SourceProvider backed by the GitHub v3 REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        api_base: str = GITHUB_API,
        raw_base: str = RAW_BASE,
    ) -> None:
        self._client = client
        self._api_base = api_base.rstrip("/")
        self._raw_base = raw_base.rstrip("/")
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        self._raw_headers: dict[str, str] = {"User-Agent": USER_AGENT}
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"
            self._raw_headers["Authorization"] = f"Bearer {token}"

    async def get_repository_metadata(self, ref: RepositoryRef) -> RepoMetadata:
        """GET /repos/{owner}/{repo} → RepoMetadata."""
        resp = await self._api_get(f"/repos/{_q(ref.owner)}/{_q(ref.name)}")
        if resp.status_code == 404:
            raise RepositoryNotFoundError(
                f"Repository {ref.full_name} not found. "
                "Make sure the URL points to a public repository."
            )
        self._raise_for_status(resp, ref)

        try:
            data = resp.json()
        except ValueError as exc:
            raise SourceUnavailableError(
                f"GitHub returned an unreadable metadata response for {ref.full_name}"
            ) from exc
        return RepoMetadata(
            default_branch=data.get("default_branch") or "main",
            description=data.get("description"),
            language=data.get("language"),
            is_private=bool(data.get("private", False)),
        )

    async def get_tree(self, ref: RepositoryRef, branch: str) -> list[TreeEntry]:
        """GET /repos/{owner}/{repo}/git/trees/{branch}?recursive=1 → [TreeEntry]."""
        endpoint = f"/repos/{_q(ref.owner)}/{_q(ref.name)}/git/trees/{_q(branch)}"
        try:
            resp = await self._api_get(endpoint, params={"recursive": "1"})
        except SourceUnavailableError as exc:
            raise TreeFetchFailedError(
                f"Failed to fetch tree for {ref.full_name}: {exc}"
            ) from exc

        if resp.status_code == 409:
            raise TreeFetchFailedError(f"Repository {ref.full_name} is empty.")
        if resp.status_code == 404:
            raise TreeFetchFailedError(
                f"Branch '{branch}' not found in {ref.full_name}."
            )
        try:
            self._raise_for_status(resp, ref)
        except SourceRateLimitedError:
            raise
        except RepoIngestError as exc:
            raise TreeFetchFailedError(
                f"Failed to fetch tree for {ref.full_name}: {exc}"
            ) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise TreeFetchFailedError(
                f"GitHub returned an unreadable tree response for {ref.full_name}"
            ) from exc
        if data.get("truncated"):
            logger.warning(
                "Tree for %s is truncated by GitHub; using the partial listing",
                ref.full_name,
            )

        entries: list[TreeEntry] = []
        for item in data.get("tree", []):
            item_type = item.get("type")
            if item_type == "blob":
                entries.append(
                    TreeEntry(
                        path=item["path"],
                        kind=FileKind.FILE,
                        size_bytes=item.get("size", 0),
                    )
                )
            elif item_type == "tree":
                entries.append(TreeEntry(path=item["path"], kind=FileKind.DIRECTORY))
            # "commit" items are submodules and have no content here
        return entries

    async def get_file_content(
        self, ref: RepositoryRef, path: str, branch: str
    ) -> str | None:
        """Fetch raw file content via raw.githubusercontent.com (no API rate limit)."""
        raw_url = (
            f"{self._raw_base}/{_q(ref.owner)}/{_q(ref.name)}/{_q(branch)}/{_q(path)}"
        )
        try:
            resp = await self._client.get(raw_url, headers=self._raw_headers)
        except httpx.HTTPError as exc:
            raise FileFetchFailedError(
                f"Network error fetching {raw_url}: {exc}"
            ) from exc

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise FileFetchFailedError(
                f"{self._raw_base} returned HTTP {resp.status_code} for {path}"
            )

        try:
            return resp.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ContentDecodeError(f"{path} is not valid UTF-8 text") from exc

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request, translating transport errors."""
        url = f"{self._api_base}{endpoint}"
        try:
            return await self._client.get(
                url, headers=self._api_headers, params=params
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                f"Network error fetching {url}: {exc}"
            ) from exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response, ref: RepositoryRef) -> None:
        """Map non-200 API responses onto the domain error taxonomy."""
        if resp.status_code == 200:
            return

        if resp.status_code == 404:
            raise RepositoryNotFoundError(f"Repository {ref.full_name} not found.")

        if resp.status_code in (403, 429):
            remaining = resp.headers.get("x-ratelimit-remaining", "")
            if resp.status_code == 429 or remaining == "0":
                reset_raw = resp.headers.get("x-ratelimit-reset", "")
                reset_at: int | None
                try:
                    reset_at = int(reset_raw)
                    reset_str = datetime.fromtimestamp(reset_at, tz=timezone.utc).strftime(
                        "%Y-%m-%d %H:%M:%S UTC"
                    )
                except (ValueError, OSError):
                    reset_at = None
                    reset_str = reset_raw or "unknown"
                raise SourceRateLimitedError(
                    f"GitHub API rate limit exceeded. Resets at {reset_str}. "
                    "Set the GITHUB_TOKEN environment variable to increase the limit.",
                    reset_at=reset_at,
                )
            raise SourceAccessDeniedError(
                f"Access to {ref.full_name} denied. The repository may be private."
            )

        if resp.status_code >= 500:
            raise SourceUnavailableError(
                f"GitHub API returned HTTP {resp.status_code} for {ref.full_name}"
            )

        raise SourceUnavailableError(
            f"Unexpected HTTP {resp.status_code} from GitHub for {ref.full_name}"
        )


def _q(segment: str) -> str:
    """Percent-encode a path, keeping ``/`` separators."""
    return quote(segment, safe="/")
