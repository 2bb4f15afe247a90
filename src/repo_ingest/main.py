"""Command-line entry point: ingest one repository and print the digest."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import httpx
from pydantic import ValidationError

from repo_ingest.domain.entities import IngestionConfig, IngestionResult
from repo_ingest.domain.exceptions import InvalidUrlFormatError, RepoIngestError
from repo_ingest.infrastructure.config import Settings, get_settings
from repo_ingest.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_ingest.services.ingest_repository import IngestRepositoryUseCase
from repo_ingest.services.renderer import format_bytes

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="repo-ingest",
        description="Fetch a public repository and build a code digest.",
    )
    parser.add_argument("url", help="Repository URL, e.g. https://github.com/owner/repo")
    parser.add_argument(
        "--all-files",
        action="store_true",
        default=None,
        help="Fetch every eligible file, not only business-logic files.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to spend fetching file contents before returning a partial result.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of concurrent file fetches.",
    )
    parser.add_argument(
        "--tree-only",
        action="store_true",
        help="Print the summary and tree view, but not the digest.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the digest to this file instead of stdout.",
    )
    return parser


def format_report(result: IngestionResult) -> str:
    """Render the summary block printed before the digest."""
    s = result.summary
    lines = [
        f"Repository: {s.repository}",
        f"Description: {s.description}",
        f"Language: {s.language}",
        f"Total files: {s.total_file_count}",
        f"Fetched files: {s.fetched_file_count} ({format_bytes(result.total_content_bytes)})",
        f"Business-logic files: {s.business_logic_count}",
        f"Other files: {s.other_count}",
    ]
    if result.failed_paths:
        lines.append(f"Failed: {', '.join(sorted(result.failed_paths))}")
    if result.cancelled:
        lines.append("Fetch stopped early; the digest is partial.")
    lines.extend(["", "Directory structure:", result.tree_view])
    return "\n".join(lines)


async def run(
    args: argparse.Namespace, settings: Settings, config: IngestionConfig
) -> IngestionResult:
    """Wire the adapter and use case, then ingest ``args.url``."""
    token = settings.github_token.get_secret_value() if settings.github_token else None
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds)
    ) as client:
        provider = GitHubRestAdapter(
            client=client,
            token=token,
            api_base=settings.github_api_url,
            raw_base=settings.github_raw_url,
        )
        use_case = IngestRepositoryUseCase(provider, config)
        return await use_case.ingest(
            args.url, include_all_files=args.all_files, timeout=args.timeout
        )


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run one ingestion and print the results."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.concurrency is not None and args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    try:
        settings = get_settings()
        config = settings.to_ingestion_config()
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        print(f"error [configuration]: {details}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error [configuration]: {exc}", file=sys.stderr)
        return 1
    if args.concurrency is not None:
        config = replace(config, concurrency_limit=args.concurrency)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    try:
        result = asyncio.run(run(args, settings, config))
    except InvalidUrlFormatError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except RepoIngestError as exc:
        print(f"error [{exc.kind}]: {exc}", file=sys.stderr)
        return 1

    print(format_report(result))
    if args.tree_only:
        return 0

    if args.output is not None:
        args.output.write_text(result.digest, encoding="utf-8")
        logger.info("Digest written to %s", args.output)
    else:
        print()
        print(result.digest)
    return 0


if __name__ == "__main__":
    sys.exit(main())
