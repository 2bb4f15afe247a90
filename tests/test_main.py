"""Tests for the command-line entry point."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from repo_ingest import main as cli
from repo_ingest.domain.entities import IngestionStage
from repo_ingest.domain.exceptions import (
    InvalidUrlFormatError,
    RepositoryNotFoundError,
)
from repo_ingest.infrastructure.config import get_settings
from repo_ingest.services.ingest_repository import IngestRepositoryUseCase


@pytest.fixture
def result(sample_provider):
    use_case = IngestRepositoryUseCase(sample_provider)
    return asyncio.run(use_case.ingest("https://github.com/octo/demo"))


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args(["https://github.com/a/b"])
        assert args.url == "https://github.com/a/b"
        assert args.all_files is None
        assert args.timeout is None
        assert args.concurrency is None
        assert not args.tree_only

    def test_flags(self):
        args = cli.build_parser().parse_args(
            ["u", "--all-files", "--timeout", "2.5", "--concurrency", "3", "--tree-only"]
        )
        assert args.all_files is True
        assert args.timeout == 2.5
        assert args.concurrency == 3
        assert args.tree_only

    def test_rejects_zero_concurrency(self):
        with pytest.raises(SystemExit):
            cli.main(["u", "--concurrency", "0"])


class TestReport:
    def test_format_report(self, result):
        report = cli.format_report(result)
        assert "Repository: octo/demo" in report
        assert "Fetched files: 1" in report
        assert "- src\n  - index.js" in report
        assert result.status is IngestionStage.COMPLETED


class TestMain:
    def test_success_prints_digest(self, result, capsys):
        with patch.object(cli, "run", AsyncMock(return_value=result)):
            code = cli.main(["https://github.com/octo/demo"])
        assert code == 0
        out = capsys.readouterr().out
        assert "File: src/index.js" in out

    def test_writes_output_file(self, result, tmp_path, capsys):
        target = tmp_path / "digest.txt"
        with patch.object(cli, "run", AsyncMock(return_value=result)):
            code = cli.main(["https://github.com/octo/demo", "--output", str(target)])
        assert code == 0
        assert target.read_text(encoding="utf-8") == result.digest
        assert "File: src/index.js" not in capsys.readouterr().out

    def test_invalid_url_exit_code(self, capsys):
        with patch.object(cli, "run", AsyncMock(side_effect=InvalidUrlFormatError("bad"))):
            assert cli.main(["bad"]) == 2
        assert "error: bad" in capsys.readouterr().err

    def test_domain_error_exit_code(self, capsys):
        with patch.object(
            cli, "run", AsyncMock(side_effect=RepositoryNotFoundError("gone"))
        ):
            assert cli.main(["https://github.com/a/b"]) == 1
        assert "[RepositoryNotFound]" in capsys.readouterr().err



class TestConfigurationErrors:
    @pytest.fixture(autouse=True)
    def _fresh_settings(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_invalid_setting_is_one_line_error(self, monkeypatch, capsys):
        monkeypatch.setenv("CONCURRENCY_LIMIT", "0")
        with patch.object(cli, "run", AsyncMock()) as run:
            assert cli.main(["https://github.com/a/b"]) == 1
        err = capsys.readouterr().err
        assert err.startswith("error [configuration]: concurrency_limit")
        assert err.count("\n") == 1
        run.assert_not_called()

    def test_invalid_engine_config_is_reported(self, monkeypatch, capsys):
        monkeypatch.setenv("MAX_FILE_SIZE_KB", "-1")
        with patch.object(cli, "run", AsyncMock()) as run:
            assert cli.main(["https://github.com/a/b"]) == 1
        assert "error [configuration]" in capsys.readouterr().err
        run.assert_not_called()
