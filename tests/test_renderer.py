"""Tests for tree and digest rendering."""

import pytest
from conftest import blob, directory

from repo_ingest.domain.entities import FetchedFile
from repo_ingest.services.file_classifier import classify
from repo_ingest.services.renderer import BANNER, format_bytes, render_digest, render_tree


class TestRenderTree:
    def test_empty(self):
        assert render_tree([]) == ""

    def test_nests_siblings_under_one_directory(self):
        result = render_tree(["src/a.js", "src/b.js", "README.md"])
        assert result.split("\n") == [
            "- src",
            "  - a.js",
            "  - b.js",
            "- README.md",
        ]

    def test_insertion_order_not_sorted(self):
        result = render_tree(["z.txt", "a.txt", "m.txt"])
        assert result.split("\n") == ["- z.txt", "- a.txt", "- m.txt"]

    def test_duplicate_paths_collapse(self):
        assert render_tree(["src/a.js", "src/a.js"]) == "- src\n  - a.js"

    def test_deep_nesting(self):
        result = render_tree(["a/b/c/d.txt"])
        assert result.split("\n") == ["- a", "  - b", "    - c", "      - d.txt"]

    def test_accepts_tree_entries_and_classified_files(self):
        entries = [directory("src"), blob("src/index.js"), blob("README.md")]
        assert render_tree(entries) == "- src\n  - index.js\n- README.md"
        assert render_tree(classify(entries)) == render_tree(entries)

    def test_directory_before_children_does_not_duplicate(self):
        result = render_tree([directory("lib"), blob("lib/x.py"), blob("lib/y.py")])
        assert result.count("- lib") == 1


class TestRenderDigest:
    def test_empty(self):
        assert render_digest([]) == ""

    def test_banner_format(self):
        digest = render_digest([FetchedFile(path="src/index.js", content="let a = 1;")])
        assert BANNER == "*" * 51
        assert digest == (
            f"{BANNER}\n"
            "File: src/index.js\n"
            f"{BANNER}\n"
            "\n"
            "let a = 1;\n"
            "\n"
        )

    def test_blocks_separated_by_two_blank_lines(self):
        digest = render_digest(
            [FetchedFile(path="a.py", content="A"), FetchedFile(path="b.py", content="B")]
        )
        assert f"A\n\n\n{BANNER}\nFile: b.py" in digest

    def test_order_preserved(self):
        files = [FetchedFile(path=p, content=p.upper()) for p in ("c.py", "a.py", "b.py")]
        digest = render_digest(files)
        positions = [digest.index(f"File: {p}") for p in ("c.py", "a.py", "b.py")]
        assert positions == sorted(positions)


class TestFormatBytes:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 Bytes"),
            (500, "500 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5 MB"),
        ],
    )
    def test_format(self, size, expected):
        assert format_bytes(size) == expected
