"""Tests for the file walker."""

from pathlib import Path

import pytest

from agentlens.search.walker import FileEntry, is_binary_file, is_ignored, load_gitignore, scan_directory


class TestIsIgnored:
    @pytest.mark.parametrize(
        ("path", "patterns", "expected"),
        [
            ("app.log", ["*.log"], True),
            ("logs/app.log", ["*.log"], True),
            ("src/main.py", ["*.log"], False),
            ("secrets/key.txt", ["secrets"], True),
            ("secrets/key.txt", ["secrets/"], True),
            ("src/generated/api.py", ["src/generated"], True),
            ("other/src/generated/api.py", ["/src/generated"], False),
            ("build.py", ["/"], False),
        ],
    )
    def test_patterns(self, path: str, patterns: list[str], expected: bool):
        assert is_ignored(path, patterns) == expected


class TestLoadGitignore:
    def test_skips_comments_and_negations(self, tmp_path: Path):
        (tmp_path / ".gitignore").write_text("# comment\n\n*.log\n!keep.log\ndist/\n")

        assert load_gitignore(tmp_path) == ["*.log", "dist/"]

    def test_missing_file(self, tmp_path: Path):
        assert load_gitignore(tmp_path) == []


class TestIsBinaryFile:
    def test_nul_byte(self, tmp_path: Path):
        path = tmp_path / "blob.bin"
        path.write_bytes(b"\x89PNG\x00\x01")
        assert is_binary_file(path)

    def test_text(self, tmp_path: Path):
        path = tmp_path / "a.txt"
        path.write_text("hello\n")
        assert not is_binary_file(path)


class TestScanDirectory:
    @pytest.fixture
    def tree(self, tmp_path: Path) -> Path:
        root = tmp_path / "repo"
        (root / "src").mkdir(parents=True)
        (root / "node_modules" / "lib").mkdir(parents=True)
        (root / ".git").mkdir()
        (root / "logs").mkdir()

        (root / "src" / "main.py").write_text("print('hi')\n")
        (root / "src" / "util.py").write_text("x = 1\ny = 2")
        (root / "node_modules" / "lib" / "index.js").write_text("module.exports = {}\n")
        (root / ".git" / "config").write_text("[core]\n")
        (root / ".env").write_text("SECRET=1\n")
        (root / "logs" / "run.log").write_text("started\n")
        (root / "image.png").write_bytes(b"\x89PNG\r\n\x00\x00")
        (root / ".gitignore").write_text("*.log\n")
        return root

    def test_finds_source_files(self, tree: Path):
        paths = [f.relative_path for f in scan_directory(tree)]

        assert paths == ["src/main.py", "src/util.py"]

    def test_gitignore_can_be_disabled(self, tree: Path):
        paths = [f.relative_path for f in scan_directory(tree, respect_gitignore=False)]

        assert "logs/run.log" in paths

    def test_entry_fields(self, tree: Path):
        entries = {f.relative_path: f for f in scan_directory(tree)}

        main = entries["src/main.py"]
        assert isinstance(main, FileEntry)
        assert main.path == (tree / "src" / "main.py").resolve()
        assert main.size == len("print('hi')\n")
        assert main.lines == 1
        # No trailing newline still counts the last line
        assert entries["src/util.py"].lines == 2

    def test_large_files_flagged_not_filtered(self, tree: Path):
        (tree / "big.py").write_text("x = 1\n" * 20)

        entries = {f.relative_path: f for f in scan_directory(tree, large_file_lines=10)}

        assert entries["big.py"].is_large
        assert not entries["src/main.py"].is_large

    def test_handles_nonexistent_root(self):
        assert scan_directory(Path("/nonexistent/path")) == []
