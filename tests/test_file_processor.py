"""Tests for file discovery, filtering and binary detection."""

import os

import pytest

from code_index.indexing.file_processor import FileProcessor, compute_content_hash

from conftest import write_file


def relative_names(processor, files):
    return [processor.relative_path(path) for path in files]


class TestDiscovery:

    def test_default_patterns_and_exclusions(self, sample_repo):
        processor = FileProcessor(str(sample_repo))

        files = processor.discover_files()

        assert relative_names(processor, files) == ["README.md", "src/app.py", "src/user.ts"]
        assert all(path.is_absolute() for path in files)

    def test_custom_patterns(self, sample_repo):
        processor = FileProcessor(str(sample_repo), include_patterns=["src/*.py"])

        assert relative_names(processor, processor.discover_files()) == ["src/app.py"]

    def test_missing_ignore_file_is_not_an_error(self, tmp_path):
        write_file(tmp_path, "a.py", "x = 1\n")

        processor = FileProcessor(str(tmp_path))

        assert relative_names(processor, processor.discover_files()) == ["a.py"]

    def test_ignore_file_rules_apply_to_relative_paths(self, tmp_path):
        write_file(tmp_path, ".gitignore", "*.gen.ts\n/scripts/\n!keep.gen.ts\n")
        write_file(tmp_path, "src/a.ts", "const a = 1;\n")
        write_file(tmp_path, "src/b.gen.ts", "const b = 1;\n")
        write_file(tmp_path, "src/keep.gen.ts", "const k = 1;\n")
        write_file(tmp_path, "scripts/run.py", "print(1)\n")
        write_file(tmp_path, "tools/scripts/run.py", "print(2)\n")

        processor = FileProcessor(str(tmp_path))

        assert relative_names(processor, processor.discover_files()) == [
            "src/a.ts",
            "src/keep.gen.ts",
            "tools/scripts/run.py",
        ]

    def test_fixed_exclusions(self, tmp_path):
        write_file(tmp_path, "app.js", "let a;\n")
        write_file(tmp_path, "app.min.js", "let a;\n")
        write_file(tmp_path, "coverage/report.js", "let a;\n")
        write_file(tmp_path, ".git/hooks/pre-commit.py", "pass\n")
        write_file(tmp_path, "pkg/__pycache__/mod.py", "pass\n")

        processor = FileProcessor(str(tmp_path))

        assert relative_names(processor, processor.discover_files()) == ["app.js"]

    def test_binary_files_are_excluded(self, tmp_path):
        write_file(tmp_path, "text.py", "x = 1\n")
        write_file(tmp_path, "blob.py", b"abc\x00def")

        processor = FileProcessor(str(tmp_path))

        assert relative_names(processor, processor.discover_files()) == ["text.py"]


class TestBinaryDetection:

    def test_null_byte_within_sniff_window(self, tmp_path):
        path = write_file(tmp_path, "a.bin", b"a" * 100 + b"\x00")

        assert FileProcessor(str(tmp_path)).is_binary_file(path)

    def test_null_byte_beyond_sniff_window(self, tmp_path):
        path = write_file(tmp_path, "a.txt", b"a" * 600 + b"\x00")

        assert not FileProcessor(str(tmp_path), sniff_bytes=512).is_binary_file(path)

    def test_unreadable_file_counts_as_binary(self, tmp_path):
        assert FileProcessor(str(tmp_path)).is_binary_file(tmp_path / "missing.py")

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_permission_denied_counts_as_binary(self, tmp_path):
        path = write_file(tmp_path, "secret.py", "x = 1\n")
        path.chmod(0)
        try:
            assert FileProcessor(str(tmp_path)).is_binary_file(path)
        finally:
            path.chmod(0o644)


class TestContent:

    def test_read_falls_back_to_latin1(self, tmp_path):
        path = write_file(tmp_path, "legacy.py", "name = 'café'\n".encode("latin-1"))

        assert FileProcessor(str(tmp_path)).read_file_content(path) == "name = 'café'\n"

    def test_content_hash_is_stable(self):
        assert compute_content_hash("abc") == compute_content_hash("abc")
        assert compute_content_hash("abc") != compute_content_hash("abd")
        assert len(compute_content_hash("abc")) == 64
