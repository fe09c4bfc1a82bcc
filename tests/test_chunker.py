"""Tests for boundary-aware chunk assembly."""

import pytest

from code_index.indexing.chunking import Language, chunk_source_code, chunk_file, detect_language, estimate_tokens
from code_index.indexing.chunking.chunker import overlap_line_count, split_lines


def three_functions(lines_per_function=10):
    lines = []
    for n in range(3):
        lines.append(f"def function_{n}():")
        lines.extend(f"    value_{i} = {n}" for i in range(lines_per_function - 1))
    return "\n".join(lines) + "\n"


def long_functions(count=3):
    lines = []
    for n in range(count):
        lines.append(f"def f{n}():")
        lines.append("    value = 'aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa'")
        lines.append("    return value")
    return "\n".join(lines)


class TestEmptyInput:

    @pytest.mark.parametrize("source", ["", "   ", "\n\n", " \t\n  \n"])
    def test_blank_input_yields_no_chunks(self, source):
        assert chunk_source_code(source, Language.PYTHON) == []


class TestChunkShape:

    def test_single_line(self):
        chunks = chunk_source_code("x = 1", Language.PYTHON)

        assert len(chunks) == 1
        assert chunks[0].start_line == 1
        assert chunks[0].end_line == 1
        assert chunks[0].text == "x = 1"
        assert chunks[0].language == "python"

    def test_three_functions_fit_in_one_chunk(self):
        chunks = chunk_source_code(three_functions(), Language.PYTHON, target_tokens=10_000)

        assert len(chunks) == 1
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 30)

    def test_no_boundaries_gives_whole_file(self):
        source = "const a = 1;\nconst b = 2;\nconst c = 3;\n"

        chunks = chunk_source_code(source, Language.TYPESCRIPT)

        assert len(chunks) == 1
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 3)

    def test_oversized_segments_are_not_split(self):
        chunks = chunk_source_code(long_functions(), Language.PYTHON, target_tokens=10, overlap_tokens=0)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 3), (4, 6), (7, 9)]
        for chunk in chunks:
            assert estimate_tokens(chunk.text) > 10

    def test_overlap_carries_trailing_lines(self):
        # 25 overlap tokens -> 2 carried lines
        chunks = chunk_source_code(long_functions(), Language.PYTHON, target_tokens=10, overlap_tokens=25)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 3), (2, 6), (5, 9)]

    def test_chunk_text_matches_line_range(self):
        source = long_functions()
        lines = source.split("\n")

        for chunk in chunk_source_code(source, Language.PYTHON, target_tokens=10, overlap_tokens=25):
            assert chunk.text == "\n".join(lines[chunk.start_line - 1:chunk.end_line])

    @pytest.mark.parametrize("language,source", [
        (Language.PYTHON, three_functions(40)),
        (Language.PYTHON, long_functions(12)),
        (Language.TYPESCRIPT, "\n".join(f"export function f{i}() {{\n  return {i};\n}}" for i in range(60))),
        ("markdown", "\n\n".join(f"Paragraph {i} " + "word " * 40 for i in range(30))),
        ("text", "\n".join(f"line {i}" for i in range(250))),
    ])
    def test_start_lines_ascend_and_last_chunk_reaches_end(self, language, source):
        chunks = chunk_source_code(source, language, target_tokens=120, overlap_tokens=50)
        total_lines = len(split_lines(source))

        assert chunks
        starts = [c.start_line for c in chunks]
        assert starts == sorted(starts)
        assert all(c.start_line >= 1 and c.end_line >= c.start_line for c in chunks)
        assert chunks[-1].end_line == total_lines

        covered = set()
        for chunk in chunks:
            covered.update(range(chunk.start_line, chunk.end_line + 1))
        assert covered == set(range(1, total_lines + 1))

    def test_leading_blank_line_is_not_a_chunk(self):
        source = "\ndef f():\n    x = '" + "a" * 2400 + "'\n"

        chunks = chunk_source_code(source, Language.PYTHON)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 3)]
        assert chunks[0].text.strip().startswith("def f():")

    def test_blank_segments_are_absorbed(self):
        source = "".join(f"line {i}\n" for i in range(25)) + "\n" * 25

        chunks = chunk_source_code(source, "text", target_tokens=1, overlap_tokens=0)

        assert all(chunk.text.strip() for chunk in chunks)
        assert chunks[-1].end_line == 50
        covered = set()
        for chunk in chunks:
            covered.update(range(chunk.start_line, chunk.end_line + 1))
        assert covered == set(range(1, 51))

    def test_trailing_newline_is_not_an_extra_line(self):
        chunks = chunk_source_code("a = 1\nb = 2\n", Language.PYTHON)

        assert chunks[-1].end_line == 2

    def test_repeated_calls_are_identical(self):
        source = three_functions(25)

        first = chunk_source_code(source, Language.PYTHON, target_tokens=50)
        second = chunk_source_code(source, Language.PYTHON, target_tokens=50)

        assert first == second


class TestLanguageDispatch:

    @pytest.mark.parametrize("filename,expected", [
        ("app.ts", Language.TYPESCRIPT),
        ("View.TSX", Language.TYPESCRIPT),
        ("index.js", Language.JAVASCRIPT),
        ("App.jsx", Language.JAVASCRIPT),
        ("tool.py", Language.PYTHON),
        ("notes.md", None),
        ("Makefile", None),
        ("archive.tar.gz", None),
    ])
    def test_detect_language(self, filename, expected):
        assert detect_language(filename) == expected

    def test_chunk_file_unsupported_extension(self):
        assert chunk_file("# Title\n\nBody\n", "README.md") is None

    def test_chunk_file_tags_language(self):
        chunks = chunk_file("function a() {\n  return 1;\n}\n", "src/a.js")

        assert [c.language for c in chunks] == ["javascript"]

    def test_chunk_file_empty_supported_file(self):
        assert chunk_file("", "empty.py") == []


class TestTokenHeuristics:

    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_overlap_line_count(self):
        assert overlap_line_count(50) == 4
        assert overlap_line_count(25) == 2
        assert overlap_line_count(0) == 0
