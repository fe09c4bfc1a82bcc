"""
Assembles boundary segments into token-budgeted, overlapping chunks.

Segments between consecutive boundaries are atomic: a chunk is closed before
a segment that would push it past the target size, never in the middle of
one. The target is therefore a soft cap. After a chunk is closed its last
few lines seed the next chunk so neighbouring chunks share context.
"""

import logging
import math
from typing import List, Optional, Union

from ...config import DEFAULT_TARGET_TOKENS, DEFAULT_OVERLAP_TOKENS
from ...models import CodeChunk
from .detector_factory import detect_boundaries
from .languages import Language, detect_language, language_tag

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
# Average characters per line assumed when turning an overlap token budget into lines
CHARS_PER_OVERLAP_LINE = 50


def estimate_tokens(text: str) -> int:
    """Rough token estimation (1 token ≈ 4 characters)"""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def overlap_line_count(overlap_tokens: int) -> int:
    """Number of trailing lines carried into the next chunk"""
    return math.ceil(overlap_tokens * CHARS_PER_TOKEN / CHARS_PER_OVERLAP_LINE)


def split_lines(source_code: str) -> List[str]:
    """Split on newlines, ignoring the empty tail left by a final newline"""
    lines = source_code.split('\n')
    if len(lines) > 1 and lines[-1] == '':
        lines.pop()
    return lines


def chunk_source_code(source_code: str, language: Union[Language, str],
                      target_tokens: int = DEFAULT_TARGET_TOKENS,
                      overlap_tokens: int = DEFAULT_OVERLAP_TOKENS) -> List[CodeChunk]:
    """
    Split source code into chunks at semantic boundaries

    Args:
        source_code: Full text of the file
        language: Language tag; tags outside the closed set use the generic profile
        target_tokens: Soft size limit per chunk
        overlap_tokens: Token budget shared between consecutive chunks

    Returns:
        Chunks in ascending start-line order, empty for blank input
    """
    if not source_code or not source_code.strip():
        return []

    tag = language_tag(language)
    lines = split_lines(source_code)
    total_lines = len(lines)

    boundaries = detect_boundaries(lines, language)
    boundaries.append(total_lines)

    chunks: List[CodeChunk] = []
    current_lines: List[str] = []
    current_start = 0
    current_tokens = 0
    carry = overlap_line_count(overlap_tokens)

    for seg_start, seg_end in zip(boundaries, boundaries[1:]):
        segment_lines = lines[seg_start:seg_end]
        if not segment_lines:
            continue
        segment_tokens = estimate_tokens('\n'.join(segment_lines))

        # A blank-only buffer keeps growing; it is never emitted as a chunk of its own
        if _has_content(current_lines) and current_tokens + segment_tokens > target_tokens:
            chunks.append(_make_chunk(current_lines, current_start, tag))

            overlap_start = max(0, len(current_lines) - carry)
            current_lines = current_lines[overlap_start:]
            current_start += overlap_start
            current_tokens = estimate_tokens('\n'.join(current_lines))

        current_lines.extend(segment_lines)
        current_tokens += segment_tokens

    if _has_content(current_lines):
        chunks.append(_make_chunk(current_lines, current_start, tag))
    elif current_lines and chunks:
        # Trailing blank lines extend the previous chunk to the end of the file
        last = chunks[-1]
        chunks[-1] = _make_chunk(lines[last.start_line - 1:total_lines], last.start_line - 1, tag)

    if not chunks and total_lines > 0:
        chunks.append(CodeChunk(text=source_code, start_line=1, end_line=total_lines, language=tag))

    logger.debug(f"Created {len(chunks)} chunks from {total_lines} lines ({tag})")
    return chunks


def chunk_file(source_code: str, filename: str,
               target_tokens: int = DEFAULT_TARGET_TOKENS,
               overlap_tokens: int = DEFAULT_OVERLAP_TOKENS) -> Optional[List[CodeChunk]]:
    """Chunk a file by its extension; None when the language is not supported"""
    language = detect_language(filename)
    if language is None:
        return None
    return chunk_source_code(source_code, language, target_tokens, overlap_tokens)


def _has_content(lines: List[str]) -> bool:
    return any(line.strip() for line in lines)


def _make_chunk(lines: List[str], start_offset: int, tag: str) -> CodeChunk:
    return CodeChunk(
        text='\n'.join(lines),
        start_line=start_offset + 1,
        end_line=start_offset + len(lines),
        language=tag
    )
