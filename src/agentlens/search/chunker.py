"""Chunking logic for splitting source files into embeddable fragments."""

import hashlib
import logging

from agentlens.search.models import ChunkInfo, ChunkType
from agentlens.search.symbols import Symbol, SymbolKind
from agentlens.search.walker import FileEntry

logger = logging.getLogger(__name__)

# Default chunk budget in characters (~512 tokens)
DEFAULT_MAX_CHARS = 2048
DEFAULT_OVERLAP_CHARS = 200

# Rough characters per token used to convert token budgets
CHARS_PER_TOKEN = 4

# Assumed line length used to turn the character overlap into a line count
ASSUMED_LINE_LENGTH = 80

# Symbol kinds that get their own chunk
CHUNKABLE_KINDS = {
    SymbolKind.FUNCTION,
    SymbolKind.METHOD,
    SymbolKind.CLASS,
    SymbolKind.STRUCT,
}


def hash_content(content: str) -> str:
    """Short SHA-256 digest (16 hex chars) used for change detection."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def symbol_to_chunk_type(kind: SymbolKind) -> ChunkType:
    """Map a symbol kind to the category stored on its chunks."""
    if kind == SymbolKind.FUNCTION:
        return ChunkType.FUNCTION
    if kind == SymbolKind.METHOD:
        return ChunkType.METHOD
    if kind in (SymbolKind.CLASS, SymbolKind.STRUCT):
        return ChunkType.CLASS
    if kind == SymbolKind.MODULE:
        return ChunkType.MODULE
    return ChunkType.BLOCK


class Chunker:
    """
    Split file text into chunks no larger than ``max_chars``.

    Code is cut along symbol boundaries when symbols are available; files
    without usable symbols are cut into overlapping line windows.
    """

    def __init__(
        self,
        max_chars: int = DEFAULT_MAX_CHARS,
        overlap_chars: int = DEFAULT_OVERLAP_CHARS,
    ):
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive, got {max_chars}")
        if overlap_chars < 0:
            raise ValueError(f"overlap_chars must be >= 0, got {overlap_chars}")
        self.max_chars = max_chars
        self.overlap_chars = overlap_chars

    @classmethod
    def from_tokens(cls, max_tokens: int, overlap_tokens: int) -> "Chunker":
        """Create a chunker from a token budget (1 token ~ 4 chars)."""
        return cls(max_tokens * CHARS_PER_TOKEN, overlap_tokens * CHARS_PER_TOKEN)

    @property
    def overlap_lines(self) -> int:
        return self.overlap_chars // ASSUMED_LINE_LENGTH

    def chunk_by_symbols(
        self,
        file: FileEntry,
        content: str,
        symbols: list[Symbol],
    ) -> list[ChunkInfo]:
        """
        Chunk a file along its function, method, class and struct symbols.

        Oversized symbols are split into line windows that keep the symbol's
        category. If no symbol yields a chunk, the whole file is chunked by
        window instead.
        """
        lines = content.splitlines()
        chunks: list[ChunkInfo] = []

        for symbol in symbols:
            if symbol.kind not in CHUNKABLE_KINDS:
                continue

            start_idx = max(symbol.start_line - 1, 0)
            end_idx = min(symbol.end_line, len(lines))
            if start_idx >= len(lines) or start_idx >= end_idx:
                continue

            excerpt = "\n".join(lines[start_idx:end_idx])
            if not excerpt.strip():
                continue

            chunk_type = symbol_to_chunk_type(symbol.kind)
            if len(excerpt) > self.max_chars:
                chunks.extend(
                    self._split_large_chunk(
                        file.relative_path,
                        lines[start_idx:end_idx],
                        start_idx + 1,
                        chunk_type,
                    )
                )
                continue

            header = (
                f"File: {file.relative_path}\n"
                f"Symbol: {symbol.name} ({symbol.kind.value})\n"
                f"Lines: {start_idx + 1}-{end_idx}\n\n"
            )
            chunks.append(
                ChunkInfo(
                    id=f"{file.relative_path}:{symbol.name}:{symbol.start_line}",
                    file_path=file.relative_path,
                    start_line=start_idx + 1,
                    end_line=end_idx,
                    content=header + excerpt,
                    hash=hash_content(excerpt),
                    chunk_type=chunk_type,
                )
            )

        if not chunks:
            return self.chunk_by_window(file, content)

        return _dedupe(chunks)

    def chunk_by_window(self, file: FileEntry, content: str) -> list[ChunkInfo]:
        """Fallback: overlapping line windows for files without symbols."""
        lines = content.splitlines()
        chunks: list[ChunkInfo] = []

        for start, end in self._windows(lines):
            excerpt = "\n".join(lines[start:end])
            if not excerpt.strip():
                continue
            chunks.append(
                ChunkInfo(
                    id=f"{file.relative_path}:block:{start + 1}",
                    file_path=file.relative_path,
                    start_line=start + 1,
                    end_line=end,
                    content=f"File: {file.relative_path}\nLines: {start + 1}-{end}\n\n{excerpt}",
                    hash=hash_content(excerpt),
                    chunk_type=ChunkType.BLOCK,
                )
            )

        return chunks

    def _split_large_chunk(
        self,
        file_path: str,
        lines: list[str],
        base_line: int,
        chunk_type: ChunkType,
    ) -> list[ChunkInfo]:
        """Split an oversized symbol; line numbers stay absolute to the file."""
        chunks: list[ChunkInfo] = []

        for start, end in self._windows(lines):
            excerpt = "\n".join(lines[start:end])
            if not excerpt.strip():
                continue
            start_line = base_line + start
            end_line = base_line + end - 1
            chunks.append(
                ChunkInfo(
                    id=f"{file_path}:split:{start_line}",
                    file_path=file_path,
                    start_line=start_line,
                    end_line=end_line,
                    content=f"File: {file_path}\nLines: {start_line}-{end_line}\n\n{excerpt}",
                    hash=hash_content(excerpt),
                    chunk_type=chunk_type,
                )
            )

        return chunks

    def _windows(self, lines: list[str]) -> list[tuple[int, int]]:
        """
        Compute ``[start, end)`` line windows over ``lines``.

        Each window takes whole lines while the character count (newline
        included) stays within ``max_chars``, and always takes at least one
        line. The next window starts ``overlap_lines`` before the previous
        end, but never at or before the previous start.
        """
        windows: list[tuple[int, int]] = []
        start = 0

        while start < len(lines):
            end = start
            size = 0
            while end < len(lines):
                line_size = len(lines[end]) + 1
                if end > start and size + line_size > self.max_chars:
                    break
                size += line_size
                end += 1

            windows.append((start, end))
            if end >= len(lines):
                break
            start = max(end - self.overlap_lines, start + 1)

        return windows


def _dedupe(chunks: list[ChunkInfo]) -> list[ChunkInfo]:
    """Drop chunks whose id was already produced, keeping the first."""
    seen: set[str] = set()
    unique: list[ChunkInfo] = []
    for chunk in chunks:
        if chunk.id in seen:
            logger.debug("Dropping duplicate chunk id %s", chunk.id)
            continue
        seen.add(chunk.id)
        unique.append(chunk)
    return unique
