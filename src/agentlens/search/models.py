"""Data models for the search index."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ChunkType(str, Enum):
    """Category of a chunk, derived from the symbol it was cut from."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    MODULE = "module"
    FILE_HEADER = "file_header"
    BLOCK = "block"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class ChunkInfo:
    """A chunk as produced by the chunker, before it has been embedded."""

    id: str
    file_path: str
    start_line: int
    end_line: int
    content: str  # Header + raw excerpt; this is what gets embedded
    hash: str  # Hash of the raw excerpt only
    chunk_type: ChunkType = ChunkType.BLOCK


@dataclass
class Chunk:
    """An embedded chunk stored in the index."""

    id: str
    file_path: str
    start_line: int
    end_line: int
    content: str
    vector: list[float]
    hash: str
    updated_at: datetime = field(default_factory=utc_now)
    chunk_type: ChunkType = ChunkType.BLOCK

    @classmethod
    def from_info(cls, info: ChunkInfo, vector: list[float]) -> "Chunk":
        """Attach an embedding vector to a chunker result."""
        return cls(
            id=info.id,
            file_path=info.file_path,
            start_line=info.start_line,
            end_line=info.end_line,
            content=info.content,
            vector=list(vector),
            hash=info.hash,
            updated_at=utc_now(),
            chunk_type=info.chunk_type,
        )

    def to_dict(self, include_vector: bool = True) -> dict:
        data = {
            "id": self.id,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "content": self.content,
            "hash": self.hash,
            "updated_at": self.updated_at.isoformat(),
            "chunk_type": self.chunk_type.value,
        }
        if include_vector:
            data["vector"] = self.vector
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Chunk":
        return cls(
            id=data["id"],
            file_path=data["file_path"],
            start_line=int(data["start_line"]),
            end_line=int(data["end_line"]),
            content=data["content"],
            vector=[float(v) for v in data["vector"]],
            hash=data["hash"],
            updated_at=datetime.fromisoformat(data["updated_at"]),
            chunk_type=ChunkType(data["chunk_type"]),
        )


@dataclass
class Document:
    """Per-file bookkeeping: the file hash at index time and the chunks it owns."""

    path: str  # Relative to the project root
    hash: str
    mod_time: datetime = field(default_factory=utc_now)
    chunk_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "hash": self.hash,
            "mod_time": self.mod_time.isoformat(),
            "chunk_ids": list(self.chunk_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(
            path=data["path"],
            hash=data["hash"],
            mod_time=datetime.fromisoformat(data["mod_time"]),
            chunk_ids=list(data["chunk_ids"]),
        )


@dataclass
class SearchResult:
    """A chunk paired with its relevance score for one query."""

    chunk: Chunk
    score: float

    def to_dict(self) -> dict:
        return {"chunk": self.chunk.to_dict(include_vector=False), "score": self.score}


@dataclass
class IndexStats:
    """Summary of an index."""

    total_files: int = 0
    total_chunks: int = 0
    index_size_bytes: int = 0
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "total_files": self.total_files,
            "total_chunks": self.total_chunks,
            "index_size_bytes": self.index_size_bytes,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass
class IndexResult:
    """Outcome of an indexing batch."""

    files_processed: int = 0
    chunks_created: int = 0
    files_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "files_processed": self.files_processed,
            "chunks_created": self.chunks_created,
            "files_skipped": self.files_skipped,
            "errors": list(self.errors),
        }
