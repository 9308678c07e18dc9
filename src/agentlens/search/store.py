"""Vector storage for indexed chunks.

The JSON store keeps the whole index in memory and writes it to disk as a
single snapshot. The index is small enough to snapshot wholesale, so one
reader/writer lock over the in-memory state is all the locking it needs.
"""

import asyncio
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import numpy as np

from agentlens.search.errors import StoreError
from agentlens.search.models import Chunk, Document, IndexStats, SearchResult

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """
    Cosine similarity of two vectors.

    Vectors of different length, empty vectors, and vectors whose norms
    multiply to zero all score 0.0.
    """
    if len(a) != len(b) or not a:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class VectorStore(ABC):
    """Capability interface for chunk and document storage backends."""

    @abstractmethod
    async def save_chunks(self, chunks: list[Chunk]) -> None:
        """Upsert chunks by id."""
        pass

    @abstractmethod
    async def delete_by_file(self, file_path: str) -> None:
        """Remove every chunk of a file and the file's document."""
        pass

    @abstractmethod
    async def search(self, query_vector: list[float], limit: int) -> list[SearchResult]:
        """Return the ``limit`` chunks most similar to the query vector."""
        pass

    @abstractmethod
    async def get_document(self, file_path: str) -> Document | None:
        pass

    @abstractmethod
    async def save_document(self, doc: Document) -> None:
        pass

    @abstractmethod
    async def list_documents(self) -> list[str]:
        """Paths of all indexed documents."""
        pass

    @abstractmethod
    async def get_all_chunks(self) -> list[Chunk]:
        pass

    @abstractmethod
    async def persist(self) -> None:
        """Write the in-memory index to durable storage."""
        pass

    @abstractmethod
    async def load(self) -> None:
        """Replace the in-memory index with the stored one, if any."""
        pass

    async def reload_if_changed(self) -> None:
        """Reload the stored index when another writer replaced it."""
        await self.load()

    @abstractmethod
    async def stats(self) -> IndexStats:
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Drop all chunks and documents, in memory and on disk."""
        pass


class ReadWriteLock:
    """Many concurrent readers or a single writer; writers exclude readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class JsonFileStore(VectorStore):
    """
    In-memory index persisted as one JSON file.

    Thread Safety:
        All reads take a shared lock and all mutations an exclusive lock on
        the whole index. Disk I/O runs in a worker thread; the lock is taken
        inside that thread so it is never held across an ``await``.
        Persist, load and clear also serialize on an I/O lock, so a clear
        cannot be undone by a snapshot that was already being written.

    The store remembers the inode, mtime and size of the snapshot it last
    read or wrote. ``reload_if_changed`` compares them with the file on disk
    and only rereads the snapshot when another process replaced it.
    """

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Location of the JSON snapshot file
        """
        self.path = path
        self._chunks: dict[str, Chunk] = {}
        self._documents: dict[str, Document] = {}
        self._lock = ReadWriteLock()
        self._io_lock = threading.Lock()
        self._disk_signature: tuple[int, int, int] | None = None

    # Chunk operations

    async def save_chunks(self, chunks: list[Chunk]) -> None:
        with self._lock.write_locked():
            for chunk in chunks:
                self._chunks[chunk.id] = chunk

    async def delete_by_file(self, file_path: str) -> None:
        with self._lock.write_locked():
            stale = [cid for cid, c in self._chunks.items() if c.file_path == file_path]
            for cid in stale:
                del self._chunks[cid]
            self._documents.pop(file_path, None)

    async def get_all_chunks(self) -> list[Chunk]:
        with self._lock.read_locked():
            return list(self._chunks.values())

    # Search operations

    async def search(self, query_vector: list[float], limit: int) -> list[SearchResult]:
        """
        Exact linear-scan similarity search.

        Results are sorted by descending cosine similarity; ties keep the
        order in which chunks were inserted.
        """
        with self._lock.read_locked():
            results = [
                SearchResult(chunk=chunk, score=cosine_similarity(query_vector, chunk.vector))
                for chunk in self._chunks.values()
            ]

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    # Document operations

    async def get_document(self, file_path: str) -> Document | None:
        with self._lock.read_locked():
            return self._documents.get(file_path)

    async def save_document(self, doc: Document) -> None:
        with self._lock.write_locked():
            self._documents[doc.path] = doc

    async def list_documents(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._documents.keys())

    # Persistence

    async def persist(self) -> None:
        await asyncio.to_thread(self._persist_sync)

    def _persist_sync(self) -> None:
        with self._io_lock:
            with self._lock.read_locked():
                payload = json.dumps(self._snapshot(), indent=2, sort_keys=True)
            try:
                self._atomic_write(payload)
                self._disk_signature = _signature(self.path.stat())
            except OSError as e:
                raise StoreError(f"Cannot write index to {self.path}: {e}") from e
        logger.debug("Persisted index to %s", self.path)

    def _snapshot(self) -> dict:
        return {
            "version": SNAPSHOT_VERSION,
            "chunks": {cid: c.to_dict() for cid, c in self._chunks.items()},
            "documents": {path: d.to_dict() for path, d in self._documents.items()},
        }

    def _atomic_write(self, payload: str) -> None:
        """Write to a temp file next to the snapshot, then rename over it."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def load(self) -> None:
        await asyncio.to_thread(self._load_sync, False)

    async def reload_if_changed(self) -> None:
        await asyncio.to_thread(self._load_sync, True)

    def _load_sync(self, only_if_changed: bool) -> None:
        with self._io_lock:
            try:
                with open(self.path, encoding="utf-8") as f:
                    signature = _signature(os.fstat(f.fileno()))
                    if only_if_changed and signature == self._disk_signature:
                        return
                    raw = f.read()
            except FileNotFoundError:
                if only_if_changed and self._disk_signature is not None:
                    # Removed by another process since we last saw it
                    with self._lock.write_locked():
                        self._chunks = {}
                        self._documents = {}
                    self._disk_signature = None
                    logger.debug("Index at %s was removed, dropped in-memory state", self.path)
                return
            except OSError as e:
                raise StoreError(f"Cannot read index at {self.path}: {e}") from e

            chunks, documents = self._parse(raw)
            with self._lock.write_locked():
                self._chunks = chunks
                self._documents = documents
            self._disk_signature = signature
        logger.debug(
            "Loaded index from %s: %d documents, %d chunks",
            self.path,
            len(documents),
            len(chunks),
        )

    def _parse(self, raw: str) -> tuple[dict[str, Chunk], dict[str, Document]]:
        try:
            data = json.loads(raw)
            version = data.get("version", SNAPSHOT_VERSION)
            if version != SNAPSHOT_VERSION:
                raise StoreError(
                    f"Unsupported index version {version} in {self.path}; "
                    "clear the index and rebuild it"
                )
            chunks = {cid: Chunk.from_dict(c) for cid, c in data["chunks"].items()}
            documents = {p: Document.from_dict(d) for p, d in data["documents"].items()}
        except StoreError:
            raise
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(f"Corrupt index at {self.path}: {e}") from e
        return chunks, documents

    # Maintenance

    async def stats(self) -> IndexStats:
        return await asyncio.to_thread(self._stats_sync)

    def _stats_sync(self) -> IndexStats:
        with self._lock.read_locked():
            last_updated = max((c.updated_at for c in self._chunks.values()), default=None)
            total_files = len(self._documents)
            total_chunks = len(self._chunks)

        try:
            size = self.path.stat().st_size if self.path.exists() else 0
        except OSError as e:
            raise StoreError(f"Cannot stat index at {self.path}: {e}") from e

        return IndexStats(
            total_files=total_files,
            total_chunks=total_chunks,
            index_size_bytes=size,
            last_updated=last_updated,
        )

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    def _clear_sync(self) -> None:
        with self._io_lock:
            with self._lock.write_locked():
                self._chunks.clear()
                self._documents.clear()
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(f"Cannot remove index at {self.path}: {e}") from e
            self._disk_signature = None
        logger.info("Cleared index at %s", self.path)


def _signature(st: os.stat_result) -> tuple[int, int, int]:
    # os.replace gives every snapshot a new inode
    return (st.st_ino, st.st_mtime_ns, st.st_size)
