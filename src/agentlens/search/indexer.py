"""Indexer that keeps the vector store in step with the file system."""

import asyncio
import logging
from pathlib import Path

from agentlens.search.chunker import Chunker, hash_content
from agentlens.search.embedder import Embedder
from agentlens.search.models import Chunk, Document, IndexResult, utc_now
from agentlens.search.store import VectorStore
from agentlens.search.symbols import SymbolExtractor
from agentlens.search.walker import FileEntry, scan_directory

logger = logging.getLogger(__name__)

# Chunks sent to the embedder per request
EMBED_BATCH_SIZE = 32


class Indexer:
    """
    Scan, chunk, embed and store the files of a project.

    Unchanged files (same content hash as the stored document) are skipped.
    A changed file has its old chunks deleted before the new ones are saved,
    so a document never owns stale chunks.

    Thread Safety:
        The delete/chunk/embed/save sequence for a file runs under an
        ``asyncio.Lock``, so concurrent ``index_file`` calls never interleave
        their writes.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        chunker: Chunker,
        symbol_extractor: SymbolExtractor | None = None,
        large_file_lines: int = 500,
    ):
        """
        Initialize the indexer.

        Args:
            store: Store that receives chunks and documents
            embedder: Embedder used for chunk vectors
            chunker: Chunker used to split files
            symbol_extractor: Symbol source for symbol-aligned chunks
            large_file_lines: Line count above which files are flagged large
        """
        self.store = store
        self.embedder = embedder
        self.chunker = chunker
        self.symbol_extractor = symbol_extractor or SymbolExtractor()
        self.large_file_lines = large_file_lines
        self._write_lock = asyncio.Lock()

    async def index_all(
        self,
        root: Path,
        respect_gitignore: bool = True,
        force: bool = False,
    ) -> IndexResult:
        """
        Index every file under a project root.

        A failure on one file is recorded in ``IndexResult.errors`` and the
        batch continues. The store is persisted once at the end.

        Args:
            root: Project root directory
            respect_gitignore: Apply the root .gitignore patterns
            force: Re-index files even when their hash is unchanged

        Returns:
            IndexResult with processed, skipped and chunk counts.
        """
        files = await asyncio.to_thread(
            scan_directory, root, self.large_file_lines, respect_gitignore
        )
        logger.info("Indexing %d files under %s (force=%s)", len(files), root, force)

        await self.store.load()

        result = IndexResult()
        for file in files:
            try:
                created = await self.index_file(file, force=force)
            except Exception as e:
                logger.warning("Failed to index %s: %s", file.relative_path, e)
                result.errors.append(f"{file.relative_path}: {e}")
                continue

            if created is None:
                result.files_skipped += 1
            else:
                result.files_processed += 1
                result.chunks_created += created

        await self.store.persist()

        logger.info(
            "Index complete: %d processed, %d skipped, %d chunks, %d errors",
            result.files_processed,
            result.files_skipped,
            result.chunks_created,
            len(result.errors),
        )
        return result

    async def index_file(self, file: FileEntry, force: bool = False) -> int | None:
        """
        Index a single file.

        Args:
            file: Scanned file to index
            force: Re-index even when the stored hash matches

        Returns:
            Number of chunks created, or None if the file was unchanged.
        """
        content = await asyncio.to_thread(file.path.read_text, encoding="utf-8")
        file_hash = hash_content(content)

        if not force:
            existing = await self.store.get_document(file.relative_path)
            if existing is not None and existing.hash == file_hash:
                logger.debug("Skipping unchanged file: %s", file.relative_path)
                return None

        async with self._write_lock:
            await self.store.delete_by_file(file.relative_path)

            symbols = self.symbol_extractor.extract(file, content)
            chunk_infos = self.chunker.chunk_by_symbols(file, content, symbols)
            if not chunk_infos:
                logger.debug("No chunks produced for %s", file.relative_path)
                return 0

            if file.is_large:
                logger.debug(
                    "Large file %s (%d lines): %d chunks",
                    file.relative_path,
                    file.lines,
                    len(chunk_infos),
                )

            chunks: list[Chunk] = []
            for start in range(0, len(chunk_infos), EMBED_BATCH_SIZE):
                batch = chunk_infos[start : start + EMBED_BATCH_SIZE]
                vectors = await self.embedder.embed_batch([info.content for info in batch])
                chunks.extend(Chunk.from_info(info, vector) for info, vector in zip(batch, vectors))

            await self.store.save_chunks(chunks)
            await self.store.save_document(
                Document(
                    path=file.relative_path,
                    hash=file_hash,
                    mod_time=utc_now(),
                    chunk_ids=[chunk.id for chunk in chunks],
                )
            )

        logger.debug("Indexed %s: %d chunks", file.relative_path, len(chunks))
        return len(chunks)

    async def prune_deleted(self, root: Path, respect_gitignore: bool = True) -> int:
        """
        Remove documents whose files are no longer found under the root.

        A root that is not a directory prunes nothing.

        Returns:
            Number of documents pruned.
        """
        if not await asyncio.to_thread(root.is_dir):
            logger.warning("Skipping prune: %s is not a directory", root)
            return 0

        files = await asyncio.to_thread(
            scan_directory, root, self.large_file_lines, respect_gitignore
        )
        present = {file.relative_path for file in files}

        pruned = 0
        async with self._write_lock:
            for path in await self.store.list_documents():
                if path not in present:
                    await self.store.delete_by_file(path)
                    logger.debug("Pruned deleted file: %s", path)
                    pruned += 1

        if pruned:
            await self.store.persist()
            logger.info("Pruned %d deleted files", pruned)
        return pruned
