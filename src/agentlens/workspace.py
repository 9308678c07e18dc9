"""Library entry points: one project root with its shared store and embedder."""

import logging
from dataclasses import dataclass
from pathlib import Path

from agentlens.config import Config
from agentlens.search.chunker import Chunker
from agentlens.search.embedder import Embedder, EmbedderConfig, create_embedder
from agentlens.search.errors import IndexNotFoundError
from agentlens.search.indexer import Indexer
from agentlens.search.models import IndexResult, IndexStats, SearchResult
from agentlens.search.searcher import Searcher
from agentlens.search.store import JsonFileStore, VectorStore
from agentlens.search.symbols import SymbolExtractor

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    """Outcome of ``Workspace.index``."""

    result: IndexResult
    pruned: int
    stats: IndexStats

    def to_dict(self) -> dict:
        return {
            **self.result.to_dict(),
            "pruned": self.pruned,
            "stats": self.stats.to_dict(),
        }


class Workspace:
    """
    Wire a config and a project root into an Indexer and a Searcher.

    The Indexer and the Searcher share one store and one embedder, so a
    search after an index in the same process sees the fresh chunks.
    """

    def __init__(
        self,
        config: Config,
        root: Path,
        embedder: Embedder | None = None,
        store: VectorStore | None = None,
    ):
        """
        Initialize the workspace.

        Args:
            config: Configuration instance with all settings
            root: Project root directory
            embedder: Embedder override (defaults to the configured provider)
            store: Store override (defaults to the JSON snapshot under the root)
        """
        self.config = config
        self.root = root.resolve()
        self.index_path = config.index_path(self.root)

        self.embedder = embedder or create_embedder(
            EmbedderConfig(
                model=config.embed_model,
                endpoint=config.ollama_url,
                dimensions=config.embed_dimensions,
                timeout=config.embed_timeout,
            )
        )
        self.store = store or JsonFileStore(self.index_path)

        self.indexer = Indexer(
            store=self.store,
            embedder=self.embedder,
            chunker=Chunker.from_tokens(config.chunk_max_tokens, config.chunk_overlap_tokens),
            symbol_extractor=SymbolExtractor(),
            large_file_lines=config.large_file_lines,
        )
        self.searcher = Searcher(
            store=self.store,
            embedder=self.embedder,
            hybrid_enabled=config.hybrid_enabled,
            hybrid_k=config.hybrid_k,
        )

    def has_index(self) -> bool:
        return self.index_path.exists()

    async def health_check(self) -> None:
        await self.embedder.health_check()

    async def index(self, force: bool = False, prune: bool = False) -> IndexReport:
        """
        Index the project root.

        The embedder health check runs first and its failure aborts the run
        before any file is touched.

        Args:
            force: Re-index unchanged files too
            prune: Drop documents whose files were deleted

        Returns:
            IndexReport with the batch result, prune count and index stats.
        """
        await self.health_check()

        logger.info("Indexing %s into %s", self.root, self.index_path)
        result = await self.indexer.index_all(
            self.root,
            respect_gitignore=self.config.respect_gitignore,
            force=force,
        )

        pruned = 0
        if prune:
            pruned = await self.indexer.prune_deleted(
                self.root, respect_gitignore=self.config.respect_gitignore
            )

        stats = await self.store.stats()
        return IndexReport(result=result, pruned=pruned, stats=stats)

    async def status(self) -> IndexStats | None:
        """Index stats, or None when the project has no index yet."""
        if not self.has_index():
            return None
        await self.store.reload_if_changed()
        return await self.store.stats()

    async def clear(self) -> bool:
        """Remove the index. Returns False when there was nothing to remove."""
        if not self.has_index():
            return False
        await self.store.clear()
        return True

    async def search(
        self,
        query: str,
        limit: int = 10,
        hybrid: bool | None = None,
    ) -> list[SearchResult]:
        """
        Search the index.

        Args:
            query: Natural-language query
            limit: Maximum number of results
            hybrid: None follows the config, True forces hybrid, False forces
                vector-only

        Raises:
            IndexNotFoundError: If the project has not been indexed
        """
        if not self.has_index():
            raise IndexNotFoundError(
                f"No index found at {self.index_path}. Run 'agentlens index' first."
            )

        if hybrid is None:
            return await self.searcher.smart_search(query, limit)
        if not hybrid:
            return await self.searcher.search(query, limit)
        if self.searcher.hybrid_enabled:
            return await self.searcher.search_hybrid(query, limit)

        forced = Searcher(self.store, self.embedder, hybrid_enabled=True, hybrid_k=self.config.hybrid_k)
        return await forced.search_hybrid(query, limit)
