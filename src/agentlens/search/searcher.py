"""Query-time search over a vector store."""

import logging

from agentlens.search.embedder import Embedder
from agentlens.search.hybrid import DEFAULT_RRF_K, reciprocal_rank_fusion, text_search
from agentlens.search.models import SearchResult
from agentlens.search.store import VectorStore

logger = logging.getLogger(__name__)


class Searcher:
    """
    Answer natural-language queries against an index.

    The searcher never writes to the store. Before every query it asks the
    store to reload the snapshot if another process replaced it, so a
    long-running server picks up an index rebuilt from the command line.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        hybrid_enabled: bool = True,
        hybrid_k: float = DEFAULT_RRF_K,
    ):
        """
        Initialize the searcher.

        Args:
            store: Store holding the indexed chunks
            embedder: Embedder used for query vectors
            hybrid_enabled: Fuse lexical and vector rankings by default
            hybrid_k: RRF smoothing constant
        """
        self.store = store
        self.embedder = embedder
        self.hybrid_enabled = hybrid_enabled
        self.hybrid_k = hybrid_k

    async def search(self, query: str, limit: int) -> list[SearchResult]:
        """Vector-only search."""
        await self.store.reload_if_changed()
        query_vector = await self.embedder.embed(query)
        return await self.store.search(query_vector, limit)

    async def search_hybrid(self, query: str, limit: int) -> list[SearchResult]:
        """
        Combine vector and lexical rankings with Reciprocal Rank Fusion.

        Both rankings fetch twice the requested limit so fusion has
        candidates to reorder. When hybrid search is disabled this is the
        vector ranking truncated to ``limit``.
        """
        await self.store.reload_if_changed()
        query_vector = await self.embedder.embed(query)
        vector_results = await self.store.search(query_vector, limit * 2)

        if not self.hybrid_enabled:
            return vector_results[:limit]

        all_chunks = await self.store.get_all_chunks()
        text_results = text_search(all_chunks, query, limit * 2)
        logger.debug(
            "Fusing %d vector and %d text results for %r",
            len(vector_results),
            len(text_results),
            query,
        )
        return reciprocal_rank_fusion(self.hybrid_k, limit, [vector_results, text_results])

    async def smart_search(self, query: str, limit: int) -> list[SearchResult]:
        """Hybrid search when enabled, vector search otherwise."""
        if self.hybrid_enabled:
            return await self.search_hybrid(query, limit)
        return await self.search(query, limit)
