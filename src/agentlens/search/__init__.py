"""
Semantic search engine for agentlens.

This package chunks source files, embeds the chunks through an embedding
provider, keeps them in a persistent vector store and answers queries with
vector, lexical or fused (RRF) ranking.
"""

from agentlens.search.chunker import Chunker, hash_content
from agentlens.search.embedder import Embedder, EmbedderConfig, OllamaEmbedder, create_embedder
from agentlens.search.errors import (
    EmbedderError,
    IndexNotFoundError,
    ModelNotFoundError,
    ProviderUnreachableError,
    SearchError,
    StoreError,
)
from agentlens.search.hybrid import reciprocal_rank_fusion, text_search
from agentlens.search.indexer import Indexer
from agentlens.search.models import (
    Chunk,
    ChunkInfo,
    ChunkType,
    Document,
    IndexResult,
    IndexStats,
    SearchResult,
)
from agentlens.search.searcher import Searcher
from agentlens.search.store import JsonFileStore, VectorStore, cosine_similarity
from agentlens.search.symbols import Symbol, SymbolExtractor, SymbolKind
from agentlens.search.walker import FileEntry, scan_directory

__all__ = [
    "Chunk",
    "ChunkInfo",
    "ChunkType",
    "Chunker",
    "Document",
    "Embedder",
    "EmbedderConfig",
    "EmbedderError",
    "FileEntry",
    "IndexNotFoundError",
    "IndexResult",
    "IndexStats",
    "Indexer",
    "JsonFileStore",
    "ModelNotFoundError",
    "OllamaEmbedder",
    "ProviderUnreachableError",
    "SearchError",
    "SearchResult",
    "Searcher",
    "StoreError",
    "Symbol",
    "SymbolExtractor",
    "SymbolKind",
    "VectorStore",
    "cosine_similarity",
    "create_embedder",
    "hash_content",
    "reciprocal_rank_fusion",
    "scan_directory",
    "text_search",
]
