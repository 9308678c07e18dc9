"""MCP tools for the agentlens server.

This module defines the tools exposed by the MCP server:
- search_code: Semantic (vector + lexical) search over the indexed project
- index_repository: Index or re-index the project
- index_status: Statistics of the current index
- clear_index: Remove the index
"""

import logging

from fastmcp import FastMCP

from agentlens.search.errors import SearchError
from agentlens.search.models import SearchResult
from agentlens.workspace import Workspace

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


def format_result(result: SearchResult) -> dict:
    """Tool-facing view of a search result (no vector)."""
    chunk = result.chunk
    return {
        "file_path": chunk.file_path,
        "start_line": chunk.start_line,
        "end_line": chunk.end_line,
        "chunk_type": chunk.chunk_type.value,
        "score": round(result.score, 4),
        "content": chunk.content,
    }


def register_tools(mcp: FastMCP, workspace: Workspace) -> None:
    """Register all search tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        workspace: Workspace for the served project root
    """

    @mcp.tool()
    async def search_code(
        query: str,
        limit: int = 10,
        hybrid: bool | None = None,
    ) -> dict:
        """Search the indexed codebase with a natural-language query.

        Combines embedding similarity with keyword matching (Reciprocal Rank
        Fusion) unless hybrid search is disabled.

        Args:
            query: What to look for, e.g. "where are HTTP retries handled"
            limit: Maximum number of results to return (default: 10)
            hybrid: Force hybrid (true) or vector-only (false) ranking;
                omit to use the server setting

        Returns:
            Dictionary with:
            - query: The query that was run
            - results: List of matches with file_path, start_line, end_line,
              chunk_type, score and content
            - error: Error message if the search failed
        """
        if not query.strip():
            return {"query": query, "results": [], "error": "Query must not be empty"}
        limit = max(1, min(limit, MAX_LIMIT))

        try:
            results = await workspace.search(query, limit=limit, hybrid=hybrid)
        except SearchError as e:
            return {"query": query, "results": [], "error": str(e)}

        return {
            "query": query,
            "results": [format_result(r) for r in results],
            "error": None,
        }

    @mcp.tool()
    async def index_repository(force: bool = False, prune: bool = True) -> dict:
        """Index the project so it can be searched.

        Unchanged files are skipped, so running this again is cheap.

        Args:
            force: Re-index every file even if unchanged (default: False)
            prune: Remove files that were deleted since the last run
                (default: True)

        Returns:
            Dictionary with files_processed, files_skipped, chunks_created,
            errors, pruned and index stats, or an error message.
        """
        try:
            report = await workspace.index(force=force, prune=prune)
        except SearchError as e:
            logger.warning("Indexing failed: %s", e)
            return {"error": str(e)}

        return {**report.to_dict(), "error": None}

    @mcp.tool()
    async def index_status() -> dict:
        """Show statistics of the current index.

        Returns:
            Dictionary with:
            - indexed: Whether an index exists
            - total_files, total_chunks, index_size_bytes, last_updated
        """
        try:
            stats = await workspace.status()
        except SearchError as e:
            return {"indexed": False, "error": str(e)}

        if stats is None:
            return {"indexed": False, "error": None}
        return {"indexed": True, **stats.to_dict(), "error": None}

    @mcp.tool()
    async def clear_index() -> dict:
        """Delete the index for this project.

        Returns:
            Dictionary with cleared (False when there was no index).
        """
        try:
            cleared = await workspace.clear()
        except SearchError as e:
            return {"cleared": False, "error": str(e)}
        return {"cleared": cleared, "error": None}
