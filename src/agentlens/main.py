"""Main entry point for agentlens: command line and MCP server."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from fastmcp import FastMCP

from agentlens.config import Config
from agentlens.search.errors import SearchError
from agentlens.search.models import IndexStats, SearchResult
from agentlens.tools import register_tools
from agentlens.workspace import IndexReport, Workspace

logger = logging.getLogger(__name__)

# Error lines shown in a batch report before summarising the rest
MAX_REPORTED_ERRORS = 10

# Chunk content starts with "File:", "Lines:" (or "Symbol:") and a blank line
PREVIEW_HEADER_LINES = 3
PREVIEW_LINES = 6


def create_server(config: Config, root: Path) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        config: Configuration instance with all settings.
        root: Project root served by this instance.
    """
    mcp = FastMCP(
        name="agentlens",
        instructions=(
            "agentlens provides semantic search over a local codebase. Run "
            "index_repository once (and after large changes), then use search_code "
            "with natural-language queries to find relevant functions and files."
        ),
    )

    logger.info("Creating workspace for %s", root)
    workspace = Workspace(config, root)

    logger.info("Registering search tools...")
    register_tools(mcp, workspace)

    logger.info("Server configured successfully")
    return mcp


def format_errors(errors: list[str]) -> list[str]:
    """First MAX_REPORTED_ERRORS errors plus a count of the rest."""
    lines = list(errors[:MAX_REPORTED_ERRORS])
    if len(errors) > MAX_REPORTED_ERRORS:
        lines.append(f"... and {len(errors) - MAX_REPORTED_ERRORS} more")
    return lines


def format_preview(content: str) -> str:
    """A few lines of chunk content with the header lines skipped."""
    body = content.splitlines()[PREVIEW_HEADER_LINES:]
    return "\n".join(body[:PREVIEW_LINES])


def _print_report(report: IndexReport) -> None:
    result = report.result
    print(f"Indexed {result.files_processed} files ({result.chunks_created} chunks)")
    print(f"Skipped {result.files_skipped} unchanged files")
    if report.pruned:
        print(f"Pruned {report.pruned} deleted files")
    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for line in format_errors(result.errors):
            print(f"  {line}")
    _print_stats(report.stats)


def _print_stats(stats: IndexStats) -> None:
    print(f"Files:   {stats.total_files}")
    print(f"Chunks:  {stats.total_chunks}")
    print(f"Size:    {stats.index_size_bytes} bytes")
    last = stats.last_updated.isoformat() if stats.last_updated else "never"
    print(f"Updated: {last}")


def _print_results(query: str, results: list[SearchResult]) -> None:
    if not results:
        print(f"No results for {query!r}")
        return

    for rank, result in enumerate(results, start=1):
        chunk = result.chunk
        print(
            f"{rank}. {chunk.file_path}:{chunk.start_line}-{chunk.end_line} "
            f"[{chunk.chunk_type.value}] score={result.score:.4f}"
        )
        for line in format_preview(chunk.content).splitlines():
            print(f"    {line}")
        print()


async def _run_command(args: argparse.Namespace, config: Config, root: Path) -> int:
    workspace = Workspace(config, root)

    if args.command == "index":
        report = await workspace.index(force=args.force, prune=args.prune)
        _print_report(report)
        return 0

    if args.command == "status":
        stats = await workspace.status()
        if stats is None:
            print(f"No index found at {workspace.index_path}")
            return 0
        _print_stats(stats)
        return 0

    if args.command == "clear":
        if await workspace.clear():
            print(f"Cleared index at {workspace.index_path}")
        else:
            print(f"No index found at {workspace.index_path}")
        return 0

    if args.command == "search":
        hybrid = True if args.hybrid else None
        results = await workspace.search(args.query, limit=args.limit, hybrid=hybrid)
        if args.json:
            print(json.dumps([r.to_dict() for r in results], indent=2))
        else:
            _print_results(args.query, results)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentlens",
        description="agentlens - semantic code search for AI agents",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--path", default=".", help="Project root (default: current directory)")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    index = sub.add_parser("index", parents=[common], help="Index the project")
    index.add_argument("--force", action="store_true", help="Re-index unchanged files too")
    index.add_argument("--prune", action="store_true", help="Drop deleted files from the index")

    sub.add_parser("status", parents=[common], help="Show index statistics")
    sub.add_parser("clear", parents=[common], help="Delete the index")

    search = sub.add_parser("search", parents=[common], help="Search the index")
    search.add_argument("query", help="Natural-language query")
    search.add_argument("--limit", type=positive_int, default=10, help="Maximum results (default: 10)")
    search.add_argument("--hybrid", action="store_true", help="Force hybrid search")
    search.add_argument("--json", action="store_true", help="Print results as JSON")

    serve = sub.add_parser("serve", parents=[common], help="Run the MCP server")
    serve.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )

    return parser


def _serve(config: Config, root: Path, transport: str) -> None:
    logger.info("=" * 50)
    logger.info("agentlens starting...")
    logger.info("  ROOT:      %s", root)
    logger.info("  INDEX:     %s", config.index_path(root))
    logger.info("  OLLAMA:    %s (%s)", config.ollama_url, config.embed_model)
    logger.info("  HYBRID:    %s", "enabled" if config.hybrid_enabled else "disabled")
    logger.info("  TRANSPORT: %s", transport)
    logger.info("=" * 50)

    try:
        mcp = create_server(config, root)
        if transport == "sse":
            logger.info("Starting MCP server on port %s...", config.port)
            mcp.run(transport="sse", host="0.0.0.0", port=config.port)
        else:
            mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception:
        logger.exception("Server error")
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """Main function - parses the command line and runs the command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging here to avoid side effects on import; stdout carries
    # the MCP stdio transport and command output, so logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    root = Path(args.path).expanduser().resolve()
    if not root.is_dir():
        print(f"Error: {root} is not a directory", file=sys.stderr)
        sys.exit(1)

    try:
        config = Config.from_env(project_root=root)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        _serve(config, root, args.transport)
        return

    try:
        code = asyncio.run(_run_command(args, config, root))
    except SearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
