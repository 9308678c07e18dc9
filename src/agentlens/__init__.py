"""
agentlens - local semantic code search for AI agents.

Indexes a source tree into symbol-aligned chunks, embeds them with a local
Ollama model and serves hybrid (vector + lexical) search over MCP or the
command line.

Stack:
- Python + FastMCP (MCP tools server)
- httpx (Ollama embedding API)
- numpy (cosine similarity)
- JSON snapshot on disk (source of truth for the index)
"""

__version__ = "0.1.0"
