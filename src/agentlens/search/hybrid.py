"""Lexical ranking and reciprocal rank fusion for hybrid search."""

from agentlens.search.models import Chunk, SearchResult

# Standard RRF constant
DEFAULT_RRF_K = 60.0

# Bonus added when the whole query appears verbatim in a chunk
PHRASE_BONUS = 0.5

MIN_TOKEN_LENGTH = 2


def reciprocal_rank_fusion(
    k: float,
    limit: int,
    result_lists: list[list[SearchResult]],
) -> list[SearchResult]:
    """
    Merge ranked lists with Reciprocal Rank Fusion.

    Each chunk scores ``1 / (k + rank + 1)`` for every list it appears in,
    with ``rank`` 0-based. The chunk data of the first occurrence is kept
    and ties are broken by first-seen order.

    Args:
        k: Smoothing constant (60 in the literature)
        limit: Maximum number of results to return
        result_lists: Ranked result lists, best first

    Returns:
        Fused results sorted by fused score, descending.
    """
    fused: dict[str, SearchResult] = {}

    for results in result_lists:
        for rank, result in enumerate(results):
            contribution = 1.0 / (k + rank + 1)
            existing = fused.get(result.chunk.id)
            if existing is None:
                fused[result.chunk.id] = SearchResult(chunk=result.chunk, score=contribution)
            else:
                existing.score += contribution

    ranked = sorted(fused.values(), key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def text_search(chunks: list[Chunk], query: str, limit: int) -> list[SearchResult]:
    """
    Rank chunks by lexical overlap with the query.

    The score is the number of distinct query tokens (two characters or
    longer) found in the lower-cased chunk content, divided by the query
    token count, plus ``PHRASE_BONUS`` when the whole lower-cased query
    appears verbatim. Chunks that match no token are left out.
    """
    query_lower = query.lower()
    tokens = [t for t in query_lower.split() if len(t) >= MIN_TOKEN_LENGTH]
    if not tokens:
        return []

    distinct = set(tokens)
    results: list[SearchResult] = []
    for chunk in chunks:
        content = chunk.content.lower()
        matches = sum(1 for token in distinct if token in content)
        if matches == 0:
            continue

        score = matches / len(tokens)
        if query_lower in content:
            score += PHRASE_BONUS
        results.append(SearchResult(chunk=chunk, score=score))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[:limit]
