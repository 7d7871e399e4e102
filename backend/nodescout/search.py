import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import SourceError
from .listing import dedupe_items, items_for_facets
from .models import AggregationResult, ListingResult, NpmSearchObject, RankingWeights
from .ranker import DEFAULT_WEIGHTS, rank_items, score_items
from .sources import NpmSearchClient
from .utils import clamp, normalize_query, tokenize_query

DEFAULT_TAGS = [
    "n8n-nodes",
    "n8n-community-node-package",
    "n8n-community-node",
]
PAGE_SIZE_CAP = 50

log = logging.getLogger(__name__)

FacetResults = List[Tuple[str, List[NpmSearchObject]]]


def build_search_text(query: str, tag: str) -> str:
    q = query.strip()
    return f"keywords:{tag} {q}" if q else f"keywords:{tag}"


def _failure_cause(err: BaseException) -> str:
    if isinstance(err, SourceError):
        return err.message
    return "unexpected error"


async def fan_out(client: NpmSearchClient, tags: Sequence[str], query: str,
                  size: int) -> Tuple[FacetResults, List[str]]:
    """
    Run one search per facet concurrently and wait for all of them.
    Returns the successful (facet, objects) pairs in facet order plus one
    warning per failed facet.
    """
    settled = await asyncio.gather(
        *(client.search(build_search_text(query, tag), size) for tag in tags),
        return_exceptions=True,
    )
    ok: FacetResults = []
    warnings: List[str] = []
    for tag, res in zip(tags, settled):
        if not isinstance(res, BaseException):
            ok.append((tag, res.objects))
            continue
        if not isinstance(res, Exception):
            # cancellation and friends are not facet failures
            raise res
        cause = _failure_cause(res)
        if not isinstance(res, SourceError):
            log.error("facet %s raised %r", tag, res)
        log.warning("facet %s failed: %s", tag, cause)
        warnings.append(f"failed for facet {tag}: {cause}")
    return ok, warnings


def popularity_map(results: FacetResults) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for _, objects in results:
        for obj in objects:
            key = obj.package.name.strip().lower()
            pop = clamp(obj.popularity or 0.0)
            if key not in out or pop > out[key]:
                out[key] = pop
    return out


async def aggregate_search(client: NpmSearchClient, query: str, limit: int,
                           tags: Optional[Sequence[str]] = None,
                           weights: RankingWeights = DEFAULT_WEIGHTS) -> AggregationResult:
    tags = list(tags or DEFAULT_TAGS)
    size = min(limit, PAGE_SIZE_CAP)
    normalized = normalize_query(query)

    results, warnings = await fan_out(client, tags, normalized, size)

    merged = dedupe_items(items_for_facets(results))
    tokens = tokenize_query(normalized)
    scored = score_items(merged, tokens, popularity_map(results), weights)
    ranked = rank_items(scored, limit)
    log.info("search q=%r facets=%d ok=%d merged=%d returned=%d",
             query, len(tags), len(results), len(merged), len(ranked))
    return AggregationResult(
        query=query,
        limit=limit,
        total=len(merged),
        results=ranked,
        warnings=warnings,
        had_success=bool(results),
    )


async def aggregate_list(client: NpmSearchClient, tags: Optional[Sequence[str]],
                         limit: int) -> ListingResult:
    tags = list(tags or DEFAULT_TAGS)
    size = min(limit, PAGE_SIZE_CAP)
    results, warnings = await fan_out(client, tags, "", size)
    merged = dedupe_items(items_for_facets(results))
    return ListingResult(items=merged[:max(0, limit)], warnings=warnings, had_success=bool(results))
