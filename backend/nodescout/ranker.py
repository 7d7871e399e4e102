from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

from .models import ListItem, RankingWeights, ScoredItem
from .utils import clamp, tag_match_score, token_match_score

DEFAULT_WEIGHTS = RankingWeights()

T = TypeVar("T")


def score_item(item: ListItem, tokens: List[str], popularity: float,
               weights: RankingWeights = DEFAULT_WEIGHTS) -> float:
    total = weights.total
    if total <= 0:
        return 0.0
    parts = (
        token_match_score(item.name, tokens) * weights.name
        + token_match_score(item.description, tokens) * weights.description
        + tag_match_score(item.tags, tokens) * weights.tags
        + clamp(popularity) * weights.popularity
    )
    return clamp(parts / total)


def score_items(items: Sequence[ListItem], tokens: List[str],
                popularity_by_identity: Dict[str, float],
                weights: RankingWeights = DEFAULT_WEIGHTS) -> List[ScoredItem]:
    out: List[ScoredItem] = []
    for item in items:
        pop = popularity_by_identity.get(item.identity, item.popularity)
        score = score_item(item, tokens, pop or 0.0, weights)
        data = item.model_dump()
        if pop is not None:
            data["popularity"] = pop
        out.append(ScoredItem(**data, score=score))
    return out


def rank_items(scored: Sequence[ScoredItem], limit: int) -> List[ScoredItem]:
    # score desc, identity asc, then discovery order
    ordered = sorted(enumerate(scored), key=lambda p: (-p[1].score, p[1].identity, p[0]))
    return [it for _, it in ordered][:max(0, limit)]


def rank_positive(entries: Sequence[T], score_of: Callable[[T], float],
                  tie_key: Callable[[T], str], limit: int) -> List[Tuple[T, float]]:
    """
    Docs-style ranking: score every entry, drop zero scores, order by
    score desc then `tie_key` asc.
    """
    scored = [(e, score_of(e)) for e in entries]
    kept = [p for p in scored if p[1] > 0]
    kept.sort(key=lambda p: (-p[1], tie_key(p[0])))
    return kept[:max(0, limit)]
