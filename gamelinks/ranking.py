from typing import Iterable, List

from rapidfuzz.distance import Levenshtein

from .models import CandidateItem
from .normalize import is_substring_either


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute costs."""
    return Levenshtein.distance(a, b, weights=(1, 1, 1))


def rank_for(name: str, query: str) -> int:
    """0 for a substring match in either direction, else the edit distance."""
    if is_substring_either(name, query):
        return 0
    return edit_distance(name, query)


def rank_candidates(items: Iterable[CandidateItem], query: str) -> List[CandidateItem]:
    """Assign ranks against ``query`` and return the items sorted best first.

    The sort is stable, so substring matches keep their result-page order.
    """
    ranked = []
    for item in items:
        item.rank = rank_for(item.name, query)
        ranked.append(item)
    ranked.sort(key=lambda c: c.rank)
    return ranked
