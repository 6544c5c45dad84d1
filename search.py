"""Fuzzy task search."""

from difflib import SequenceMatcher
from typing import Iterable, List, Tuple

from config import SEARCH_LIMIT, SEARCH_THRESHOLD
from models import Task


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def fuzzy_score(query: str, content: str) -> float:
    """
    Score how well `query` matches `content`, from 0.0 to 1.0.

    A substring hit scores 1.0. Otherwise the query is compared against every
    run of consecutive words as long as the query, so matches anywhere in a
    long task still count.
    """
    q = _normalize(query)
    c = _normalize(content)
    if not q or not c:
        return 0.0
    if q in c:
        return 1.0

    words = c.split()
    width = max(1, len(q.split()))
    best = SequenceMatcher(None, q, c).ratio()
    for start in range(len(words)):
        window = " ".join(words[start:start + width])
        best = max(best, SequenceMatcher(None, q, window).ratio())
    return best


def fuzzy_search_tasks(tasks: Iterable[Task], query: str, limit: int = SEARCH_LIMIT) -> List[Task]:
    """Return tasks matching `query`, best match first, newest first on ties."""
    if not query.strip():
        return []

    scored: List[Tuple[float, Task]] = []
    for task in tasks:
        score = fuzzy_score(query, task.content)
        if score >= SEARCH_THRESHOLD:
            scored.append((score, task))

    scored.sort(key=lambda pair: (pair[0], pair[1].created_at.timestamp()), reverse=True)
    return [task for _, task in scored[:limit]]
