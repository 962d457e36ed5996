"""Text similarity used to reconcile scraped records with known entities.

``text_similarity`` is the Sørensen-Dice coefficient over character bigrams
(whitespace ignored), the same measure the catalog uses when it compares
titles typed by users with titles parsed from remote pages.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Optional, Union

AuthorsLike = Union[str, Iterable[Optional[str]], None]


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Score in [0, 1]. Empty or missing input on either side scores 0."""
    if not a or not b:
        return 0.0

    first = "".join(a.split())
    second = "".join(b.split())
    if not first or not second:
        return 0.0
    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    intersection = sum((first_bigrams & second_bigrams).values())

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def order_author_field(author: str) -> str:
    """'Lee Harper' and 'harper lee' both become 'harper lee'."""
    return " ".join(sorted(author.lower().split()))


def as_author_list(authors: AuthorsLike) -> List[str]:
    if authors is None:
        return []
    if isinstance(authors, str):
        authors = [authors]
    return [order_author_field(author) for author in authors if author and author.strip()]


def author_set_similarity(a: AuthorsLike, b: AuthorsLike) -> float:
    """Best pairwise similarity between two (possibly single) author lists."""
    best = 0.0
    for source_author in as_author_list(a):
        for row_author in as_author_list(b):
            best = max(best, text_similarity(source_author, row_author))
    return best
