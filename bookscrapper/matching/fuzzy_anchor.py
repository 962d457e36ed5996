from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from bookscrapper.matching.similarity import (
    author_set_similarity,
    text_similarity,
)
from bookscrapper.parsing.normalizers import normalize_parsed_text

DEFAULT_ANCHOR_THRESHOLD = 0.6

AnchorT = TypeVar("AnchorT")


@dataclass
class AnchorTarget:
    title: str
    authors: List[str] = field(default_factory=list)


@dataclass
class AnchorFields:
    title: Optional[str] = None
    author: Union[str, Sequence[str], None] = None


def _normalize_lower(text: Optional[str]) -> Optional[str]:
    normalized = normalize_parsed_text(text)
    return normalized.lower() if normalized else None


def score_anchor(target: AnchorTarget, fields: AnchorFields) -> float:
    """Title similarity multiplied by author similarity."""
    title = _normalize_lower(fields.title)

    if isinstance(fields.author, str) or fields.author is None:
        authors = [fields.author] if fields.author else []
    else:
        authors = list(fields.author)
    authors = [a for a in (_normalize_lower(author) for author in authors) if a]

    if not target.authors:
        author_score = 1.0
    elif not authors:
        author_score = 0.0
    else:
        author_score = author_set_similarity(target.authors, authors)

    return text_similarity((target.title or "").lower(), title) * author_score


def find_best_anchor(
    target: AnchorTarget,
    anchors: Iterable[AnchorT],
    extract: Callable[[AnchorT], AnchorFields],
    *,
    threshold: float = DEFAULT_ANCHOR_THRESHOLD,
) -> Optional[AnchorT]:
    """
    Pick the listing anchor that best matches target.

    Anchors scoring below threshold are dropped; on equal scores the first
    anchor in document order wins. Returns None if nothing qualifies.
    """
    best_anchor: Optional[AnchorT] = None
    best_score = -1.0

    for anchor in anchors:
        score = score_anchor(target, extract(anchor))
        if score < threshold:
            continue
        if score > best_score:
            best_anchor, best_score = anchor, score

    return best_anchor
