from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ResourceKind(str, Enum):
    URL = "URL"
    BOOK = "BOOK"
    BOOK_REVIEW = "BOOK_REVIEW"
    BOOK_AUTHOR = "BOOK_AUTHOR"
    BOOK_PUBLISHER = "BOOK_PUBLISHER"


class BookBindingKind(str, Enum):
    NOTEBOOK = "NOTEBOOK"
    HARDCOVER = "HARDCOVER"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class CandidateRecord:
    """Mixin for the dataclasses handed to the persistence collaborator."""

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class AuthorRecord(CandidateRecord):
    name: str
    description: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass
class PublisherRecord(CandidateRecord):
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    website_url: Optional[str] = None


@dataclass
class ReleaseRecord(CandidateRecord):
    title: str
    lang: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    total_pages: Optional[int] = None
    format: Optional[str] = None
    publish_date: Optional[str] = None
    translator: Optional[str] = None
    binding: Optional[BookBindingKind] = None
    publisher: Optional[PublisherRecord] = None
    cover_url: Optional[str] = None


@dataclass
class AvailabilityRecord(CandidateRecord):
    url: str
    remote_id: Optional[str] = None
    price: Optional[float] = None
    prev_price: Optional[float] = None
    avg_rating: Optional[float] = None
    total_ratings: Optional[int] = None


@dataclass
class BookRecord(CandidateRecord):
    title: str
    authors: List[AuthorRecord] = field(default_factory=list)
    releases: List[ReleaseRecord] = field(default_factory=list)
    availability: List[AvailabilityRecord] = field(default_factory=list)


@dataclass
class ReviewCover:
    image: Optional[str] = None
    preview: Optional[str] = None
    ratio: Optional[float] = None
    nsfw: bool = False


@dataclass
class ReviewedBook:
    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    isbn: Optional[str] = None
    category: Optional[str] = None
    cover: Optional[ReviewCover] = None


@dataclass
class ReviewRecord(CandidateRecord):
    remote_id: str
    url: str
    content: str
    book: ReviewedBook
    reviewer: Optional[str] = None
    reviewer_avatar: Optional[str] = None
    score: Optional[int] = None
    date: Optional[datetime] = None
    votes: Optional[int] = None
    comments: Optional[int] = None
