from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from loguru import logger

from bookscrapper.errors import ExtractionError, FetchError
from bookscrapper.fetcher import FetchedPage, PageFetcher
from bookscrapper.matching.fuzzy_anchor import DEFAULT_ANCHOR_THRESHOLD
from bookscrapper.records import CandidateRecord, ResourceKind
from bookscrapper.utils.url_utils import concat_urls


RecordT = TypeVar("RecordT", bound=CandidateRecord)


@dataclass
class SiteConfig:
    homepage_url: str
    search_url: Optional[str] = None
    fuzzy_threshold: float = DEFAULT_ANCHOR_THRESHOLD


@dataclass
class MatchQuery:
    """What we already know about the wanted record.

    ``path`` selects direct mode; without it the matcher searches the site
    using ``title``/``authors`` (books) or ``name`` (authors, publishers).
    """

    path: Optional[str] = None
    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    name: Optional[str] = None


class ScrapperMatcher(ABC, Generic[RecordT]):
    """Turns a page or a query into one candidate record of a single kind."""

    kind: ResourceKind

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return concat_urls(self.config.homepage_url, path)

    def derive_path(self, query: MatchQuery) -> Optional[str]:
        """Path computable from the query alone (e.g. slug of a name)."""
        return None

    async def match_record(
        self,
        query: MatchQuery,
        fetcher: PageFetcher,
    ) -> Optional[RecordT]:
        path = query.path or self.derive_path(query)

        try:
            if path:
                url = self.resolve_url(path)
                logger.info(f"[{type(self).__name__}] Direct fetching {url}")
                page = await fetcher.fetch(url)
            else:
                page = await self.search_page(query, fetcher)
        except FetchError as exc:
            logger.warning(f"[{type(self).__name__}] {exc.reason}: {exc}")
            return None

        if page is None:
            return None
        return await self.match_page(page, fetcher, query)

    async def match_page(
        self,
        page: FetchedPage,
        fetcher: Optional[PageFetcher] = None,
        query: Optional[MatchQuery] = None,
    ) -> Optional[RecordT]:
        try:
            return self.extract(page, query or MatchQuery())
        except ExtractionError as exc:
            logger.info(f"[{type(self).__name__}] No match on {page.url}: {exc}")
            return None

    async def search_page(
        self,
        query: MatchQuery,
        fetcher: PageFetcher,
    ) -> Optional[FetchedPage]:
        """Search mode; matchers without a site search only work directly."""
        logger.debug(f"[{type(self).__name__}] Search mode not supported")
        return None

    @abstractmethod
    def extract(self, page: FetchedPage, query: MatchQuery) -> RecordT:
        """Build the record or raise ExtractionError; never guess missing fields."""
