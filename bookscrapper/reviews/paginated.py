from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Set

from loguru import logger

from bookscrapper.errors import FetchError
from bookscrapper.fetcher import PageFetcher
from bookscrapper.records import ReviewRecord


KnownIdsLookup = Callable[[Iterable[str]], Awaitable[Set[str]]]


@dataclass(frozen=True)
class PagePointer:
    """Continuation token of a paged listing API."""

    page: int = 1


@dataclass
class RawReviewPage:
    items: List[Any]
    next_page: Optional[PagePointer] = None


@dataclass
class ScrappedPage:
    pointer: PagePointer
    records: List[ReviewRecord] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    dropped: int = 0
    next_page: Optional[PagePointer] = None


class BookReviewAsyncScrapper(ABC):
    """
    Website exposing reviews through a paginated API.

    Subclasses fetch raw pages, expose the remote id of a raw item cheaply
    and map a raw item to a ``ReviewRecord`` (None when it is not a review).
    """

    website_url: str

    def __init__(self, *, page_process_delay: float = 0.0) -> None:
        self.page_process_delay = page_process_delay

    @abstractmethod
    async def fetch_page(self, fetcher: PageFetcher, pointer: PagePointer) -> RawReviewPage:
        ...

    @abstractmethod
    def remote_id_of(self, raw: Any) -> Optional[str]:
        ...

    @abstractmethod
    def map_item(self, raw: Any) -> Optional[ReviewRecord]:
        ...

    @abstractmethod
    async def fetch_single(self, fetcher: PageFetcher, remote_id: str) -> Optional[ReviewRecord]:
        ...


class PaginatedReviewIterator:
    """Pull-based, page-budgeted walk over a review API."""

    def __init__(
        self,
        scrapper: BookReviewAsyncScrapper,
        fetcher: PageFetcher,
        known_ids: Optional[KnownIdsLookup] = None,
    ) -> None:
        self.scrapper = scrapper
        self.fetcher = fetcher
        self.known_ids = known_ids
        self.last_error: Optional[FetchError] = None

    async def _known(self, remote_ids: List[str]) -> Set[str]:
        if self.known_ids is None or not remote_ids:
            return set()
        return await self.known_ids(remote_ids)

    async def parse_page(self, pointer: PagePointer, raw_page: RawReviewPage) -> ScrappedPage:
        ids = [self.scrapper.remote_id_of(raw) for raw in raw_page.items]
        known = await self._known([rid for rid in ids if rid is not None])

        page = ScrappedPage(pointer=pointer, next_page=raw_page.next_page)
        for remote_id, raw in zip(ids, raw_page.items):
            if remote_id is not None and remote_id in known:
                page.skipped_ids.append(remote_id)
                continue

            record = self.scrapper.map_item(raw)
            if record is None:
                page.dropped += 1
            else:
                page.records.append(record)

        return page

    async def iterate(
        self,
        max_iterations: Optional[int] = 1,
        initial_page: Optional[PagePointer] = None,
    ) -> AsyncIterator[ScrappedPage]:
        """
        Yields one ``ScrappedPage`` per API page.

        Stops when the API reports no next page, after max_iterations pages
        (None means no budget), on a page fetch failure, or when a page
        contains items but none of them can be parsed.
        """
        pointer: Optional[PagePointer] = initial_page or PagePointer()
        emitted = 0

        while pointer is not None:
            if max_iterations is not None and emitted >= max_iterations:
                return

            try:
                raw_page = await self.scrapper.fetch_page(self.fetcher, pointer)
            except FetchError as exc:
                logger.warning(
                    f"[{self.scrapper.website_url}] Page {pointer.page} failed: {exc.reason} {exc}"
                )
                self.last_error = exc
                return

            page = await self.parse_page(pointer, raw_page)
            emitted += 1
            yield page

            if raw_page.items and not page.records and not page.skipped_ids:
                logger.info(
                    f"[{self.scrapper.website_url}] Page {pointer.page} had nothing parsable, stopping"
                )
                return

            pointer = raw_page.next_page
            if pointer is not None and self.scrapper.page_process_delay > 0:
                await asyncio.sleep(self.scrapper.page_process_delay)
