from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Optional, Union

from loguru import logger

from bookscrapper.errors import FetchError, ScrapperConfigError
from bookscrapper.fetcher import PageFetcher
from bookscrapper.matchers.base import MatchQuery
from bookscrapper.monitoring.metrics_server import ITEMS_ERRORED, ITEMS_SKIPPED, RECORDS_MATCHED
from bookscrapper.records import CandidateRecord, ResourceKind
from bookscrapper.registry import ScrappersRegistry
from bookscrapper.reviews.paginated import (
    BookReviewAsyncScrapper,
    PagePointer,
    PaginatedReviewIterator,
)
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.spider.crawler import CandidateSink, CrawlStats, SpiderCrawler
from bookscrapper.storage.metadata_store import ScrapperMetadataStore
from bookscrapper.storage.models import ScrapperMetadataStatus
from bookscrapper.storage.queue_driver import ScrapperQueueDriver
from bookscrapper.storage.website_service import find_or_create_website
from bookscrapper.utils.url_utils import normalize_path


@dataclass
class RunStats:
    analyzed: int = 0
    errored: int = 0
    skipped: int = 0
    imported: int = 0

    def add(self, other: Union["RunStats", CrawlStats]) -> "RunStats":
        self.analyzed += other.analyzed
        self.errored += other.errored
        self.skipped += other.skipped
        self.imported += other.imported
        return self

    def __str__(self) -> str:
        return (
            f"analyzed={self.analyzed}, errored={self.errored}, "
            f"skipped={self.skipped}, imported={self.imported}"
        )


class ScrapperService:
    """
    Refresh operations over a registry of sites.

    Spider sites are crawled through their persisted frontier, API sites are
    walked page by page. Every operation only inserts unknown remote ids (or
    upserts a single one), so re-running it never duplicates metadata rows.
    """

    def __init__(
        self,
        *,
        registry: ScrappersRegistry,
        fetcher: PageFetcher,
        metadata_store: Optional[ScrapperMetadataStore] = None,
        queue: Optional[ScrapperQueueDriver] = None,
        candidate_sink: Optional[CandidateSink] = None,
        crawler_workers: int = 1,
        spider_max_iterations: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.metadata_store = metadata_store or ScrapperMetadataStore()
        self.queue = queue or ScrapperQueueDriver()
        self.candidate_sink = candidate_sink
        self.crawler_workers = crawler_workers
        self.spider_max_iterations = spider_max_iterations
        self.cancel_event = cancel_event or asyncio.Event()

    @property
    def _saved_status(self) -> ScrapperMetadataStatus:
        if self.candidate_sink is None:
            return ScrapperMetadataStatus.NEW
        return ScrapperMetadataStatus.PROCESSED

    def _get_scrapper(self, url: str) -> Union[WebsiteScrappersGroup, BookReviewAsyncScrapper]:
        scrapper = self.registry.get_by_website_url(url)
        if scrapper is None:
            raise ScrapperConfigError(f"No scrapper registered for {url}")
        return scrapper

    # --------------------------
    #  Spider sites
    # --------------------------
    async def crawl(
        self,
        group: WebsiteScrappersGroup,
        *,
        max_iterations: Optional[int] = None,
        kind: Optional[ResourceKind] = None,
        retry_errors: bool = False,
    ) -> RunStats:
        website = await find_or_create_website(group.website_url)
        if retry_errors:
            await self.queue.requeue(website)

        crawler = SpiderCrawler(
            group=group,
            website=website,
            fetcher=self.fetcher,
            queue=self.queue,
            metadata_store=self.metadata_store,
            candidate_sink=self.candidate_sink,
            max_iterations=max_iterations,
            workers=self.crawler_workers,
            only_kinds=[kind] if kind else None,
            cancel_event=self.cancel_event,
        )
        return RunStats().add(await crawler.run())

    # --------------------------
    #  API sites
    # --------------------------
    async def exec_review_scrapper(
        self,
        scrapper: BookReviewAsyncScrapper,
        *,
        max_iterations: Optional[int] = 1,
        initial_page: Optional[PagePointer] = None,
    ) -> RunStats:
        stats = RunStats()
        website = await find_or_create_website(scrapper.website_url)
        iterator = PaginatedReviewIterator(
            scrapper,
            self.fetcher,
            known_ids=partial(self.metadata_store.find_known_remote_ids, website),
        )

        async for page in iterator.iterate(max_iterations, initial_page):
            logger.info(
                f"[{website.hostname}] Scrapping page {page.pointer.page}: "
                f"{len(page.records)} new, {len(page.skipped_ids)} known, {page.dropped} dropped"
            )
            stats.analyzed += len(page.records) + len(page.skipped_ids) + page.dropped
            stats.skipped += len(page.skipped_ids)
            ITEMS_SKIPPED.labels(website=website.hostname).inc(len(page.skipped_ids))

            records = {record.remote_id: record for record in page.records}
            if self.candidate_sink is not None:
                for record in records.values():
                    await self.candidate_sink.save_candidate(ResourceKind.BOOK_REVIEW, record)

            imported = await self.metadata_store.save_new(
                website,
                ResourceKind.BOOK_REVIEW,
                [(remote_id, record.to_dict()) for remote_id, record in records.items()],
                self._saved_status,
            )
            RECORDS_MATCHED.labels(
                website=website.hostname, kind=ResourceKind.BOOK_REVIEW.value
            ).inc(imported)
            stats.imported += imported

            if self.cancel_event.is_set():
                logger.info(f"[{website.hostname}] Cancelled after page {page.pointer.page}")
                break

        if iterator.last_error is not None:
            ITEMS_ERRORED.labels(
                website=website.hostname, reason=iterator.last_error.reason
            ).inc()
            stats.errored += 1

        return stats

    # --------------------------
    #  Refresh operations
    # --------------------------
    async def _refresh(
        self,
        scrapper: Union[WebsiteScrappersGroup, BookReviewAsyncScrapper],
        *,
        kind: Optional[ResourceKind],
        max_iterations: Optional[int],
        initial_page: Optional[PagePointer] = None,
    ) -> RunStats:
        if isinstance(scrapper, WebsiteScrappersGroup):
            return await self.crawl(scrapper, max_iterations=max_iterations, kind=kind)

        if kind is not None and kind != ResourceKind.BOOK_REVIEW:
            logger.debug(f"Skipping {scrapper.website_url}, it only provides reviews")
            return RunStats()

        return await self.exec_review_scrapper(
            scrapper,
            max_iterations=max_iterations,
            initial_page=initial_page,
        )

    async def refresh_latest(
        self,
        *,
        kind: Optional[ResourceKind] = None,
        max_iterations: Optional[int] = 1,
    ) -> RunStats:
        """
        Refresh every registered site.

        max_iterations is the page budget of API sites; spiders use
        spider_max_iterations since one frontier item is not a useful budget.
        """
        stats = RunStats()
        for scrapper in self.registry:
            if self.cancel_event.is_set():
                break

            budget = max_iterations
            if isinstance(scrapper, WebsiteScrappersGroup):
                budget = self.spider_max_iterations

            stats.add(await self._refresh(scrapper, kind=kind, max_iterations=budget))
        return stats

    async def refresh_website(
        self,
        url: str,
        *,
        kind: Optional[ResourceKind] = None,
        initial_page: Optional[int] = None,
        max_iterations: Optional[int] = None,
    ) -> RunStats:
        scrapper = self._get_scrapper(url)
        if initial_page and isinstance(scrapper, WebsiteScrappersGroup):
            logger.warning(f"{url} is crawled from its frontier, ignoring initial page")

        return await self._refresh(
            scrapper,
            kind=kind,
            max_iterations=max_iterations,
            initial_page=PagePointer(page=initial_page) if initial_page else None,
        )

    async def refresh_single(
        self,
        url: str,
        remote_id: str,
        *,
        kind: Optional[ResourceKind] = None,
    ) -> Optional[CandidateRecord]:
        """Fetch one remote record and insert or refresh its metadata row."""
        scrapper = self._get_scrapper(url)
        website = await find_or_create_website(scrapper.website_url)

        if isinstance(scrapper, WebsiteScrappersGroup):
            remote_id = normalize_path(remote_id) or remote_id
            kind = kind or scrapper.classifier.classify(remote_id)
            matcher = scrapper.matcher_for(kind)
            if matcher is None:
                raise ScrapperConfigError(f"{scrapper.name} has no matcher for {kind.value}")
            record = await matcher.match_record(MatchQuery(path=remote_id), self.fetcher)
        else:
            kind = ResourceKind.BOOK_REVIEW
            try:
                record = await scrapper.fetch_single(self.fetcher, remote_id)
            except FetchError as exc:
                logger.warning(f"[{website.hostname}] {exc.reason} fetching {remote_id}: {exc}")
                return None

        if record is None:
            logger.info(f"[{website.hostname}] Nothing to refresh for {remote_id}")
            return None

        if self.candidate_sink is not None:
            await self.candidate_sink.save_candidate(kind, record)

        await self.metadata_store.upsert(
            website, remote_id, kind, record.to_dict(), self._saved_status
        )
        logger.info(f"[{website.hostname}] Refreshed {kind.value} {remote_id}")
        return record
