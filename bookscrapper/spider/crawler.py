import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Optional, Protocol
from urllib.parse import urlparse

from loguru import logger

from bookscrapper.errors import FetchError
from bookscrapper.fetcher import FetchedPage, PageFetcher
from bookscrapper.monitoring.metrics_server import (
    ITEMS_ANALYZED,
    ITEMS_ERRORED,
    ITEMS_SKIPPED,
    QUEUE_PENDING,
    RECORDS_MATCHED,
)
from bookscrapper.parsing.html_extractor import extract_links
from bookscrapper.records import CandidateRecord, ResourceKind
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.storage.metadata_store import ScrapperMetadataStore
from bookscrapper.storage.models import (
    QueueItem,
    QueueStatus,
    ScrapperMetadataStatus,
    ScrapperWebsite,
)
from bookscrapper.storage.queue_driver import ScrapperQueueDriver
from bookscrapper.utils.url_utils import normalize_path


MAX_LINKS_PER_PAGE = 1000
IDLE_POLL_SECONDS = 0.1


class CandidateSink(Protocol):
    """External persistence of canonical entities (books, authors, ...)."""

    async def save_candidate(self, kind: ResourceKind, record: CandidateRecord) -> Any:
        ...


class CrawlState(str, Enum):
    SEEDED = "SEEDED"
    RUNNING = "RUNNING"
    EXHAUSTED = "EXHAUSTED"
    CANCELLED = "CANCELLED"


@dataclass
class CrawlStats:
    analyzed: int = 0
    errored: int = 0
    skipped: int = 0
    imported: int = 0


class SpiderCrawler:
    """
    Drains the persisted frontier of one website.

    Each claimed item is fetched, its internal links are classified and
    enqueued, analyzable items (priority > 0) go through the matcher of their
    kind and the item ends up ANALYZED (or ERROR on fetch failure).
    """

    def __init__(
        self,
        *,
        group: WebsiteScrappersGroup,
        website: ScrapperWebsite,
        fetcher: PageFetcher,
        queue: ScrapperQueueDriver,
        metadata_store: ScrapperMetadataStore,
        candidate_sink: Optional[CandidateSink] = None,
        max_iterations: Optional[int] = None,
        workers: int = 1,
        only_kinds: Optional[Collection[ResourceKind]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.group = group
        self.website = website
        self.fetcher = fetcher
        self.queue = queue
        self.metadata_store = metadata_store
        self.candidate_sink = candidate_sink
        self.max_iterations = max_iterations
        self.workers = max(1, workers)
        self.only_kinds = set(only_kinds) if only_kinds else None
        self.cancel_event = cancel_event or asyncio.Event()

        self.name = f"Spider-{website.hostname}"
        self.state: Optional[CrawlState] = None
        self.stats = CrawlStats()
        self._iterations = 0
        self._in_flight = 0

    def cancel(self) -> None:
        self.cancel_event.set()

    # --------------------------
    #  Seeding
    # --------------------------
    async def seed(self, default_url: Optional[str] = None) -> None:
        """Resume from NEW items; only an empty frontier gets the homepage."""
        if await self.queue.has_pending(self.website):
            logger.info(f"[{self.name}] Resuming persisted frontier")
        else:
            path = normalize_path(urlparse(default_url or self.website.url).path) or "/"
            inserted = await self.queue.enqueue(self.website, self.group.map_link(path))
            if inserted:
                logger.info(f"[{self.name}] Seeded frontier with {path}")

        self.state = CrawlState.SEEDED

    # --------------------------
    #  Main processing
    # --------------------------
    async def process_item(self, item: QueueItem) -> None:
        hostname = self.website.hostname
        url = self.group.resolve_url(item.key)

        try:
            page = await self.fetcher.fetch(url)
        except FetchError as exc:
            logger.warning(f"[{self.name}] {exc.reason} {url}: {exc}")
            await self.queue.mark_error(item, f"{exc.reason}: {exc}")
            ITEMS_ERRORED.labels(website=hostname, reason=exc.reason).inc()
            self.stats.errored += 1
            return
        except Exception as exc:
            logger.exception(f"[{self.name}] Unexpected error fetching {url}")
            await self.queue.mark_error(item, f"UNEXPECTED: {exc}")
            ITEMS_ERRORED.labels(website=hostname, reason="UNEXPECTED").inc()
            self.stats.errored += 1
            return

        try:
            await self._enqueue_links(page)
            if self._should_analyze(item):
                await self._analyze(item, page)
        except Exception as exc:
            logger.exception(f"[{self.name}] Error analyzing {url}")
            await self.queue.mark_error(item, f"UNEXPECTED: {exc}")
            ITEMS_ERRORED.labels(website=hostname, reason="UNEXPECTED").inc()
            self.stats.errored += 1
            return

        await self.queue.mark_analyzed(item)
        ITEMS_ANALYZED.labels(website=hostname).inc()
        self.stats.analyzed += 1

    def _should_analyze(self, item: QueueItem) -> bool:
        if item.priority <= 0:
            return False
        return self.only_kinds is None or item.kind in self.only_kinds

    async def _enqueue_links(self, page: FetchedPage) -> None:
        links = []
        for url in extract_links(page.url, page.document)[:MAX_LINKS_PER_PAGE]:
            path = normalize_path(url)
            if path:
                links.append(self.group.map_link(path))

        links = self.group.post_map_links(links)
        inserted = await self.queue.enqueue_many(self.website, links)
        logger.debug(f"[{self.name}] {page.url}: {len(links)} links, {inserted} new")

    async def _analyze(self, item: QueueItem, page: FetchedPage) -> None:
        matcher = self.group.matcher_for(item.kind)
        if matcher is None:
            logger.debug(f"[{self.name}] No matcher for {item.kind.value} ({item.key})")
            return

        record = await matcher.match_page(page, self.fetcher)
        if record is None:
            return

        hostname = self.website.hostname
        if await self.metadata_store.is_known(self.website, item.key):
            logger.debug(f"[{self.name}] Already known {item.key}, skipping")
            ITEMS_SKIPPED.labels(website=hostname).inc()
            self.stats.skipped += 1
            return

        status = ScrapperMetadataStatus.NEW
        if self.candidate_sink is not None:
            await self.candidate_sink.save_candidate(item.kind, record)
            status = ScrapperMetadataStatus.PROCESSED

        await self.metadata_store.save(
            self.website, item.key, item.kind, record.to_dict(), status
        )
        RECORDS_MATCHED.labels(website=hostname, kind=item.kind.value).inc()
        self.stats.imported += 1
        logger.info(f"[{self.name}] Matched {item.kind.value} at {item.key}")

    # --------------------------
    #  Worker loop
    # --------------------------
    def _take_iteration(self) -> bool:
        if self.max_iterations is not None and self._iterations >= self.max_iterations:
            return False
        self._iterations += 1
        return True

    async def _worker(self, worker_id: int) -> None:
        while not self.cancel_event.is_set():
            if not self._take_iteration():
                return

            item = await self.queue.pop_next(self.website)
            if item is None:
                self._iterations -= 1
                if self._in_flight:
                    # another worker may still enqueue links
                    await asyncio.sleep(IDLE_POLL_SECONDS)
                    continue
                return

            self._in_flight += 1
            try:
                logger.debug(f"[{self.name}#{worker_id}] Claimed {item.key}")
                await self.process_item(item)
            finally:
                self._in_flight -= 1

    async def run(self, default_url: Optional[str] = None) -> CrawlStats:
        await self.seed(default_url)

        self.state = CrawlState.RUNNING
        logger.info(f"{self.name} started with {self.workers} worker(s).")

        await asyncio.gather(*(self._worker(i) for i in range(self.workers)))

        stranded = await self.queue.has_stranded(self.website)
        if stranded:
            logger.warning(
                f"[{self.name}] Items left PROCESSING by an earlier run, "
                f"re-queue them with --retry-errors"
            )

        if stranded or await self.queue.has_pending(self.website):
            self.state = CrawlState.CANCELLED
        else:
            self.state = CrawlState.EXHAUSTED

        QUEUE_PENDING.labels(website=self.website.hostname).set(
            await self.queue.count(self.website, status=QueueStatus.NEW)
        )
        logger.info(
            f"{self.name} {self.state.value.lower()}: analyzed={self.stats.analyzed}, "
            f"errored={self.stats.errored}, skipped={self.stats.skipped}, "
            f"imported={self.stats.imported}"
        )
        return self.stats
