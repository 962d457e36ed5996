from __future__ import annotations

from typing import Iterable, Optional, Sequence

from loguru import logger
from tortoise.expressions import F

from bookscrapper.records import ResourceKind
from bookscrapper.spider.classifier import CrawlerLink
from bookscrapper.storage.models import MAX_KEY_LENGTH, QueueItem, QueueStatus, ScrapperWebsite
from bookscrapper.utils.url_utils import normalize_path


MAX_CLAIM_ATTEMPTS = 10

# claimed items outlive a crashed run, explicit retries recover them too
RETRY_STATUSES = (QueueStatus.ERROR, QueueStatus.PROCESSING)


class ScrapperQueueDriver:
    """
    Durable crawl frontier scoped per website.

    Every pending path is a ``QueueItem`` row; the (website, key) unique
    constraint is the only record of what has been seen, so links pointing
    back at visited pages are no-op inserts.
    """

    def __init__(self, *, max_claim_attempts: int = MAX_CLAIM_ATTEMPTS) -> None:
        self.max_claim_attempts = max_claim_attempts

    # -------------------------------------------------------
    # Insert
    # -------------------------------------------------------

    async def enqueue(self, website: ScrapperWebsite, link: CrawlerLink) -> bool:
        """Insert link as NEW; returns False if its path is already known in any status."""
        key = normalize_path(link.path)
        if key is None:
            return False
        if len(key) > MAX_KEY_LENGTH:
            logger.debug(f"[{website.hostname}] Skipping over-long key ({len(key)} chars)")
            return False

        _, created = await QueueItem.get_or_create(
            website_id=website.id,
            key=key,
            defaults={
                "priority": link.priority,
                "kind": link.kind,
                "status": QueueStatus.NEW,
            },
        )

        if created:
            logger.debug(f"[{website.hostname}] Enqueued {key} (priority={link.priority})")
        return created

    async def enqueue_many(self, website: ScrapperWebsite, links: Iterable[CrawlerLink]) -> int:
        inserted = 0
        for link in links:
            if await self.enqueue(website, link):
                inserted += 1
        return inserted

    # -------------------------------------------------------
    # Claim
    # -------------------------------------------------------

    async def pop_next(self, website: ScrapperWebsite) -> Optional[QueueItem]:
        """
        Claim the highest priority NEW item of website (oldest first on ties).

        The claim is a single conditional UPDATE on (id, status=NEW), so two
        concurrent callers can never both win the same row; the loser moves
        on to the next candidate.
        """
        for _ in range(self.max_claim_attempts):
            candidate = await (
                QueueItem.filter(website_id=website.id, status=QueueStatus.NEW)
                .order_by("-priority", "created_at", "id")
                .first()
            )
            if candidate is None:
                return None

            claimed = await QueueItem.filter(
                id=candidate.id,
                status=QueueStatus.NEW,
            ).update(
                status=QueueStatus.PROCESSING,
                attempts=F("attempts") + 1,
            )

            if claimed:
                await candidate.refresh_from_db()
                logger.debug(f"[{website.hostname}] Claimed {candidate.key}")
                return candidate

            logger.debug(f"[{website.hostname}] Lost claim race for {candidate.key}, retrying")

        return None

    # -------------------------------------------------------
    # Completion
    # -------------------------------------------------------

    async def mark_analyzed(self, item: QueueItem) -> None:
        await QueueItem.filter(id=item.id).update(status=QueueStatus.ANALYZED, last_error=None)
        item.status = QueueStatus.ANALYZED

    async def mark_error(self, item: QueueItem, reason: Optional[str] = None) -> None:
        error = (reason or "")[:512] or None
        await QueueItem.filter(id=item.id).update(status=QueueStatus.ERROR, last_error=error)
        item.status = QueueStatus.ERROR
        item.last_error = error

    async def requeue(
        self,
        website: ScrapperWebsite,
        *,
        statuses: Sequence[QueueStatus] = RETRY_STATUSES,
        keys: Optional[Sequence[str]] = None,
    ) -> int:
        """
        Explicit refresh: move matching items back to NEW.

        The default also recovers PROCESSING items, so it must not run while
        another crawler of the same website is active.
        """
        query = QueueItem.filter(website_id=website.id, status__in=list(statuses))
        if keys is not None:
            query = query.filter(key__in=[normalize_path(key) for key in keys])

        count = await query.update(status=QueueStatus.NEW)
        logger.info(f"[{website.hostname}] Re-queued {count} items")
        return count

    # -------------------------------------------------------
    # Introspection
    # -------------------------------------------------------

    async def has_pending(self, website: ScrapperWebsite) -> bool:
        return await QueueItem.filter(website_id=website.id, status=QueueStatus.NEW).exists()

    async def has_stranded(self, website: ScrapperWebsite) -> bool:
        """PROCESSING items nobody is working on once the workers stopped."""
        return await QueueItem.filter(
            website_id=website.id, status=QueueStatus.PROCESSING
        ).exists()

    async def count(
        self,
        website: ScrapperWebsite,
        status: Optional[QueueStatus] = None,
        kind: Optional[ResourceKind] = None,
    ) -> int:
        query = QueueItem.filter(website_id=website.id)
        if status is not None:
            query = query.filter(status=status)
        if kind is not None:
            query = query.filter(kind=kind)
        return await query.count()

    async def get(self, website: ScrapperWebsite, key: str) -> Optional[QueueItem]:
        return await QueueItem.get_or_none(website_id=website.id, key=normalize_path(key))
