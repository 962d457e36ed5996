from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence, Set, Tuple

from loguru import logger
from tortoise.transactions import in_transaction

from bookscrapper.records import ResourceKind
from bookscrapper.storage.models import (
    ScrapperMetadata,
    ScrapperMetadataStatus,
    ScrapperWebsite,
)


class ScrapperMetadataStore:
    """Durable record of scraped remote items, unique per (website, remote_id)."""

    async def find_known_remote_ids(
        self,
        website: ScrapperWebsite,
        remote_ids: Iterable[Any],
    ) -> Set[str]:
        ids = list({str(remote_id) for remote_id in remote_ids if remote_id is not None})
        if not ids:
            return set()

        rows = await ScrapperMetadata.filter(
            website_id=website.id,
            remote_id__in=ids,
        ).values_list("remote_id", flat=True)
        return set(rows)

    async def is_known(self, website: ScrapperWebsite, remote_id: Any) -> bool:
        return await ScrapperMetadata.filter(
            website_id=website.id,
            remote_id=str(remote_id),
        ).exists()

    async def save(
        self,
        website: ScrapperWebsite,
        remote_id: Any,
        kind: ResourceKind,
        content: Optional[Dict[str, Any]],
        status: ScrapperMetadataStatus = ScrapperMetadataStatus.NEW,
        *,
        using_db=None,
    ) -> Tuple[ScrapperMetadata, bool]:
        """Insert unless already known; never overwrites an existing row."""
        return await ScrapperMetadata.get_or_create(
            website_id=website.id,
            remote_id=str(remote_id),
            defaults={"kind": kind, "status": status, "content": content},
            using_db=using_db,
        )

    async def upsert(
        self,
        website: ScrapperWebsite,
        remote_id: Any,
        kind: ResourceKind,
        content: Optional[Dict[str, Any]],
        status: ScrapperMetadataStatus = ScrapperMetadataStatus.NEW,
    ) -> ScrapperMetadata:
        """Insert or refresh the content of a single remote item."""
        row, created = await ScrapperMetadata.update_or_create(
            website_id=website.id,
            remote_id=str(remote_id),
            defaults={"kind": kind, "status": status, "content": content},
        )
        logger.debug(
            f"[{website.hostname}] {'Created' if created else 'Updated'} metadata {remote_id}"
        )
        return row

    async def save_new(
        self,
        website: ScrapperWebsite,
        kind: ResourceKind,
        items: Sequence[Tuple[Any, Dict[str, Any]]],
        status: ScrapperMetadataStatus = ScrapperMetadataStatus.NEW,
    ) -> int:
        """Persist a scraped page of (remote_id, content) pairs, skipping known ids."""
        if not items:
            return 0

        created_count = 0
        async with in_transaction() as conn:
            known = await self.find_known_remote_ids(website, (rid for rid, _ in items))
            for remote_id, content in items:
                if str(remote_id) in known:
                    continue
                _, created = await self.save(
                    website, remote_id, kind, content, status, using_db=conn
                )
                if created:
                    known.add(str(remote_id))
                    created_count += 1

        return created_count
