from __future__ import annotations

from typing import Iterator, List, Optional, Sequence, Union

from loguru import logger

from bookscrapper.errors import ScrapperConfigError
from bookscrapper.reviews.paginated import BookReviewAsyncScrapper
from bookscrapper.sites.gildia import GildiaScrappersGroup
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.sites.literatura_gildia import LiteraturaGildiaScrappersGroup
from bookscrapper.sites.wykop import WykopScrapper
from bookscrapper.utils.config_loader import Config
from bookscrapper.utils.url_utils import get_domain


Scrapper = Union[WebsiteScrappersGroup, BookReviewAsyncScrapper]


class ScrappersRegistry:
    """
    Every site the process knows how to scrape.

    Built once at startup and handed to the service; website hostnames must be
    unique so a URL always resolves to a single scrapper.
    """

    def __init__(
        self,
        groups: Sequence[WebsiteScrappersGroup] = (),
        review_scrappers: Sequence[BookReviewAsyncScrapper] = (),
    ) -> None:
        self.groups: List[WebsiteScrappersGroup] = list(groups)
        self.review_scrappers: List[BookReviewAsyncScrapper] = list(review_scrappers)

        seen = set()
        for scrapper in self:
            hostname = self.hostname_of(scrapper)
            if not hostname:
                raise ScrapperConfigError(f"{scrapper!r} has no website hostname")
            if hostname in seen:
                raise ScrapperConfigError(f"Duplicate scrapper registered for {hostname}")
            seen.add(hostname)

    @staticmethod
    def hostname_of(scrapper: Scrapper) -> str:
        return _bare_hostname(get_domain(scrapper.website_url))

    def __iter__(self) -> Iterator[Scrapper]:
        yield from self.groups
        yield from self.review_scrappers

    def __len__(self) -> int:
        return len(self.groups) + len(self.review_scrappers)

    def get_by_website_url(self, url: str) -> Optional[Scrapper]:
        hostname = _bare_hostname(get_domain(url if "//" in url else f"https://{url}"))
        for scrapper in self:
            if self.hostname_of(scrapper) == hostname:
                return scrapper
        return None


def _bare_hostname(hostname: str) -> str:
    return hostname[4:] if hostname.startswith("www.") else hostname


def build_default_registry(config: Config, *, require_api_keys: bool = False) -> ScrappersRegistry:
    """
    Registry of the production sites.

    API sites without credentials are skipped with a warning, unless
    require_api_keys is set (the caller explicitly asked for them).
    """
    groups = [
        GildiaScrappersGroup(
            resource_priority=config.resource_priority,
            fuzzy_threshold=config.fuzzy_threshold,
        ),
        LiteraturaGildiaScrappersGroup(
            resource_priority=config.resource_priority,
        ),
    ]

    review_scrappers = []
    if config.wykop_app_key or require_api_keys:
        review_scrappers.append(
            WykopScrapper(
                app_key=config.wykop_app_key or "",
                page_process_delay=config.review_page_delay,
            )
        )
    else:
        logger.warning("WYKOP_APP_KEY not set, Wykop reviews are disabled")

    return ScrappersRegistry(groups, review_scrappers)
