from __future__ import annotations

from typing import Dict, List, Mapping, Optional
from urllib.parse import urlparse

from bookscrapper.errors import ScrapperConfigError
from bookscrapper.matchers.base import ScrapperMatcher, SiteConfig
from bookscrapper.records import ResourceKind
from bookscrapper.spider.classifier import CrawlerLink, LinkPriorityClassifier
from bookscrapper.utils.url_utils import concat_urls, get_domain


class WebsiteScrappersGroup:
    """
    Everything needed to scrape one website: its URLs, the path classifier
    and one matcher per resource kind it knows how to parse.
    """

    name: str = "website"

    def __init__(
        self,
        *,
        config: SiteConfig,
        classifier: LinkPriorityClassifier,
        matchers: Mapping[ResourceKind, ScrapperMatcher],
    ) -> None:
        homepage = (config.homepage_url or "").strip()
        parsed = urlparse(homepage)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ScrapperConfigError(
                f"{type(self).__name__} requires an absolute homepage URL, got {homepage!r}"
            )

        for kind, matcher in matchers.items():
            if matcher.kind != kind:
                raise ScrapperConfigError(
                    f"{type(matcher).__name__} handles {matcher.kind.value}, registered as {kind.value}"
                )

        self.config = config
        self.classifier = classifier
        self.matchers: Dict[ResourceKind, ScrapperMatcher] = dict(matchers)

    @property
    def website_url(self) -> str:
        return self.config.homepage_url.rstrip("/")

    @property
    def hostname(self) -> str:
        return get_domain(self.website_url)

    def matcher_for(self, kind: ResourceKind) -> Optional[ScrapperMatcher]:
        return self.matchers.get(kind)

    def resolve_url(self, path: str) -> str:
        return concat_urls(self.website_url, path)

    def map_link(self, path: str) -> CrawlerLink:
        return self.classifier.link(path)

    def post_map_links(self, links: List[CrawlerLink]) -> List[CrawlerLink]:
        """Hook for sites whose markup hides links we have to synthesize."""
        return links

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.website_url}>"
