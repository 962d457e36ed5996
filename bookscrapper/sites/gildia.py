from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag
from loguru import logger

from bookscrapper.errors import ExtractionError
from bookscrapper.fetcher import FetchedPage, PageFetcher
from bookscrapper.matchers.base import MatchQuery, ScrapperMatcher, SiteConfig
from bookscrapper.matching.fuzzy_anchor import AnchorFields, AnchorTarget, find_best_anchor
from bookscrapper.parsing.normalizers import (
    normalize_int,
    normalize_isbn,
    normalize_parsed_text,
    normalize_price,
    normalize_url,
)
from bookscrapper.records import (
    AuthorRecord,
    AvailabilityRecord,
    BookBindingKind,
    BookRecord,
    PublisherRecord,
    ReleaseRecord,
    ResourceKind,
)
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.spider.classifier import LinkPriorityClassifier
from bookscrapper.utils.url_utils import build_url


GILDIA_HOMEPAGE_URL = "https://www.gildia.pl"
GILDIA_SEARCH_URL = "https://www.gildia.pl/szukaj"

GILDIA_PATHS = [
    (ResourceKind.BOOK, r"^/(?:literatura|komiksy)/\d+"),
    (ResourceKind.BOOK_AUTHOR, r"^/szukaj/osoba/"),
    (ResourceKind.BOOK_PUBLISHER, r"^/szukaj/wydawnictwo/"),
]


def _text(node: Optional[Tag]) -> Optional[str]:
    return normalize_parsed_text(node.get_text()) if node is not None else None


class GildiaBookMatcher(ScrapperMatcher[BookRecord]):
    kind = ResourceKind.BOOK

    binding_mappings = {
        "miękka ze skrzydełkami": BookBindingKind.NOTEBOOK,
        "miękka": BookBindingKind.NOTEBOOK,
        "twarda": BookBindingKind.HARDCOVER,
    }

    # --------------------------
    #  Search mode
    # --------------------------
    async def search_page(self, query: MatchQuery, fetcher: PageFetcher) -> Optional[FetchedPage]:
        if not query.title or not self.config.search_url:
            return None

        phrase = " ".join(filter(None, [query.title, query.authors[0] if query.authors else None]))
        listing = await fetcher.fetch(build_url(self.config.search_url, {"q": phrase}))

        anchor = find_best_anchor(
            AnchorTarget(title=query.title, authors=list(query.authors)),
            listing.document.select(".products-row > .product-row"),
            self._anchor_fields,
            threshold=self.config.fuzzy_threshold,
        )
        if anchor is None:
            logger.info(f"[GildiaBookMatcher] No search result matches {query.title!r}")
            return None

        link = anchor.select_one(".author-and-title .title .pjax")
        href = link.get("href") if link is not None else None
        if not href:
            return None
        return await fetcher.fetch(self.resolve_url(href))

    @staticmethod
    def _anchor_fields(anchor: Tag) -> AnchorFields:
        return AnchorFields(
            title=_text(anchor.select_one(".author-and-title .title .pjax")),
            author=_text(anchor.select_one(".author-and-title .author .pjax")),
        )

    # --------------------------
    #  Detail page
    # --------------------------
    def extract(self, page: FetchedPage, query: MatchQuery) -> BookRecord:
        document = page.document
        if document.select_one(".product-page-description") is None:
            raise ExtractionError("not a product page")

        release = self.extract_release(document)
        return BookRecord(
            title=release.title,
            authors=self.extract_authors(document),
            releases=[release],
            availability=[self.extract_availability(document, page.url)],
        )

    @staticmethod
    def extract_authors(document: BeautifulSoup) -> List[AuthorRecord]:
        names = (
            normalize_parsed_text(el.get_text())
            for el in document.select('.basic-product-info a[href^="/szukaj/osoba/"]')
        )
        return [AuthorRecord(name=name) for name in names if name]

    @staticmethod
    def extract_basic_props(document: BeautifulSoup) -> Dict[str, str]:
        """'<li><span>Liczba stron:</span> 792</li>' -> {'liczba stron': '792'}"""
        props = {}
        for li in document.select(".basic-product-info li"):
            label_el = li.find(True)
            if label_el is None:
                continue

            label = label_el.get_text()
            key = normalize_parsed_text(label.rstrip().rstrip(":"))
            value = normalize_parsed_text(li.get_text()[len(label):])
            if key and value:
                props[key.lower()] = value
        return props

    def extract_release(self, document: BeautifulSoup) -> ReleaseRecord:
        title = _text(document.select_one(".product-page-description .product-page-title"))
        if not title:
            raise ExtractionError("missing title")

        props = self.extract_basic_props(document)
        publisher_name = props.get("wydawnictwo")
        cover = document.select_one('[data-gallery="product"] .img-responsive.product-page-cover')
        binding = props.get("oprawa")

        return ReleaseRecord(
            title=title,
            lang="pl",
            description=_text(document.select_one(".product-page-description-details > p")),
            isbn=normalize_isbn(props.get("isbn-13") or props.get("isbn")),
            total_pages=normalize_int(props.get("liczba stron")),
            format=props.get("format"),
            publish_date=props.get("data wydania"),
            translator=props.get("tłumacz"),
            binding=self.binding_mappings.get(binding.lower()) if binding else None,
            publisher=PublisherRecord(name=publisher_name) if publisher_name else None,
            cover_url=normalize_url(cover.get("src")) if cover is not None else None,
        )

    @staticmethod
    def extract_availability(document: BeautifulSoup, url: str) -> AvailabilityRecord:
        product = document.select_one(".product-page-description [data-add-product]")
        stars = document.select_one(".product-page-description .rating-stars")
        stars_content = stars.get("data-content") if stars is not None else None
        info = document.select_one(".basic-product-info")
        old_price = document.select_one(".basic-product-info .old-price")

        return AvailabilityRecord(
            url=url,
            remote_id=product.get("data-add-product") if product is not None else None,
            price=normalize_price(info.get_text(" ")) if info is not None else None,
            prev_price=normalize_price(old_price.get_text(" ")) if old_price is not None else None,
            avg_rating=stars_content.count("★") * 2 if stars_content else None,
        )


class GildiaScrappersGroup(WebsiteScrappersGroup):
    name = "gildia"

    def __init__(
        self,
        *,
        homepage_url: str = GILDIA_HOMEPAGE_URL,
        search_url: str = GILDIA_SEARCH_URL,
        resource_priority: Optional[Mapping[str, int]] = None,
        fuzzy_threshold: float = 0.6,
    ) -> None:
        config = SiteConfig(
            homepage_url=homepage_url,
            search_url=search_url,
            fuzzy_threshold=fuzzy_threshold,
        )
        super().__init__(
            config=config,
            classifier=LinkPriorityClassifier(GILDIA_PATHS, resource_priority),
            matchers={
                ResourceKind.BOOK: GildiaBookMatcher(config),
            },
        )
