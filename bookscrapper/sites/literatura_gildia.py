from __future__ import annotations

import re
from typing import List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from bookscrapper.errors import ExtractionError
from bookscrapper.fetcher import FetchedPage
from bookscrapper.matchers.base import MatchQuery, ScrapperMatcher, SiteConfig
from bookscrapper.parsing.normalizers import (
    normalize_int,
    normalize_parsed_text,
    normalize_url,
)
from bookscrapper.records import (
    AuthorRecord,
    PublisherRecord,
    ResourceKind,
    ReviewedBook,
    ReviewRecord,
)
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.spider.classifier import LinkPriorityClassifier
from bookscrapper.utils.url_utils import normalize_path, underscore_parameterize


LITERATURA_GILDIA_HOMEPAGE_URL = "https://www.literatura.gildia.pl"

LITERATURA_GILDIA_PATHS = [
    (ResourceKind.BOOK_REVIEW, r"^/tworcy/[^/]+/[^/]+/recenzj"),
    (ResourceKind.BOOK, r"^/tworcy/[^/]+/[^/]+$"),
    (ResourceKind.BOOK_AUTHOR, r"^/tworcy/[^/]+$"),
    (ResourceKind.BOOK_PUBLISHER, r"^/wydawnictwa/[^/]+$"),
]

_CONTACT_MARKERS = ("Kontakt:", "Dane teleadresowe")


def _content_lines(document: BeautifulSoup) -> List[str]:
    content = document.select_one("#yui-main .widetext")
    if content is None:
        raise ExtractionError("missing content block")

    for br in content.find_all("br"):
        br.replace_with("\n")

    segments = []
    for paragraph in content.find_all("p"):
        for line in paragraph.get_text().split("\n"):
            line = normalize_parsed_text(line)
            if line:
                segments.append(line)
    return segments


def split_contact_segments(segments: List[str]) -> Tuple[str, str]:
    """Splits publisher paragraphs into (description, contact details)."""
    for index, line in enumerate(segments):
        if line.startswith("ul.") or any(marker in line for marker in _CONTACT_MARKERS):
            return "\n".join(segments[:index]), "\n".join(segments[index:])
    return "\n".join(segments), ""


class LiteraturaGildiaPublisherMatcher(ScrapperMatcher[PublisherRecord]):
    kind = ResourceKind.BOOK_PUBLISHER

    def derive_path(self, query: MatchQuery) -> Optional[str]:
        if not query.name:
            return None
        return f"wydawnictwa/{underscore_parameterize(query.name)}"

    def extract(self, page: FetchedPage, query: MatchQuery) -> PublisherRecord:
        document = page.document
        segments = _content_lines(document)
        description, contact = split_contact_segments(segments)

        name = query.name or normalize_parsed_text(
            document.h1.get_text() if document.h1 else None
        )
        if not name:
            raise ExtractionError("missing publisher name")

        address = re.search(r"^\s*ul\.\s*(.*)$", contact, re.MULTILINE)
        email = re.search(r"^\s*e-mail:\s*(\S+)", contact, re.MULTILINE | re.IGNORECASE)
        website = re.search(r"^\s*www:\s*(\S+)", contact, re.MULTILINE | re.IGNORECASE)

        return PublisherRecord(
            name=name,
            description=description or None,
            address=normalize_parsed_text(address.group(1)) if address else None,
            email=email.group(1).strip() if email else None,
            website_url=normalize_url(website.group(1)) if website else None,
        )


class LiteraturaGildiaAuthorMatcher(ScrapperMatcher[AuthorRecord]):
    kind = ResourceKind.BOOK_AUTHOR

    def derive_path(self, query: MatchQuery) -> Optional[str]:
        if not query.name:
            return None
        return f"tworcy/{underscore_parameterize(query.name)}"

    def extract(self, page: FetchedPage, query: MatchQuery) -> AuthorRecord:
        document = page.document
        name = normalize_parsed_text(document.h1.get_text() if document.h1 else None)
        if not name:
            raise ExtractionError("missing author name")

        segments = _content_lines(document)
        photo = document.select_one("#yui-main .widetext img")

        return AuthorRecord(
            name=name,
            description="\n".join(segments) or None,
            photo_url=normalize_url(photo.get("src")) if photo is not None else None,
        )


class LiteraturaGildiaReviewMatcher(ScrapperMatcher[ReviewRecord]):
    """Reviews have no search on the site, only direct mode works."""

    kind = ResourceKind.BOOK_REVIEW

    def extract(self, page: FetchedPage, query: MatchQuery) -> ReviewRecord:
        document = page.document
        content = "\n".join(_content_lines(document))
        if not content:
            raise ExtractionError("empty review")

        title = normalize_parsed_text(document.h1.get_text() if document.h1 else None)
        if not title:
            raise ExtractionError("missing reviewed book title")

        authors = [
            name for name in (
                normalize_parsed_text(a.get_text())
                for a in document.select('.book-authors a[href^="/tworcy/"]')
            ) if name
        ]
        reviewer = document.select_one(".review-author")
        rating = document.select_one(".rating")

        return ReviewRecord(
            remote_id=normalize_path(urlparse(page.url).path) or page.url,
            url=page.url,
            content=content,
            book=ReviewedBook(title=title, authors=authors),
            reviewer=normalize_parsed_text(reviewer.get_text()) if reviewer is not None else None,
            score=normalize_int(rating.get_text()) if rating is not None else None,
        )


class LiteraturaGildiaScrappersGroup(WebsiteScrappersGroup):
    name = "literatura-gildia"

    def __init__(
        self,
        *,
        homepage_url: str = LITERATURA_GILDIA_HOMEPAGE_URL,
        resource_priority: Optional[Mapping[str, int]] = None,
    ) -> None:
        config = SiteConfig(homepage_url=homepage_url)
        super().__init__(
            config=config,
            classifier=LinkPriorityClassifier(LITERATURA_GILDIA_PATHS, resource_priority),
            matchers={
                ResourceKind.BOOK_PUBLISHER: LiteraturaGildiaPublisherMatcher(config),
                ResourceKind.BOOK_AUTHOR: LiteraturaGildiaAuthorMatcher(config),
                ResourceKind.BOOK_REVIEW: LiteraturaGildiaReviewMatcher(config),
            },
        )
