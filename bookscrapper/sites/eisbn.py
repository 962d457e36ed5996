from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from loguru import logger

from bookscrapper.parsing.normalizers import normalize_int, normalize_isbn, normalize_parsed_text
from bookscrapper.records import AuthorRecord, BookRecord, PublisherRecord, ReleaseRecord


# ONIX 3.0 code lists used by e-ISBN exports
ISBN13_ID_TYPE = "15"
AUTHOR_ROLE = "A01"
PAGES_EXTENT_TYPES = ("00", "07", "11")
DESCRIPTION_TEXT_TYPES = ("02", "03")

_LANGUAGE_CODES = {
    "pol": "pl",
    "eng": "en",
    "ger": "de",
    "deu": "de",
    "fre": "fr",
    "fra": "fr",
    "rus": "ru",
    "ukr": "uk",
}


def _as_list(value: Any) -> List[Any]:
    """xml2dict style payloads hold a dict for one child and a list for many."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def reverse_contributor_name(name: Optional[str]) -> Optional[str]:
    """'Herbert, Frank' -> 'Frank Herbert'."""
    name = normalize_parsed_text(name)
    if not name:
        return None
    return " ".join(reversed(name.split(", ")))


def _isbn(onix: Mapping[str, Any]) -> Optional[str]:
    identifiers = _as_list(onix.get("ProductIdentifier"))
    for identifier in identifiers:
        if identifier.get("ProductIDType") == ISBN13_ID_TYPE:
            return normalize_isbn(identifier.get("IDValue"))
    for identifier in identifiers:
        isbn = normalize_isbn(identifier.get("IDValue"))
        if isbn:
            return isbn
    return None


def _title(detail: Mapping[str, Any]) -> Optional[str]:
    for title_detail in _as_list(detail.get("TitleDetail")):
        for element in _as_list(title_detail.get("TitleElement")):
            title = normalize_parsed_text(element.get("TitleText"))
            if title:
                return title
    return None


def _authors(detail: Mapping[str, Any]) -> List[AuthorRecord]:
    contributors = sorted(
        _as_list(detail.get("Contributor")),
        key=lambda contributor: normalize_int(str(contributor.get("SequenceNumber") or "")) or 0,
    )

    authors = []
    for contributor in contributors:
        if contributor.get("ContributorRole", AUTHOR_ROLE) != AUTHOR_ROLE:
            continue
        name = reverse_contributor_name(contributor.get("PersonNameInverted"))
        if name:
            authors.append(AuthorRecord(name=name))
    return authors


def _total_pages(detail: Mapping[str, Any]) -> Optional[int]:
    for extent in _as_list(detail.get("Extent")):
        if extent.get("ExtentType") in PAGES_EXTENT_TYPES:
            return normalize_int(str(extent.get("ExtentValue") or ""))
    return None


def _lang(detail: Mapping[str, Any]) -> Optional[str]:
    for language in _as_list(detail.get("Language")):
        code = (language.get("LanguageCode") or "").lower()
        if code:
            return _LANGUAGE_CODES.get(code, code)
    return None


def _description(onix: Mapping[str, Any]) -> Optional[str]:
    collateral = onix.get("CollateralDetail") or {}
    for text_content in _as_list(collateral.get("TextContent")):
        if text_content.get("TextType") in DESCRIPTION_TEXT_TYPES:
            return normalize_parsed_text(text_content.get("Text"))
    return None


def _publisher(publishing: Mapping[str, Any]) -> Optional[PublisherRecord]:
    for publisher in _as_list(publishing.get("Publisher")):
        name = normalize_parsed_text(publisher.get("PublisherName"))
        if name:
            return PublisherRecord(name=name)
    return None


def _publish_date(publishing: Mapping[str, Any]) -> Optional[str]:
    for publishing_date in _as_list(publishing.get("PublishingDate")):
        raw = publishing_date.get("Date")
        try:
            return datetime.strptime(str(raw), "%Y%m%d").date().isoformat()
        except ValueError:
            logger.debug(f"Unparsable ONIX publishing date {raw!r}")
    return None


def convert_onix_to_book(onix: Mapping[str, Any]) -> Optional[BookRecord]:
    """
    Map one e-ISBN ONIX product record to a book with a single release.

    Records without a title or without a named author are not books we can
    match against the catalog and return None.
    """
    detail = onix.get("DescriptiveDetail") or {}
    title = _title(detail)
    authors = _authors(detail)
    if not title or not authors:
        return None

    publishing = onix.get("PublishingDetail") or {}
    release = ReleaseRecord(
        title=title,
        lang=_lang(detail),
        description=_description(onix),
        isbn=_isbn(onix),
        total_pages=_total_pages(detail),
        publish_date=_publish_date(publishing),
        publisher=_publisher(publishing),
    )
    return BookRecord(title=title, authors=authors, releases=[release])
