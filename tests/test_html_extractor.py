import pytest

from bookscrapper.parsing.html_extractor import extract_links, parse_document
from bookscrapper.parsing.normalizers import (
    normalize_int,
    normalize_isbn,
    normalize_parsed_text,
    normalize_price,
)
from bookscrapper.parsing.normalizers import normalize_url as normalize_asset_url


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/about", "https://example.com/about"),
        ("../relative", "https://example.com/relative"),
        ("javascript:void(0)", None),
        ("https://other.com/x", None),
    ],
)
def test_extract_links_normalizes_and_skips_foreign(href, expected):
    html = f"<html><body><a href='{href}'>Link</a></body></html>"
    links = extract_links("https://example.com/base/", parse_document(html))

    if expected is None:
        assert links == []
    else:
        assert links == [expected]


def test_extract_links_keeps_document_order_without_duplicates():
    html = (
        "<a href='/b'>B</a><a href='/a'>A</a><a href='/b#reviews'>B again</a>"
        "<a href='/c?utm_source=mail'>C</a>"
    )
    links = extract_links("https://example.com/", parse_document(html))

    assert links == ["https://example.com/b", "https://example.com/a", "https://example.com/c"]


def test_text_normalizers():
    assert normalize_parsed_text("  Frank \n\t Herbert ") == "Frank Herbert"
    assert normalize_parsed_text("   ") is None
    assert normalize_isbn("978-83-8188-034-9") == "9788381880349"
    assert normalize_isbn("83-7150-X") is None
    assert normalize_int("792 str.") == 792
    assert normalize_int(None) is None


def test_price_normalizer():
    assert normalize_price("Cena: 49,90 zł") == 49.9
    assert normalize_price("1 299,00 zł") == 1299.0
    assert normalize_price("bez ceny") is None


def test_asset_url_normalizer():
    assert normalize_asset_url("//static.gildia.pl/a.jpg") == "https://static.gildia.pl/a.jpg"
    assert normalize_asset_url("/relative.jpg") is None
    assert normalize_asset_url("http://www.rebis.com.pl") == "http://www.rebis.com.pl"
