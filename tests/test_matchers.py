import pytest

from bookscrapper.matchers.base import MatchQuery
from bookscrapper.records import BookBindingKind, ResourceKind
from bookscrapper.sites.gildia import GildiaScrappersGroup
from bookscrapper.sites.literatura_gildia import (
    LiteraturaGildiaScrappersGroup,
    split_contact_segments,
)

from sample_pages import (
    GILDIA_PRODUCT_HTML,
    GILDIA_SEARCH_HTML,
    PUBLISHER_HTML,
    REVIEW_HTML,
)


def _gildia_book_matcher():
    return GildiaScrappersGroup().matcher_for(ResourceKind.BOOK)


@pytest.mark.asyncio
async def test_gildia_direct_mode_extracts_book(make_fetcher):
    fetcher = make_fetcher({"/literatura/222-diuna": GILDIA_PRODUCT_HTML})

    book = await _gildia_book_matcher().match_record(
        MatchQuery(path="/literatura/222-diuna"), fetcher
    )

    assert book.title == "Diuna"
    assert [author.name for author in book.authors] == ["Frank Herbert"]

    release = book.releases[0]
    assert release.isbn == "9788381880349"
    assert release.total_pages == 792
    assert release.translator == "Marek Marszał"
    assert release.binding == BookBindingKind.HARDCOVER
    assert release.publisher.name == "Rebis"
    assert release.cover_url == "https://static.gildia.pl/diuna.jpg"
    assert release.description == "Arrakis, planeta pustynna."
    assert release.format is None

    availability = book.availability[0]
    assert availability.url == "https://www.gildia.pl/literatura/222-diuna"
    assert availability.remote_id == "98765"
    assert availability.price == 49.9
    assert availability.prev_price == 69.9
    assert availability.avg_rating == 8
    assert availability.total_ratings is None


@pytest.mark.asyncio
async def test_gildia_search_mode_picks_fuzzy_anchor(make_fetcher):
    fetcher = make_fetcher({
        "/szukaj": GILDIA_SEARCH_HTML,
        "/literatura/222-diuna": GILDIA_PRODUCT_HTML,
    })

    book = await _gildia_book_matcher().match_record(
        MatchQuery(title="Diuna", authors=["Frank Herbert"]), fetcher
    )

    assert book is not None
    assert fetcher.transport.requested[-1] == "https://www.gildia.pl/literatura/222-diuna"
    assert "q=Diuna+Frank+Herbert" in fetcher.transport.requested[0]


@pytest.mark.asyncio
async def test_gildia_search_without_confident_anchor_returns_none(make_fetcher):
    fetcher = make_fetcher({"/szukaj": GILDIA_SEARCH_HTML})

    book = await _gildia_book_matcher().match_record(
        MatchQuery(title="Fundacja", authors=["Isaac Asimov"]), fetcher
    )

    assert book is None
    assert len(fetcher.transport.requested) == 1


@pytest.mark.asyncio
async def test_matcher_returns_none_on_fetch_failure(make_fetcher):
    fetcher = make_fetcher({})

    assert await _gildia_book_matcher().match_record(
        MatchQuery(path="/literatura/404"), fetcher
    ) is None


@pytest.mark.asyncio
async def test_matcher_never_guesses_on_foreign_page(make_fetcher):
    fetcher = make_fetcher({"/koszyk": "<html><body><h1>Koszyk</h1></body></html>"})

    assert await _gildia_book_matcher().match_record(MatchQuery(path="/koszyk"), fetcher) is None


@pytest.mark.asyncio
async def test_literatura_publisher_from_derived_path(make_fetcher):
    fetcher = make_fetcher({"/wydawnictwa/rebis": PUBLISHER_HTML})
    matcher = LiteraturaGildiaScrappersGroup().matcher_for(ResourceKind.BOOK_PUBLISHER)

    publisher = await matcher.match_record(MatchQuery(name="Rebis"), fetcher)

    assert fetcher.transport.requested == ["https://www.literatura.gildia.pl/wydawnictwa/rebis"]
    assert publisher.name == "Rebis"
    assert publisher.description == "Wydawnictwo istnieje od 1990 roku.\nWydaje fantastykę."
    assert publisher.address == "Żmigrodzka 41/49"
    assert publisher.email == "rebis@rebis.com.pl"
    assert publisher.website_url == "http://www.rebis.com.pl"


@pytest.mark.asyncio
async def test_literatura_review_direct_mode(make_fetcher):
    path = "/tworcy/frank_herbert/diuna/recenzja"
    fetcher = make_fetcher({path: REVIEW_HTML})
    matcher = LiteraturaGildiaScrappersGroup().matcher_for(ResourceKind.BOOK_REVIEW)

    review = await matcher.match_record(MatchQuery(path=path), fetcher)

    assert review.remote_id == path
    assert review.content == "Klasyka gatunku.\nWarto przeczytać."
    assert review.book.title == "Diuna"
    assert review.book.authors == ["Frank Herbert"]
    assert review.reviewer == "Jan Kowalski"
    assert review.score == 9


@pytest.mark.asyncio
async def test_review_matcher_has_no_search_mode(make_fetcher):
    fetcher = make_fetcher({})
    matcher = LiteraturaGildiaScrappersGroup().matcher_for(ResourceKind.BOOK_REVIEW)

    assert await matcher.match_record(MatchQuery(title="Diuna"), fetcher) is None
    assert fetcher.transport.requested == []


def test_split_contact_segments_without_contact():
    assert split_contact_segments(["Opis."]) == ("Opis.", "")


def test_record_to_dict_is_json_ready():
    from bookscrapper.records import ReleaseRecord

    payload = ReleaseRecord(title="Diuna", binding=BookBindingKind.NOTEBOOK).to_dict()

    assert payload["binding"] == "NOTEBOOK"
    assert payload["isbn"] is None
