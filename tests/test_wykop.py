from datetime import datetime

import pytest

from bookscrapper.errors import ScrapperConfigError, TransientFetchError
from bookscrapper.reviews.paginated import PagePointer, PaginatedReviewIterator
from bookscrapper.sites.wykop import (
    WykopScrapper,
    is_template_post,
    match_content_description,
    match_content_properties,
)

from sample_pages import BOOKMETER_BODY, wykop_api_path, wykop_entry


def test_template_detection():
    assert is_template_post(BOOKMETER_BODY)
    assert not is_template_post("Zwykły wpis #bookmeter")
    assert not is_template_post(None)


def test_properties_are_parsed():
    properties = match_content_properties(BOOKMETER_BODY)

    assert properties == {
        "title": "Diuna",
        "authors": ["Frank Herbert"],
        "category": "fantastyka naukowa",
        "isbn": "9788381880349",
        "score": 8,
    }


def test_description_is_cut_before_footer():
    assert match_content_description(BOOKMETER_BODY) == "Pustynia, czerwie i polityka.<br />Polecam."


def test_missing_app_key_is_config_error():
    with pytest.raises(ScrapperConfigError):
        WykopScrapper(app_key="")


def test_map_item_builds_review():
    scrapper = WykopScrapper(app_key="test-key")
    review = scrapper.map_item(wykop_entry(101))

    assert review.remote_id == "101"
    assert review.url == "https://www.wykop.pl/wpis/101"
    assert review.reviewer == "czytelnik"
    assert review.score == 8
    assert review.votes == 5
    assert review.comments == 2
    assert review.date == datetime(2020, 5, 1, 10, 0)
    assert review.book.title == "Diuna"
    assert review.book.cover.ratio == 1.5
    assert review.book.cover.nsfw is False


def test_map_item_drops_non_template_posts():
    scrapper = WykopScrapper(app_key="test-key")

    assert scrapper.map_item(wykop_entry(102, body="Dzisiaj nic nie czytałem #bookmeter")) is None
    assert scrapper.map_item(wykop_entry(103, embed=None)).book.cover is None
    assert scrapper.map_item({"body": BOOKMETER_BODY}) is None


@pytest.mark.asyncio
async def test_iterates_bookmeter_tag_pages(make_fetcher):
    fetcher = make_fetcher({
        wykop_api_path("Tags/Entries/bookmeter/page/1"): {
            "data": [wykop_entry(101), wykop_entry(102, body="Bez szablonu")],
            "pagination": {"next": "https://a2.wykop.pl/Tags/Entries/bookmeter/page/2"},
        },
        wykop_api_path("Tags/Entries/bookmeter/page/2"): {
            "data": [wykop_entry(103)],
            "pagination": {"prev": "https://a2.wykop.pl/Tags/Entries/bookmeter/page/1"},
        },
    })
    scrapper = WykopScrapper(app_key="test-key", page_process_delay=0)

    pages = [page async for page in PaginatedReviewIterator(scrapper, fetcher).iterate(None)]

    assert [page.pointer for page in pages] == [PagePointer(1), PagePointer(2)]
    assert [record.remote_id for record in pages[0].records] == ["101"]
    assert pages[0].dropped == 1
    assert pages[1].next_page is None


@pytest.mark.asyncio
async def test_api_error_payload_is_transient(make_fetcher):
    fetcher = make_fetcher({
        wykop_api_path("Entries/Entry/55"): {"error": {"code": 13, "message_en": "Invalid app key"}},
    })
    scrapper = WykopScrapper(app_key="test-key")

    with pytest.raises(TransientFetchError):
        await scrapper.fetch_single(fetcher, "55")


@pytest.mark.asyncio
async def test_fetch_single_maps_entry(make_fetcher):
    fetcher = make_fetcher({wykop_api_path("Entries/Entry/101"): {"data": wykop_entry(101)}})
    scrapper = WykopScrapper(app_key="test-key")

    review = await scrapper.fetch_single(fetcher, "101")

    assert review.remote_id == "101"
    assert fetcher.transport.requested == ["https://a2.wykop.pl/Entries/Entry/101/appkey/test-key"]
