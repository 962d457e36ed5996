"""Book reviews posted on Wykop under the #bookmeter tag.

Bookmeter posts follow a fixed template::

    <strong>Tytuł:</strong> Zabić drozda<br />
    <strong>Autor:</strong> Harper Lee<br />
    <strong>Gatunek:</strong> literatura piękna<br />
    <strong>Ocena:</strong> ★★★★★★★★☆☆<br /><br />
    review text...<br /><br />Wpis dodano za pomocą strony ...

Posts not using it are ignored.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional

from bookscrapper.errors import ScrapperConfigError, TransientFetchError
from bookscrapper.fetcher import PageFetcher
from bookscrapper.parsing.normalizers import normalize_isbn, normalize_parsed_text
from bookscrapper.records import ReviewCover, ReviewedBook, ReviewRecord
from bookscrapper.reviews.paginated import BookReviewAsyncScrapper, PagePointer, RawReviewPage


WYKOP_WEBSITE_URL = "https://wykop.pl"
WYKOP_API_URL = "https://a2.wykop.pl"
BOOKMETER_TAG = "bookmeter"

_PROPERTY_RE = re.compile(r"<strong>(.+?):</strong>\s(.+?)<br\s/>")
_DESCRIPTION_RE = re.compile(
    r"[☆★]<br\s/><br\s/>(.*)"
    r"(?:<br\s/><br\s/>Wpis dodano za pomocą strony|<br\s/>#<a href=\"#bookmeter\">)",
    re.IGNORECASE,
)


def is_template_post(body: Optional[str]) -> bool:
    return bool(body) and "<strong>Tytuł:</strong> " in body


def match_content_properties(body: str) -> Dict[str, Any]:
    raw = {}
    for key, value in _PROPERTY_RE.findall(body):
        key, value = key.strip().lower(), value.strip()
        if key and value:
            raw[key] = value

    properties: Dict[str, Any] = {}
    if "tytuł" in raw:
        properties["title"] = normalize_parsed_text(raw["tytuł"])
    if "gatunek" in raw:
        properties["category"] = normalize_parsed_text(raw["gatunek"])
    if "isbn" in raw:
        properties["isbn"] = normalize_isbn(raw["isbn"])
    if "autor" in raw:
        properties["authors"] = [
            author.strip() for author in raw["autor"].split(",") if author.strip()
        ]
    if "ocena" in raw:
        properties["score"] = raw["ocena"].count("★")
    return properties


def match_content_description(body: str) -> Optional[str]:
    match = _DESCRIPTION_RE.search(body.replace("\n", ""))
    if not match:
        return None
    return match.group(1).strip() or None


class WykopAPI:
    def __init__(self, app_key: str, api_url: str = WYKOP_API_URL) -> None:
        if not app_key:
            raise ScrapperConfigError("Wykop API requires WYKOP_APP_KEY")
        self.app_key = app_key
        self.api_url = api_url.rstrip("/")

    def url(self, path: str) -> str:
        return f"{self.api_url}/{path.strip('/')}/appkey/{self.app_key}"

    async def call(self, fetcher: PageFetcher, path: str) -> Dict[str, Any]:
        url = self.url(path)
        payload = await fetcher.fetch_json(url)
        if not isinstance(payload, dict):
            raise TransientFetchError(url, "Unexpected API payload")

        error = payload.get("error")
        if error:
            raise TransientFetchError(
                url, f"Wykop API error {error.get('code')}: {error.get('message_en') or error}"
            )
        return payload


class WykopScrapper(BookReviewAsyncScrapper):
    website_url = WYKOP_WEBSITE_URL

    def __init__(self, *, app_key: str, api_url: str = WYKOP_API_URL, page_process_delay: float = 15.0):
        super().__init__(page_process_delay=page_process_delay)
        self.api = WykopAPI(app_key, api_url)

    async def fetch_page(self, fetcher: PageFetcher, pointer: PagePointer) -> RawReviewPage:
        result = await self.api.call(fetcher, f"Tags/Entries/{BOOKMETER_TAG}/page/{pointer.page}")
        pagination = result.get("pagination") or {}

        return RawReviewPage(
            items=list(result.get("data") or []),
            next_page=PagePointer(page=pointer.page + 1) if pagination.get("next") else None,
        )

    async def fetch_single(self, fetcher: PageFetcher, remote_id: str) -> Optional[ReviewRecord]:
        result = await self.api.call(fetcher, f"Entries/Entry/{remote_id}")
        return self.map_item(result.get("data"))

    def remote_id_of(self, raw: Any) -> Optional[str]:
        if not isinstance(raw, dict) or raw.get("id") is None:
            return None
        return str(raw["id"])

    def map_item(self, raw: Any) -> Optional[ReviewRecord]:
        if not isinstance(raw, dict) or raw.get("id") is None:
            return None

        body = raw.get("body") or ""
        if not is_template_post(body):
            return None

        content = match_content_description(body)
        if not content:
            return None

        properties = match_content_properties(body)
        author = raw.get("author") or {}
        embed = raw.get("embed")

        return ReviewRecord(
            remote_id=str(raw["id"]),
            url=f"https://www.wykop.pl/wpis/{raw['id']}",
            content=content,
            reviewer=author.get("login"),
            reviewer_avatar=author.get("avatar"),
            score=properties.get("score"),
            date=self._parse_date(raw.get("date")),
            votes=raw.get("vote_count"),
            comments=raw.get("comments_count"),
            book=ReviewedBook(
                title=properties.get("title"),
                authors=properties.get("authors", []),
                isbn=properties.get("isbn"),
                category=properties.get("category"),
                cover=ReviewCover(
                    image=embed.get("url"),
                    preview=embed.get("preview"),
                    ratio=embed.get("ratio"),
                    nsfw=bool(embed.get("plus18")),
                ) if embed else None,
            ),
        )

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
