from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup

from bookscrapper.utils.filters import is_valid_link
from bookscrapper.utils.url_utils import get_domain, normalize_url


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def extract_links(base_url: str, document: BeautifulSoup) -> List[str]:
    """
    Internal links of the page, absolute, normalized, in document order.
    """
    base_domain = get_domain(base_url)
    seen = set()
    links = []

    for tag in document.find_all("a", href=True):
        url = normalize_url(base_url, tag["href"])
        if not url or url in seen:
            continue
        if not is_valid_link(base_domain, url):
            continue

        seen.add(url)
        links.append(url)

    return links
