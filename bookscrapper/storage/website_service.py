from loguru import logger

from bookscrapper.errors import ScrapperConfigError
from bookscrapper.storage.models import ScrapperWebsite
from bookscrapper.utils.url_utils import get_domain


def normalize_website_url(url: str) -> str:
    url = (url or "").strip().rstrip("/")
    if not get_domain(url):
        raise ScrapperConfigError(f"Website URL {url!r} has no hostname")
    return url


async def find_or_create_website(url: str) -> ScrapperWebsite:
    """Website row for url, created on first use."""
    url = normalize_website_url(url)
    website, created = await ScrapperWebsite.get_or_create(
        url=url,
        defaults={"hostname": get_domain(url)},
    )
    if created:
        logger.info(f"Registered scrapper website {url}")
    return website
