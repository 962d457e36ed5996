import re
from urllib.parse import urlparse

from bookscrapper.utils.url_utils import get_domain


# static assets never carry a resource we can match
BLOCKED_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".mp4", ".mp3", ".pdf",
    ".zip", ".rar", ".exe", ".epub", ".mobi", ".css", ".js", ".xml", ".ico",
)

_BLOCKED_EXT_RE = re.compile(
    "(?:" + "|".join(re.escape(ext) for ext in BLOCKED_EXTENSIONS) + r")(?:$|[?#&])"
)


def is_valid_link(base_domain: str, url: str) -> bool:
    """True when url is an internal HTML page of base_domain worth crawling."""
    if re.match(r"^(javascript:|mailto:|tel:)", url, re.I):
        return False

    parsed = urlparse(url)
    if not parsed.scheme.startswith("http") or not parsed.netloc:
        return False

    combined_path = parsed.path
    if parsed.query:
        combined_path = f"{combined_path}?{parsed.query}"

    if _BLOCKED_EXT_RE.search(combined_path.lower()):
        return False

    # subdomains are separate websites
    return get_domain(url) == base_domain
