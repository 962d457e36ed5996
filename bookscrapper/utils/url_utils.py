import re
import unicodedata
from typing import Mapping, Optional
from urllib.parse import urlencode, urljoin, urlparse, urlunparse


_TRACKING_PARAMS = re.compile(r"(utm_[^=&]+|sessionid|fbclid|ref|gclid)=[^&]*", re.IGNORECASE)


def _clean_tracking_params(query: str) -> str:
    clean_query = _TRACKING_PARAMS.sub("", query)
    clean_query = re.sub(r"&&+", "&", clean_query).strip("&")
    return clean_query


def _clean_path(path: str) -> str:
    path = re.sub(r"/{2,}", "/", path or "/")
    if not path.startswith("/"):
        path = "/" + path
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    return path


def normalize_url(base_url: str, link: str) -> Optional[str]:
    """Resolve a relative link against base_url and strip fragments/tracking params."""
    if not link:
        return None

    raw_link = link.strip()
    if raw_link.startswith("//"):
        base_scheme = urlparse(base_url).scheme or "http"
        raw_link = f"{base_scheme}:{raw_link}"

    try:
        parsed = urlparse(urljoin(base_url, raw_link))
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    parsed = parsed._replace(
        netloc=parsed.netloc.lower(),
        path=_clean_path(parsed.path),
        query=_clean_tracking_params(parsed.query),
        fragment="",
    )
    return urlunparse(parsed)


def normalize_path(url_or_path: str) -> Optional[str]:
    """Queue key of a link: path plus cleaned query, without host."""
    if not url_or_path or not url_or_path.strip():
        return None

    parsed = urlparse(url_or_path.strip())
    if parsed.scheme and parsed.scheme not in ("http", "https"):
        return None

    path = _clean_path(parsed.path)
    query = _clean_tracking_params(parsed.query)
    return f"{path}?{query}" if query else path


def concat_urls(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def build_url(base_url: str, params: Mapping[str, object]) -> str:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{base_url}?{query}" if query else base_url


def underscore_parameterize(text: str) -> str:
    """'Wydawnictwo Literackie' -> 'wydawnictwo_literackie'."""
    text = text.replace("ł", "l").replace("Ł", "L")
    ascii_text = (
        unicodedata.normalize("NFKD", text)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "_", ascii_text.lower()).strip("_")


def is_same_domain(url1: str, url2: str) -> bool:
    return get_domain(url1) == get_domain(url2)


def get_domain(url: str) -> str:
    try:
        netloc = urlparse(url).netloc.lower()
        # port is not part of the domain identity
        return netloc.split(":", 1)[0]
    except ValueError:
        return ""
