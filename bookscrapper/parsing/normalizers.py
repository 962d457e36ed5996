import re
from typing import Optional
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")
_PRICE_RE = re.compile(r"(\d+(?:[  ]\d{3})*(?:[.,]\d{1,2})?)\s*(?:zł|pln)", re.IGNORECASE)


def normalize_parsed_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty results become None."""
    if text is None:
        return None

    normalized = _WHITESPACE_RE.sub(" ", str(text)).strip()
    return normalized or None


def normalize_isbn(text: Optional[str]) -> Optional[str]:
    if not text:
        return None

    isbn = re.sub(r"[^0-9Xx]", "", text).upper()
    if len(isbn) not in (10, 13):
        return None
    return isbn


def normalize_price(text: Optional[str]) -> Optional[float]:
    """First 'NN,NN zł' amount found in text."""
    if not text:
        return None

    match = _PRICE_RE.search(text)
    if not match:
        return None

    amount = match.group(1).replace(" ", "").replace(" ", "").replace(",", ".")
    try:
        return float(amount)
    except ValueError:
        return None


def normalize_int(text: Optional[str]) -> Optional[int]:
    if not text:
        return None

    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Absolute http(s) URL or None; protocol-relative URLs get https."""
    url = normalize_parsed_text(url)
    if not url:
        return None

    if url.startswith("//"):
        url = f"https:{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url
