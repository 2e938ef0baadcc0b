from __future__ import annotations
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from shorturls.core.errors import InvalidShortcode, InvalidURL, InvalidValidity

SHORTCODE_RE = re.compile(r"^[A-Za-z0-9]{4,20}$")
LANGUAGE_REGION_RE = re.compile(r"^[a-zA-Z]{2,3}-([A-Z]{2})")

# GET paths the service answers itself; a link with one of these codes could never redirect.
RESERVED_CODES = frozenset({"shorturls", "health", "docs", "redoc"})

UNKNOWN_LOCATION = "Unknown"

_http_url = TypeAdapter(HttpUrl)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(expiry_at: datetime, now: datetime) -> bool:
    # a link is still valid at the exact expiry instant
    return now > expiry_at


def validate_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        raise InvalidURL()
    try:
        _http_url.validate_python(url)
    except ValidationError:
        raise InvalidURL() from None
    return url


def validate_validity(validity: Any, default: int = 30) -> float:
    """Returns the validity window in minutes.

    ``None`` means the caller left it out. Booleans are rejected even though
    they are ints in Python, since JSON ``true`` is not a duration.
    """
    if validity is None:
        return default
    if isinstance(validity, bool) or not isinstance(validity, (int, float)):
        raise InvalidValidity()
    try:
        finite = math.isfinite(validity)
    except OverflowError:
        # JSON integers too large for a float
        raise InvalidValidity() from None
    if not finite or validity <= 0:
        raise InvalidValidity()
    return validity


def validate_shortcode(shortcode: Any) -> str:
    if not isinstance(shortcode, str) or not SHORTCODE_RE.fullmatch(shortcode):
        raise InvalidShortcode()
    return shortcode


def compute_expiry(created_at: datetime, validity_minutes: float) -> datetime:
    try:
        expiry_at = created_at + timedelta(minutes=validity_minutes)
    except OverflowError:
        raise InvalidValidity() from None
    # windows shorter than a microsecond round away to nothing
    if expiry_at <= created_at:
        raise InvalidValidity()
    return expiry_at


def derive_location(headers: Mapping[str, str]) -> str:
    """
    Best-effort visitor location:
    - explicit country header from a proxy/CDN (CF-IPCountry, X-Country)
    - region subtag of Accept-Language, e.g. "en-GB" -> "GB"
    - "Unknown"
    """
    country = headers.get("cf-ipcountry") or headers.get("x-country")
    if country:
        return country

    lang = headers.get("accept-language")
    if lang:
        match = LANGUAGE_REGION_RE.match(lang)
        if match:
            return match.group(1)
    return UNKNOWN_LOCATION


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
