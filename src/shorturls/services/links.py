from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from shorturls.core.errors import DuplicateShortcode
from shorturls.core.link_rules import (
    compute_expiry,
    utcnow,
    validate_url,
    validate_validity,
)
from shorturls.db.models import ShortUrl
from shorturls.services import link_store
from shorturls.services.shortcodes import allocate

# a generated code that loses the insert race gets this many fresh attempts
INSERT_RACE_RETRIES = 1


def create_short_link(
    db: Session,
    url: Any,
    validity: Any = None,
    shortcode: Any = None,
    *,
    default_validity: int = 30,
    now: Optional[datetime] = None,
) -> ShortUrl:
    """
    Validates in order (url, validity, shortcode), allocates a code and stores
    the link. Each check raises its own ShortUrlError subclass.
    """
    if shortcode == "":
        # form submissions send an empty field rather than omitting it
        shortcode = None

    url = validate_url(url)
    minutes = validate_validity(validity, default=default_validity)

    created_at = now or utcnow()
    expiry_at = compute_expiry(created_at, minutes)

    def exists(code: str) -> bool:
        return link_store.code_exists(db, code)

    retries = 0 if shortcode is not None else INSERT_RACE_RETRIES
    while True:
        code = allocate(exists, preferred=shortcode)
        try:
            return link_store.create_link(db, code, url, created_at, expiry_at)
        except DuplicateShortcode:
            if retries <= 0:
                raise
            retries -= 1

