from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from shorturls.core.link_rules import is_expired
from shorturls.db.models import ShortUrl
from shorturls.services.link_store import get_by_code


class LinkState(str, Enum):
    MISSING = "missing"
    EXPIRED = "expired"
    VALID = "valid"


@dataclass(frozen=True)
class Resolution:
    state: LinkState
    link: Optional[ShortUrl] = None


def resolve(db: Session, code: str, now: datetime) -> Resolution:
    link = get_by_code(db, code)
    if link is None:
        return Resolution(LinkState.MISSING)
    if is_expired(link.expiry_at, now):
        return Resolution(LinkState.EXPIRED, link)
    return Resolution(LinkState.VALID, link)
