from pydantic import BaseModel
from typing import Any, Optional
from datetime import datetime

from shorturls.db.models import Click, ShortUrl


class CreateShortUrlRequest(BaseModel):
    # left untyped so the service can report each bad field with its own 400
    url: Any = None
    validity: Any = None
    shortcode: Any = None


class CreateShortUrlResponse(BaseModel):
    shortLink: str
    expiry: datetime


class ClickData(BaseModel):
    timestamp: datetime
    referrer: str
    location: str

    @classmethod
    def from_click(cls, click: Click) -> "ClickData":
        return cls(timestamp=click.timestamp, referrer=click.referrer or "", location=click.country)


class ShortUrlSummary(BaseModel):
    id: int
    shortcode: str
    shortLink: str
    url: str
    clicks: int
    createdAt: datetime
    expiry: datetime

    @classmethod
    def from_link(cls, link: ShortUrl, base: str) -> "ShortUrlSummary":
        return cls(
            id=link.id,
            shortcode=link.shortcode,
            shortLink=f"{base}/{link.shortcode}",
            url=link.original_url,
            clicks=link.clicks_count,
            createdAt=link.created_at,
            expiry=link.expiry_at,
        )


class ShortUrlDetails(BaseModel):
    shortcode: str
    shortLink: str
    url: str
    createdAt: datetime
    expiry: datetime
    clicks: int
    clickData: list[ClickData]

    @classmethod
    def from_link(cls, link: ShortUrl, clicks: list[Click], base: str) -> "ShortUrlDetails":
        return cls(
            shortcode=link.shortcode,
            shortLink=f"{base}/{link.shortcode}",
            url=link.original_url,
            createdAt=link.created_at,
            expiry=link.expiry_at,
            clicks=link.clicks_count,
            clickData=[ClickData.from_click(c) for c in clicks],
        )


class LogEntryRequest(BaseModel):
    stack: Optional[str] = None
    level: Optional[str] = None
    package: Optional[str] = None
    message: Optional[str] = None
