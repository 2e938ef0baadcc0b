from fastapi import APIRouter, status, HTTPException, Depends
from sqlalchemy.orm import Session

from shorturls.api.deps import get_app_settings, get_db, get_log_relay
from shorturls.core.config import Settings
from shorturls.core.errors import (
    LinkNotFound,
    LinkValidationError,
    ShortcodeConflict,
)
from shorturls.schemas.links import (
    CreateShortUrlRequest,
    CreateShortUrlResponse,
    LogEntryRequest,
    ShortUrlDetails,
    ShortUrlSummary,
)
from shorturls.services import stats
from shorturls.services.links import create_short_link
from shorturls.services.log_relay import LEVELS, LogRelay

router = APIRouter()


@router.post(
    "/shorturls",
    response_model=CreateShortUrlResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_short_url(
    req: CreateShortUrlRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    log: LogRelay = Depends(get_log_relay),
):
    log.info("handler", f"create request shortcode={req.shortcode or 'auto'} url={req.url}")

    try:
        link = create_short_link(
            db,
            req.url,
            validity=req.validity,
            shortcode=req.shortcode,
            default_validity=settings.default_validity_minutes,
        )
    except LinkValidationError as exc:
        log.error("handler", exc.message)
        raise
    except ShortcodeConflict:
        log.warn("handler", f"shortcode collision attempt={req.shortcode}")
        raise

    log.info("controller", f"created short url id={link.id} shortcode={link.shortcode}")
    return CreateShortUrlResponse(
        shortLink=f"{settings.short_link_base}/{link.shortcode}",
        expiry=link.expiry_at,
    )


@router.get("/shorturls", response_model=list[ShortUrlSummary])
def list_short_urls(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    log: LogRelay = Depends(get_log_relay),
):
    log.info("route", "list all short urls requested")
    base = settings.short_link_base
    return [ShortUrlSummary.from_link(link, base) for link in stats.list_summaries(db)]


@router.get("/shorturls/{shortcode}", response_model=ShortUrlDetails)
def get_short_url_stats(
    shortcode: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    log: LogRelay = Depends(get_log_relay),
):
    log.info("route", f"stats requested shortcode={shortcode}")
    try:
        link, clicks = stats.get_details(db, shortcode)
    except LinkNotFound:
        log.warn("route", f"stats not found shortcode={shortcode}")
        raise
    return ShortUrlDetails.from_link(link, clicks, settings.short_link_base)


@router.post("/internal/log")
def relay_frontend_log(entry: LogEntryRequest, log: LogRelay = Depends(get_log_relay)):
    if entry.stack != "frontend":
        raise HTTPException(status_code=400, detail="invalid stack")
    if entry.level not in LEVELS or not entry.package or entry.message is None:
        raise HTTPException(status_code=400, detail="invalid log entry")

    log.send("frontend", entry.level, entry.package, entry.message)
    return {"ok": True}
