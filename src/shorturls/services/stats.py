from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shorturls.core.errors import LinkNotFound, StorageFailure
from shorturls.db.models import Click, ShortUrl
from shorturls.services.link_store import get_by_code, list_all


def get_details(db: Session, code: str) -> tuple[ShortUrl, list[Click]]:
    link = get_by_code(db, code)
    if link is None:
        raise LinkNotFound()

    try:
        clicks = list(
            db.scalars(
                select(Click)
                .where(Click.url_id == link.id)
                .order_by(Click.timestamp, Click.id)
            )
        )
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc
    return link, clicks


def list_summaries(db: Session) -> list[ShortUrl]:
    # expired links are listed too
    return list_all(db)
