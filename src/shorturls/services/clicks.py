from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shorturls.core.errors import StorageFailure
from shorturls.db.models import Click, ShortUrl
from shorturls.services.link_store import increment_clicks


def record_click(
    db: Session,
    link: ShortUrl,
    timestamp: datetime,
    referrer: str,
    country: str,
) -> Click:
    """Appends the visit and bumps the link counter in one commit."""
    click = Click(url_id=link.id, timestamp=timestamp, referrer=referrer, country=country)
    try:
        db.add(click)
        increment_clicks(db, link.id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc
    return click
