from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shorturls.core.errors import DuplicateShortcode, StorageFailure
from shorturls.db.models import ShortUrl


def create_link(
    db: Session,
    code: str,
    url: str,
    created_at: datetime,
    expiry_at: datetime,
) -> ShortUrl:
    link = ShortUrl(
        shortcode=code,
        original_url=url,
        created_at=created_at,
        expiry_at=expiry_at,
        clicks_count=0,
    )
    try:
        db.add(link)
        db.commit()
    except IntegrityError as exc:
        # the unique index on shortcode is the only guard against a concurrent insert
        db.rollback()
        raise DuplicateShortcode() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc

    db.refresh(link)
    return link


def get_by_code(db: Session, code: str) -> Optional[ShortUrl]:
    try:
        return db.scalars(select(ShortUrl).where(ShortUrl.shortcode == code)).first()
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc


def code_exists(db: Session, code: str) -> bool:
    try:
        found = db.scalar(select(ShortUrl.id).where(ShortUrl.shortcode == code).limit(1))
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc
    return found is not None


def list_all(db: Session) -> list[ShortUrl]:
    try:
        return list(db.scalars(select(ShortUrl).order_by(ShortUrl.id)))
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc


def increment_clicks(db: Session, link_id: int) -> None:
    """Queues the counter bump in the current transaction; the caller commits."""
    db.execute(
        update(ShortUrl)
        .where(ShortUrl.id == link_id)
        .values(clicks_count=ShortUrl.clicks_count + 1)
    )
