from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from shorturls.core.link_rules import ensure_utc


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """DateTime that always hands back aware UTC values.

    SQLite drops the offset on write, so naive values coming back are UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        return ensure_utc(value)

    def process_result_value(self, value: datetime | None, dialect):
        return ensure_utc(value)
