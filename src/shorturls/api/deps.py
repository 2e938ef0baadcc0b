from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlalchemy.orm import Session

from shorturls.core.config import Settings
from shorturls.services.log_relay import LogRelay


def get_db(request: Request) -> Iterator[Session]:
    # one session per request, owned by the app's Database
    yield from request.app.state.database.session()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_log_relay(request: Request) -> LogRelay:
    return request.app.state.log_relay
