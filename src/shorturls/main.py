from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from shorturls.api.deps import get_db, get_log_relay
from shorturls.api.routes import router as api_router
from shorturls.core.config import Settings, get_settings
from shorturls.core.errors import (
    ApiError,
    LinkExpired,
    LinkNotFound,
    ShortUrlError,
    StorageFailure,
    normalize_http_exception,
)
from shorturls.core.link_rules import derive_location, utcnow
from shorturls.db.session import Database
from shorturls.services.clicks import record_click
from shorturls.services.log_relay import LogRelay
from shorturls.services.redirects import LinkState, resolve


def create_app(settings: Optional[Settings] = None, log_relay: Optional[LogRelay] = None) -> FastAPI:
    settings = settings or get_settings()
    log_relay = log_relay or LogRelay.from_settings(settings)
    database = Database(settings.database_url).init()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_relay.info("route", f"server started on :{settings.port}")
        yield
        database.dispose()
        log_relay.close()

    app = FastAPI(title="Short URL Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.log_relay = log_relay

    _register_error_handlers(app)
    app.include_router(api_router)
    _register_redirects(app)
    return app


def _error_response(status_code: int, error: ApiError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.to_body())


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShortUrlError)
    def short_url_error_handler(request: Request, exc: ShortUrlError):
        if exc.status_code >= 500:
            detail = f"{exc.message}: {exc.__cause__}" if exc.__cause__ else exc.message
            request.app.state.log_relay.error("handler", f"{detail} path={request.url.path}")
        return _error_response(exc.status_code, exc.to_api_error())

    @app.exception_handler(StarletteHTTPException)
    def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error = normalize_http_exception(exc)
        level = "error" if exc.status_code >= 500 else "warn"
        request.app.state.log_relay.log(
            level, "handler", f"{error.message} status={exc.status_code} path={request.url.path}"
        )
        return _error_response(exc.status_code, error)

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError):
        request.app.state.log_relay.error("handler", f"malformed request body path={request.url.path}")
        return _error_response(400, ApiError(code="BAD_REQUEST", message="invalid request body"))

    @app.exception_handler(Exception)
    def unhandled_error_handler(request: Request, exc: Exception):
        request.app.state.log_relay.fatal("handler", str(exc) or "unknown error")
        return _error_response(500, ApiError(code="INTERNAL_SERVER_ERROR", message="internal error"))


def _register_redirects(app: FastAPI) -> None:
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.head("/{shortcode}")
    def check_short_url(shortcode: str, db: Session = Depends(get_db)):
        resolution = resolve(db, shortcode, utcnow())

        if resolution.state is LinkState.MISSING:
            return Response(status_code=404)
        if resolution.state is LinkState.EXPIRED:
            return Response(status_code=410)
        return RedirectResponse(url=resolution.link.original_url, status_code=302)

    @app.get("/{shortcode}")
    def follow_short_url(
        shortcode: str,
        request: Request,
        db: Session = Depends(get_db),
        log: LogRelay = Depends(get_log_relay),
    ):
        now = utcnow()
        resolution = resolve(db, shortcode, now)

        if resolution.state is LinkState.MISSING:
            log.warn("route", f"redirect not found shortcode={shortcode}")
            raise LinkNotFound()
        if resolution.state is LinkState.EXPIRED:
            log.warn("route", f"redirect expired shortcode={shortcode}")
            raise LinkExpired()

        link = resolution.link
        destination = link.original_url
        client = request.client.host if request.client else "unknown"
        log.info("route", f"redirect hit shortcode={shortcode} ip={client}")

        # analytics never blocks the redirect
        try:
            record_click(
                db,
                link,
                timestamp=now,
                referrer=request.headers.get("referer", ""),
                country=derive_location(request.headers),
            )
            log.debug("db", f"click recorded for shortcode={shortcode}")
        except StorageFailure as exc:
            log.error("db", f"click record failed for shortcode={shortcode}: {exc.__cause__}")

        return RedirectResponse(url=destination, status_code=302)
