from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException


@dataclass(frozen=True)
class ApiError:
    code: str
    message: str

    def to_body(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


STATUS_TO_ERROR_CODE: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    410: "GONE",
    500: "INTERNAL_SERVER_ERROR",
}


class ShortUrlError(Exception):
    """Base for every error the service reports to clients.

    ``message`` is the short public text placed in the response body;
    anything more detailed belongs in the log line, not here.
    """

    status_code = 500
    message = "internal error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_api_error(self) -> ApiError:
        return ApiError(
            code=STATUS_TO_ERROR_CODE.get(self.status_code, "ERROR"),
            message=self.message,
        )


class LinkValidationError(ShortUrlError):
    status_code = 400
    message = "invalid request"


class InvalidURL(LinkValidationError):
    message = "invalid url"


class InvalidValidity(LinkValidationError):
    message = "invalid validity"


class InvalidShortcode(LinkValidationError):
    message = "invalid shortcode"


class ShortcodeConflict(ShortUrlError):
    status_code = 409
    message = "shortcode already exists"


class DuplicateShortcode(ShortcodeConflict):
    """Raised by the store when the unique constraint rejects an insert."""


class LinkNotFound(ShortUrlError):
    status_code = 404
    message = "not found"


class LinkExpired(ShortUrlError):
    status_code = 410
    message = "link expired"


class GenerationExhausted(ShortUrlError):
    message = "could not generate shortcode"


class StorageFailure(ShortUrlError):
    message = "db error"


class LogRelayError(ShortUrlError):
    message = "log failed"


def normalize_http_exception(exc: HTTPException) -> ApiError:
    """
    Converts HTTPException.detail into (code, message).

    Supports:
    - detail as str -> message=str, code inferred from status
    - detail as {"code": "...", "message": "..."} -> use directly
    """
    status = exc.status_code
    default_code = STATUS_TO_ERROR_CODE.get(status, "ERROR")

    detail: Any = exc.detail
    if isinstance(detail, dict) and "code" in detail and "message" in detail:
        return ApiError(code=str(detail["code"]), message=str(detail["message"]))

    # fallback
    msg = detail if isinstance(detail, str) else "Request failed"
    return ApiError(code=default_code, message=str(msg))
