"""
Forwards structured log lines to the external evaluation log sink.

Every line is also written to the local ``shorturls`` logger so the service
stays observable when the sink is disabled or unreachable. Backend lines are
delivered by a single background worker, so a slow sink never holds up a
response; lines beyond ``max_pending`` are dropped (the local copy remains).
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import httpx

from shorturls.core.config import Settings
from shorturls.core.errors import LogRelayError

LEVELS = ("debug", "info", "warn", "error", "fatal")

_LOCAL_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

logger = logging.getLogger("shorturls")


class LogRelay:
    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout: float = 2.0,
        enabled: bool = True,
        stack: str = "backend",
        max_pending: int = 1000,
        client: Optional[httpx.Client] = None,
    ):
        self.endpoint = f"{base_url.rstrip('/')}/logs"
        self.enabled = enabled
        self.stack = stack
        self._token = token
        self._client = client or httpx.Client(timeout=timeout)
        # one worker keeps lines in the order they were logged
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="log-relay")
        self._pending = threading.BoundedSemaphore(max_pending)
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogRelay":
        return cls(
            settings.log_sink_url,
            settings.log_sink_token,
            timeout=settings.log_sink_timeout,
            enabled=settings.log_relay_enabled,
        )

    def send(self, stack: str, level: str, package: str, message: str) -> None:
        """POST one line to the sink. Raises LogRelayError if it is not accepted."""
        if not self.enabled:
            return

        headers = {"Authorization": f"Bearer {self._token}"}
        payload = {"stack": stack, "level": level, "package": package, "message": message}
        try:
            resp = self._client.post(self.endpoint, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise LogRelayError() from exc

    def log(self, level: str, package: str, message: str) -> None:
        """Backend-side logging; queues the relay and returns at once. Never raises."""
        logger.log(_LOCAL_LEVELS.get(level, logging.INFO), "[%s] %s", package, message)
        if not self.enabled or self._closed:
            return

        if not self._pending.acquire(blocking=False):
            logger.warning("log relay backlog full, dropped [%s] %s", package, message)
            return
        try:
            future = self._executor.submit(self._deliver, level, package, message)
        except RuntimeError:
            # executor shut down between the check above and the submit
            self._pending.release()
            return
        future.add_done_callback(lambda _: self._pending.release())

    def _deliver(self, level: str, package: str, message: str) -> None:
        try:
            self.send(self.stack, level, package, message)
        except LogRelayError as exc:
            logger.warning("log relay failed: %s", exc.__cause__)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Blocks until every line queued so far has been delivered or given up on."""
        if self._closed:
            return
        self._executor.submit(lambda: None).result(timeout=timeout)

    def debug(self, package: str, message: str) -> None:
        self.log("debug", package, message)

    def info(self, package: str, message: str) -> None:
        self.log("info", package, message)

    def warn(self, package: str, message: str) -> None:
        self.log("warn", package, message)

    def error(self, package: str, message: str) -> None:
        self.log("error", package, message)

    def fatal(self, package: str, message: str) -> None:
        self.log("fatal", package, message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self._client.close()
