import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update

from shorturls.core.config import Settings
from shorturls.db.models import ShortUrl
from shorturls.main import create_app
from shorturls.services.log_relay import LogRelay


class SinkRecorder:
    """Stands in for the remote log sink; keeps every line it receives."""

    def __init__(self):
        self.received: list[dict] = []
        self.status_code = 200
        self.relay: LogRelay | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.received.append(
            {
                "url": str(request.url),
                "auth": request.headers.get("Authorization"),
                **json.loads(request.content),
            }
        )
        return httpx.Response(self.status_code, json={"logID": str(len(self.received))})

    @property
    def lines(self) -> list[dict]:
        # backend lines are relayed in the background; wait for them
        if self.relay is not None:
            self.relay.flush(timeout=5)
        return self.received

    def messages(self, level: str | None = None) -> list[str]:
        return [l["message"] for l in self.lines if level is None or l["level"] == level]


@pytest.fixture()
def sink() -> SinkRecorder:
    return SinkRecorder()


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.sqlite'}",
        public_base_url="http://sho.rt",
        log_sink_url="http://sink.test/evaluation-service",
        log_sink_token="test-token",
        _env_file=None,
    )


@pytest.fixture()
def log_relay(settings: Settings, sink: SinkRecorder):
    relay = LogRelay(
        settings.log_sink_url,
        settings.log_sink_token,
        client=httpx.Client(transport=httpx.MockTransport(sink)),
    )
    sink.relay = relay
    yield relay
    relay.close()


@pytest.fixture()
def app(settings: Settings, log_relay: LogRelay):
    app = create_app(settings, log_relay=log_relay)
    yield app
    app.state.database.dispose()


@pytest.fixture()
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(app):
    session = app.state.database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def expire_link(app):
    """Moves a link's expiry into the past without waiting for it."""

    def _expire(shortcode: str) -> None:
        with app.state.database.SessionLocal() as session:
            session.execute(
                update(ShortUrl)
                .where(ShortUrl.shortcode == shortcode)
                .values(expiry_at=ShortUrl.created_at)
            )
            session.commit()

    return _expire
