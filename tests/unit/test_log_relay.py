import json
import logging
import threading

import httpx
import pytest

from shorturls.core.errors import LogRelayError
from shorturls.services.log_relay import LogRelay


def make_relay(handler, **kwargs) -> LogRelay:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return LogRelay("http://sink.test/eval/", "tok", client=client, **kwargs)


def test_send_posts_payload_with_bearer_token():
    captured = []

    def handler(request: httpx.Request):
        captured.append(request)
        return httpx.Response(200, json={"logID": "1"})

    make_relay(handler).send("backend", "info", "handler", "hello")

    req = captured[0]
    assert req.method == "POST"
    assert str(req.url) == "http://sink.test/eval/logs"
    assert req.headers["Authorization"] == "Bearer tok"
    assert json.loads(req.content) == {
        "stack": "backend",
        "level": "info",
        "package": "handler",
        "message": "hello",
    }


def test_send_raises_on_rejected_line():
    relay = make_relay(lambda request: httpx.Response(400))
    with pytest.raises(LogRelayError):
        relay.send("backend", "info", "handler", "x")


def test_send_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LogRelayError):
        make_relay(handler).send("backend", "info", "handler", "x")


def test_log_swallows_sink_failure(caplog):
    relay = make_relay(lambda request: httpx.Response(503))

    with caplog.at_level(logging.DEBUG, logger="shorturls"):
        relay.error("db", "insert failed")
        relay.flush(timeout=5)

    messages = [r.getMessage() for r in caplog.records if r.name == "shorturls"]
    assert "[db] insert failed" in messages
    assert any(m.startswith("log relay failed") for m in messages)


def test_log_maps_levels_locally(caplog):
    relay = make_relay(lambda request: httpx.Response(200))

    with caplog.at_level(logging.DEBUG, logger="shorturls"):
        relay.warn("route", "w")
        relay.fatal("handler", "f")
        relay.flush(timeout=5)

    assert [r.levelno for r in caplog.records if r.name == "shorturls"] == [logging.WARNING, logging.CRITICAL]


def test_disabled_relay_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    relay = make_relay(handler, enabled=False)
    relay.info("service", "quiet")
    relay.send("frontend", "info", "page", "quiet")
    assert calls == []


def test_log_returns_before_sink_answers():
    release = threading.Event()
    delivered = []

    def handler(request):
        release.wait(5)
        delivered.append(json.loads(request.content)["message"])
        return httpx.Response(200)

    relay = make_relay(handler)
    try:
        relay.info("route", "first")
        relay.info("route", "second")
        assert delivered == []
    finally:
        release.set()
        relay.close()

    assert delivered == ["first", "second"]


def test_log_drops_lines_when_backlog_is_full(caplog):
    release = threading.Event()
    delivered = []

    def handler(request):
        release.wait(5)
        delivered.append(json.loads(request.content)["message"])
        return httpx.Response(200)

    relay = make_relay(handler, max_pending=1)
    with caplog.at_level(logging.DEBUG, logger="shorturls"):
        relay.info("route", "kept")
        relay.info("route", "dropped")
    release.set()
    relay.close()

    assert delivered == ["kept"]
    assert any("backlog full" in r.getMessage() for r in caplog.records if r.name == "shorturls")


def test_log_after_close_stays_local():
    calls = []
    relay = make_relay(lambda request: calls.append(request) or httpx.Response(200))
    relay.close()

    relay.info("route", "late")
    relay.flush()
    assert calls == []
