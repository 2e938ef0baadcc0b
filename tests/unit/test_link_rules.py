from datetime import datetime, timezone, timedelta

import pytest

from shorturls.core.errors import InvalidValidity
from shorturls.core.link_rules import compute_expiry, derive_location, ensure_utc, is_expired


def test_is_expired_false_before_expiry():
    now = datetime.now(timezone.utc)
    assert is_expired(now + timedelta(seconds=1), now) is False


def test_is_expired_true_when_now_is_past_expiry():
    now = datetime.now(timezone.utc)
    expiry_at = now - timedelta(seconds=1)
    assert is_expired(expiry_at, now) is True


def test_is_expired_false_on_equal_boundary():
    now = datetime.now(timezone.utc)
    assert is_expired(now, now) is False


def test_compute_expiry_adds_minutes():
    created = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert compute_expiry(created, 30) == datetime(2026, 1, 1, 12, 30, tzinfo=timezone.utc)
    assert compute_expiry(created, 0.5) == datetime(2026, 1, 1, 12, 0, 30, tzinfo=timezone.utc)


def test_compute_expiry_overflow_is_invalid_validity():
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidValidity):
        compute_expiry(created, 1e15)


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2026, 1, 1, 8, 0)
    assert ensure_utc(naive) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert ensure_utc(None) is None


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"cf-ipcountry": "IN", "x-country": "US"}, "IN"),
        ({"x-country": "US", "accept-language": "fr-FR"}, "US"),
        ({"accept-language": "en-GB,en;q=0.9"}, "GB"),
        ({"accept-language": "fil-PH"}, "PH"),
        ({"accept-language": "en"}, "Unknown"),
        ({"accept-language": "en-gb"}, "Unknown"),
        ({}, "Unknown"),
    ],
)
def test_derive_location(headers, expected):
    assert derive_location(headers) == expected


@pytest.mark.parametrize("validity", [1e-9, 1e-12, 5e-324])
def test_compute_expiry_rejects_window_that_rounds_to_zero(validity):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidValidity):
        compute_expiry(created, validity)


def test_compute_expiry_keeps_one_microsecond_window():
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert compute_expiry(created, 1 / 60_000_000) > created
