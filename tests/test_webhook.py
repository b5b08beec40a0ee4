"""Tests for webhook verification."""

import hashlib
import hmac
import json
import time

import pytest

from lystica import (
    InvalidTimestampError,
    MalformedPayloadError,
    MissingHeadersError,
    SignatureMismatchError,
    WebhookError,
    WebhookEvent,
    WebhookVerifier,
)
from lystica.webhook import timing_safe_equal

SECRET = "whsec_test_secret_123"
BODY = json.dumps(
    {
        "id": "evt_123",
        "type": "contact.created",
        "data": {"contactId": "cnt_abc"},
        "createdAt": "2026-01-01T00:00:00Z",
    }
)


def create_signature(secret: str, timestamp: str, body: str) -> str:
    """Create a valid webhook signature."""
    message = f"{timestamp}.{body}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def now() -> str:
    return str(int(time.time()))


class TestTimingSafeEqual:
    def test_equal(self):
        assert timing_safe_equal("abc123", "abc123") is True

    def test_different_length(self):
        assert timing_safe_equal("abc", "abcd") is False

    def test_mismatch_anywhere(self):
        assert timing_safe_equal("xbc123", "abc123") is False
        assert timing_safe_equal("abc12x", "abc123") is False

    def test_empty(self):
        assert timing_safe_equal("", "") is True


class TestWebhookVerifier:
    def test_requires_secret(self):
        with pytest.raises(ValueError, match="secret is required"):
            WebhookVerifier("")

    def test_compute_signature(self):
        verifier = WebhookVerifier(SECRET)

        assert verifier.compute_signature("1700000000", BODY) == create_signature(
            SECRET, "1700000000", BODY
        )

    def test_verify_valid_payload(self):
        timestamp = now()
        signature = create_signature(SECRET, timestamp, BODY)

        event = WebhookVerifier(SECRET).verify(BODY, signature, timestamp)

        assert isinstance(event, WebhookEvent)
        assert event.id == "evt_123"
        assert event.type == "contact.created"
        assert event.data == {"contactId": "cnt_abc"}
        assert event.created_at == "2026-01-01T00:00:00Z"

    def test_rejects_invalid_signature(self):
        with pytest.raises(SignatureMismatchError, match="signature verification failed"):
            WebhookVerifier(SECRET).verify(BODY, "invalid_signature_hex", now())

    def test_rejects_single_character_change(self):
        timestamp = now()
        signature = create_signature(SECRET, timestamp, BODY)
        verifier = WebhookVerifier(SECRET)

        for position in (0, len(signature) // 2, len(signature) - 1):
            replacement = "0" if signature[position] != "0" else "1"
            tampered = signature[:position] + replacement + signature[position + 1 :]
            with pytest.raises(SignatureMismatchError):
                verifier.verify(BODY, tampered, timestamp)

    def test_rejects_tampered_body(self):
        timestamp = now()
        signature = create_signature(SECRET, timestamp, BODY)

        with pytest.raises(SignatureMismatchError):
            WebhookVerifier(SECRET).verify(BODY.replace("cnt_abc", "cnt_xyz"), signature, timestamp)

    def test_rejects_wrong_secret(self):
        timestamp = now()
        signature = create_signature("whsec_other", timestamp, BODY)

        with pytest.raises(SignatureMismatchError):
            WebhookVerifier(SECRET).verify(BODY, signature, timestamp)

    def test_rejects_expired_timestamp(self):
        old_timestamp = str(int(time.time()) - 600)
        signature = create_signature(SECRET, old_timestamp, BODY)

        with pytest.raises(InvalidTimestampError, match="too old"):
            WebhookVerifier(SECRET).verify(BODY, signature, old_timestamp, tolerance=300)

    def test_rejects_future_timestamp(self):
        future = str(int(time.time()) + 600)
        signature = create_signature(SECRET, future, BODY)

        with pytest.raises(InvalidTimestampError):
            WebhookVerifier(SECRET).verify(BODY, signature, future)

    def test_custom_tolerance(self):
        old_timestamp = str(int(time.time()) - 600)
        signature = create_signature(SECRET, old_timestamp, BODY)

        event = WebhookVerifier(SECRET).verify(BODY, signature, old_timestamp, tolerance=900)

        assert event.id == "evt_123"

    def test_rejects_unparsable_timestamp(self):
        signature = create_signature(SECRET, "yesterday", BODY)

        with pytest.raises(InvalidTimestampError):
            WebhookVerifier(SECRET).verify(BODY, signature, "yesterday")

    def test_rejects_missing_headers(self, monkeypatch: pytest.MonkeyPatch):
        verifier = WebhookVerifier(SECRET)

        def fail(*args, **kwargs):
            raise AssertionError("signature computed for a request without headers")

        monkeypatch.setattr(verifier, "compute_signature", fail)

        with pytest.raises(MissingHeadersError, match="Missing"):
            verifier.verify("{}", "", "123")
        with pytest.raises(MissingHeadersError, match="Missing"):
            verifier.verify("{}", "abc", "")

    def test_rejects_invalid_json(self):
        timestamp = now()
        body = "not valid json"
        signature = create_signature(SECRET, timestamp, body)

        with pytest.raises(MalformedPayloadError, match="Invalid JSON"):
            WebhookVerifier(SECRET).verify(body, signature, timestamp)

    def test_rejects_missing_fields(self):
        timestamp = now()
        body = json.dumps({"id": "evt_1", "type": "test", "data": {}})
        signature = create_signature(SECRET, timestamp, body)

        with pytest.raises(MalformedPayloadError, match="createdAt"):
            WebhookVerifier(SECRET).verify(body, signature, timestamp)

    @pytest.mark.parametrize("data", [None, [], "cnt_abc", 42])
    def test_rejects_non_object_data(self, data):
        timestamp = now()
        body = json.dumps(
            {"id": "evt_1", "type": "test", "data": data, "createdAt": "2026-01-01T00:00:00Z"}
        )
        signature = create_signature(SECRET, timestamp, body)

        with pytest.raises(MalformedPayloadError, match="data"):
            WebhookVerifier(SECRET).verify(body, signature, timestamp)

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            WebhookVerifier(SECRET).verify(BODY, "bad", now())
        assert issubclass(SignatureMismatchError, WebhookError)

    def test_extract_headers(self):
        headers = {
            "X-Lystica-Signature": "abc123",
            "X-Lystica-Timestamp": "1705312800",
            "Content-Type": "application/json",
        }

        signature, timestamp = WebhookVerifier.extract_headers(headers)

        assert signature == "abc123"
        assert timestamp == "1705312800"

    def test_extract_headers_missing_signature(self):
        headers = {
            "X-Lystica-Timestamp": "1705312800",
        }

        with pytest.raises(MissingHeadersError, match="Missing X-Lystica-Signature"):
            WebhookVerifier.extract_headers(headers)
