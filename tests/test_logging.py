"""Tests for the structlog secret-redaction processor."""

from __future__ import annotations

from zknon_relay.logging_config import redact_secrets


def test_secret_keys_are_redacted() -> None:
    event = {"event": "custody.loaded", "pool_secret_b58": "abc", "api_key": "k", "pool": "P"}

    result = redact_secrets(None, "info", event)

    assert result["pool_secret_b58"] == "**redacted**"
    assert result["api_key"] == "**redacted**"
    assert result["pool"] == "P"


def test_other_events_untouched() -> None:
    event = {"event": "withdrawal.submitted", "signature": "sig"}
    assert redact_secrets(None, "info", dict(event)) == event
