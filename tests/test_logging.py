"""Tests for structured logging and secret masking."""

import json
import logging

from hh_apply.utils import (
    ColoredConsoleFormatter,
    JSONFormatter,
    LogEvent,
    LogRecord,
    mask_sensitive_data,
    mask_sensitive_string,
    mask_token,
)


def make_record(payload, level=logging.INFO):
    record = logging.LogRecord("hh-apply", level, __file__, 1, payload.message, None, None)
    record.log_record = payload
    return record


class TestMasking:
    def test_mask_token(self):
        assert mask_token(None) == "<none>"
        assert mask_token("short") == "***"
        assert mask_token("abcdef1234567890wxyz") == "abcdef...wxyz"

    def test_mask_nested_data(self):
        masked = mask_sensitive_data({
            "user_id": "u1",
            "tokens": [{"access_token": "abcdef1234567890wxyz"}],
        })

        assert masked["user_id"] == "u1"
        assert masked["tokens"][0]["access_token"] == "abcdef...wxyz"

    def test_mask_free_text(self):
        text = 'Authorization: Bearer abcdefghijklmnop, body {"refresh_token": "secret-value"}'

        masked = mask_sensitive_string(text)

        assert "abcdefghijklmnop" not in masked
        assert "secret-value" not in masked
        assert "[REDACTED]" in masked

    def test_mask_form_encoded(self):
        masked = mask_sensitive_string("grant_type=refresh_token&refresh_token=xyz123&client_secret=s3cr3t")

        assert "xyz123" not in masked
        assert "s3cr3t" not in masked
        assert masked.startswith("grant_type=refresh_token&")


class TestFormatters:
    def test_json_formatter_masks_data(self):
        payload = LogRecord(
            event=LogEvent.TOKEN_SAVED.value,
            message="Saved token",
            data={"user_id": "u1", "refresh_token": "abcdef1234567890wxyz"},
        )

        output = json.loads(JSONFormatter().format(make_record(payload)))

        assert output["level"] == "INFO"
        assert output["detail"]["event"] == "token_saved"
        assert output["detail"]["data"]["refresh_token"] == "abcdef...wxyz"

    def test_console_formatter_without_colors(self):
        payload = LogRecord(
            event=LogEvent.OAUTH_REFRESH_FAILED.value,
            message="Token refresh failed",
            request_id="1234567890abcdef",
            data={"status_code": 503, "user_id": "u1", "ignored": True},
        )

        output = json.loads(ColoredConsoleFormatter(use_colors=False).format(make_record(payload, logging.ERROR)))

        assert output["event"] == "oauth_refresh_failed"
        assert output["req_id"] == "12345678"
        assert output["status_code"] == 503
        assert output["user_id"] == "u1"
        assert "ignored" not in output
