"""Tests for Sentry error reporting.

The parser reports recognizer faults through these helpers; they must stay
silent until initialized and must never ship raw task text.
"""

from unittest.mock import patch

import smartinput.sentry
from smartinput.sentry import (
    REDACTED,
    _before_breadcrumb,
    _before_send,
    _redact,
    add_breadcrumb,
    capture_exception,
    flush,
    init_sentry,
    is_enabled,
    report_recognizer_failure,
)


# ============================================================
# Test Initialization
# ============================================================


class TestSentryInit:
    def setup_method(self) -> None:
        smartinput.sentry._initialized = False

    def teardown_method(self) -> None:
        smartinput.sentry._initialized = False

    def test_is_enabled_before_init(self) -> None:
        assert is_enabled() is False

    def test_init_without_dsn_returns_false(self) -> None:
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            assert init_sentry(dsn="") is False
        assert is_enabled() is False
        mock_sentry.init.assert_not_called()

    def test_init_with_none_dsn_uses_settings(self) -> None:
        with patch("smartinput.config.settings") as mock_settings:
            mock_settings.sentry_dsn = ""
            mock_settings.sentry_environment = "test"
            assert init_sentry(dsn=None) is False

    def test_init_with_dsn(self) -> None:
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            assert init_sentry(dsn="https://test@sentry.io/12345", environment="test") is True

        assert is_enabled() is True
        kwargs = mock_sentry.init.call_args.kwargs
        assert kwargs["dsn"] == "https://test@sentry.io/12345"
        assert kwargs["environment"] == "test"
        assert kwargs["release"].startswith("smartinput@")
        assert kwargs["send_default_pii"] is False
        assert kwargs["before_send"] is _before_send
        assert kwargs["before_breadcrumb"] is _before_breadcrumb

    def test_init_twice_is_noop(self) -> None:
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            init_sentry(dsn="https://test@sentry.io/12345")
            assert init_sentry(dsn="https://test@sentry.io/12345") is True
        assert mock_sentry.init.call_count == 1


# ============================================================
# Test Redaction
# ============================================================


class TestRedaction:
    """Raw input must not leave the process."""

    def test_redact_text(self) -> None:
        data = {"text": "Call mom about the biopsy results", "recognizer": "people"}
        _redact(data)
        assert data["text"] == REDACTED
        assert data["recognizer"] == "people"

    def test_redact_nested_and_case_insensitive(self) -> None:
        data = {"outer": {"Clean_Title": "secret plans", "length": 12}, "INPUT": "x"}
        _redact(data)
        assert data["outer"]["Clean_Title"] == REDACTED
        assert data["outer"]["length"] == 12
        assert data["INPUT"] == REDACTED

    def test_before_send_redacts_extra(self) -> None:
        event = {"extra": {"raw_text": "dinner with Alex", "text_length": 16}}
        result = _before_send(event, {})
        assert result is event
        assert result["extra"]["raw_text"] == REDACTED
        assert result["extra"]["text_length"] == 16

    def test_before_send_redacts_breadcrumbs(self) -> None:
        event = {
            "breadcrumbs": {
                "values": [
                    {"data": {"original_text": "@sam", "recognizer": "people"}},
                    {"message": "no data"},
                ]
            }
        }
        result = _before_send(event, {})
        assert result["breadcrumbs"]["values"][0]["data"]["original_text"] == REDACTED
        assert result["breadcrumbs"]["values"][0]["data"]["recognizer"] == "people"

    def test_before_breadcrumb(self) -> None:
        crumb = {"message": "parse", "data": {"title": "Lunch with Alex"}}
        assert _before_breadcrumb(crumb, {})["data"]["title"] == REDACTED


# ============================================================
# Test Reporting
# ============================================================


class TestReportingOff:
    def setup_method(self) -> None:
        smartinput.sentry._initialized = False

    def test_helpers_are_silent(self) -> None:
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            add_breadcrumb("dates failed")
            assert capture_exception(Exception("test")) is None
            assert report_recognizer_failure("dates", RuntimeError("boom"), 12) is None
            flush()
        assert mock_sentry.method_calls == []


class TestReportingOn:
    def setup_method(self) -> None:
        smartinput.sentry._initialized = True

    def teardown_method(self) -> None:
        smartinput.sentry._initialized = False

    def test_capture_exception(self) -> None:
        error = RuntimeError("boom")
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            mock_sentry.capture_exception.return_value = "event-id"
            assert capture_exception(error) == "event-id"
        mock_sentry.capture_exception.assert_called_once_with(error)

    def test_report_recognizer_failure(self) -> None:
        error = RuntimeError("boom")
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            mock_sentry.capture_exception.return_value = "event-id"
            assert report_recognizer_failure("dates", error, 42) == "event-id"

        mock_sentry.add_breadcrumb.assert_called_once_with(
            message="dates recognizer failed",
            category="parser",
            level="error",
            data={"recognizer": "dates", "text_length": 42},
        )
        scope = mock_sentry.new_scope.return_value.__enter__.return_value
        scope.set_tag.assert_called_once_with("recognizer", "dates")
        mock_sentry.capture_exception.assert_called_once_with(error)

    def test_flush(self) -> None:
        with patch("smartinput.sentry.sentry_sdk") as mock_sentry:
            flush(timeout=1.0)
        mock_sentry.flush.assert_called_once_with(timeout=1.0)
