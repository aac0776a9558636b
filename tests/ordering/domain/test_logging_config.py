"""Tests for the logging configuration helpers."""

import logging

import pytest
import structlog
from ordering.utils.logging import (
    MASK,
    add_context,
    clear_context,
    configure_logging,
    get_log_level,
    redact_secrets,
    uses_json_output,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers, root.level = handlers, level
    clear_context()
    structlog.reset_defaults()


class TestLogLevel:
    def test_test_environment_is_quiet(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "test")
        assert get_log_level() == "WARNING"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestConfigureLogging:
    def test_file_handlers_only_with_a_log_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_DIR", raising=False)
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

        configure_logging(log_dir=str(tmp_path / "logs"))
        assert len(logging.getLogger().handlers) == 4
        assert (tmp_path / "logs").is_dir()

    def test_context_is_bound_and_cleared(self):
        add_context(order_number="ORD-1")
        assert structlog.contextvars.get_contextvars() == {"order_number": "ORD-1"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_payment_records_get_their_own_file(self, tmp_path):
        configure_logging(log_dir=str(tmp_path))

        logging.getLogger("payments.callback").error("Approval refused for ORD-1")
        logging.getLogger("ordering.order.payment").error("Ledger conflict for ORD-2")
        for handler in logging.getLogger().handlers:
            handler.flush()

        payments_log = (tmp_path / "payments.log").read_text(encoding="utf-8")
        assert "ORD-1" in payments_log
        assert "ORD-2" not in payments_log
        assert "ORD-2" in (tmp_path / "marketplace.log").read_text(encoding="utf-8")

    def test_redaction_is_part_of_the_pipeline(self):
        configure_logging()
        assert redact_secrets in structlog.get_config()["processors"]


class TestOutputFormat:
    def test_explicit_format_wins(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_FORMAT", "console")
        assert uses_json_output() is False

    def test_production_defaults_to_json(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert uses_json_output() is True


class TestRedactSecrets:
    def test_gateway_secrets_are_masked(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "Requesting payment approval", "auth_token": "tok-1", "SignData": "ab12", "amount": "15000"},
        )
        assert event == {"event": "Requesting payment approval", "auth_token": MASK, "SignData": MASK, "amount": "15000"}

    def test_nested_form_fields_are_masked(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "Approval form", "fields": {"TID": "T-1", "AuthToken": "tok-1", "MID": "MID001"}},
        )
        assert event["fields"] == {"TID": "T-1", "AuthToken": MASK, "MID": "MID001"}

    def test_empty_secret_stays_empty(self):
        assert redact_secrets(None, "info", {"merchant_key": ""}) == {"merchant_key": ""}
