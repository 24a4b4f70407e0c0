"""
Unit Tests for Log Redaction
"""

import logging

from walletguard.core.config import settings
from walletguard.core.logging import SecretFilter


def _record(msg, *args):
    return logging.LogRecord("walletguard", logging.INFO, __file__, 1, msg, args, None)


class TestSecretFilter:
    """Tests for SecretFilter."""

    def test_transaction_key_is_redacted(self):
        record = _record(f"signing with {settings.TRANSACTION_SECRET_KEY}")
        SecretFilter().filter(record)
        assert settings.TRANSACTION_SECRET_KEY not in record.msg
        assert SecretFilter.REDACTED in record.msg

    def test_secret_key_pairs_are_redacted(self):
        record = _record("config secret_key=hunter2hunter2 loaded")
        SecretFilter().filter(record)
        assert "hunter2hunter2" not in record.msg
        assert record.msg.endswith("loaded")

    def test_string_args_are_redacted(self):
        record = _record("value %s count %d", settings.TRANSACTION_SECRET_KEY, 3)
        SecretFilter().filter(record)
        assert record.args == (SecretFilter.REDACTED, 3)

    def test_extra_secrets(self):
        record = _record("token abcd1234 used")
        SecretFilter(secrets=["abcd1234", "ab"]).filter(record)
        assert record.msg == f"token {SecretFilter.REDACTED} used"

    def test_other_text_untouched(self):
        record = _record("password=letmein Bearer xyz")
        assert SecretFilter().filter(record) is True
        assert record.msg == "password=letmein Bearer xyz"
