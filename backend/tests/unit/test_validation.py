"""
Unit Tests for Transaction Write Validation

Tests amount, timestamp and integrity-hash shape checks.
"""

from decimal import Decimal

import pytest

from conftest import NOW, make_transaction
from walletguard.core.security.validation import (
    first_validation_failure,
    validate_transaction_write,
)


class TestValidateTransactionWrite:
    """Tests for structural validation of money-moving writes."""

    def test_valid_transaction(self):
        assert validate_transaction_write(make_transaction()) is True

    @pytest.mark.parametrize("amount", [1, 0.01, Decimal("50.25")])
    def test_positive_amounts_accepted(self, amount):
        assert validate_transaction_write(make_transaction(amount=amount)) is True

    @pytest.mark.parametrize("amount", [0, -5, Decimal("-0.01"), "50", None, True, Decimal("NaN")])
    def test_bad_amounts_rejected(self, amount):
        proposed = make_transaction(amount=amount)
        assert validate_transaction_write(proposed) is False
        assert first_validation_failure(proposed) == "amount"

    @pytest.mark.parametrize("timestamp", [NOW.isoformat(), None, 1768478400000])
    def test_timestamp_must_be_datetime(self, timestamp):
        proposed = make_transaction(timestamp=timestamp)
        assert validate_transaction_write(proposed) is False
        assert first_validation_failure(proposed) == "timestamp"

    @pytest.mark.parametrize("length", [63, 65, 0])
    def test_hash_length_must_be_exact(self, length):
        proposed = make_transaction(hash="a" * length)
        assert validate_transaction_write(proposed) is False
        assert first_validation_failure(proposed) == "hash"

    def test_hash_of_exactly_64_passes(self):
        assert first_validation_failure(make_transaction(hash="f" * 64)) is None

    def test_hash_must_be_string(self):
        assert validate_transaction_write(make_transaction(hash=["a"] * 64)) is False

    def test_missing_fields_rejected(self):
        assert first_validation_failure({}) == "amount"

    def test_first_failure_is_reported(self):
        proposed = make_transaction(amount=-1, timestamp="yesterday", hash="short")
        assert first_validation_failure(proposed) == "amount"

    def test_custom_hash_length(self):
        assert validate_transaction_write(make_transaction(hash="a" * 32), hash_length=32) is True

    @pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan"), Decimal("Infinity")])
    def test_non_finite_amounts_rejected(self, amount):
        assert first_validation_failure(make_transaction(amount=amount)) == "amount"
