"""
Unit Tests for the Document Codec
"""

from datetime import datetime, timezone
from decimal import Decimal

from conftest import NOW, make_wallet
from walletguard.core import codec
from walletguard.core.security.validation import validate_transaction_write


class TestEncode:
    """Tests for encode."""

    def test_tags_datetimes_and_decimals(self):
        encoded = codec.encode({"amount": Decimal("12.50"), "timestamp": NOW})
        assert encoded == {
            "amount": {"$decimal": "12.50"},
            "timestamp": {"$date": "2026-01-15T12:00:00+00:00"},
        }

    def test_naive_datetime_is_treated_as_utc(self):
        encoded = codec.encode(datetime(2026, 1, 15, 12, 0, 0))
        assert encoded == {"$date": "2026-01-15T12:00:00+00:00"}

    def test_nested_lists_are_encoded(self):
        encoded = codec.encode({"transactions": [{"amount": Decimal("1")}]})
        assert encoded["transactions"][0]["amount"] == {"$decimal": "1"}

    def test_plain_values_untouched(self):
        assert codec.encode({"owner_id": "u1", "count": 3, "flag": None}) == {
            "owner_id": "u1",
            "count": 3,
            "flag": None,
        }


class TestDecode:
    """Tests for decode."""

    def test_restores_wallet_document(self):
        wallet = make_wallet()
        assert codec.decode(codec.encode(wallet)) == wallet

    def test_zulu_suffix(self):
        decoded = codec.decode({"$date": "2026-01-15T12:00:00Z"})
        assert decoded == NOW
        assert decoded.tzinfo is not None

    def test_naive_iso_string_gets_utc(self):
        assert codec.decode({"$date": "2026-01-15T12:00:00"}) == NOW

    def test_bare_string_timestamp_stays_string(self):
        document = codec.decode({"amount": 5, "timestamp": "2026-01-15T12:00:00Z", "hash": "a" * 64})
        assert isinstance(document["timestamp"], str)
        assert validate_transaction_write(document) is False

    def test_unparseable_tags_are_kept(self):
        assert codec.decode({"$date": "yesterday"}) == {"$date": "yesterday"}
        assert codec.decode({"$decimal": "lots"}) == {"$decimal": "lots"}
        assert codec.decode({"$decimal": True}) == {"$decimal": True}

    def test_tag_with_extra_keys_is_a_plain_mapping(self):
        value = {"$date": "2026-01-15T12:00:00Z", "note": "x"}
        decoded = codec.decode(value)
        assert decoded["$date"] == "2026-01-15T12:00:00Z"
        assert decoded["note"] == "x"

    def test_decimal_from_int(self):
        assert codec.decode({"$decimal": 7}) == Decimal(7)

    def test_utc_offset_preserved(self):
        decoded = codec.decode({"$date": "2026-01-15T14:00:00+02:00"})
        assert decoded == NOW
        assert decoded.astimezone(timezone.utc) == NOW
