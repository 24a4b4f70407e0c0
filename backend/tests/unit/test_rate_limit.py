"""
Unit Tests for the Sliding-Window Rate Limiter
"""

from datetime import timedelta

import pytest

from conftest import NOW
from walletguard.core.exceptions import PrincipalNotFoundError
from walletguard.core.security.rate_limit import RateLimiter


def _record(directory, principal_id, *offsets_seconds):
    for offset in offsets_seconds:
        directory.record_transaction(principal_id, NOW - timedelta(seconds=offset))


class TestRateLimiter:
    """Tests for window arithmetic and the boundary rule."""

    @pytest.fixture
    def limiter(self, directory):
        return RateLimiter(directory, window=timedelta(minutes=5), max_transactions=10)

    def test_no_history_passes(self, limiter):
        assert limiter.recent_count("u1", NOW) == 0
        assert limiter.check_rate_limit("u1", NOW) is True

    def test_nine_recent_passes(self, limiter, directory):
        _record(directory, "u1", *range(1, 10))
        assert limiter.check_rate_limit("u1", NOW) is True

    def test_ten_recent_denied(self, limiter, directory):
        _record(directory, "u1", *range(1, 11))
        assert limiter.recent_count("u1", NOW) == 10
        assert limiter.check_rate_limit("u1", NOW) is False

    def test_entry_exactly_at_window_start_is_excluded(self, limiter, directory):
        _record(directory, "u1", *range(1, 10))
        _record(directory, "u1", 300)
        assert limiter.recent_count("u1", NOW) == 9
        assert limiter.check_rate_limit("u1", NOW) is True

    def test_entry_just_inside_window_counts(self, limiter, directory):
        _record(directory, "u1", *range(1, 10))
        directory.record_transaction("u1", NOW - timedelta(seconds=299, microseconds=999999))
        assert limiter.check_rate_limit("u1", NOW) is False

    def test_entry_at_now_counts(self, limiter, directory):
        _record(directory, "u1", 0)
        assert limiter.recent_count("u1", NOW) == 1

    def test_future_entries_ignored(self, limiter, directory):
        directory.record_transaction("u1", NOW + timedelta(seconds=1))
        assert limiter.recent_count("u1", NOW) == 0

    def test_old_entries_ignored(self, limiter, directory):
        _record(directory, "u1", *range(400, 420))
        assert limiter.check_rate_limit("u1", NOW) is True

    def test_history_is_per_principal(self, limiter, directory):
        _record(directory, "u2", *range(1, 11))
        assert limiter.check_rate_limit("u1", NOW) is True
        assert limiter.check_rate_limit("u2", NOW) is False

    def test_unknown_principal_raises(self, limiter):
        with pytest.raises(PrincipalNotFoundError):
            limiter.check_rate_limit("ghost", NOW)

    def test_defaults_come_from_settings(self, directory):
        limiter = RateLimiter(directory)
        assert limiter.window == timedelta(seconds=300)
        assert limiter.max_transactions == 10

    def test_filters_even_if_directory_returns_older_entries(self, mocker):
        directory = mocker.Mock()
        directory.get_recent_transactions.return_value = [
            NOW - timedelta(minutes=10),
            NOW - timedelta(minutes=5),
            NOW - timedelta(minutes=1),
        ]
        limiter = RateLimiter(directory, window=timedelta(minutes=5), max_transactions=1)

        assert limiter.recent_count("u1", NOW) == 1
        directory.get_recent_transactions.assert_called_once_with("u1", NOW - timedelta(minutes=5))


class TestReservation:
    """Tests for claiming a slot right before a commit."""

    @pytest.fixture
    def limiter(self, directory):
        return RateLimiter(directory, window=timedelta(minutes=5), max_transactions=10)

    def test_reserve_claims_slot(self, limiter, directory):
        _record(directory, "u1", *range(1, 10))
        assert limiter.reserve("u1", NOW) is True
        assert limiter.recent_count("u1", NOW) == 10

    def test_reserve_refuses_full_window(self, limiter, directory):
        _record(directory, "u1", *range(1, 11))
        assert limiter.reserve("u1", NOW) is False
        assert limiter.recent_count("u1", NOW) == 10

    def test_reserve_ignores_entries_at_window_start(self, limiter, directory):
        _record(directory, "u1", *range(1, 10), 300)
        assert limiter.reserve("u1", NOW) is True

    def test_release_gives_slot_back(self, limiter, directory):
        _record(directory, "u1", *range(1, 10))
        limiter.reserve("u1", NOW)
        limiter.release("u1", NOW)
        assert limiter.recent_count("u1", NOW) == 9
        assert limiter.check_rate_limit("u1", NOW) is True
