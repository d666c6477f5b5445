# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from connection.retry import reconnect_delay_ms, should_reconnect


# ---------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    ("attempt", "expected_ms"),
    [(1, 1000), (2, 2000), (3, 4000), (4, 8000), (5, 16000), (6, 30000), (50, 30000)],
)
def test_capped_exponential_delay(attempt, expected_ms):
    assert reconnect_delay_ms(attempt, base_ms=1000, cap_ms=30000) == expected_ms


def test_delay_matches_formula_for_other_constants():
    for k in range(1, 12):
        assert reconnect_delay_ms(k, base_ms=250, cap_ms=5000) == min(250 * 2 ** (k - 1), 5000)


def test_attempt_must_be_positive():
    with pytest.raises(ValueError):
        reconnect_delay_ms(0, base_ms=1000, cap_ms=30000)


# ---------------------------------------------------------------------
# Retry decision
# ---------------------------------------------------------------------

def test_normal_closure_never_reconnects():
    for attempts in range(0, 10):
        assert not should_reconnect(close_code=1000, attempts=attempts, max_attempts=6)


def test_abnormal_closure_reconnects_below_cap():
    assert should_reconnect(close_code=1006, attempts=0, max_attempts=6)
    assert should_reconnect(close_code=1011, attempts=5, max_attempts=6)


def test_abnormal_closure_stops_at_cap():
    assert not should_reconnect(close_code=1006, attempts=6, max_attempts=6)
    assert not should_reconnect(close_code=1006, attempts=0, max_attempts=0)
