"""Tests for balance reconciliation."""

from decimal import Decimal

import pytest

from wallet_sync.agents.reconciliation.balance import reconcile_balance, replay_balance
from wallet_sync.errors import ReconciliationMismatch
from wallet_sync.models import BalanceSnapshot


def snapshot(beginning, ending):
    return BalanceSnapshot(beginning=Decimal(beginning), ending=Decimal(ending))


def test_single_wallet_payment_closes(window):
    check = reconcile_balance(window, snapshot("390.00", "50.89"), [Decimal("-339.11")])

    assert check.passed
    assert check.computed_ending == Decimal("50.89")
    assert check.difference == 0
    assert check.transaction_count == 1


def test_synthetic_pair_leaves_balance_unchanged(window):
    check = reconcile_balance(window, snapshot("10.00", "10.00"), [Decimal("25.00"), Decimal("-25.00")])
    assert check.passed


def test_empty_sequence_requires_unchanged_balance(window):
    assert reconcile_balance(window, snapshot("0", "0"), []).passed
    with pytest.raises(ReconciliationMismatch):
        reconcile_balance(window, snapshot("0", "1.00"), [])


def test_drift_of_five_dollars_is_a_mismatch(window):
    with pytest.raises(ReconciliationMismatch) as excinfo:
        reconcile_balance(window, snapshot("390.00", "55.89"), [Decimal("-339.11")])

    check = excinfo.value.check
    assert check.expected_ending == Decimal("55.89")
    assert check.computed_ending == Decimal("50.89")
    assert check.difference == Decimal("-5.00")
    assert not check.passed
    assert "55.89" in str(excinfo.value)


def test_one_minor_unit_is_tolerated(window):
    assert reconcile_balance(window, snapshot("1.00", "0.51"), [Decimal("-0.50")]).passed
    with pytest.raises(ReconciliationMismatch):
        reconcile_balance(window, snapshot("1.00", "0.52"), [Decimal("-0.50")])


def test_custom_tolerance(window):
    check = reconcile_balance(window, snapshot("1.00", "0.52"), [Decimal("-0.50")], tolerance=Decimal("0.05"))
    assert check.passed


def test_replay_balance():
    assert replay_balance(snapshot("100", "0"), [Decimal("-40"), Decimal("15.5")]) == Decimal("75.5")
