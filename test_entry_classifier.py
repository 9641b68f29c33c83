"""Tests for wallet entry classification."""

from decimal import Decimal

import pytest

from conftest import make_entry
from wallet_sync.agents.reconciliation.entry_classifier import (
    classify_entries,
    classify_entry,
    classify_kind,
    is_wallet_balance,
)
from wallet_sync.models import TransactionKind


@pytest.mark.parametrize("raw_type,amount,expected", [
    ("Payment", "-10.00", TransactionKind.PEER_PAYMENT),
    ("Charge", "12.00", TransactionKind.PEER_PAYMENT),
    ("Merchant Transaction", "-5.25", TransactionKind.MERCHANT_CHARGE),
    ("Standard Transfer", "-100.00", TransactionKind.BANK_TRANSFER_OUT),
    ("Instant Transfer", "100.00", TransactionKind.BANK_TRANSFER_IN),
    ("Add Funds", "50.00", TransactionKind.BANK_TRANSFER_IN),
    ("Instant Transfer Fee", "-1.75", TransactionKind.FEE),
    ("Payment Refund", "10.00", TransactionKind.REFUND),
    ("  standard   transfer ", "-1.00", TransactionKind.BANK_TRANSFER_OUT),
    ("Crypto Purchase", "-20.00", TransactionKind.UNKNOWN),
])
def test_classify_kind(raw_type, amount, expected):
    assert classify_kind(raw_type, Decimal(amount)) == expected


def test_wallet_funded_payment_affects_balance():
    txn = classify_entry(make_entry(amount="-339.11", funding_source="Venmo balance"))

    assert txn.kind == TransactionKind.PEER_PAYMENT
    assert txn.affects_wallet_balance is True
    assert txn.counterparty == "Sam Friend"
    assert txn.category == "Payment"


def test_empty_funding_source_means_wallet_balance():
    assert is_wallet_balance(None)
    assert is_wallet_balance("   ")
    assert is_wallet_balance("Venmo balance")
    assert not is_wallet_balance("Chase Visa *1234")


def test_bank_funded_payment_bypasses_wallet():
    txn = classify_entry(make_entry(amount="-25.00", funding_source="Chase Visa *1234"))

    assert txn.affects_wallet_balance is False
    assert txn.counterparty == "Sam Friend"


def test_incoming_payment_deposited_to_bank_bypasses_wallet():
    entry = make_entry(amount="40.00", sender="Sam Friend", recipient="Test User",
                       funding_source=None, destination="Ally Checking")
    txn = classify_entry(entry)

    assert txn.affects_wallet_balance is False
    assert txn.counterparty == "Sam Friend"


def test_transfer_out_names_destination_and_affects_balance():
    entry = make_entry(amount="-100.00", raw_type="Standard Transfer", sender=None, recipient=None,
                       funding_source="Venmo balance", destination="Ally Checking *9876")
    txn = classify_entry(entry)

    assert txn.kind == TransactionKind.BANK_TRANSFER_OUT
    assert txn.counterparty == "TRANSFER TO Ally Checking *9876"
    assert txn.affects_wallet_balance is True


def test_charge_counterparty_follows_amount_sign():
    # Someone charged us and we paid: the requester is in 'From'
    paid = classify_entry(make_entry(amount="-15.00", raw_type="Charge", sender="Requester", recipient="Test User"))
    # We charged someone and got paid: they are in 'To'
    received = classify_entry(make_entry(amount="15.00", raw_type="Charge", sender="Test User", recipient="Payer"))

    assert paid.counterparty == "Requester"
    assert received.counterparty == "Payer"


def test_unknown_type_is_kept_and_logged(caplog):
    txn = classify_entry(make_entry(raw_type="Crypto Purchase", recipient=None, note="BTC"))

    assert txn.kind == TransactionKind.UNKNOWN
    assert txn.counterparty == "BTC"
    assert "Unrecognized statement type" in caplog.text


def test_missing_counterparty_falls_back_to_raw_type():
    txn = classify_entry(make_entry(recipient=None, note=None))
    assert txn.counterparty == "Payment"


def test_every_entry_is_classified_once():
    entries = [
        make_entry("1", "-1.00"),
        make_entry("2", "2.00", raw_type="Something New"),
        make_entry("3", "-3.00", funding_source="Chase Visa"),
    ]
    classified = classify_entries(entries)

    assert [txn.external_id for txn in classified] == ["1", "2", "3"]
    assert [txn.entry for txn in classified] == entries
