"""Shared fixtures for wallet sync tests."""

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from wallet_sync.config import SyncConfig
from wallet_sync.errors import SubmissionError
from wallet_sync.models import BalanceSnapshot, LedgerTransaction, Statement, SyncWindow, WalletEntry

STATEMENT_COLUMNS = [
    "", "ID", "Datetime", "Type", "Status", "Note", "From", "To", "Amount (total)", "Amount (tip)",
    "Amount (fee)", "Funding Source", "Destination", "Beginning Balance", "Ending Balance",
    "Statement Period Venmo Fees", "Terminal Location", "Year to Date Venmo Fees", "Disclaimer",
]

WINDOW = SyncWindow(
    start=datetime(2022, 1, 1, tzinfo=timezone.utc),
    end=datetime(2022, 1, 31, 23, 59, 59, tzinfo=timezone.utc),
)


def build_statement_text(beginning: str, ending: str, rows: List[Dict[str, str]]) -> str:
    """Render a statement CSV the way Venmo serves it."""
    buffer = io.StringIO()
    buffer.write("Account Statement - (@Test-User) ,,,,,,,,,,,,,,,,,,\n")
    buffer.write("Account Activity,,,,,,,,,,,,,,,,,,\n")
    writer = csv.DictWriter(buffer, fieldnames=STATEMENT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerow({"Beginning Balance": beginning})
    for row in rows:
        writer.writerow(row)
    writer.writerow({"Ending Balance": ending, "Disclaimer": "In case of errors or questions about your transactions"})
    return buffer.getvalue()


class FakeSource:
    """Statement source returning a fixed statement."""

    def __init__(self, statement: Statement, failures: Optional[List[Exception]] = None):
        self.statement = statement
        self.failures = list(failures or [])
        self.calls = 0

    def fetch_statement(self, profile_id, window):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.statement


class FakeLedger:
    """In-memory ledger keyed by external id."""

    def __init__(self, list_failures: Optional[List[Exception]] = None):
        self.transactions: Dict[str, LedgerTransaction] = {}
        self.ids: Dict[str, int] = {}
        self.submitted: List[LedgerTransaction] = []
        self.list_failures = list(list_failures or [])
        self.submit_failures: Dict[str, List[Exception]] = {}
        self.list_calls = 0
        self.list_windows: List[SyncWindow] = []
        self._next_id = 1000

    def list_existing_external_ids(self, asset_id, window):
        self.list_calls += 1
        self.list_windows.append(window)
        if self.list_failures:
            raise self.list_failures.pop(0)
        return {external_id for external_id, txn in self.transactions.items() if txn.asset_id == asset_id}

    def submit(self, transaction):
        self.submitted.append(transaction)
        pending = self.submit_failures.get(transaction.external_id)
        if pending:
            raise pending.pop(0)
        if transaction.external_id in self.transactions:
            raise SubmissionError(transaction.external_id, "duplicate external id")
        self._next_id += 1
        self.transactions[transaction.external_id] = transaction
        self.ids[transaction.external_id] = self._next_id
        return self._next_id


def make_entry(external_id: str = "3601", amount: str = "-25.00", raw_type: str = "Payment", **kwargs) -> WalletEntry:
    values = {
        "external_id": external_id,
        "timestamp": datetime(2022, 1, 15, 18, 25, 41, tzinfo=timezone.utc),
        "amount": Decimal(amount),
        "raw_type": raw_type,
        "status": "Complete",
        "note": "Lunch",
        "sender": "Test User",
        "recipient": "Sam Friend",
        "funding_source": "Venmo balance",
        "destination": None,
    }
    values.update(kwargs)
    return WalletEntry(**values)


def make_statement(beginning: str, ending: str, entries: List[WalletEntry]) -> Statement:
    return Statement(entries=entries, snapshot=BalanceSnapshot(beginning=Decimal(beginning), ending=Decimal(ending)))


@pytest.fixture()
def window():
    return WINDOW


@pytest.fixture()
def config():
    return SyncConfig(profile_id="1234567890", asset_id=42, currency="USD",
                      wallet_token="venmo-token", ledger_token="lm-token",
                      backoff_seconds=0.0, max_backoff_seconds=0.0)


@pytest.fixture()
def fake_ledger():
    return FakeLedger()
