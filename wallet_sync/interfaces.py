"""Collaborator interfaces consumed by the sync orchestrator."""

from typing import Protocol, Set

from wallet_sync.models import LedgerTransaction, Statement, SyncWindow


class StatementSource(Protocol):
    """Supplies wallet statement entries and balances for a window."""

    def fetch_statement(self, profile_id: str, window: SyncWindow) -> Statement:
        ...


class LedgerBackend(Protocol):
    """Durable ledger the wallet transactions are written to."""

    def list_existing_external_ids(self, asset_id: int, window: SyncWindow) -> Set[str]:
        """External ids already recorded for the asset within the window."""
        ...

    def submit(self, transaction: LedgerTransaction) -> int:
        """Insert one transaction and return its ledger id."""
        ...
