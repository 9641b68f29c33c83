"""Sync orchestrator - run one wallet-to-ledger sync end to end.

Pipeline stages:
1. Fetch the wallet statement (retried)
2. Classify every entry
3. Synthesize transfer pairs for payments that bypassed the wallet balance
4. Reconcile the full sequence against the statement balances (gate)
5. Filter out transactions already on the ledger (existing ids retried)
6. Submit new transactions one at a time, in chronological order
7. Assemble the report
"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from wallet_sync.agents.reconciliation.balance import reconcile_balance
from wallet_sync.agents.reconciliation.entry_classifier import classify_entries
from wallet_sync.agents.reconciliation.idempotency import deduplicate_candidates
from wallet_sync.agents.reconciliation.transfer_synthesizer import synthesize_transfers
from wallet_sync.config import SyncConfig
from wallet_sync.errors import (
    AuthError,
    LedgerError,
    ReconciliationMismatch,
    StatementError,
    SubmissionError,
    TransientNetworkError,
)
from wallet_sync.interfaces import LedgerBackend, StatementSource
from wallet_sync.models import (
    BalanceCheck,
    LedgerTransaction,
    RunState,
    SubmissionFailure,
    SyncOutcome,
    SyncReport,
    SyncWindow,
)
from wallet_sync.retry import call_with_retry

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Sequence the sync stages for one statement source and one ledger asset."""

    def __init__(self, source: StatementSource, ledger: LedgerBackend, config: SyncConfig,
                 dry_run: bool = False, sleep: Callable[[float], None] = time.sleep):
        """Initialize orchestrator.

        Args:
            source: Wallet statement source
            ledger: Ledger backend to read existing ids from and submit to
            config: Immutable run configuration
            dry_run: If True, stop before submitting and report pending inserts
            sleep: Sleep function used between retries
        """
        self.source = source
        self.ledger = ledger
        self.config = config
        self.dry_run = dry_run
        self.sleep = sleep
        self.states: List[RunState] = []

    def _enter(self, state: RunState) -> None:
        logger.debug("Sync state: %s", state.value)
        self.states.append(state)

    def _finish(self, state: RunState, **kwargs) -> SyncOutcome:
        self._enter(state)
        return SyncOutcome(state=state, states=list(self.states), **kwargs)

    def _abort(self, reason: str, **kwargs) -> SyncOutcome:
        logger.error("Sync aborted: %s", reason)
        return self._finish(RunState.ABORTED, reason=reason, **kwargs)

    def _read(self, func, *args):
        """Call an idempotent remote read with the fetch retry policy."""
        return call_with_retry(
            func, *args,
            attempts=self.config.fetch_attempts,
            backoff=self.config.backoff_seconds,
            max_backoff=self.config.max_backoff_seconds,
            retry_on=(TransientNetworkError,),
            sleep=self.sleep,
        )

    def _submit(self, txn: LedgerTransaction) -> int:
        return call_with_retry(
            self.ledger.submit, txn,
            attempts=self.config.submit_attempts,
            backoff=self.config.backoff_seconds,
            max_backoff=self.config.max_backoff_seconds,
            retry_on=(TransientNetworkError, SubmissionError),
            sleep=self.sleep,
        )

    def run(self, window: Optional[SyncWindow] = None, now: Optional[datetime] = None) -> SyncOutcome:
        """Run a sync over `window` (default: the last 30 days).

        Returns:
            SyncOutcome in one of the terminal states
        """
        self.states = []
        window = (window or SyncWindow.default(now)).resolve(now)
        check: Optional[BalanceCheck] = None

        logger.info("Syncing profile %s into asset %s from %s to %s%s",
                    self.config.profile_id, self.config.asset_id,
                    window.start.isoformat(), window.end.isoformat(),
                    " (dry run)" if self.dry_run else "")

        try:
            self._enter(RunState.FETCHING)
            statement = self._read(self.source.fetch_statement, self.config.profile_id, window)
            logger.info("Fetched %d statement entries (beginning %s, ending %s)",
                        len(statement.entries), statement.snapshot.beginning, statement.snapshot.ending)

            self._enter(RunState.CLASSIFYING)
            classified = classify_entries(statement.entries)

            self._enter(RunState.SYNTHESIZING)
            synthesis = synthesize_transfers(classified)
            candidates = [
                posting.to_ledger_transaction(self.config.currency_code, self.config.asset_id)
                for posting in synthesis.postings
            ]

            self._enter(RunState.RECONCILING)
            check = reconcile_balance(window, statement.snapshot, [txn.amount for txn in candidates],
                                      tolerance=self.config.balance_tolerance)

            self._enter(RunState.FILTERING)
            # Look up every entry date, not just the requested window
            lookup_window = window.covering(entry.timestamp for entry in statement.entries)
            if lookup_window != window:
                logger.warning("Statement has entries outside the sync window; checking the ledger from %s to %s",
                               lookup_window.start.isoformat(), lookup_window.end.isoformat())
            existing_ids = self._read(self.ledger.list_existing_external_ids, self.config.asset_id, lookup_window)
            dedup = deduplicate_candidates(candidates, set(existing_ids))
        except ReconciliationMismatch as e:
            return self._abort(str(e), balance_check=e.check)
        except (AuthError, TransientNetworkError, StatementError, LedgerError) as e:
            return self._abort(f"{type(e).__name__}: {e}", balance_check=check)

        new_transactions: List[LedgerTransaction] = dedup['new_transactions']
        report = SyncReport(
            beginning_balance=statement.snapshot.beginning,
            ending_balance=statement.snapshot.ending,
            duplicate_external_ids=[txn.external_id for txn in dedup['duplicates']],
            flagged_external_ids=synthesis.flagged,
            dry_run=self.dry_run,
        )

        if self.dry_run:
            report.pending_external_ids = [txn.external_id for txn in new_transactions]
            self._enter(RunState.REPORTING)
            logger.info("Dry run: %d transaction(s) would be inserted", len(new_transactions))
            return self._finish(RunState.COMPLETED, report=report, balance_check=check)

        self._enter(RunState.SUBMITTING)
        failures: List[SubmissionFailure] = []
        for txn in sorted(new_transactions, key=lambda t: t.date):
            try:
                ledger_id = self._submit(txn)
            except AuthError as e:
                failures.append(SubmissionFailure(external_id=txn.external_id, reason=str(e)))
                return self._abort(f"AuthError: {e}", report=report, failures=failures, balance_check=check)
            except (SubmissionError, TransientNetworkError) as e:
                logger.error("Could not submit %s: %s", txn.external_id, e)
                failures.append(SubmissionFailure(external_id=txn.external_id, reason=str(e)))
                continue
            logger.info("Inserted %s as ledger transaction %s", txn.external_id, ledger_id)
            report.inserted_ids.append(ledger_id)

        self._enter(RunState.REPORTING)
        logger.info("Inserted %d transaction(s), %d failure(s), %d already recorded",
                    len(report.inserted_ids), len(failures), len(report.duplicate_external_ids))

        if failures:
            return self._finish(RunState.COMPLETED_WITH_PARTIAL_FAILURES, report=report,
                                failures=failures, balance_check=check)
        return self._finish(RunState.COMPLETED, report=report, balance_check=check)


def sync(profile_id, window: Optional[SyncWindow], currency: str, target_asset_id: int, *,
         source: StatementSource, ledger: LedgerBackend, dry_run: bool = False,
         now: Optional[datetime] = None, **settings) -> SyncOutcome:
    """Sync a wallet profile's statement for `window` into a ledger asset.

    Args:
        profile_id: Wallet profile identifier
        window: Sync window; None means the last 30 days
        currency: 3-letter currency code of the wallet
        target_asset_id: Ledger asset to write to
        source: Statement source (already holding its access token)
        ledger: Ledger backend (already holding its access token)
        dry_run: If True, don't submit anything
        **settings: Extra SyncConfig fields (retry policy, tolerance)

    Returns:
        SyncOutcome
    """
    config = SyncConfig(profile_id=str(profile_id), asset_id=target_asset_id,
                        currency=currency.upper(), **settings)
    return SyncOrchestrator(source, ledger, config, dry_run=dry_run).run(window, now=now)
