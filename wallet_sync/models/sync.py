"""Sync run models - window, balances, report and outcome."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from wallet_sync.models.common import RunState
from wallet_sync.models.entry import WalletEntry

DEFAULT_WINDOW_DAYS = 30


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SyncWindow(BaseModel):
    """Time window covered by a sync run."""

    start: datetime = Field(..., description="Window start (inclusive)")
    end: Optional[datetime] = Field(None, description="Window end (inclusive); None means now")

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def default(cls, now: Optional[datetime] = None, days: int = DEFAULT_WINDOW_DAYS) -> "SyncWindow":
        """Window from `days` before now up to now."""
        now = as_utc(now or datetime.now(timezone.utc))
        return cls(start=now - timedelta(days=days), end=now)

    def resolve(self, now: Optional[datetime] = None) -> "SyncWindow":
        """Return a window with a concrete end, fixed for the rest of the run.

        Raises:
            ValueError: If the window ends before it starts
        """
        start = as_utc(self.start)
        end = as_utc(self.end or now or datetime.now(timezone.utc))
        if end < start:
            raise ValueError(f"Sync window ends ({end.isoformat()}) before it starts ({start.isoformat()})")
        return SyncWindow(start=start, end=end)

    def covering(self, timestamps: Iterable[datetime]) -> "SyncWindow":
        """Resolved window stretched to include every timestamp.

        Statements can carry entries dated just outside the requested window;
        the ledger lookup must still see them.
        """
        window = self.resolve()
        timestamps = [as_utc(ts) for ts in timestamps]
        if not timestamps:
            return window
        return SyncWindow(start=min([window.start] + timestamps), end=max([window.end] + timestamps))

    @property
    def is_resolved(self) -> bool:
        return self.end is not None


class BalanceSnapshot(BaseModel):
    """Wallet balances reported by the statement for the window."""

    beginning: Decimal
    ending: Decimal

    class Config:
        frozen = True


class Statement(BaseModel):
    """Statement entries plus the reported balances."""

    entries: List[WalletEntry] = Field(default_factory=list)
    snapshot: BalanceSnapshot


class BalanceCheck(BaseModel):
    """Result of replaying the signed sequence against the reported balances."""

    window: SyncWindow
    beginning: Decimal
    expected_ending: Decimal = Field(..., description="Ending balance reported by the statement")
    computed_ending: Decimal = Field(..., description="Beginning balance plus the sum of all amounts")
    difference: Decimal
    tolerance: Decimal
    transaction_count: int = 0

    @property
    def passed(self) -> bool:
        return abs(self.difference) <= self.tolerance

    def describe(self) -> str:
        return (
            f"beginning {self.beginning} + {self.transaction_count} transaction(s) = {self.computed_ending}, "
            f"statement reports {self.expected_ending} (difference {self.difference}, tolerance {self.tolerance})"
        )


class SubmissionFailure(BaseModel):
    """A transaction the ledger did not accept."""

    external_id: str
    reason: str


class SyncReport(BaseModel):
    """Summary of a sync run."""

    beginning_balance: Decimal
    ending_balance: Decimal
    inserted_ids: List[int] = Field(default_factory=list, description="Ledger ids of newly inserted transactions, in submission order")
    duplicate_external_ids: List[str] = Field(default_factory=list, description="Candidates already on the ledger")
    flagged_external_ids: List[str] = Field(default_factory=list, description="Entries with unrecognized funding combinations")
    pending_external_ids: List[str] = Field(default_factory=list, description="Would-be inserts of a dry run")
    dry_run: bool = False


class SyncOutcome(BaseModel):
    """Terminal result of a sync run."""

    state: RunState
    states: List[RunState] = Field(default_factory=list, description="States visited, in order")
    report: Optional[SyncReport] = None
    failures: List[SubmissionFailure] = Field(default_factory=list)
    reason: Optional[str] = None
    balance_check: Optional[BalanceCheck] = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.COMPLETED

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED
