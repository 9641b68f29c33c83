"""Error taxonomy for wallet sync runs."""

from typing import Optional

from wallet_sync.models.sync import BalanceCheck


class SyncError(Exception):
    """Base class for sync failures."""


class AuthError(SyncError):
    """Invalid or expired access token. Never retried."""

    def __init__(self, service: str, detail: str = ""):
        self.service = service
        self.detail = detail
        message = f"{service} rejected the access token"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TransientNetworkError(SyncError):
    """Network failure or retryable server response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class StatementError(SyncError):
    """Wallet statement could not be fetched or parsed."""


class CurrencyMismatchError(StatementError):
    """Statement amount carries a different currency marker than configured."""

    def __init__(self, expected_symbol: str, currency: str, found: str):
        self.expected_symbol = expected_symbol
        self.currency = currency
        self.found = found
        super().__init__(f"expected currency marker {expected_symbol} for {currency}, got {found} from the statement")


class ReconciliationMismatch(SyncError):
    """Recorded transactions do not explain the wallet's balance change."""

    def __init__(self, check: BalanceCheck):
        self.check = check
        super().__init__(f"Balance mismatch: {check.describe()}")


class LedgerError(SyncError):
    """Ledger refused a read the sync depends on (bad asset, malformed request)."""


class SubmissionError(SyncError):
    """Ledger refused a single transaction."""

    def __init__(self, external_id: str, reason: str):
        self.external_id = external_id
        self.reason = reason
        super().__init__(f"Failed to submit {external_id}: {reason}")
