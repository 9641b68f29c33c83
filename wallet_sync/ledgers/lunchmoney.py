"""Lunch Money ledger backend (https://lunchmoney.dev).

Only the three calls the sync needs:
- GET  /v1/assets        list manually-managed assets
- GET  /v1/transactions  read external ids already recorded for an asset
- POST /v1/transactions  insert a single transaction
"""

import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import BaseModel, SecretStr

from wallet_sync.errors import LedgerError, SubmissionError, TransientNetworkError
from wallet_sync.http_client import error_detail, send
from wallet_sync.models import LedgerTransaction, SyncWindow

logger = logging.getLogger(__name__)

SERVICE = "Lunch Money"
LUNCHMONEY_API_URL = "https://dev.lunchmoney.app/v1"
PAGE_SIZE = 500


class Asset(BaseModel):
    """Asset object as described in https://lunchmoney.dev/#assets-object."""

    id: int
    name: str
    type_name: Optional[str] = None
    balance: Optional[str] = None
    currency: Optional[str] = None
    institution_name: Optional[str] = None


class LunchMoneyClient:
    """Lunch Money API client used as a ledger backend.

    Use as a context manager so the connection pool is closed:

        with LunchMoneyClient(token) as ledger:
            ids = ledger.list_existing_external_ids(asset_id, window)
    """

    def __init__(self, access_token, base_url: str = LUNCHMONEY_API_URL, timeout: float = 30.0,
                 client: Optional[httpx.Client] = None):
        if isinstance(access_token, SecretStr):
            access_token = access_token.get_secret_value()
        if not access_token:
            raise ValueError("A Lunch Money access token is required")
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "LunchMoneyClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _json(self, response: httpx.Response, what: str) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError:
            raise TransientNetworkError(
                f"Invalid JSON from {SERVICE} while {what} (status {response.status_code}): {error_detail(response)}"
            ) from None

    def get_assets(self) -> List[Asset]:
        """List all assets on the account.

        Raises:
            AuthError: If the token is rejected
            TransientNetworkError: On network failures and retryable responses
            LedgerError: On any other non-200 response
        """
        response = send(self._client, SERVICE, "GET", f"{self.base_url}/assets", headers=self._headers)
        if response.status_code != 200:
            raise LedgerError(
                f"Failed to get {SERVICE} assets, code {response.status_code}, err: {error_detail(response)}"
            )
        return [Asset(**asset) for asset in self._json(response, "listing assets").get("assets", [])]

    def list_existing_external_ids(self, asset_id: int, window: SyncWindow) -> Set[str]:
        """External ids of the asset's transactions dated within the window.

        Pages through /v1/transactions until `has_more` is false.

        Raises:
            LedgerError: If Lunch Money refuses the query (e.g. unknown asset)
        """
        window = window.resolve()
        params = {
            "asset_id": asset_id,
            "start_date": window.start.strftime("%Y-%m-%d"),
            "end_date": window.end.strftime("%Y-%m-%d"),
            "limit": PAGE_SIZE,
            "offset": 0,
        }

        external_ids: Set[str] = set()
        while True:
            response = send(self._client, SERVICE, "GET", f"{self.base_url}/transactions",
                            params=params, headers=self._headers)
            if response.status_code != 200:
                raise LedgerError(
                    f"Failed to list {SERVICE} transactions, code {response.status_code}, "
                    f"err: {error_detail(response)}"
                )

            body = self._json(response, "listing transactions")
            transactions = body.get("transactions", [])
            for txn in transactions:
                # The filter is applied server-side; double check for older API versions
                if txn.get("asset_id") not in (None, asset_id):
                    continue
                if txn.get("external_id"):
                    external_ids.add(str(txn["external_id"]))

            if not body.get("has_more") or not transactions:
                break
            params["offset"] += len(transactions)

        logger.debug("%d external id(s) already on asset %s", len(external_ids), asset_id)
        return external_ids

    def submit(self, transaction: LedgerTransaction) -> int:
        """Insert one transaction.

        Returns:
            The Lunch Money transaction id

        Raises:
            SubmissionError: If Lunch Money rejects the transaction
        """
        request_body = {
            "transactions": [transaction.to_payload()],
            "apply_rules": True,
            "check_for_recurring": True,
            "debit_as_negative": True,
        }
        response = send(self._client, SERVICE, "POST", f"{self.base_url}/transactions",
                        json=request_body, headers=self._headers)

        if response.status_code != 200:
            raise SubmissionError(
                transaction.external_id,
                f"{SERVICE} returned HTTP {response.status_code}: {error_detail(response)}",
            )

        body = self._json(response, "inserting a transaction")
        if body.get("error"):
            raise SubmissionError(transaction.external_id, f"{SERVICE} error: {body['error']}")

        ids = body.get("ids") or []
        if len(ids) != 1:
            raise SubmissionError(transaction.external_id, f"expected one inserted id, got {ids!r}")
        return int(ids[0])
