"""Tests for the Lunch Money ledger backend."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from conftest import WINDOW, FakeSource, make_entry, make_statement
from wallet_sync.agents.reconciliation.sync_orchestrator import SyncOrchestrator
from wallet_sync.errors import AuthError, LedgerError, SubmissionError, TransientNetworkError
from wallet_sync.ledgers.lunchmoney import LunchMoneyClient
from wallet_sync.models import LedgerTransaction, RunState


def lunchmoney(handler):
    return LunchMoneyClient("lm-token", client=httpx.Client(transport=httpx.MockTransport(handler)))


def funding_leg():
    return LedgerTransaction(
        date=datetime(2022, 1, 15, 18, 25, 41, tzinfo=timezone.utc),
        amount=Decimal("25.00"),
        payee="TRANSFER FROM Chase Visa *1234",
        notes="To fund wallet transaction with note: 'Lunch'",
        currency="usd",
        external_id="3601T",
        asset_id=42,
    )


def test_payload_format():
    assert funding_leg().to_payload() == {
        "date": "2022-01-15",
        "amount": "25.0000",
        "payee": "TRANSFER FROM Chase Visa *1234",
        "notes": "To fund wallet transaction with note: 'Lunch'",
        "currency": "usd",
        "asset_id": 42,
        "external_id": "3601T",
        "status": "uncleared",
    }


def test_get_assets():
    def handler(request):
        assert request.url.path == "/v1/assets"
        assert request.headers["Authorization"] == "Bearer lm-token"
        return httpx.Response(200, json={"assets": [
            {"id": 42, "name": "Venmo", "type_name": "cash", "balance": "50.8900", "currency": "usd"},
        ]})

    with lunchmoney(handler) as ledger:
        assets = ledger.get_assets()

    assert [(asset.id, asset.name) for asset in assets] == [(42, "Venmo")]


class TestListExistingExternalIds:

    def test_pages_until_has_more_is_false(self):
        offsets = []

        def handler(request):
            params = request.url.params
            assert params["asset_id"] == "42"
            assert params["start_date"] == "2022-01-01"
            assert params["end_date"] == "2022-01-31"
            offset = int(params["offset"])
            offsets.append(offset)
            if offset == 0:
                return httpx.Response(200, json={"has_more": True, "transactions": [
                    {"id": 1, "external_id": "3601", "asset_id": 42},
                    {"id": 2, "external_id": None, "asset_id": 42},
                ]})
            return httpx.Response(200, json={"has_more": False, "transactions": [
                {"id": 3, "external_id": "3601T", "asset_id": 42},
            ]})

        with lunchmoney(handler) as ledger:
            ids = ledger.list_existing_external_ids(42, WINDOW)

        assert ids == {"3601", "3601T"}
        assert offsets == [0, 2]

    def test_other_assets_are_ignored(self):
        def handler(request):
            return httpx.Response(200, json={"transactions": [
                {"id": 1, "external_id": "3601", "asset_id": 42},
                {"id": 2, "external_id": "9999", "asset_id": 7},
            ]})

        with lunchmoney(handler) as ledger:
            assert ledger.list_existing_external_ids(42, WINDOW) == {"3601"}

    def test_invalid_json_is_transient(self):
        with lunchmoney(lambda request: httpx.Response(200, text="<html>")) as ledger:
            with pytest.raises(TransientNetworkError):
                ledger.list_existing_external_ids(42, WINDOW)

    def test_rejected_query_is_ledger_error(self):
        handler = lambda request: httpx.Response(400, json={"error": "Invalid asset_id"})  # noqa: E731
        with lunchmoney(handler) as ledger:
            with pytest.raises(LedgerError, match="Invalid asset_id"):
                ledger.list_existing_external_ids(42, WINDOW)

    def test_rejected_query_aborts_the_run(self, config):
        handler = lambda request: httpx.Response(400, json={"error": "Invalid asset_id"})  # noqa: E731
        statement = make_statement("390.00", "50.89", [make_entry("3601", "-339.11")])

        with lunchmoney(handler) as ledger:
            outcome = SyncOrchestrator(FakeSource(statement), ledger, config, sleep=lambda _: None).run(WINDOW)

        assert outcome.state == RunState.ABORTED
        assert outcome.reason.startswith("LedgerError")
        assert RunState.SUBMITTING not in outcome.states

    def test_rate_limit_is_transient(self):
        with lunchmoney(lambda request: httpx.Response(429, text="slow down")) as ledger:
            with pytest.raises(TransientNetworkError):
                ledger.list_existing_external_ids(42, WINDOW)


class TestSubmit:

    def test_submit_returns_inserted_id(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            assert request.method == "POST"
            assert request.url.path == "/v1/transactions"
            return httpx.Response(200, json={"ids": [555]})

        with lunchmoney(handler) as ledger:
            assert ledger.submit(funding_leg()) == 555

        body = seen["body"]
        assert body["apply_rules"] is True
        assert body["check_for_recurring"] is True
        assert body["debit_as_negative"] is True
        assert body["transactions"] == [funding_leg().to_payload()]

    def test_error_payload_is_submission_error(self):
        handler = lambda request: httpx.Response(200, json={"error": ["Invalid asset_id"]})  # noqa: E731
        with lunchmoney(handler) as ledger:
            with pytest.raises(SubmissionError, match="Invalid asset_id") as excinfo:
                ledger.submit(funding_leg())
        assert excinfo.value.external_id == "3601T"

    def test_unexpected_id_count_is_submission_error(self):
        with lunchmoney(lambda request: httpx.Response(200, json={"ids": []})) as ledger:
            with pytest.raises(SubmissionError, match="expected one inserted id"):
                ledger.submit(funding_leg())

    def test_bad_request_is_submission_error(self):
        with lunchmoney(lambda request: httpx.Response(400, text="bad payee")) as ledger:
            with pytest.raises(SubmissionError, match="HTTP 400"):
                ledger.submit(funding_leg())

    def test_revoked_token_is_auth_error(self):
        with lunchmoney(lambda request: httpx.Response(401, json={"message": "Access token does not exist."})) as ledger:
            with pytest.raises(AuthError):
                ledger.submit(funding_leg())
