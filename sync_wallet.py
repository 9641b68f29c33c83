"""Sync a Venmo wallet's statement into a Lunch Money (or database) ledger asset.

Settings fall back to environment variables:
  WALLET_PROFILE_ID, WALLET_ACCESS_TOKEN, LEDGER_ACCESS_TOKEN,
  LEDGER_ASSET_ID, SYNC_CURRENCY, DATABASE_URL, LOG_FILE
"""

import argparse
import os
import sys
from contextlib import ExitStack
from datetime import datetime, timezone

from dateutil import parser as date_parser

from wallet_sync.agents.reconciliation.sync_orchestrator import SyncOrchestrator
from wallet_sync.config import ENV_LEDGER_TOKEN, SyncConfig
from wallet_sync.database.connection import database_url_from_env
from wallet_sync.errors import SyncError
from wallet_sync.ledgers.database import DatabaseLedger
from wallet_sync.ledgers.lunchmoney import LunchMoneyClient
from wallet_sync.models import RunState, SyncOutcome, SyncWindow, as_utc
from wallet_sync.sources.venmo import CsvStatementSource, VenmoClient
from wallet_sync.utils import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('--profile-id', type=str, help='Venmo profile id')
    parser.add_argument('--wallet-token', type=str, help='Venmo api_access_token')
    parser.add_argument('--ledger-token', type=str, help='Lunch Money access token')
    parser.add_argument('--asset-id', type=int, help='Lunch Money asset id of the Venmo account')
    parser.add_argument('--currency', type=str, help='Wallet currency (default: USD)')
    parser.add_argument('--start', type=str, help='Window start (default: 30 days ago)')
    parser.add_argument('--end', type=str, help='Window end (default: now)')
    parser.add_argument('--statement-file', type=str, help='Read a downloaded statement CSV instead of calling Venmo')
    parser.add_argument('--database-url', type=str, help='Write to a ledger database instead of Lunch Money')
    parser.add_argument('--dry-run', action='store_true', help='Reconcile and filter, but submit nothing')
    parser.add_argument('--list-assets', action='store_true', help='List Lunch Money assets and exit')
    parser.add_argument('--debug', action='store_true')
    return parser.parse_args(argv)


def parse_window(start, end, now):
    window = SyncWindow.default(now)
    if start:
        window = SyncWindow(start=as_utc(date_parser.parse(start)), end=window.end)
    if end:
        window = SyncWindow(start=window.start, end=as_utc(date_parser.parse(end)))
    return window.resolve(now)


def print_outcome(outcome: SyncOutcome):
    report = outcome.report

    if outcome.state == RunState.ABORTED:
        print(f"✗ Sync aborted: {outcome.reason}")
        if outcome.balance_check is not None and not outcome.balance_check.passed:
            check = outcome.balance_check
            print(f"  Beginning balance: {check.beginning}")
            print(f"  Expected ending:   {check.expected_ending}")
            print(f"  Computed ending:   {check.computed_ending}")
            print(f"  Difference:        {check.difference}")
        if report and report.inserted_ids:
            print(f"  Inserted before aborting: {', '.join(str(i) for i in report.inserted_ids)}")
        print("  Nothing else was inserted.")
        return

    print(f"Beginning balance: {report.beginning_balance}")
    print(f"Ending balance:    {report.ending_balance}")

    if report.dry_run:
        print(f"Dry run - would insert {len(report.pending_external_ids)} transaction(s):")
        for external_id in report.pending_external_ids:
            print(f"  {external_id}")
    elif report.inserted_ids:
        print(f"Inserted {len(report.inserted_ids)} transaction(s): {', '.join(str(i) for i in report.inserted_ids)}")
    else:
        print("No new transactions to insert.")

    if report.duplicate_external_ids:
        print(f"Skipped {len(report.duplicate_external_ids)} already recorded transaction(s)")
    if report.flagged_external_ids:
        print(f"[WARNING] Review funding of: {', '.join(report.flagged_external_ids)}")

    if outcome.failures:
        print(f"✗ {len(outcome.failures)} transaction(s) failed:")
        for failure in outcome.failures:
            print(f"  {failure.external_id}: {failure.reason}")


def list_assets(token):
    with LunchMoneyClient(token) as ledger:
        for asset in ledger.get_assets():
            print(f"{asset.id:>8}  {asset.name}  ({asset.type_name or '-'}, {asset.currency or '-'})")


def main(argv=None):
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    if args.list_assets:
        token = args.ledger_token or os.getenv(ENV_LEDGER_TOKEN)
        if not token:
            print("Error: a Lunch Money token is required (--ledger-token or LEDGER_ACCESS_TOKEN)")
            return 1
        try:
            list_assets(token)
        except SyncError as e:
            print(f"Error: {e}")
            return 1
        return 0

    try:
        config = SyncConfig.from_env(
            profile_id=args.profile_id,
            asset_id=args.asset_id,
            currency=args.currency,
            wallet_token=args.wallet_token,
            ledger_token=args.ledger_token,
        )
        window = parse_window(args.start, args.end, datetime.now(timezone.utc))
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    with ExitStack() as stack:
        if args.statement_file:
            source = CsvStatementSource(args.statement_file, config.currency_code)
        elif config.wallet_token is not None:
            source = stack.enter_context(VenmoClient(config.wallet_token, config.currency_code))
        else:
            print("Error: a Venmo token (--wallet-token or WALLET_ACCESS_TOKEN) or --statement-file is required")
            return 1

        # An explicit database wins; DATABASE_URL only when there is no Lunch Money token
        database_url = args.database_url or (None if config.ledger_token else database_url_from_env())
        if database_url:
            ledger = DatabaseLedger(database_url, create=True)
        elif config.ledger_token is not None:
            ledger = stack.enter_context(LunchMoneyClient(config.ledger_token))
        else:
            print("Error: a Lunch Money token (--ledger-token or LEDGER_ACCESS_TOKEN) or --database-url (DATABASE_URL) is required")
            return 1

        outcome = SyncOrchestrator(source, ledger, config, dry_run=args.dry_run).run(window)

    print_outcome(outcome)

    if outcome.state == RunState.ABORTED:
        return 1
    if outcome.state == RunState.COMPLETED_WITH_PARTIAL_FAILURES:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
