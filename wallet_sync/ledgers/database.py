"""SQL ledger backend - record wallet transactions in a ledger database."""

import logging
from typing import Set, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from wallet_sync.database.connection import create_database_engine, create_session_factory, session_scope
from wallet_sync.database.models import LedgerTransactionModel, create_tables
from wallet_sync.errors import SubmissionError, TransientNetworkError
from wallet_sync.models import LedgerTransaction, SyncWindow

logger = logging.getLogger(__name__)


class DatabaseLedger:
    """Ledger stored in the ledger_transactions table."""

    def __init__(self, engine: Union[Engine, str], create: bool = False):
        """Initialize database ledger.

        Args:
            engine: SQLAlchemy engine or database URL
            create: If True, create the tables if they don't exist
        """
        if isinstance(engine, str):
            engine = create_database_engine(engine)
        self.engine = engine
        self.Session = create_session_factory(engine)
        if create:
            create_tables(engine)

    def list_existing_external_ids(self, asset_id: int, window: SyncWindow) -> Set[str]:
        """External ids recorded for the asset with a date inside the window."""
        window = window.resolve()
        try:
            with session_scope(self.Session) as session:
                rows = session.query(LedgerTransactionModel.external_id).filter(
                    LedgerTransactionModel.asset_id == asset_id,
                    LedgerTransactionModel.transaction_date >= window.start.date(),
                    LedgerTransactionModel.transaction_date <= window.end.date(),
                ).all()
        except OperationalError as e:
            raise TransientNetworkError(f"Ledger database query failed: {e}") from e
        return {row[0] for row in rows}

    def submit(self, transaction: LedgerTransaction) -> int:
        """Insert one transaction and return its id.

        Raises:
            SubmissionError: If the row is rejected (e.g. external id already recorded)
            TransientNetworkError: If the database is unreachable
        """
        row = LedgerTransactionModel(
            asset_id=transaction.asset_id,
            external_id=transaction.external_id,
            transaction_date=transaction.date.date(),
            amount=transaction.amount,
            currency=transaction.currency,
            payee=transaction.payee,
            notes=transaction.notes,
            status=transaction.status.value,
        )
        try:
            with session_scope(self.Session) as session:
                session.add(row)
        except IntegrityError as e:
            raise SubmissionError(transaction.external_id, f"rejected by ledger database: {e.orig}") from e
        except OperationalError as e:
            raise TransientNetworkError(f"Ledger database insert failed: {e}") from e
        except SQLAlchemyError as e:
            raise SubmissionError(transaction.external_id, str(e)) from e

        logger.debug("Recorded %s as row %s", transaction.external_id, row.id)
        return row.id

