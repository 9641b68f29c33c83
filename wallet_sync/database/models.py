"""SQLAlchemy model for the ledger database."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

from wallet_sync.models.common import LedgerStatus

Base = declarative_base()


class LedgerTransactionModel(Base):
    """One ledger transaction written by a sync run.

    (asset_id, external_id) is unique: the same wallet entry can be
    recorded at most once per asset.
    """

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        UniqueConstraint("asset_id", "external_id", name="uq_ledger_transactions_asset_external_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    asset_id = Column(Integer, nullable=False, index=True)
    external_id = Column(String(100), nullable=False)

    transaction_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(19, 4), nullable=False)
    currency = Column(String(3), nullable=False, default="usd")

    payee = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=LedgerStatus.UNCLEARED.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return (f"<LedgerTransaction(asset_id={self.asset_id}, external_id='{self.external_id}', "
                f"date={self.transaction_date}, amount={self.amount})>")


def create_tables(engine, drop_existing=False):
    """Create the ledger tables.

    Args:
        engine: SQLAlchemy engine
        drop_existing: If True, drop the tables first (destroys recorded transactions)
    """
    if drop_existing:
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
