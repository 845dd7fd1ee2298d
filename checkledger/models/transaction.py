"""
Append-only ledger of money movements.

At most one ``approved`` row may exist per
``(transaction_type, internal_account_id, amount_cents, rule ref, key)``
where the key is either the idempotency key or the check number.  This is
enforced by the partial unique indexes below, not by application code, so
concurrent writers on separate processes cannot both succeed.
"""
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    and_,
    func,
)
from datetime import datetime
from checkledger.database import Base

TRANSACTION_TYPES = ("deposit", "withdrawal", "transfer", "bill_pay")
DIRECTIONS = ("inbound", "outbound")
STATUS_APPROVED = "approved"
STATUS_DENIED = "denied"


class TransactionModel(Base):
    """Ledger entry"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    internal_account_id = Column(
        Integer, ForeignKey("internal_accounts.id"), nullable=False, index=True
    )
    amount_cents = Column(Integer, nullable=False)  # minor units, exact
    transaction_type = Column(String, nullable=False)  # deposit, withdrawal, transfer, bill_pay
    direction = Column(String, nullable=False)  # inbound, outbound
    idempotency_key = Column(String)
    check_number = Column(String)
    bill_pay_rule_id = Column(Integer)
    transfer_rule_id = Column(Integer)
    description = Column(Text)
    status = Column(String, nullable=False)  # approved, denied
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


def _dedup_index(name: str, key_column) -> Index:
    where = and_(TransactionModel.status == STATUS_APPROVED, key_column.isnot(None))
    return Index(
        name,
        TransactionModel.transaction_type,
        TransactionModel.internal_account_id,
        TransactionModel.amount_cents,
        func.coalesce(TransactionModel.bill_pay_rule_id, 0),
        func.coalesce(TransactionModel.transfer_rule_id, 0),
        key_column,
        unique=True,
        sqlite_where=where,
        postgresql_where=where,
    )


uq_transactions_idempotency_key = _dedup_index(
    "uq_transactions_idempotency_key", TransactionModel.idempotency_key
)
uq_transactions_check_number = _dedup_index(
    "uq_transactions_check_number", TransactionModel.check_number
)
