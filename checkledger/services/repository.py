"""
Storage boundary for the transaction ledger.

Translates the database's unique-index violation into :class:`UniqueViolation`
so the ledger writer can tell a lost race apart from any other failure.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkledger.models.transaction import STATUS_APPROVED, TransactionModel

logger = logging.getLogger(__name__)


class UniqueViolation(Exception):
    """Insert rejected by a ledger uniqueness constraint."""


def _is_unique_violation(exc: IntegrityError) -> bool:
    # 23505 is unique_violation on PostgreSQL; SQLite only reports a message
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()


@dataclass(frozen=True)
class DedupCriteria:
    transaction_type: str
    internal_account_id: int
    amount_cents: int
    idempotency_key: Optional[str] = None
    check_number: Optional[str] = None
    bill_pay_rule_id: Optional[int] = None
    transfer_rule_id: Optional[int] = None


class TransactionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_one(self, criteria: DedupCriteria) -> Optional[TransactionModel]:
        """Existing row with the same base fields and a matching key, if any."""
        # Either key may have been stored in either column by an earlier caller
        keys = [k for k in (criteria.idempotency_key, criteria.check_number) if k]
        if not keys:
            return None
        key_clauses = [
            TransactionModel.idempotency_key.in_(keys),
            TransactionModel.check_number.in_(keys),
        ]

        query = self.db.query(TransactionModel).filter(
            TransactionModel.status == STATUS_APPROVED,
            TransactionModel.transaction_type == criteria.transaction_type,
            TransactionModel.internal_account_id == criteria.internal_account_id,
            TransactionModel.amount_cents == criteria.amount_cents,
            or_(*key_clauses),
        )
        if criteria.bill_pay_rule_id:
            query = query.filter(TransactionModel.bill_pay_rule_id == criteria.bill_pay_rule_id)
        if criteria.transfer_rule_id:
            query = query.filter(TransactionModel.transfer_rule_id == criteria.transfer_rule_id)
        return query.order_by(TransactionModel.id).first()

    def insert(self, record: TransactionModel) -> TransactionModel:
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_unique_violation(e):
                raise
            logger.info("Insert lost to an existing ledger row: %s", e.orig)
            raise UniqueViolation(str(e.orig)) from e
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record
