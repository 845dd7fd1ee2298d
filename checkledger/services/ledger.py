"""
Idempotent ledger writer.

    lookup (best effort) -> insert approved -> unique violation? -> duplicate

The lookup only saves a round trip through the constraint; the partial
unique indexes on ``transactions`` decide which of two concurrent writers
wins.  Records are appended, never updated or deleted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from checkledger.models.transaction import (
    STATUS_APPROVED,
    STATUS_DENIED,
    TransactionModel,
)
from checkledger.services.repository import (
    DedupCriteria,
    TransactionRepository,
    UniqueViolation,
)

logger = logging.getLogger(__name__)


@dataclass
class LedgerEntry:
    internal_account_id: int
    amount_cents: int
    transaction_type: str
    direction: str
    idempotency_key: Optional[str] = None
    check_number: Optional[str] = None
    bill_pay_rule_id: Optional[int] = None
    transfer_rule_id: Optional[int] = None
    description: Optional[str] = None

    def criteria(self) -> DedupCriteria:
        return DedupCriteria(
            transaction_type=self.transaction_type,
            internal_account_id=self.internal_account_id,
            amount_cents=self.amount_cents,
            idempotency_key=self.idempotency_key,
            check_number=self.check_number,
            bill_pay_rule_id=self.bill_pay_rule_id,
            transfer_rule_id=self.transfer_rule_id,
        )

    def to_model(self, status: str) -> TransactionModel:
        return TransactionModel(
            internal_account_id=self.internal_account_id,
            amount_cents=self.amount_cents,
            transaction_type=self.transaction_type,
            direction=self.direction,
            idempotency_key=self.idempotency_key,
            check_number=self.check_number,
            bill_pay_rule_id=self.bill_pay_rule_id,
            transfer_rule_id=self.transfer_rule_id,
            description=self.description,
            status=status,
        )


@dataclass
class LedgerOutcome:
    transaction: Optional[TransactionModel]
    duplicate: bool = False

    @property
    def status(self) -> Optional[str]:
        return self.transaction.status if self.transaction is not None else None


def dedup_key(idempotency_key: Optional[str], check_number: Optional[str]) -> Optional[str]:
    """Key used to collapse retries: the idempotency key, else the check number."""
    return idempotency_key or check_number or None


def record_approved(db: Session, entry: LedgerEntry) -> LedgerOutcome:
    repo = TransactionRepository(db)
    criteria = entry.criteria()

    existing = repo.find_one(criteria)
    if existing is not None:
        logger.info(
            "Duplicate %s for account %s (key=%s) -> transaction %s",
            entry.transaction_type, entry.internal_account_id,
            dedup_key(entry.idempotency_key, entry.check_number), existing.id,
        )
        return LedgerOutcome(transaction=existing, duplicate=True)

    try:
        created = repo.insert(entry.to_model(STATUS_APPROVED))
    except UniqueViolation:
        # A concurrent writer committed the same movement first
        winner = repo.find_one(criteria)
        logger.info(
            "Concurrent duplicate %s for account %s resolved to transaction %s",
            entry.transaction_type, entry.internal_account_id,
            winner.id if winner is not None else None,
        )
        return LedgerOutcome(transaction=winner, duplicate=True)

    logger.info(
        "Approved %s of %d cents for account %s -> transaction %s",
        entry.transaction_type, entry.amount_cents, entry.internal_account_id, created.id,
    )
    return LedgerOutcome(transaction=created)


def record_denied(db: Session, entry: LedgerEntry, reason: str) -> LedgerOutcome:
    """Append an informational ``denied`` row; never deduplicated."""
    created = TransactionRepository(db).insert(entry.to_model(STATUS_DENIED))
    logger.warning(
        "Denied %s of %d cents for account %s: %s (transaction %s)",
        entry.transaction_type, entry.amount_cents, entry.internal_account_id,
        reason, created.id,
    )
    return LedgerOutcome(transaction=created)
