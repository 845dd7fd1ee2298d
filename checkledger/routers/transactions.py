"""
Ledger API endpoints.

POST /api/transactions        idempotent money movement (deposit target of
                              the check forwarder)
GET  /api/transactions        caller's ledger
GET  /api/transactions/{id}   one ledger entry
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from checkledger.auth import Principal, get_current_user, get_principal
from checkledger.config import settings
from checkledger.database import get_db
from checkledger.models.account import InternalAccountModel, UserModel
from checkledger.models.transaction import TransactionModel
from checkledger.schemas import TransactionCreate, TransactionResponse, TransactionResult
from checkledger.services.ledger import LedgerEntry, record_approved, record_denied

logger = logging.getLogger(__name__)
router = APIRouter()


def _resolve_account(
    db: Session, principal: Principal, account_number: str
) -> InternalAccountModel:
    query = db.query(InternalAccountModel).filter(
        InternalAccountModel.account_number == account_number
    )
    if not principal.is_service:
        query = query.filter(InternalAccountModel.user_id == principal.user.id)
    account = query.first()
    if account is None:
        raise HTTPException(status_code=404, detail="Destination account not found")
    return account


def _denial_reason(req: TransactionCreate, account: InternalAccountModel) -> Optional[str]:
    """Business validation that must pass before any money moves."""
    if req.requested_amount <= 0:
        return "Amount must be > 0"
    if not account.is_active:
        return "Destination account is inactive"
    if req.requested_transaction_type == "deposit" and req.requested_amount > settings.MAX_DEPOSIT_CENTS:
        return "Amount exceeds deposit limit"
    return None


# ── POST /api/transactions ───────────────────────────────────────────────
@router.post("/transactions", status_code=201, response_model=TransactionResult)
def create_transaction(
    req: TransactionCreate,
    idempotency_key: Optional[str] = Header(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    account = _resolve_account(db, principal, req.destination_account_number)
    entry = LedgerEntry(
        internal_account_id=account.id,
        amount_cents=req.requested_amount,
        transaction_type=req.requested_transaction_type,
        direction=req.transaction_direction,
        idempotency_key=idempotency_key or None,
        check_number=req.check_number,
        bill_pay_rule_id=req.bill_pay_rule_id,
        transfer_rule_id=req.transfer_rule_id,
        description=req.description,
    )
    logger.info(
        "Transaction request: type=%s account=%s amount=%d key=%s",
        entry.transaction_type, account.id, entry.amount_cents, entry.idempotency_key,
    )

    reason = _denial_reason(req, account)
    if reason is not None:
        outcome = record_denied(db, entry, reason)
        denied = TransactionResult(
            id=outcome.transaction.id, status=outcome.status, message=reason
        )
        return JSONResponse(status_code=422, content=denied.model_dump())

    outcome = record_approved(db, entry)
    if outcome.transaction is None:
        # Constraint fired but the winning row is not visible to this session
        raise HTTPException(
            status_code=409, detail="Conflicting transaction already recorded"
        )
    message = "Transaction recorded."
    if outcome.duplicate:
        message = "Transaction recorded (idempotency key found)."
    return TransactionResult(
        id=outcome.transaction.id,
        status=outcome.status,
        duplicate=outcome.duplicate,
        message=message,
    )


# ── GET /api/transactions ────────────────────────────────────────────────
@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(TransactionModel)
        .join(InternalAccountModel, InternalAccountModel.id == TransactionModel.internal_account_id)
        .filter(InternalAccountModel.user_id == user.id)
        .order_by(TransactionModel.id.desc())
        .all()
    )
    logger.info("Found %d transactions for user %s", len(rows), user.id)
    return rows


# ── GET /api/transactions/{transaction_id} ───────────────────────────────
@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = (
        db.query(TransactionModel)
        .join(InternalAccountModel, InternalAccountModel.id == TransactionModel.internal_account_id)
        .filter(TransactionModel.id == transaction_id, InternalAccountModel.user_id == user.id)
        .first()
    )
    if not row:
        logger.warning("Transaction not found: %s", transaction_id)
        raise HTTPException(status_code=404, detail="Transaction not found")
    return row
