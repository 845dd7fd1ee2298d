"""
checkledger contracts: pydantic v2 models shared by the pipeline,
the services and the HTTP layer.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------

class RecognitionResult(BaseModel):
    """Raw provider output for one submission. Read-only, never persisted."""
    provider: Literal["vision", "ocr"]
    front: dict[str, Any] = Field(default_factory=dict)
    back: dict[str, Any] = Field(default_factory=dict)
    combined: Optional[dict[str, Any]] = Field(
        None, description="Whole vision-model response (front, back, combined)"
    )

    @property
    def summary(self) -> Optional[dict[str, Any]]:
        """The pre-combined ``combined`` block of a vision-model response."""
        if not self.combined:
            return None
        block = self.combined.get("combined")
        return block if isinstance(block, dict) else None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class CheckIdentity(BaseModel):
    routing_number: str
    account_number: str
    check_number: str

    def render(self) -> str:
        return f"{self.routing_number}_{self.account_number}_{self.check_number}"


class ExtractedCheck(BaseModel):
    """Canonical facts recovered from recognition output."""
    check_id: Optional[str] = None
    identity: Optional[CheckIdentity] = None
    amount: Optional[str] = None
    endorsement_present: bool = False
    sources: dict[str, str] = Field(
        default_factory=dict, description="field -> strategy that produced it"
    )


# ---------------------------------------------------------------------------
# Check verification envelopes
# ---------------------------------------------------------------------------

class CheckDebug(BaseModel):
    ocr_front: dict[str, Any] = Field(default_factory=dict)
    ocr_back: dict[str, Any] = Field(default_factory=dict)
    parsed_text: str = ""
    combined: Optional[dict[str, Any]] = None
    sources: dict[str, str] = Field(default_factory=dict)


class CheckVerificationResponse(BaseModel):
    message: str = "Check processed"
    check_id: str
    amount: Optional[str] = None
    amount_cents: Optional[int] = None
    endorsement_present: bool
    deposit_forwarded: bool = False
    debug: Optional[CheckDebug] = None


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class TransactionCreate(BaseModel):
    """Deposit / movement instruction accepted by the transaction API."""
    requested_transaction_type: Literal["deposit", "withdrawal", "transfer", "bill_pay"]
    transaction_direction: Literal["inbound", "outbound"]
    destination_account_number: str
    requested_amount: int = Field(..., description="Amount in cents")
    description: Optional[str] = None
    check_number: Optional[str] = None
    bill_pay_rule_id: Optional[int] = None
    transfer_rule_id: Optional[int] = None


class TransactionResult(BaseModel):
    id: int
    status: str
    duplicate: bool = False
    message: str


class TransactionResponse(BaseModel):
    id: int
    internal_account_id: int
    amount_cents: int
    transaction_type: str
    direction: str
    idempotency_key: Optional[str] = None
    check_number: Optional[str] = None
    bill_pay_rule_id: Optional[int] = None
    transfer_rule_id: Optional[int] = None
    description: Optional[str] = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
