"""
Check verification endpoint.

POST /api/check-verification: front + back images to check id, amount,
                                endorsement flag; forwards the deposit
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from sqlalchemy.orm import Session

from checkledger.auth import get_current_user
from checkledger.config import settings
from checkledger.database import get_db
from checkledger.models.account import InternalAccountModel, UserModel
from checkledger.pipeline import process_recognition
from checkledger.schemas import CheckDebug, CheckVerificationResponse
from checkledger.services import get_deposit_forwarder, get_recognition_client
from checkledger.services.forwarder import DepositForwarder
from checkledger.services.recognition import (
    RecognitionClient,
    RecognitionNotConfigured,
    RecognitionServiceError,
    dump_debug,
    plain_text,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _read_image(upload: Optional[UploadFile]) -> bytes:
    if upload is None:
        return b""
    return upload.file.read()


def find_destination_account(db: Session, user: UserModel) -> Optional[InternalAccountModel]:
    return (
        db.query(InternalAccountModel)
        .filter(InternalAccountModel.user_id == user.id, InternalAccountModel.is_active == True)  # noqa: E712
        .order_by(InternalAccountModel.id)
        .first()
    )


# ── POST /api/check-verification ─────────────────────────────────────────
@router.post("/check-verification", status_code=201, response_model=CheckVerificationResponse)
def verify_check(
    front: Optional[UploadFile] = File(None),
    back: Optional[UploadFile] = File(None),
    authorization: str = Header(""),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    recognizer: RecognitionClient = Depends(get_recognition_client),
    forwarder: DepositForwarder = Depends(get_deposit_forwarder),
):
    front_bytes = _read_image(front)
    back_bytes = _read_image(back)
    if not front_bytes or not back_bytes:
        raise HTTPException(status_code=400, detail="Both 'front' and 'back' images are required.")

    logger.info("Check verification: user=%s front=%d back=%d bytes",
                user.id, len(front_bytes), len(back_bytes))

    try:
        recognition = recognizer.recognize(front_bytes, back_bytes)
    except RecognitionNotConfigured:
        logger.error("No recognition provider configured")
        raise HTTPException(status_code=500, detail="OCR service not configured.")
    except RecognitionServiceError as e:
        logger.error("Vision/OCR call failed: %s", e)
        raise HTTPException(status_code=502, detail="OCR/vision service error")

    if settings.OCR_DEBUG:
        dump_debug(recognition, settings.OCR_DEBUG_DIR)

    extracted, amount_cents = process_recognition(recognition)
    if not extracted.check_id:
        raise HTTPException(status_code=400, detail="Could not extract check ID from images.")

    forwarded = False
    account = find_destination_account(db, user)
    if account is not None and amount_cents is not None and amount_cents > 0:
        result = forwarder.forward(
            account_number=account.account_number,
            amount_cents=amount_cents,
            check_id=extracted.check_id,
            authorization=authorization,
        )
        forwarded = result.ok
    else:
        logger.warning(
            "No destination account or positive amount; skipping deposit forward "
            "(check_id=%s amount_cents=%s)", extracted.check_id, amount_cents,
        )

    debug = None
    if settings.OCR_DEBUG:
        debug = CheckDebug(
            ocr_front=recognition.front,
            ocr_back=recognition.back,
            parsed_text=f"{plain_text(recognition.front)}\n{plain_text(recognition.back)}",
            combined=recognition.combined,
            sources=extracted.sources,
        )

    return CheckVerificationResponse(
        check_id=extracted.check_id,
        amount=extracted.amount,
        amount_cents=amount_cents,
        endorsement_present=extracted.endorsement_present,
        deposit_forwarded=forwarded,
        debug=debug,
    )
