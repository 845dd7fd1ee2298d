"""
checkledger extraction pipeline.

Orchestrates: extract fields, then canonicalize amount.
"""
import logging
from typing import Optional

from checkledger.schemas import ExtractedCheck, RecognitionResult
from checkledger.pipeline.extractor import extract_check_fields
from checkledger.pipeline.amount import canonicalize_amount

logger = logging.getLogger(__name__)


def process_recognition(
    result: RecognitionResult,
) -> tuple[ExtractedCheck, Optional[int]]:
    """Run extraction and amount canonicalization on a recognition result.

    Returns ``(extracted, amount_cents)``; ``amount_cents`` is ``None`` when
    no amount was found or it could not be parsed.
    """
    logger.info("Pipeline start: extract fields (%s)", result.provider)
    extracted = extract_check_fields(result)

    amount_cents = None
    if extracted.amount is not None:
        logger.info("Pipeline: canonicalize amount")
        amount_cents = canonicalize_amount(extracted.amount)
    logger.info("Pipeline done: check_id=%s amount_cents=%s", extracted.check_id, amount_cents)
    return extracted, amount_cents
