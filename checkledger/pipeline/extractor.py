"""
Field extraction engine.

Recovers the check identity, the amount string and the endorsement flag from
a :class:`RecognitionResult` by running the strategy registries in
:mod:`checkledger.pipeline.strategies`.
"""
from __future__ import annotations

import logging

from checkledger.pipeline.strategies import (
    AMOUNT_STRATEGIES,
    ENDORSEMENT_STRATEGIES,
    IDENTITY_STRATEGIES,
    ExtractionInput,
    combined_check_id,
    first_of,
)
from checkledger.schemas import ExtractedCheck, RecognitionResult

logger = logging.getLogger(__name__)


def extract_check_fields(result: RecognitionResult) -> ExtractedCheck:
    inp = ExtractionInput.from_recognition(result)
    sources: dict[str, str] = {}

    # A pre-combined id from the vision model is used verbatim
    check_id = combined_check_id(inp)
    identity = None
    if check_id:
        sources["check_id"] = "combined_check_id"
    else:
        identity, source = first_of(IDENTITY_STRATEGIES, inp)
        if identity is not None:
            check_id = identity.render()
            sources["check_id"] = source

    amount, source = first_of(AMOUNT_STRATEGIES, inp)
    if amount is not None:
        sources["amount"] = source

    endorsed, source = first_of(ENDORSEMENT_STRATEGIES, inp)
    if endorsed:
        sources["endorsement_present"] = source

    logger.info(
        "Extracted check_id=%s amount=%s endorsed=%s via %s",
        check_id, amount, bool(endorsed), sources,
    )
    return ExtractedCheck(
        check_id=check_id,
        identity=identity,
        amount=amount,
        endorsement_present=bool(endorsed),
        sources=sources,
    )
