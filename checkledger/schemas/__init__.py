from checkledger.schemas.base import (  # noqa: F401
    CheckDebug,
    CheckIdentity,
    CheckVerificationResponse,
    ExtractedCheck,
    RecognitionResult,
    TransactionCreate,
    TransactionResponse,
    TransactionResult,
)
