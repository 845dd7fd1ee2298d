"""
Ordered extraction strategies.

Each strategy takes an :class:`ExtractionInput` and returns a value or
``None`` on a miss.  The registries at the bottom list them from the most
structured / most trustworthy source to the least; :func:`first_of` runs a
registry and stops at the first hit.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence, TypeVar

from checkledger.pipeline.flatten import corpus_text
from checkledger.schemas import CheckIdentity, RecognitionResult

T = TypeVar("T")

ROUTING_ALIASES = ("routing_number", "routing", "aba")
ACCOUNT_ALIASES = ("account_number", "account")
CHECK_ALIASES = ("check_number", "check_no", "cheque_number")
AMOUNT_ALIASES = ("amount", "amount_numeric", "legal_amount", "written_amount")
ENDORSEMENT_FLAGS = ("endorsement_present", "endorsement", "signature_present")

ENDORSEMENT_KEYWORDS = re.compile(r"endorse|endorsement|signed by|signature", re.IGNORECASE)

# Exactly nine digits, not part of a longer run
_ROUTING_RUN = re.compile(r"(?<!\d)\d{9}(?!\d)")
_DIGIT_RUN = re.compile(r"\d{4,}")
_AMOUNT_BODY = r"(?:\d{1,3}(?:[.,]\d{3})+|\d+)[.,]\d{2}"
_CURRENCY_AMOUNT = re.compile(r"(?:\$|USD\s?)\s*(" + _AMOUNT_BODY + r")(?!\d)", re.IGNORECASE)
_PLAIN_AMOUNT = re.compile(r"(?<![\d.,])(" + _AMOUNT_BODY + r")(?!\d)")
_ANY_DIGITS = re.compile(r"\d+")


@dataclass
class ExtractionInput:
    """Both sides of a recognition result plus the flattened fallback corpus."""
    front: dict[str, Any]
    back: dict[str, Any]
    summary: Optional[dict[str, Any]] = None
    text: str = ""
    back_text: str = ""
    sides: tuple = field(init=False)

    def __post_init__(self) -> None:
        self.sides = (self.front, self.back)

    @classmethod
    def from_recognition(cls, result: RecognitionResult) -> "ExtractionInput":
        summary = result.summary
        return cls(
            front=result.front,
            back=result.back,
            summary=summary,
            text=corpus_text(result.front, result.back, summary),
            back_text=corpus_text(result.back),
        )


def first_of(
    strategies: Sequence[Callable[..., Optional[T]]], *args: Any
) -> tuple[Optional[T], Optional[str]]:
    """Run *strategies* in order; return ``(value, strategy_name)`` of the first hit."""
    for strategy in strategies:
        value = strategy(*args)
        if value is not None and value != "":
            return value, strategy.__name__
    return None, None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scalar_text(value: Any) -> Optional[str]:
    """Strings and numbers as stripped text; anything else is a miss."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        # Positional notation; str() would give "1e-05"
        return format(Decimal(repr(value)), "f")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _lookup(sides: Sequence[dict[str, Any]], aliases: Sequence[str]) -> Optional[str]:
    for side in sides:
        for alias in aliases:
            value = _scalar_text(side.get(alias))
            if value:
                return value
    return None


def _is_true(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "true"


def _normalize_separators(raw: str) -> str:
    """Treat the last separator as the decimal point and drop the others."""
    whole, cents = raw[:-3], raw[-2:]
    return f"{re.sub(r'[.,]', '', whole)}.{cents}"


# ---------------------------------------------------------------------------
# Check identity
# ---------------------------------------------------------------------------

def combined_check_id(inp: ExtractionInput) -> Optional[str]:
    if not inp.summary:
        return None
    value = inp.summary.get("check_id")
    return value if isinstance(value, str) and value else None


def structured_identity(inp: ExtractionInput) -> Optional[CheckIdentity]:
    routing = _lookup(inp.sides, ROUTING_ALIASES)
    account = _lookup(inp.sides, ACCOUNT_ALIASES)
    check = _lookup(inp.sides, CHECK_ALIASES)
    if routing and account and check:
        return CheckIdentity(
            routing_number=routing, account_number=account, check_number=check
        )
    return None


def text_identity(inp: ExtractionInput) -> Optional[CheckIdentity]:
    routing_match = _ROUTING_RUN.search(inp.text)
    if not routing_match:
        return None
    routing = routing_match.group(0)
    others = [g for g in _DIGIT_RUN.findall(inp.text) if g != routing]
    if len(others) < 2:
        return None
    return CheckIdentity(
        routing_number=routing, account_number=others[0], check_number=others[1]
    )


# ---------------------------------------------------------------------------
# Amount
# ---------------------------------------------------------------------------

def structured_amount(inp: ExtractionInput) -> Optional[str]:
    return _lookup(inp.sides, AMOUNT_ALIASES)


def combined_amount(inp: ExtractionInput) -> Optional[str]:
    if not inp.summary:
        return None
    value = inp.summary.get("amount")
    return value if isinstance(value, str) and value else None


def currency_amount(inp: ExtractionInput) -> Optional[str]:
    m = _CURRENCY_AMOUNT.search(inp.text)
    return _normalize_separators(m.group(1)) if m else None


def plain_amount(inp: ExtractionInput) -> Optional[str]:
    m = _PLAIN_AMOUNT.search(inp.text)
    return _normalize_separators(m.group(1)) if m else None


def digit_run_amount(inp: ExtractionInput) -> Optional[str]:
    """Best effort: read a 4–7 digit run as dollars and cents run together.

    Easily fooled by account or check numbers in the transcript; it only
    runs when nothing better matched.
    """
    candidates = [g for g in _ANY_DIGITS.findall(inp.text) if 4 <= len(g) <= 7]
    if not candidates:
        return None
    best = max(candidates, key=len)
    dollars = int(best[:-2] or "0")
    return f"{dollars}.{best[-2:]}"


# ---------------------------------------------------------------------------
# Endorsement
# ---------------------------------------------------------------------------

def endorsement_flag(inp: ExtractionInput) -> Optional[bool]:
    for side in (inp.back, inp.front):
        if any(_is_true(side.get(name)) for name in ENDORSEMENT_FLAGS):
            return True
    return None


def endorsement_image(inp: ExtractionInput) -> Optional[bool]:
    for side in (inp.back, inp.front):
        if side.get("endorsement_image"):
            return True
    return None


def back_keywords(inp: ExtractionInput) -> Optional[bool]:
    return True if ENDORSEMENT_KEYWORDS.search(inp.back_text) else None


def corpus_keywords(inp: ExtractionInput) -> Optional[bool]:
    return True if ENDORSEMENT_KEYWORDS.search(inp.text) else None


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

IDENTITY_STRATEGIES = [structured_identity, text_identity]

AMOUNT_STRATEGIES = [
    structured_amount,
    combined_amount,
    currency_amount,
    plain_amount,
    digit_run_amount,
]

ENDORSEMENT_STRATEGIES = [
    endorsement_flag,
    endorsement_image,
    back_keywords,
    corpus_keywords,
]
