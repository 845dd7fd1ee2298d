"""
Amount canonicalizer: free-form decimal text to integer cents.
"""
from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

_DISALLOWED = re.compile(r"[^0-9.\-]")
_CENT = Decimal("0.01")


def canonicalize_amount(text: str | None) -> int | None:
    """Convert *text* into an exact minor-unit (cents) amount.

    Every character other than digits, ``.`` and ``-`` is dropped; a minus
    sign is honoured only in leading position and at most one decimal point
    is accepted.  The value is rounded to the nearest cent with
    ``ROUND_HALF_UP`` (``"0.005"`` -> ``1``, ``"-0.005"`` -> ``-1``).

    Returns ``None`` when nothing parsable or finite remains.  That is a
    degraded outcome, not an error: it is logged and the caller carries on
    without an amount.
    """
    if text is None:
        return None

    cleaned = _DISALLOWED.sub("", str(text))
    negative = cleaned.startswith("-")
    digits = cleaned.replace("-", "")

    if not digits or digits == "." or digits.count(".") > 1:
        logger.warning("Unable to parse amount: %r", text)
        return None

    try:
        value = Decimal(digits)
    except InvalidOperation:
        logger.warning("Unable to parse amount: %r", text)
        return None

    if not value.is_finite():
        logger.warning("Amount is not finite: %r", text)
        return None

    if negative:
        value = -value
    try:
        # Past the context precision quantize signals InvalidOperation
        cents = value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100
    except InvalidOperation:
        logger.warning("Amount out of range: %r", text)
        return None
    return int(cents)


def format_cents(cents: int) -> str:
    """Render a cents amount as a two-place decimal string."""
    sign = "-" if cents < 0 else ""
    dollars, rem = divmod(abs(cents), 100)
    return f"{sign}{dollars}.{rem:02d}"
