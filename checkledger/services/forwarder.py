"""
Deposit forwarder: posts one idempotent deposit instruction downstream.

Forwarding is best effort: the check has already been recognized, so a
failed forward is logged and reported back to the caller, never raised.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from checkledger.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def deposit_idempotency_key(check_id: str) -> str:
    return "check-id-" + _UNSAFE_KEY_CHARS.sub("-", str(check_id))


@dataclass
class ForwardResult:
    ok: bool
    status_code: Optional[int] = None
    transaction_id: Optional[int] = None
    idempotency_key: Optional[str] = None


class DepositForwarder:
    def __init__(
        self,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or default_settings
        self.http = http_client or httpx.Client(
            timeout=self.config.FORWARD_TIMEOUT_SECONDS
        )

    def close(self) -> None:
        self.http.close()

    @property
    def endpoint(self) -> str:
        return f"{self.config.APP_BASE_URL.rstrip('/')}/api/transactions"

    def _authorization(self, caller_authorization: str) -> str:
        if self.config.INTERNAL_API_KEY:
            return f"Bearer {self.config.INTERNAL_API_KEY}"
        return caller_authorization

    def forward(
        self,
        account_number: str,
        amount_cents: int,
        check_id: str,
        authorization: str = "",
    ) -> ForwardResult:
        key = deposit_idempotency_key(check_id)
        headers = {
            "Content-Type": "application/json",
            "Authorization": self._authorization(authorization),
            "Idempotency-Key": key,
        }
        body = {
            "requested_transaction_type": "deposit",
            "transaction_direction": "inbound",
            "destination_account_number": account_number,
            "requested_amount": amount_cents,
            "description": f"Check deposit for check_id={check_id}",
            "check_number": check_id,
        }

        try:
            resp = self.http.post(self.endpoint, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error("Failed to forward deposit (key=%s): %s", key, e)
            return ForwardResult(ok=False, idempotency_key=key)

        if not resp.is_success:
            logger.error("Deposit forward failed: %s %s", resp.status_code, resp.text)
            return ForwardResult(ok=False, status_code=resp.status_code, idempotency_key=key)

        transaction_id = None
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("id"), int):
            transaction_id = payload["id"]
            logger.info("Deposit created, transaction id: %s", transaction_id)
        return ForwardResult(
            ok=True,
            status_code=resp.status_code,
            transaction_id=transaction_id,
            idempotency_key=key,
        )
