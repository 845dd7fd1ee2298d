"""
Bearer-token authentication.

User tokens are stored as SHA-256 digests.  The internal service key
(``INTERNAL_API_KEY``) identifies the deposit forwarder and is accepted by
the transaction API only.
"""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from checkledger.config import settings
from checkledger.database import get_db
from checkledger.models.account import UserModel


@dataclass
class Principal:
    user: Optional[UserModel] = None
    is_service: bool = False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return token.strip()


def _lookup_user(db: Session, token: str) -> Optional[UserModel]:
    return db.query(UserModel).filter(UserModel.api_token_hash == hash_token(token)).first()


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> UserModel:
    """Authenticated end user"""
    user = _lookup_user(db, _bearer_token(authorization))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_principal(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Principal:
    """End user or the internal service"""
    token = _bearer_token(authorization)
    internal_key = settings.INTERNAL_API_KEY
    if internal_key and hmac.compare_digest(token.encode("utf-8"), internal_key.encode("utf-8")):
        return Principal(is_service=True)
    user = _lookup_user(db, token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Principal(user=user)
