"""
Users and their internal (destination) accounts.
"""
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey
from datetime import datetime
from checkledger.database import Base


class UserModel(Base):
    """Authenticated caller"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    api_token_hash = Column(String(64), nullable=False, unique=True)  # sha256 hex of the bearer token
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class InternalAccountModel(Base):
    """Account that receives check deposits"""
    __tablename__ = "internal_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_number = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
