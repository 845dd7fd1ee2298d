"""
Shared pytest fixtures: in-memory SQLite + FastAPI TestClient, with the
outbound HTTP collaborators replaced by httpx mock transports.
"""
import json
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", tempfile.gettempdir())

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from checkledger.auth import hash_token  # noqa: E402
from checkledger.config import Settings  # noqa: E402
from checkledger.database import Base, get_db  # noqa: E402
from checkledger.models import InternalAccountModel, UserModel  # noqa: F401,E402  register models
from checkledger.main import app  # noqa: E402
from checkledger.services import get_deposit_forwarder, get_recognition_client  # noqa: E402
from checkledger.services.forwarder import DepositForwarder  # noqa: E402
from checkledger.services.recognition import RecognitionClient  # noqa: E402

USER_TOKEN = "user-token-123"
OTHER_TOKEN = "other-token-456"
INTERNAL_KEY = "internal-key-789"

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def user(db):
    row = UserModel(email="payee@example.com", api_token_hash=hash_token(USER_TOKEN))
    db.add(row)
    db.commit()
    return row


@pytest.fixture()
def other_user(db):
    row = UserModel(email="other@example.com", api_token_hash=hash_token(OTHER_TOKEN))
    db.add(row)
    db.commit()
    return row


@pytest.fixture()
def account(db, user):
    row = InternalAccountModel(user_id=user.id, account_number="ACC-0001", is_active=True)
    db.add(row)
    db.commit()
    return row


@pytest.fixture()
def auth_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


def vision_payload(parsed: dict) -> dict:
    """Wrap *parsed* the way the Responses API returns model output."""
    return {
        "id": "resp_1",
        "output": [
            {
                "type": "message",
                "content": [{"type": "output_text", "text": json.dumps(parsed)}],
            }
        ],
    }


class ProviderStub:
    """Scripted recognition provider behind an httpx.MockTransport."""

    def __init__(self):
        self.responses: list[httpx.Response] = []
        self.requests: list[httpx.Request] = []
        self.error: Exception | None = None

    def queue(self, status_code: int = 200, body: dict | None = None) -> None:
        self.responses.append(httpx.Response(status_code, json=body or {}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


class DownstreamStub:
    """Records deposit forwards; answers with a scripted status."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 201
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"id": 42, "status": "approved"})


@pytest.fixture()
def provider():
    return ProviderStub()


@pytest.fixture()
def downstream():
    return DownstreamStub()


@pytest.fixture()
def vision_settings():
    return Settings(
        OPENAI_API_KEY="sk-test",
        OPENAI_RESPONSES_URL="https://vision.test/v1/responses",
        APP_BASE_URL="https://bank.test",
        INTERNAL_API_KEY=INTERNAL_KEY,
    )


@pytest.fixture()
def ocr_settings():
    return Settings(
        CHECK_OCR_API_URL="https://ocr.test/parse/image",
        CHECK_OCR_API_KEY="ocr-key",
        APP_BASE_URL="https://bank.test",
    )


@pytest.fixture()
def client(db, provider, downstream, vision_settings):
    def _override():
        try:
            yield db
        finally:
            pass

    def _recognizer():
        recognizer = RecognitionClient(
            vision_settings, httpx.Client(transport=httpx.MockTransport(provider))
        )
        try:
            yield recognizer
        finally:
            recognizer.close()

    def _forwarder():
        forwarder = DepositForwarder(
            vision_settings, httpx.Client(transport=httpx.MockTransport(downstream))
        )
        try:
            yield forwarder
        finally:
            forwarder.close()

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_recognition_client] = _recognizer
    app.dependency_overrides[get_deposit_forwarder] = _forwarder
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
