"""
Shared fixtures for the document vault tests.

Environment defaults are set before any app module is imported so that
main.create_app() at import time finds its required secrets. Each test gets a
fresh in-memory SQLite database and a stub Google token verifier whose
accepted tokens are registered through the google_tokens fixture.
"""
import base64
import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret-please-change")
os.environ.setdefault("ENCRYPTION_KEY", base64.b64encode(b"k" * 32).decode())
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client.apps.googleusercontent.com")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from config import Settings
from crypto import DocumentCipher
from database import Base, make_engine, make_session_factory
from gmail import GmailAdmissionPolicy
from google_auth import GoogleIdentityVerifier
from main import create_app
from passwords import PasswordPolicy
from repositories import DocumentRepository, UserRepository
from security import TokenIssuer
from services.auth_service import AuthService

CLIENT_ID = "test-client.apps.googleusercontent.com"
STRONG_PASSWORD = "Str0ng!Pass"


def google_claims(sub="google-sub-1", email="jane.doe@gmail.com", verified=True, **extra):
    claims = {"sub": sub, "email": email, "email_verified": verified}
    claims.update(extra)
    return claims


@pytest.fixture()
def settings():
    return Settings(
        jwt_secret="test-jwt-secret-please-change",
        encryption_key=base64.b64encode(b"k" * 32).decode(),
        google_client_id=CLIENT_ID,
        database_url="sqlite://",
        env="test",
        bcrypt_rounds=4,
    )


@pytest.fixture()
def google_tokens():
    """Maps ID token strings to the claims the stub verifier returns for them."""
    return {}


@pytest.fixture()
def google_verifier(google_tokens):
    def verify(token, request, audience):
        assert audience == CLIENT_ID
        if token not in google_tokens:
            raise ValueError("Token used too late or signature invalid")
        return dict(google_tokens[token])

    return GoogleIdentityVerifier(CLIENT_ID, GmailAdmissionPolicy(), verify_token=verify)


@pytest.fixture()
def db():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def passwords():
    return PasswordPolicy(rounds=4)


@pytest.fixture()
def tokens(settings):
    return TokenIssuer(
        settings.jwt_secret,
        expires_seconds=settings.jwt_expires_seconds,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )


@pytest.fixture()
def cipher(settings):
    return DocumentCipher.from_material(settings.encryption_key)


@pytest.fixture()
def users(db):
    return UserRepository(db)


@pytest.fixture()
def document_repo(db):
    return DocumentRepository(db)


@pytest.fixture()
def auth_service(users, passwords, tokens, google_verifier):
    return AuthService(users, passwords, tokens, google_verifier)


@pytest.fixture()
def app(settings, google_verifier):
    return create_app(settings, google_verifier=google_verifier)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def signed_up(client):
    """Register a local user over HTTP and return (token, user payload)."""

    def _signup(email="john.doe@gmail.com", name="John Doe", password=STRONG_PASSWORD):
        r = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
        assert r.status_code == 200, r.text
        data = r.json()["data"]
        return data["token"], data["user"]

    return _signup


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
