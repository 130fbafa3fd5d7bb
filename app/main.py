"""
Document vault backend: Gmail-only local signup/login, Google login, bearer
sessions, encrypted per-user document storage.

Load .env in development only (production uses env vars directly). Build
Settings once, wire the cipher, token issuer, password policy and Google
verifier onto app.state, add CORS, the upload size guard, envelope exception
handlers and optional DB init.
"""
import logging
import os
import traceback
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env only in development; production should set env vars directly
if os.getenv("ENV", "").lower() == "development":
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from config import Settings, load_settings
from crypto import DocumentCipher
from database import Base, make_engine, make_session_factory
from gmail import GmailAdmissionPolicy
from google_auth import GoogleIdentityVerifier
from middleware import RequestSizeLimitMiddleware
from passwords import PasswordPolicy
from schemas import error_response
from security import TokenIssuer
import models  # noqa: F401  (registers tables on Base.metadata)
from auth import router as auth_router
from documents import router as documents_router

logger = logging.getLogger(__name__)


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return messages


def create_app(
    settings: Settings | None = None,
    *,
    google_verifier: GoogleIdentityVerifier | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Document Vault Backend",
        description="Gmail-only authentication (local and Google) and encrypted document storage.",
    )

    engine = make_engine(settings.database_url)
    # Create DB tables if not skipping (production uses migrations)
    if not settings.skip_db_init:
        Base.metadata.create_all(bind=engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.cipher = DocumentCipher.from_material(settings.encryption_key)
    app.state.passwords = PasswordPolicy(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_seconds=settings.jwt_expires_seconds,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )
    app.state.google_verifier = google_verifier or GoogleIdentityVerifier(
        settings.google_client_id,
        GmailAdmissionPolicy(),
        timeout=settings.google_request_timeout,
    )

    # CORS: explicit origin only. Bearer tokens travel in headers, not cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url else [],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Validation failed", _validation_messages(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions; log and return generic 500. Stack traces only in development."""
        logger.exception("Unhandled exception on %s: %s", request.url.path, exc)
        errors = []
        if settings.is_development:
            errors = [str(exc), "".join(traceback.format_exception(exc))]
        return error_response(500, "An internal server error occurred", errors)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router)
    app.include_router(documents_router)
    return app


app = create_app()


def run():
    """Serve the app with uvicorn (the docvault console script)."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=app.state.settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
