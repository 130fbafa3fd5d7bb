"""
Auth router: signup, password login, Google login, Gmail validation, current user.

- Signup/login/google-login delegate to services.auth_service and translate
  the AuthResult failure kind into an HTTP status.
- get_current_user dependency reads the bearer token from the Authorization
  header and returns the Identity (used by the document router).
- Every bearer failure (missing, malformed, expired, forged, unknown user)
  gets the same 401 so the response reveals nothing about the token.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from identities import Identity
from repositories import UserRepository
from schemas import (
    ApiResponse,
    AuthOut,
    GoogleLoginRequest,
    LoginRequest,
    SignupRequest,
    UserOut,
    error_response,
)
from services.auth_service import AuthResult, AuthService, FailureKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

bearer_scheme = HTTPBearer(auto_error=False)

FAILURE_STATUS = {
    FailureKind.VALIDATION: 400,
    FailureKind.AUTHENTICATION: 401,
    FailureKind.UPSTREAM_VERIFICATION: 401,
    FailureKind.CONFLICT: 409,
    FailureKind.NOT_FOUND: 404,
    FailureKind.INTERNAL: 500,
}


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(
        users=UserRepository(db),
        passwords=state.passwords,
        tokens=state.tokens,
        google=state.google_verifier,
    )


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Identity:
    """
    FastAPI dependency: verify the bearer JWT and load the Identity.
    Raises 401 if the header is missing, the token is invalid/expired, or the user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    user_id = request.app.state.tokens.extract_identity_id(credentials.credentials)
    if not user_id:
        raise _unauthorized()
    user = UserRepository(db).find_by_id(user_id)
    if not user:
        raise _unauthorized()
    return user


def _respond(result: AuthResult):
    if result.success:
        data = AuthOut(token=result.token, user=UserOut.from_identity(result.identity))
        return ApiResponse[AuthOut].ok(data, result.message)
    return error_response(FAILURE_STATUS[result.failure], result.message, result.errors)


@router.post("/signup", response_model=ApiResponse[AuthOut])
def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)):
    """Register a local user with name, Gmail address and password."""
    result = service.signup(body.name, body.email, body.password)
    if result.success:
        logger.info("User %s registered successfully", result.identity.email)
    else:
        logger.warning("Registration failed for %s: %s", body.email, result.message)
    return _respond(result)


@router.post("/login", response_model=ApiResponse[AuthOut])
def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Authenticate a local user with email and password."""
    result = service.login(body.email, body.password)
    if not result.success:
        logger.warning("Login failed for %s: %s", body.email, result.message)
    return _respond(result)


@router.post("/google-login", response_model=ApiResponse[AuthOut])
def google_login(body: GoogleLoginRequest, service: AuthService = Depends(get_auth_service)):
    """Authenticate with a Google ID token; provisions a Google user on first login."""
    result = service.google_login(body.id_token)
    if not result.success:
        logger.warning("Google login failed: %s", result.message)
    return _respond(result)


@router.get("/validate-gmail", response_model=ApiResponse[bool])
def validate_gmail(
    email: str | None = Query(default=None),
    service: AuthService = Depends(get_auth_service),
):
    """Report whether an email would be admitted as a Gmail address."""
    if not email or not email.strip():
        return error_response(400, "Email is required")
    valid = service.validate_gmail_address(email)
    return ApiResponse[bool].ok(valid, "Valid Gmail address" if valid else "Invalid Gmail address")


@router.get("/me", response_model=ApiResponse[UserOut])
def me(user: Identity = Depends(get_current_user)):
    """Return the current user's public profile. Requires a valid bearer token."""
    return ApiResponse[UserOut].ok(UserOut.from_identity(user))
