"""
Auth service: signup, password login and Google login.

Business logic separated from the HTTP layer. Every public method returns an
AuthResult; business failures carry a FailureKind and persistence or crypto
faults are logged here and returned as an INTERNAL failure instead of being
raised to the router.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable

from clock import new_id, utcnow
from google_auth import GoogleIdentityPayload, GoogleIdentityVerifier
from identities import GoogleIdentity, Identity, LocalIdentity, normalize_email
from passwords import PasswordPolicy
from repositories import IdentityConflict, UserRepository
from security import TokenIssuer

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


class FailureKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UPSTREAM_VERIFICATION = "upstream_verification"
    INTERNAL = "internal"


@dataclass(frozen=True)
class AuthResult:
    success: bool
    message: str
    token: str | None = None
    identity: Identity | None = None
    failure: FailureKind | None = None
    errors: list[str] = field(default_factory=list)
    created: bool = False

    @classmethod
    def ok(cls, message: str, token: str, identity: Identity, created: bool = False) -> "AuthResult":
        return cls(success=True, message=message, token=token, identity=identity, created=created)

    @classmethod
    def fail(cls, kind: FailureKind, message: str, errors: list[str] | None = None) -> "AuthResult":
        return cls(success=False, message=message, failure=kind, errors=list(errors or []))


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        passwords: PasswordPolicy,
        tokens: TokenIssuer,
        google: GoogleIdentityVerifier,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.users = users
        self.passwords = passwords
        self.tokens = tokens
        self.google = google
        self._clock = clock
        self._new_id = id_factory

    def validate_gmail_address(self, email: str | None) -> bool:
        return self.google.is_admissible(email)

    def signup(self, name: str, email: str, password: str) -> AuthResult:
        try:
            return self._signup(name, email, password)
        except IdentityConflict:
            logger.warning("Signup raced with an existing registration for %s", email)
            return _already_exists()
        except Exception:
            logger.exception("Signup failed for %s", email)
            return AuthResult.fail(FailureKind.INTERNAL, "An error occurred during registration.")

    def _signup(self, name: str, email: str, password: str) -> AuthResult:
        if not self.validate_gmail_address(email):
            return AuthResult.fail(
                FailureKind.VALIDATION,
                "Invalid Gmail address. Only valid Gmail addresses (@gmail.com) are allowed.",
                ["Email must be a valid Gmail address"],
            )

        email = normalize_email(email)
        if self.users.email_exists(email):
            return _already_exists()

        password_errors = self.passwords.get_password_errors(password)
        if password_errors:
            return AuthResult.fail(
                FailureKind.VALIDATION,
                "Password does not meet security requirements.",
                password_errors,
            )

        identity = LocalIdentity(
            id=self._new_id(),
            name=(name or "").strip(),
            email=email,
            password_hash=self.passwords.hash_password(password),
            created_at=self._clock(),
        )
        created = self.users.create(identity)
        logger.info("User %s registered", created.email)
        return AuthResult.ok("User registered successfully.", self.tokens.issue(created), created, created=True)

    def login(self, email: str, password: str) -> AuthResult:
        try:
            return self._login(email, password)
        except Exception:
            logger.exception("Login failed for %s", email)
            return AuthResult.fail(FailureKind.INTERNAL, "An error occurred during login.")

    def _login(self, email: str, password: str) -> AuthResult:
        identity = self.users.find_by_email(email or "")
        if identity is None:
            return _invalid_credentials()

        if not isinstance(identity, LocalIdentity):
            return AuthResult.fail(
                FailureKind.AUTHENTICATION,
                "This account was created using Google Sign-In. Please use Google login.",
                ["Invalid login method"],
            )

        if not self.passwords.verify_password(password, identity.password_hash):
            return _invalid_credentials()

        if self.passwords.needs_rehash(identity.password_hash):
            logger.info("Upgrading password hash for user %s", identity.id)
            identity = self.users.update(
                replace(identity, password_hash=self.passwords.hash_password(password))
            )

        logger.info("User %s logged in", identity.email)
        return AuthResult.ok("Login successful.", self.tokens.issue(identity), identity)

    def google_login(self, token: str) -> AuthResult:
        try:
            return self._google_login(token)
        except IdentityConflict:
            logger.warning("Google login raced with an existing registration")
            return _already_exists()
        except Exception:
            logger.exception("Google login failed")
            return AuthResult.fail(FailureKind.INTERNAL, "An error occurred during Google authentication.")

    def _google_login(self, token: str) -> AuthResult:
        payload = self.google.verify_assertion(token)
        if payload is None:
            return AuthResult.fail(
                FailureKind.UPSTREAM_VERIFICATION,
                "Invalid Google token.",
                ["Google authentication failed"],
            )

        if not self.validate_gmail_address(payload.email):
            return AuthResult.fail(
                FailureKind.VALIDATION,
                "Only Gmail addresses are allowed.",
                ["Email must be a Gmail address"],
            )

        existing = self.users.find_by_email(payload.email)
        if isinstance(existing, LocalIdentity):
            return AuthResult.fail(
                FailureKind.CONFLICT,
                "An account with this email already exists. Please use email/password login.",
                ["Account exists with different provider"],
            )

        if existing is not None:
            identity = existing
            if identity.subject != payload.subject:
                logger.info("Updating Google subject for user %s", identity.id)
                identity = self.users.update(identity.with_subject(payload.subject))
            logger.info("Google login for %s", identity.email)
            return AuthResult.ok("Login successful.", self.tokens.issue(identity), identity)

        identity = self.users.create(self._new_google_identity(payload))
        logger.info("Google account %s provisioned", identity.email)
        return AuthResult.ok(
            "Account created and login successful.",
            self.tokens.issue(identity),
            identity,
            created=True,
        )

    def _new_google_identity(self, payload: GoogleIdentityPayload) -> GoogleIdentity:
        return GoogleIdentity(
            id=self._new_id(),
            name=payload.name or payload.given_name or "User",
            email=normalize_email(payload.email),
            subject=payload.subject,
            created_at=self._clock(),
        )


def _already_exists() -> AuthResult:
    return AuthResult.fail(
        FailureKind.CONFLICT,
        "User with this email already exists.",
        ["Email already registered"],
    )


def _invalid_credentials() -> AuthResult:
    return AuthResult.fail(FailureKind.AUTHENTICATION, INVALID_CREDENTIALS, ["Authentication failed"])
