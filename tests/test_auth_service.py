from datetime import datetime, UTC

import pytest
from sqlalchemy.exc import OperationalError

from conftest import STRONG_PASSWORD, google_claims
from identities import GoogleIdentity, LocalIdentity, Provider
from passwords import PasswordPolicy
from services.auth_service import INVALID_CREDENTIALS, AuthService, FailureKind


def test_signup_creates_local_identity(auth_service, users, tokens):
    result = auth_service.signup("  John Doe ", " John.Doe@Gmail.com ", STRONG_PASSWORD)

    assert result.success
    assert result.created
    assert result.message == "User registered successfully."
    identity = result.identity
    assert isinstance(identity, LocalIdentity)
    assert identity.provider is Provider.LOCAL
    assert identity.name == "John Doe"
    assert identity.email == "john.doe@gmail.com"
    assert identity.password_hash != STRONG_PASSWORD
    assert tokens.extract_identity_id(result.token) == identity.id
    assert users.find_by_email("john.doe@gmail.com") == identity


def test_signup_succeeds_exactly_once(auth_service):
    assert auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD).success

    again = auth_service.signup("Someone Else", "JOHN.DOE@gmail.com", "An0ther!Secret")
    assert not again.success
    assert again.failure is FailureKind.CONFLICT
    assert "already exists" in again.message


def test_signup_rejects_non_gmail(auth_service, users):
    result = auth_service.signup("John Doe", "john.doe@yahoo.com", STRONG_PASSWORD)
    assert result.failure is FailureKind.VALIDATION
    assert "Invalid Gmail address" in result.message
    assert not users.email_exists("john.doe@yahoo.com")


def test_signup_surfaces_every_password_violation(auth_service, users):
    result = auth_service.signup("John Doe", "john.doe@gmail.com", "password")
    assert result.failure is FailureKind.VALIDATION
    assert result.message == "Password does not meet security requirements."
    assert "Password must contain at least one uppercase letter." in result.errors
    assert "Password contains a common word or pattern." in result.errors
    assert not users.email_exists("john.doe@gmail.com")


def test_signup_conflict_from_concurrent_insert(auth_service, users, monkeypatch):
    assert auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD).success
    # Simulate a second request that passed the existence check before the first committed
    monkeypatch.setattr(users, "email_exists", lambda email: False)

    result = auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD)
    assert result.failure is FailureKind.CONFLICT
    assert "already exists" in result.message


def test_signup_persistence_fault_is_internal_failure(auth_service, users, monkeypatch):
    def boom(identity):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(users, "create", boom)
    result = auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD)
    assert not result.success
    assert result.failure is FailureKind.INTERNAL
    assert "database is locked" not in result.message


def test_login_returns_valid_token(auth_service, tokens):
    created = auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD).identity

    result = auth_service.login("john.doe@gmail.com", STRONG_PASSWORD)
    assert result.success
    assert tokens.validate(result.token)
    assert tokens.extract_identity_id(result.token) == created.id


def test_login_failures_do_not_reveal_which_field(auth_service):
    auth_service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD)

    wrong_password = auth_service.login("john.doe@gmail.com", "Wr0ng!Secret")
    unknown_email = auth_service.login("nobody.here@gmail.com", STRONG_PASSWORD)

    assert wrong_password.failure is unknown_email.failure is FailureKind.AUTHENTICATION
    assert wrong_password.message == unknown_email.message == INVALID_CREDENTIALS
    assert wrong_password.errors == unknown_email.errors


def test_login_for_google_account_says_use_google(auth_service, google_tokens):
    google_tokens["tok"] = google_claims()
    assert auth_service.google_login("tok").success

    result = auth_service.login("jane.doe@gmail.com", STRONG_PASSWORD)
    assert result.failure is FailureKind.AUTHENTICATION
    assert "Google login" in result.message


def test_login_upgrades_outdated_hash(users, tokens, google_verifier):
    weak = AuthService(users, PasswordPolicy(rounds=4), tokens, google_verifier)
    strong_policy = PasswordPolicy(rounds=5)
    strong = AuthService(users, strong_policy, tokens, google_verifier)
    weak.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD)

    result = strong.login("john.doe@gmail.com", STRONG_PASSWORD)

    assert result.success
    stored = users.find_by_email("john.doe@gmail.com")
    assert not strong_policy.needs_rehash(stored.password_hash)
    assert stored.updated_at is not None
    assert strong.login("john.doe@gmail.com", STRONG_PASSWORD).success


def test_google_login_provisions_new_identity(auth_service, google_tokens, users):
    google_tokens["tok"] = google_claims(name="Jane Doe", email="Jane.Doe@gmail.com")

    result = auth_service.google_login("tok")

    assert result.success
    assert result.created
    assert result.message == "Account created and login successful."
    identity = result.identity
    assert isinstance(identity, GoogleIdentity)
    assert identity.subject == "google-sub-1"
    assert identity.email == "jane.doe@gmail.com"
    assert identity.name == "Jane Doe"
    assert users.find_by_external_subject("google-sub-1") == identity


@pytest.mark.parametrize(
    "extra, expected",
    [({"given_name": "Jane"}, "Jane"), ({}, "User")],
)
def test_google_login_name_fallbacks(auth_service, google_tokens, extra, expected):
    google_tokens["tok"] = google_claims(**extra)
    assert auth_service.google_login("tok").identity.name == expected


def test_google_login_reuses_existing_identity(auth_service, google_tokens):
    google_tokens["tok"] = google_claims()
    first = auth_service.google_login("tok")

    second = auth_service.google_login("tok")
    assert second.success
    assert not second.created
    assert second.message == "Login successful."
    assert second.identity.id == first.identity.id


def test_google_login_reconciles_subject_drift(auth_service, google_tokens, users):
    google_tokens["old"] = google_claims(sub="old-sub")
    google_tokens["new"] = google_claims(sub="new-sub")
    original = auth_service.google_login("old").identity

    result = auth_service.google_login("new")

    assert result.identity.id == original.id
    assert result.identity.subject == "new-sub"
    assert result.identity.updated_at is not None
    assert users.find_by_external_subject("old-sub") is None
    assert users.find_by_external_subject("new-sub").id == original.id


def test_google_login_refuses_local_account(auth_service, google_tokens, users):
    local = auth_service.signup("Jane Doe", "jane.doe@gmail.com", STRONG_PASSWORD).identity
    google_tokens["tok"] = google_claims()

    result = auth_service.google_login("tok")

    assert result.failure is FailureKind.CONFLICT
    assert "Account exists with different provider" in result.errors
    assert users.find_by_id(local.id) == local


def test_google_login_invalid_token(auth_service):
    result = auth_service.google_login("unknown-token")
    assert result.failure is FailureKind.UPSTREAM_VERIFICATION
    assert result.message == "Invalid Google token."


def test_google_login_unverified_email(auth_service, google_tokens):
    google_tokens["tok"] = google_claims(verified=False)
    assert auth_service.google_login("tok").failure is FailureKind.UPSTREAM_VERIFICATION


def test_google_login_non_gmail(auth_service, google_tokens, users):
    google_tokens["tok"] = google_claims(email="jane.doe@company.com")
    result = auth_service.google_login("tok")
    assert result.failure is FailureKind.VALIDATION
    assert not users.email_exists("jane.doe@company.com")


def test_validate_gmail_address(auth_service):
    assert auth_service.validate_gmail_address("john.doe@gmail.com")
    assert not auth_service.validate_gmail_address("ab@gmail.com")


def test_injected_clock_and_ids(users, passwords, tokens, google_verifier):
    fixed = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    service = AuthService(
        users, passwords, tokens, google_verifier,
        clock=lambda: fixed,
        id_factory=lambda: "00000000-0000-4000-8000-00000000abcd",
    )
    identity = service.signup("John Doe", "john.doe@gmail.com", STRONG_PASSWORD).identity
    assert identity.id == "00000000-0000-4000-8000-00000000abcd"
    assert identity.created_at == fixed
