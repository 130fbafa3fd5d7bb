"""
Gmail-only admission policy for signup and Google login.

This is a product restriction, not a general email validator: only
@gmail.com addresses whose username is 6-30 characters of letters, digits and
dots (no leading, trailing or doubled dot) are admitted.
"""
import re

from email_validator import EmailNotValidError, validate_email

GMAIL_SUFFIX = "@gmail.com"
USERNAME_MIN = 6
USERNAME_MAX = 30

_USERNAME_RE = re.compile(r"[a-zA-Z0-9.]+")


class GmailAdmissionPolicy:
    def is_gmail_address(self, email: str | None) -> bool:
        """Syntactic check: non-blank, @gmail.com suffix, RFC-parseable bare address."""
        if not email or not email.strip():
            return False
        normalized = email.strip().lower()
        if not normalized.endswith(GMAIL_SUFFIX) or len(normalized) <= len(GMAIL_SUFFIX):
            return False
        return _is_bare_address(normalized)

    def is_admissible(self, email: str | None) -> bool:
        if not self.is_gmail_address(email):
            return False
        parts = email.strip().lower().split("@")
        if len(parts) != 2:
            return False
        return _is_valid_username(parts[0])


def _is_bare_address(email: str) -> bool:
    # RFC 5322 syntax; the normalized form must equal the input
    try:
        result = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return result.normalized == email


def _is_valid_username(username: str) -> bool:
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        return False
    if not _USERNAME_RE.fullmatch(username):
        return False
    if username.startswith(".") or username.endswith("."):
        return False
    return ".." not in username
