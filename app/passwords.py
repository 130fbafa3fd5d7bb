"""
Password strength policy and bcrypt hashing.

get_password_errors() runs every rule independently and returns one message
per violated rule, in a fixed order. Hashes are bcrypt over the base64 SHA-256
digest of the password, so inputs longer than bcrypt's 72-byte limit are
accepted; the per-call salt and cost live inside the hash string.
"""
import base64
import hashlib
import re

import bcrypt

MIN_LENGTH = 8
MAX_LENGTH = 100

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

COMMON_PATTERNS = (
    "password",
    "123456",
    "qwerty",
    "abc123",
    "letmein",
    "welcome",
    "monkey",
    "dragon",
    "master",
    "admin",
)

SEQUENCES = (
    "012", "123", "234", "345", "456", "567", "678", "789", "890",
    "abc", "bcd", "cde", "def", "efg", "fgh", "ghi", "hij", "ijk", "jkl",
    "klm", "lmn", "mno", "nop", "opq", "pqr", "qrs", "rst", "stu", "tuv",
    "uvw", "vwx", "wxy", "xyz",
)

UPPER = re.compile(r"[A-Z]")
LOWER = re.compile(r"[a-z]")
DIGIT = re.compile(r"[0-9]")
REPEATED = re.compile(r"(.)\1{2,}")

# Prefixes produced by older bcrypt implementations; still verifiable
LEGACY_PREFIXES = (b"$2a$", b"$2y$")


class PasswordPolicy:
    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def get_password_errors(self, password: str | None) -> list[str]:
        password = password or ""
        errors: list[str] = []

        if not password.strip():
            errors.append("Password is required.")
        if len(password) < MIN_LENGTH:
            errors.append(f"Password must be at least {MIN_LENGTH} characters long.")
        if len(password) > MAX_LENGTH:
            errors.append(f"Password must not exceed {MAX_LENGTH} characters.")
        if not UPPER.search(password):
            errors.append("Password must contain at least one uppercase letter.")
        if not LOWER.search(password):
            errors.append("Password must contain at least one lowercase letter.")
        if not DIGIT.search(password):
            errors.append("Password must contain at least one digit.")
        if not any(c in SPECIAL_CHARACTERS for c in password):
            errors.append("Password must contain at least one special character.")

        lowered = password.lower()
        if any(pattern in lowered for pattern in COMMON_PATTERNS):
            errors.append("Password contains a common word or pattern.")
        if any(seq in password for seq in SEQUENCES):
            errors.append("Password must not contain sequential characters (e.g. 'abc', '123').")
        if REPEATED.search(password):
            errors.append("Password must not repeat the same character 3 or more times in a row.")

        return errors

    def is_strong_password(self, password: str | None) -> bool:
        return not self.get_password_errors(password)

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify_password(self, password: str, hashed: str | None) -> bool:
        """
        Constant-time check of password against a stored hash. Hashes that
        need a rehash (legacy prefix or lower cost) still verify.
        """
        if not password or not hashed:
            return False
        try:
            return bcrypt.checkpw(_prehash(password), hashed.encode("ascii"))
        except ValueError:
            # Malformed or foreign hash string
            return False

    def needs_rehash(self, hashed: str) -> bool:
        raw = hashed.encode("ascii")
        if raw.startswith(LEGACY_PREFIXES):
            return True
        try:
            cost = int(raw.split(b"$")[2])
        except (IndexError, ValueError):
            return True
        return cost < self.rounds


def _prehash(password: str) -> bytes:
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())
