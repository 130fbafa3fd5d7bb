"""
Application configuration from environment variables.

Load with python-dotenv in main so env vars are available before settings are
built. load_settings() validates critical secrets; missing values raise
RuntimeError, which aborts startup.

Settings is immutable and passed explicitly to the cipher, token issuer,
Google verifier and database layer; nothing reads key material from globals.
"""
import os
from dataclasses import dataclass

REQUIRED_VARS = ("JWT_SECRET", "ENCRYPTION_KEY", "GOOGLE_CLIENT_ID")


def _int_env(key: str, default: int, minimum: int = 1) -> int:
    try:
        return max(minimum, int(os.getenv(key, str(default))))
    except ValueError:
        return default


def _bool_env(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    encryption_key: str
    google_client_id: str

    jwt_algorithm: str = "HS256"
    # Token lifetime in seconds
    jwt_expires_seconds: int = 3600
    jwt_issuer: str = "docvault"
    jwt_audience: str = "docvault-clients"

    database_url: str = "sqlite:///./app.db"
    # Skip create_all at startup (set in production when using migrations)
    skip_db_init: bool = False

    # development | production; error details only when explicitly development
    env: str = "production"
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    bcrypt_rounds: int = 12
    # Wire limit for multipart uploads; the vault enforces its own 10 MiB ceiling
    max_request_bytes: int = 20 * 1024 * 1024
    # Timeout (seconds) for fetching Google's signing certificates
    google_request_timeout: int = 10

    @property
    def is_development(self) -> bool:
        return self.env == "development"


def load_settings() -> Settings:
    """Build Settings from the environment. Raises RuntimeError when a required secret is absent."""
    for name in REQUIRED_VARS:
        val = os.getenv(name)
        if not val or not str(val).strip():
            raise RuntimeError(f"Required env var {name} is missing or empty")

    return Settings(
        jwt_secret=os.environ["JWT_SECRET"],
        encryption_key=os.environ["ENCRYPTION_KEY"].strip(),
        google_client_id=os.environ["GOOGLE_CLIENT_ID"].strip(),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_expires_seconds=_int_env("JWT_EXPIRES_SECONDS", 3600, minimum=60),
        jwt_issuer=os.getenv("JWT_ISSUER", "docvault"),
        jwt_audience=os.getenv("JWT_AUDIENCE", "docvault-clients"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./app.db"),
        skip_db_init=_bool_env("SKIP_DB_INIT"),
        env=os.getenv("ENV", "production").lower(),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        bcrypt_rounds=_int_env("BCRYPT_ROUNDS", 12, minimum=4),
        max_request_bytes=_int_env("MAX_REQUEST_BYTES", 20 * 1024 * 1024),
        google_request_timeout=_int_env("GOOGLE_REQUEST_TIMEOUT", 10),
    )
