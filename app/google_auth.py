"""
Google ID token verification.

Signature, audience, issuer and expiry checks are delegated to google-auth
(verify_oauth2_token) scoped to the configured client id. Any failure returns
None; callers treat None as "authentication failed", never as a fault.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from gmail import GmailAdmissionPolicy

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str, Any, str], dict]


@dataclass(frozen=True)
class GoogleIdentityPayload:
    subject: str
    email: str
    email_verified: bool
    name: str | None = None
    given_name: str | None = None
    picture: str | None = None


class _Transport(google_requests.Request):
    """google-auth transport with a configurable timeout for certificate fetches."""

    def __init__(self, timeout: int):
        super().__init__(session=requests.Session())
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url, method=method, body=body, headers=headers, timeout=timeout or self._timeout, **kwargs
        )


class GoogleIdentityVerifier:
    def __init__(
        self,
        client_id: str,
        admission: GmailAdmissionPolicy | None = None,
        *,
        verify_token: TokenVerifier | None = None,
        timeout: int = 10,
    ):
        if not client_id:
            raise RuntimeError("Google client id is not configured")
        self.client_id = client_id
        self.admission = admission or GmailAdmissionPolicy()
        self._verify_token = verify_token or google_id_token.verify_oauth2_token
        self._transport = _Transport(timeout)

    def verify_assertion(self, token: str) -> GoogleIdentityPayload | None:
        if not token:
            return None
        try:
            claims = self._verify_token(token, self._transport, self.client_id)
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.warning("Google token validation failed: %s", e)
            return None
        except requests.RequestException as e:
            logger.warning("Could not reach Google to validate token: %s", e)
            return None

        if claims.get("email_verified") is not True:
            logger.warning("Google token rejected: email not verified")
            return None
        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email:
            logger.warning("Google token rejected: missing sub or email")
            return None

        return GoogleIdentityPayload(
            subject=subject,
            email=email,
            email_verified=True,
            name=claims.get("name"),
            given_name=claims.get("given_name"),
            picture=claims.get("picture"),
        )

    def is_admissible(self, email: str | None) -> bool:
        """
        Full Gmail admission check. If the username rules raise, fall back to
        the syntactic Gmail check instead of failing closed; this fallback is
        intentional.
        """
        if not self.admission.is_gmail_address(email):
            return False
        try:
            return self.admission.is_admissible(email)
        except Exception:
            logger.exception("Gmail admission check failed; falling back to syntactic check (intentional)")
            return self.admission.is_gmail_address(email)
