"""
Identity variants shared by the auth service, repositories and routers.

An identity is either local (owns a password hash) or Google-provisioned (owns
the Google subject id). Both carry the same common fields; neither can carry
the other's credential.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class Provider(str, Enum):
    LOCAL = "Local"
    GOOGLE = "Google"


@dataclass(frozen=True, kw_only=True)
class BaseIdentity:
    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class LocalIdentity(BaseIdentity):
    password_hash: str

    @property
    def provider(self) -> Provider:
        return Provider.LOCAL


@dataclass(frozen=True, kw_only=True)
class GoogleIdentity(BaseIdentity):
    subject: str

    @property
    def provider(self) -> Provider:
        return Provider.GOOGLE

    def with_subject(self, subject: str) -> "GoogleIdentity":
        return replace(self, subject=subject)


Identity = LocalIdentity | GoogleIdentity


def normalize_email(email: str) -> str:
    return email.strip().lower()
