"""
SQLAlchemy-backed identity and document stores.

UserRepository maps rows to LocalIdentity / GoogleIdentity and back, and turns
unique-constraint violations into IdentityConflict so concurrent duplicate
signups surface as a conflict instead of a fault. DocumentRepository only
ever looks documents up together with their owner.
"""
from dataclasses import dataclass
from datetime import datetime, UTC

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clock import utcnow
from identities import GoogleIdentity, Identity, LocalIdentity, Provider
from models import Document, User


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; everything stored is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class IdentityConflict(Exception):
    """Raised when create/update violates the email or Google subject uniqueness."""


class CorruptIdentity(Exception):
    """Raised when a stored row matches neither identity variant."""


def _to_identity(row: User) -> Identity:
    common = {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "created_at": _as_utc(row.created_at),
        "updated_at": _as_utc(row.updated_at),
    }
    if row.provider == Provider.LOCAL.value and row.password_hash and not row.google_id:
        return LocalIdentity(password_hash=row.password_hash, **common)
    if row.provider == Provider.GOOGLE.value and row.google_id and not row.password_hash:
        return GoogleIdentity(subject=row.google_id, **common)
    raise CorruptIdentity(f"User {row.id} has inconsistent credential fields")


def _apply(row: User, identity: Identity) -> None:
    row.name = identity.name
    row.email = identity.email
    row.provider = identity.provider.value
    if isinstance(identity, LocalIdentity):
        row.password_hash = identity.password_hash
        row.google_id = None
    else:
        row.google_id = identity.subject
        row.password_hash = None


class UserRepository:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self._clock = clock

    def _first(self, stmt) -> Identity | None:
        row = self.db.scalars(stmt).first()
        return _to_identity(row) if row else None

    def find_by_id(self, user_id: str) -> Identity | None:
        row = self.db.get(User, user_id)
        return _to_identity(row) if row else None

    def find_by_email(self, email: str) -> Identity | None:
        return self._first(select(User).where(User.email == email.strip().lower()))

    def find_by_external_subject(self, subject: str) -> Identity | None:
        return self._first(select(User).where(User.google_id == subject))

    def email_exists(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.strip().lower())
        return self.db.scalars(stmt).first() is not None

    def external_subject_exists(self, subject: str) -> bool:
        return self.db.scalars(select(User.id).where(User.google_id == subject)).first() is not None

    def create(self, identity: Identity) -> Identity:
        row = User(id=identity.id, created_at=identity.created_at)
        _apply(row, identity)
        self.db.add(row)
        self._commit()
        return _to_identity(row)

    def update(self, identity: Identity) -> Identity:
        row = self.db.get(User, identity.id)
        if row is None:
            raise LookupError(f"User {identity.id} not found")
        _apply(row, identity)
        row.updated_at = self._clock()
        self._commit()
        return _to_identity(row)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise IdentityConflict(str(e.orig)) from e


@dataclass(frozen=True)
class StoredDocument:
    id: str
    owner_id: str
    file_name: str
    file_type: str
    upload_date: datetime
    encrypted_content: bytes


def _to_stored(row: Document) -> StoredDocument:
    return StoredDocument(
        id=row.id,
        owner_id=row.user_id,
        file_name=row.file_name,
        file_type=row.file_type,
        upload_date=_as_utc(row.upload_date),
        encrypted_content=row.encrypted_content,
    )


class DocumentRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, document: StoredDocument) -> StoredDocument:
        row = Document(
            id=document.id,
            user_id=document.owner_id,
            file_name=document.file_name,
            file_type=document.file_type,
            upload_date=document.upload_date,
            encrypted_content=document.encrypted_content,
        )
        self.db.add(row)
        self.db.commit()
        return _to_stored(row)

    def list_by_owner(self, owner_id: str) -> list[StoredDocument]:
        stmt = (
            select(Document)
            .where(Document.user_id == owner_id)
            .order_by(Document.upload_date.desc())
        )
        return [_to_stored(row) for row in self.db.scalars(stmt)]

    def find_by_id_and_owner(self, document_id: str, owner_id: str) -> StoredDocument | None:
        stmt = select(Document).where(Document.id == document_id, Document.user_id == owner_id)
        row = self.db.scalars(stmt).first()
        return _to_stored(row) if row else None
