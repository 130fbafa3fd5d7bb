"""
Data models for the document vault backend.

"""
from sqlalchemy import Column, DateTime, ForeignKey, LargeBinary, String

from database import Base


class User(Base):
    """
    Single table for local and Google-provisioned identities.

    - id: generated UUID string, primary key.
    - email: lowercased and trimmed; unique across both providers.
    - provider: "Local" or "Google".
    - password_hash: bcrypt hash; set only for Local users.
    - google_id: Google subject id; set only for Google users, unique when present.
    - updated_at: stamped by the repository whenever a row is updated.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    provider = Column(String(50), nullable=False, default="Local")
    google_id = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class Document(Base):
    """
    An uploaded file owned by exactly one user. Only the ciphertext envelope
    (IV || AES-CBC ciphertext) is stored; rows are never updated.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(50), nullable=False)
    upload_date = Column(DateTime(timezone=True), nullable=False, index=True)
    encrypted_content = Column(LargeBinary, nullable=False)
