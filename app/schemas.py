"""
Request and response models.

Bodies accept camelCase or snake_case keys; responses are serialized camelCase.
Every endpoint answers with the ApiResponse envelope.
"""
from datetime import datetime, UTC
from typing import Generic, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from identities import Identity

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Request models ---


class SignupRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-zA-Z\s]+$")
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=100)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=100)


class GoogleLoginRequest(CamelModel):
    id_token: str = Field(..., min_length=50)


# --- Response models ---


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    provider: str
    created_at: datetime

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserOut":
        return cls(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            provider=identity.provider.value,
            created_at=identity.created_at,
        )


class AuthOut(CamelModel):
    token: str
    user: UserOut


class DocumentMetadataOut(CamelModel):
    id: str
    file_name: str
    file_type: str
    upload_date: datetime


class ApiResponse(CamelModel, Generic[T]):
    success: bool
    message: str = ""
    data: T | None = None
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def ok(cls, data: T, message: str = "Success") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def error(cls, message: str, errors: list[str] | None = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=list(errors or []))


def error_response(status_code: int, message: str, errors: list[str] | None = None, headers: dict | None = None) -> JSONResponse:
    body = ApiResponse.error(message, errors)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )
