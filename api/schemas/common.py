"""Common Pydantic schemas shared across the API."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorBody(BaseModel):
    """Error details inside the standard envelope."""

    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human-readable message")
    path: str
    method: str
    details: Optional[Any] = Field(None, description="Field-level validation errors")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorBody


class TokenResponse(BaseModel):
    """Freshly issued session token."""

    access_token: str
    token_type: str = "bearer"


class InstitutionSummary(CamelModel):
    id: int
    name: str


class NamedRef(CamelModel):
    id: int
    name: str


class PersonRef(CamelModel):
    first_name: str
    last_name: str
