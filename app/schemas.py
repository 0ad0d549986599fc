"""
PYDANTIC SCHEMAS - Request/response data shapes

This file defines the data structures for API requests and responses using Pydantic.
These schemas provide:
1. Decoding of request bodies (type shape only, no semantic checks)
2. Serialization of stored users
3. The uniform response envelope
4. Clear API contracts for the generated docs

Every response the service writes is an Envelope: the payload (or null), the
HTTP status code as a string, and a human-readable message.
"""

from datetime import datetime
from http import HTTPStatus
from typing import Any, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

class UserIn(BaseModel):
    """
    Input schema for creating and updating a user.

    Missing or null fields decode to empty strings and are passed to storage
    as-is; extra keys (including id) are ignored.
    """
    name: str = Field("", description="Display name")
    email: str = Field("", description="Email address, unique across users")

    @field_validator("name", "email", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        return "" if v is None else v

class UserOut(BaseModel):
    """A stored user. id and timestamps are assigned by storage."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DeleteOut(BaseModel):
    message: str

class HealthOut(BaseModel):
    status: str
    time: str  # UTC, "YYYY-MM-DD HH:MM:SS"

class Envelope(BaseModel, Generic[T]):
    """Uniform wrapper around every response body."""
    data: Optional[T] = None
    status: str  # HTTP status code, e.g. "201"
    message: str

UserEnvelope = Envelope[UserOut]
UserListEnvelope = Envelope[List[UserOut]]
DeleteEnvelope = Envelope[DeleteOut]
HealthEnvelope = Envelope[HealthOut]

def envelope(data: Any, status_code: int, message: Optional[str] = None) -> dict:
    """
    Wrap a payload in the response envelope.

    The message defaults to the reason phrase of the status code
    ("OK", "Created", ...).
    """
    if message is None:
        message = HTTPStatus(status_code).phrase
    return {"data": data, "status": str(status_code), "message": message}
