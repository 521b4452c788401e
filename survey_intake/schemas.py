import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_text(v: Any) -> Optional[str]:
    # Falsy values fall back to the field default, other JSON values keep their JSON text
    if not v:
        return None
    if isinstance(v, str):
        return v
    return json.dumps(v, ensure_ascii=False)


# Body of POST /submit
class SubmissionCreate(BaseModel):
    answers: Optional[Dict[str, Any]] = None
    metadata: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None

    @field_validator("metadata", "email", "source", mode="before")
    @classmethod
    def coerce_to_text(cls, v):
        return _coerce_text(v)


class SubmissionResponse(BaseModel):
    ok: bool = True
    id: int


# Stored response as presented to the admin
class ResponseItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: str
    source: str
    metadata: str = Field(validation_alias="meta")
    email: str
    ip: str
    answers: Dict[str, Any]


class ResponseListResponse(BaseModel):
    ok: bool = True
    items: List[ResponseItem]


# Body of POST /api/responses/{id}/forward
class ForwardRequest(BaseModel):
    to: Optional[str] = None

    @field_validator("to", mode="before")
    @classmethod
    def strip_to(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if "\r" in v or "\n" in v:
                raise ValueError("recipient must be a single line")
            return v or None
        return v


class ForwardResponse(BaseModel):
    ok: bool = True
    message_id: str = Field(serialization_alias="messageId")


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
