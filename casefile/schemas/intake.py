"""Schemas for public intake document submissions."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class IntakeDocumentItem(BaseModel):
    kind: str = Field(..., min_length=1, max_length=50)
    content_locator: str = Field(..., min_length=1, max_length=1024)
    label: str | None = Field(default=None, max_length=255)
    file_name: str | None = Field(default=None, max_length=255)
    media_type: str | None = Field(default=None, max_length=100)
    size: int | None = Field(default=None, ge=0)
    party_index: int | None = None
    name: str | None = Field(default=None, max_length=100)


class IntakeDocumentsRequest(BaseModel):
    documents: list[IntakeDocumentItem] = Field(..., max_length=100)


class IntakeDocumentOutcome(BaseModel):
    index: int
    kind: str
    name: str | None = None
    action: Literal["created", "updated", "failed"]
    target_description: str | None = None
    document_id: UUID | None = None
    error_reason: str | None = None


class CompletionStatusRead(BaseModel):
    id: UUID
    status: str


class IntakeDocumentsResponse(BaseModel):
    outcomes: list[IntakeDocumentOutcome]
    created: int
    updated: int
    failed: int
    case_holders: list[CompletionStatusRead]
    properties: list[CompletionStatusRead]


class DocumentRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    kind: str
    label: str | None
    media_type: str | None
    size: int | None
    owner_key: str
    created_at: datetime
