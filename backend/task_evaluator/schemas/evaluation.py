from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

class Modality(str, Enum):
    CODE = "code"
    IMAGE = "image"

# Submissions are a tagged union: each variant carries exactly its own payload.

class CodeSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    modality: Literal[Modality.CODE] = Modality.CODE
    task_name: str
    code_text: str

class ImageSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    modality: Literal[Modality.IMAGE] = Modality.IMAGE
    task_name: str
    image_bytes: bytes
    filename: str = "upload.png"

Submission = Annotated[Union[CodeSubmission, ImageSubmission], Field(discriminator="modality")]

class EvaluationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_name: str
    modality: Modality
    content: str  # code text or OCR output, never blank
    image_reference: str | None = None

class AIVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=10)
    feedback: str = Field(min_length=1)

class EvaluationRecord(BaseModel):
    """A persisted evaluation, serialized with the camelCase keys the web client reads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    task_name: str = Field(alias="taskName")
    modality: Modality = Field(alias="submissionType")
    code_text: str | None = Field(default=None, alias="code")
    image_reference: str | None = Field(default=None, alias="imageUrl")
    score: int
    feedback: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

T = TypeVar("T")

class APIResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    details: Any = None
