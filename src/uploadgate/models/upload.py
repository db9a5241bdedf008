"""Upload data models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedFileRecord(BaseModel):
    """Result for one stored file.

    Serialized on the wire as ``{fileName, key, url, size, type}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    original_name: str = Field(alias="fileName")
    storage_key: str = Field(alias="key")
    public_url: str = Field(alias="url")
    size_bytes: int = Field(alias="size", ge=0)
    mime_type: str = Field(alias="type")


class UploadSuccessResponse(BaseModel):
    """Response model for a fully stored batch."""

    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    files: List[UploadedFileRecord]


class ErrorResponse(BaseModel):
    """Response model for rejected or failed uploads."""

    error: str
    details: Optional[str] = None
