from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Wire format is camelCase; python attributes and stored records are snake_case.
_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Caller-supplied fields for one new Todo. The id is always assigned by the server.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"title": "Register for CS 101", "content": "Before Friday"}},
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, description="Optional body text")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        s = v.strip()
        if not (1 <= len(s) <= 200):
            raise ValueError("title length must be between 1 and 200 characters")
        return s

    @field_validator("content")
    @classmethod
    def blank_content_to_none(cls, v: Optional[str]) -> Optional[str]:
        """
        Store empty content as an explicit null to keep a stable record shape.
        """
        if v is None or v.strip() == "":
            return None
        return v


# PUBLIC_INTERFACE
class BatchCreateRequest(BaseModel):
    """
    Body of the batch-create call.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"requests": [{"title": "A"}, {"title": "B", "content": "second"}]}
        }
    )

    requests: List[TodoCreate] = Field(default_factory=list, description="Items to create, in order")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo record.
    """

    model_config = _WIRE_CONFIG

    id: str = Field(..., description="Generated unique identifier")
    title: str = Field(..., description="Short title for the todo item")
    content: Optional[str] = Field(default=None, description="Optional body text")
    owner: Optional[str] = Field(default=None, description="Subject of the creating caller")
    created_at: str = Field(..., description="Creation timestamp, UTC ISO8601 with millisecond precision")
    updated_at: str = Field(..., description="Last update timestamp, same format as createdAt")


# PUBLIC_INTERFACE
class ItemFailureOut(BaseModel):
    model_config = _WIRE_CONFIG

    original_index: int = Field(..., description="Position of the failed item in the request list")
    error_description: str = Field(..., description="Human-readable failure reason")


# PUBLIC_INTERFACE
class BatchCreateResponse(BaseModel):
    """
    Partitioned outcome of a batch create: created records plus per-item failures.
    """

    model_config = _WIRE_CONFIG

    created_records: List[TodoOut] = Field(default_factory=list)
    failed_count: int = Field(0, description="Number of items that were not created")
    failures: List[ItemFailureOut] = Field(default_factory=list)
