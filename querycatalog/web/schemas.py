"""
Request schemas for the catalog routes.

Query-string and JSON bodies are validated here before anything reaches
the catalog service. Body field names follow the JSON documents the web
client sends (``privateQuery`` and ``query`` for the visibility flag and
the query text); the python names are used everywhere else.
"""
import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models.serviceresult import ErrorCode, FailureResult


class ListQueriesArgs(BaseModel):
    """Arguments of ``GET /query``."""

    type: Optional[str] = Field(None, description="forks or stars to rank the listing")
    search: Optional[str] = Field(None, description="Substring to look for")
    page: int = Field(1, description="1-based page number")
    limit: Optional[int] = Field(None, ge=1, description="Page size")


class QueryBody(BaseModel):
    """Body of ``POST /query``."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: str = ""
    creator: int
    private: bool = Field(False, alias="privateQuery")
    text: str = Field(..., alias="query")
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return sorted(set(tag.strip() for tag in v if tag.strip()))


class QueryUpdateBody(QueryBody):
    """Body of ``PATCH /query``."""

    id: int


class QueryIdArgs(BaseModel):
    id: int


class QueryIdBody(BaseModel):
    """Body of the star, unstar and fork calls."""

    query_id: int


class UserArgs(BaseModel):
    uid: int


def validation_failure(error: ValidationError) -> FailureResult:
    return FailureResult(
        "Invalid request.", ErrorCode.BAD_REQUEST, json.loads(error.json())
    )
