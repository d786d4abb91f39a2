"""Project and Document models.

A Project is the unit of persistence. It is replaced as a whole whenever it
changes; there is no partial-field patch path. Documents keep their
insertion order, which is the order in which they were generated.

The local store serializes projects with camelCase keys (``createdAt``,
``siteFlow``), so the models accept both camelCase and field names.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_project_id() -> str:
    """Return a fresh, globally unique project id."""
    return str(uuid.uuid4())


def ensure_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProjectType(str, Enum):
    """Kinds of generated documentation."""

    PRD = "PRD"
    DESIGN_PROMPT = "Design Prompt"
    USER_STORIES = "User Stories"
    SPECS = "Specs"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_storage(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON form used by the local store."""
        return self.model_dump(mode="json", by_alias=True)


class Document(_CamelModel):
    """A generated content artifact attached to a project.

    Attributes:
        id: Document identifier
        type: Kind of document
        content: Generated body, usually markdown
        generated_at: When the generator produced it
    """

    id: str = Field(default_factory=new_project_id)
    type: ProjectType
    content: str = ""
    generated_at: datetime = Field(default_factory=utc_now)

    @field_validator("generated_at")
    @classmethod
    def normalize_generated_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Project(_CamelModel):
    """A documentation project.

    Attributes:
        id: Opaque id, identical in the local and remote stores
        title: Display title, never persisted empty
        type: Primary document kind
        description: Free text, may be empty
        content: Primary document body
        documents: Generated documents in generation order
        site_flow: Optional site-flow diagram, stored opaquely
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    id: str
    title: str
    type: ProjectType
    description: str = ""
    content: str = ""
    documents: list[Document] = Field(default_factory=list)
    site_flow: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store every timestamp as timezone-aware UTC."""
        return ensure_utc(v)


project_list_adapter = TypeAdapter(list[Project])
