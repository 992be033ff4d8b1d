"""Pydantic models for topics, versions and resources."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Topic(BaseModel):
    """A node in the knowledge hierarchy with versioned content."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    content: str
    version: int = Field(ge=1)
    parent_topic_id: str | None = None
    created_at: datetime
    updated_at: datetime


class TopicCreate(BaseModel):
    """Fields a caller supplies when creating a topic."""

    name: str
    content: str = ""
    parent_topic_id: str | None = None


class TopicUpdate(BaseModel):
    """Partial update; only fields that were explicitly set are merged.

    Setting parent_topic_id=None detaches the topic, leaving it out keeps
    the current parent.
    """

    name: str | None = None
    content: str | None = None
    parent_topic_id: str | None = None


class TopicVersion(BaseModel):
    """Immutable snapshot of a topic at one version."""

    model_config = ConfigDict(frozen=True)

    id: str
    topic_id: str
    name: str
    content: str
    version: int = Field(ge=1)
    parent_topic_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_topic(cls, topic: Topic, version_id: str) -> TopicVersion:
        """Snapshot the current state of topic, numbered with topic.version."""
        return cls(
            id=version_id,
            topic_id=topic.id,
            name=topic.name,
            content=topic.content,
            version=topic.version,
            parent_topic_id=topic.parent_topic_id,
            created_at=topic.created_at,
            updated_at=topic.updated_at,
        )


class TopicTree(Topic):
    """A topic with its children expanded recursively. Never stored."""

    children: list[TopicTree] = Field(default_factory=list)


class ShortestPathResult(BaseModel):
    """Result of a shortest-path query between two topics."""

    path: list[str] = Field(default_factory=list)
    distance: int = -1
    exists: bool = False

    @classmethod
    def not_found(cls) -> ShortestPathResult:
        return cls(path=[], distance=-1, exists=False)


class TopicFilters(BaseModel):
    """Filters for listing topics. Pagination applies only when both page and limit are set."""

    parent_topic_id: str | None = None
    search: str | None = None
    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1)


class ResourceType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"
    PDF = "pdf"
    LINK = "link"


class Resource(BaseModel):
    """External material (video, article, ...) attached to a topic."""

    model_config = ConfigDict(frozen=True)

    id: str
    topic_id: str
    url: str
    description: str = ""
    type: ResourceType
    created_at: datetime
    updated_at: datetime


class ResourceCreate(BaseModel):
    topic_id: str
    url: str
    description: str = ""
    type: ResourceType = ResourceType.LINK


class ResourceUpdate(BaseModel):
    topic_id: str | None = None
    url: str | None = None
    description: str | None = None
    type: ResourceType | None = None
