"""Pydantic models for the memory records consumed by MemoryFlow."""

import math
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .timestamp_utils import to_iso


def coerce_list(v):
    """Treat a null list as empty and drop null entries."""
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [item for item in v if item is not None]
    return v


def coerce_score(v):
    """Map unparseable or non-finite numeric scores to None."""
    if v is None or isinstance(v, bool):
        return None
    try:
        value = float(v)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class RecordModel(BaseModel):
    """Base for upstream records: immutable, camelCase or snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Participant(RecordModel):
    """Someone taking part in a remembered exchange."""

    id: str = Field(..., min_length=1, description="Participant identifier")
    name: Optional[str] = Field(default=None, description="Display name")
    role: Optional[str] = Field(default=None, description="Role in the exchange (self, friend, child, ...)")
    relationship: Optional[str] = Field(default=None, description="Relationship to the author")


class EmotionalContext(RecordModel):
    """Mood information attached to a memory by the extraction pipeline."""

    primary_emotion: Optional[str] = Field(default=None, description="Dominant emotion")
    secondary_emotions: List[str] = Field(default_factory=list, description="Other emotions present")
    intensity: Optional[float] = Field(default=None, description="Emotional intensity, expected 0-1")
    themes: List[str] = Field(default_factory=list, description="Broader emotional themes")

    @field_validator("secondary_emotions", "themes", mode="before")
    @classmethod
    def normalize_lists(cls, v):
        return coerce_list(v)

    @field_validator("intensity", mode="before")
    @classmethod
    def normalize_intensity(cls, v):
        return coerce_score(v)


class RelationshipDynamics(RecordModel):
    """How the participants related to each other in the memory."""

    interaction_quality: Optional[str] = Field(default=None, description="Overall interaction quality")
    communication_patterns: List[str] = Field(default_factory=list, description="Communication pattern tags")

    @field_validator("communication_patterns", mode="before")
    @classmethod
    def normalize_patterns(cls, v):
        return coerce_list(v)


class MemoryMetadata(RecordModel):
    """Extraction metadata."""

    confidence: Optional[float] = Field(default=None, description="Extraction self-reported confidence (0-1)")
    processed_at: Optional[str] = Field(default=None, description="When the record was extracted")

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize_confidence(cls, v):
        return coerce_score(v)

    @field_validator("processed_at", mode="before")
    @classmethod
    def normalize_processed_at(cls, v):
        if isinstance(v, datetime):
            return to_iso(v)
        return v


class Memory(RecordModel):
    """One extracted, emotionally relevant memory record."""

    id: str = Field(..., min_length=1, description="Memory identifier")
    content: str = Field(..., description="Free-text content")
    timestamp: str = Field(..., description="When the remembered event happened (ISO-8601)")
    tags: List[str] = Field(default_factory=list, description="Extraction tags")
    participants: List[Participant] = Field(default_factory=list, description="People involved")
    emotional_context: Optional[EmotionalContext] = Field(default=None, description="Mood information")
    relationship_dynamics: Optional[RelationshipDynamics] = Field(default=None, description="Relationship information")
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata, description="Extraction metadata")

    @field_validator("tags", "participants", mode="before")
    @classmethod
    def normalize_lists(cls, v):
        return coerce_list(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return {} if v is None else v

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v):
        if isinstance(v, datetime):
            return to_iso(v)
        return v
