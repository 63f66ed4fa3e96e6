"""Core data models for the talent search aggregator."""

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ResultType = Literal["job", "organization", "candidate", "course", "institution"]

# Fan-out order; ties in the merged ranking keep this order.
ALL_RESULT_TYPES: tuple[ResultType, ...] = (
    "job",
    "organization",
    "candidate",
    "course",
    "institution",
)

# Tags used by the web client before organizations and candidates were renamed.
_TYPE_ALIASES = {"company": "organization", "youth": "candidate"}

MetadataValue = Union[str, int, float, list[str], datetime, None]


class SearchResult(BaseModel):
    """A single ranked hit, normalized across entity types.

    Frozen: built once per request and discarded after serialization.
    """

    model_config = ConfigDict(frozen=True)

    type: ResultType
    id: str
    title: str
    description: str
    url: str
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)
    score: int = Field(default=0, ge=0, le=100)


class DateRange(BaseModel):
    """Inclusive bounds on creation time."""

    start: datetime
    end: datetime


class SalaryRange(BaseModel):
    """Salary window: postings must sit fully inside it."""

    min: float
    max: float


class SearchFilters(BaseModel):
    """Optional constraints for a global search.

    Not every entity type honors every field: ``category`` only narrows
    organizations, ``date_range`` and ``salary`` only narrow job postings,
    and ``experience`` is accepted but not applied anywhere.
    """

    type: list[ResultType] | None = None
    location: str | None = None
    category: str | None = None
    date_range: DateRange | None = None
    skills: list[str] | None = None
    experience: str | None = None
    salary: SalaryRange | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type_aliases(cls, v: object) -> object:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [_TYPE_ALIASES.get(t, t) if isinstance(t, str) else t for t in v]
        return v

    def enabled_types(self) -> tuple[ResultType, ...]:
        """Return the entity types to query, in fan-out order."""
        if not self.type:
            return ALL_RESULT_TYPES
        return tuple(t for t in ALL_RESULT_TYPES if t in self.type)
