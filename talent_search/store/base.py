"""Read-only data-access interface used by the entity lookups.

Predicates are plain condition objects so lookups stay independent of the
backing store; a list of conditions is combined with AND.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Union

Entity = Literal[
    "job_postings",
    "organizations",
    "candidate_profiles",
    "courses",
    "institutions",
]


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match on a text field."""

    field: str
    value: str


@dataclass(frozen=True)
class Equals:
    field: str
    value: str | int | float | bool


@dataclass(frozen=True)
class Range:
    """Inclusive bounds; a missing bound is unconstrained."""

    field: str
    gte: float | datetime | None = None
    lte: float | datetime | None = None


@dataclass(frozen=True)
class Has:
    """List field contains exactly this element (case-sensitive)."""

    field: str
    value: str


@dataclass(frozen=True)
class HasSome:
    """List field shares at least one element with ``values``."""

    field: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class AnyOf:
    """OR over nested conditions."""

    conditions: tuple["Condition", ...]


Condition = Union[Contains, Equals, Range, Has, HasSome, AnyOf]

Row = dict[str, Any]


class SearchStore(ABC):
    """Base class every backing store must implement."""

    @abstractmethod
    async def find_many(
        self,
        entity: Entity,
        where: Sequence[Condition],
        *,
        limit: int | None = None,
        offset: int = 0,
        order_by: Sequence[str] = (),
        fields: Sequence[str] | None = None,
    ) -> list[Row]:
        """Return rows of ``entity`` matching every condition in ``where``.

        Args:
            entity: Collection to read.
            where: Conditions combined with AND. Empty matches every row.
            limit: Maximum rows to return. None is unbounded.
            offset: Rows to skip before collecting.
            order_by: Field names; a leading '-' sorts descending.
            fields: Subset of fields to return. None returns all.

        Returns:
            Rows as dicts, list fields decoded to ``list[str]`` and
            timestamps to ``datetime``.
        """
