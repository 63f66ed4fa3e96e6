"""Entity lookups: one per searchable type.

Each lookup turns (query, filters) into store conditions, reads matching
rows newest first, and maps them into SearchResult envelopes scored against
the query. Ranking across types happens in the aggregator.

Filter coverage per type:
  job           location, salary, date_range
  organization  location (address), category (business_sector)
  candidate     location (city), skills
  course        skills
  institution   location (department)

Course category and institution type are enumerations in the store and are
not matched against ``category``. ``experience`` is not applied anywhere.
"""

import logging
from collections.abc import Awaitable, Callable

from talent_search.core.schemas import ResultType, SearchFilters, SearchResult
from talent_search.pipeline.scorer import relevance_score
from talent_search.store.base import (
    AnyOf,
    Condition,
    Contains,
    Equals,
    Has,
    HasSome,
    Range,
    Row,
    SearchStore,
)

logger = logging.getLogger(__name__)

ORGANIZATION_FALLBACK_DESCRIPTION = "Empresa sin descripción"
CANDIDATE_FALLBACK_DESCRIPTION = "Perfil profesional"
INSTITUTION_DESCRIPTION = "Institución educativa"
SALARY_UNSPECIFIED = "No especificado"

_URL_PREFIXES: dict[ResultType, str] = {
    "job": "/jobs",
    "organization": "/companies",
    "candidate": "/profiles",
    "course": "/courses",
    "institution": "/institutions",
}

Lookup = Callable[
    [SearchStore, str, SearchFilters, int, int],
    Awaitable[list[SearchResult]],
]


def result_url(result_type: ResultType, entity_id: str) -> str:
    """Deep link for a result; the web client routes on these paths."""
    return f"{_URL_PREFIXES[result_type]}/{entity_id}"


def _any_contains(fields: tuple[str, ...], query: str) -> AnyOf:
    return AnyOf(tuple(Contains(f, query) for f in fields))


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _salary_label(row: Row) -> str:
    salary_min = row.get("salary_min")
    if not salary_min:
        return SALARY_UNSPECIFIED
    salary_max = row.get("salary_max")
    if salary_max is None:
        return _format_amount(salary_min)
    return f"{_format_amount(salary_min)} - {_format_amount(salary_max)}"


# ---------------------------------------------------------------------------
# Job postings
# ---------------------------------------------------------------------------


def job_conditions(query: str, filters: SearchFilters) -> list[Condition]:
    where: list[Condition] = [
        Equals("status", "ACTIVE"),
        _any_contains(("title", "description", "requirements", "organization_name"), query),
    ]
    if filters.location:
        where.append(Contains("location", filters.location))
    if filters.salary:
        where.append(Range("salary_min", gte=filters.salary.min))
        where.append(Range("salary_max", lte=filters.salary.max))
    if filters.date_range:
        where.append(
            Range("created_at", gte=filters.date_range.start, lte=filters.date_range.end),
        )
    return where


def map_job(query: str, row: Row) -> SearchResult:
    description = row.get("description") or ""
    return SearchResult(
        type="job",
        id=str(row["id"]),
        title=row["title"],
        description=description,
        url=result_url("job", str(row["id"])),
        metadata={
            "company": row.get("organization_name"),
            "location": row.get("location"),
            "salary": _salary_label(row),
            "contract_type": row.get("contract_type"),
            "work_modality": row.get("work_modality"),
            "created_at": row.get("created_at"),
        },
        score=relevance_score(query, row["title"], description),
    )


async def search_jobs(
    store: SearchStore,
    query: str,
    filters: SearchFilters,
    limit: int,
    offset: int,
) -> list[SearchResult]:
    """Search active job postings."""
    rows = await store.find_many(
        "job_postings", job_conditions(query, filters),
        limit=limit, offset=offset, order_by=("-created_at", "id"),
    )
    logger.debug("Job lookup '%s': %d rows", query, len(rows))
    return [map_job(query, r) for r in rows]


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


def organization_conditions(query: str, filters: SearchFilters) -> list[Condition]:
    where: list[Condition] = [
        _any_contains(("name", "description", "business_sector", "website"), query),
    ]
    if filters.location:
        where.append(Contains("address", filters.location))
    if filters.category:
        where.append(Contains("business_sector", filters.category))
    return where


def map_organization(query: str, row: Row) -> SearchResult:
    return SearchResult(
        type="organization",
        id=str(row["id"]),
        title=row["name"],
        description=row.get("description") or ORGANIZATION_FALLBACK_DESCRIPTION,
        url=result_url("organization", str(row["id"])),
        metadata={
            "business_sector": row.get("business_sector"),
            "address": row.get("address"),
            "website": row.get("website"),
            "company_size": row.get("company_size"),
            "created_at": row.get("created_at"),
        },
        score=relevance_score(query, row["name"], row.get("description") or ""),
    )


async def search_organizations(
    store: SearchStore,
    query: str,
    filters: SearchFilters,
    limit: int,
    offset: int,
) -> list[SearchResult]:
    """Search organizations (companies)."""
    rows = await store.find_many(
        "organizations", organization_conditions(query, filters),
        limit=limit, offset=offset, order_by=("-created_at", "id"),
    )
    logger.debug("Organization lookup '%s': %d rows", query, len(rows))
    return [map_organization(query, r) for r in rows]


# ---------------------------------------------------------------------------
# Candidate profiles
# ---------------------------------------------------------------------------


def candidate_conditions(query: str, filters: SearchFilters) -> list[Condition]:
    where: list[Condition] = [
        Equals("role", "YOUTH"),
        AnyOf((
            Contains("first_name", query),
            Contains("last_name", query),
            Contains("job_title", query),
            Contains("professional_summary", query),
            Has("relevant_skills", query),
        )),
    ]
    if filters.location:
        where.append(Contains("city", filters.location))
    if filters.skills:
        where.append(HasSome("relevant_skills", tuple(filters.skills)))
    return where


def map_candidate(query: str, row: Row) -> SearchResult:
    full_name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}"
    summary = row.get("professional_summary") or ""
    return SearchResult(
        type="candidate",
        id=str(row["user_id"]),
        title=full_name,
        description=summary or CANDIDATE_FALLBACK_DESCRIPTION,
        url=result_url("candidate", str(row["user_id"])),
        metadata={
            "job_title": row.get("job_title"),
            "relevant_skills": list(row.get("relevant_skills") or []),
            "city": row.get("city"),
            "created_at": row.get("created_at"),
        },
        score=relevance_score(query, full_name, summary),
    )


async def search_candidates(
    store: SearchStore,
    query: str,
    filters: SearchFilters,
    limit: int,
    offset: int,
) -> list[SearchResult]:
    """Search youth candidate profiles."""
    rows = await store.find_many(
        "candidate_profiles", candidate_conditions(query, filters),
        limit=limit, offset=offset, order_by=("-created_at", "user_id"),
    )
    logger.debug("Candidate lookup '%s': %d rows", query, len(rows))
    return [map_candidate(query, r) for r in rows]


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def course_conditions(query: str, filters: SearchFilters) -> list[Condition]:
    where: list[Condition] = [
        Equals("is_active", True),
        _any_contains(("title", "description"), query),
    ]
    if filters.skills:
        where.append(HasSome("tags", tuple(filters.skills)))
    return where


def map_course(query: str, row: Row) -> SearchResult:
    description = row.get("description") or ""
    return SearchResult(
        type="course",
        id=str(row["id"]),
        title=row["title"],
        description=description,
        url=result_url("course", str(row["id"])),
        metadata={
            "institution_name": row.get("institution_name"),
            "category": row.get("category"),
            "duration": row.get("duration"),
            "level": row.get("level"),
            "tags": list(row.get("tags") or []),
            "created_at": row.get("created_at"),
        },
        score=relevance_score(query, row["title"], description),
    )


async def search_courses(
    store: SearchStore,
    query: str,
    filters: SearchFilters,
    limit: int,
    offset: int,
) -> list[SearchResult]:
    """Search active courses."""
    rows = await store.find_many(
        "courses", course_conditions(query, filters),
        limit=limit, offset=offset, order_by=("-created_at", "id"),
    )
    logger.debug("Course lookup '%s': %d rows", query, len(rows))
    return [map_course(query, r) for r in rows]


# ---------------------------------------------------------------------------
# Institutions
# ---------------------------------------------------------------------------


def institution_conditions(query: str, filters: SearchFilters) -> list[Condition]:
    where: list[Condition] = [
        Equals("is_active", True),
        _any_contains(("name", "custom_type", "department"), query),
    ]
    if filters.location:
        where.append(Contains("department", filters.location))
    return where


def map_institution(query: str, row: Row) -> SearchResult:
    return SearchResult(
        type="institution",
        id=str(row["id"]),
        title=row["name"],
        description=INSTITUTION_DESCRIPTION,
        url=result_url("institution", str(row["id"])),
        metadata={
            "institution_type": row.get("institution_type"),
            "department": row.get("department"),
            "website": row.get("website"),
            "created_at": row.get("created_at"),
        },
        score=relevance_score(query, row["name"], INSTITUTION_DESCRIPTION),
    )


async def search_institutions(
    store: SearchStore,
    query: str,
    filters: SearchFilters,
    limit: int,
    offset: int,
) -> list[SearchResult]:
    """Search active institutions."""
    rows = await store.find_many(
        "institutions", institution_conditions(query, filters),
        limit=limit, offset=offset, order_by=("-created_at", "id"),
    )
    logger.debug("Institution lookup '%s': %d rows", query, len(rows))
    return [map_institution(query, r) for r in rows]


LOOKUPS: dict[ResultType, Lookup] = {
    "job": search_jobs,
    "organization": search_organizations,
    "candidate": search_candidates,
    "course": search_courses,
    "institution": search_institutions,
}
