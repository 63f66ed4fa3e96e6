"""Tests for the per-entity lookups: eligibility, filters, mapping."""

import sqlite3
from datetime import date, datetime
from pathlib import Path

import pytest

from talent_search.core.db import (
    init_db,
    insert_course,
    insert_institution,
    insert_job_posting,
    insert_organization,
    insert_profile,
    insert_user,
)
from talent_search.core.schemas import SearchFilters
from talent_search.pipeline.lookups import (
    CANDIDATE_FALLBACK_DESCRIPTION,
    INSTITUTION_DESCRIPTION,
    LOOKUPS,
    ORGANIZATION_FALLBACK_DESCRIPTION,
    SALARY_UNSPECIFIED,
    job_conditions,
    map_job,
    result_url,
    search_candidates,
    search_courses,
    search_institutions,
    search_jobs,
    search_organizations,
)
from talent_search.store.sqlite import SqliteSearchStore

NO_FILTERS = SearchFilters()


@pytest.fixture
def db(tmp_path: Path) -> sqlite3.Connection:
    return init_db(tmp_path / "test.db")


@pytest.fixture
def store(db: sqlite3.Connection) -> SqliteSearchStore:
    return SqliteSearchStore(db)


def _job(db: sqlite3.Connection, job_id: str, title: str, **kw: object) -> None:
    if db.execute("SELECT 1 FROM organizations WHERE id = 'org'").fetchone() is None:
        insert_organization(db, {"id": "org", "name": "Andina Software"})
    row: dict[str, object] = {
        "id": job_id,
        "organization_id": "org",
        "title": title,
        "description": "Trabajo en equipo",
    }
    row.update(kw)
    insert_job_posting(db, row)


def _candidate(db: sqlite3.Connection, user_id: str, role: str = "YOUTH", **kw: object) -> None:
    insert_user(db, {"id": user_id, "email": f"{user_id}@example.com", "role": role})
    row: dict[str, object] = {"user_id": user_id, "first_name": "Ana", "last_name": "Quispe"}
    row.update(kw)
    insert_profile(db, row)


class TestResultUrl:
    @pytest.mark.parametrize(
        ("result_type", "expected"),
        [
            ("job", "/jobs/42"),
            ("organization", "/companies/42"),
            ("candidate", "/profiles/42"),
            ("course", "/courses/42"),
            ("institution", "/institutions/42"),
        ],
    )
    def test_deep_links(self, result_type: str, expected: str) -> None:
        assert result_url(result_type, "42") == expected  # type: ignore[arg-type]

    def test_registry_covers_every_type(self) -> None:
        assert set(LOOKUPS) == {"job", "organization", "candidate", "course", "institution"}


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class TestSearchJobs:
    async def test_only_active(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _job(db, "j1", "Desarrollador Frontend")
        _job(db, "j2", "Desarrollador Backend", status="CLOSED")
        results = await search_jobs(store, "desarrollador", NO_FILTERS, 10, 0)
        assert [r.id for r in results] == ["j1"]

    async def test_matches_requirements_and_company(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        _job(db, "j1", "Analista", requirements="Python avanzado")
        _job(db, "j2", "Soporte")
        assert [r.id for r in await search_jobs(store, "python", NO_FILTERS, 10, 0)] == ["j1"]
        found = await search_jobs(store, "andina", NO_FILTERS, 10, 0)
        assert {r.id for r in found} == {"j1", "j2"}

    async def test_location_filter(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _job(db, "j1", "Dev", location="La Paz")
        _job(db, "j2", "Dev", location="Cochabamba")
        results = await search_jobs(store, "dev", SearchFilters(location="la paz"), 10, 0)
        assert [r.id for r in results] == ["j1"]

    async def test_salary_filter(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _job(db, "j1", "Dev", salary_min=4000, salary_max=6000)
        _job(db, "j2", "Dev", salary_min=3000, salary_max=6000)
        _job(db, "j3", "Dev", salary_min=4000, salary_max=9000)
        filters = SearchFilters.model_validate({"salary": {"min": 4000, "max": 6000}})
        assert [r.id for r in await search_jobs(store, "dev", filters, 10, 0)] == ["j1"]

    async def test_date_range_inclusive(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _job(db, "j1", "Dev", created_at=datetime(2024, 3, 1))
        _job(db, "j2", "Dev", created_at=datetime(2024, 3, 31))
        _job(db, "j3", "Dev", created_at=datetime(2024, 4, 1, 0, 0, 1))
        filters = SearchFilters.model_validate(
            {"date_range": {"start": datetime(2024, 3, 1), "end": datetime(2024, 4, 1)}},
        )
        results = await search_jobs(store, "dev", filters, 10, 0)
        assert {r.id for r in results} == {"j1", "j2"}

    async def test_date_only_created_at_at_start_bound(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        _job(db, "j1", "Dev", created_at=date(2024, 3, 1))
        filters = SearchFilters.model_validate(
            {"date_range": {"start": "2024-03-01T00:00:00", "end": "2024-03-01T00:00:00"}},
        )
        assert [r.id for r in await search_jobs(store, "dev", filters, 10, 0)] == ["j1"]

    async def test_date_range_compares_instants_across_offsets(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        # 20:00 at -05:00 is 01:00 UTC the next day
        _job(db, "j1", "Dev", created_at=datetime.fromisoformat("2024-03-15T20:00:00-05:00"))
        before = SearchFilters.model_validate(
            {"date_range": {"start": "2024-03-15T00:00:00Z", "end": "2024-03-16T00:00:00Z"}},
        )
        after = SearchFilters.model_validate(
            {"date_range": {"start": "2024-03-16T00:00:00Z", "end": "2024-03-16T01:00:00Z"}},
        )
        assert await search_jobs(store, "dev", before, 10, 0) == []
        assert [r.id for r in await search_jobs(store, "dev", after, 10, 0)] == ["j1"]

    async def test_limit_offset_passed_to_store(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        for i in range(5):
            _job(db, f"j{i}", "Dev")
        assert len(await search_jobs(store, "dev", NO_FILTERS, 2, 0)) == 2
        assert len(await search_jobs(store, "dev", NO_FILTERS, 10, 4)) == 1

    async def test_empty_query_matches_all_eligible(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        _job(db, "j1", "Dev")
        _job(db, "j2", "Ventas")
        _job(db, "j3", "Cerrado", status="CLOSED")
        assert {r.id for r in await search_jobs(store, "", NO_FILTERS, 10, 0)} == {"j1", "j2"}

    def test_experience_and_category_ignored(self) -> None:
        filtered = job_conditions("dev", SearchFilters(experience="5", category="tech"))
        assert filtered == job_conditions("dev", NO_FILTERS)


class TestMapJob:
    def _row(self, **kw: object) -> dict[str, object]:
        row: dict[str, object] = {
            "id": "j1",
            "title": "Desarrollador Frontend",
            "description": "React",
            "organization_name": "Andina",
            "location": "La Paz",
            "salary_min": 4000.0,
            "salary_max": 6000.0,
            "contract_type": "FULL_TIME",
            "work_modality": "HYBRID",
            "created_at": datetime(2024, 4, 1),
        }
        row.update(kw)
        return row

    def test_metadata(self) -> None:
        r = map_job("frontend", self._row())
        assert r.type == "job"
        assert r.url == "/jobs/j1"
        assert r.metadata == {
            "company": "Andina",
            "location": "La Paz",
            "salary": "4000 - 6000",
            "contract_type": "FULL_TIME",
            "work_modality": "HYBRID",
            "created_at": datetime(2024, 4, 1),
        }

    def test_salary_unspecified(self) -> None:
        assert map_job("x", self._row(salary_min=None)).metadata["salary"] == SALARY_UNSPECIFIED
        assert map_job("x", self._row(salary_min=0)).metadata["salary"] == SALARY_UNSPECIFIED

    def test_salary_decimal_and_open_max(self) -> None:
        assert map_job("x", self._row(salary_min=3500.5)).metadata["salary"] == "3500.5 - 6000"
        assert map_job("x", self._row(salary_max=None)).metadata["salary"] == "4000"

    def test_scored_on_title_and_description(self) -> None:
        # 80 title substring + 20 title word
        assert map_job("frontend", self._row()).score == 100
        # 30 description substring + 10 description word
        assert map_job("react", self._row()).score == 40


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


class TestSearchOrganizations:
    async def test_fallback_description(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_organization(db, {"id": "o1", "name": "Andina", "description": None})
        (r,) = await search_organizations(store, "andina", NO_FILTERS, 10, 0)
        assert r.description == ORGANIZATION_FALLBACK_DESCRIPTION
        assert r.url == "/companies/o1"
        assert r.score == 100

    async def test_matches_sector_and_website(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        insert_organization(db, {"id": "o1", "name": "A", "business_sector": "Tecnología"})
        insert_organization(db, {"id": "o2", "name": "B", "website": "https://tecno.example.com"})
        insert_organization(db, {"id": "o3", "name": "C"})
        results = await search_organizations(store, "tecno", NO_FILTERS, 10, 0)
        assert {r.id for r in results} == {"o1", "o2"}

    async def test_location_and_category(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_organization(db, {
            "id": "o1", "name": "Andina", "address": "La Paz", "business_sector": "Tecnología",
        })
        insert_organization(db, {
            "id": "o2", "name": "Andes", "address": "La Paz", "business_sector": "Agro",
        })
        insert_organization(db, {
            "id": "o3", "name": "Andar", "address": "Oruro", "business_sector": "Tecnología",
        })
        filters = SearchFilters(location="la paz", category="TECNO")
        results = await search_organizations(store, "and", filters, 10, 0)
        assert [r.id for r in results] == ["o1"]

    async def test_metadata_keys(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_organization(db, {"id": "o1", "name": "Andina", "company_size": "MEDIUM"})
        (r,) = await search_organizations(store, "andina", NO_FILTERS, 10, 0)
        assert set(r.metadata) == {"business_sector", "address", "website", "company_size", "created_at"}
        assert r.metadata["company_size"] == "MEDIUM"


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------


class TestSearchCandidates:
    async def test_only_youth_role(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1")
        _candidate(db, "u2", role="COMPANIES")
        results = await search_candidates(store, "ana", NO_FILTERS, 10, 0)
        assert [r.id for r in results] == ["u1"]

    async def test_title_is_full_name(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1", professional_summary=None)
        (r,) = await search_candidates(store, "quispe", NO_FILTERS, 10, 0)
        assert r.title == "Ana Quispe"
        assert r.description == CANDIDATE_FALLBACK_DESCRIPTION
        assert r.url == "/profiles/u1"

    async def test_fallback_not_scored(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1", job_title="Perfil")
        (r,) = await search_candidates(store, "perfil", NO_FILTERS, 10, 0)
        # Matched on job_title; the fallback description is not scored
        assert r.score == 0

    async def test_exact_skill_element_matches(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        _candidate(db, "u1", relevant_skills=["excel", "contabilidad"])
        assert len(await search_candidates(store, "excel", NO_FILTERS, 10, 0)) == 1
        assert await search_candidates(store, "exc", NO_FILTERS, 10, 0) == []

    async def test_skills_filter_any_of(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1", relevant_skills=["react", "figma"])
        _candidate(db, "u2", relevant_skills=["excel"])
        results = await search_candidates(store, "", SearchFilters(skills=["vue", "figma"]), 10, 0)
        assert [r.id for r in results] == ["u1"]

    async def test_location_filter_on_city(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1", city="La Paz")
        _candidate(db, "u2", city="Sucre")
        results = await search_candidates(store, "ana", SearchFilters(location="sucre"), 10, 0)
        assert [r.id for r in results] == ["u2"]

    async def test_skills_metadata_is_list(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        _candidate(db, "u1", relevant_skills=["react"], city="La Paz", job_title="Dev")
        (r,) = await search_candidates(store, "ana", NO_FILTERS, 10, 0)
        assert r.metadata["relevant_skills"] == ["react"]
        assert r.metadata["city"] == "La Paz"
        assert r.metadata["job_title"] == "Dev"


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class TestSearchCourses:
    async def test_only_active(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_course(db, {"id": "c1", "title": "React", "is_active": True})
        insert_course(db, {"id": "c2", "title": "React avanzado", "is_active": False})
        assert [r.id for r in await search_courses(store, "react", NO_FILTERS, 10, 0)] == ["c1"]

    async def test_skills_no_overlap_excluded(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        insert_course(db, {"id": "c1", "title": "React", "tags": ["react", "javascript"]})
        assert await search_courses(store, "react", SearchFilters(skills=["vue"]), 10, 0) == []
        found = await search_courses(store, "react", SearchFilters(skills=["javascript"]), 10, 0)
        assert [r.id for r in found] == ["c1"]

    async def test_category_and_location_not_applied(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        insert_course(db, {"id": "c1", "title": "React", "category": "TECHNICAL_SKILLS"})
        filters = SearchFilters(category="ENTREPRENEURSHIP", location="Oruro")
        assert [r.id for r in await search_courses(store, "react", filters, 10, 0)] == ["c1"]

    async def test_metadata(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_course(db, {
            "id": "c1", "title": "React", "institution_name": "CFT", "duration": 40,
            "level": "BEGINNER", "category": "TECHNICAL_SKILLS", "tags": ["react"],
        })
        (r,) = await search_courses(store, "react", NO_FILTERS, 10, 0)
        assert r.url == "/courses/c1"
        assert r.metadata["duration"] == 40
        assert r.metadata["tags"] == ["react"]
        assert r.metadata["institution_name"] == "CFT"


# ---------------------------------------------------------------------------
# Institutions
# ---------------------------------------------------------------------------


class TestSearchInstitutions:
    async def test_constant_description(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_institution(db, {"id": "i1", "name": "Fundación Impulsa"})
        (r,) = await search_institutions(store, "impulsa", NO_FILTERS, 10, 0)
        assert r.description == INSTITUTION_DESCRIPTION
        assert r.url == "/institutions/i1"

    async def test_constant_description_is_scored(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        insert_institution(db, {"id": "i1", "name": "CFT", "custom_type": "Educativa"})
        (r,) = await search_institutions(store, "educativa", NO_FILTERS, 10, 0)
        # 30 description substring + 10 description word
        assert r.score == 40

    async def test_only_active(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_institution(db, {"id": "i1", "name": "Centro A", "is_active": True})
        insert_institution(db, {"id": "i2", "name": "Centro B", "is_active": False})
        assert [r.id for r in await search_institutions(store, "centro", NO_FILTERS, 10, 0)] == ["i1"]

    async def test_location_filter_on_department(
        self, db: sqlite3.Connection, store: SqliteSearchStore,
    ) -> None:
        insert_institution(db, {"id": "i1", "name": "Centro A", "department": "La Paz"})
        insert_institution(db, {"id": "i2", "name": "Centro B", "department": "Potosí"})
        results = await search_institutions(store, "centro", SearchFilters(location="POTOSÍ"), 10, 0)
        assert [r.id for r in results] == ["i2"]

    async def test_category_not_applied(self, db: sqlite3.Connection, store: SqliteSearchStore) -> None:
        insert_institution(db, {"id": "i1", "name": "Centro", "institution_type": "NGO"})
        results = await search_institutions(store, "centro", SearchFilters(category="MUNICIPALITY"), 10, 0)
        assert len(results) == 1
