"""SQLite database layer for the marketplace entities the search reads.

The search service never writes; the insert helpers and the YAML seed
loader exist to populate a database for local runs and tests.
"""

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_ORGANIZATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS organizations (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    business_sector TEXT,
    website         TEXT,
    address         TEXT,
    company_size    TEXT,
    created_at      TEXT NOT NULL
);
"""

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    email       TEXT NOT NULL UNIQUE,
    role        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id              TEXT PRIMARY KEY REFERENCES users(id),
    first_name           TEXT NOT NULL DEFAULT '',
    last_name            TEXT NOT NULL DEFAULT '',
    job_title            TEXT,
    professional_summary TEXT,
    relevant_skills      TEXT NOT NULL DEFAULT '[]',
    city                 TEXT,
    created_at           TEXT NOT NULL
);
"""

_JOB_POSTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS job_postings (
    id              TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL REFERENCES organizations(id),
    title           TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    requirements    TEXT,
    location        TEXT,
    salary_min      REAL,
    salary_max      REAL,
    contract_type   TEXT,
    work_modality   TEXT,
    status          TEXT NOT NULL DEFAULT 'ACTIVE',
    created_at      TEXT NOT NULL
);
"""

_COURSES_TABLE = """
CREATE TABLE IF NOT EXISTS courses (
    id               TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    description      TEXT NOT NULL DEFAULT '',
    institution_name TEXT,
    category         TEXT,
    duration         INTEGER,
    level            TEXT,
    tags             TEXT NOT NULL DEFAULT '[]',
    is_active        INTEGER NOT NULL DEFAULT 1,
    created_at       TEXT NOT NULL
);
"""

_INSTITUTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS institutions (
    id               TEXT PRIMARY KEY,
    name             TEXT NOT NULL,
    institution_type TEXT,
    department       TEXT,
    website          TEXT,
    custom_type      TEXT,
    is_active        INTEGER NOT NULL DEFAULT 1,
    created_at       TEXT NOT NULL
);
"""

_JOB_POSTING_SEARCH_VIEW = """
CREATE VIEW IF NOT EXISTS job_posting_search AS
SELECT j.*, o.name AS organization_name
FROM job_postings j
JOIN organizations o ON o.id = j.organization_id;
"""

_CANDIDATE_PROFILES_VIEW = """
CREATE VIEW IF NOT EXISTS candidate_profiles AS
SELECT p.*, u.role AS role
FROM profiles p
JOIN users u ON u.id = p.user_id;
"""

_SCHEMA = (
    _ORGANIZATIONS_TABLE,
    _USERS_TABLE,
    _PROFILES_TABLE,
    _JOB_POSTINGS_TABLE,
    _COURSES_TABLE,
    _INSTITUTIONS_TABLE,
    _JOB_POSTING_SEARCH_VIEW,
    _CANDIDATE_PROFILES_VIEW,
)

# Columns holding JSON-encoded string lists.
LIST_COLUMNS = frozenset({"relevant_skills", "tags"})

# Seed order respects foreign keys.
_SEED_TABLES = (
    "organizations",
    "users",
    "profiles",
    "job_postings",
    "courses",
    "institutions",
)

_COLUMNS: dict[str, tuple[str, ...]] = {
    "organizations": (
        "id", "name", "description", "business_sector", "website",
        "address", "company_size", "created_at",
    ),
    "users": ("id", "email", "role", "created_at"),
    "profiles": (
        "user_id", "first_name", "last_name", "job_title",
        "professional_summary", "relevant_skills", "city", "created_at",
    ),
    "job_postings": (
        "id", "organization_id", "title", "description", "requirements",
        "location", "salary_min", "salary_max", "contract_type",
        "work_modality", "status", "created_at",
    ),
    "courses": (
        "id", "title", "description", "institution_name", "category",
        "duration", "level", "tags", "is_active", "created_at",
    ),
    "institutions": (
        "id", "name", "institution_type", "department", "website",
        "custom_type", "is_active", "created_at",
    ),
}


def to_timestamp(value: date | datetime) -> str:
    """Canonical stored form of a timestamp, comparable as text.

    Dates become midnight; aware datetimes are converted to UTC and stored
    naive, so range bounds and stored values share one format.
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat()


def icontains(haystack: str | None, needle: str | None) -> bool:
    """Unicode-aware case-insensitive substring test, registered in SQLite.

    SQLite's LIKE and lower() only fold ASCII, which misses accented
    Spanish text ("DISEÑO" vs "diseño").
    """
    if haystack is None or needle is None:
        return False
    return needle.lower() in haystack.lower()


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and schema, returning a connection.

    The connection may be used from worker threads; callers must serialize
    access to it (see SqliteSearchStore).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.create_function("icontains", 2, icontains, deterministic=True)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    for ddl in _SCHEMA:
        conn.execute(ddl)
    conn.commit()
    return conn


def _encode(column: str, value: Any) -> Any:
    if column in LIST_COLUMNS:
        return json.dumps(list(value or []), ensure_ascii=False)
    if isinstance(value, (datetime, date)):
        return to_timestamp(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _insert(conn: sqlite3.Connection, table: str, row: dict[str, Any]) -> None:
    columns = _COLUMNS[table]
    unknown = set(row) - set(columns)
    if unknown:
        msg = f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    values = dict(row)
    values.setdefault("created_at", datetime.now())
    present = [c for c in columns if c in values]
    placeholders = ", ".join("?" for _ in present)
    conn.execute(
        f"INSERT INTO {table} ({', '.join(present)}) VALUES ({placeholders})",
        tuple(_encode(c, values[c]) for c in present),
    )


def insert_organization(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert an organization row."""
    _insert(conn, "organizations", row)
    conn.commit()


def insert_user(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert a user row (carries the role that gates candidate search)."""
    _insert(conn, "users", row)
    conn.commit()


def insert_profile(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert a profile row; ``relevant_skills`` is a list of strings."""
    _insert(conn, "profiles", row)
    conn.commit()


def insert_job_posting(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert a job posting row."""
    _insert(conn, "job_postings", row)
    conn.commit()


def insert_course(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert a course row; ``tags`` is a list of strings."""
    _insert(conn, "courses", row)
    conn.commit()


def insert_institution(conn: sqlite3.Connection, row: dict[str, Any]) -> None:
    """Insert an institution row."""
    _insert(conn, "institutions", row)
    conn.commit()


def seed_from_yaml(conn: sqlite3.Connection, path: str | Path) -> dict[str, int]:
    """Load fixture rows from a YAML file, keyed by table name.

    All rows are inserted in one transaction. Returns inserted counts per table.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Seed file not found: {path}"
        raise FileNotFoundError(msg)
    raw: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    unknown = set(raw) - set(_SEED_TABLES)
    if unknown:
        msg = f"Unknown seed section(s): {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    counts: dict[str, int] = {}
    with conn:
        for table in _SEED_TABLES:
            rows = raw.get(table) or []
            for row in rows:
                _insert(conn, table, row)
            counts[table] = len(rows)

    logger.info("Seeded %s from %s", counts, path)
    return counts
