"""Configuration models and YAML loader for the talent search service."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_POPULAR_SEARCHES = [
    "Desarrollador Frontend",
    "Marketing Digital",
    "Diseño Gráfico",
    "Administración",
    "Ventas",
    "Recursos Humanos",
    "Contabilidad",
    "Ingeniería",
    "Medicina",
    "Educación",
]


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/talent.db"


class SearchConfig(BaseModel):
    """Defaults and fan-out policy for the search service."""

    default_limit: int = Field(default=20, ge=1, le=100)
    suggestion_limit: int = Field(default=5, ge=1)
    popular_limit: int = Field(default=10, ge=1)
    pagination: Literal["global", "per_type"] = "global"
    partial_results: bool = False
    timeout_seconds: float | None = Field(default=None, gt=0)
    popular_searches: list[str] = Field(
        default_factory=lambda: list(DEFAULT_POPULAR_SEARCHES),
    )

    @field_validator("popular_searches")
    @classmethod
    def popular_not_empty(cls, v: list[str]) -> list[str]:
        cleaned = [s.strip() for s in v if s.strip()]
        if not cleaned:
            msg = "popular_searches must contain at least one entry"
            raise ValueError(msg)
        return cleaned


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(raw)
