"""
Centralized configuration management for the assessment scoring engine.

Provides environment-specific configuration with validation, type safety,
and settings management using Pydantic.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """
    Database configuration settings.

    Handles both SQLite and MySQL configurations with validation
    and connection URL generation.

    Example:
        >>> db_config = DatabaseConfig(backend="sqlite", sqlite_path="./test.db")
        >>> db_config.get_connection_url()
        'sqlite:///./test.db'
    """

    backend: Literal["sqlite", "mysql"] = Field("sqlite", description="Database backend type")

    sqlite_path: str | None = Field("./assessment.db", description="SQLite database file path")

    mysql_host: str | None = Field("localhost", description="MySQL host")
    mysql_port: int | None = Field(3306, ge=1, le=65535, description="MySQL port")
    mysql_user: str | None = Field("root", description="MySQL username")
    mysql_password: str | None = Field("", description="MySQL password")
    mysql_database: str | None = Field("assessment", description="MySQL database name")
    mysql_charset: str = Field("utf8mb4", description="MySQL character set")

    pool_pre_ping: bool = Field(True, description="Enable connection pool pre-ping")
    pool_recycle: int = Field(3600, ge=60, description="Connection pool recycle time (seconds)")
    echo: bool = Field(False, description="Enable SQL query logging")

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def validate_sqlite_path(cls, v):
        """Ensure the SQLite file has a .db extension; in-memory paths pass through."""
        if v and v != ":memory:":
            path = Path(v)
            if not path.suffix:
                v = str(path.with_suffix(".db"))
        return v

    @model_validator(mode="after")
    def validate_mysql_config(self):
        """Validate MySQL configuration completeness."""
        if self.backend == "mysql":
            missing = []
            if not self.mysql_host:
                missing.append("mysql_host")
            if not self.mysql_user:
                missing.append("mysql_user")
            if not self.mysql_database:
                missing.append("mysql_database")
            if missing:
                raise ValueError(f"MySQL backend requires: {', '.join(missing)}")
        return self

    def get_connection_url(self) -> str:
        """
        Generate database connection URL.

        Raises:
            ValueError: If backend is unsupported
        """
        if self.backend == "sqlite":
            return f"sqlite:///{self.sqlite_path}"
        elif self.backend == "mysql":
            password_part = f":{self.mysql_password}" if self.mysql_password else ""
            return (
                f"mysql+pymysql://{self.mysql_user}{password_part}@{self.mysql_host}:"
                f"{self.mysql_port}/{self.mysql_database}?charset={self.mysql_charset}"
            )
        else:
            raise ValueError(f"Unsupported database backend: {self.backend}")

    def get_engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "echo": self.echo,
            "future": True,
            "pool_pre_ping": self.pool_pre_ping,
        }
        if self.backend == "mysql":
            options["pool_recycle"] = self.pool_recycle
        return options


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Minimum logging level"
    )

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}


class ScoringDimension(BaseModel):
    """Binding of a live section identifier to a fixed scoring dimension."""

    key: str = Field(..., min_length=1, max_length=64)
    section_id: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=255)
    max_questions: int = Field(..., ge=1)


DEFAULT_DIMENSIONS: list[dict[str, Any]] = [
    {"key": "governance", "section_id": "governance-section", "label": "Governance", "max_questions": 23},
    {
        "key": "financial",
        "section_id": "financial-section",
        "label": "Financial Management",
        "max_questions": 10,
    },
    {
        "key": "programme",
        "section_id": "programme-section",
        "label": "Programme/Project Accountability",
        "max_questions": 6,
    },
    {"key": "hr", "section_id": "hr-section", "label": "Human Resource Accountability", "max_questions": 4},
]


class ScoringConfig(BaseSettings):
    """
    Scoring configuration: dimension mapping, point scale and maturity tiers.

    The dimension maxima are configuration constants, not derived from the live
    question set. Override with ``SCORING_DIMENSIONS`` as a JSON list.

    Example:
        >>> cfg = ScoringConfig()
        >>> cfg.total_max_points
        215
    """

    dimensions: list[ScoringDimension] = Field(
        default_factory=lambda: [ScoringDimension(**d) for d in DEFAULT_DIMENSIONS]
    )
    points_per_question: int = Field(5, ge=1, description="Points for a fully satisfied question")
    emerging_max_percentage: float = Field(40.0, ge=0, le=100)
    strong_max_percentage: float = Field(79.0, ge=0, le=100)

    model_config = {"env_prefix": "SCORING_", "case_sensitive": False}

    @model_validator(mode="after")
    def validate_dimensions(self):
        keys = [d.key for d in self.dimensions]
        if len(set(keys)) != len(keys):
            raise ValueError("Scoring dimension keys must be unique")
        section_ids = [d.section_id for d in self.dimensions]
        if len(set(section_ids)) != len(section_ids):
            raise ValueError("A section can be bound to only one scoring dimension")
        if self.emerging_max_percentage > self.strong_max_percentage:
            raise ValueError("emerging_max_percentage cannot exceed strong_max_percentage")
        return self

    def max_points(self, dimension: ScoringDimension) -> int:
        return dimension.max_questions * self.points_per_question

    @property
    def total_max_points(self) -> int:
        return sum(self.max_points(d) for d in self.dimensions)

    def dimension_for_section(self, section_id: str) -> ScoringDimension | None:
        for dimension in self.dimensions:
            if dimension.section_id == section_id:
                return dimension
        return None


class ApplicationConfig(BaseSettings):
    """
    Main application configuration.

    Example:
        >>> config = get_settings()
        >>> config.app.environment
        'development'
    """

    environment: Literal["development", "testing", "production"] = Field(
        "development", description="Application environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    version: str = Field("0.1.0", description="Application version")
    title: str = Field("CSO Self-Assessment Engine", description="Application title")

    auto_generate_suggestions: bool = Field(
        True, description="Regenerate suggestions when an assessment becomes COMPLETED"
    )

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def debug_implies_development(self):
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    Complete application settings container with lazy loading.

    Example:
        >>> settings = get_settings()
        >>> settings.scoring.total_max_points
        215
    """

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._database: DatabaseConfig | None = None
        self._logging: LoggingConfig | None = None
        self._scoring: ScoringConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            level = "DEBUG" if self.app.debug else "INFO"
            if self.app.environment == "production":
                level = "WARNING"
            self._logging = LoggingConfig(level=level)
        return self._logging

    @property
    def scoring(self) -> ScoringConfig:
        if self._scoring is None:
            self._scoring = ScoringConfig()
        return self._scoring

    def get_environment_info(self) -> dict[str, Any]:
        """Get summary of current environment configuration."""
        return {
            "environment": self.app.environment,
            "version": self.app.version,
            "debug": self.app.debug,
            "database_backend": self.database.backend,
            "logging_level": self.logging.level,
            "scoring": {
                "dimensions": [d.key for d in self.scoring.dimensions],
                "total_max_points": self.scoring.total_max_points,
            },
            "features": {
                "auto_generate_suggestions": self.app.auto_generate_suggestions,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get application settings instance (cached).

    Returns:
        Settings instance with all configuration loaded
    """
    return Settings()


def load_settings_from_file(file_path: str) -> Settings:
    """
    Load settings from a JSON configuration file.

    Each top-level section maps onto the matching environment prefix, e.g.
    ``{"db": {"backend": "sqlite"}}`` sets ``DB_BACKEND``. List and dict values
    are serialised back to JSON so pydantic-settings can decode them.

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        ValueError: If file format is unsupported
    """
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    if config_path.suffix.lower() == ".json":
        with open(config_path, encoding="utf-8") as f:
            config_data = json.load(f)
    else:
        raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

    for section, values in config_data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                env_key = f"{section.upper()}_{key.upper()}"
                os.environ[env_key] = (
                    json.dumps(value) if isinstance(value, (list, dict)) else str(value)
                )

    get_settings.cache_clear()
    return get_settings()


def reset_settings() -> None:
    """Reset settings cache to reload from environment."""
    get_settings.cache_clear()


def get_scoring_config() -> ScoringConfig:
    return get_settings().scoring
