"""Runtime configuration.

Values come from explicit arguments first, then the environment (a ``.env``
file is loaded by ``load_settings``), then defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(ValueError):
    """Configuration is missing or malformed."""


@dataclass
class Settings:
    """Connection and logging settings for the registry."""

    neo4j_uri: str | None = None
    neo4j_user: str | None = None
    neo4j_password: str | None = None
    neo4j_database: str | None = None
    log_level: str | None = None

    def __post_init__(self):
        self.neo4j_uri = self.neo4j_uri or os.getenv("NEO4J_URI", "bolt://localhost:7687")
        self.neo4j_user = self.neo4j_user or os.getenv("NEO4J_USER", "neo4j")
        self.neo4j_password = self.neo4j_password or os.getenv("NEO4J_PASSWORD")
        self.neo4j_database = self.neo4j_database or os.getenv("NEO4J_DATABASE", "neo4j")
        self.log_level = (self.log_level or os.getenv("FAMILY_LOG_LEVEL", "INFO")).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"FAMILY_LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}"
            )

    def require_credentials(self) -> None:
        """Fail early when the database password is not configured."""
        missing = [
            name
            for name, value in (
                ("NEO4J_URI", self.neo4j_uri),
                ("NEO4J_USER", self.neo4j_user),
                ("NEO4J_PASSWORD", self.neo4j_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing Neo4j environment variables: {', '.join(missing)}")


def load_settings(env_file: str | Path | None = None, **overrides: str | None) -> Settings:
    """Load ``.env`` (without overriding the real environment) and build Settings."""
    load_dotenv(env_file)
    return Settings(**overrides)
