"""
Environment-driven database configuration shared by the API, the CLI and Alembic.
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = (".env", ".env.local")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


def load_env_files() -> None:
    """
    Copy KEY=VALUE lines from the project's env files into os.environ.
    Variables already set in the process are left alone.
    """

    for filename in ENV_FILES:
        env_path = PROJECT_ROOT / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            key, separator, value = raw_line.strip().partition("=")
            key = key.strip()
            if not separator or not key or key.startswith("#"):
                continue
            os.environ.setdefault(key, value.strip().strip("\"'"))


def normalize_postgres_url(url: str) -> str:
    """
    Point bare postgres URLs at the psycopg 3 driver.
    """

    scheme, separator, rest = url.partition("://")
    if separator and scheme in {"postgres", "postgresql"}:
        return f"postgresql+psycopg://{rest}"
    return url


def database_url_candidates() -> list[str]:
    """
    Env var names consulted in order: DATABASE_URL, then CLOUD_DATABASE_URL
    when ENVIRONMENT is cloud-like, then LOCAL_DATABASE_URL.
    """

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    names = ["DATABASE_URL"]
    if environment in CLOUD_ENVIRONMENTS:
        names.append("CLOUD_DATABASE_URL")
    names.append("LOCAL_DATABASE_URL")
    return names


def resolve_database_url() -> str:
    load_env_files()

    for name in database_url_candidates():
        value = (os.getenv(name) or "").strip()
        if value:
            return normalize_postgres_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
