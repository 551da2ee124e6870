# eldergrid/utils/env.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, validator

from eldergrid.utils.constants import DEFAULT_LOG_LIMIT

logger = logging.getLogger(__name__)

TRUTHY = ("1", "true", "yes", "y", "on")


class ConfigError(RuntimeError):
    pass


def load_env() -> None:
    dotenv_path = _find_env_file()
    if dotenv_path:
        load_dotenv(dotenv_path=str(dotenv_path), override=False)
    else:
        load_dotenv(override=False)


def _find_env_file() -> Path | None:
    candidates = []
    here = Path(__file__).resolve()
    pkg_dir = here.parent.parent
    root = pkg_dir.parent

    candidates.append(Path.cwd() / ".env.local")
    candidates.append(Path.cwd() / ".env")
    candidates.append(root / ".env")
    candidates.append(pkg_dir / ".env")

    for p in candidates:
        if p.exists() and p.is_file():
            return p
    return None


def get_env(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def get_flag(key: str, default: bool = False) -> bool:
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in TRUTHY


def configure_logging(level: str | None = None) -> None:
    name = (level or get_env("ELDERGRID_LOG_LEVEL", "INFO") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s · %(levelname)s · %(name)s · %(message)s",
    )


# ---------- Settings ----------
class Settings(BaseModel):
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    user_id: Optional[str] = None
    store: Literal["supabase", "sqlite"] = "sqlite"
    db_path: Optional[str] = None
    gov_source: Literal["mock", "api"] = "mock"
    gov_api_endpoint: Optional[str] = None
    gov_api_key: Optional[str] = None
    gov_fallback_to_mock: bool = True
    log_limit: int = DEFAULT_LOG_LIMIT

    @validator("log_limit")
    def validate_log_limit(cls, v):
        if v <= 0:
            raise ValueError("ELDERGRID_LOG_LIMIT must be a positive integer")
        return v


def load_settings() -> Settings:
    """Build Settings from the process environment (call load_env() first)."""
    raw_limit = get_env("ELDERGRID_LOG_LIMIT") or str(DEFAULT_LOG_LIMIT)
    try:
        log_limit = int(raw_limit)
    except ValueError:
        raise ConfigError(f"ELDERGRID_LOG_LIMIT must be an integer, got {raw_limit!r}")

    try:
        settings = Settings(
            supabase_url=get_env("SUPABASE_URL") or get_env("NEXT_PUBLIC_SUPABASE_URL"),
            supabase_anon_key=get_env("SUPABASE_ANON_KEY") or get_env("NEXT_PUBLIC_SUPABASE_ANON_KEY"),
            supabase_service_role_key=get_env("SUPABASE_SERVICE_ROLE_KEY"),
            user_id=get_env("ELDERGRID_USER_ID"),
            store=(get_env("ELDERGRID_STORE", "sqlite") or "sqlite").strip().lower(),
            db_path=get_env("ELDERGRID_DB_PATH"),
            gov_source=(get_env("ELDERGRID_GOV_SOURCE", "mock") or "mock").strip().lower(),
            gov_api_endpoint=get_env("GOV_ENERGY_API_ENDPOINT"),
            gov_api_key=get_env("GOV_ENERGY_API_KEY"),
            gov_fallback_to_mock=get_flag("ELDERGRID_GOV_FALLBACK", True),
            log_limit=log_limit,
        )
    except ValueError as e:
        # pydantic's ValidationError subclasses ValueError
        raise ConfigError(f"Invalid ElderGrid configuration:\n{e}")

    if settings.gov_source == "api" and not settings.gov_api_endpoint:
        raise ConfigError("GOV_ENERGY_API_ENDPOINT is required when ELDERGRID_GOV_SOURCE=api")

    if settings.store == "supabase":
        problems = [c for c in validate_env(required_only=True) if not c.ok]
        if problems:
            for c in problems:
                logger.error("%s: %s (%s)", c.name, c.status, c.description)
            raise ConfigError(
                "Supabase store selected but credentials are missing or malformed: "
                + ", ".join(c.name for c in problems)
                + ". Add SUPABASE_URL=https://your-project.supabase.co and "
                "SUPABASE_ANON_KEY=<anon key> to .env.local, or set ELDERGRID_STORE=sqlite."
            )
    return settings


# ---------- Validation ----------
@dataclass
class EnvVar:
    name: str
    required: bool
    description: str
    check: Optional[Callable[[str], bool]] = None
    aliases: tuple = ()


@dataclass
class EnvCheck:
    name: str
    ok: bool
    status: str
    description: str
    preview: str = ""


def _is_supabase_url(value: str) -> bool:
    return value.startswith("https://") and ".supabase.co" in value


def _is_supabase_jwt(value: str) -> bool:
    return value.startswith("eyJ") and len(value) > 100


ENV_VARS = [
    EnvVar("SUPABASE_URL", True, "Supabase project URL", _is_supabase_url, ("NEXT_PUBLIC_SUPABASE_URL",)),
    EnvVar("SUPABASE_ANON_KEY", True, "Supabase anonymous key (public)", _is_supabase_jwt,
           ("NEXT_PUBLIC_SUPABASE_ANON_KEY",)),
    EnvVar("SUPABASE_SERVICE_ROLE_KEY", False, "Supabase service role key (for admin operations)",
           _is_supabase_jwt),
]


def validate_env(required_only: bool = False) -> List[EnvCheck]:
    """
    Check the Supabase variables.
    Missing optional values are reported but stay ok=True.
    """
    results: List[EnvCheck] = []
    for var in ENV_VARS:
        if required_only and not var.required:
            continue
        value = get_env(var.name)
        for alias in var.aliases:
            value = value or get_env(alias)

        if not value:
            status = "MISSING (Required)" if var.required else "MISSING (Optional)"
            results.append(EnvCheck(var.name, not var.required, status, var.description))
            continue

        if var.check and not var.check(value):
            results.append(EnvCheck(var.name, False, "INVALID FORMAT", var.description, value[:20] + "..."))
            continue

        preview = value if "URL" in var.name else value[:20] + "..."
        results.append(EnvCheck(var.name, True, "OK", var.description, preview))
    return results
