"""Runtime configuration resolved from the environment.

Priority for every value:
  1. Explicit argument passed by the caller (e.g. CRM(agent_id="acme"))
  2. Environment variable (a local .env file is loaded on import)
  3. Built-in default

Usage:
    from crm_config import get_agent_id, get_database_url
    url = get_database_url()
"""
import os

from dotenv import load_dotenv

from crm_errors import ConfigError

load_dotenv()

DEFAULT_AGENT_ID = "default"

# Drivers the async engine accepts. asyncpg is the production target;
# aiosqlite is for local runs and the test suite.
SUPPORTED_DRIVERS = ("postgresql+asyncpg", "sqlite+aiosqlite")


def get_database_url() -> str:
    """Return DATABASE_URL or raise ConfigError with setup instructions."""
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise ConfigError(
            "DATABASE_URL environment variable is not set. "
            "Copy .env.example to .env and set your database credentials."
        )
    return url


def get_agent_id() -> str:
    """Return the tenant id from CRM_AGENT_ID, falling back to 'default'."""
    return os.environ.get("CRM_AGENT_ID", "").strip() or DEFAULT_AGENT_ID


def get_pool_settings() -> dict:
    """Connection pool sizing for the asyncpg engine."""
    return {
        "pool_size": int(os.environ.get("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.environ.get("DB_MAX_OVERFLOW", "10")),
        "pool_timeout": int(os.environ.get("DB_POOL_TIMEOUT", "30")),
    }


def get_log_level() -> str:
    return os.environ.get("CRM_LOG_LEVEL", "WARNING").upper()
