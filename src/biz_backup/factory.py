"""Database client factory.

Resolves the active profile and builds the matching adapter:

1. Profile mode (db.toml + ``DB_PROFILE`` env var or ``.db-profile`` lock file)
2. Direct mode (``database_url`` passed by the caller)

Environment variable names take an optional prefix so several
applications can share one environment (``--env-prefix SHOP_`` reads
``SHOP_DB_PROFILE`` and ``SHOP_SUPABASE_KEY``).
"""

import os
from pathlib import Path
from urllib.parse import quote

from biz_backup.adapters.base import DatabaseClient
from biz_backup.adapters.postgres import AsyncPostgresAdapter
from biz_backup.config.loader import load_db_config
from biz_backup.config.models import DatabaseProfile

# Profile lock file path (resolved against the working directory)
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Lock File Operations
# ============================================================================


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file."""
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var
    2. .db-profile file in the working directory
    3. Raise ProfileNotFoundError

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_prefix}DB_PROFILE=<name> or run: biz-backup use <name>"
    )


def get_active_profile(env_prefix: str = "") -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    profile_name = get_active_profile_name(env_prefix=env_prefix)
    config = load_db_config()

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    The password is URL-quoted so special characters survive.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def build_adapter(profile: DatabaseProfile, env_prefix: str = "") -> DatabaseClient:
    """Construct the adapter for a profile's provider.

    Raises:
        ValueError: Unknown provider, or a Supabase profile without a key.
        ImportError: Supabase profile without the ``supabase`` extra.
    """
    if profile.provider == "postgres":
        return AsyncPostgresAdapter(
            database_url=resolve_url(profile),
            jsonb_columns=profile.jsonb_columns,
        )

    if profile.provider == "supabase":
        from biz_backup.adapters.supabase import AsyncSupabaseAdapter

        key = profile.api_key or os.environ.get(f"{env_prefix}SUPABASE_KEY")
        if not key:
            raise ValueError(
                f"Supabase profile needs api_key or {env_prefix}SUPABASE_KEY"
            )
        return AsyncSupabaseAdapter(url=profile.url, key=key)

    raise ValueError(f"Unknown provider '{profile.provider}'")


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    database_url: str | None = None,
) -> DatabaseClient:
    """Create a new adapter.  No caching -- callers own and close it.

    Args:
        profile_name: Profile from db.toml.  When ``None``, the active
            profile is used.
        env_prefix: Prefix for environment variable lookup.
        database_url: Direct PostgreSQL URL; bypasses profiles entirely.

    Raises:
        ProfileNotFoundError: If no profile is configured.
        KeyError: If the profile is not in db.toml.
    """
    if database_url:
        return AsyncPostgresAdapter(database_url=database_url)

    if profile_name is None:
        _, profile = get_active_profile(env_prefix=env_prefix)
    else:
        config = load_db_config()
        if profile_name not in config.profiles:
            available = ", ".join(config.profiles.keys())
            raise KeyError(
                f"Profile '{profile_name}' not found in db.toml. "
                f"Available: {available}"
            )
        profile = config.profiles[profile_name]

    return build_adapter(profile, env_prefix=env_prefix)
