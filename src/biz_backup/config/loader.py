"""Load configuration from a ``db.toml`` file."""

import tomllib
from pathlib import Path

from biz_backup.config.models import BackupSettings, DatabaseConfig, DatabaseProfile


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database and backup configuration from TOML file.

    A ``page_size`` of ``0`` in the ``[backup]`` section disables paging
    (each table is read in a single call).

    Args:
        config_path: Path to db.toml (default: ``db.toml`` in the current
            working directory).

    Returns:
        DatabaseConfig with all profiles and backup settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If a section has an invalid shape.
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with at least one [profiles.<name>] section."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    backup_data = dict(data.get("backup", {}))
    if backup_data.get("page_size") == 0:
        backup_data["page_size"] = None

    return DatabaseConfig(
        profiles=profiles,
        backup=BackupSettings(**backup_data),
    )
