"""Configuration management: profiles, backup settings, and TOML loading.

Usage:
    >>> from biz_backup.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from biz_backup.config.loader import load_db_config
from biz_backup.config.models import BackupSettings, DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "BackupSettings", "DatabaseConfig", "DatabaseProfile"]
