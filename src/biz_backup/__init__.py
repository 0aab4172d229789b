"""biz-backup: versioned backup and transactional restore for business data.

Exports the application's tables into a single JSON bundle with a manifest,
and restores a bundle with a dry-run preview and an all-or-nothing commit
run over PostgreSQL (and optionally Supabase).

Usage:
    from biz_backup import get_adapter, export_bundle, import_bundle
    from biz_backup import ImportOptions, read_bundle, write_bundle
"""

__version__ = "0.1.0"

# Adapters
from biz_backup.adapters.base import DatabaseClient, Transaction
from biz_backup.adapters.postgres import AsyncPostgresAdapter

# Config
from biz_backup.config.loader import load_db_config
from biz_backup.config.models import BackupSettings, DatabaseConfig, DatabaseProfile

# Factory
from biz_backup.factory import ProfileNotFoundError, get_adapter, resolve_url

# Backup engine
from biz_backup.backup import (
    DEFAULT_REGISTRY,
    BackupError,
    Bundle,
    ImportOptions,
    ImportReport,
    TableDef,
    TableRegistry,
    backup_to_file,
    decode_bundle,
    encode_bundle,
    export_bundle,
    import_bundle,
    read_bundle,
    restore_bundle,
    restore_from_file,
    write_bundle,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "Transaction",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "BackupSettings",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Backup engine
    "DEFAULT_REGISTRY",
    "TableDef",
    "TableRegistry",
    "Bundle",
    "ImportOptions",
    "ImportReport",
    "BackupError",
    "export_bundle",
    "import_bundle",
    "decode_bundle",
    "encode_bundle",
    "read_bundle",
    "write_bundle",
    "backup_to_file",
    "restore_bundle",
    "restore_from_file",
]

# Optional: AsyncSupabaseAdapter (only available with supabase extra)
try:
    from biz_backup.adapters.supabase import AsyncSupabaseAdapter

    __all__.append("AsyncSupabaseAdapter")
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
