"""Backup and restore engine.

Exports every table in the registry into a versioned bundle, and restores
a bundle either as a dry run or inside a single transaction.

Usage:
    from biz_backup.backup import export_bundle, import_bundle, ImportOptions
    from biz_backup.backup import read_bundle, write_bundle
"""

from biz_backup.backup.codec import decode_bundle, encode_bundle, read_bundle, write_bundle
from biz_backup.backup.errors import (
    AuthorizationError,
    BackupError,
    BundleFormatError,
    ExportError,
    ImportFailedError,
    ManifestFormatError,
    TransactionError,
    UnsupportedVersionError,
)
from biz_backup.backup.exporter import export_bundle
from biz_backup.backup.importer import import_bundle
from biz_backup.backup.manifest import build_manifest, validate_manifest
from biz_backup.backup.models import (
    Bundle,
    ImportOptions,
    ImportReport,
    Manifest,
    TableResult,
)
from biz_backup.backup.registry import DEFAULT_REGISTRY, TableDef, TableRegistry
from biz_backup.backup.service import (
    backup_to_file,
    preview_restore,
    restore_bundle,
    restore_from_file,
    summarize,
)

__all__ = [
    # Registry
    "DEFAULT_REGISTRY",
    "TableDef",
    "TableRegistry",
    # Models
    "Bundle",
    "ImportOptions",
    "ImportReport",
    "Manifest",
    "TableResult",
    # Engine
    "build_manifest",
    "validate_manifest",
    "export_bundle",
    "import_bundle",
    "decode_bundle",
    "encode_bundle",
    "read_bundle",
    "write_bundle",
    # Service
    "backup_to_file",
    "preview_restore",
    "restore_bundle",
    "restore_from_file",
    "summarize",
    # Errors
    "BackupError",
    "AuthorizationError",
    "BundleFormatError",
    "ManifestFormatError",
    "UnsupportedVersionError",
    "ExportError",
    "TransactionError",
    "ImportFailedError",
]
