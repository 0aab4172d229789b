"""Build and validate bundle manifests.

Pure logic -- no I/O.

Usage:
    from biz_backup.backup.manifest import build_manifest, validate_manifest

    manifest = build_manifest({"customers": rows}, errors=["sales: timeout"])
    checked = validate_manifest(manifest.to_wire())
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from biz_backup.backup.errors import ManifestFormatError, UnsupportedVersionError
from biz_backup.backup.models import CURRENT_VERSION, SUPPORTED_VERSIONS, Manifest

REQUIRED_FIELDS = ("version", "timestamp", "tables")


def build_manifest(
    files: Mapping[str, list],
    errors: list[str] | None = None,
    timestamp: datetime | None = None,
) -> Manifest:
    """Create the manifest for freshly exported table data.

    ``tables`` lists the keys of ``files`` in order and every record count
    is the length of its array.  ``errors`` is omitted when empty.

    Args:
        files: Table name -> exported rows, successful tables only.
        errors: ``"<table>: <reason>"`` strings for tables that failed.
        timestamp: Export time (default: now, UTC).
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    return Manifest(
        version=CURRENT_VERSION,
        timestamp=timestamp.isoformat(),
        tables=list(files.keys()),
        record_counts={name: len(rows) for name, rows in files.items()},
        errors=list(errors) if errors else None,
    )


def validate_manifest(
    raw: Any,
    supported_versions: list[str] = SUPPORTED_VERSIONS,
) -> Manifest:
    """Check a producer's manifest and return it as a ``Manifest``.

    Raises:
        ManifestFormatError: ``version``, ``timestamp`` or ``tables`` is
            missing or empty, or ``tables`` is not a list of names.
        UnsupportedVersionError: ``version`` is not in ``supported_versions``.
    """
    if not isinstance(raw, Mapping):
        raise ManifestFormatError("invalid manifest format")

    for key in REQUIRED_FIELDS:
        if key not in raw or raw[key] in (None, ""):
            raise ManifestFormatError("invalid manifest format")

    tables = raw["tables"]
    if not isinstance(tables, list) or not all(isinstance(t, str) for t in tables):
        raise ManifestFormatError("invalid manifest format")

    version = raw["version"]
    if version not in supported_versions:
        raise UnsupportedVersionError(version, list(supported_versions))

    record_counts = raw.get("recordCounts") or {}
    if not isinstance(record_counts, Mapping):
        raise ManifestFormatError("invalid manifest format")

    errors = raw.get("errors") or None
    return Manifest(
        version=str(version),
        timestamp=str(raw["timestamp"]),
        tables=tables,
        record_counts={
            k: v for k, v in record_counts.items() if isinstance(v, int)
        },
        errors=[str(e) for e in errors] if isinstance(errors, list) else None,
    )


def check_consistency(manifest: Manifest, files: Mapping[str, Any]) -> list[str]:
    """Compare a manifest with the table documents it describes.

    Returns:
        Human-readable warnings; empty when manifest and documents agree.
    """
    warnings: list[str] = []

    for table in manifest.tables:
        if table not in files:
            warnings.append(f"{table}: listed in manifest but has no data document")
            continue
        rows = files[table]
        if not isinstance(rows, list):
            continue
        expected = manifest.record_counts.get(table)
        if expected is None:
            warnings.append(f"{table}: no record count in manifest")
        elif expected != len(rows):
            warnings.append(
                f"{table}: manifest records {expected} rows, document has {len(rows)}"
            )

    listed = set(manifest.tables)
    for table in files:
        if table not in listed:
            warnings.append(f"{table}: data document not listed in manifest (ignored)")

    return warnings
