"""Backup bundle and import report models.

Field names are snake_case in Python; the bundle wire format and import
reports use camelCase (``recordCounts``, ``affectedRows``...).  Models
accept either spelling on input and ``model_dump(by_alias=True)`` produces
the wire spelling.

Usage:
    from biz_backup.backup.models import Bundle, ImportOptions

    bundle = Bundle(
        manifest={
            "version": "1.0.0",
            "timestamp": "2026-01-01T00:00:00+00:00",
            "tables": ["customers"],
            "recordCounts": {"customers": 1},
        },
        files={"customers": [{"id": "c1", "name": "Rahim"}]},
    )
    options = ImportOptions(dryRun=True)
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SUPPORTED_VERSIONS: list[str] = ["1.0.0"]
CURRENT_VERSION = "1.0.0"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Manifest(_WireModel):
    """Metadata envelope describing a bundle's contents."""

    version: str
    timestamp: str
    tables: list[str]
    record_counts: dict[str, int] = Field(default_factory=dict, alias="recordCounts")
    errors: list[str] | None = None  # tables that failed to export


class Bundle(_WireModel):
    """A manifest plus one record array per table.

    ``manifest`` is kept as the raw mapping from the producer; the importer
    validates it.  ``files`` maps table name to its payload, which should
    be a list of record dicts.
    """

    manifest: dict[str, Any]
    files: dict[str, Any] = Field(default_factory=dict)
    exported_at: str | None = Field(default=None, alias="exportedAt")


class ImportOptions(_WireModel):
    """Options for one import call.

    ``overwrite_existing`` and ``skip_conflicts`` are handed to the adapter's
    upsert unchanged.
    """

    dry_run: bool = Field(default=False, alias="dryRun")
    overwrite_existing: bool = Field(default=False, alias="overwriteExisting")
    skip_conflicts: bool = Field(default=False, alias="skipConflicts")


class TableResult(_WireModel):
    """Outcome for one table of an import."""

    action: Literal["validate", "upsert", "skip"]
    record_count: int = Field(alias="recordCount")
    affected_rows: int | None = Field(default=None, alias="affectedRows")
    status: Literal["valid", "success", "failed"] | None = None
    reason: str | None = None


class ImportReport(_WireModel):
    """Aggregate import response.

    ``errors`` holds non-fatal dry-run findings (missing or malformed table
    documents); ``warnings`` holds manifest consistency notes.
    """

    dry_run: bool = Field(alias="dryRun")
    results: dict[str, TableResult] = Field(default_factory=dict)
    total_tables: int | None = Field(default=None, alias="totalTables")
    total_records: int | None = Field(default=None, alias="totalRecords")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def record_count(self) -> int:
        """Records covered by the report, whatever the per-table action."""
        return sum(r.record_count for r in self.results.values())
