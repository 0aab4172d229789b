"""Restore a backup bundle into the database.

``import_bundle`` validates the manifest, orders tables by dependency and
then either reports what it would do (dry run) or upserts every table
inside one transaction (commit run).

The two modes treat problems differently:

- Dry run collects every problem and keeps going, so one pass shows
  everything wrong with the bundle.
- Commit run stops at the first failing table and rolls the whole
  transaction back; the store is never left partially restored.

Tables are processed strictly one after another, since a table may
reference rows written by an earlier one.

Usage:
    from biz_backup.backup.importer import import_bundle
    from biz_backup.backup.models import ImportOptions

    preview = await import_bundle(adapter, bundle, ImportOptions(dry_run=True))
    report = await import_bundle(adapter, bundle, ImportOptions())
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from biz_backup.adapters.base import DatabaseClient, Transaction
from biz_backup.backup.auth import Authorizer, check_authorized
from biz_backup.backup.errors import ImportFailedError, TransactionError
from biz_backup.backup.manifest import check_consistency, validate_manifest
from biz_backup.backup.models import (
    SUPPORTED_VERSIONS,
    Bundle,
    ImportOptions,
    ImportReport,
    TableResult,
)
from biz_backup.backup.registry import DEFAULT_REGISTRY, TableRegistry

logger = logging.getLogger(__name__)

NO_DATA = "no data"


@asynccontextmanager
async def transaction(adapter: DatabaseClient) -> AsyncIterator[Transaction]:
    """Open a transaction for the duration of the block.

    Commits when the block exits normally and rolls back on any exception,
    including cancellation.  A failed rollback is logged and recorded on an
    ``ImportFailedError`` passing through; the original exception is
    re-raised either way.

    Raises:
        TransactionError: If the transaction cannot be opened or committed.
    """
    try:
        tx = await adapter.begin()
    except Exception as e:
        raise TransactionError(f"Failed to begin transaction: {e}") from e

    try:
        yield tx
    except BaseException as exc:
        try:
            await tx.rollback()
        except Exception as rollback_error:
            logger.error(f"Rollback failed: {rollback_error}")
            if isinstance(exc, ImportFailedError):
                exc.rolled_back = False
        else:
            logger.warning(f"Transaction rolled back: {exc}")
        raise

    try:
        await tx.commit()
    except Exception as e:
        try:
            await tx.rollback()
        except Exception as rollback_error:
            logger.error(f"Rollback after failed commit failed: {rollback_error}")
        raise TransactionError(f"Failed to commit transaction: {e}") from e


def _bad_records(rows: list) -> int:
    return sum(1 for row in rows if not isinstance(row, dict))


def _missing_pk(rows: list, pk: str) -> int:
    return sum(1 for row in rows if isinstance(row, dict) and pk not in row)


async def import_bundle(
    adapter: DatabaseClient,
    bundle: Bundle,
    options: ImportOptions | None = None,
    registry: TableRegistry = DEFAULT_REGISTRY,
    authorize: Authorizer | None = None,
    supported_versions: list[str] = SUPPORTED_VERSIONS,
) -> ImportReport:
    """Validate a bundle and dry-run or commit it.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        bundle: Decoded bundle.  Not modified.
        options: Dry-run flag and conflict policy (default: commit run,
            update existing rows).
        registry: Table registry giving restore order and per-table writers.
        authorize: Optional authorizer, checked before anything else.
        supported_versions: Manifest versions accepted.

    Returns:
        ``ImportReport``.  Dry run: a ``validate`` or ``skip`` result per
        table and the collected non-fatal ``errors``.  Commit run: an
        ``upsert`` or ``skip`` result per table, ``total_tables`` and
        ``total_records`` (records of successfully written tables).

    Raises:
        AuthorizationError: If ``authorize`` denies access.
        ManifestFormatError: Manifest lacks version, timestamp or tables.
        UnsupportedVersionError: Manifest version not supported.
        TransactionError: Transaction could not be opened or committed.
        ImportFailedError: A table failed in a commit run; everything was
            rolled back.
    """
    options = options or ImportOptions()

    await check_authorized(authorize)

    manifest = validate_manifest(bundle.manifest, supported_versions)
    ordered = registry.order_for_restore(manifest.tables)
    warnings = check_consistency(manifest, bundle.files)
    logger.info(f"Import validation passed. Tables to import: {', '.join(ordered)}")

    if options.dry_run:
        report = _dry_run(bundle, ordered, registry)
    else:
        report = await _commit_run(adapter, bundle, ordered, registry, options)

    report.warnings = warnings
    return report


def _dry_run(bundle: Bundle, ordered: list[str], registry: TableRegistry) -> ImportReport:
    results: dict[str, TableResult] = {}
    errors: list[str] = []

    for name in ordered:
        if name not in bundle.files:
            errors.append(f"Missing data file for table: {name}")
            continue

        rows = bundle.files[name]
        if not isinstance(rows, list):
            errors.append(f"Invalid data format for table: {name}")
            continue

        if not rows:
            results[name] = TableResult(action="skip", record_count=0, reason=NO_DATA)
            continue

        bad = _bad_records(rows)
        if bad:
            reason = f"{bad} of {len(rows)} records are not objects"
            errors.append(f"{name}: {reason}")
            results[name] = TableResult(
                action="validate", record_count=len(rows), status="failed", reason=reason
            )
            continue

        pk = registry.resolve(name).pk
        missing = _missing_pk(rows, pk)
        if missing:
            logger.debug(f"{name}: {missing} records without '{pk}'")

        results[name] = TableResult(action="validate", record_count=len(rows), status="valid")

    return ImportReport(
        dry_run=True,
        results=results,
        total_tables=len(results),
        total_records=sum(
            r.record_count for r in results.values() if r.status == "valid"
        ),
        errors=errors,
    )


async def _commit_run(
    adapter: DatabaseClient,
    bundle: Bundle,
    ordered: list[str],
    registry: TableRegistry,
    options: ImportOptions,
) -> ImportReport:
    results: dict[str, TableResult] = {}
    attempted: list[str] = []

    async with transaction(adapter) as tx:
        for name in ordered:
            rows = bundle.files.get(name)
            if not isinstance(rows, list):
                raise ImportFailedError(name, f"invalid data for table: {name}", attempted)

            if not rows:
                results[name] = TableResult(action="skip", record_count=0, reason=NO_DATA)
                continue

            bad = _bad_records(rows)
            if bad:
                raise ImportFailedError(
                    name, f"{bad} of {len(rows)} records are not objects", attempted
                )

            table = registry.resolve(name)
            try:
                affected = await table.upsert(adapter, rows, options, tx=tx)
            except Exception as e:
                raise ImportFailedError(name, str(e), attempted) from e

            attempted.append(name)
            results[name] = TableResult(
                action="upsert",
                record_count=len(rows),
                affected_rows=affected,
                status="success",
            )
            logger.info(f"Imported {name}: {len(rows)} records ({affected} written)")

    return ImportReport(
        dry_run=False,
        results=results,
        total_tables=len(results),
        total_records=sum(
            r.record_count for r in results.values() if r.status == "success"
        ),
    )
