"""File-level backup and restore flows.

Glue between the engine and an operator: export straight to a file, and
restore from a file with a dry-run preview and a confirmation step before
anything is written.

Usage:
    from biz_backup.backup.service import backup_to_file, restore_from_file, summarize

    path, manifest = await backup_to_file(adapter)

    async def confirm(preview):
        return input(f"Restore {summarize(preview)}? [y/N] ") == "y"

    report = await restore_from_file(adapter, path, confirm=confirm)
    if report is None:
        print("Cancelled")
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable

from biz_backup.adapters.base import DatabaseClient
from biz_backup.backup.auth import Authorizer
from biz_backup.backup.codec import read_bundle, write_bundle
from biz_backup.backup.exporter import export_bundle
from biz_backup.backup.importer import import_bundle
from biz_backup.backup.models import Bundle, ImportOptions, ImportReport
from biz_backup.backup.registry import DEFAULT_REGISTRY, TableRegistry
from biz_backup.config.models import BackupSettings

logger = logging.getLogger(__name__)

Confirm = Callable[[ImportReport], bool | Awaitable[bool]]


async def backup_to_file(
    adapter: DatabaseClient,
    output_path: str | None = None,
    include_tables: Iterable[str] | None = None,
    exclude_tables: Iterable[str] | None = None,
    settings: BackupSettings | None = None,
    registry: TableRegistry = DEFAULT_REGISTRY,
    authorize: Authorizer | None = None,
    legacy: bool = False,
) -> tuple[str, dict]:
    """Export and write the bundle to disk.

    Explicit ``include_tables``/``exclude_tables`` take precedence over the
    ``[backup]`` settings; exclusions from both are applied.

    Returns:
        ``(path, manifest)`` of the written bundle.
    """
    settings = settings or BackupSettings()

    include = list(include_tables or []) or settings.include_tables
    exclude = [*settings.exclude_tables, *(exclude_tables or [])]

    bundle = await export_bundle(
        adapter,
        registry=registry,
        include_tables=include,
        exclude_tables=exclude,
        page_size=settings.page_size,
        authorize=authorize,
    )
    path = write_bundle(
        bundle, output_path=output_path, output_dir=settings.output_dir, legacy=legacy
    )
    logger.info(f"Backup written to {path}")
    return path, bundle.manifest


async def preview_restore(
    adapter: DatabaseClient,
    bundle: Bundle,
    options: ImportOptions | None = None,
    registry: TableRegistry = DEFAULT_REGISTRY,
    authorize: Authorizer | None = None,
) -> ImportReport:
    """Dry-run ``bundle`` with the caller's conflict options."""
    options = (options or ImportOptions()).model_copy(update={"dry_run": True})
    return await import_bundle(
        adapter, bundle, options, registry=registry, authorize=authorize
    )


def summarize(report: ImportReport) -> str:
    """One-line summary, e.g. ``"12 tables, 3480 records"``."""
    tables = report.total_tables if report.total_tables is not None else len(report.results)
    records = report.total_records if report.total_records is not None else report.record_count
    return f"{tables} tables, {records} records"


async def restore_bundle(
    adapter: DatabaseClient,
    bundle: Bundle,
    options: ImportOptions | None = None,
    confirm: Confirm | None = None,
    registry: TableRegistry = DEFAULT_REGISTRY,
    authorize: Authorizer | None = None,
) -> ImportReport | None:
    """Preview a decoded bundle, confirm, then commit it.

    The commit run uses the same bundle object as the preview.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        bundle: Decoded bundle.
        options: Conflict options; ``dry_run`` is ignored.
        confirm: Called with the preview report; may be async.  ``None``
            proceeds without asking.
        registry: Table registry.
        authorize: Optional authorizer, checked by both runs.

    Returns:
        Commit-run report, or ``None`` if ``confirm`` declined.
    """
    options = options or ImportOptions()

    preview = await preview_restore(
        adapter, bundle, options, registry=registry, authorize=authorize
    )
    logger.info(f"Restore preview: {summarize(preview)}")

    if confirm is not None:
        accepted = confirm(preview)
        if inspect.isawaitable(accepted):
            accepted = await accepted
        if not accepted:
            logger.info("Restore cancelled")
            return None

    commit_options = options.model_copy(update={"dry_run": False})
    return await import_bundle(
        adapter, bundle, commit_options, registry=registry, authorize=authorize
    )


async def restore_from_file(
    adapter: DatabaseClient,
    path: str,
    options: ImportOptions | None = None,
    confirm: Confirm | None = None,
    registry: TableRegistry = DEFAULT_REGISTRY,
    authorize: Authorizer | None = None,
) -> ImportReport | None:
    """Decode a bundle file once and hand it to ``restore_bundle``."""
    logger.info(f"Restoring from {path}")
    return await restore_bundle(
        adapter,
        read_bundle(path),
        options,
        confirm=confirm,
        registry=registry,
        authorize=authorize,
    )
