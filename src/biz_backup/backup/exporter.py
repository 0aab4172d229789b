"""Export table contents into a backup bundle.

Read-only against the database.  Each table is exported independently:
a table that cannot be read is recorded in ``manifest.errors`` and left
out of the bundle, and the remaining tables are still exported.

Usage:
    from biz_backup.backup.exporter import export_bundle

    bundle = await export_bundle(adapter, exclude_tables=["dismissed_alerts"])
    bundle.manifest["recordCounts"]
    # {'system_settings': 3, 'products': 120, ...}
"""

import logging
from collections.abc import Iterable

from biz_backup.adapters.base import DatabaseClient
from biz_backup.backup.auth import Authorizer, check_authorized
from biz_backup.backup.errors import ExportError
from biz_backup.backup.manifest import build_manifest
from biz_backup.backup.models import Bundle
from biz_backup.backup.registry import DEFAULT_REGISTRY, TableRegistry

logger = logging.getLogger(__name__)


def select_tables(
    registry: TableRegistry,
    include_tables: Iterable[str] | None = None,
    exclude_tables: Iterable[str] | None = None,
) -> list[str]:
    """Resolve the export selection.

    A non-empty ``include_tables`` replaces the registry's default set;
    ``exclude_tables`` is then removed.  Order is preserved and repeated
    names are collapsed.
    """
    include = list(dict.fromkeys(include_tables or []))
    tables = include if include else registry.default_tables()

    excluded = set(exclude_tables or [])
    return [t for t in tables if t not in excluded]


async def export_bundle(
    adapter: DatabaseClient,
    registry: TableRegistry = DEFAULT_REGISTRY,
    include_tables: Iterable[str] | None = None,
    exclude_tables: Iterable[str] | None = None,
    page_size: int | None = None,
    authorize: Authorizer | None = None,
) -> Bundle:
    """Read every selected table and assemble a fresh bundle.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        registry: Table registry supplying defaults and per-table readers.
        include_tables: Tables to export instead of the registry defaults.
        exclude_tables: Tables to leave out.
        page_size: Rows per read.  ``None`` reads each table in one call.
        authorize: Optional authorizer, checked before any read.

    Returns:
        Bundle whose manifest lists only the tables that were read, with
        ``recordCounts[t] == len(files[t])``.

    Raises:
        AuthorizationError: If ``authorize`` denies access.
        ExportError: If tables were selected but none could be read.
    """
    await check_authorized(authorize)

    tables = select_tables(registry, include_tables, exclude_tables)
    logger.info(f"Exporting tables: {', '.join(tables)}")

    files: dict[str, list[dict]] = {}
    errors: list[str] = []

    for name in tables:
        table = registry.resolve(name)
        try:
            rows = await table.read(adapter, page_size=page_size)
        except Exception as e:
            logger.warning(f"Failed to export {name}: {e}")
            errors.append(f"{name}: {e}")
            continue

        files[name] = list(rows or [])
        logger.debug(f"Exported {name}: {len(files[name])} records")

    if tables and not files:
        raise ExportError(f"Export failed: {'; '.join(errors)}")

    manifest = build_manifest(files, errors=errors)
    return Bundle(
        manifest=manifest.to_wire(),
        files=files,
        exported_at=manifest.timestamp,
    )
