"""Table registry: which tables exist, which export by default, restore order.

Each ``TableDef`` knows how to read and upsert its own table, so the
exporter and importer dispatch through the registry instead of branching
on table names.  Registration order is dependency order: referenced
tables come before the tables that reference them.

Usage:
    from biz_backup.backup.registry import TableDef, TableRegistry

    registry = TableRegistry([
        TableDef(name="orders"),
        TableDef(name="order_lines"),
        TableDef(name="audit_log", default=False),
    ])
    registry.default_tables()                        # ['orders', 'order_lines']
    registry.order_for_restore(["order_lines", "x", "orders"])
    # ['orders', 'order_lines', 'x']
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from biz_backup.adapters.base import DatabaseClient, Transaction
    from biz_backup.backup.models import ImportOptions


class TableDef(BaseModel):
    """Definition of one exportable table."""

    name: str
    pk: str = "id"              # conflict key for upserts, sort key for paging
    default: bool = True        # included when the caller selects no tables
    position: int | None = None  # dependency rank, assigned by TableRegistry

    async def read(
        self,
        adapter: "DatabaseClient",
        page_size: int | None = None,
    ) -> list[dict]:
        """Read every row of the table.

        With ``page_size`` the table is read in ``limit``/``offset`` pages
        ordered by ``pk`` until an empty page comes back.  A backend may
        return fewer rows than asked for (Supabase caps responses at its
        ``max-rows`` setting), so a short page does not end the read.
        """
        if page_size is None:
            return await adapter.select(self.name)

        rows: list[dict] = []
        offset = 0
        while True:
            page = await adapter.select(
                self.name, order_by=self.pk, limit=page_size, offset=offset
            )
            if not page:
                return rows
            rows.extend(page)
            offset += len(page)

    async def upsert(
        self,
        adapter: "DatabaseClient",
        rows: list[dict],
        options: "ImportOptions",
        tx: "Transaction | None" = None,
    ) -> int:
        """Upsert ``rows`` keyed on ``pk``; returns rows written."""
        return await adapter.upsert(
            self.name,
            rows,
            on_conflict=self.pk,
            overwrite_existing=options.overwrite_existing,
            skip_conflicts=options.skip_conflicts,
            tx=tx,
        )


class TableRegistry:
    """Ordered collection of ``TableDef``."""

    def __init__(self, tables: Iterable[TableDef]) -> None:
        self._tables: dict[str, TableDef] = {}
        for table in tables:
            if table.name in self._tables:
                raise ValueError(f"Table '{table.name}' registered twice")
            self._tables[table.name] = table.model_copy(
                update={"position": len(self._tables)}
            )

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self):
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)

    def names(self) -> list[str]:
        return list(self._tables)

    def default_tables(self) -> list[str]:
        """Names exported when the caller does not choose tables."""
        return [t.name for t in self._tables.values() if t.default]

    def resolve(self, name: str) -> TableDef:
        """Registered definition for ``name``, or an unranked one keyed on ``id``."""
        table = self._tables.get(name)
        if table is None:
            return TableDef(name=name)
        return table

    def order_for_restore(self, names: Iterable[str]) -> list[str]:
        """Order ``names`` for restore.

        Registered tables follow registration order; unknown tables go last
        in the order given.  Repeated names are collapsed.
        """
        unique = list(dict.fromkeys(names))
        unranked = len(self._tables)

        def rank(name: str) -> int:
            table = self._tables.get(name)
            return unranked if table is None else table.position

        # sorted() is stable, so unknown names keep their relative order
        return sorted(unique, key=rank)


DEFAULT_REGISTRY = TableRegistry([
    TableDef(name="system_settings"),
    TableDef(name="business_settings"),
    TableDef(name="profiles"),
    TableDef(name="user_roles"),
    TableDef(name="products"),
    TableDef(name="product_attributes"),
    TableDef(name="product_attribute_values"),
    TableDef(name="product_variants"),
    TableDef(name="customers"),
    TableDef(name="sales"),
    TableDef(name="sales_items"),
    TableDef(name="inventory_logs"),
    TableDef(name="user_preferences"),
    TableDef(name="dismissed_alerts"),
])
