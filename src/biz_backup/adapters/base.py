"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that every persistence backend must
implement, plus the ``Transaction`` handle returned by ``begin()``.
All I/O methods are ``async def`` -- the library is async-first.

Usage:
    from biz_backup.adapters.base import DatabaseClient

    async def copy_products(client: DatabaseClient) -> None:
        rows = await client.select("products")
        tx = await client.begin()
        try:
            await client.upsert("products", rows, tx=tx)
        except BaseException:
            await tx.rollback()
            raise
        await tx.commit()
"""

from typing import Any, Protocol


class Transaction(Protocol):
    """An open transaction on the persistence backend.

    Obtained from ``DatabaseClient.begin()`` and passed to every write that
    must participate in it.  Exactly one of ``commit()`` or ``rollback()``
    ends it.
    """

    async def commit(self) -> None:
        """Make every write performed in this transaction durable."""
        ...

    async def rollback(self) -> None:
        """Discard every write performed in this transaction."""
        ...


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    This Protocol ensures consistent behavior across the supported
    backends (PostgreSQL, Supabase).  All methods are async -- callers must
    ``await`` every operation.
    """

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, ``"*"`` for all.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.
            limit: Maximum number of rows to return.
            offset: Number of rows to skip (used with ``limit`` for paging).

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            page = await client.select(
                "sales",
                order_by="id",
                limit=500,
                offset=1000,
            )
        """
        ...

    async def upsert(
        self,
        table: str,
        rows: list[dict],
        on_conflict: str = "id",
        overwrite_existing: bool = False,
        skip_conflicts: bool = False,
        tx: Transaction | None = None,
    ) -> int:
        """Insert rows, resolving key conflicts on ``on_conflict``.

        Conflict policy: when ``skip_conflicts`` is set and
        ``overwrite_existing`` is not, rows whose key already exists are
        left untouched.  In every other combination the existing row is
        updated with the incoming values.

        Args:
            table: Table name.
            rows: Row dicts to write.
            on_conflict: Conflict key column.
            overwrite_existing: Update rows that already exist.
            skip_conflicts: Leave existing rows untouched (unless
                ``overwrite_existing`` is also set).
            tx: Transaction to write in.  When ``None`` the write commits
                on its own.

        Returns:
            Number of rows actually written.

        Raises:
            Exception: On constraint violations or connectivity errors.
        """
        ...

    async def begin(self) -> Transaction:
        """Open a transaction.

        Raises:
            Exception: If the backend cannot start a transaction.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
