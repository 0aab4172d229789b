"""Async Supabase database adapter.

Provides ``AsyncSupabaseAdapter``, an async implementation of the
``DatabaseClient`` protocol using the supabase-py async client.

The client is initialized lazily on first use with an ``asyncio.Lock``
to ensure the client is created once.

Transactions are delegated to three Postgres functions exposed over RPC
(``begin_transaction``, ``commit_transaction``, ``rollback_transaction``),
which the hosted project must define.

Usage:
    from biz_backup.adapters.supabase import AsyncSupabaseAdapter

    adapter = AsyncSupabaseAdapter(
        url="https://xyzproject.supabase.co",
        key="eyJ...",
    )

    rows = await adapter.select("customers")
    await adapter.close()
"""

import asyncio
from typing import Any

from supabase import AsyncClient, acreate_client

from biz_backup.adapters.base import Transaction

BEGIN_RPC = "begin_transaction"
COMMIT_RPC = "commit_transaction"
ROLLBACK_RPC = "rollback_transaction"
MAX_ROWS = 1000  # PostgREST default max-rows


class SupabaseTransaction:
    """Transaction handle driven by the backend's transaction RPC functions."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def commit(self) -> None:
        await self._client.rpc(COMMIT_RPC, {}).execute()

    async def rollback(self) -> None:
        await self._client.rpc(ROLLBACK_RPC, {}).execute()


class AsyncSupabaseAdapter:
    """Async Supabase implementation of the ``DatabaseClient`` protocol.

    Wraps the Supabase Python async client to match the ``DatabaseClient``
    interface.  The client is initialized lazily on first call
    using ``acreate_client`` protected by an ``asyncio.Lock``.

    Args:
        url: Supabase project URL.
        key: Supabase API key (a service role key is needed for restores).
    """

    def __init__(self, url: str, key: str) -> None:
        self._url: str = url
        self._key: str = key
        self._client: AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Get or create the async Supabase client.

        Uses an ``asyncio.Lock`` to ensure the client is created exactly
        once, even under concurrent access.
        """
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict]:
        """Select rows from table using Supabase query builder.

        Without ``limit`` the rows are fetched in ``MAX_ROWS`` ranges until
        an empty one comes back, since PostgREST truncates unbounded reads.
        """
        client = await self._get_client()

        def query(start: int, count: int):
            builder = client.table(table).select(columns)
            if filters:
                for key, value in filters.items():
                    builder = builder.eq(key, value)
            if order_by:
                builder = builder.order(order_by)
            return builder.range(start, start + count - 1)

        start = offset or 0
        if limit is not None:
            result = await query(start, limit).execute()
            return result.data

        rows: list[dict] = []
        while True:
            result = await query(start, MAX_ROWS).execute()
            if not result.data:
                return rows
            rows.extend(result.data)
            start += len(result.data)

    async def upsert(
        self,
        table: str,
        rows: list[dict],
        on_conflict: str = "id",
        overwrite_existing: bool = False,
        skip_conflicts: bool = False,
        tx: Transaction | None = None,
    ) -> int:
        """Upsert rows and return the number of rows the backend wrote."""
        if tx is not None and not isinstance(tx, SupabaseTransaction):
            raise TypeError(
                f"Expected SupabaseTransaction, got {type(tx).__name__}"
            )
        if not rows:
            return 0

        client = await self._get_client()
        result = await (
            client.table(table)
            .upsert(
                rows,
                on_conflict=on_conflict,
                ignore_duplicates=skip_conflicts and not overwrite_existing,
            )
            .execute()
        )
        return len(result.data or [])

    async def begin(self) -> SupabaseTransaction:
        client = await self._get_client()
        await client.rpc(BEGIN_RPC, {}).execute()
        return SupabaseTransaction(client)

    async def close(self) -> None:
        """Close the Supabase async client.

        If the client was never initialized (no calls were made),
        this is a no-op.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
