"""Shared fixtures: an in-memory ``DatabaseClient`` and sample shop data."""

import copy

import pytest

from biz_backup.backup.models import Bundle

SEED: dict[str, list[dict]] = {
    "system_settings": [{"id": "s1", "key": "currency", "value": "BDT"}],
    "business_settings": [{"id": "b1", "business_name": "Corner Shop"}],
    "products": [
        {"id": "p1", "name": "Tea", "price": "120.00"},
        {"id": "p2", "name": "Sugar", "price": "85.50"},
    ],
    "customers": [{"id": "c1", "name": "Rahim"}],
    "sales": [{"id": "sa1", "customer_id": "c1", "total": "205.50"}],
    "sales_items": [
        {"id": "si1", "sale_id": "sa1", "product_id": "p1", "quantity": 1},
        {"id": "si2", "sale_id": "sa1", "product_id": "p2", "quantity": 1},
    ],
}


class FakeTransaction:
    """Snapshot-based transaction over ``FakeDatabase``."""

    def __init__(self, db: "FakeDatabase") -> None:
        self.db = db
        self.snapshot = copy.deepcopy(db.tables)
        self.state = "open"

    async def commit(self) -> None:
        if self.db.fail_commit:
            raise RuntimeError("could not serialize access")
        self.state = "committed"

    async def rollback(self) -> None:
        if self.db.fail_rollback:
            raise RuntimeError("connection lost")
        self.db.tables = self.snapshot
        self.state = "rolled_back"


class FakeDatabase:
    """In-memory ``DatabaseClient``: tables of rows keyed by ``id``.

    Reads or writes can be made to fail per table, and ``begin``,
    ``commit`` and ``rollback`` can be made to fail globally.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables: dict[str, dict] = {
            name: {row["id"]: dict(row) for row in rows}
            for name, rows in (tables or {}).items()
        }
        self.fail_reads: set[str] = set()
        self.fail_writes: set[str] = set()
        self.fail_begin = False
        self.fail_commit = False
        self.fail_rollback = False
        self.select_calls: list[tuple] = []
        self.write_log: list[str] = []
        self.transactions: list[FakeTransaction] = []
        self.closed = False

    async def select(
        self,
        table,
        columns="*",
        filters=None,
        order_by=None,
        limit=None,
        offset=None,
    ):
        self.select_calls.append((table, order_by, limit, offset))
        if table in self.fail_reads:
            raise RuntimeError(f'relation "{table}" does not exist')

        rows = [dict(r) for r in self.tables.get(table, {}).values()]
        for key, value in (filters or {}).items():
            rows = [r for r in rows if r.get(key) == value]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by)))
        if limit is not None:
            start = offset or 0
            rows = rows[start:start + limit]
        return rows

    async def upsert(
        self,
        table,
        rows,
        on_conflict="id",
        overwrite_existing=False,
        skip_conflicts=False,
        tx=None,
    ):
        self.write_log.append(table)
        if table in self.fail_writes:
            raise RuntimeError(f'insert on "{table}" violates foreign key constraint')

        store = self.tables.setdefault(table, {})
        keep_existing = skip_conflicts and not overwrite_existing
        written = 0
        for row in rows:
            key = row[on_conflict]
            if key in store and keep_existing:
                continue
            store[key] = dict(row)
            written += 1
        return written

    async def begin(self):
        if self.fail_begin:
            raise RuntimeError("too many connections")
        tx = FakeTransaction(self)
        self.transactions.append(tx)
        return tx

    async def close(self):
        self.closed = True

    def rows(self, table: str) -> list[dict]:
        return list(self.tables.get(table, {}).values())

    def dump(self) -> dict[str, list[dict]]:
        """Non-empty tables as ``{name: rows}``."""
        return {name: self.rows(name) for name, store in self.tables.items() if store}


def make_bundle(files: dict, version: str = "1.0.0", **manifest_extra) -> Bundle:
    """Bundle whose manifest lists ``files`` with matching counts."""
    manifest = {
        "version": version,
        "timestamp": "2026-01-15T09:30:00+00:00",
        "tables": list(files),
        "recordCounts": {
            name: len(rows) for name, rows in files.items() if isinstance(rows, list)
        },
        **manifest_extra,
    }
    return Bundle(manifest=manifest, files=copy.deepcopy(files))


@pytest.fixture
def seed() -> dict[str, list[dict]]:
    return copy.deepcopy(SEED)


@pytest.fixture
def db(seed) -> FakeDatabase:
    """Database holding the sample shop data."""
    return FakeDatabase(seed)


@pytest.fixture
def empty_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def bundle(seed) -> Bundle:
    """Bundle of the sample shop data."""
    return make_bundle(seed)
