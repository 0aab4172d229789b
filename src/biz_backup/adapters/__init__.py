"""Database adapters package.

Provides the ``DatabaseClient`` and ``Transaction`` Protocols and concrete
async adapter implementations for PostgreSQL and (optionally) Supabase.

``AsyncSupabaseAdapter`` is only available when the ``supabase`` extra
is installed.  A missing ``supabase`` dependency does not prevent
importing the rest of the package.

Usage:
    from biz_backup.adapters import DatabaseClient, AsyncPostgresAdapter

    # With supabase extra installed:
    from biz_backup.adapters import AsyncSupabaseAdapter
"""

from biz_backup.adapters.base import DatabaseClient, Transaction
from biz_backup.adapters.postgres import AsyncPostgresAdapter, PostgresTransaction

__all__ = [
    "DatabaseClient",
    "Transaction",
    "AsyncPostgresAdapter",
    "PostgresTransaction",
]

try:
    from biz_backup.adapters.supabase import AsyncSupabaseAdapter, SupabaseTransaction

    __all__ += ["AsyncSupabaseAdapter", "SupabaseTransaction"]
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
