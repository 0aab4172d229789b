"""Authorization checks gating export and import.

An authorizer is any zero-argument callable returning ``bool`` or an
awaitable of ``bool``.  It is evaluated once, before the operation touches
storage.

Usage:
    from biz_backup.backup.auth import admin_role_check

    authorize = admin_role_check(adapter, user_id="7c1e...")
    report = await import_bundle(adapter, bundle, authorize=authorize)
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from biz_backup.adapters.base import DatabaseClient
from biz_backup.backup.errors import AuthorizationError

logger = logging.getLogger(__name__)

Authorizer = Callable[[], bool | Awaitable[bool]]


async def check_authorized(authorize: Authorizer | None) -> None:
    """Run ``authorize`` and raise if it denies access.

    ``None`` means the caller has already been authorized.

    Raises:
        AuthorizationError: If the check returns a falsy value.
    """
    if authorize is None:
        return

    allowed = authorize()
    if inspect.isawaitable(allowed):
        allowed = await allowed

    if not allowed:
        raise AuthorizationError("Admin access required")


def admin_role_check(
    adapter: DatabaseClient,
    user_id: str,
    roles_table: str = "user_roles",
) -> Callable[[], Awaitable[bool]]:
    """Authorizer that requires an ``admin`` row in ``roles_table``.

    A failed lookup counts as "not authorized" rather than an error.
    """

    async def _is_admin() -> bool:
        try:
            rows = await adapter.select(
                roles_table, columns="role", filters={"user_id": user_id}
            )
        except Exception as e:
            logger.warning(f"Role lookup for {user_id} failed: {e}")
            return False
        return any(row.get("role") == "admin" for row in rows)

    return _is_admin
