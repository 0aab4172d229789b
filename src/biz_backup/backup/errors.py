"""Exceptions raised by the backup and restore engine.

Every exception derives from ``BackupError``.  Format, version and
authorization errors are raised before any storage access, so the store
is untouched.  ``ImportFailedError`` is raised only after the transaction
has been rolled back.
"""


class BackupError(Exception):
    """Base class for backup/restore failures."""

    pass


class AuthorizationError(BackupError):
    """Raised when the caller may not export or import data."""

    pass


class BundleFormatError(BackupError):
    """Raised when an uploaded document is not a backup bundle."""

    pass


class ManifestFormatError(BundleFormatError):
    """Raised when the manifest lacks ``version``, ``timestamp`` or ``tables``."""

    pass


class UnsupportedVersionError(BackupError):
    """Raised when the manifest version is not one the engine can restore."""

    def __init__(self, version: object, supported: list[str]) -> None:
        self.version = version
        self.supported = supported
        super().__init__(
            f"unsupported backup version: {version}. Supported: {supported}"
        )


class ExportError(BackupError):
    """Raised when an export fails as a whole (no table could be read)."""

    pass


class TransactionError(BackupError):
    """Raised when a transaction cannot be opened or committed."""

    pass


class ImportFailedError(BackupError):
    """Raised when a commit-run import aborts and is rolled back.

    Attributes:
        table: Table whose write failed.
        reason: Underlying error message.
        attempted: Tables written before ``table`` (undone by the rollback).
        rolled_back: ``False`` when the rollback itself also failed.
    """

    def __init__(
        self,
        table: str,
        reason: str,
        attempted: list[str] | None = None,
        rolled_back: bool = True,
    ) -> None:
        self.table = table
        self.reason = reason
        self.attempted = list(attempted or [])
        self.rolled_back = rolled_back
        super().__init__(table, reason)

    def __str__(self) -> str:
        # rolled_back may be cleared by the transaction scope after raising
        message = f"Failed to import {self.table}: {self.reason}"
        if self.rolled_back and self.attempted:
            message += f" (rolled back: {', '.join(self.attempted)})"
        elif not self.rolled_back:
            message += " (rollback failed)"
        return message
