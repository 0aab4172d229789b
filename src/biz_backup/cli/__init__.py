"""CLI for backing up and restoring business data.

Usage:
    biz-backup use production
    biz-backup export --exclude dismissed_alerts
    biz-backup inspect backups/backup-2026-01-15_09-30-00.json
    biz-backup import backups/backup-2026-01-15_09-30-00.json --dry-run
    biz-backup import backups/backup-2026-01-15_09-30-00.json --skip-conflicts --yes

Commands:
    export    - Export tables to a backup bundle
    import    - Preview and restore a backup bundle
    inspect   - Check a bundle file without touching the database
    tables    - List tables in restore order
    profiles  - List available profiles
    status    - Show current profile
    use       - Select the profile for later commands
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from biz_backup.adapters.base import DatabaseClient
from biz_backup.backup.auth import admin_role_check
from biz_backup.backup.codec import read_bundle
from biz_backup.backup.errors import BackupError, ImportFailedError
from biz_backup.backup.manifest import check_consistency, validate_manifest
from biz_backup.backup.models import ImportOptions, ImportReport
from biz_backup.backup.registry import DEFAULT_REGISTRY
from biz_backup.backup.service import (
    backup_to_file,
    preview_restore,
    restore_bundle,
    summarize,
)
from biz_backup.config.loader import load_db_config
from biz_backup.config.models import BackupSettings
from biz_backup.factory import (
    ProfileNotFoundError,
    get_adapter,
    read_profile_lock,
    write_profile_lock,
)

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_settings(args: argparse.Namespace) -> BackupSettings:
    """``[backup]`` settings from db.toml, or defaults when there is none."""
    try:
        settings = load_db_config().backup
    except FileNotFoundError:
        settings = BackupSettings()

    page_size = getattr(args, "page_size", None)
    if page_size is not None:
        settings = settings.model_copy(update={"page_size": page_size or None})
    return settings


async def _connect(args: argparse.Namespace) -> DatabaseClient | None:
    """Build an adapter from --database-url or the active profile."""
    try:
        return await get_adapter(
            env_prefix=getattr(args, "env_prefix", ""),
            database_url=getattr(args, "database_url", None),
        )
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
    except (FileNotFoundError, KeyError, ValueError, ImportError) as e:
        console.print(f"[bold red]Error:[/bold red] Connection failed: {escape(str(e))}")
    return None


def _authorizer(args: argparse.Namespace, adapter: DatabaseClient):
    user_id = getattr(args, "as_user", None)
    if not user_id:
        return None
    return admin_role_check(adapter, user_id)


def _report_table(report: ImportReport, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Action")
    table.add_column("Records", justify="right")
    table.add_column("Written", justify="right")
    table.add_column("Status")

    status_styles = {"valid": "green", "success": "green", "failed": "red"}
    for name, result in report.results.items():
        if result.status:
            style = status_styles[result.status]
            status = f"[{style}]{result.status}[/{style}]"
        else:
            status = f"[dim]{result.reason or '-'}[/dim]"
        table.add_row(
            name,
            result.action,
            str(result.record_count),
            str(result.affected_rows) if result.affected_rows is not None else "-",
            status,
        )
    return table


def _print_findings(report: ImportReport) -> None:
    for error in report.errors:
        console.print(f"  [red]x[/red] {escape(error)}")
    for warning in report.warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_export(args: argparse.Namespace) -> int:
    """Async implementation for export command.

    Returns:
        0 on success, 1 on failure.
    """
    settings = _load_settings(args)

    adapter = await _connect(args)
    if adapter is None:
        return 1

    console.print("Exporting tables...", style="dim")
    try:
        path, manifest = await backup_to_file(
            adapter,
            output_path=args.output,
            include_tables=args.include,
            exclude_tables=args.exclude,
            settings=settings,
            authorize=_authorizer(args, adapter),
            legacy=args.legacy,
        )
    except BackupError as e:
        console.print(f"\n[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        await adapter.close()

    table = Table(title="Exported Tables", show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Records", justify="right")
    counts = manifest.get("recordCounts", {})
    for name in manifest["tables"]:
        table.add_row(name, str(counts.get(name, 0)))

    console.print()
    console.print(table)

    errors = manifest.get("errors") or []
    if errors:
        console.print(f"\n[yellow]{len(errors)} table(s) could not be exported:[/yellow]")
        for error in errors:
            console.print(f"  [yellow]![/yellow] {escape(error)}")

    console.print(f"\n[bold green]v[/bold green] Backup written to [cyan]{path}[/cyan]")
    return 0


async def _async_import(args: argparse.Namespace) -> int:
    """Async implementation for import command.

    Always shows the dry-run preview.  Without ``--dry-run`` the operator
    confirms (or passes ``--yes``) before the commit run.  A preview with
    errors is never committed.

    Returns:
        0 on success or cancel, 1 on failure.
    """
    options = ImportOptions(
        overwrite_existing=args.overwrite_existing,
        skip_conflicts=args.skip_conflicts,
    )

    try:
        bundle = read_bundle(args.path)
    except FileNotFoundError:
        console.print(f"[red]Error: Backup file not found: {args.path}[/red]")
        return 1
    except BackupError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    adapter = await _connect(args)
    if adapter is None:
        return 1

    authorize = _authorizer(args, adapter)
    blocked = False

    def confirm(preview: ImportReport) -> bool:
        nonlocal blocked
        console.print()
        console.print(_report_table(preview, "Restore Preview"))
        _print_findings(preview)
        if preview.errors:
            blocked = True
            return False
        if args.yes:
            return True
        return Confirm.ask(f"Restore {summarize(preview)}?", console=console)

    dry_preview = report = None
    try:
        if args.dry_run:
            dry_preview = await preview_restore(
                adapter, bundle, options, authorize=authorize
            )
        else:
            report = await restore_bundle(
                adapter, bundle, options, confirm=confirm, authorize=authorize
            )
    except ImportFailedError as e:
        console.print(f"\n[bold red]x[/bold red] {escape(str(e))}")
        if e.rolled_back:
            console.print("[dim]All changes were rolled back.[/dim]")
        else:
            console.print("[bold red]Rollback failed; check the database.[/bold red]")
        return 1
    except BackupError as e:
        console.print(f"\n[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        await adapter.close()

    if dry_preview is not None:
        console.print()
        console.print(_report_table(dry_preview, "Restore Preview"))
        _print_findings(dry_preview)
        console.print()
        console.print(
            f"[bold yellow]DRY RUN[/bold yellow] - {summarize(dry_preview)}. "
            "No changes made."
        )
        return 1 if dry_preview.errors else 0

    if blocked:
        console.print("\n[red]Bundle has errors; nothing was restored.[/red]")
        return 1

    if report is None:
        console.print("\n[dim]Restore cancelled. No changes made.[/dim]")
        return 0

    console.print()
    console.print(_report_table(report, "Restore Result"))
    console.print(f"\n[bold green]v[/bold green] Restored {summarize(report)}")
    return 0


# ============================================================================
# Sync command wrappers (inspect, tables, profiles, status, use read local files only)
# ============================================================================


def cmd_export(args: argparse.Namespace) -> int:
    """Export tables to a backup bundle.

    Wraps the async implementation with ``asyncio.run()``.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_export(args))


def cmd_import(args: argparse.Namespace) -> int:
    """Preview and restore a backup bundle.

    Wraps the async implementation with ``asyncio.run()``.

    Returns:
        0 on success or cancel, 1 on failure.
    """
    return asyncio.run(_async_import(args))


def cmd_inspect(args: argparse.Namespace) -> int:
    """Decode and validate a bundle file without touching the database.

    Returns:
        0 if the bundle can be restored, 1 otherwise.
    """
    try:
        bundle = read_bundle(args.path)
        manifest = validate_manifest(bundle.manifest)
    except FileNotFoundError:
        console.print(f"[red]Error: Backup file not found: {args.path}[/red]")
        return 1
    except BackupError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    info = Table(title="Backup Bundle", show_header=False)
    info.add_column("Key", style="dim")
    info.add_column("Value")
    info.add_row("Version", manifest.version)
    info.add_row("Created", manifest.timestamp)
    info.add_row("Tables", str(len(manifest.tables)))
    info.add_row("Records", str(sum(manifest.record_counts.values())))
    console.print(info)

    tables = Table(show_header=True, header_style="bold")
    tables.add_column("Table", style="dim")
    tables.add_column("Records", justify="right")
    for name in DEFAULT_REGISTRY.order_for_restore(manifest.tables):
        rows = bundle.files.get(name)
        tables.add_row(name, str(len(rows)) if isinstance(rows, list) else "[red]missing[/red]")
    console.print(tables)

    if manifest.errors:
        console.print("\n[yellow]Tables that failed to export:[/yellow]")
        for error in manifest.errors:
            console.print(f"  [yellow]![/yellow] {escape(error)}")

    warnings = check_consistency(manifest, bundle.files)
    for warning in warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")

    if not warnings:
        console.print("\n[bold green]v[/bold green] Bundle is consistent")
    return 0


def cmd_tables(args: argparse.Namespace) -> int:
    """List registered tables in restore order.

    Returns:
        0 always (informational command).
    """
    table = Table(title="Tables (restore order)", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Key")
    table.add_column("Exported by default")

    for table_def in DEFAULT_REGISTRY:
        table.add_row(
            str(table_def.position + 1),
            table_def.name,
            table_def.pk,
            "[green]yes[/green]" if table_def.default else "[dim]no[/dim]",
        )

    console.print(table)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show current profile.

    Reads only local files (lock file and TOML config) -- no database calls.

    Returns:
        0 always (informational command).
    """
    profile = read_profile_lock()

    if profile:
        table = Table(title="Connection Status", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
        table.add_row("Profile source", ".db-profile")

        try:
            config = load_db_config()
            if profile in config.profiles:
                p = config.profiles[profile]
                table.add_row("Provider", p.provider)
                if p.description:
                    table.add_row("Description", p.description)
            else:
                table.add_row("Warning", "[yellow]profile not in db.toml[/yellow]")
        except FileNotFoundError:
            table.add_row("Warning", "[yellow]db.toml not found[/yellow]")

        console.print(table)
    else:
        console.print("[yellow]No profile selected.[/yellow]")
        console.print("[dim]Run:[/dim] [cyan]biz-backup use <name>[/cyan]")

    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_use(args: argparse.Namespace) -> int:
    """Select the profile used by later commands.

    Returns:
        0 on success, 1 if db.toml or the profile is missing.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if args.profile not in config.profiles:
        console.print(f"[red]Error: Profile '{args.profile}' not found in db.toml[/red]")
        console.print(f"[dim]Available:[/dim] {', '.join(config.profiles)}")
        return 1

    previous = read_profile_lock()
    write_profile_lock(args.profile)

    console.print(f"[bold green]v[/bold green] Using profile: [bold cyan]{args.profile}[/bold cyan]")
    if previous and previous != args.profile:
        console.print(
            f"[dim]Switched from[/dim] [bold]{previous}[/bold] "
            f"[dim]to[/dim] [bold cyan]{args.profile}[/bold cyan]"
        )
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="biz-backup",
        description="Backup and restore for business data",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix SHOP_ reads SHOP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="PostgreSQL URL to use instead of a profile",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log per-table progress",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # export command
    p_export = subparsers.add_parser(
        "export",
        help="Export tables to a backup bundle",
    )
    p_export.add_argument(
        "--output",
        "-o",
        default=None,
        help="Output file (default: backups/backup-<timestamp>.json)",
    )
    p_export.add_argument(
        "--include",
        nargs="+",
        default=None,
        metavar="TABLE",
        help="Export only these tables",
    )
    p_export.add_argument(
        "--exclude",
        nargs="+",
        default=None,
        metavar="TABLE",
        help="Leave these tables out",
    )
    p_export.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Rows per read (0 reads each table in one call)",
    )
    p_export.add_argument(
        "--legacy",
        action="store_true",
        help="Write the flat '<table>.json' bundle shape",
    )
    p_export.add_argument(
        "--as-user",
        default=None,
        metavar="USER_ID",
        help="Require USER_ID to hold the admin role",
    )
    p_export.set_defaults(func=cmd_export)

    # import command
    p_import = subparsers.add_parser(
        "import",
        help="Preview and restore a backup bundle",
    )
    p_import.add_argument("path", help="Backup bundle file")
    p_import.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be restored without making changes",
    )
    p_import.add_argument(
        "--overwrite-existing",
        action="store_true",
        help="Update rows that already exist",
    )
    p_import.add_argument(
        "--skip-conflicts",
        action="store_true",
        help="Keep rows that already exist (ignored with --overwrite-existing)",
    )
    p_import.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Restore without asking for confirmation",
    )
    p_import.add_argument(
        "--as-user",
        default=None,
        metavar="USER_ID",
        help="Require USER_ID to hold the admin role",
    )
    p_import.set_defaults(func=cmd_import)

    # inspect command
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Check a bundle file without touching the database",
    )
    p_inspect.add_argument("path", help="Backup bundle file")
    p_inspect.set_defaults(func=cmd_inspect)

    # tables command
    p_tables = subparsers.add_parser(
        "tables",
        help="List tables in restore order",
    )
    p_tables.set_defaults(func=cmd_tables)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # status command
    p_status = subparsers.add_parser(
        "status",
        help="Show current profile",
    )
    p_status.set_defaults(func=cmd_status)

    # use command
    p_use = subparsers.add_parser(
        "use",
        help="Select the profile for later commands",
    )
    p_use.add_argument("profile", help="Profile name from db.toml")
    p_use.set_defaults(func=cmd_use)

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
