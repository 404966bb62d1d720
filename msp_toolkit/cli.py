"""
CLI entry point for msp-toolkit.
"""

import logging
from functools import wraps
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from msp_toolkit import __version__
from msp_toolkit.config import CONFIG_FILENAME, ToolkitConfig
from msp_toolkit.exceptions import InputFileNotFoundError, MspToolkitError, format_error_for_cli
from msp_toolkit.util.csvio import read_rows, write_rows
from msp_toolkit.util.files import write_text
from msp_toolkit.util.logging import setup_logging
from msp_toolkit.util.progress import show_summary, track_progress

app = typer.Typer(
    name="msp-toolkit",
    help="MSP administration tooling: IT Glue automation, click-to-dial and Windows cleanup",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def handle_errors(func):
    """Decorator to handle exceptions in CLI commands with nice formatting."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort):
            raise
        except MspToolkitError as e:
            console.print(format_error_for_cli(e))
            raise typer.Exit(1)
        except Exception as e:
            logger.debug("Unexpected error", exc_info=True)
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            console.print("\n[yellow]Re-run with --log-level DEBUG for a traceback.[/yellow]")
            raise typer.Exit(1)

    return wrapper


itglue_app = typer.Typer(help="IT Glue automation (passwords, configurations)")
app.add_typer(itglue_app, name="itglue")

dial_app = typer.Typer(help="Click-to-dial phone number helpers")
app.add_typer(dial_app, name="dial")

cleanup_app = typer.Typer(help="Idempotent Windows endpoint cleanup")
app.add_typer(cleanup_app, name="cleanup")


def _version_callback(value: bool):
    if value:
        console.print(f"msp-toolkit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help=f"Path to {CONFIG_FILENAME} (default: $MSP_TOOLKIT_CONFIG or ./{CONFIG_FILENAME})"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Append a plain-text job log to this file"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """MSP administration tooling."""
    setup_logging(log_level or "INFO", log_file)
    ctx.obj = {
        "config": ToolkitConfig(config),
        "log_level": log_level,
        "log_file": log_file,
    }


def _load_config(ctx: typer.Context) -> dict:
    """Load the configuration and apply its logging section unless overridden on the command line."""
    state = ctx.find_root().obj or {}
    toolkit_config = state.get("config") or ToolkitConfig()
    config = toolkit_config.load()

    log_config = config.get("logging", {})
    setup_logging(
        state.get("log_level") or log_config.get("level", "INFO"),
        state.get("log_file") or log_config.get("file"),
    )
    return config


def _itglue_client(config: dict):
    from msp_toolkit.itglue import get_client

    return get_client(config)


def _print_bulk_result(result, title: str, results_path: Path | None) -> None:
    from msp_toolkit.itglue.configurations import FAILED, OUTCOME_FIELDS

    failures = [o for o in result.outcomes if o.status == FAILED]
    if failures:
        table = Table(show_header=True, header_style="bold cyan", title="Failed rows")
        table.add_column("Row")
        table.add_column("Detail", style="red")
        for outcome in failures:
            table.add_row(escape(outcome.key), escape(outcome.detail))
        console.print(table)

    show_summary(title, result.counts() or {"rows": 0})

    if results_path:
        write_rows(results_path, result.as_rows(), fieldnames=OUTCOME_FIELDS)
        console.print(f"[green]✓ Wrote results to {results_path}[/green]")


@app.command()
@handle_errors
def init(
    directory: Path = typer.Argument(Path("."), help="Directory to write the configuration file into"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file"),
):
    """Write a default msp-toolkit.yaml."""
    toolkit_config = ToolkitConfig(directory / CONFIG_FILENAME)
    toolkit_config.initialize(force=force)

    console.print(f"[green]✓ Wrote configuration to {toolkit_config.config_file}[/green]")
    console.print("\n[dim]Next steps:[/dim]")
    console.print("  export ITGLUE_API_KEY=<your-api-key>")
    console.print("  msp-toolkit itglue orgs")


@itglue_app.command("orgs")
@handle_errors
def itglue_orgs(
    ctx: typer.Context,
    name: str | None = typer.Option(None, "--name", help="Filter by organization name"),
):
    """List organizations visible to the API key."""
    config = _load_config(ctx)
    client = _itglue_client(config)

    organizations = client.get_all("organizations", filters={"name": name})

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Status")
    for org in sorted(organizations, key=lambda o: o.name.lower()):
        table.add_row(
            org.id,
            escape(org.name),
            escape(str(org.get("organization-type-name") or "")),
            escape(str(org.get("organization-status-name") or "")),
        )
    console.print(table)
    console.print(f"[dim]{len(organizations)} organization(s)[/dim]")


@itglue_app.command("audit-passwords")
@handle_errors
def itglue_audit_passwords(
    ctx: typer.Context,
    org: str | None = typer.Option(None, "--org", help="Organization ID to audit (default: all)"),
    fetch_values: bool = typer.Option(
        False, "--fetch-values", help="Reveal each password to check length and reuse"
    ),
    csv_out: Path | None = typer.Option(None, "--csv", help="Write findings to a CSV file"),
    report: Path | None = typer.Option(None, "--report", help="Write a Markdown or HTML report"),
    fmt: str = typer.Option("markdown", "--format", help="Report format (markdown|html)"),
    fail_on_findings: bool = typer.Option(
        False, "--fail-on-findings", help="Exit with status 1 when any entry is flagged"
    ),
):
    """
    Audit password entries against the configured policy.

    Example:
        msp-toolkit itglue audit-passwords --fetch-values --report audit.html --format html
    """
    from msp_toolkit.itglue.passwords import FINDING_FIELDS, PasswordPolicy, audit_passwords
    from msp_toolkit.itglue.report import REPORT_FORMATS, render_password_report

    if fmt not in REPORT_FORMATS:
        console.print(f"[red]Error: Unsupported format '{fmt}'. Must be one of: {', '.join(REPORT_FORMATS)}[/red]")
        raise typer.Exit(1)

    config = _load_config(ctx)
    client = _itglue_client(config)
    policy = PasswordPolicy.from_config(config)

    console.print("[bold blue]Auditing IT Glue passwords...[/bold blue]")
    result = audit_passwords(client, policy, organization_id=org, fetch_values=fetch_values)

    summary = {
        "Checked": result.checked,
        "Archived (skipped)": result.skipped,
        "Flagged": result.flagged,
        "Errors": result.errors,
    }
    for issue, count in result.by_issue().items():
        summary[f"  {issue}"] = count
    show_summary("Password Audit", summary)

    if csv_out:
        write_rows(csv_out, [f.as_row() for f in result.findings], fieldnames=FINDING_FIELDS)
        console.print(f"[green]✓ Wrote {len(result.findings)} finding(s) to {csv_out}[/green]")

    if report:
        write_text(report, render_password_report(result, policy, fmt=fmt, organization=org))
        console.print(f"[green]✓ Wrote {fmt} report to {report}[/green]")

    if result.errors or (fail_on_findings and result.findings):
        raise typer.Exit(1)


@itglue_app.command("create-configs")
@handle_errors
def itglue_create_configs(
    ctx: typer.Context,
    csv_file: Path = typer.Argument(..., help="CSV with organization_id, name and configuration columns"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be created"),
    results: Path | None = typer.Option(None, "--results", help="Write per-row outcomes to a CSV file"),
):
    """Create configurations from a CSV file, skipping ones that already exist."""
    from msp_toolkit.itglue.configurations import bulk_create

    rows = read_rows(csv_file, required=("organization_id",), require_any=("name", "hostname"))
    config = _load_config(ctx)
    client = _itglue_client(config)

    with track_progress("Creating configurations", total=len(rows)) as (progress, task):
        result = bulk_create(
            client, rows, dry_run=dry_run, on_row=lambda: progress.update(task, advance=1)
        )

    _print_bulk_result(result, "Create configurations" + (" (dry run)" if dry_run else ""), results)
    if result.failed:
        raise typer.Exit(1)


@itglue_app.command("delete-configs")
@handle_errors
def itglue_delete_configs(
    ctx: typer.Context,
    csv_file: Path | None = typer.Option(None, "--csv", help="CSV with an id or configuration_id column"),
    org: str | None = typer.Option(None, "--org", help="Organization ID to select configurations from"),
    type_id: str | None = typer.Option(None, "--type-id", help="Only configurations of this type"),
    status_id: str | None = typer.Option(None, "--status-id", help="Only configurations with this status"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    results: Path | None = typer.Option(None, "--results", help="Write per-row outcomes to a CSV file"),
):
    """
    Delete configurations listed in a CSV file or selected by filters.

    Example:
        msp-toolkit itglue delete-configs --org 1234 --status-id 5 --dry-run
    """
    from msp_toolkit.itglue.configurations import bulk_delete, select_configurations

    if csv_file is None and org is None:
        console.print("[red]Error: Provide --csv or --org.[/red]")
        raise typer.Exit(1)

    config = _load_config(ctx)

    if csv_file is not None:
        rows = read_rows(csv_file, require_any=("id", "configuration_id"))
        ids = [row.get("id") or row.get("configuration_id") or "" for row in rows]
        client = _itglue_client(config)
    else:
        client = _itglue_client(config)
        selected = select_configurations(
            client,
            org,
            {"configuration_type_id": type_id, "configuration_status_id": status_id},
        )
        ids = [c.id for c in selected]

    ids = [i for i in ids if i]
    if not ids:
        console.print("[yellow]No configurations selected.[/yellow]")
        return

    if not dry_run and not yes:
        typer.confirm(f"Delete {len(ids)} configuration(s)?", abort=True)

    result = bulk_delete(client, ids, dry_run=dry_run)
    _print_bulk_result(result, "Delete configurations" + (" (dry run)" if dry_run else ""), results)
    if result.failed:
        raise typer.Exit(1)


@itglue_app.command("backfill-models")
@handle_errors
def itglue_backfill_models(
    ctx: typer.Context,
    csv_file: Path = typer.Argument(..., help="CSV with manufacturer, model and a device identifier"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace a different manufacturer/model"),
    rmm_integration: str = typer.Option(
        "aem", "--rmm-integration", help="IT Glue integration type used to match device_uid"
    ),
    results: Path | None = typer.Option(None, "--results", help="Write per-row outcomes to a CSV file"),
):
    """Fill in manufacturer and model on configurations from an RMM or warranty export."""
    from msp_toolkit.itglue.configurations import backfill_models

    rows = read_rows(
        csv_file,
        required=("manufacturer",),
        require_any=("configuration_id", "device_uid", "serial_number", "hostname"),
    )
    config = _load_config(ctx)
    client = _itglue_client(config)

    with track_progress("Backfilling models", total=len(rows)) as (progress, task):
        result = backfill_models(
            client,
            rows,
            dry_run=dry_run,
            overwrite=overwrite,
            rmm_integration_type=rmm_integration,
            on_row=lambda: progress.update(task, advance=1),
        )

    _print_bulk_result(result, "Backfill models" + (" (dry run)" if dry_run else ""), results)
    if result.failed:
        raise typer.Exit(1)


@dial_app.command("normalize")
@handle_errors
def dial_normalize(numbers: list[str] = typer.Argument(..., help="Phone numbers to normalize")):
    """Print the tel: URI for each phone number."""
    from msp_toolkit.dial import normalize_to_tel

    invalid = 0
    for number in numbers:
        tel = normalize_to_tel(number)
        if tel is None:
            console.print(f"[yellow]{escape(number)}: not a dialable number[/yellow]")
            invalid += 1
        else:
            console.print(f"{escape(number)} -> tel:{tel}")

    if invalid:
        raise typer.Exit(1)


@dial_app.command("linkify")
@handle_errors
def dial_linkify(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="HTML file to process"),
    out: Path | None = typer.Option(None, "--out", help="Output file (default: print to stdout)"),
    reference_text: str | None = typer.Option(
        None, "--reference-text", help="Text of the link whose style new links copy"
    ),
):
    """Wrap phone numbers in an HTML file with tel: links."""
    from msp_toolkit.dial import linkify_html

    if not file.is_file():
        raise InputFileNotFoundError(str(file))

    config = _load_config(ctx)
    reference = reference_text or config.get("dial", {}).get("reference_link_text")

    result = linkify_html(file.read_text(encoding="utf-8"), reference_text=reference)

    if out:
        write_text(out, result.html)
        console.print(f"[green]✓ Linked {result.links_created} phone number(s); wrote {out}[/green]")
    else:
        typer.echo(result.html)


@cleanup_app.command("list")
def cleanup_list():
    """List the built-in cleanup profiles."""
    from msp_toolkit.windows.catalog import CATALOG

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Profile")
    table.add_column("Actions", justify="right")
    table.add_column("Description")
    for key, profile in CATALOG.items():
        table.add_row(key, str(len(profile.actions)), profile.description)
    console.print(table)


@cleanup_app.command("run")
@handle_errors
def cleanup_run(
    ctx: typer.Context,
    profile: str = typer.Argument(..., help="Profile key (see 'cleanup list')"),
    apply: bool = typer.Option(False, "--apply", help="Make changes (default: audit only)"),
):
    """
    Run a cleanup profile against this machine.

    Without --apply the profile runs in audit mode and only reports what
    would change.
    """
    from msp_toolkit.windows import WindowsHost, get_profile, run_profile

    _load_config(ctx)
    cleanup_profile = get_profile(profile)
    mode = "apply" if apply else "audit"

    console.print(f"[bold blue]{cleanup_profile.label}[/bold blue] [dim]({mode})[/dim]")
    report = run_profile(cleanup_profile, WindowsHost.local(), mode=mode)

    for label in report.applied:
        console.print(f"[green]✓ {escape(label)}[/green]")
    for label in report.planned:
        console.print(f"[yellow]• would change: {escape(label)}[/yellow]")
    for label in report.failed:
        console.print(f"[red]✗ {escape(label)}[/red]")
    if mode == "apply" and not report.changed and not report.failed:
        console.print("[green]✓ Already compliant, nothing to change[/green]")

    show_summary(f"Cleanup: {cleanup_profile.key}", report.summary())
    if report.failed:
        raise typer.Exit(1)


@cleanup_app.command("disk")
@handle_errors
def cleanup_disk(
    ctx: typer.Context,
    paths: list[Path] | None = typer.Option(None, "--path", help="Folder to clean (repeatable; default: from config)"),
    older_than: int | None = typer.Option(None, "--older-than", help="Only files older than this many days"),
    pattern: str = typer.Option("*", "--pattern", help="File name pattern"),
    apply: bool = typer.Option(False, "--apply", help="Delete files (default: report only)"),
):
    """Reclaim disk space from temp and update cache folders."""
    from msp_toolkit.windows.diskspace import DiskCleanupTarget, default_targets, format_bytes, reclaim

    config = _load_config(ctx)
    days = older_than if older_than is not None else config["cleanup"]["disk"]["older_than_days"]

    if paths:
        targets = [DiskCleanupTarget(p, pattern=pattern, older_than_days=days) for p in paths]
    else:
        targets = default_targets(config)
        for target in targets:
            target.pattern = pattern
            target.older_than_days = days

    report = reclaim(targets, apply=apply)

    show_summary(
        "Disk cleanup" + ("" if apply else " (report only)"),
        {
            "Files matched": report.files_matched,
            "Size matched": format_bytes(report.bytes_matched),
            "Files removed": report.files_removed,
            "Space reclaimed": format_bytes(report.bytes_removed),
            "Empty folders removed": report.dirs_removed,
            "Errors": report.errors,
            "Missing targets": len(report.skipped_targets),
        },
    )


if __name__ == "__main__":
    app()
