"""Command line interface for doccatalog."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from doccatalog.catalog import CatalogError, SQLiteCatalog
from doccatalog.classification import read_exchange_log
from doccatalog.config import CatalogConfig, ConfigError, ConfigManager, resolve_with_precedence
from doccatalog.logging_config import configure_logging
from doccatalog.progress import ConsoleProgressReporter, NullProgressReporter, ProgressReporter
from doccatalog.scan import ConfigurationError, ScanError, ScanService

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, target: str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {escape(target)}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: CatalogConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` flags.

    Raises:
        click.ClickException: If the requested modes conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _load_config(cli_overrides: dict[str, Any] | None = None) -> CatalogConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    return manager.load(cli_overrides=cli_overrides)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="doccatalog")
def cli() -> None:
    """doccatalog ingests files from watched folders into a categorized catalog."""


@cli.command()
@click.option(
    "--folder",
    "folders",
    multiple=True,
    type=click.Path(file_okay=False, path_type=str),
    help="Folder to scan instead of the configured ones (repeatable).",
)
@click.option("--owner", type=str, help="Identity recorded as the uploader of new documents.")
@click.option("--keep-originals", is_flag=True, help="Leave archived files in the watched folders.")
@click.option("--json", "json_output", is_flag=True, help="Emit the scan outcome as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    folders: tuple[str, ...],
    owner: str | None,
    keep_originals: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Run one scan over the watched folders and catalogue new files.

    Args:
        ctx: Click context used for parameter source inspection.
        folders: Folders overriding ``monitor.folders``.
        owner: Identity overriding ``monitor.default_owner_id``.
        keep_originals: When True, archived originals are not deleted.
        json_output: If True, emit the outcome as JSON.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.

    Raises:
        click.ClickException: If configuration is invalid or the scan aborts.
    """

    overrides: dict[str, Any] = {}
    if folders:
        overrides["monitor.folders"] = list(folders)
    if owner:
        overrides["monitor.default_owner_id"] = owner
    if keep_originals:
        overrides["monitor.delete_originals"] = False

    service: ScanService | None = None
    try:
        config = _load_config(overrides)
        configure_logging(config.logging)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )

        reporter: ProgressReporter
        if json_output:
            reporter = NullProgressReporter()
        else:
            reporter = ConsoleProgressReporter(
                console, quiet=quiet_enabled, summary_only=summary_only
            )

        service = ScanService.from_config(config)
        outcome = service.run_scan(config.monitor.folders, reporter)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except ConfigurationError as exc:
        details = exc.outcome.to_dict() if exc.outcome is not None else None
        _handle_cli_error(
            str(exc), code="configuration_error", json_output=json_output, details=details, original=exc
        )
        return
    except ScanError as exc:
        details = exc.outcome.to_dict() if exc.outcome is not None else None
        _handle_cli_error(
            str(exc), code="scan_error", json_output=json_output, details=details, original=exc
        )
        return
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
        return
    except CatalogError as exc:
        _handle_cli_error(str(exc), code="catalog_error", json_output=json_output, original=exc)
        return
    finally:
        if service is not None:
            service.close()

    if json_output:
        console.print_json(data=outcome.to_dict())
        return

    metrics = {
        "discovered": outcome.discovered,
        "processed": outcome.processed,
        "ingested": outcome.ingested,
        "skipped": outcome.skipped,
        "errors": outcome.errors,
    }
    _emit_message(
        _format_summary_line("Scan", ", ".join(config.monitor.folders), metrics),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.option("--lines", "max_lines", type=int, default=50, show_default=True, help="Lines to show (0 for all).")
def logs(max_lines: int) -> None:
    """Show the tail of the classification exchange log."""
    try:
        config = _load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if not config.classifier.exchange_log_path:
        console.print("[yellow]Classification exchange logging is disabled.[/yellow]")
        return

    path = Path(config.classifier.exchange_log_path).expanduser()
    text = read_exchange_log(path, max_lines=max_lines)
    if not text:
        console.print(f"[yellow]No classification exchanges recorded at {escape(str(path))}.[/yellow]")
        return
    console.print(text, markup=False, highlight=False)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit categories as JSON.")
def categories(json_output: bool) -> None:
    """List the categories known to the catalog."""
    try:
        config = _load_config()
        repository = SQLiteCatalog(Path(config.storage.database_path))
        known = repository.list_categories()
        counts = repository.count_documents_by_category()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except CatalogError as exc:
        _handle_cli_error(str(exc), code="catalog_error", json_output=json_output, original=exc)
        return

    if json_output:
        payload = [
            {**category.model_dump(mode="json"), "documents": counts.get(category.id, 0)}
            for category in known
        ]
        console.print_json(data={"categories": payload})
        return

    if not known:
        console.print("[yellow]No categories recorded yet.[/yellow]")
        return

    table = Table(title="Categories")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Documents", justify="right")
    for category in known:
        table.add_row(
            str(category.id),
            escape(category.name),
            escape(category.description),
            str(counts.get(category.id, 0)),
        )
    console.print(table)


@cli.group()
def users() -> None:
    """Manage the users that can own catalogued documents."""


@users.command("add")
@click.argument("user_id")
@click.argument("username")
@click.option("--role", type=str, help="Role to assign, e.g. 'admin'.")
def users_add(user_id: str, username: str, role: str | None) -> None:
    """Register USER_ID with USERNAME in the catalog."""
    try:
        config = _load_config()
        repository = SQLiteCatalog(Path(config.storage.database_path))
        repository.add_user(user_id, username, role)
    except (ConfigError, CatalogError) as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Added user {escape(username)} ({escape(user_id)}).[/green]")


@cli.group()
def config() -> None:
    """Manage doccatalog configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'classifier.temperature'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=CatalogConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    # The "Last updated" stamp always changes; only report real edits.
    meaningful = [
        line
        for line in diff
        if line[:1] in {"+", "-"}
        and not line.startswith(("+++", "---"))
        and "Last updated:" not in line
    ]
    if not meaningful:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=CatalogConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
