"""
Typer CLI entry point and orchestration of the audit pipeline.

Commands:
- ``pyaudit audit [TARGET]``: audit a file or directory; exit status is 0
  when clean, 1 when findings were reported, 2 on a fatal error
- ``pyaudit rules [-r ID]``: list the rules in the catalog, or only the given ids
"""

from __future__ import annotations

import logging
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from pyaudit.config import AuditConfig, load_config
from pyaudit.errors import ConfigurationError
from pyaudit.pipeline import resolve_registry, run_audit
from pyaudit.reporting.console import print_report
from pyaudit.reporting.report import AuditReport, render_json, render_text
from pyaudit.rules.registry import load_registry

logger = logging.getLogger(__name__)

EXIT_FATAL = 2

app = typer.Typer(help="pyaudit - flag outdated Python patterns and suggest their modern replacements.")

err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    rich = "rich"
    text = "text"
    json = "json"


def _package_version() -> str:
    try:
        return version("pyaudit")
    except PackageNotFoundError:
        return "0+unknown"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pyaudit {_package_version()}")
        raise typer.Exit()


def setup_logging(level: str) -> None:
    """Send log records to stderr through Rich."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}", param_hint="--log-level")
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def _root(
    version_flag: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="PYAUDIT_LOG_LEVEL", help="DEBUG, INFO, WARNING or ERROR."
    ),
) -> None:
    setup_logging(log_level)


def _fail(message: str) -> typer.Exit:
    err_console.print(Text.assemble(("Error: ", "red"), message))
    return typer.Exit(code=EXIT_FATAL)


def _emit(report: AuditReport, fmt: OutputFormat, output: Optional[Path], verbose: bool, remediations: dict[str, str]) -> None:
    if fmt is OutputFormat.rich:
        if output is None:
            print_report(report, verbose=verbose, remediations=remediations)
            return
        with open(output, "w", encoding="utf-8") as f:
            print_report(report, Console(file=f, width=120), verbose=verbose, remediations=remediations)
        return

    rendered = render_json(report) if fmt is OutputFormat.json else render_text(report)
    if output is None:
        typer.echo(rendered, nl=False)
    else:
        output.write_text(rendered, encoding="utf-8")


@app.command()
def audit(
    target: Path = typer.Argument(
        Path("."),
        exists=True,
        readable=True,
        resolve_path=True,
        help="Python file or directory to audit.",
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file (default: .pyaudit.yaml)."),
    extensions: Optional[List[str]] = typer.Option(None, "--ext", help="File suffix to include (repeatable)."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Glob of paths to skip (repeatable)."),
    rules: Optional[List[str]] = typer.Option(None, "--rule", "-r", help="Rule id to enable (repeatable; default all)."),
    fmt: OutputFormat = typer.Option(OutputFormat.rich, "--format", "-f", help="Output format."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file."),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", help="Worker threads (default: CPU count)."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds allowed per file (0 disables)."),
    follow_symlinks: Optional[bool] = typer.Option(
        None, "--follow-symlinks/--no-follow-symlinks", help="Descend into symlinked directories."
    ),
    catalog: Optional[Path] = typer.Option(None, "--catalog", help="Alternative rule catalog (YAML)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show recommendations and a per-file table."),
) -> None:
    """
    Audit a Python file or every source file under a directory.

    Settings from the config file are overridden by the flags given here.
    """
    try:
        config: AuditConfig = load_config(config_file, search_dir=target if target.is_dir() else target.parent)
        config = config.merged(
            extensions=extensions or None,
            exclude_paths=list(config.exclude_paths) + list(exclude) if exclude else None,
            rules=rules or None,
            workers=workers,
            timeout=timeout,
            follow_symlinks=follow_symlinks,
            catalog=catalog,
        )
        registry = resolve_registry(config)
        report = run_audit(target, config, registry=registry)
    except ConfigurationError as e:
        raise _fail(str(e)) from None
    except (FileNotFoundError, NotADirectoryError) as e:
        raise _fail(str(e)) from None

    try:
        _emit(report, fmt, output, verbose, registry.remediations())
    except OSError as e:
        raise _fail(f"cannot write report: {e}") from None

    raise typer.Exit(code=report.exit_code)


@app.command("rules")
def list_rules(
    catalog: Optional[Path] = typer.Option(None, "--catalog", help="Alternative rule catalog (YAML)."),
    rule_ids: Optional[List[str]] = typer.Option(None, "--rule", "-r", help="Show only this rule id (repeatable)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Include recommendations."),
) -> None:
    """List the rules in the catalog."""
    try:
        registry = load_registry(catalog)
        shown = [registry.get(r) for r in rule_ids] if rule_ids else registry.rules
    except ConfigurationError as e:
        raise _fail(str(e)) from None

    table = Table(box=box.SIMPLE, header_style="bold magenta")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Kind", style="dim")
    table.add_column("Severity")
    table.add_column("Description")
    if verbose:
        table.add_column("Recommendation")
    for rule in shown:
        row = [rule.id, rule.name, rule.kind, rule.severity, rule.description]
        if verbose:
            row.append(rule.recommendation)
        table.add_row(*(Text(cell) for cell in row))
    Console().print(table)


def main() -> None:
    """Entry point for the ``pyaudit`` script and ``python -m pyaudit.main``."""
    app()


if __name__ == "__main__":
    main()
