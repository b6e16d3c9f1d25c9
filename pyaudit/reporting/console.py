# Rich console output: render an AuditReport for terminal display.

from __future__ import annotations

from typing import Mapping, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pyaudit.findings.models import SEVERITY_ORDER
from pyaudit.reporting.report import AuditReport, FileReport

# Severity → Rich style
SEVERITY_STYLE = {
    "error": "bold red",
    "warning": "bold yellow",
    "info": "bold blue",
}

DEFAULT_SEVERITY_STYLE = "bold white"


def _severity_style(severity: str) -> str:
    return SEVERITY_STYLE.get(severity.lower(), DEFAULT_SEVERITY_STYLE)


def print_report(
    report: AuditReport,
    console: Optional[Console] = None,
    verbose: bool = False,
    remediations: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Print an audit report using Rich.

    One table per file with findings, snippets underneath, and a summary
    footer. With verbose, also prints the replacement recommendation for each
    rule seen in a file and a table of every scanned file.
    """
    console = console or Console()
    remediations = remediations or {}

    if report.is_clean:
        console.print(
            Panel(
                f"[green]No outdated patterns found[/green] in {report.files_scanned} file(s).",
                title="pyaudit",
                border_style="green",
                box=box.ROUNDED,
            )
        )
        return

    for file_report in report.files:
        if file_report.findings:
            _print_file(file_report, console, verbose, remediations)

    if verbose:
        _print_file_summary_table(report, console)

    _print_summary(report, console)


def _print_file(
    file_report: FileReport,
    console: Console,
    verbose: bool,
    remediations: Mapping[str, str],
) -> None:
    console.print()
    console.print(
        Panel(
            Text(file_report.path, style="bold cyan"),
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        )
    )

    table = Table(
        show_header=True,
        header_style="bold magenta",
        box=box.SIMPLE,
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Line", justify="right", style="dim", width=5)
    table.add_column("Col", justify="right", style="dim", width=4)
    table.add_column("Severity", width=8)
    table.add_column("Rule", width=18)
    table.add_column("Message", style="white")

    for f in file_report.findings:
        loc = f.location
        table.add_row(
            str(loc.line),
            str(loc.column),
            Text(f.severity.upper(), style=_severity_style(f.severity)),
            Text(f"[{f.rule_id}]", style="dim"),
            Text(f.message),
        )
    console.print(table)

    snippets = [f for f in file_report.findings if f.location.snippet]
    if snippets:
        for f in snippets:
            console.print(Text.assemble(("  |-- ", "dim"), f"{f.location.line}: ", f.location.snippet or ""))
        console.print()

    if verbose:
        seen: list[str] = []
        for f in file_report.findings:
            if f.rule_id not in seen:
                seen.append(f.rule_id)
        for rule_id in sorted(seen):
            hint = remediations.get(rule_id)
            if hint:
                console.print(Text.assemble(("  [Fix] ", "dim"), f"[{rule_id}] ", hint))
        if seen:
            console.print()


def _print_file_summary_table(report: AuditReport, console: Console) -> None:
    """Print a table of clean vs flagged files."""
    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Status", width=8)
    table.add_column("Findings", justify="right", width=8)

    flagged = [fr for fr in report.files if fr.findings]
    clean = [fr for fr in report.files if not fr.findings]
    for fr in flagged:
        table.add_row(Text(fr.path), Text("FLAGGED", style="bold red"), str(len(fr.findings)))
    for fr in clean:
        table.add_row(Text(fr.path), Text("OK", style="bold green"), "0")

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_summary(report: AuditReport, console: Console) -> None:
    """Print totals by severity and by rule."""
    by_severity: dict[str, int] = {}
    for f in report.findings:
        by_severity[f.severity] = by_severity.get(f.severity, 0) + 1

    total = report.total
    parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for sev in sorted(by_severity, key=lambda s: SEVERITY_ORDER.get(s, 99)):
        parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev}[/]")
    parts.append(f"{report.files_scanned} file(s) scanned")

    rules = "  ".join(f"{rule_id}={count}" for rule_id, count in report.summary.items())

    console.print()
    console.print(
        Panel(
            " | ".join(parts) + f"\n[dim]{rules}[/dim]",
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )
