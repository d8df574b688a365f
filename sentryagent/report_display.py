"""Rich terminal rendering of an audit report."""

from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sentryagent.workflow.schemas import SEVERITY_ORDER

SEVERITY_STYLES = {
    "critical": "red bold",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}


def _severity_label(severity: str) -> str:
    style = SEVERITY_STYLES.get(severity, "white")
    return f"[{style}]{severity.upper()}[/{style}]"


def render_report(report: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Print a report payload (camelCase wire format) to the terminal.

    Args:
        report: AuditReport as returned by `AuditReport.to_wire()` or the
            execution-result endpoint.
        console: Target console. Defaults to stdout.
    """
    console = console or Console()
    counts = report.get("counts", {})
    by_severity = counts.get("bySeverity", {})

    console.print(Panel(
        f"[bold]{escape(report.get('repoUrl', ''))}[/bold]\n{escape(report.get('summary', ''))}",
        title="[bold cyan]Web3 Security Audit Report[/bold cyan]",
        expand=False,
    ))
    console.print()

    stats = Table(show_header=False, box=None, padding=(0, 2))
    stats.add_row("Scan ID", str(report.get("scanId", "")))
    stats.add_row("Files scanned", str(counts.get("filesScanned", 0)))
    stats.add_row("Solidity files", str(counts.get("solidityFiles", 0)))
    stats.add_row("Vulnerabilities", str(counts.get("vulnerabilities", 0)))
    for severity in SEVERITY_ORDER:
        stats.add_row(f"  {_severity_label(severity.value)}", str(by_severity.get(severity.value, 0)))
    console.print(stats)
    console.print()

    languages = report.get("languages") or []
    if languages:
        console.print("[bold]Languages:[/bold] " + ", ".join(
            f"{bucket['name']} ({bucket['fileCount']})" for bucket in languages
        ))
        console.print()

    issues = report.get("issues") or []
    if issues:
        table = Table(title=f"{len(issues)} Issues", expand=True)
        table.add_column("#", style="dim", width=4)
        table.add_column("Severity", justify="center", width=10)
        table.add_column("Title", ratio=2)
        table.add_column("Location", style="yellow", ratio=2)
        table.add_column("Type", style="cyan", ratio=1)
        table.add_column("Conf.", justify="right", width=6)
        for i, issue in enumerate(issues, 1):
            location = issue.get("file", "")
            if issue.get("line") is not None:
                location = f"{location}:{issue['line']}"
            table.add_row(
                str(i),
                _severity_label(issue.get("severity", "")),
                escape(issue.get("title", "")),
                escape(location),
                escape(issue.get("type", "")),
                f"{issue.get('confidence', 0):.2f}",
            )
        console.print(table)
        console.print()

        for i, issue in enumerate(issues, 1):
            console.print(f"[bold yellow]{i}. {escape(issue.get('title', ''))}[/bold yellow]")
            if issue.get("description"):
                console.print(f"   {escape(issue['description'])}")
            if issue.get("problem"):
                console.print(f"   [red]Problem:[/red] {escape(issue['problem'])}")
            if issue.get("snippet"):
                console.print(f"   [dim]Code:[/dim] {escape(issue['snippet'])}")
            if issue.get("recommendation"):
                console.print(f"   [green]Fix:[/green] {escape(issue['recommendation'])}")
        console.print()
    else:
        console.print("[green]No vulnerabilities found.[/green]")
        console.print()

    console.print("[bold]Recommendations:[/bold]")
    for recommendation in report.get("recommendations", []):
        console.print(f"  - {escape(recommendation)}")
