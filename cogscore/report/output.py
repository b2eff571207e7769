"""Rich terminal output for complexity reports.

Formats ComplexityReport into scannable terminal output with
tier-colored functions grouped by file.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cogscore.report.models import ComplexityReport, FunctionRecord, Tier

_TIER_STYLES = {
    Tier.SEVERE: "red bold",
    Tier.VIOLATION: "red",
    Tier.ACCEPTABLE: "yellow",
    Tier.OK: "green",
}

_TIER_ICONS = {
    Tier.SEVERE: "X",
    Tier.VIOLATION: "!",
    Tier.ACCEPTABLE: "^",
    Tier.OK: "+",
}


class RichReportOutput:
    """Rich terminal formatter for complexity reports."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def print_report(self, report: ComplexityReport) -> None:
        """Print the complete report."""
        self.console.print()
        self._print_header(report)
        self._print_files(report)
        self._print_functions(report)
        self._print_problems(report)
        self.console.print()

    def _print_header(self, report: ComplexityReport) -> None:
        """Print summary header panel."""
        summary = report.summary()

        if not report.passed:
            border = "red"
            title = "Complexity -- FAILED"
        elif report.violations:
            border = "yellow"
            title = "Complexity -- Over threshold"
        else:
            border = "green"
            title = "Complexity -- Passed"

        text = Text()
        text.append(f"{summary.functions} function{'s' if summary.functions != 1 else ''}")
        text.append(f" in {summary.files} file{'s' if summary.files != 1 else ''}")
        text.append(f"  avg cognitive {summary.average_cognitive:.1f}\n\n")

        counts = [
            (tier, summary.tiers.get(tier.value, 0))
            for tier in (Tier.SEVERE, Tier.VIOLATION, Tier.ACCEPTABLE, Tier.OK)
        ]
        shown = [(tier, count) for tier, count in counts if count]
        if shown:
            for i, (tier, count) in enumerate(shown):
                if i > 0:
                    text.append("  ")
                text.append(f"{count} {tier.value}", style=_TIER_STYLES[tier])
            text.append("\n")
        else:
            text.append("No functions scored\n", style="dim")

        if summary.suppressed:
            text.append(f"({summary.suppressed} suppressed wrapper(s))", style="dim")

        self.console.print(
            Panel(text, title=f"[bold]{title}[/bold]", border_style=border)
        )

    def _print_files(self, report: ComplexityReport) -> None:
        """Print per-file summary table."""
        summaries = report.file_summaries()
        if len(summaries) < 2 and not self.verbose:
            return

        self.console.print()
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
        table.add_column("File")
        table.add_column("Functions", justify="right")
        table.add_column("Max cognitive", justify="right")
        table.add_column("Max cyclomatic", justify="right")

        for summary in summaries:
            style = _TIER_STYLES[summary.worst_tier]
            table.add_row(
                summary.file or "<unknown>",
                str(summary.functions),
                Text(str(summary.max_cognitive), style=style),
                str(summary.max_cyclomatic),
            )

        self.console.print(table)

    def _print_functions(self, report: ComplexityReport) -> None:
        """Print functions grouped by file, worst first."""
        records = report.records if self.verbose else report.violations
        if not records:
            return

        self.console.print()
        self.console.print("[bold]Functions:[/bold]" if self.verbose else "[bold]Over threshold:[/bold]")

        by_file: Dict[str, List[FunctionRecord]] = defaultdict(list)
        for record in records:
            by_file[record.file].append(record)

        for file_path in sorted(by_file.keys()):
            self.console.print()
            self.console.print(f"  [bold]{file_path or '<unknown>'}[/bold]")

            # Records arrive sorted from the aggregator
            for record in by_file[file_path]:
                icon = _TIER_ICONS[record.tier]
                style = _TIER_STYLES[record.tier]
                loc = f":{record.line}" if record.line else ""
                suffix = " [dim](suppressed)[/dim]" if record.suppressed else ""
                self.console.print(
                    f"    [{style}]{icon}[/{style}]{loc}  {record.identifier}  "
                    f"cognitive {record.cognitive}  cyclomatic {record.cyclomatic}"
                    f"  [{style}]{record.tier.value}[/{style}]{suffix}"
                )

    def _print_problems(self, report: ComplexityReport) -> None:
        """Print skipped units and call-graph diagnostics."""
        if report.skipped:
            self.console.print()
            self.console.print(f"[yellow]Skipped {len(report.skipped)} unit(s):[/yellow]")
            for skipped in report.skipped:
                where = f" ({skipped.location})" if skipped.location else ""
                self.console.print(f"  [dim]{skipped.identifier}{where}: {skipped.reason}[/dim]")

        if report.diagnostics and self.verbose:
            self.console.print()
            self.console.print(
                f"  [dim]{len(report.diagnostics)} call(s) treated as non-recursive[/dim]"
            )
            for diagnostic in report.diagnostics:
                self.console.print(f"    [dim]{diagnostic}[/dim]")
