"""
Console summary for domscan.

Renders findings per parameter, grouped by severity and finding type,
with each distinct payload listed once.
"""

from rich.console import Console
from rich.markup import escape

from domscan.findings import FindingStore, ParameterSummary, summarize
from domscan.models import Severity, SEVERITY_ORDER

SEVERITY_LABELS = {
    Severity.HIGH: "HIGH",
    Severity.MEDIUM: "MEDIUM",
    Severity.LOW: "LOW",
    Severity.INFO: "INFORMATIONAL",
}

SEVERITY_COLORS = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "orange1",
    Severity.LOW: "yellow",
    Severity.INFO: "cyan",
}


class ConsoleReporter:
    """Prints the end-of-run summary."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render(self, store: FindingStore):
        summaries = summarize(store)

        self.console.rule("[bold green]Summary[/]")
        if not summaries:
            self.console.print("[green]  [+] No findings! :([/]")
            return

        self.console.print(
            f"[green]  [+] There were findings for {len(summaries)} parameter(s) during this scan run.[/]"
        )
        for summary in summaries:
            self._render_parameter(summary)

    def _render_parameter(self, summary: ParameterSummary):
        self.console.print(f"[bold][+] Parameter:[/] {escape(summary.parameter)}")

        for severity in SEVERITY_ORDER:
            types = summary.types(severity)
            if not types:
                continue
            color = SEVERITY_COLORS[severity]
            self.console.print(f"[{color}]  * {len(types)} {SEVERITY_LABELS[severity]} finding(s)[/]")
            for finding_type, payloads in types.items():
                self.console.print(f"    {escape('[' + finding_type.value + ']')}")
                for payload in payloads:
                    self.console.print(f"    - Payload: {escape(payload)}", highlight=False, emoji=False)
