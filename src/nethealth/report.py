"""
Health Check Reporter

Streams ledger lines to the terminal as they are recorded and renders the
final tally. The exit code is a pure function of (errors, warnings).
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape

from .console import get_console
from .ledger import LedgerRenderer
from .models import LedgerEntry, LedgerSnapshot, Severity, Verdict

# Fixed troubleshooting checklist shown whenever a run has failures
REMEDIATION_HINTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("For NDisc route errors:", (
        "sudo mkdir -p /etc/systemd/networkd.conf.d/",
        "echo -e '[Network]\\nManageForeignRoutes=no' | "
        "sudo tee /etc/systemd/networkd.conf.d/99-foreign-routes.conf",
        "sudo systemctl restart systemd-networkd",
    )),
    ("For systemd-networkd issues:", (
        "sudo systemctl restart systemd-networkd",
        "sudo systemctl restart systemd-resolved",
    )),
    ("For netplan issues:", (
        "sudo netplan try",
        "sudo netplan apply",
    )),
)

_ICONS = {
    Severity.PASS: ("pass", "✓"),
    Severity.INFO: ("info", "ℹ"),
    Severity.WARN: ("warning", "⚠"),
    Severity.FAIL: ("error", "✗"),
}


def exit_code(errors: int, warnings: int) -> int:
    """0 when nothing failed, warnings or not; 1 otherwise."""
    return 1 if errors > 0 else 0


def verdict(snapshot: LedgerSnapshot) -> Verdict:
    if snapshot.errors > 0:
        return Verdict.FAIL
    if snapshot.warnings > 0:
        return Verdict.PASS_WITH_WARNINGS
    return Verdict.PASS


def json_report(snapshot: LedgerSnapshot, entries: Sequence[LedgerEntry],
                host: str) -> Dict[str, Any]:
    """Machine-readable form of a run, for --json."""
    return {
        "host": host,
        "verdict": verdict(snapshot).value,
        "exit_code": exit_code(snapshot.errors, snapshot.warnings),
        "summary": snapshot.to_dict(),
        "results": [entry.to_dict() for entry in entries],
    }


class ConsoleRenderer(LedgerRenderer):
    """
    Rich terminal output for ledger activity.

    Details are always shown for WARN and FAIL lines and, in verbose mode,
    for PASS and INFO lines too.
    """

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or get_console()
        self.verbose = verbose

    def heading(self, title: str) -> None:
        self.console.print(f"\n[heading]=== {escape(title)} ===[/heading]")

    def outcome(self, entry: LedgerEntry) -> None:
        outcome = entry.outcome
        style, icon = _ICONS[outcome.severity]
        self.console.print(f"[{style}]{icon}[/{style}] {escape(outcome.message)}")

        show_detail = outcome.severity in (Severity.WARN, Severity.FAIL) or self.verbose
        if outcome.detail and show_detail:
            lines = outcome.detail.splitlines()
            self.console.print(f"  [{style}]Details:[/{style}] {escape(lines[0])}")
            for line in lines[1:]:
                self.console.print(f"    {escape(line)}")


class Reporter:
    """Renders the final tally and derives the exit code."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def summarize(self, snapshot: LedgerSnapshot) -> int:
        console = self.console
        console.print("\n[heading]=== Health Check Summary ===[/heading]")
        console.print(f"Total checks performed: {snapshot.checks}")

        result = verdict(snapshot)
        if result is Verdict.PASS:
            console.print("[pass]✓ All checks passed! Network appears healthy.[/pass]")
        elif result is Verdict.PASS_WITH_WARNINGS:
            console.print(f"[warning]⚠ {snapshot.warnings} warning(s) found, "
                          f"but no critical errors.[/warning]")
        else:
            console.print(f"[error]✗ {snapshot.errors} error(s) and "
                          f"{snapshot.warnings} warning(s) found.[/error]")
            self._print_remediation()

        return exit_code(snapshot.errors, snapshot.warnings)

    def _print_remediation(self):
        console = self.console
        console.print("\n[warning]Common fixes:[/warning]")
        for number, (title, commands) in enumerate(REMEDIATION_HINTS, 1):
            console.print(f"{number}. {title}")
            for command in commands:
                console.print(f"   {escape(command)}")
            console.print()
