#!/usr/bin/env python3
"""Network Health Check

Runs a fixed battery of read-only probes against the network stack
(systemd-networkd, systemd-resolved, interfaces, DHCP, IPv6, connectivity,
DNS, declarative configuration) and exits non-zero if anything is broken.

Usage:
    network-healthcheck
    network-healthcheck --verbose
    network-healthcheck --json     # Machine-readable results
    sudo network-healthcheck  # Full journal access without escalation
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import distro
from rich.markup import escape

from .__version__ import get_version
from .config import Settings, show_config_summary
from .console import get_console
from .ledger import StatusLedger
from .logging_config import level_from_name, setup_logging
from .orchestrator import Orchestrator
from .report import ConsoleRenderer, Reporter, exit_code, json_report
from .runner import CommandRunner

logger = logging.getLogger(__name__)

EPILOG = """\
This tool performs comprehensive network health checks including:
- systemd-networkd status and errors
- systemd-resolved status
- Network interface status
- DHCP configuration
- IPv6 and NDisc status
- Connectivity tests
- DNS resolution tests
- Network configuration validation

Some checks require root privileges for access to system logs and services.
Failed commands are retried once with 'sudo -n' when not running as root.

Exit codes:
    0 - All checks passed or only warnings
    1 - Critical errors found
"""


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that prints usage and exits 1 on bad arguments."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def build_parser() -> UsageParser:
    parser = UsageParser(
        prog='network-healthcheck',
        description='Network Health Check',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show detailed output')
    parser.add_argument('--debug', action='store_true',
                        help='Log every command to stderr')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colored output')
    parser.add_argument('--json', action='store_true',
                        help='Output results as JSON')
    parser.add_argument('--show-config', action='store_true',
                        help='Print effective settings and exit')
    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {get_version()}')
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def host_label() -> str:
    """OS name for the banner, e.g. 'Ubuntu 24.04'."""
    name = distro.name(pretty=True) or distro.name()
    return name or 'Linux'


def main(argv: Optional[List[str]] = None) -> int:
    """Run the health check and return an exit code."""
    args = parse_args(argv)
    settings = Settings.from_env()

    level = logging.DEBUG if args.debug else level_from_name(settings.log_level)
    setup_logging(level=level, use_colors=not args.no_color)

    console = get_console(no_color=args.no_color or None)

    if args.show_config:
        show_config_summary(console)
        return 0

    host = host_label()
    runner = CommandRunner(default_timeout=settings.command_timeout,
                           escalation=settings.escalation)

    if args.json:
        ledger = StatusLedger()
        snapshot = Orchestrator(runner, ledger, settings).run()
        print(json.dumps(json_report(snapshot, ledger.entries, host), indent=2))
        return exit_code(snapshot.errors, snapshot.warnings)

    console.print(f"[heading]{escape(host)} Network Health Check[/heading]")
    console.print("==================================")

    ledger = StatusLedger(renderer=ConsoleRenderer(console, verbose=args.verbose))
    snapshot = Orchestrator(runner, ledger, settings).run()

    return Reporter(console).summarize(snapshot)


if __name__ == '__main__':
    sys.exit(main())
