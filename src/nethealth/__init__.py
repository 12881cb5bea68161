"""
Network Health Check

Probe execution and result aggregation for a one-shot assessment of a
Linux host's network stack.

Usage:
    from nethealth import CommandRunner, StatusLedger, Orchestrator, Reporter

    ledger = StatusLedger()
    snapshot = Orchestrator(CommandRunner(), ledger).run()
    code = Reporter().summarize(snapshot)
"""

from .__version__ import __version__
from .models import (
    CommandResult,
    LedgerEntry,
    LedgerSnapshot,
    Outcome,
    ProbeKind,
    Severity,
    Verdict,
)
from .ledger import StatusLedger
from .runner import CommandRunner
from .orchestrator import Orchestrator
from .report import Reporter, exit_code, verdict

__all__ = [
    '__version__',
    'CommandResult',
    'LedgerEntry',
    'LedgerSnapshot',
    'Outcome',
    'ProbeKind',
    'Severity',
    'Verdict',
    'StatusLedger',
    'CommandRunner',
    'Orchestrator',
    'Reporter',
    'exit_code',
    'verdict',
]
