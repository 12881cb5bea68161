"""
Health Check Orchestrator

Runs the fixed probe set strictly in order and hands the ledger back for
reporting. Probes never abort the run: anything that escapes a probe is
recorded as a WARN outcome for that probe.
"""

import logging
import time
from typing import Optional, Sequence

from .config import Settings
from .ledger import StatusLedger
from .models import LedgerSnapshot
from .probes import ProbeContext, ProbeSection, build_probe_set, run_guarded
from .runner import CommandRunner

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Sequential driver for one health check run.

    Usage:
        orchestrator = Orchestrator(runner, ledger, settings)
        snapshot = orchestrator.run()
    """

    def __init__(self, runner: CommandRunner, ledger: StatusLedger,
                 settings: Optional[Settings] = None,
                 sections: Optional[Sequence[ProbeSection]] = None):
        self.settings = settings or Settings()
        self.runner = runner
        self.ledger = ledger
        self.sections = tuple(sections) if sections is not None else build_probe_set(self.settings)

    def run(self) -> LedgerSnapshot:
        """Run every section in order and return the final counters."""
        ctx = ProbeContext(self.runner, self.ledger, self.settings)
        started = time.monotonic()

        for section in self.sections:
            self.ledger.section(section.title)
            for probe in section.probes:
                logger.debug(f"Running probe {probe.name} ({probe.kind.value})")
                run_guarded(probe, ctx)

        snapshot = self.ledger.snapshot()
        logger.info(
            f"Health check finished in {time.monotonic() - started:.1f}s: "
            f"{snapshot.checks} checks, {snapshot.errors} errors, {snapshot.warnings} warnings, "
            f"{self.runner.escalations} escalations")
        return snapshot
