"""
Status Ledger

Run-scoped accumulator of outcomes. Every record() appends one entry,
bumps the counters and streams the line to the renderer, all under a
single lock so counters and log are never observed out of sync.

Usage:
    ledger = StatusLedger(renderer=ConsoleRenderer(console))
    ledger.record(Severity.PASS, "systemd-networkd is active and running")
    snap = ledger.snapshot()
"""

import logging
import threading
from typing import List, Optional, Tuple

from .models import LedgerEntry, LedgerSnapshot, Outcome, Severity

logger = logging.getLogger(__name__)


class LedgerRenderer:
    """Receives ledger activity as it happens. Default does nothing."""

    def heading(self, title: str) -> None:
        pass

    def outcome(self, entry: LedgerEntry) -> None:
        pass


class StatusLedger:
    """
    Accumulates classified outcomes for one run.

    Invariants:
        checks == passed + info + warnings + errors
        counters only increase while the run is in progress
    """

    def __init__(self, renderer: Optional[LedgerRenderer] = None):
        self._renderer = renderer or LedgerRenderer()
        self._entries: List[LedgerEntry] = []
        self._counts = {severity: 0 for severity in Severity}
        self._lock = threading.Lock()

    def section(self, title: str) -> None:
        """Forward a section heading to the renderer. Not counted."""
        with self._lock:
            self._renderer.heading(title)

    def record(self, severity: Severity, message: str,
               detail: Optional[str] = None, probe: Optional[str] = None) -> Outcome:
        """Append one assertion and render it immediately."""
        outcome = Outcome(severity, message, detail)
        self.record_outcome(outcome, probe=probe)
        return outcome

    def record_outcome(self, outcome: Outcome, probe: Optional[str] = None) -> LedgerEntry:
        """Append an already-built outcome."""
        with self._lock:
            entry = LedgerEntry(len(self._entries), probe, outcome)
            self._entries.append(entry)
            self._counts[outcome.severity] += 1
            self._renderer.outcome(entry)

        logger.debug(f"[{outcome.severity.value}] {probe or '-'}: {outcome.message}")
        return entry

    @property
    def entries(self) -> Tuple[LedgerEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def snapshot(self) -> LedgerSnapshot:
        """Read all counters at once."""
        with self._lock:
            return LedgerSnapshot(
                errors=self._counts[Severity.FAIL],
                warnings=self._counts[Severity.WARN],
                checks=len(self._entries),
                passed=self._counts[Severity.PASS],
                info=self._counts[Severity.INFO],
            )
