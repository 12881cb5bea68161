"""
Probe base types and the per-run probe context.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from ..config import Settings
from ..ledger import StatusLedger
from ..models import Outcome, ProbeKind, Severity
from ..runner import CommandRunner

logger = logging.getLogger(__name__)

_DEFAULT_ROUTE_DEV = re.compile(r'\bdev\s+(\S+)')

# Members may read the full system journal without root
JOURNAL_GROUPS = frozenset({'adm', 'systemd-journal', 'wheel'})


class ProbeContext:
    """
    Everything a probe needs for one run.

    Host facts that several probes share (primary interface, global address
    availability) are discovered lazily and cached for the rest of the run.
    """

    def __init__(self, runner: CommandRunner, ledger: StatusLedger,
                 settings: Optional[Settings] = None):
        self.runner = runner
        self.ledger = ledger
        self.settings = settings or Settings()
        self._interface_known = False
        self._primary_interface: Optional[str] = None
        self._routing_readable = True
        self._global_address: Dict[int, Optional[bool]] = {}
        self._journal_readable: Optional[bool] = None

    def emit(self, probe: 'Probe', outcome: Outcome) -> Outcome:
        """Record an outcome on behalf of a probe."""
        self.ledger.record_outcome(outcome, probe=probe.name)
        return outcome

    # === Shared host facts ===

    def _discover_interface(self):
        result = self.runner.run(['ip', 'route', 'show', 'default'],
                                 timeout=self.settings.fast_timeout)
        self._interface_known = True
        if not result.succeeded:
            self._routing_readable = False
            return
        # Multipath routes carry dev on the indented nexthop lines
        in_default = False
        for line in result.lines:
            if line.startswith('default'):
                in_default = True
            elif not line[:1].isspace():
                in_default = False
            match = _DEFAULT_ROUTE_DEV.search(line) if in_default else None
            if match:
                self._primary_interface = match.group(1)
                break
        logger.debug(f"Primary interface: {self._primary_interface}")

    @property
    def primary_interface(self) -> Optional[str]:
        """Interface carrying the IPv4 default route, if any."""
        if not self._interface_known:
            self._discover_interface()
        return self._primary_interface

    @property
    def routing_readable(self) -> bool:
        """False if the routing table could not be queried at all."""
        if not self._interface_known:
            self._discover_interface()
        return self._routing_readable

    def has_global_address(self, family: int) -> Optional[bool]:
        """
        True if any interface carries a global (non link-local) address.

        None when the addresses could not be listed at all.
        """
        if family not in self._global_address:
            result = self.runner.run(
                ['ip', f'-{family}', 'addr', 'show', 'scope', 'global'],
                timeout=self.settings.fast_timeout)
            keyword = 'inet6 ' if family == 6 else 'inet '
            self._global_address[family] = None if not result.succeeded else any(
                line.strip().startswith(keyword) for line in result.lines)
        return self._global_address[family]

    def journal_readable(self) -> bool:
        """True if the invoking user may read the system journal unprivileged."""
        if self._journal_readable is None:
            result = self.runner.run(['id', '-Gn'], timeout=self.settings.fast_timeout,
                                     escalate=False)
            groups = set(result.output.split()) if result.succeeded else set()
            self._journal_readable = bool(groups & JOURNAL_GROUPS)
        return self._journal_readable


class Probe(ABC):
    """
    A named diagnostic unit.

    Subclasses make their assertions in _check(), which returns True when the
    primary condition holds. Nested probes in ``then`` run only in that case.
    Probes with ``requires_interface`` report an INFO skip when no primary
    interface is known.
    """

    kind: ProbeKind

    def __init__(self, name: str, then: Sequence['Probe'] = (),
                 requires_interface: bool = False):
        self.name = name
        self.then: Tuple['Probe', ...] = tuple(then)
        self.requires_interface = requires_interface

    def run(self, ctx: ProbeContext) -> None:
        if self.requires_interface and ctx.primary_interface is None:
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Skipping {self.name}: no primary interface"))
            return
        if not self._check(ctx):
            if self.then:
                logger.debug(f"{self.name}: skipping {len(self.then)} dependent check(s)")
            return
        for probe in self.then:
            run_guarded(probe, ctx)

    @abstractmethod
    def _check(self, ctx: ProbeContext) -> bool:
        """Make this probe's own assertions."""

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"


@dataclass(frozen=True)
class ProbeSection:
    """A titled group of probes; the unit of report ordering."""
    title: str
    probes: Tuple[Probe, ...]


def run_guarded(probe: Probe, ctx: ProbeContext) -> None:
    """Run a probe, converting any escaped exception into a WARN outcome."""
    try:
        probe.run(ctx)
    except Exception as e:  # noqa: BLE001
        logger.exception(f"Probe {probe.name} raised")
        ctx.emit(probe, Outcome(
            Severity.WARN,
            f"Could not complete {probe.name} check",
            f"{type(e).__name__}: {e}"))
