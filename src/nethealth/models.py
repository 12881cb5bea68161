"""
Health Check Data Models

Shared value types for the runner, ledger, probes and reporter:
- Severity tiers are totally ordered by operator impact
- Outcomes and command results are immutable once created
- Snapshots serialize to plain dicts for scripting
"""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional


# === Status Enums ===

@total_ordering
class Severity(Enum):
    """Classification of a single assertion."""
    PASS = "pass"       # Confirmed healthy
    INFO = "info"       # Informational, no health implication
    WARN = "warn"       # Degraded, ambiguous or best-practice deviation
    FAIL = "fail"       # Confirmed broken - contributes to nonzero exit

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_SEVERITY_ORDER = (Severity.PASS, Severity.INFO, Severity.WARN, Severity.FAIL)


class ProbeKind(Enum):
    """Tag for the fixed set of probe variants."""
    SERVICE_STATE = "service_state"
    LOG_SCAN = "log_scan"
    STATE_INSPECTION = "state_inspection"
    CONNECTIVITY = "connectivity"
    CONFIG_PRESENCE = "config_presence"


class Verdict(Enum):
    """Overall health verdict for a run."""
    PASS = "pass"
    PASS_WITH_WARNINGS = "pass_with_warnings"
    FAIL = "fail"


# === Core Result Types ===

@dataclass(frozen=True)
class Outcome:
    """
    Result of a single assertion made by a probe.

    Attributes:
        severity: PASS, INFO, WARN or FAIL
        message: Short human-readable description
        detail: Optional supporting text (status output, hints, log lines)
    """
    severity: Severity
    message: str
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "severity": self.severity.value,
            "message": self.message,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class CommandResult:
    """Captured result of one runner invocation."""
    succeeded: bool
    output: str = ""

    def __bool__(self) -> bool:
        return self.succeeded

    @property
    def lines(self):
        """Non-empty output lines."""
        return [line for line in self.output.splitlines() if line.strip()]


@dataclass(frozen=True)
class LedgerEntry:
    """An outcome as appended to the ledger, tagged with its position."""
    position: int
    probe: Optional[str]
    outcome: Outcome

    def to_dict(self) -> dict:
        data = self.outcome.to_dict()
        data["position"] = self.position
        data["probe"] = self.probe
        return data


@dataclass(frozen=True)
class LedgerSnapshot:
    """Counter values read from the ledger."""
    errors: int = 0
    warnings: int = 0
    checks: int = 0
    passed: int = 0
    info: int = 0

    @property
    def has_failures(self) -> bool:
        return self.errors > 0

    def to_dict(self) -> dict:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "checks": self.checks,
            "passed": self.passed,
            "info": self.info,
        }
