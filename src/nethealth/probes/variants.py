"""
Probe Variants

The fixed set of probe kinds. Each variant owns its extraction and
classification rule; concrete instances are declared in catalog.py.

Shared policy:
- FAIL only for conditions the probe positively confirmed as broken
- anything the probe could not determine is reported as INFO or WARN
- nothing is silently dropped
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional, Sequence

from ..models import Outcome, ProbeKind, Severity
from .base import Probe, ProbeContext

logger = logging.getLogger(__name__)

Extractor = Callable[[ProbeContext], Optional[Any]]
Classifier = Callable[[Any, ProbeContext], Outcome]


class ServiceStateProbe(Probe):
    """
    Is a systemd unit active?

    PASS when active. When systemd confirms the unit is not active the
    configured severity is recorded with the unit's state as detail and
    the nested probes are skipped.
    """

    kind = ProbeKind.SERVICE_STATE

    def __init__(self, name: str, unit: str,
                 on_inactive: Severity = Severity.FAIL,
                 inactive_detail: Optional[str] = None, **kwargs):
        super().__init__(name, **kwargs)
        self.unit = unit
        self.on_inactive = on_inactive
        self.inactive_detail = inactive_detail

    def _check(self, ctx: ProbeContext) -> bool:
        runner = ctx.runner
        if not runner.which('systemctl'):
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Cannot check {self.unit}: systemctl not available"))
            return False

        active = runner.run(['systemctl', 'is-active', self.unit],
                            timeout=ctx.settings.fast_timeout)
        if active.succeeded:
            ctx.emit(self, Outcome(Severity.PASS, f"{self.unit} is active and running"))
            return True

        status = runner.run(
            ['systemctl', 'show', self.unit, '--no-pager',
             '-p', 'LoadState', '-p', 'ActiveState', '-p', 'SubState', '-p', 'Result'],
            timeout=ctx.settings.command_timeout)
        if not status.succeeded or 'ActiveState=' not in status.output:
            ctx.emit(self, Outcome(
                Severity.WARN,
                f"Could not determine state of {self.unit}",
                "systemctl did not report the unit state"))
            return False

        ctx.emit(self, Outcome(
            self.on_inactive,
            f"{self.unit} is not active",
            self.inactive_detail or status.output.strip()))
        return False


class LogScanProbe(Probe):
    """
    Count journal lines for a unit that match a pattern in a time window.

    No matches records ``on_clean``; matches record ``on_match``. A journal
    that cannot be read is reported as INFO rather than as zero matches.
    """

    kind = ProbeKind.LOG_SCAN

    def __init__(self, name: str, unit: str, since: str, pattern: str,
                 clean_message: str, match_message: str,
                 on_match: Severity = Severity.WARN,
                 on_clean: Severity = Severity.PASS,
                 match_detail: Optional[str] = None,
                 clean_detail: Optional[str] = None,
                 show_lines: int = 3, **kwargs):
        super().__init__(name, **kwargs)
        self.unit = unit
        self.since = since
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.clean_message = clean_message
        self.match_message = match_message
        self.on_match = on_match
        self.on_clean = on_clean
        self.match_detail = match_detail
        self.clean_detail = clean_detail
        self.show_lines = show_lines

    def _check(self, ctx: ProbeContext) -> bool:
        runner = ctx.runner
        if not runner.which('journalctl'):
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Cannot scan {self.unit} logs: journalctl not available"))
            return False

        elevated = not (runner.privileged or ctx.journal_readable())
        if elevated and not runner.can_escalate():
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Cannot scan {self.unit} logs: insufficient permissions",
                "Run as root or as a member of the systemd-journal group"))
            return False

        result = runner.run(
            ['journalctl', '-u', self.unit, '--since', self.since, '--no-pager'],
            timeout=ctx.settings.command_timeout, elevated=elevated)
        if not result.succeeded:
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Cannot scan {self.unit} logs",
                "journalctl failed or timed out"))
            return False

        matches = [line for line in result.lines if self.pattern.search(line)]
        if not matches:
            ctx.emit(self, Outcome(self.on_clean, self.clean_message, self.clean_detail))
            return True

        detail = self.match_detail or "\n".join(matches[-self.show_lines:])
        ctx.emit(self, Outcome(
            self.on_match,
            self.match_message.format(count=len(matches), since=self.since),
            detail))
        return False


def _undetermined(name: str) -> Callable[[ProbeContext], Outcome]:
    def outcome(ctx: ProbeContext) -> Outcome:
        return Outcome(Severity.INFO, f"Could not determine {name}")
    return outcome


class StateInspectionProbe(Probe):
    """
    Read one host value and classify it with a fixed rule.

    ``extract`` returns the value or None when it cannot be read;
    ``classify`` maps the value to an outcome. Nested probes run only when
    the classification is PASS.
    """

    kind = ProbeKind.STATE_INSPECTION

    def __init__(self, name: str, extract: Extractor, classify: Classifier,
                 undetermined: Optional[Callable[[ProbeContext], Outcome]] = None,
                 **kwargs):
        super().__init__(name, **kwargs)
        self.extract = extract
        self.classify = classify
        self.undetermined = undetermined or _undetermined(name)

    def _check(self, ctx: ProbeContext) -> bool:
        value = self.extract(ctx)
        if value is None:
            ctx.emit(self, self.undetermined(ctx))
            return False
        outcome = ctx.emit(self, self.classify(value, ctx))
        return outcome.severity is Severity.PASS


@dataclass(frozen=True)
class ReachabilityMethod:
    """
    One way of testing reachability.

    ``argv`` entries are formatted with the run settings, e.g.
    ``'{ipv4_target}'``.
    """
    tool: str
    argv: Sequence[str]
    via: str
    require_output: bool = False

    def command(self, settings) -> list:
        values = asdict(settings)
        return [part.format(**values) for part in self.argv]


class ConnectivityProbe(Probe):
    """
    Reachability test with an ordered fallback chain of methods.

    Skipped (INFO) when the host has no global address of ``family``, or
    when its addresses could not be listed. Methods whose tool is missing are passed over; the first method that
    succeeds gives PASS. If every available method fails, ``on_failure``
    is recorded. With no usable tool at all the result is INFO.
    """

    kind = ProbeKind.CONNECTIVITY

    def __init__(self, name: str, label: str,
                 methods: Sequence[ReachabilityMethod],
                 family: Optional[int] = None,
                 on_failure: Severity = Severity.FAIL,
                 failure_detail: Optional[str] = None, **kwargs):
        super().__init__(name, **kwargs)
        self.label = label
        self.methods = tuple(methods)
        self.family = family
        self.on_failure = on_failure
        self.failure_detail = failure_detail

    def _check(self, ctx: ProbeContext) -> bool:
        if self.family is not None:
            present = ctx.has_global_address(self.family)
            if present is None:
                ctx.emit(self, Outcome(
                    Severity.INFO,
                    f"Skipping {self.label} (could not list IPv{self.family} addresses)",
                    f"ip -{self.family} addr show scope global failed"))
                return False
            if not present:
                ctx.emit(self, Outcome(
                    Severity.INFO,
                    f"Skipping {self.label} (no global IPv{self.family} addresses)",
                    f"Absence of IPv{self.family} connectivity is expected without a global address"))
                return False

        tried = []
        for method in self.methods:
            if not ctx.runner.which(method.tool):
                continue
            tried.append(method.via)
            result = ctx.runner.run(method.command(ctx.settings),
                                    timeout=ctx.settings.fast_timeout,
                                    escalate=False)
            if result.succeeded and (result.output.strip() or not method.require_output):
                ctx.emit(self, Outcome(Severity.PASS, f"{self.label} ({method.via})"))
                return True
            logger.debug(f"{self.name}: {method.via} failed")

        if not tried:
            tools = ", ".join(sorted({m.tool for m in self.methods}))
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"Cannot test {self.label}: no suitable tool installed",
                f"Install one of: {tools}"))
            return False

        detail = "\n".join(filter(None, [self.failure_detail, f"Tried: {', '.join(tried)}"]))
        ctx.emit(self, Outcome(self.on_failure, f"{self.label} failed", detail))
        return False


class ConfigPresenceProbe(Probe):
    """
    Report presence of declarative network configuration.

    Counts files matching ``patterns``; with ``setting`` it counts files
    that actively set that key instead. Always INFO guidance. Nested probes
    (e.g. validation) run only when something was found.
    """

    kind = ProbeKind.CONFIG_PRESENCE

    def __init__(self, name: str, patterns: Sequence[str],
                 found_message: str, missing_message: str,
                 setting: Optional[str] = None,
                 found_detail: Optional[str] = None,
                 missing_detail: Optional[str] = None,
                 requires_tool: Optional[str] = None, **kwargs):
        super().__init__(name, **kwargs)
        self.patterns = tuple(patterns)
        self.found_message = found_message
        self.missing_message = missing_message
        self.setting = re.compile(rf'^\s*{setting}\s*=', re.IGNORECASE | re.MULTILINE) if setting else None
        self.found_detail = found_detail
        self.missing_detail = missing_detail
        self.requires_tool = requires_tool

    def _check(self, ctx: ProbeContext) -> bool:
        runner = ctx.runner
        if self.requires_tool and not runner.which(self.requires_tool):
            ctx.emit(self, Outcome(
                Severity.INFO,
                f"{self.requires_tool} not installed, skipping {self.name} checks"))
            return False

        files = sorted({path for pattern in self.patterns for path in runner.glob(pattern)})
        if self.setting is not None:
            files = [path for path in files
                     if self.setting.search(runner.read_text(path) or '')]

        if files:
            detail = "\n".join(filter(None, [self.found_detail, *files]))
            ctx.emit(self, Outcome(
                Severity.INFO, self.found_message.format(count=len(files)), detail))
            return True

        ctx.emit(self, Outcome(Severity.INFO, self.missing_message, self.missing_detail))
        return False
