"""
Privileged Command Runner

The only component that touches the host. Probes ask it to run read-only
diagnostic tools and to read kernel/config state; it answers with plain
values and never raises.

Usage:
    from nethealth.runner import CommandRunner

    runner = CommandRunner()
    result = runner.run(['systemctl', 'is-active', 'systemd-networkd'], timeout=5)
    if result.succeeded:
        ...

Escalation policy:
    A command that fails or times out while the process is unprivileged is
    retried exactly once under the escalation prefix (``sudo -n`` by
    default) with the same timeout. A privileged process never escalates.
"""

import glob as globmod
import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .models import CommandResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
DEFAULT_ESCALATION = ('sudo', '-n')

Command = Union[str, Sequence[str]]


def check_root() -> bool:
    """Check if running with root privileges"""
    return os.geteuid() == 0


class CommandRunner:
    """
    Runs commands with a timeout and a single privileged retry.

    Attributes:
        default_timeout: Seconds allowed per attempt when the caller gives none
        escalation: Argv prefix used for the privileged retry; empty disables it
        escalations: Number of privileged retries attempted so far
    """

    def __init__(self,
                 default_timeout: int = DEFAULT_TIMEOUT,
                 escalation: Sequence[str] = DEFAULT_ESCALATION,
                 privileged: Optional[bool] = None):
        self.default_timeout = default_timeout
        self.escalation = tuple(escalation)
        self._privileged = privileged
        self._can_escalate: Optional[bool] = None
        self.escalations = 0

    @property
    def privileged(self) -> bool:
        """True if the process already holds root privileges."""
        if self._privileged is None:
            self._privileged = check_root()
        return self._privileged

    # === Command Execution ===

    def run(self, command: Command, timeout: Optional[int] = None,
            escalate: bool = True, elevated: bool = False) -> CommandResult:
        """
        Run a command, retrying once with elevated privileges on failure.

        Args:
            command: Argv list, or a string split with shell quoting rules
            timeout: Seconds per attempt (defaults to default_timeout)
            escalate: Allow the privileged retry for this call
            elevated: Skip the unprivileged attempt and run escalated directly

        Returns:
            CommandResult with stdout text if either attempt exited 0
        """
        try:
            argv = self._to_argv(command)
        except ValueError as e:
            logger.debug(f"Cannot parse command {command!r}: {e}")
            return CommandResult(False, "")
        if not argv:
            return CommandResult(False, "")
        if timeout is None:
            timeout = self.default_timeout

        if elevated and not self.privileged and self.escalation:
            self.escalations += 1
            result = self._execute(list(self.escalation) + argv, timeout)
            return result if result.succeeded else CommandResult(False, "")

        result = self._execute(argv, timeout)
        if result.succeeded:
            return result

        if not escalate or self.privileged or not self.escalation:
            return CommandResult(False, "")

        self.escalations += 1
        logger.debug(f"Retrying with escalation: {' '.join(argv)}")
        result = self._execute(list(self.escalation) + argv, timeout)
        if result.succeeded:
            return result
        return CommandResult(False, "")

    def _execute(self, argv: List[str], timeout: int) -> CommandResult:
        """Single attempt. Stderr is discarded."""
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Timed out after {timeout}s: {' '.join(argv)}")
            return CommandResult(False, "")
        except (FileNotFoundError, PermissionError):
            logger.debug(f"Not executable: {argv[0]}")
            return CommandResult(False, "")
        except OSError as e:
            logger.debug(f"Failed to run {argv[0]}: {e}")
            return CommandResult(False, "")

        logger.debug(f"exit={proc.returncode}: {' '.join(argv)}")
        if proc.returncode == 0:
            return CommandResult(True, proc.stdout or "")
        return CommandResult(False, "")

    def can_escalate(self) -> bool:
        """True if privileged commands can run without a password prompt."""
        if self.privileged:
            return True
        if not self.escalation:
            return False
        if self._can_escalate is None:
            probe = self._execute(list(self.escalation) + ['true'], self.default_timeout)
            self._can_escalate = probe.succeeded
            logger.debug(f"Escalation available: {self._can_escalate}")
        return self._can_escalate

    @staticmethod
    def _to_argv(command: Command) -> List[str]:
        if isinstance(command, str):
            return shlex.split(command)
        return [str(part) for part in command]

    # === Host State ===

    def which(self, tool: str) -> Optional[str]:
        """Return the path of an executable on PATH, or None."""
        return shutil.which(tool)

    def read_text(self, path: str) -> Optional[str]:
        """Read a small state file, None if missing or unreadable."""
        try:
            return Path(path).read_text()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Cannot read {path}: {e}")
            return None

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def is_symlink(self, path: str) -> bool:
        return os.path.islink(path)

    def readlink(self, path: str) -> Optional[str]:
        try:
            return os.readlink(path)
        except OSError:
            return None

    def glob(self, pattern: str) -> List[str]:
        """Sorted matches for a glob pattern (``**`` recurses)."""
        return sorted(globmod.glob(pattern, recursive=True))
