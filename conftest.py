"""
Shared pytest fixtures.

FakeRunner stands in for CommandRunner so probes can be exercised without
touching the host: commands, tools and files are scripted per test.
"""

import io

import pytest

from src.nethealth.config import Settings
from src.nethealth.console import build_console
from src.nethealth.ledger import StatusLedger
from src.nethealth.models import CommandResult
from src.nethealth.probes import ProbeContext


class FakeRunner:
    """Scripted runner: unknown commands fail, unknown files are missing."""

    def __init__(self, privileged=False, escalation=('sudo', '-n'), escalate_ok=True):
        self.privileged = privileged
        self.escalation = tuple(escalation)
        self.escalate_ok = escalate_ok
        self.escalations = 0
        self.responses = {}
        self.tools = set()
        self.files = {}
        self.symlinks = {}
        self.globs = {}
        self.calls = []

    # Scripting helpers
    def script(self, command, output='', succeeded=True):
        self.responses[command] = CommandResult(succeeded, output if succeeded else '')
        tool = command.split()[0]
        self.tools.add(tool)
        return self

    def install(self, *tools):
        self.tools.update(tools)
        return self

    # CommandRunner interface
    def run(self, command, timeout=None, escalate=True, elevated=False):
        key = command if isinstance(command, str) else ' '.join(command)
        self.calls.append((key, timeout, escalate, elevated))
        return self.responses.get(key, CommandResult(False, ''))

    def can_escalate(self):
        return self.privileged or (bool(self.escalation) and self.escalate_ok)

    def which(self, tool):
        return f'/usr/bin/{tool}' if tool in self.tools else None

    def read_text(self, path):
        return self.files.get(path)

    def exists(self, path):
        return path in self.files or path in self.symlinks

    def is_symlink(self, path):
        return path in self.symlinks

    def readlink(self, path):
        return self.symlinks.get(path)

    def glob(self, pattern):
        return sorted(self.globs.get(pattern, []))

    def commands(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def ledger():
    return StatusLedger()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def ctx(fake_runner, ledger, settings):
    return ProbeContext(fake_runner, ledger, settings)


@pytest.fixture
def console_buffer():
    """A plain-text console writing to a StringIO; returns (console, buffer)."""
    buffer = io.StringIO()
    return build_console(file=buffer, no_color=True, width=200), buffer
