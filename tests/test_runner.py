"""
Tests for the privileged command runner.

Run: python3 -m pytest tests/test_runner.py -v
"""

import subprocess
from unittest.mock import patch, MagicMock

import pytest

from src.nethealth.models import CommandResult
from src.nethealth.runner import CommandRunner, check_root


def completed(returncode=0, stdout=''):
    return MagicMock(returncode=returncode, stdout=stdout)


class TestCheckRoot:
    """Tests for check_root function."""

    def test_root_when_euid_zero(self):
        """Test returns True when effective UID is 0."""
        with patch('os.geteuid', return_value=0):
            assert check_root() is True

    def test_not_root_when_euid_nonzero(self):
        """Test returns False when effective UID is not 0."""
        with patch('os.geteuid', return_value=1000):
            assert check_root() is False


class TestRun:
    """Tests for CommandRunner.run."""

    def test_success_while_privileged_never_escalates(self):
        """Test a passing command as root makes exactly one attempt."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0, 'active\n')

            result = runner.run(['systemctl', 'is-active', 'systemd-networkd'])

        assert result == CommandResult(True, 'active\n')
        assert mock_run.call_count == 1
        assert runner.escalations == 0

    def test_success_unprivileged_never_escalates(self):
        """Test a passing command without root does not retry."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0, 'ok')

            result = runner.run(['ip', 'route', 'show', 'default'])

        assert result.succeeded is True
        assert mock_run.call_count == 1
        assert runner.escalations == 0

    def test_failure_then_elevated_success(self):
        """Test the elevated output is returned after one escalation."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.side_effect = [
                completed(1, 'partial'),
                completed(0, 'elevated output'),
            ]

            result = runner.run(['journalctl', '-u', 'systemd-networkd'])

        assert result == CommandResult(True, 'elevated output')
        assert runner.escalations == 1
        second_argv = mock_run.call_args_list[1][0][0]
        assert second_argv == ['sudo', '-n', 'journalctl', '-u', 'systemd-networkd']

    def test_failure_while_privileged_does_not_retry(self):
        """Test root never escalates, even on failure."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(3, 'inactive')

            result = runner.run(['systemctl', 'is-active', 'foo'])

        assert result == CommandResult(False, '')
        assert mock_run.call_count == 1
        assert runner.escalations == 0

    def test_both_attempts_fail(self):
        """Test a double failure gives an empty failed result."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(1, 'noise')

            result = runner.run(['netplan', 'generate'])

        assert result == CommandResult(False, '')
        assert mock_run.call_count == 2
        assert runner.escalations == 1

    def test_timeout_triggers_single_retry(self):
        """Test a timeout counts as failure and is retried with the same timeout."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.side_effect = [
                subprocess.TimeoutExpired(cmd='journalctl', timeout=7),
                subprocess.TimeoutExpired(cmd='sudo', timeout=7),
            ]

            result = runner.run(['journalctl'], timeout=7)

        assert result.succeeded is False
        assert mock_run.call_count == 2
        for call in mock_run.call_args_list:
            assert call.kwargs['timeout'] == 7

    def test_default_timeout(self):
        """Test the runner default timeout applies when none is given."""
        runner = CommandRunner(default_timeout=10, privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0)
            runner.run(['true'])

        assert mock_run.call_args.kwargs['timeout'] == 10

    def test_stderr_is_discarded(self):
        """Test stderr goes to DEVNULL and stdout is captured."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0)
            runner.run(['true'])

        kwargs = mock_run.call_args.kwargs
        assert kwargs['stderr'] == subprocess.DEVNULL
        assert kwargs['stdout'] == subprocess.PIPE
        assert 'shell' not in kwargs

    def test_missing_executable(self):
        """Test a missing tool is a failed result, not an exception."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.side_effect = FileNotFoundError('nc')

            result = runner.run(['nc', '-z', 'host', '53'])

        assert result == CommandResult(False, '')

    def test_escalate_false_skips_retry(self):
        """Test callers can opt out of the privileged retry."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(1)

            result = runner.run(['curl', 'http://8.8.8.8'], escalate=False)

        assert result.succeeded is False
        assert mock_run.call_count == 1
        assert runner.escalations == 0

    def test_empty_escalation_disables_retry(self):
        """Test an empty escalation prefix never retries."""
        runner = CommandRunner(privileged=False, escalation=())
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(1)
            runner.run(['journalctl'])

        assert mock_run.call_count == 1

    def test_elevated_runs_escalated_only(self):
        """Test elevated=True skips the unprivileged attempt."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0, 'log')

            result = runner.run(['journalctl', '-u', 'x'], elevated=True)

        assert result.output == 'log'
        assert mock_run.call_count == 1
        assert mock_run.call_args[0][0][:2] == ['sudo', '-n']
        assert runner.escalations == 1

    def test_elevated_when_privileged_runs_plain(self):
        """Test elevated=True as root runs the command unchanged."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0)
            runner.run(['journalctl'], elevated=True)

        assert mock_run.call_args[0][0] == ['journalctl']

    def test_string_command_is_split(self):
        """Test string commands are split with shell quoting rules."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0)
            runner.run("journalctl --since '1 hour ago'")

        assert mock_run.call_args[0][0] == ['journalctl', '--since', '1 hour ago']

    def test_unparsable_string_command(self):
        """Test unbalanced quoting is a failed result, not an exception."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            result = runner.run('echo "unterminated')

        assert result == CommandResult(False, '')
        mock_run.assert_not_called()
        assert runner.escalations == 0

    def test_empty_command(self):
        """Test an empty command fails without running anything."""
        runner = CommandRunner(privileged=True)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            assert runner.run('').succeeded is False
        mock_run.assert_not_called()


class TestCanEscalate:
    """Tests for CommandRunner.can_escalate."""

    def test_privileged(self):
        """Test root can always escalate."""
        assert CommandRunner(privileged=True).can_escalate() is True

    def test_result_is_cached(self):
        """Test the sudo check runs once per runner."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(0)

            assert runner.can_escalate() is True
            assert runner.can_escalate() is True

        assert mock_run.call_count == 1
        assert mock_run.call_args[0][0] == ['sudo', '-n', 'true']

    def test_password_required(self):
        """Test a failing sudo -n means no escalation."""
        runner = CommandRunner(privileged=False)
        with patch('src.nethealth.runner.subprocess.run') as mock_run:
            mock_run.return_value = completed(1)
            assert runner.can_escalate() is False

    def test_disabled(self):
        """Test an empty prefix never escalates."""
        assert CommandRunner(privileged=False, escalation=()).can_escalate() is False


class TestHostState:
    """Tests for filesystem helpers."""

    def test_read_text(self, tmp_path):
        """Test reading an existing state file."""
        carrier = tmp_path / 'carrier'
        carrier.write_text('1\n')
        assert CommandRunner().read_text(str(carrier)) == '1\n'

    def test_read_missing(self, tmp_path):
        """Test a missing file reads as None."""
        assert CommandRunner().read_text(str(tmp_path / 'nope')) is None

    def test_symlink(self, tmp_path):
        """Test symlink helpers."""
        target = tmp_path / 'stub-resolv.conf'
        target.write_text('nameserver 127.0.0.53\n')
        link = tmp_path / 'resolv.conf'
        link.symlink_to(target)

        runner = CommandRunner()
        assert runner.exists(str(link)) is True
        assert runner.is_symlink(str(link)) is True
        assert runner.readlink(str(link)) == str(target)
        assert runner.readlink(str(target)) is None

    def test_glob_sorted(self, tmp_path):
        """Test glob returns sorted matches."""
        (tmp_path / 'b.yaml').write_text('')
        (tmp_path / 'a.yaml').write_text('')
        (tmp_path / 'c.txt').write_text('')

        matches = CommandRunner().glob(str(tmp_path / '*.yaml'))
        assert [p.rsplit('/', 1)[1] for p in matches] == ['a.yaml', 'b.yaml']

    @pytest.mark.parametrize('tool,expected', [('sh', True), ('definitely-not-a-tool-xyz', False)])
    def test_which(self, tool, expected):
        """Test executable lookup."""
        assert (CommandRunner().which(tool) is not None) is expected


class TestRunnerInterface:
    """Tests that the scripted test runner mirrors CommandRunner."""

    SCRIPTING = {'script', 'install', 'commands'}

    @staticmethod
    def public_methods(cls):
        return {name for name in dir(cls)
                if not name.startswith('_') and callable(getattr(cls, name))}

    def test_same_host_methods(self):
        """Test both runners expose the same host-facing methods."""
        from conftest import FakeRunner

        fake = self.public_methods(FakeRunner) - self.SCRIPTING
        assert fake == self.public_methods(CommandRunner)
