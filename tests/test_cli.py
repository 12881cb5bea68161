"""
Tests for the command-line entry point.

Run: python3 -m pytest tests/test_cli.py -v
"""

import json
from unittest.mock import patch

import pytest

from src.nethealth import cli
from src.nethealth.models import LedgerSnapshot


@pytest.fixture
def quiet_main(console_buffer):
    """Patch global side effects of main(); yields the output buffer."""
    console, buffer = console_buffer
    with patch('src.nethealth.cli.setup_logging'), \
            patch('src.nethealth.cli.get_console', return_value=console), \
            patch('src.nethealth.cli.distro.name', return_value='Ubuntu 24.04'):
        yield buffer


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test no flags."""
        args = cli.parse_args([])
        assert args.verbose is False
        assert args.debug is False
        assert args.show_config is False

    def test_verbose(self):
        """Test short and long verbose flags."""
        assert cli.parse_args(['-v']).verbose is True
        assert cli.parse_args(['--verbose']).verbose is True

    def test_help_exits_zero(self, capsys):
        """Test -h prints usage and exits 0."""
        with pytest.raises(SystemExit) as exc:
            cli.parse_args(['-h'])
        assert exc.value.code == 0
        assert 'network-healthcheck' in capsys.readouterr().out

    def test_unknown_flag_exits_one(self, capsys):
        """Test an unrecognized flag prints usage and exits 1."""
        with pytest.raises(SystemExit) as exc:
            cli.parse_args(['--bogus'])
        assert exc.value.code == 1
        err = capsys.readouterr().err
        assert 'usage:' in err
        assert '--bogus' in err


class TestMain:
    """Tests for main()."""

    def test_help_runs_no_probes(self, quiet_main):
        """Test -h exits before any probe runs."""
        with patch('src.nethealth.cli.Orchestrator') as mock_orch:
            with pytest.raises(SystemExit) as exc:
                cli.main(['--help'])
        assert exc.value.code == 0
        mock_orch.assert_not_called()

    def test_exit_code_from_snapshot(self, quiet_main):
        """Test main returns 1 when the run recorded errors."""
        with patch('src.nethealth.cli.Orchestrator') as mock_orch:
            mock_orch.return_value.run.return_value = LedgerSnapshot(errors=1, checks=3, passed=2)
            code = cli.main([])

        assert code == 1
        output = quiet_main.getvalue()
        assert "Ubuntu 24.04 Network Health Check" in output
        assert "Common fixes:" in output

    def test_healthy_run(self, quiet_main):
        """Test a clean run returns 0."""
        with patch('src.nethealth.cli.Orchestrator') as mock_orch:
            mock_orch.return_value.run.return_value = LedgerSnapshot(checks=2, passed=2)
            assert cli.main(['--verbose']) == 0

    def test_show_config(self, quiet_main):
        """Test --show-config prints settings and skips the run."""
        with patch('src.nethealth.cli.Orchestrator') as mock_orch, \
                patch('src.nethealth.cli.show_config_summary') as mock_show:
            assert cli.main(['--show-config']) == 0
        mock_show.assert_called_once()
        mock_orch.assert_not_called()


class TestHostLabel:
    """Tests for host_label."""

    def test_pretty_name(self):
        """Test the distro pretty name is used."""
        with patch('src.nethealth.cli.distro.name', return_value='Debian GNU/Linux 12'):
            assert cli.host_label() == 'Debian GNU/Linux 12'

    def test_fallback(self):
        """Test an unknown distro falls back to Linux."""
        with patch('src.nethealth.cli.distro.name', return_value=''):
            assert cli.host_label() == 'Linux'


class TestJsonOutput:
    """Tests for --json."""

    def test_json_document(self, quiet_main, capsys):
        """Test --json prints one parseable document and no banner."""
        with patch('src.nethealth.cli.Orchestrator') as mock_orch:
            mock_orch.return_value.run.return_value = LedgerSnapshot(warnings=1, checks=1)
            code = cli.main(['--json'])

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data['host'] == 'Ubuntu 24.04'
        assert data['verdict'] == 'pass_with_warnings'
        assert data['summary']['warnings'] == 1
        assert quiet_main.getvalue() == ''
