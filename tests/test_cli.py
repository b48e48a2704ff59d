"""
Tests for the BPM Pitch Table CLI Client

Tests command parsing, the HTTP client wrapper and the command handlers.
"""

import pytest
import subprocess
import sys
from pathlib import Path
from unittest.mock import Mock, patch
import argparse
import importlib.util

import requests

from grid import build_grid, grid_metrics

CLI_PATH = Path(__file__).parent.parent / "bpmtable-cli.py"

spec = importlib.util.spec_from_file_location("bpmtable_cli", CLI_PATH)
bpmtable_cli = importlib.util.module_from_spec(spec)
spec.loader.exec_module(bpmtable_cli)

BpmTableClient = bpmtable_cli.BpmTableClient
parse_value = bpmtable_cli.parse_value
format_value = bpmtable_cli.format_value
create_parser = bpmtable_cli.create_parser


class TestBpmTableClient:
    """Test the HTTP client wrapper."""

    def test_client_initialization(self):
        client = BpmTableClient()
        assert client.base_url == "http://localhost:8080"

        client = BpmTableClient("localhost:9090")
        assert client.base_url == "http://localhost:9090"

        client = BpmTableClient("http://192.168.1.100:8080/")
        assert client.base_url == "http://192.168.1.100:8080"

        client = BpmTableClient("http://localhost")
        assert client.base_url == "http://localhost:8080"

    def test_request_passes_timeout(self):
        client = BpmTableClient(timeout=2.5)
        response = Mock()
        response.json.return_value = {"available": True}
        with patch.object(client.session, 'request', return_value=response) as request:
            assert client.get_percent(122, 123) == {"available": True}
            request.assert_called_once_with(
                'GET', 'http://localhost:8080/percent',
                params={'src': 122, 'dest': 123}, timeout=2.5
            )

    def test_connection_error_exits(self, capsys):
        client = BpmTableClient()
        with patch.object(client.session, 'request',
                          side_effect=requests.exceptions.ConnectionError()):
            with pytest.raises(SystemExit) as exc:
                client.get_status()
        assert exc.value.code == 1
        assert "Could not connect" in capsys.readouterr().out


class TestValueParsing:

    def test_parse_value(self):
        assert parse_value("123") == 123
        assert parse_value("4.5") == 4.5
        assert parse_value("true") is True
        assert parse_value('"hello"') == "hello"
        assert parse_value("hello") == "hello"

    def test_format_value(self):
        assert format_value(123) == "123"
        assert '"key"' in format_value({"key": "value"})


class TestArgumentParsing:

    def setup_method(self):
        self.parser = create_parser()

    def test_globals(self):
        args = self.parser.parse_args(['status'])
        assert args.url == 'http://localhost:8080'
        assert args.timeout == 5.0
        assert args.local is False

        args = self.parser.parse_args(['-u', 'localhost:9090', '-t', '2', '--local', 'table'])
        assert args.url == 'localhost:9090'
        assert args.timeout == 2.0
        assert args.local is True

    def test_percent(self):
        args = self.parser.parse_args(['percent', '122', '123'])
        assert args.command == 'percent'
        assert (args.src, args.dest) == (122, 123)

    def test_table(self):
        args = self.parser.parse_args(['table'])
        assert args.min_bpm is None
        assert args.pitch is None

        args = self.parser.parse_args(['table', '-m', '100', '-p', '4.5'])
        assert args.min_bpm == 100
        assert args.pitch == 4.5

    def test_list(self):
        args = self.parser.parse_args(['list', '125', '--dest', '126'])
        assert args.src == 125
        assert args.dest == 126

    def test_controls(self):
        args = self.parser.parse_args(['controls', 'set', 'bpm_min', '128'])
        assert args.controls_action == 'set'
        assert args.field == 'bpm_min'
        assert args.value == '128'

        args = self.parser.parse_args(['controls', 'select', '125', '126'])
        assert (args.src, args.dest) == (125, 126)

        args = self.parser.parse_args(['controls', 'reset', '-y'])
        assert args.confirm is True

        with pytest.raises(SystemExit):
            self.parser.parse_args(['controls', 'set', 'tempo', '1'])

    def test_config(self):
        args = self.parser.parse_args(['config', 'set', 'table.min_bpm', '128', '--no-apply'])
        assert args.config_action == 'set'
        assert args.no_apply is True

        args = self.parser.parse_args(['config', 'get'])
        assert args.path is None


class TestCommands:
    """Command handlers in local and remote mode."""

    def test_percent_local(self, capsys):
        args = argparse.Namespace(src=122, dest=123)
        bpmtable_cli.cmd_percent(None, args)
        assert capsys.readouterr().out.strip() == "+0.82%  122 -> 123 = +0.82%"

    def test_percent_local_unavailable(self, capsys):
        bpmtable_cli.cmd_percent(None, argparse.Namespace(src=0, dest=123))
        assert capsys.readouterr().out.strip() == "--"

    def test_percent_remote(self, capsys):
        client = Mock()
        client.get_percent.return_value = {
            "available": True,
            "value_text_signed": "+0.80",
            "label": "125 -> 126 = +0.80%",
        }
        bpmtable_cli.cmd_percent(client, argparse.Namespace(src=125, dest=126))
        assert capsys.readouterr().out.strip() == "+0.80%  125 -> 126 = +0.80%"

        client.get_percent.return_value = {"available": False}
        bpmtable_cli.cmd_percent(client, argparse.Namespace(src=0, dest=126))
        assert capsys.readouterr().out.strip() == "--"

    def test_table_local(self, capsys):
        bpmtable_cli.cmd_table(None, argparse.Namespace(min_bpm=100, pitch=3.0))
        out = capsys.readouterr().out
        assert "21 x 21" in out
        assert "100 - 120 BPM" in out
        assert "3.0%" in out

    def test_table_remote(self, capsys):
        grid = build_grid(120, 6)
        payload = grid.to_dict()
        payload["metrics"] = dict(grid_metrics(grid, 6))

        client = Mock()
        client.get_table.return_value = payload
        bpmtable_cli.cmd_table(client, argparse.Namespace(min_bpm=None, pitch=None))

        client.get_table.assert_called_once_with(None, None)
        out = capsys.readouterr().out
        assert "120 - 140 BPM" in out
        assert "[0.83:]" in out   # default selection highlighted

    def test_list_local(self, capsys):
        bpmtable_cli.cmd_list(None, argparse.Namespace(src=125, dest=126, min_bpm=None, pitch=None))
        out = capsys.readouterr().out
        assert "> 126 BPM  +0.80%" in out

    def test_controls_set_rejected(self, capsys):
        client = Mock()
        client.commit_control.return_value = {
            "accepted": False,
            "controls": {"pitch_max": 6.0},
        }
        with pytest.raises(SystemExit):
            bpmtable_cli.cmd_controls_set(client, argparse.Namespace(field='pitch_max', value='abc'))
        assert "kept pitch_max = 6.0" in capsys.readouterr().out

    def test_controls_set_accepted(self, capsys):
        client = Mock()
        client.commit_control.return_value = {
            "accepted": True,
            "controls": {"bpm_min": 128},
        }
        bpmtable_cli.cmd_controls_set(client, argparse.Namespace(field='bpm_min', value='128'))
        assert "bpm_min = 128" in capsys.readouterr().out


@pytest.mark.integration
class TestCLIExecution:
    """Run the CLI script in a subprocess."""

    def run_cli(self, *argv):
        return subprocess.run(
            [sys.executable, str(CLI_PATH), *argv],
            capture_output=True,
            text=True,
        )

    def test_help_output(self):
        result = self.run_cli('--help')
        assert result.returncode == 0
        assert 'BPM Pitch Table CLI Client' in result.stdout

    def test_local_percent(self):
        result = self.run_cli('--local', 'percent', '122', '123')
        assert result.returncode == 0
        assert '+0.82%' in result.stdout

    def test_local_rejects_server_commands(self):
        result = self.run_cli('--local', 'status')
        assert result.returncode == 1

    def test_connection_error(self):
        result = self.run_cli('--url', 'http://127.0.0.1:1', 'status')
        assert result.returncode == 1
        assert 'Could not connect' in result.stdout


if __name__ == "__main__":
    pytest.main([__file__])
