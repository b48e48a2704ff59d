#!/usr/bin/env python3
"""
BPM Pitch Table CLI Client

A command-line interface for the BPM pitch table. Talks to a running API
server by default; with --local everything is computed in-process.

Usage:
    bpmtable-cli percent 122 123
    bpmtable-cli table --min-bpm 120 --pitch 6
    bpmtable-cli list 125
    bpmtable-cli controls set bpm_min 128
    bpmtable-cli --local table
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional
import requests
from urllib.parse import urlparse

sys.path.insert(0, str(Path(__file__).parent / 'src'))

from controls import TableControls
from grid import Grid, grid_metrics
from percent import compute_percent
from render import render_legend, render_list, render_lookup, render_table


class BpmTableClient:
    """Client for the BPM pitch table API."""

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 5.0):
        if not base_url.startswith(('http://', 'https://')):
            base_url = f"http://{base_url}"

        parsed = urlparse(base_url)
        if not parsed.port:
            base_url = f"{base_url}:8080"

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make a request, exiting with a message on failure."""
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.ConnectionError:
            print(f"Error: Could not connect to BPM table server at {self.base_url}")
            print("Start it with: python src/main.py (or use --local)")
            sys.exit(1)
        except requests.exceptions.Timeout:
            print(f"Error: Request timed out after {self.timeout}s")
            sys.exit(1)
        except requests.exceptions.HTTPError as e:
            if e.response.status_code == 404:
                print(f"Error: API endpoint not found: {endpoint}")
            else:
                try:
                    error_detail = e.response.json().get('detail', str(e))
                    print(f"Error: {error_detail}")
                except ValueError:
                    print(f"Error: HTTP {e.response.status_code}")
            sys.exit(1)

    def get_status(self) -> Dict[str, Any]:
        return self._request('GET', '/status').json()

    def get_percent(self, src: int, dest: int) -> Dict[str, Any]:
        return self._request('GET', '/percent', params={'src': src, 'dest': dest}).json()

    def get_table(self, min_bpm: Optional[int] = None, pitch_max: Optional[float] = None) -> Dict[str, Any]:
        params = {}
        if min_bpm is not None:
            params['min_bpm'] = min_bpm
        if pitch_max is not None:
            params['pitch_max'] = pitch_max
        return self._request('GET', '/table', params=params).json()

    def get_controls(self) -> Dict[str, Any]:
        return self._request('GET', '/controls').json()

    def commit_control(self, field: str, value: str) -> Dict[str, Any]:
        return self._request('POST', '/controls', json={'field': field, 'value': value}).json()

    def select(self, src: int, dest: int) -> Dict[str, Any]:
        return self._request('POST', '/controls/select', json={'src': src, 'dest': dest}).json()

    def reset_controls(self) -> Dict[str, Any]:
        return self._request('POST', '/controls/reset').json()

    def get_config(self, path: Optional[str] = None) -> Dict[str, Any]:
        if path:
            return self._request('GET', f'/config/{path}').json()
        return self._request('GET', '/config').json()

    def set_config(self, path: str, value: Any, apply_immediately: bool = True) -> Dict[str, Any]:
        data = {
            "path": path,
            "value": value,
            "apply_immediately": apply_immediately
        }
        return self._request('POST', '/config', json=data).json()

    def get_mappings(self) -> Dict[str, Any]:
        return self._request('GET', '/config/mappings').json()


def format_value(value: Any) -> str:
    """Format a value for display."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    return str(value)


def parse_value(value_str: str) -> Any:
    """Parse a string value to the appropriate type."""
    try:
        return json.loads(value_str)
    except json.JSONDecodeError:
        return value_str


def print_metrics(metrics) -> None:
    for label, value in metrics:
        print(f"{label:14}: {value}")


def cmd_status(client: BpmTableClient, args: argparse.Namespace) -> None:
    status = client.get_status()

    print("BPM Pitch Table Status")
    print("=" * 25)
    print(f"Status: {status['status']}")
    print(f"Uptime: {status['uptime_seconds']:.1f} seconds")
    print(f"API Version: {status.get('api_version', 'Unknown')}")


def cmd_percent(client: Optional[BpmTableClient], args: argparse.Namespace) -> None:
    """Single-pair lookup."""
    if client is None:
        print(render_lookup(compute_percent(args.src, args.dest)))
        return

    result = client.get_percent(args.src, args.dest)
    if not result.get('available'):
        print("--")
        return
    print(f"{result['value_text_signed']}%  {result['label']}")


def cmd_table(client: Optional[BpmTableClient], args: argparse.Namespace) -> None:
    """Print the full grid."""
    if client is None:
        controls = TableControls()
        if args.min_bpm is not None:
            controls.commit_bpm_min(str(args.min_bpm))
        if args.pitch is not None:
            controls.commit_pitch(str(args.pitch))
        grid = controls.grid
        metrics = grid_metrics(grid, controls.pitch_max)
    else:
        payload = client.get_table(args.min_bpm, args.pitch)
        grid = Grid.from_dict(payload)
        metrics = list(payload.get('metrics', {}).items())

    print_metrics(metrics)
    print(render_legend())
    print()
    print(render_table(grid, grid.default_selection))


def cmd_list(client: Optional[BpmTableClient], args: argparse.Namespace) -> None:
    """Print destinations for one source BPM."""
    if client is None:
        controls = TableControls()
        controls.commit_bpm_min(str(args.min_bpm if args.min_bpm is not None else args.src))
        if args.pitch is not None:
            controls.commit_pitch(str(args.pitch))
        grid = controls.grid
    else:
        grid = Grid.from_dict(client.get_table(args.min_bpm, args.pitch))
    print(render_list(grid, args.src, args.dest))


def cmd_controls_show(client: BpmTableClient, args: argparse.Namespace) -> None:
    controls = client.get_controls()

    print("Table Controls:")
    print("=" * 15)
    for key in ('bpm_min', 'pitch_max', 'source_bpm', 'dest_bpm', 'lookup_value', 'selection_label'):
        print(f"{key:16}: {format_value(controls[key])}")
    print()
    print_metrics(controls.get('metrics', {}).items())


def cmd_controls_set(client: BpmTableClient, args: argparse.Namespace) -> None:
    result = client.commit_control(args.field, args.value)
    controls = result['controls']
    if result['accepted']:
        print(f"✓ {args.field} = {controls[args.field]}")
    else:
        print(f"✗ Could not parse '{args.value}', kept {args.field} = {controls[args.field]}")
        sys.exit(1)


def cmd_controls_select(client: BpmTableClient, args: argparse.Namespace) -> None:
    controls = client.select(args.src, args.dest)
    print(f"{controls['lookup_value']}  {controls['selection_label']}")


def cmd_controls_reset(client: BpmTableClient, args: argparse.Namespace) -> None:
    if not args.confirm:
        response = input("Reset the table controls to the configured values? (y/N): ")
        if response.lower() not in ('y', 'yes'):
            print("Reset cancelled")
            return

    result = client.reset_controls()
    print(f"✓ {result['message']}")


def cmd_config_get(client: BpmTableClient, args: argparse.Namespace) -> None:
    config = client.get_config(args.path)

    if args.path:
        if config.get('exists', True):
            print(f"{args.path}: {format_value(config['value'])}")
        else:
            print(f"Configuration path '{args.path}' not found")
            sys.exit(1)
    else:
        print("Complete Configuration:")
        print("=" * 25)
        print(json.dumps(config, indent=2))


def cmd_config_set(client: BpmTableClient, args: argparse.Namespace) -> None:
    value = parse_value(args.value)

    result = client.set_config(args.path, value, not args.no_apply)

    if result['success']:
        print(f"✓ {result['message']}")
        if result.get('old_value') is not None:
            print(f"  Old value: {format_value(result['old_value'])}")
        print(f"  New value: {format_value(result['new_value'])}")
    else:
        print("✗ Failed to update configuration")
        sys.exit(1)


def cmd_config_list(client: BpmTableClient, args: argparse.Namespace) -> None:
    mappings = client.get_mappings()

    print("Available Configuration Paths:")
    print("=" * 35)

    categories = {}
    for path, info in mappings.items():
        categories.setdefault(path.split('.')[0], []).append((path, info))

    for category, paths in sorted(categories.items()):
        print(f"\n{category.upper()}:")
        for path, info in sorted(paths):
            type_info = info.get('type', 'unknown')
            desc = info.get('description', '')
            if desc:
                print(f"  {path:30} ({type_info}) - {desc}")
            else:
                print(f"  {path:30} ({type_info})")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="BPM Pitch Table CLI Client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s percent 122 123                     # +0.82%%
  %(prog)s table --min-bpm 120 --pitch 6       # Full 21x21 grid
  %(prog)s list 125                            # Destinations from 125 BPM
  %(prog)s controls set pitch_max 4.5          # Change the pitch ceiling
  %(prog)s config get table.min_bpm
  %(prog)s --local table                       # No server needed
        """
    )

    parser.add_argument(
        '--url', '-u',
        default='http://localhost:8080',
        help='API server URL (default: http://localhost:8080)'
    )

    parser.add_argument(
        '--timeout', '-t',
        type=float,
        default=5.0,
        help='Request timeout in seconds (default: 5.0)'
    )

    parser.add_argument(
        '--local', '-l',
        action='store_true',
        help='Compute in-process instead of calling the server'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('status', help='Show server status')

    percent_parser = subparsers.add_parser('percent', help='Pitch change between two BPM values')
    percent_parser.add_argument('src', type=int, help='Source BPM')
    percent_parser.add_argument('dest', type=int, help='Destination BPM')

    table_parser = subparsers.add_parser('table', help='Show the full pitch table')
    table_parser.add_argument('--min-bpm', '-m', type=int, default=None, help='First BPM of the window')
    table_parser.add_argument('--pitch', '-p', type=float, default=None, help='Pitch ceiling in percent')

    list_parser = subparsers.add_parser('list', help='List destinations for a source BPM')
    list_parser.add_argument('src', type=int, help='Source BPM')
    list_parser.add_argument('--dest', '-d', type=int, default=None, help='Destination to highlight')
    list_parser.add_argument('--min-bpm', '-m', type=int, default=None, help='First BPM of the window')
    list_parser.add_argument('--pitch', '-p', type=float, default=None, help='Pitch ceiling in percent')

    controls_parser = subparsers.add_parser('controls', help='Table controls on the server')
    controls_subparsers = controls_parser.add_subparsers(dest='controls_action')

    controls_subparsers.add_parser('show', help='Show current controls')

    controls_set = controls_subparsers.add_parser('set', help='Commit text into a control field')
    controls_set.add_argument('field', choices=['bpm_min', 'pitch_max', 'source_bpm', 'dest_bpm'])
    controls_set.add_argument('value', help='Field text')

    controls_select = controls_subparsers.add_parser('select', help='Select a source/destination pair')
    controls_select.add_argument('src', type=int)
    controls_select.add_argument('dest', type=int)

    controls_reset = controls_subparsers.add_parser('reset', help='Reset controls to configured values')
    controls_reset.add_argument('--confirm', '-y', action='store_true', help='Skip confirmation')

    config_parser = subparsers.add_parser('config', help='Configuration management')
    config_subparsers = config_parser.add_subparsers(dest='config_action')

    config_get = config_subparsers.add_parser('get', help='Get configuration value')
    config_get.add_argument('path', nargs='?', help='Configuration path (omit for full config)')

    config_set = config_subparsers.add_parser('set', help='Set configuration value')
    config_set.add_argument('path', help='Configuration path')
    config_set.add_argument('value', help='New value (JSON format)')
    config_set.add_argument('--no-apply', action='store_true', help='Don\'t apply to the running table')

    config_subparsers.add_parser('list', help='List available configuration paths')

    return parser


LOCAL_COMMANDS = {
    'percent': cmd_percent,
    'table': cmd_table,
    'list': cmd_list,
}


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.local:
        if args.command not in LOCAL_COMMANDS:
            print(f"Command '{args.command}' needs a server; local mode supports: "
                  f"{', '.join(LOCAL_COMMANDS)}")
            sys.exit(1)
        LOCAL_COMMANDS[args.command](None, args)
        return

    client = BpmTableClient(args.url, args.timeout)

    try:
        if args.command == 'status':
            cmd_status(client, args)

        elif args.command in LOCAL_COMMANDS:
            LOCAL_COMMANDS[args.command](client, args)

        elif args.command == 'controls':
            if args.controls_action == 'show':
                cmd_controls_show(client, args)
            elif args.controls_action == 'set':
                cmd_controls_set(client, args)
            elif args.controls_action == 'select':
                cmd_controls_select(client, args)
            elif args.controls_action == 'reset':
                cmd_controls_reset(client, args)
            else:
                parser.parse_args(['controls', '--help'])

        elif args.command == 'config':
            if args.config_action == 'get':
                cmd_config_get(client, args)
            elif args.config_action == 'set':
                cmd_config_set(client, args)
            elif args.config_action == 'list':
                cmd_config_list(client, args)
            else:
                parser.parse_args(['config', '--help'])

        else:
            parser.print_help()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nOperation cancelled")
        sys.exit(1)


if __name__ == '__main__':
    main()
