#!/usr/bin/env python3
"""chainrun CLI entrypoint."""

import sys
import argparse
from pathlib import Path

from chainrun.lib.config import load_runner_config
from chainrun.lib.errors import ChainError
from chainrun.lib.logging_setup import configure_logging
from chainrun.lib.tools_config import load_tool_config
from chainrun.lib.validate import ValidationError
from chainrun.commands import run as cmd_run_module
from chainrun.commands import status as cmd_status_module
from chainrun.commands import reset as cmd_reset_module


def load_settings(args):
    """Load runner config and tool config, applying CLI overrides."""
    config_path = Path(args.config) if args.config else None
    config = load_runner_config(config_path)

    if args.tasks_dir:
        config.tasks_dir = Path(args.tasks_dir).resolve()
    if args.logs_dir:
        config.logs_dir = Path(args.logs_dir).resolve()
        if not args.config:
            config.status_file = config.logs_dir / "task-status.json"

    tool = load_tool_config(config.base_dir)
    return config, tool


def cmd_run(args, config, tool):
    return cmd_run_module.cmd_run(args, config, tool)


def cmd_status(args, config, tool):
    return cmd_status_module.cmd_status(args, config, tool)


def cmd_reset(args, config, tool):
    return cmd_reset_module.cmd_reset(args, config, tool)


def cmd_clear_blocked(args, config, tool):
    return cmd_reset_module.cmd_clear_blocked(args, config, tool)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chainrun',
        description='Run numbered task files through a CLI agent, one section at a time',
        epilog=(
            'Tasks have dependencies and must complete successfully in order. '
            'If a task fails, later tasks are blocked until the issue is fixed '
            'and clear-blocked is run.'
        ),
    )
    parser.add_argument('--config', '-c', help='Path to chainrun.env (default: ./chainrun.env)')
    parser.add_argument('--tasks-dir', help='Directory of numbered task files')
    parser.add_argument('--logs-dir', help='Directory for logs and status')
    parser.add_argument('--no-checkpoint', action='store_true', help='Disable git checkpoints')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug output on the console')
    parser.set_defaults(func=cmd_run)
    subparsers = parser.add_subparsers(dest='command')

    # chainrun run
    p_run = subparsers.add_parser('run', help='Process all tasks (default)')
    p_run.set_defaults(func=cmd_run)

    # chainrun status
    p_status = subparsers.add_parser('status', help='Show current processing status')
    p_status.set_defaults(func=cmd_status)

    # chainrun reset
    p_reset = subparsers.add_parser('reset', help='Reset processing status completely')
    p_reset.set_defaults(func=cmd_reset)

    # chainrun clear-blocked
    p_clear = subparsers.add_parser('clear-blocked', help='Clear blocked status and allow resuming')
    p_clear.set_defaults(func=cmd_clear_blocked)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config, tool = load_settings(args)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.logs_dir, verbose=args.verbose)

    try:
        return args.func(args, config, tool)
    except ChainError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
