#!/usr/bin/env python3
"""
gametracker - command line over the game record service.
Lists, creates, updates and removes games and prints the two reports.
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from colorama import init, Fore

from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import ConfigError, GameRecordError
from .models import VALID_STATUSES
from .stores import build_game_service, open_stores

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the ``gametracker`` package logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    logger = logging.getLogger('gametracker')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, default=str, ensure_ascii=False))


def _game_fields(args, names: List[str]) -> Dict:
    """Collect the game fields given on the command line, skipping unset ones."""
    mapping = {
        'name': 'nome',
        'description': 'description',
        'image': 'image',
        'user': 'userId',
        'status': 'status',
        'updated_by': 'updatedBy',
    }
    fields = {}
    for name in names:
        value = getattr(args, name, None)
        if value is not None:
            fields[mapping[name]] = value
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gametracker',
        description='gametracker - manage game records owned by users',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gametracker list --user 42 --status Progresso
  gametracker recent
  gametracker stats 42
  gametracker create --name Celeste --description Climbing --image celeste.png --user 42
        """
    )
    parser.add_argument(
        '--config', '-c',
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to config file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--log-level',
        help='Log level (DEBUG, INFO, WARNING, ERROR); overrides the config'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('list', help='List games, optionally for one user')
    p.add_argument('--user', help='Only games owned by this user id')
    p.add_argument('--status', help='With --user: only games with this status')

    p = sub.add_parser('show', help='Show one game')
    p.add_argument('id')

    p = sub.add_parser('recent', help='Five most recently updated games')
    p.add_argument('--user', help='Only games owned by this user id')

    p = sub.add_parser('stats', help='Count of games per status for a user')
    p.add_argument('user')

    p = sub.add_parser('create', help='Create a game')
    p.add_argument('--name', required=True)
    p.add_argument('--description', required=True)
    p.add_argument('--image', required=True)
    p.add_argument('--user', required=True)
    p.add_argument('--status', help=f"One of: {', '.join(VALID_STATUSES)}")
    p.add_argument('--updated-by')

    p = sub.add_parser('update', help='Update fields of a game')
    p.add_argument('id')
    p.add_argument('--name')
    p.add_argument('--description')
    p.add_argument('--image')
    p.add_argument('--status', help=f"One of: {', '.join(VALID_STATUSES)}")
    p.add_argument('--updated-by')

    p = sub.add_parser('delete', help='Delete a game')
    p.add_argument('id')

    return parser


def run(service, args) -> int:
    """Dispatch *args* to *service*, print the result and return an exit code."""
    if args.command == 'list':
        if args.user:
            result = service.list_by_user(args.user, args.status)
        else:
            if args.status:
                print(f"{Fore.YELLOW}--status is ignored without --user")
            result = service.list_all()
    elif args.command == 'show':
        result = service.get_by_id(args.id)
    elif args.command == 'recent':
        if args.user:
            result = service.get_recently_updated_by_user(args.user)
        else:
            result = service.get_recently_updated()
    elif args.command == 'stats':
        result = service.get_status_distribution(args.user)
    elif args.command == 'create':
        result = service.create(_game_fields(
            args, ['name', 'description', 'image', 'user', 'status', 'updated_by']))
        print(f"{Fore.GREEN}Created game {result['id']}")
    elif args.command == 'update':
        result = service.update(args.id, _game_fields(
            args, ['name', 'description', 'image', 'status', 'updated_by']))
        print(f"{Fore.GREEN}Updated game {result['id']}")
    elif args.command == 'delete':
        result = service.remove(args.id)
        if result is None:
            print(f"{Fore.YELLOW}No game with id {args.id}")
            return 1
        print(f"{Fore.GREEN}Deleted game {result['id']}")
    else:
        print(f"{Fore.RED}Unknown command: {args.command}")
        return 2
    _print_json(result)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"{Fore.RED}{e}")
        return 1
    setup_logging(args.log_level or config['log_level'])

    try:
        with open_stores(config) as handles:
            return run(build_game_service(handles), args)
    except GameRecordError as e:
        print(f"{Fore.RED}Error: {e}")
        return 1
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Interrupted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
