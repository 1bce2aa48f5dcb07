"""Entry point: ``claude-statusline`` / ``python -m claude_statusline``.

Without a subcommand, reads the session snapshot JSON on stdin and prints the
status lines. The host runs this after every assistant message, so it must
always print something and always exit 0: unexpected failures are rendered
as a two-line fallback and the traceback goes to the error log.

Subcommands:
    install   Register the statusline in ~/.claude/settings.json
    spend     Show recorded session spend (today and the last N days)

Set STATUSLINE_DEBUG=1 to log data-source failures to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys
import traceback
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import pydantic

from claude_statusline.config import load_config
from claude_statusline.error_boundary import FallbackBoundary
from claude_statusline.formatters import GRAY, LIGHT_GRAY, RED, RESET
from claude_statusline.install import DEFAULT_CLAUDE_DIR, install_statusline
from claude_statusline.render import DataSources, render
from claude_statusline.schemas import HookInput
from claude_statusline.spend import SPEND_PATH, load_spend, summarize_spend
from claude_statusline.storage import STATE_DIR

__all__ = [
    'ERROR_LOG_PATH',
    'main',
    'print_fallback',
    'run_statusline',
]

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = 'STATUSLINE_DEBUG'
ERROR_LOG_PATH = STATE_DIR / 'statusline-error.log'
FALLBACK_HINT = 'Check statusline configuration'


def configure_logging() -> None:
    """Log to stderr only; stdout belongs to the status line."""
    level = logging.DEBUG if os.environ.get(DEBUG_ENV_VAR) else logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def print_fallback(message: str) -> None:
    print(f'{RED}Error:{LIGHT_GRAY} {message}{RESET}')
    print(f'{GRAY}{FALLBACK_HINT}{RESET}')


def _record_failure(exc: Exception, log_path: Path | None = None) -> None:
    """Write a timestamped traceback to the error log (best effort) and debug-log it."""
    logger.debug('statusline render failed', exc_info=exc)
    log_path = log_path if log_path is not None else ERROR_LOG_PATH
    msg = f'{datetime.now(UTC).isoformat()}\n'
    msg += ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    with contextlib.suppress(OSError):
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(msg)
        log_path.chmod(0o600)


boundary = FallbackBoundary(print_fallback, on_error=_record_failure)


@boundary.message_for(pydantic.ValidationError)
def _validation_message(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    if err['type'] == 'json_invalid':
        return 'invalid JSON input'
    loc = '.'.join(str(x) for x in err['loc'])
    return f'{loc}: {err["msg"]}' if loc else err['msg']


@boundary
def run_statusline(raw: str, sources: DataSources | None = None) -> None:
    """Parse stdin, render, print. Failures become the two-line fallback."""
    hook_input = HookInput.model_validate_json(raw)
    config = load_config()
    lines = asyncio.run(render(hook_input, config, sources))
    for line in lines:
        print(line)


def _run_spend(days: int) -> None:
    summary = summarize_spend(load_spend(SPEND_PATH), days=days)
    print(f'today: ${summary.today_usd:.2f}')
    print(f'last {summary.period_days}d: ${summary.period_usd:.2f} ({summary.session_count} sessions)')


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='claude-statusline', description='Claude Code status line.')
    subparsers = parser.add_subparsers(dest='command')

    install_parser = subparsers.add_parser('install', help='Register as the status line command')
    install_parser.add_argument(
        '--folder',
        type=Path,
        default=DEFAULT_CLAUDE_DIR,
        help='Claude config directory (default: ~/.claude)',
    )

    spend_parser = subparsers.add_parser('spend', help='Show recorded session spend')
    spend_parser.add_argument('--days', type=int, default=7, help='Trailing window in days (default: 7)')

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging()

    if args.command == 'install':
        entry = install_statusline(args.folder.expanduser())
        print(f'Statusline registered: {entry["command"]}')
        print('Restart Claude Code to see the changes.')
        return

    if args.command == 'spend':
        _run_spend(args.days)
        return

    run_statusline(sys.stdin.read())
