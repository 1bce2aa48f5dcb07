"""Register the statusline as the host's status line command.

Merges a ``statusLine`` entry into ``<claude_dir>/settings.json`` and leaves
every other setting untouched.
"""

from __future__ import annotations

import json
import logging
import shlex
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from claude_statusline.storage import atomic_write_text

__all__ = [
    'DEFAULT_CLAUDE_DIR',
    'install_statusline',
    'statusline_command',
]

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_DIR = Path('~/.claude').expanduser()


def statusline_command(python: str | None = None) -> str:
    """Shell command the host runs on every refresh."""
    return f'{shlex.quote(python or sys.executable)} -m claude_statusline'


def _load_settings(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        settings = json.loads(path.read_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f'{path} is not valid JSON, replacing it')
        return {}
    if not isinstance(settings, dict):
        logger.warning(f'{path} is not a JSON object, replacing it')
        return {}
    return settings


def install_statusline(claude_dir: Path = DEFAULT_CLAUDE_DIR, command: str | None = None) -> Mapping[str, Any]:
    """Write the statusLine entry into settings.json. Returns the entry written."""
    settings_path = claude_dir / 'settings.json'
    settings = _load_settings(settings_path)

    entry = {
        'type': 'command',
        'command': command or statusline_command(),
        'padding': 0,
    }
    settings['statusLine'] = entry
    atomic_write_text(settings_path, json.dumps(settings, indent=2, ensure_ascii=False) + '\n', mode=0o644)
    logger.info(f'statusLine registered in {settings_path}')
    return entry
