"""Two-line ANSI status line for Claude Code: branch, path, model, context, limits, spend."""

from __future__ import annotations

from claude_statusline.config import DEFAULT_CONFIG, StatuslineConfig, load_config
from claude_statusline.render import DataSources, render
from claude_statusline.schemas import HookInput

__all__ = [
    'DEFAULT_CONFIG',
    'DataSources',
    'HookInput',
    'StatuslineConfig',
    'load_config',
    'render',
]
