"""Statusline display configuration.

Defaults are compiled in. An optional JSON file overrides any subset of them:

    ~/.claude/statusline.json      (or the path in $STATUSLINE_CONFIG)

    {
      "oneLine": false,
      "git": {"showChanges": true},
      "limits": {"progressBarLength": 10, "color": "green"}
    }

Keys may be camelCase or snake_case. Unknown keys are rejected so a typo
shows up as an error on the status line instead of being silently ignored.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import pydantic
import pydantic.alias_generators

__all__ = [
    'CONFIG_ENV_VAR',
    'DEFAULT_CONFIG',
    'DEFAULT_CONFIG_PATH',
    'ContextConfig',
    'GitConfig',
    'LimitsConfig',
    'PathDisplayMode',
    'ProgressBarColor',
    'Separator',
    'SessionConfig',
    'StatuslineConfig',
    'config_path',
    'load_config',
]

type Separator = Literal['|', '•', '·', '⋅', '●', '◆', '▪', '▸', '›', '→']
type PathDisplayMode = Literal['full', 'truncated', 'basename']
type ProgressBarColor = Literal['progressive', 'green', 'yellow', 'red']

CONFIG_ENV_VAR = 'STATUSLINE_CONFIG'
DEFAULT_CONFIG_PATH = Path('~/.claude/statusline.json').expanduser()


class _ConfigModel(pydantic.BaseModel):
    """Frozen, closed config section that accepts camelCase or snake_case keys."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        frozen=True,
        alias_generator=pydantic.alias_generators.to_camel,
        populate_by_name=True,
    )


class GitConfig(_ConfigModel):
    show_branch: bool = True
    show_dirty_indicator: bool = True  # * when the tree has changes
    show_changes: bool = False  # +added/-deleted lines
    show_staged: bool = True  # staged file count (gray)
    show_unstaged: bool = True  # unstaged file count (yellow)


class SessionConfig(_ConfigModel):
    info_separator: Separator | None = None  # None = single space
    show_cost: bool = False
    show_tokens: bool = True
    show_max_tokens: bool = False  # "192k/200k" vs "192k"
    show_token_decimals: bool = False  # "192.1k" vs "192k"
    show_percentage: bool = True


class ContextConfig(_ConfigModel):
    max_context_tokens: int = 200_000
    # Reserved for autocompact; subtracted from the maximum when use_usable_context_only
    autocompact_buffer_tokens: int = 45_000
    use_usable_context_only: bool = True
    # System prompt, tool definitions, and memory files not visible in the transcript
    overhead_tokens: int = 0


class LimitsConfig(_ConfigModel):
    show_progress_bar: bool = True
    progress_bar_length: Literal[5, 10] = 5
    # progressive: gray < 50%, yellow < 70%, orange < 90%, red >= 90%
    color: ProgressBarColor = 'progressive'


class StatuslineConfig(_ConfigModel):
    one_line: bool = True
    show_sonnet_model: bool = False
    path_display_mode: PathDisplayMode = 'truncated'
    separator: Separator = '•'
    git: GitConfig = GitConfig()
    session: SessionConfig = SessionConfig()
    context: ContextConfig = ContextConfig()
    limits: LimitsConfig = LimitsConfig()


DEFAULT_CONFIG = StatuslineConfig()


def config_path() -> Path:
    """Resolve the override file location ($STATUSLINE_CONFIG wins)."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Path | None = None) -> StatuslineConfig:
    """Load config overrides on top of the defaults.

    A missing file yields DEFAULT_CONFIG. An unreadable or invalid file raises
    (OSError / pydantic.ValidationError) and surfaces through the entry point's
    error fallback.
    """
    path = path if path is not None else config_path()
    if not path.is_file():
        return DEFAULT_CONFIG
    return StatuslineConfig.model_validate_json(path.read_bytes())
