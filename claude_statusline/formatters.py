"""Pure formatting helpers: raw values in, ANSI-colored display strings out."""

from __future__ import annotations

import math
import os
import types
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from claude_statusline.config import GitConfig, PathDisplayMode, ProgressBarColor, SessionConfig
from claude_statusline.schemas import GitStatus

__all__ = [
    'COLORS',
    'GRAY',
    'GREEN',
    'LIGHT_GRAY',
    'ORANGE',
    'PURPLE',
    'RED',
    'RESET',
    'YELLOW',
    'format_branch',
    'format_ccusage_time',
    'format_cost',
    'format_duration',
    'format_path',
    'format_progress_bar',
    'format_reset_time',
    'format_session',
    'format_tokens',
    'join_segments',
    'round_half_up',
]

# =============================================================================
# ANSI Colors
# =============================================================================

COLORS: Mapping[str, str] = types.MappingProxyType(
    {
        'GREEN': '\033[0;32m',
        'RED': '\033[0;31m',
        'PURPLE': '\033[0;35m',
        'YELLOW': '\033[0;33m',
        'ORANGE': '\033[38;5;208m',
        'GRAY': '\033[0;90m',
        'LIGHT_GRAY': '\033[0;37m',
        'RESET': '\033[0m',
    }
)

GREEN = COLORS['GREEN']
RED = COLORS['RED']
PURPLE = COLORS['PURPLE']
YELLOW = COLORS['YELLOW']
ORANGE = COLORS['ORANGE']
GRAY = COLORS['GRAY']
LIGHT_GRAY = COLORS['LIGHT_GRAY']
RESET = COLORS['RESET']

BAR_FILLED = '█'
BAR_EMPTY = '░'
RESET_TIME_FALLBACK = 'N/A'


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's rounding)."""
    return math.floor(value + 0.5)


def join_segments(segments: Sequence[str | None], separator: str) -> str:
    """Join only the present, non-empty segments. Never leaves a dangling separator."""
    return separator.join(s for s in segments if s)


# =============================================================================
# Scalars
# =============================================================================


def format_path(path: str, mode: PathDisplayMode = 'truncated', home: str | None = None) -> str:
    """Shorten a directory path for display.

    full:      home directory replaced with ~
    truncated: last two segments, prefixed with / (when there are more than two)
    basename:  last segment only
    """
    home = os.environ.get('HOME', '') if home is None else home
    display = path
    if home and path.startswith(home):
        display = '~' + path[len(home) :]

    if mode == 'basename':
        segments = [s for s in path.split('/') if s]
        return segments[-1] if segments else path

    if mode == 'truncated':
        segments = [s for s in display.split('/') if s]
        if len(segments) > 2:
            return '/' + '/'.join(segments[-2:])

    return display


def format_tokens(tokens: int, show_decimals: bool = True) -> str:
    """Compact token count: 999, 1.5k / 2k, 2.5m / 3m."""
    for threshold, suffix in ((1_000_000, 'm'), (1_000, 'k')):
        if tokens >= threshold:
            value = tokens / threshold
            number = f'{value:.1f}' if show_decimals else str(round_half_up(value))
            return f'{number}{suffix}'
    return str(tokens)


def format_cost(usd: float) -> str:
    return f'{usd:.2f}'


def format_duration(ms: float) -> str:
    """Milliseconds as whole hours and minutes: '2h 5m', or '5m' under an hour."""
    minutes = int(ms // 60_000)
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f'{hours}h {mins}m'
    return f'{mins}m'


def format_reset_time(resets_at: str, now: datetime | None = None) -> str:
    """Time remaining until an ISO 8601 reset timestamp: '1h30m', '12m', or 'now'."""
    try:
        reset = datetime.fromisoformat(resets_at.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return RESET_TIME_FALLBACK
    if reset.tzinfo is None:
        reset = reset.replace(tzinfo=UTC)

    now = now if now is not None else datetime.now(UTC)
    diff_ms = (reset - now).total_seconds() * 1000
    if diff_ms <= 0:
        return 'now'

    hours = int(diff_ms // 3_600_000)
    minutes = int((diff_ms % 3_600_000) // 60_000)
    if hours > 0:
        return f'{hours}h{minutes}m'
    return f'{minutes}m'


def format_ccusage_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f'{hours}h{mins}m'
    return f'{mins}m'


def format_progress_bar(percentage: float, length: int, color_mode: ProgressBarColor) -> str:
    """Render a colored bar: filled cells = round(pct/100 × length)."""
    filled = max(0, min(length, round_half_up(percentage / 100 * length)))
    empty = length - filled

    if color_mode == 'progressive':
        if percentage < 50:
            bar_color = GRAY
        elif percentage < 70:
            bar_color = YELLOW
        elif percentage < 90:
            bar_color = ORANGE
        else:
            bar_color = RED
    elif color_mode == 'green':
        bar_color = GREEN
    elif color_mode == 'yellow':
        bar_color = YELLOW
    else:
        bar_color = RED

    return f'{bar_color}{BAR_FILLED * filled}{GRAY}{BAR_EMPTY * empty}{RESET}'


# =============================================================================
# Composite segments
# =============================================================================


def format_branch(git: GitStatus, config: GitConfig) -> str:
    """Branch name, dirty marker, and change counts per the git toggles.

    Example (all toggles on): ``main* +12 -3 ~1 ~2``
    """
    result = git.branch if config.show_branch else ''

    if not git.has_changes:
        return result

    if config.show_dirty_indicator:
        result += f'{PURPLE}*{RESET}'

    changes: list[str] = []
    if config.show_changes:
        total_added = git.staged.added + git.unstaged.added
        total_deleted = git.staged.deleted + git.unstaged.deleted
        if total_added > 0:
            changes.append(f'{GREEN}+{total_added}{RESET}')
        if total_deleted > 0:
            changes.append(f'{RED}-{total_deleted}{RESET}')
    if config.show_staged and git.staged.files > 0:
        changes.append(f'{GRAY}~{git.staged.files}{RESET}')
    if config.show_unstaged and git.unstaged.files > 0:
        changes.append(f'{YELLOW}~{git.unstaged.files}{RESET}')

    return join_segments([result, join_segments(changes, ' ')], ' ')


def format_session(
    cost: str,
    tokens_used: int,
    tokens_max: int,
    percentage: int,
    config: SessionConfig,
) -> str:
    """Session segment, e.g. ``S: 92k 46%``. Empty when every item is disabled."""
    items: list[str] = []

    if config.show_cost:
        items.append(f'${cost}')
    if config.show_tokens:
        used = format_tokens(tokens_used, config.show_token_decimals)
        if config.show_max_tokens:
            total = format_tokens(tokens_max, config.show_token_decimals)
            items.append(f'{used}{GRAY}/{total}{LIGHT_GRAY}')
        else:
            items.append(used)
    if config.show_percentage:
        items.append(f'{percentage}{GRAY}%{LIGHT_GRAY}')

    if not items:
        return ''

    info_sep = f' {GRAY}{config.info_separator}{LIGHT_GRAY} ' if config.info_separator else ' '
    return f'{GRAY}S:{LIGHT_GRAY} {info_sep.join(items)}'
