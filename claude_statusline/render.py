"""Line assembly: gather every data source, then compose the status lines.

Each line is an ordered list of segment builders. A builder returns a
formatted fragment or None; only present fragments are joined, so a disabled
or unavailable segment never leaves a dangling separator.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from claude_statusline.ccusage import get_ccusage_data
from claude_statusline.config import StatuslineConfig
from claude_statusline.context import get_context_data
from claude_statusline.formatters import (
    GRAY,
    LIGHT_GRAY,
    RESET,
    format_branch,
    format_ccusage_time,
    format_cost,
    format_path,
    format_progress_bar,
    format_reset_time,
    format_session,
    join_segments,
    round_half_up,
)
from claude_statusline.git import get_git_status
from claude_statusline.schemas import (
    CcusageData,
    ContextData,
    GitStatus,
    HookInput,
    StrictModel,
    UsageLimits,
)
from claude_statusline.spend import save_session
from claude_statusline.usage_limits import get_usage_limits

__all__ = [
    'DEFAULT_MODEL_FAMILY',
    'DataSources',
    'StatusSnapshot',
    'build_first_line',
    'build_second_line',
    'compose_lines',
    'gather_snapshot',
    'render',
]

# The model name is hidden for this family unless show_sonnet_model is set
DEFAULT_MODEL_FAMILY = 'sonnet'


class StatusSnapshot(StrictModel):
    """Everything a render needs, gathered once per invocation."""

    hook_input: HookInput
    git: GitStatus
    context: ContextData
    usage_limits: UsageLimits
    ccusage: CcusageData


@dataclass(frozen=True)
class DataSources:
    """Data-gathering operations. Each one is failure-safe and returns a neutral value."""

    save_session: Callable[[HookInput], None] = save_session
    git_status: Callable[[str | None], Awaitable[GitStatus]] = get_git_status
    context_data: Callable[..., Awaitable[ContextData]] = get_context_data
    usage_limits: Callable[[], Awaitable[UsageLimits]] = get_usage_limits
    ccusage_data: Callable[[], Awaitable[CcusageData]] = get_ccusage_data


async def gather_snapshot(
    hook_input: HookInput,
    config: StatuslineConfig,
    sources: DataSources | None = None,
) -> StatusSnapshot:
    """Persist the session record, then fetch git/context/limits/ccusage concurrently."""
    sources = sources if sources is not None else DataSources()

    await asyncio.to_thread(sources.save_session, hook_input)

    git_status, context_data, limits, ccusage_data = await asyncio.gather(
        sources.git_status(hook_input.workspace.current_dir or None),
        sources.context_data(
            transcript_path=hook_input.transcript_path,
            max_context_tokens=config.context.max_context_tokens,
            autocompact_buffer_tokens=config.context.autocompact_buffer_tokens,
            use_usable_context_only=config.context.use_usable_context_only,
            overhead_tokens=config.context.overhead_tokens,
        ),
        sources.usage_limits(),
        sources.ccusage_data(),
    )
    return StatusSnapshot(
        hook_input=hook_input,
        git=git_status,
        context=context_data,
        usage_limits=limits,
        ccusage=ccusage_data,
    )


# =============================================================================
# Line 1: branch • path • model
# =============================================================================


def _branch_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    return format_branch(snapshot.git, config.git) or None


def _path_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    return format_path(snapshot.hook_input.workspace.current_dir, config.path_display_mode) or None


def _model_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    name = snapshot.hook_input.model.display_name
    if DEFAULT_MODEL_FAMILY in name.lower() and not config.show_sonnet_model:
        return None
    return name or None


# =============================================================================
# Line 2: session • limits • billing block
# =============================================================================


def _session_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    return (
        format_session(
            format_cost(snapshot.hook_input.cost.total_cost_usd),
            snapshot.context.tokens,
            config.context.max_context_tokens,
            snapshot.context.percentage,
            config.session,
        )
        or None
    )


def _limits_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    five_hour = snapshot.usage_limits.five_hour
    if five_hour is None or not five_hour.resets_at:
        return None

    utilization = round_half_up(five_hour.utilization)
    reset_time = format_reset_time(five_hour.resets_at)
    tail = f'{LIGHT_GRAY}{utilization}{GRAY}% ({reset_time} left)'

    if config.limits.show_progress_bar:
        bar = format_progress_bar(five_hour.utilization, config.limits.progress_bar_length, config.limits.color)
        return f'{GRAY}L: {bar} {tail}'
    return f'{GRAY}L: {tail}'


def _billing_segment(snapshot: StatusSnapshot, config: StatuslineConfig) -> str | None:
    block_cost = snapshot.ccusage.block_cost
    if block_cost is None:
        return None

    segment = f'{GRAY}B:{LIGHT_GRAY} ${block_cost:.2f}'
    remaining = snapshot.ccusage.remaining_minutes
    if remaining is not None and remaining > 0:
        segment += f' {GRAY}({format_ccusage_time(remaining)} left)'
    return segment


type SegmentBuilder = Callable[[StatusSnapshot, StatuslineConfig], str | None]

FIRST_LINE: Sequence[SegmentBuilder] = (_branch_segment, _path_segment, _model_segment)
SECOND_LINE: Sequence[SegmentBuilder] = (_session_segment, _limits_segment, _billing_segment)


def build_first_line(snapshot: StatusSnapshot, config: StatuslineConfig) -> str:
    segments = [build(snapshot, config) for build in FIRST_LINE]
    body = join_segments(segments, f' {GRAY}{config.separator}{LIGHT_GRAY} ')
    return f'{LIGHT_GRAY}{body}{RESET}'


def build_second_line(snapshot: StatusSnapshot, config: StatuslineConfig) -> str:
    segments = [build(snapshot, config) for build in SECOND_LINE]
    body = join_segments(segments, f' {GRAY}{config.separator} ')
    if not body:
        return ''
    return f'{body}{RESET}'


def compose_lines(snapshot: StatusSnapshot, config: StatuslineConfig) -> Sequence[str]:
    """Two lines, or one joined line plus a blank line when one_line is set.

    The blank line keeps the host's two-line layout stable.
    """
    first = build_first_line(snapshot, config)
    second = build_second_line(snapshot, config)
    if config.one_line:
        joined = join_segments([first, second], f' {GRAY}{config.separator}{LIGHT_GRAY} ')
        return [joined, '']
    return [first, second]


async def render(
    hook_input: HookInput,
    config: StatuslineConfig,
    sources: DataSources | None = None,
) -> Sequence[str]:
    """Gather state and return the lines to print."""
    snapshot = await gather_snapshot(hook_input, config, sources)
    return compose_lines(snapshot, config)
