"""Context-window usage estimated from the session transcript.

The transcript is JSONL, one entry per message. Each assistant entry carries
the API ``usage`` block for that turn, and its input side (fresh input + cache
creation + cache reads) is the whole conversation so far. So the most recent
main-chain assistant usage is the current context size; earlier entries are
superseded, not summed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pydantic

from claude_statusline.formatters import round_half_up
from claude_statusline.schemas import ContextData

__all__ = [
    'TranscriptUsage',
    'compute_context',
    'get_context_data',
    'read_transcript_tokens',
]

logger = logging.getLogger(__name__)


class TranscriptUsage(pydantic.BaseModel):
    """``message.usage`` from a transcript entry. Unknown fields ignored."""

    model_config = pydantic.ConfigDict(extra='ignore', frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_creation_input_tokens + self.cache_read_input_tokens


def _usage_from_line(line: str) -> TranscriptUsage | None:
    """Extract usage from one JSONL line, or None if the line doesn't carry any."""
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return None  # Partially written trailing line
    if not isinstance(entry, dict) or entry.get('isSidechain') is True:
        return None
    message = entry.get('message')
    if not isinstance(message, dict) or message.get('role') != 'assistant':
        return None
    usage = message.get('usage')
    if not isinstance(usage, dict):
        return None
    try:
        return TranscriptUsage.model_validate(usage)
    except pydantic.ValidationError:
        return None


def read_transcript_tokens(transcript_path: Path) -> int:
    """Token count of the latest main-chain assistant turn. 0 if none or unreadable."""
    try:
        lines = transcript_path.read_text(errors='replace').splitlines()
    except OSError as e:
        logger.debug(f'transcript unreadable: {e!r}')
        return 0

    for line in reversed(lines):
        if not line.strip():
            continue
        usage = _usage_from_line(line)
        if usage is not None:
            return usage.total
    return 0


def compute_context(
    transcript_tokens: int,
    max_context_tokens: int,
    autocompact_buffer_tokens: int,
    use_usable_context_only: bool,
    overhead_tokens: int,
) -> ContextData:
    """Apply overhead and buffer to a raw transcript count.

    Percentage is of the usable window (max minus autocompact buffer) when
    use_usable_context_only, otherwise of the full window; clamped to 0-100.
    """
    if transcript_tokens <= 0:
        return ContextData.empty()

    tokens = transcript_tokens + overhead_tokens
    denominator = max_context_tokens - autocompact_buffer_tokens if use_usable_context_only else max_context_tokens
    if denominator <= 0:
        return ContextData(tokens=tokens, percentage=100)

    percentage = max(0, min(100, round_half_up(tokens * 100 / denominator)))
    return ContextData(tokens=tokens, percentage=percentage)


async def get_context_data(
    transcript_path: str,
    max_context_tokens: int,
    autocompact_buffer_tokens: int,
    use_usable_context_only: bool,
    overhead_tokens: int,
) -> ContextData:
    """Estimate current context usage. Missing or partial transcripts yield zero usage."""
    if not transcript_path:
        return ContextData.empty()
    transcript_tokens = await asyncio.to_thread(read_transcript_tokens, Path(transcript_path))
    return compute_context(
        transcript_tokens,
        max_context_tokens=max_context_tokens,
        autocompact_buffer_tokens=autocompact_buffer_tokens,
        use_usable_context_only=use_usable_context_only,
        overhead_tokens=overhead_tokens,
    )
