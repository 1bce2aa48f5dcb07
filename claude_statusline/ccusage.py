"""Active billing block from the ccusage CLI.

ccusage is optional. A missing binary, non-zero exit, timeout, malformed
output, or no active block all yield ``CcusageData()`` (both fields None).
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pydantic

from claude_statusline.formatters import round_half_up
from claude_statusline.schemas import CcusageBlocksResponse, CcusageData

__all__ = [
    'CCUSAGE_PATH',
    'DEFAULT_CCUSAGE_TIMEOUT',
    'get_ccusage_data',
    'parse_blocks',
]

logger = logging.getLogger(__name__)

CCUSAGE_PATH = Path('/usr/local/bin/ccusage')
DEFAULT_CCUSAGE_TIMEOUT = 5.0


def parse_blocks(raw: str | bytes) -> CcusageData:
    """Extract the active block's cost and projected remaining minutes.

    Raises pydantic.ValidationError on malformed JSON.
    """
    response = CcusageBlocksResponse.model_validate_json(raw)
    active = next((block for block in response.blocks if block.is_active), None)
    if active is None:
        return CcusageData()

    remaining = active.projection.remaining_minutes if active.projection is not None else None
    return CcusageData(
        block_cost=active.cost_usd or 0.0,
        remaining_minutes=round_half_up(remaining) if remaining else None,
    )


async def get_ccusage_data(
    executable: Path = CCUSAGE_PATH,
    timeout: float = DEFAULT_CCUSAGE_TIMEOUT,
) -> CcusageData:
    """Run ``ccusage blocks --active --json`` and summarize the active block."""
    try:
        proc = await asyncio.create_subprocess_exec(
            str(executable),
            'blocks',
            '--active',
            '--json',
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug(f'ccusage not runnable: {e!r}')
        return CcusageData()

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        logger.debug(f'ccusage timed out after {timeout}s')
        return CcusageData()

    if proc.returncode != 0:
        logger.debug(f'ccusage exited with {proc.returncode}')
        return CcusageData()

    try:
        return parse_blocks(stdout)
    except pydantic.ValidationError as e:
        logger.debug(f'ccusage output malformed: {e.error_count()} errors')
        return CcusageData()
