"""Tests for the ccusage adapter, using a fake executable for the subprocess paths."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pydantic
import pytest

from claude_statusline.ccusage import get_ccusage_data, parse_blocks
from claude_statusline.schemas import CcusageData


def _block(**overrides: Any) -> dict[str, Any]:
    block: dict[str, Any] = {
        'id': '2026-01-01T10:00:00.000Z',
        'startTime': '2026-01-01T10:00:00.000Z',
        'endTime': '2026-01-01T15:00:00.000Z',
        'isActive': True,
        'isGap': False,
        'entries': 42,
        'costUSD': 12.345,
        'models': ['claude-opus-4'],
        'burnRate': {'tokensPerMinute': 1000.0, 'costPerHour': 3.2},
        'projection': {'totalTokens': 500_000, 'totalCost': 20.1, 'remainingMinutes': 87.6},
    }
    block.update(overrides)
    return block


def _blocks(*blocks: dict[str, Any]) -> str:
    return json.dumps({'blocks': list(blocks)})


class TestParseBlocks:
    def test_active_block(self) -> None:
        assert parse_blocks(_blocks(_block())) == CcusageData(block_cost=12.345, remaining_minutes=88)

    def test_first_active_block_wins(self) -> None:
        raw = _blocks(_block(isActive=False, costUSD=1.0), _block(costUSD=2.0), _block(costUSD=3.0))
        assert parse_blocks(raw).block_cost == 2.0

    def test_no_active_block(self) -> None:
        assert parse_blocks(_blocks(_block(isActive=False))) == CcusageData()

    def test_empty_blocks(self) -> None:
        assert parse_blocks('{"blocks": []}') == CcusageData()

    def test_missing_cost_is_zero(self) -> None:
        block = _block()
        del block['costUSD']
        assert parse_blocks(_blocks(block)).block_cost == 0.0

    @pytest.mark.parametrize('minutes, expected', [(86.5, 87), (87.5, 88), (0.5, 1)])
    def test_remaining_minutes_round_half_up(self, minutes: float, expected: int) -> None:
        block = _block(projection={'remainingMinutes': minutes})
        assert parse_blocks(_blocks(block)).remaining_minutes == expected

    @pytest.mark.parametrize('projection', [None, {}, {'remainingMinutes': 0}])
    def test_no_remaining_time(self, projection: dict[str, Any] | None) -> None:
        data = parse_blocks(_blocks(_block(projection=projection)))
        assert data.block_cost == 12.345
        assert data.remaining_minutes is None

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            parse_blocks('not json')


# ---------------------------------------------------------------------------
# get_ccusage_data with a fake executable
# ---------------------------------------------------------------------------


def _fake_ccusage(tmp_path: Path, body: str) -> Path:
    exe = tmp_path / 'ccusage'
    exe.write_text(f'#!/bin/sh\n{body}\n')
    exe.chmod(0o755)
    return exe


def test_runs_blocks_command(tmp_path: Path) -> None:
    output = tmp_path / 'out.json'
    output.write_text(_blocks(_block()))
    args_file = tmp_path / 'args.txt'
    exe = _fake_ccusage(tmp_path, f'echo "$@" > {args_file}\nexec cat {output}')

    data = asyncio.run(get_ccusage_data(exe))

    assert data == CcusageData(block_cost=12.345, remaining_minutes=88)
    assert args_file.read_text().strip() == 'blocks --active --json'


@pytest.mark.parametrize(
    'body',
    [
        'exit 1',
        'echo "not json"',
        'echo \'{"blocks": "nope"}\'',
    ],
)
def test_failures_yield_empty(tmp_path: Path, body: str) -> None:
    assert asyncio.run(get_ccusage_data(_fake_ccusage(tmp_path, body))) == CcusageData()


def test_missing_executable(tmp_path: Path) -> None:
    assert asyncio.run(get_ccusage_data(tmp_path / 'absent')) == CcusageData()


def test_not_executable(tmp_path: Path) -> None:
    exe = tmp_path / 'ccusage'
    exe.write_text('{}')
    assert asyncio.run(get_ccusage_data(exe)) == CcusageData()


def test_timeout(tmp_path: Path) -> None:
    exe = _fake_ccusage(tmp_path, 'exec sleep 5')
    assert asyncio.run(get_ccusage_data(exe, timeout=0.2)) == CcusageData()
