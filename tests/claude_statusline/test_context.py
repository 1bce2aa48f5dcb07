"""Tests for context-window estimation from transcript JSONL."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from claude_statusline.context import compute_context, get_context_data, read_transcript_tokens
from claude_statusline.schemas import ContextData


def _assistant(input_tokens: int, cache_read: int = 0, sidechain: bool = False) -> str:
    entry: dict[str, Any] = {
        'type': 'assistant',
        'isSidechain': sidechain,
        'message': {
            'role': 'assistant',
            'usage': {
                'input_tokens': input_tokens,
                'output_tokens': 0,
                'cache_creation_input_tokens': 0,
                'cache_read_input_tokens': cache_read,
                'service_tier': 'standard',
            },
        },
    }
    return json.dumps(entry)


def _user(text: str) -> str:
    return json.dumps({'type': 'user', 'message': {'role': 'user', 'content': text}})


class TestReadTranscriptTokens:
    def test_latest_assistant_usage_wins(self, tmp_path: Path) -> None:
        path = tmp_path / 't.jsonl'
        path.write_text('\n'.join([_assistant(1_000), _user('hi'), _assistant(500, cache_read=40_000)]) + '\n')
        assert read_transcript_tokens(path) == 40_500

    def test_partial_trailing_line_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / 't.jsonl'
        path.write_text(_assistant(2_000) + '\n{"type": "assistant", "mess')
        assert read_transcript_tokens(path) == 2_000

    def test_sidechain_entries_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / 't.jsonl'
        path.write_text('\n'.join([_assistant(3_000), _assistant(90_000, sidechain=True)]))
        assert read_transcript_tokens(path) == 3_000

    def test_no_usage(self, tmp_path: Path) -> None:
        path = tmp_path / 't.jsonl'
        path.write_text(_user('hello') + '\n')
        assert read_transcript_tokens(path) == 0

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_transcript_tokens(tmp_path / 'absent.jsonl') == 0


class TestComputeContext:
    def test_zero_tokens_is_empty(self) -> None:
        assert compute_context(0, 200_000, 45_000, True, 20_000) == ContextData.empty()

    def test_usable_window(self) -> None:
        # 77_500 / (200_000 - 45_000) = 50%
        assert compute_context(77_500, 200_000, 45_000, True, 0) == ContextData(tokens=77_500, percentage=50)

    def test_full_window(self) -> None:
        assert compute_context(77_500, 200_000, 45_000, False, 0).percentage == 39

    def test_overhead_added(self) -> None:
        data = compute_context(50_000, 200_000, 45_000, False, 20_000)
        assert data == ContextData(tokens=70_000, percentage=35)

    def test_rounds_half_up(self) -> None:
        # 1_000 / 200_000 = 0.5%
        assert compute_context(1_000, 200_000, 0, False, 0).percentage == 1

    def test_clamped_at_100(self) -> None:
        assert compute_context(400_000, 200_000, 45_000, True, 0).percentage == 100

    def test_buffer_exceeding_window(self) -> None:
        assert compute_context(10, 1_000, 5_000, True, 0) == ContextData(tokens=10, percentage=100)


@pytest.mark.parametrize('transcript_path', ['', '/nonexistent/transcript.jsonl'])
def test_get_context_data_without_transcript(transcript_path: str) -> None:
    data = asyncio.run(
        get_context_data(
            transcript_path=transcript_path,
            max_context_tokens=200_000,
            autocompact_buffer_tokens=45_000,
            use_usable_context_only=True,
            overhead_tokens=20_000,
        )
    )
    assert data == ContextData.empty()


def test_get_context_data_reads_transcript(tmp_path: Path) -> None:
    path = tmp_path / 't.jsonl'
    path.write_text(_assistant(135_000) + '\n')
    data = asyncio.run(
        get_context_data(
            transcript_path=str(path),
            max_context_tokens=200_000,
            autocompact_buffer_tokens=45_000,
            use_usable_context_only=True,
            overhead_tokens=20_000,
        )
    )
    assert data == ContextData(tokens=155_000, percentage=100)
