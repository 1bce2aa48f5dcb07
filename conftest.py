"""Shared fixtures for the statusline tests.

Every test runs with the statusline's environment variables cleared, so a
developer's own config file, OAuth token, or debug flag never leaks in.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from claude_statusline.schemas import HookInput

_STATUSLINE_ENV = (
    'STATUSLINE_CONFIG',
    'STATUSLINE_DEBUG',
    'CLAUDE_CODE_OAUTH_TOKEN',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _STATUSLINE_ENV:
        monkeypatch.delenv(name, raising=False)
    # Point the config lookup at a file that does not exist
    monkeypatch.setenv('STATUSLINE_CONFIG', str(tmp_path / 'no-such-config.json'))


@pytest.fixture
def hook_payload(tmp_path: Path) -> Mapping[str, Any]:
    """A realistic stdin snapshot as the host sends it."""
    return {
        'session_id': 'sess-123',
        'transcript_path': str(tmp_path / 'sess-123.jsonl'),
        'cwd': '/home/dev/projects/app',
        'model': {'id': 'claude-opus-4', 'display_name': 'Opus'},
        'workspace': {'current_dir': '/home/dev/projects/app', 'project_dir': '/home/dev/projects/app'},
        'cost': {'total_cost_usd': 1.234, 'total_duration_ms': 125_000},
        'version': '2.0.0',
    }


@pytest.fixture
def hook_input(hook_payload: Mapping[str, Any]) -> HookInput:
    return HookInput.model_validate_json(json.dumps(hook_payload))

