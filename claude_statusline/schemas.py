"""Pydantic models for statusline input, gathered state, and persisted spend.

Two families of models live here:

- Input from the host (``HookInput``) tolerates unknown fields, because the
  host adds fields over time and the statusline must keep rendering.
- Internal records (``GitStatus``, ``ContextData``, ...) are strict and
  frozen. Each data source has an explicit "unavailable" value so callers
  handle absence instead of catching exceptions.
"""

from __future__ import annotations

from collections.abc import Sequence

import pydantic
import pydantic.alias_generators

__all__ = [
    'CcusageBlock',
    'CcusageBlocksResponse',
    'CcusageData',
    'CcusageProjection',
    'ContextData',
    'CostInfo',
    'FileChanges',
    'GitStatus',
    'HookInput',
    'ModelInfo',
    'RateLimitWindow',
    'SessionRecord',
    'SpendDatabase',
    'StrictModel',
    'UsageLimits',
    'WorkspaceInfo',
]


class StrictModel(pydantic.BaseModel):
    """Shared base: no extra fields, strict type coercion, immutable."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )


class _ExternalModel(pydantic.BaseModel):
    """Base for external data we don't control. Ignores unknown fields."""

    model_config = pydantic.ConfigDict(extra='ignore', frozen=True)


# =============================================================================
# Status line input (host stdin)
# =============================================================================


class ModelInfo(_ExternalModel):
    display_name: str
    id: str = ''


class WorkspaceInfo(_ExternalModel):
    current_dir: str
    project_dir: str = ''


class CostInfo(_ExternalModel):
    total_cost_usd: float = 0.0
    total_duration_ms: float = 0.0

    @pydantic.field_validator('total_cost_usd', 'total_duration_ms', mode='before')
    @classmethod
    def _none_is_zero(cls, value: object) -> object:
        return 0.0 if value is None else value


class HookInput(pydantic.BaseModel):
    """Top-level JSON received on stdin.

    Uses extra='allow' since the host may add new fields at any time.
    """

    model_config = pydantic.ConfigDict(extra='allow', frozen=True)

    workspace: WorkspaceInfo
    transcript_path: str
    model: ModelInfo
    cost: CostInfo = CostInfo()
    session_id: str | None = None
    cwd: str | None = None


# =============================================================================
# Git
# =============================================================================


class FileChanges(StrictModel):
    added: int = 0  # lines
    deleted: int = 0  # lines
    files: int = 0


class GitStatus(StrictModel):
    branch: str
    has_changes: bool
    staged: FileChanges = FileChanges()
    unstaged: FileChanges = FileChanges()

    @classmethod
    def unavailable(cls) -> GitStatus:
        """Neutral value: no branch, no changes (not a repo, git missing, timeout)."""
        return cls(branch='', has_changes=False)


# =============================================================================
# Context window
# =============================================================================


class ContextData(StrictModel):
    tokens: int
    percentage: int

    @classmethod
    def empty(cls) -> ContextData:
        return cls(tokens=0, percentage=0)


# =============================================================================
# Usage limits API response (snake_case on the wire)
# =============================================================================


class RateLimitWindow(_ExternalModel):
    utilization: float
    resets_at: str | None = None


class UsageLimits(_ExternalModel):
    """Rate-limit utilization. All fields None means unavailable."""

    five_hour: RateLimitWindow | None = None
    seven_day: RateLimitWindow | None = None


# =============================================================================
# ccusage CLI output (camelCase on the wire)
# =============================================================================


class _CamelModel(_ExternalModel):
    model_config = pydantic.ConfigDict(
        extra='ignore',
        frozen=True,
        alias_generator=pydantic.alias_generators.to_camel,
        populate_by_name=True,
    )


class CcusageProjection(_CamelModel):
    remaining_minutes: float | None = None


class CcusageBlock(_CamelModel):
    is_active: bool = False
    cost_usd: float | None = pydantic.Field(default=None, alias='costUSD')
    projection: CcusageProjection | None = None


class CcusageBlocksResponse(_CamelModel):
    blocks: Sequence[CcusageBlock] = []


class CcusageData(StrictModel):
    """Active billing block summary. Both fields None when unavailable."""

    block_cost: float | None = None
    remaining_minutes: int | None = None


# =============================================================================
# Spend history (persisted)
# =============================================================================


class SessionRecord(StrictModel):
    session_id: str
    date: str  # Local YYYY-MM-DD of first sighting
    cost_usd: float
    duration_ms: float
    cwd: str = ''
    model: str = ''
    updated_at: str = ''  # ISO 8601, UTC


class SpendDatabase(StrictModel):
    """Container for all recorded sessions, keyed by session_id."""

    sessions: Sequence[SessionRecord] = []
