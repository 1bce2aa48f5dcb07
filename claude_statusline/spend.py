"""Per-session cost history for later aggregation.

Every render upserts the current session into ~/.claude/statusline/spend.json.
The statusline fires several times per assistant turn, often concurrently,
so updates are read-modify-write under an exclusive file lock and saved with
an atomic replace. A record with the same session_id is overwritten, never
duplicated, and records older than RETENTION_DAYS are pruned on each save.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from types import TracebackType

import pydantic
from filelock import FileLock, Timeout

from claude_statusline.schemas import HookInput, SessionRecord, SpendDatabase, StrictModel
from claude_statusline.storage import STATE_DIR, atomic_write_text

__all__ = [
    'RETENTION_DAYS',
    'SPEND_PATH',
    'SpendSummary',
    'SpendTracker',
    'load_spend',
    'save_session',
    'session_key',
    'summarize_spend',
]

logger = logging.getLogger(__name__)

SPEND_PATH = STATE_DIR / 'spend.json'
LOCK_TIMEOUT_SECONDS = 2.0
# Records last touched before this many days ago are dropped on the next save
RETENTION_DAYS = 90


def _lock_path(path: Path) -> Path:
    return path.with_name(f'.{path.name}.lock')


def load_spend(path: Path = SPEND_PATH) -> SpendDatabase:
    """Load the spend database. Missing or corrupt files yield an empty one."""
    if not path.exists():
        return SpendDatabase()
    try:
        return SpendDatabase.model_validate_json(path.read_bytes())
    except pydantic.ValidationError:
        logger.warning(f'Corrupt spend file {path}, starting fresh')
        return SpendDatabase()


def session_key(hook_input: HookInput) -> str:
    """Session identity: session_id, else the transcript file's stem."""
    if hook_input.session_id:
        return hook_input.session_id
    return Path(hook_input.transcript_path).stem or hook_input.transcript_path


class SpendTracker:
    """Unit of Work over the spend file: lock + load on entry, save + unlock on exit.

    Usage:
        with SpendTracker() as tracker:
            tracker.record(hook_input)
    """

    def __init__(self, path: Path = SPEND_PATH, lock_timeout: float = LOCK_TIMEOUT_SECONDS) -> None:
        self.path = path
        self._lock = FileLock(_lock_path(path), timeout=lock_timeout)
        self._db: SpendDatabase | None = None

    def __enter__(self) -> SpendTracker:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock.acquire()
        try:
            self._db = load_spend(self.path)
        except BaseException:
            self._lock.release()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Save on success, discard on error, always release the lock."""
        try:
            if exc_type is None and self._db is not None:
                atomic_write_text(self.path, self._db.model_dump_json())
        finally:
            self._lock.release()
            self._db = None

    @property
    def sessions(self) -> Sequence[SessionRecord]:
        if self._db is None:
            raise RuntimeError("SpendTracker must be used within 'with' context")
        return self._db.sessions

    def record(self, hook_input: HookInput, now: datetime | None = None) -> SessionRecord:
        """Insert or replace the record for this session."""
        if self._db is None:
            raise RuntimeError("SpendTracker must be used within 'with' context")

        now = now if now is not None else datetime.now(UTC)
        key = session_key(hook_input)
        existing = next((s for s in self._db.sessions if s.session_id == key), None)

        record = SessionRecord(
            session_id=key,
            # First sighting fixes the day the session is attributed to
            date=existing.date if existing is not None else now.astimezone().date().isoformat(),
            cost_usd=hook_input.cost.total_cost_usd,
            duration_ms=hook_input.cost.total_duration_ms,
            cwd=hook_input.workspace.current_dir,
            model=hook_input.model.display_name,
            updated_at=now.isoformat(),
        )

        if existing is None:
            sessions = [*self._db.sessions, record]
        else:
            sessions = [record if s.session_id == key else s for s in self._db.sessions]

        cutoff = (now.astimezone().date() - timedelta(days=RETENTION_DAYS)).isoformat()
        self._db = SpendDatabase(sessions=[s for s in sessions if s.session_id == key or s.date >= cutoff])
        return record


def save_session(hook_input: HookInput, path: Path = SPEND_PATH, now: datetime | None = None) -> None:
    """Best-effort upsert of the current session. Never raises on I/O trouble."""
    try:
        with SpendTracker(path) as tracker:
            tracker.record(hook_input, now=now)
    except (Timeout, OSError) as e:
        logger.debug(f'session record not saved: {e!r}')


# =============================================================================
# Aggregation
# =============================================================================


class SpendSummary(StrictModel):
    today_usd: float
    period_usd: float
    period_days: int
    session_count: int  # sessions within the period


def summarize_spend(db: SpendDatabase, today: date | None = None, days: int = 7) -> SpendSummary:
    """Totals for today and for the trailing `days` days (today included)."""
    today = today if today is not None else datetime.now().date()
    start = (today - timedelta(days=days - 1)).isoformat()
    end = today.isoformat()

    in_period = [s for s in db.sessions if start <= s.date <= end]
    return SpendSummary(
        today_usd=sum((s.cost_usd for s in in_period if s.date == end), 0.0),
        period_usd=sum((s.cost_usd for s in in_period), 0.0),
        period_days=days,
        session_count=len(in_period),
    )
