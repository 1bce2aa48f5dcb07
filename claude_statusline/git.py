"""Git branch and working-tree change counts.

Never raises: outside a repository, without git on PATH, or on timeout the
result is ``GitStatus.unavailable()`` so the status line still renders.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from claude_statusline.schemas import FileChanges, GitStatus

__all__ = [
    'DEFAULT_GIT_TIMEOUT',
    'GitCommandError',
    'get_git_status',
    'parse_numstat',
    'parse_porcelain',
]

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 2.0  # seconds, per command


class GitCommandError(Exception):
    """A git invocation exited non-zero."""


async def _run_git(args: Sequence[str], cwd: str | None, timeout: float) -> str:
    proc = await asyncio.create_subprocess_exec(
        'git',
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except (TimeoutError, asyncio.CancelledError):
        # Also reached when a sibling command failed and the task group cancelled us
        if proc.returncode is None:
            proc.kill()
        await proc.wait()
        raise
    if proc.returncode != 0:
        raise GitCommandError(f'git {" ".join(args)} exited with {proc.returncode}')
    return stdout.decode(errors='replace')


def parse_porcelain(output: str) -> tuple[int, int]:
    """Count (staged, unstaged) files from ``git status --porcelain``.

    Column X is the index, column Y the worktree. Untracked files (``??``)
    count as unstaged.
    """
    staged = 0
    unstaged = 0
    for line in output.splitlines():
        if len(line) < 2:
            continue
        index, worktree = line[0], line[1]
        if index not in (' ', '?'):
            staged += 1
        if worktree != ' ':
            unstaged += 1
    return staged, unstaged


def parse_numstat(output: str) -> tuple[int, int]:
    """Sum (added, deleted) lines from ``git diff --numstat``. Binary files ('-') count as 0."""
    added = 0
    deleted = 0
    for line in output.splitlines():
        parts = line.split('\t')
        if len(parts) < 3:
            continue
        if parts[0].isdigit():
            added += int(parts[0])
        if parts[1].isdigit():
            deleted += int(parts[1])
    return added, deleted


async def _branch_name(cwd: str | None, timeout: float) -> str:
    branch = (await _run_git(['branch', '--show-current'], cwd, timeout)).strip()
    if branch:
        return branch
    # Detached HEAD: show the short commit
    return (await _run_git(['rev-parse', '--short', 'HEAD'], cwd, timeout)).strip()


async def get_git_status(cwd: str | None = None, timeout: float = DEFAULT_GIT_TIMEOUT) -> GitStatus:
    """Read branch and staged/unstaged change counts for the repository at cwd."""
    failure: Exception | None = None
    try:
        branch = await _branch_name(cwd, timeout)
        async with asyncio.TaskGroup() as tg:
            porcelain_task = tg.create_task(_run_git(['status', '--porcelain'], cwd, timeout))
            unstaged_task = tg.create_task(_run_git(['diff', '--numstat'], cwd, timeout))
            staged_task = tg.create_task(_run_git(['diff', '--cached', '--numstat'], cwd, timeout))
    except* (GitCommandError, TimeoutError, OSError) as eg:
        failure = eg.exceptions[0]
    if failure is not None:
        logger.debug(f'git status unavailable: {failure!r}')
        return GitStatus.unavailable()

    porcelain = porcelain_task.result()
    unstaged_diff = unstaged_task.result()
    staged_diff = staged_task.result()

    staged_files, unstaged_files = parse_porcelain(porcelain)
    staged_added, staged_deleted = parse_numstat(staged_diff)
    unstaged_added, unstaged_deleted = parse_numstat(unstaged_diff)

    return GitStatus(
        branch=branch,
        has_changes=bool(porcelain.strip()),
        staged=FileChanges(added=staged_added, deleted=staged_deleted, files=staged_files),
        unstaged=FileChanges(added=unstaged_added, deleted=unstaged_deleted, files=unstaged_files),
    )
