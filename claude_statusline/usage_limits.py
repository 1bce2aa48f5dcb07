"""Five-hour rate-limit utilization from the OAuth usage endpoint.

Token lookup order:
  1. $CLAUDE_CODE_OAUTH_TOKEN
  2. ~/.claude/.credentials.json  (claudeAiOauth.accessToken)
  3. macOS Keychain entry "Claude Code-credentials"

Responses are cached on disk for CACHE_TTL_SECONDS so rapid successive
renders don't each hit the network. Every failure (no token, HTTP error,
timeout, bad JSON) resolves to an empty ``UsageLimits()``. No retries; the
next refresh tries again.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
from pathlib import Path

import httpx
import pydantic
import pydantic.alias_generators

from claude_statusline.schemas import StrictModel, UsageLimits
from claude_statusline.storage import STATE_DIR, atomic_write_text

__all__ = [
    'CACHE_PATH',
    'CACHE_TTL_SECONDS',
    'CREDENTIALS_PATH',
    'DEFAULT_USAGE_TIMEOUT',
    'USAGE_URL',
    'get_oauth_token',
    'get_usage_limits',
]

logger = logging.getLogger(__name__)

USAGE_URL = 'https://api.anthropic.com/api/oauth/usage'
OAUTH_BETA_HEADER = 'oauth-2025-04-20'
TOKEN_ENV_VAR = 'CLAUDE_CODE_OAUTH_TOKEN'
KEYCHAIN_SERVICE = 'Claude Code-credentials'
CREDENTIALS_PATH = Path('~/.claude/.credentials.json').expanduser()
CACHE_PATH = STATE_DIR / 'usage-limits-cache.json'
CACHE_TTL_SECONDS = 60
DEFAULT_USAGE_TIMEOUT = 3.0


# =============================================================================
# Credential models (projections of external files)
# =============================================================================


class _OAuthSection(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        extra='ignore',
        frozen=True,
        alias_generator=pydantic.alias_generators.to_camel,
        populate_by_name=True,
    )

    access_token: str = ''


class _StoredCredentials(pydantic.BaseModel):
    """~/.claude/.credentials.json or the Keychain payload (camelCase)."""

    model_config = pydantic.ConfigDict(
        extra='ignore',
        frozen=True,
        alias_generator=pydantic.alias_generators.to_camel,
        populate_by_name=True,
    )

    claude_ai_oauth: _OAuthSection | None = None


class CachedUsageLimits(StrictModel):
    """Cache wrapper: UsageLimits + timestamp for TTL."""

    timestamp: float
    limits: UsageLimits


def _token_from_json(raw: str | bytes) -> str | None:
    try:
        creds = _StoredCredentials.model_validate_json(raw)
    except pydantic.ValidationError:
        return None
    if creds.claude_ai_oauth is None or not creds.claude_ai_oauth.access_token:
        return None
    return creds.claude_ai_oauth.access_token


async def _keychain_token(timeout: float) -> str | None:
    if sys.platform != 'darwin':
        return None
    proc = await asyncio.create_subprocess_exec(
        'security',
        'find-generic-password',
        '-s',
        KEYCHAIN_SERVICE,
        '-w',
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    if proc.returncode != 0:
        return None
    return _token_from_json(stdout.strip())


async def get_oauth_token(
    credentials_path: Path = CREDENTIALS_PATH,
    timeout: float = DEFAULT_USAGE_TIMEOUT,
) -> str | None:
    """Find an OAuth access token, or None when the user isn't logged in via OAuth."""
    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        return env_token

    if credentials_path.is_file():
        try:
            token = _token_from_json(credentials_path.read_bytes())
        except OSError as e:
            logger.debug(f'credentials file unreadable: {e!r}')
        else:
            if token:
                return token

    return await _keychain_token(timeout)


def _read_cache(cache_path: Path, now: float) -> UsageLimits | None:
    if not cache_path.exists():
        return None
    try:
        cached = CachedUsageLimits.model_validate_json(cache_path.read_bytes())
    except (pydantic.ValidationError, OSError):
        return None
    if now - cached.timestamp > CACHE_TTL_SECONDS:
        return None
    return cached.limits


def _write_cache(cache_path: Path, limits: UsageLimits, now: float) -> None:
    cached = CachedUsageLimits(timestamp=now, limits=limits)
    try:
        atomic_write_text(cache_path, cached.model_dump_json())
    except OSError as e:
        logger.debug(f'usage cache not written: {e!r}')


async def _fetch_usage(token: str, timeout: float, transport: httpx.AsyncBaseTransport | None) -> UsageLimits:
    headers = {
        'Authorization': f'Bearer {token}',
        'anthropic-beta': OAUTH_BETA_HEADER,
        'Accept': 'application/json',
    }
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.get(USAGE_URL, headers=headers)
        response.raise_for_status()
    return UsageLimits.model_validate_json(response.content)


async def get_usage_limits(
    *,
    timeout: float = DEFAULT_USAGE_TIMEOUT,
    cache_path: Path | None = CACHE_PATH,
    credentials_path: Path = CREDENTIALS_PATH,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UsageLimits:
    """Current rate-limit utilization, or an empty UsageLimits when unavailable.

    Args:
        timeout: Bound on the whole lookup (keychain + HTTP), in seconds.
        cache_path: On-disk cache location. None disables caching.
        credentials_path: Credentials file consulted after the env var.
        transport: httpx transport override (tests use httpx.MockTransport).
    """
    now = time.time()
    if cache_path is not None:
        cached = _read_cache(cache_path, now)
        if cached is not None:
            return cached

    try:
        async with asyncio.timeout(timeout):
            token = await get_oauth_token(credentials_path, timeout)
            if token is None:
                logger.debug('usage limits skipped: no OAuth token')
                return UsageLimits()
            limits = await _fetch_usage(token, timeout, transport)
    except (httpx.HTTPError, pydantic.ValidationError, TimeoutError, OSError) as e:
        logger.debug(f'usage limits unavailable: {e!r}')
        return UsageLimits()

    if cache_path is not None:
        _write_cache(cache_path, limits, now)
    return limits
