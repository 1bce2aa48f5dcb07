"""Fallback boundary: an escaped exception becomes a rendered error status.

Data sources recover locally (git, network, ccusage each return a neutral
value). Anything that still escapes, such as bad stdin, a broken config file,
or a formatting bug, reaches the boundary around the render entry point. The
host shows whatever the command prints and ignores its exit status, so the
boundary never re-raises: it asks a message function registered for the
exception type for one line of text and hands it to the fallback renderer.

    boundary = FallbackBoundary(print_fallback, on_error=write_error_log)

    @boundary.message_for(pydantic.ValidationError)
    def _validation_message(exc: pydantic.ValidationError) -> str:
        return first_error(exc)

    @boundary
    def run_statusline(raw: str) -> None:
        ...

System exceptions (KeyboardInterrupt, SystemExit) always pass through.
"""

from __future__ import annotations

__all__ = [
    'FallbackBoundary',
    'MessageFor',
]

import functools
import logging
from collections.abc import Callable
from functools import singledispatch
from typing import Any, ParamSpec

logger = logging.getLogger(__name__)

type MessageFor[E: Exception] = Callable[[E], str]

_P = ParamSpec('_P')


def _default_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class FallbackBoundary:
    """Turn application exceptions into a one-line message for the fallback status.

    Message functions are matched by MRO (``functools.singledispatch``); any
    type without a registration uses ``str(exc)``.

    Args:
        render: Prints the fallback status for a message.
        on_error: Called with the exception before rendering (error log,
            debug logging). Must not raise.
    """

    def __init__(
        self,
        render: Callable[[str], None],
        *,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._messages = singledispatch(_default_message)
        self._render = render
        self._on_error = on_error

    def message_for[E: Exception](self, exc_type: type[E]) -> Callable[[MessageFor[E]], MessageFor[E]]:
        """Register the message function for an exception type."""

        def register(func: MessageFor[E]) -> MessageFor[E]:
            self._messages.register(exc_type, func)
            return func

        return register

    def message(self, exc: Exception) -> str:
        """Message for exc; a message function that itself fails falls back to the type name."""
        try:
            return self._messages(exc)
        except Exception as e:
            logger.debug(f'message function failed for {type(exc).__name__}: {e!r}')
            return type(exc).__name__

    def __call__(self, func: Callable[_P, Any]) -> Callable[_P, None]:
        @functools.wraps(func)
        def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> None:
            try:
                func(*args, **kwargs)
            except Exception as exc:
                if self._on_error is not None:
                    self._on_error(exc)
                self._render(self.message(exc))

        return wrapper
