"""Tests for FallbackBoundary: message dispatch, fallback rendering, and pass-through."""

from __future__ import annotations

import pydantic
import pytest

from claude_statusline.error_boundary import FallbackBoundary


class Point(pydantic.BaseModel):
    x: int


class Recorder:
    def __init__(self) -> None:
        self.rendered: list[str] = []
        self.errors: list[Exception] = []

    def boundary(self) -> FallbackBoundary:
        return FallbackBoundary(self.rendered.append, on_error=self.errors.append)


def test_message_dispatched_by_exception_type() -> None:
    recorder = Recorder()
    boundary = recorder.boundary()

    @boundary.message_for(pydantic.ValidationError)
    def _validation(exc: pydantic.ValidationError) -> str:
        return f'{exc.error_count()} invalid fields'

    @boundary
    def parse() -> None:
        Point.model_validate({'x': 'nope'})

    @boundary
    def crash() -> None:
        raise KeyError('k')

    parse()
    crash()

    assert recorder.rendered == ['1 invalid fields', "'k'"]
    assert [type(e) for e in recorder.errors] == [pydantic.ValidationError, KeyError]


def test_subclass_uses_parent_registration() -> None:
    recorder = Recorder()
    boundary = recorder.boundary()

    @boundary.message_for(LookupError)
    def _lookup(exc: LookupError) -> str:
        return 'lookup failed'

    @boundary
    def crash() -> None:
        raise IndexError(3)

    crash()
    assert recorder.rendered == ['lookup failed']


def test_no_error_renders_nothing() -> None:
    recorder = Recorder()
    calls: list[int] = []

    @recorder.boundary()
    def add(a: int, b: int) -> None:
        calls.append(a + b)

    add(2, 3)

    assert calls == [5]
    assert recorder.rendered == []
    assert recorder.errors == []


def test_empty_message_uses_type_name() -> None:
    recorder = Recorder()

    @recorder.boundary()
    def crash() -> None:
        raise RuntimeError

    crash()
    assert recorder.rendered == ['RuntimeError']


def test_failing_message_function_falls_back_to_type_name() -> None:
    recorder = Recorder()
    boundary = recorder.boundary()

    @boundary.message_for(ValueError)
    def _broken(exc: ValueError) -> str:
        raise RuntimeError('message broke')

    @boundary
    def crash() -> None:
        raise ValueError('original')

    crash()
    assert recorder.rendered == ['ValueError']


def test_system_exceptions_pass_through() -> None:
    recorder = Recorder()

    @recorder.boundary()
    def interrupted() -> None:
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        interrupted()
    assert recorder.rendered == []
