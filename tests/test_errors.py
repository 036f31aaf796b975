"""Tests for struct/exception error variants."""

from __future__ import annotations

import pickle

import msgspec
import pytest

from emitkit.errors import (
    DispatchFailed,
    DispatchFailedError,
    NotResolved,
    NotResolvedError,
    SubscriberFailure,
    SubscriberFailureError,
)


def sample_handler(value: int) -> None:
    raise ValueError(value)


class TestSubscriberFailure:
    """Tests for SubscriberFailure and SubscriberFailureError."""

    def test_from_exception(self) -> None:
        """from_exception() records handler, type and message."""
        failure = SubscriberFailure.from_exception(ValueError('bad'), handler=sample_handler, channel='c')

        assert failure.handler == 'sample_handler'
        assert failure.error_type == 'ValueError'
        assert failure.message == 'bad'
        assert failure.channel == 'c'

    def test_handler_without_name_uses_repr(self) -> None:
        """Callables without __qualname__ are described by repr()."""

        class Callable:
            def __call__(self, value: int) -> None:
                pass

            def __repr__(self) -> str:
                return '<callable>'

        failure = SubscriberFailure.from_exception(RuntimeError('x'), handler=Callable())

        assert failure.handler == '<callable>'

    def test_to_exception(self) -> None:
        """The exception variant carries the same fields."""
        error = SubscriberFailure('h', 'ValueError', 'bad', 'orders').to_exception()

        assert isinstance(error, SubscriberFailureError)
        assert error.handler == 'h'
        assert str(error) == "[orders] Subscriber 'h' failed: bad"

    def test_to_struct_uses_cause_type(self) -> None:
        """to_struct() takes the error type from __cause__ when set."""
        error = SubscriberFailureError('h', 'bad')
        error.__cause__ = KeyError('k')

        assert error.to_struct().error_type == 'KeyError'

    def test_struct_is_json_encodable(self) -> None:
        """Failures encode to JSON for structured reporting."""
        failure = SubscriberFailure('h', 'ValueError', 'bad')

        decoded = msgspec.json.decode(msgspec.json.encode(failure), type=SubscriberFailure)

        assert decoded == failure


class TestDispatchFailed:
    """Tests for DispatchFailed and DispatchFailedError."""

    def test_is_exception_group(self) -> None:
        """DispatchFailedError bundles the underlying errors."""
        errors = [ValueError('a'), KeyError('b')]

        group = DispatchFailedError(errors, channel='jobs')

        assert isinstance(group, ExceptionGroup)
        assert list(group.exceptions) == errors
        assert group.message == '[jobs] 2 subscribers failed during emit'

    def test_singular_message(self) -> None:
        """A single failure uses the singular form."""
        group = DispatchFailedError([ValueError('a')])

        assert group.message == '1 subscriber failed during emit'

    def test_split_keeps_type_and_channel(self) -> None:
        """split() derives DispatchFailedError instances."""
        group = DispatchFailedError([ValueError('a'), KeyError('b')], channel='jobs')

        matched, rest = group.split(ValueError)

        assert isinstance(matched, DispatchFailedError)
        assert matched.channel == 'jobs'
        assert isinstance(rest, DispatchFailedError)
        assert len(matched.exceptions) == 1

    def test_to_struct_with_handlers(self) -> None:
        """to_struct() pairs each exception with its handler."""
        group = DispatchFailedError([ValueError('a')], channel='jobs', handlers=[sample_handler])

        report = group.to_struct()

        assert isinstance(report, DispatchFailed)
        assert report.failures[0].handler == 'sample_handler'
        assert report.failures[0].channel == 'jobs'

    def test_pickle_keeps_exceptions_and_context(self) -> None:
        """A pickled DispatchFailedError restores its exceptions, channel and handlers."""
        error = DispatchFailedError([ValueError('x')], channel='jobs', handlers=[sample_handler])

        restored = pickle.loads(pickle.dumps(error))

        assert type(restored) is DispatchFailedError
        assert restored.channel == 'jobs'
        assert restored.handlers == (sample_handler,)
        assert [str(e) for e in restored.exceptions] == ['x']
        assert str(restored) == str(error)

    def test_struct_to_exception(self) -> None:
        """The struct rebuilds SubscriberFailureErrors."""
        report = DispatchFailed((SubscriberFailure('h', 'ValueError', 'a'),), channel='jobs')

        group = report.to_exception()

        assert isinstance(group, DispatchFailedError)
        assert isinstance(group.exceptions[0], SubscriberFailureError)
        assert group.channel == 'jobs'


class TestNotResolved:
    """Tests for NotResolved variants."""

    def test_round_trip(self) -> None:
        """Struct and exception convert into each other."""
        error = NotResolved().to_exception()

        assert isinstance(error, NotResolvedError)
        assert error.to_struct() == NotResolved()
        with pytest.raises(NotResolvedError, match='not resolved'):
            raise error
