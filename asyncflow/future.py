"""A single-settlement result container with chainable continuations

Every operation in asyncflow that describes background work hands back a
`Future`. A Future is settled exactly once, either with a value or with an
exception; any later attempt to settle it is silently ignored. That makes it
safe for several parties to race to settle the same Future: for example, a
Loop which finishes naturally at the same moment someone cancels it.

Continuations can be attached in two ways. From synchronous code, `then`,
`catch` and `add_done_callback` register callbacks which run as soon as the
Future settles, on the stack of whoever settled it. From async code, `get`
waits for settlement and returns the value or raises the exception.
An exception raised by a callback is logged, not propagated.

"""
from __future__ import annotations
import logging
import outcome
import trio
import typing as t

__all__ = [
    'Future',
]

logger = logging.getLogger(__name__)

T = t.TypeVar('T')

class Future(t.Generic[T]):
    def __init__(self) -> None:
        self._outcome: t.Optional[outcome.Outcome] = None
        self._callbacks: t.List[t.Callable[[outcome.Outcome], None]] = []
        self._event = trio.Event()

    def __repr__(self) -> str:
        name = type(self).__name__
        if self._outcome is None:
            return f'{name}(pending)'
        return f'{name}({self._outcome!r})'

    @property
    def outcome(self) -> t.Optional[outcome.Outcome]:
        "The captured result, or None if we haven't settled yet"
        return self._outcome

    def is_settled(self) -> bool:
        return self._outcome is not None

    def resolve(self, value: T) -> None:
        self.settle(outcome.Value(value))

    def reject(self, exn: BaseException) -> None:
        if not isinstance(exn, BaseException):
            raise TypeError("Futures can only be rejected with exceptions, not", exn)
        self.settle(outcome.Error(exn))

    def settle(self, result: outcome.Outcome) -> None:
        if self._outcome is not None:
            logger.debug("%s: ignoring late settlement with %s", self, result)
            return
        self._outcome = result
        callbacks, self._callbacks = self._callbacks, []
        self._event.set()
        for cb in callbacks:
            self._run_callback(cb, result)

    def _run_callback(self, cb: t.Callable[[outcome.Outcome], None], result: outcome.Outcome) -> None:
        # a raising callback must not stop the others, nor whoever settled us
        try:
            cb(result)
        except Exception:
            logger.exception("%s: done callback %s raised", self, cb)

    def add_done_callback(self, cb: t.Callable[[outcome.Outcome], None]) -> None:
        "Call `cb` with our outcome once we settle; immediately, if we already have"
        if self._outcome is not None:
            self._run_callback(cb, self._outcome)
        else:
            self._callbacks.append(cb)

    def then(self,
             on_value: t.Optional[t.Callable[[T], t.Any]]=None,
             on_error: t.Optional[t.Callable[[BaseException], t.Any]]=None,
    ) -> Future[t.Any]:
        """Return a new Future settled with the result of the matching handler

        If the matching handler is None, our own outcome passes straight
        through. If the handler returns a Future, the new Future adopts its
        outcome once it settles. If the handler raises, the new Future is
        rejected with that exception.

        """
        chained: Future[t.Any] = Future()
        def on_settled(result: outcome.Outcome) -> None:
            if isinstance(result, outcome.Value):
                if on_value is None:
                    chained.settle(result)
                    return
                call = outcome.capture(on_value, result.value)
            else:
                if on_error is None:
                    chained.settle(result)
                    return
                call = outcome.capture(on_error, result.error)
            if isinstance(call, outcome.Value) and isinstance(call.value, Future):
                call.value.add_done_callback(chained.settle)
            else:
                chained.settle(call)
        self.add_done_callback(on_settled)
        return chained

    def catch(self, on_error: t.Callable[[BaseException], t.Any]) -> Future[t.Any]:
        return self.then(None, on_error)

    async def get(self) -> T:
        "Wait until we settle, then return our value or raise our exception"
        await self._event.wait()
        # Outcome.unwrap is single-use, but a Future may be waited on many times.
        if isinstance(self._outcome, outcome.Error):
            raise self._outcome.error
        assert isinstance(self._outcome, outcome.Value)
        return self._outcome.value
