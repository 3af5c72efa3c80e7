"""A cancellable, optionally bounded polling loop

A Loop repeatedly calls a handle, once per scheduler pass, until the handle
returns something truthy. Between calls the loop yields back to trio, so other
tasks interleave with it; no two calls of the same loop ever overlap.

```
async with trio.open_nursery() as nursery:
    future = Loop.until(nursery, lambda control: queue_is_empty(), 100)
    ...
    await future.get()
```

Each loop owns exactly one `Future`. It is fulfilled with None when the handle
reports completion, and rejected with a `LoopTerminated` when the loop is
stopped any other way: the iteration cap was hit (`Kind.KILL`), someone called
`cancel` (`Kind.CANCEL`) or `terminate` (`Kind.TERMINATE` by default), or the
handle itself raised (`Kind.ERROR`).

Stopping is always external to the handle's own control flow and always
synchronous: `done`, `terminate`, `cancel` and `kill` settle the Future and
cancel the loop's task right away. The task re-checks whether the loop is still
active before every call to the handle and after every return from it, so a
loop that has settled never calls its handle again, even if it was stopped
from inside that very handle.

"""
from __future__ import annotations
from asyncflow.concurrency import call_handle
from asyncflow.exceptions import Kind, LoopTerminated, AlreadyStarted
from asyncflow.future import Future
import logging
import trio
import typing as t

__all__ = [
    'Loop',
    'LoopControl',
]

logger = logging.getLogger(__name__)

class LoopControl:
    "Passed to a Loop's handle on each call, so the handle can look at and stop its loop"
    def __init__(self, loop: Loop) -> None:
        self._loop = loop

    @property
    def iteration(self) -> int:
        "The 1-based number of the current call"
        return self._loop.iteration

    def request_stop(self) -> None:
        "Finish the loop successfully, without calling the handle again"
        self._loop.done()

LoopHandle = t.Callable[[LoopControl], t.Any]

class Loop:
    def __init__(self, handle: LoopHandle, iterations: t.Optional[int]=None) -> None:
        if not callable(handle):
            raise TypeError("loop handle must be callable, not", handle)
        if iterations is not None:
            if isinstance(iterations, bool) or not isinstance(iterations, int):
                raise TypeError("iterations must be an int or None, not", iterations)
            if iterations < 1:
                raise ValueError("iterations must be positive, not", iterations)
        self.handle = handle
        self.max_iterations = iterations
        self.iteration = 1
        self.future: Future[None] = Future()
        self.control = LoopControl(self)
        self._started = False
        self._cancel_scope: t.Optional[trio.CancelScope] = None

    def __repr__(self) -> str:
        name = type(self).__name__
        return f'{name}({self.handle!r}, iteration={self.iteration}, max_iterations={self.max_iterations})'

    def is_active(self) -> bool:
        return not self.future.is_settled()

    def start(self, nursery: trio.Nursery) -> Future[None]:
        "Start calling the handle in `nursery`, and return our Future immediately"
        if self._started:
            raise AlreadyStarted("a Loop can only be started once", self)
        self._started = True
        self._cancel_scope = trio.CancelScope()
        nursery.start_soon(self._run, self._cancel_scope)
        return self.future

    async def _run(self, cancel_scope: trio.CancelScope) -> None:
        with cancel_scope:
            try:
                while self.is_active():
                    try:
                        finished = await call_handle(self.handle, self.control)
                    except Exception as exn:
                        logger.debug("%s: handle raised %r", self, exn)
                        self._fail(exn)
                        return
                    if not self.is_active():
                        # the handle stopped us, one way or another
                        return
                    if finished:
                        self.done()
                        return
                    if self.max_iterations is not None and self.iteration == self.max_iterations:
                        self.kill('maximum iterations reached.')
                        return
                    self.iteration += 1
                    await trio.sleep(0)
            finally:
                if self.is_active():
                    self.terminate(Kind.TERMINATE, "scheduler shut down")

    def _deschedule(self) -> None:
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()
            self._cancel_scope = None

    def done(self) -> None:
        "Stop the loop normally, fulfilling our Future"
        self._deschedule()
        if self.is_active():
            logger.debug("%s: done", self)
        self.future.resolve(None)

    def terminate(self, kind: t.Union[Kind, str]=Kind.TERMINATE, message: t.Optional[str]=None) -> None:
        """Interrupt the loop, rejecting our Future with a LoopTerminated of this kind

        `kind` may also be given by name, such as "Cancel"; an unknown name raises ValueError.

        """
        kind = Kind(kind)
        self._deschedule()
        exn = LoopTerminated(kind, message or 'Unknown reason')
        if self.is_active():
            logger.debug("%s: %s", self, exn)
        self.future.reject(exn)

    def _fail(self, exn: Exception) -> None:
        self._deschedule()
        error = LoopTerminated(Kind.ERROR, str(exn) or type(exn).__name__)
        error.__cause__ = exn
        self.future.reject(error)

    def cancel(self, message: t.Optional[str]=None) -> None:
        self.terminate(Kind.CANCEL, message)

    def kill(self, message: t.Optional[str]=None) -> None:
        self.terminate(Kind.KILL, message)

    @classmethod
    def until(cls, nursery: trio.Nursery, handle: LoopHandle, iterations: t.Optional[int]=None) -> Future[None]:
        "Loop until the handle returns something truthy, or `iterations` calls have been made"
        return cls(handle, iterations).start(nursery)
