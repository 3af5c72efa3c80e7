"Miscellaneous concurrency-management utilities."
from __future__ import annotations
from asyncflow.exceptions import AsyncFlowError
from asyncflow.future import Future
import functools
import inspect
import logging
import trio
import typing as t

__all__ = [
    'call_handle',
    'defer',
]

logger = logging.getLogger(__name__)

T = t.TypeVar('T')

async def call_handle(handle: t.Callable[..., t.Any], *args: t.Any) -> t.Any:
    """Call a user-supplied handle, which may be a plain function or a coroutine function.

    If the call returns an awaitable, we wait for it and return its result
    instead.

    """
    ret = handle(*args)
    if inspect.isawaitable(ret):
        ret = await ret
    return ret

def defer(nursery: trio.Nursery, fn: t.Callable[..., T]) -> t.Callable[..., Future[T]]:
    """Wrap `fn` so that calling it runs it on the next scheduler pass, in `nursery`.

    The wrapper returns immediately with a Future for the eventual result;
    if `fn` raises, the Future is rejected with that exception.

    """
    if not callable(fn):
        raise TypeError("can't defer a non-callable", fn)
    @functools.wraps(fn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> Future[T]:
        future: Future[T] = Future()
        async def run() -> None:
            try:
                await trio.sleep(0)
                value = await call_handle(functools.partial(fn, **kwargs), *args)
            except Exception as exn:
                logger.debug("defer(%s): raised %r", fn, exn)
                future.reject(exn)
            else:
                future.resolve(value)
            finally:
                if not future.is_settled():
                    future.reject(AsyncFlowError("scheduler shut down before the call completed"))
        nursery.start_soon(run)
        return future
    return wrapper
