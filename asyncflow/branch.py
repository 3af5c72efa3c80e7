"""Asynchronous if/else

`If` evaluates a condition on the next scheduler pass and calls one of two
handles depending on the answer:

```
branch = If(nursery, lambda: cache.is_fresh()).then(use_cache).else_(refetch)
result = await branch.get()
```

`else` is a Python keyword, hence `else_`. A handle may return another Branch,
in which case its Future is adopted instead, so conditionals can be nested.

"""
from __future__ import annotations
from asyncflow.concurrency import defer
from asyncflow.future import Future
import logging
import trio
import typing as t

__all__ = [
    'Branch',
    'If',
]

logger = logging.getLogger(__name__)

def _nothing() -> None:
    return None

class Branch:
    """Picks a handle to run once `future` resolves to True or False

    `next` is a Future for whatever the chosen handle returns. A result other
    than exactly True or False runs neither handle, and `next` resolves to None.

    """
    def __init__(self, future: Future[t.Any]) -> None:
        self.future = future
        self.then_handle: t.Callable[[], t.Any] = _nothing
        self.else_handle: t.Callable[[], t.Any] = _nothing
        self.next: Future[t.Any] = future.then(self._choose)

    def __repr__(self) -> str:
        name = type(self).__name__
        return f'{name}({self.future!r})'

    def _choose(self, result: t.Any) -> t.Any:
        returned = None
        if result is True:
            returned = self.then_handle()
        elif result is False:
            returned = self.else_handle()
        else:
            logger.debug("%s: condition gave non-boolean %r, taking neither branch", self, result)
        if isinstance(returned, Branch):
            return returned.future
        return returned

    def then(self, handle: t.Callable[[], t.Any]) -> Branch:
        "Run `handle` if the condition is True"
        self.then_handle = handle
        return self

    def else_(self, handle: t.Callable[[], t.Any]) -> Branch:
        "Run `handle` if the condition is False; the returned Branch wraps the result of either handle"
        self.else_handle = handle
        return Branch(self.next)

    async def get(self) -> t.Any:
        return await self.future.get()

def If(nursery: trio.Nursery, condition: t.Callable[[], t.Any]) -> Branch:
    "Evaluate `condition` on the next scheduler pass, and branch on its result"
    return Branch(defer(nursery, condition)())
