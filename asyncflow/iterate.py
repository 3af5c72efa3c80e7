"""Iterating over a sequence one element per scheduler pass

All of these are built on `Loop`, so iteration is strictly sequential and in
index order, and other tasks get to run between elements. Callbacks receive
`(item, index)` and may be plain functions or coroutine functions.

"""
from __future__ import annotations
from asyncflow.concurrency import call_handle
from asyncflow.exceptions import NotFound
from asyncflow.future import Future
from asyncflow.loop import Loop, LoopControl
from dataclasses import dataclass
import outcome
import trio
import typing as t

__all__ = [
    'List',
    'Match',
]

T = t.TypeVar('T')
U = t.TypeVar('U')

@dataclass(frozen=True)
class Match(t.Generic[T]):
    "What List.find resolves with"
    item: T
    index: int

class List(t.Generic[T]):
    def __init__(self, nursery: trio.Nursery, items: t.Sequence[T]) -> None:
        self.nursery = nursery
        self.items = items

    def __repr__(self) -> str:
        name = type(self).__name__
        return f'{name}({self.items!r})'

    def _iterate(self, handle: t.Callable[[T, int, LoopControl], t.Any]) -> Future[None]:
        index = 0
        async def step(control: LoopControl) -> bool:
            nonlocal index
            if index > len(self.items) - 1:
                # only reachable for an empty sequence
                return True
            await call_handle(handle, self.items[index], index, control)
            index += 1
            return index > len(self.items) - 1
        return Loop.until(self.nursery, step)

    def each(self, handle: t.Callable[[T, int], t.Any]) -> Future[None]:
        "Call `handle(item, index)` on each element; the Future fulfills once all have been visited"
        async def visit(item: T, index: int, control: LoopControl) -> None:
            await call_handle(handle, item, index)
        return self._iterate(visit)

    def map(self, handle: t.Callable[[T, int], U]) -> Future[t.List[U]]:
        results: t.List[U] = []
        async def visit(item: T, index: int) -> None:
            results.append(await call_handle(handle, item, index))
        return self.each(visit).then(lambda _: results)

    def filter(self, condition: t.Callable[[T, int], t.Any]) -> Future[t.List[T]]:
        results: t.List[T] = []
        async def visit(item: T, index: int) -> None:
            if await call_handle(condition, item, index):
                results.append(item)
        return self.each(visit).then(lambda _: results)

    def find(self, condition: t.Callable[[T, int], t.Any]) -> Future[Match[T]]:
        """Resolve with the first element matching `condition`, stopping the iteration there

        If nothing matches, the Future is rejected with NotFound.

        """
        found: Future[Match[T]] = Future()
        async def visit(item: T, index: int, control: LoopControl) -> None:
            if await call_handle(condition, item, index):
                found.resolve(Match(item, index))
                control.request_stop()
        def finished(result: outcome.Outcome) -> None:
            if isinstance(result, outcome.Error):
                found.reject(result.error)
            else:
                # a no-op if we found something
                found.reject(NotFound("no element matched", condition))
        self._iterate(visit).add_done_callback(finished)
        return found
