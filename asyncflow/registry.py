"""Loops which are unique per identifier

A `LoopRegistry` guarantees that at most one loop is running for a given
identifier. Starting a new loop under an identifier that is already taken
cancels the loop currently holding it; the newest call always wins. This is a
debounce, not a queue.

There's no hidden global registry; make one and pass it to whatever needs
unique loops.

```
registry = LoopRegistry()
first = registry.unique("refresh").until(nursery, poll)
second = registry.unique("refresh").until(nursery, poll)
# `first` is now rejected with a Kind.CANCEL LoopTerminated
```

"""
from __future__ import annotations
from asyncflow.future import Future
from asyncflow.loop import Loop, LoopHandle
import logging
import outcome
import trio
import typing as t

__all__ = [
    'LoopRegistry',
    'UniqueLoop',
]

logger = logging.getLogger(__name__)

class UniqueLoop:
    "A starter for loops under one identifier of a LoopRegistry; use LoopRegistry.unique"
    def __init__(self, registry: LoopRegistry, id: str) -> None:
        self.registry = registry
        self.id = id

    def __repr__(self) -> str:
        name = type(self).__name__
        return f'{name}({self.id!r})'

    def until(self, nursery: trio.Nursery, handle: LoopHandle, iterations: t.Optional[int]=None) -> Future[None]:
        """Start a Loop under our identifier, cancelling whatever loop held it before

        Returns the new Loop's Future.

        """
        loop = self.registry.loop_class(handle, iterations)
        self.registry._replace(self.id, loop)
        return loop.start(nursery)

class LoopRegistry:
    """A map from identifier to the Loop currently running under that identifier

    Entries are dropped when their loop settles, so `get` only ever returns
    loops which are still running.

    """
    def __init__(self, loop_class: t.Type[Loop]=Loop) -> None:
        self.loop_class = loop_class
        self._loops: t.Dict[str, Loop] = {}

    def __contains__(self, id: str) -> bool:
        return id in self._loops

    def __len__(self) -> int:
        return len(self._loops)

    def get(self, id: str) -> t.Optional[Loop]:
        return self._loops.get(id)

    def unique(self, id: str) -> UniqueLoop:
        return UniqueLoop(self, id)

    def _replace(self, id: str, loop: Loop) -> None:
        occupant = self._loops.get(id)
        if occupant is not None:
            logger.debug("LoopRegistry: superseding %s under %r with %s", occupant, id, loop)
            occupant.cancel(f'Overriting unique task `{id}` with a newer one.')
        self._loops[id] = loop
        def forget(result: outcome.Outcome) -> None:
            # a newer loop may have taken our place already
            if self._loops.get(id) is loop:
                del self._loops[id]
        loop.future.add_done_callback(forget)
