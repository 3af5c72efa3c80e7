"""Control flow built out of Futures, on top of trio

asyncflow provides a few primitives which express loops, iteration,
branching and offloaded execution as background activity that hands back a
`Future`, rather than as direct calls:

- `Loop`: call a handle once per scheduler pass until it reports completion,
  hits an iteration cap, or is stopped from outside.
- `LoopRegistry`: at most one running Loop per identifier; a newer loop
  cancels the older one.
- `Thread` and `threaded`: run a module-level function in an isolated worker
  process, one request and one response at a time.
- `List`: `each`, `map`, `filter` and `find` over a sequence, one element per
  scheduler pass.
- `If`: branch on a condition evaluated on the next scheduler pass.
- `defer`: run a function on the next scheduler pass.

Everything that runs in the background does so in a `trio.Nursery` that the
caller passes in explicitly; there's no hidden global scheduler or registry.

```
async with trio.open_nursery() as nursery:
    evens = await List(nursery, [1, 2, 3, 4]).filter(lambda x, i: x % 2 == 0).get()
```

"""
from asyncflow.exceptions import (
    AsyncFlowError, Kind, LoopTerminated, NotFound,
    ThreadError, ThreadTerminated, NotStarted, AlreadyStarted, AlreadyExecuting,
)
from asyncflow.future import Future
from asyncflow.concurrency import defer
from asyncflow.loop import Loop, LoopControl
from asyncflow.registry import LoopRegistry, UniqueLoop
from asyncflow.thread import Thread, threaded
from asyncflow.iterate import List, Match
from asyncflow.branch import If, Branch

__all__ = [
    'AsyncFlowError', 'Kind', 'LoopTerminated', 'NotFound',
    'ThreadError', 'ThreadTerminated', 'NotStarted', 'AlreadyStarted', 'AlreadyExecuting',
    'Future',
    'defer',
    'Loop', 'LoopControl',
    'LoopRegistry', 'UniqueLoop',
    'Thread', 'threaded',
    'List', 'Match',
    'If', 'Branch',
]
