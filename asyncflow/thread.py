"""Running a function in an isolated worker process

A `Thread` owns one worker process and the pipe used to talk to it. The parent
sends one request and the worker sends back exactly one response:

```
{"type": "exec", "data": [arg, ...]}                      # parent -> worker
{"type": "result", "data": value}                         # worker -> parent
{"type": "error", "data": {"message": str, "stack": str}}  # worker -> parent
```

The worker can't see the caller's memory, so the handle has to be something
`pickle` can send by reference: a function defined at module level, not a
lambda or a closure. We check this when the Thread is made, rather than
failing later inside the worker.

Errors raised by the handle can't cross the process boundary as live
exceptions; the caller gets a `ThreadError` carrying the original message and
formatted stack instead.

"""
from __future__ import annotations
from asyncflow.exceptions import ThreadError, ThreadTerminated, NotStarted, AlreadyExecuting
from asyncflow.future import Future
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
import functools
import logging
import multiprocessing
import outcome
import pickle
import traceback
import trio
import typing as t

__all__ = [
    'Thread',
    'threaded',
]

logger = logging.getLogger(__name__)

T = t.TypeVar('T')

def _serve(connection: Connection, handle: t.Callable[..., t.Any]) -> None:
    "The body of the worker process: answer exec requests until the parent hangs up"
    while True:
        try:
            msg = connection.recv()
        except EOFError:
            return
        if msg.get('type') != 'exec':
            continue
        try:
            reply = {'type': 'result', 'data': handle(*msg['data'])}
            # pickle now, so that an unpicklable result is reported like any other error
            payload = pickle.dumps(reply)
        except Exception as exn:
            payload = pickle.dumps({'type': 'error', 'data': {
                'message': str(exn),
                'stack': traceback.format_exc(),
            }})
        connection.send_bytes(payload)

def _in_trio() -> bool:
    try:
        trio.lowlevel.current_task()
    except RuntimeError:
        return False
    return True

class Thread:
    def __init__(self, handle: t.Callable[..., t.Any],
                 *, start_method: str="spawn",
                 join_timeout: float=0.1,
    ) -> None:
        if not callable(handle):
            raise TypeError("thread handle must be callable, not", handle)
        try:
            pickle.dumps(handle)
        except (pickle.PicklingError, AttributeError, TypeError) as e:
            raise TypeError("thread handle must be a module-level function, which can be sent to a worker process",
                            handle) from e
        self.handle = handle
        self.start_method = start_method
        self.join_timeout = join_timeout
        self.process: t.Optional[BaseProcess] = None
        self.connection: t.Optional[Connection] = None
        self.future: t.Optional[Future[t.Any]] = None
        self._nursery: t.Optional[trio.Nursery] = None

    def __repr__(self) -> str:
        name = type(self).__name__
        return f'{name}({self.handle!r}, process={self.process!r})'

    def start(self, nursery: trio.Nursery) -> Thread:
        """Spawn a fresh worker process, terminating the previous one if there is one

        Responses from the worker are waited for in `nursery`.

        """
        if self.process is not None:
            self.terminate()
        context = multiprocessing.get_context(self.start_method)
        parent_end, child_end = context.Pipe()
        process = context.Process(target=_serve, args=(child_end, self.handle), daemon=True)
        process.start()
        # the worker holds its own copy now; dropping ours lets recv see EOF if it dies
        child_end.close()
        logger.debug("%s: started worker %s", self, process)
        self.process = process
        self.connection = parent_end
        self._nursery = nursery
        return self

    def exec(self, params: t.Sequence[t.Any]=()) -> Future[t.Any]:
        "Call the handle in the worker with these arguments, returning a Future for the result"
        if self.connection is None or self._nursery is None:
            raise NotStarted("Thread.start must be called before Thread.exec", self)
        if self.future is not None and not self.future.is_settled():
            raise AlreadyExecuting("this Thread is still waiting on its previous exec", self)
        # if the arguments can't be pickled, send raises before anything is written
        self.connection.send({'type': 'exec', 'data': list(params)})
        future: Future[t.Any] = Future()
        self.future = future
        self._nursery.start_soon(self._receive, self.connection, future)
        return future

    async def _receive(self, connection: Connection, future: Future[t.Any]) -> None:
        try:
            await trio.lowlevel.wait_readable(connection.fileno())
            msg = connection.recv()
        except (trio.ClosedResourceError, EOFError, OSError) as e:
            # if we were terminated, the future is already rejected and this does nothing
            future.reject(ThreadError(f"worker exited without responding: {e!r}"))
            return
        logger.debug("%s: received %s response", self, msg['type'])
        if msg['type'] == 'result':
            future.resolve(msg['data'])
        elif msg['type'] == 'error':
            future.reject(ThreadError(msg['data']['message'], msg['data']['stack']))
        else:
            future.reject(ThreadError(f"unknown response type from worker: {msg['type']!r}"))

    def terminate(self) -> Thread:
        """Kill the worker and release the pipe, rejecting any in-flight exec

        Doing this to a Thread that isn't running does nothing.

        """
        if self.process is None:
            return self
        process, connection, nursery = self.process, self.connection, self._nursery
        self.process = None
        self.connection = None
        self._nursery = None
        logger.debug("%s: terminating worker %s", self, process)
        if self.future is not None:
            self.future.reject(ThreadTerminated())
        if connection is not None:
            if _in_trio():
                # wake up any _receive waiting on this fd before we close it
                trio.lowlevel.notify_closing(connection.fileno())
            connection.close()
        process.kill()
        if nursery is None:
            process.join(self.join_timeout)
        else:
            try:
                nursery.start_soon(self._reap, process)
            except RuntimeError:
                # the nursery has already closed
                process.join(self.join_timeout)
        return self

    async def _reap(self, process: BaseProcess) -> None:
        await trio.to_thread.run_sync(process.join)
        logger.debug("%s: reaped worker %s", self, process)

def threaded(handle: t.Callable[..., T], **options: t.Any) -> t.Callable[..., t.Awaitable[T]]:
    """Return an async function which runs `handle` in its own worker process on each call

    A new Thread is started for every call and terminated once the call
    finishes, whether it succeeded or not. `options` are passed on to Thread.

    """
    # make sure a bad handle fails now, not on the first call
    Thread(handle, **options)
    @functools.wraps(handle)
    async def call(*args: t.Any) -> T:
        thread = Thread(handle, **options)
        async with trio.open_nursery() as nursery:
            thread.start(nursery)
            async def run() -> T:
                return await thread.exec(args).get()
            try:
                result = await outcome.acapture(run)
            finally:
                thread.terminate()
        return result.unwrap()
    return call
