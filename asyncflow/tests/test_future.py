from asyncflow.future import Future
from asyncflow.tests.trio_test_case import TrioTestCase
import outcome
import trio
import unittest

class MyException(Exception):
    pass

class TestFuture(unittest.TestCase):
    def test_first_settlement_wins(self) -> None:
        fut: Future[int] = Future()
        fut.resolve(1)
        fut.resolve(2)
        fut.reject(MyException())
        self.assertEqual(fut.outcome.unwrap(), 1)

    def test_reject_needs_exception(self) -> None:
        fut: Future[int] = Future()
        with self.assertRaises(TypeError):
            fut.reject("no") # type: ignore
        self.assertFalse(fut.is_settled())

    def test_callback_after_settlement(self) -> None:
        fut: Future[int] = Future()
        fut.resolve(3)
        seen = []
        fut.add_done_callback(seen.append)
        self.assertEqual([result.unwrap() for result in seen], [3])

    def test_raising_callback(self) -> None:
        fut: Future[int] = Future()
        seen = []
        def explode(result) -> None:
            raise RuntimeError("callback failed")
        fut.add_done_callback(explode)
        fut.add_done_callback(seen.append)
        with self.assertLogs('asyncflow.future', level='ERROR'):
            fut.resolve(1)
        self.assertEqual(len(seen), 1)

    def test_then_chain(self) -> None:
        fut: Future[int] = Future()
        doubled = fut.then(lambda x: x * 2)
        fut.resolve(21)
        self.assertEqual(doubled.outcome.unwrap(), 42)

    def test_then_passes_errors_through(self) -> None:
        fut: Future[int] = Future()
        exn = MyException()
        recovered = fut.then(lambda x: x * 2).catch(lambda e: "recovered")
        fut.reject(exn)
        self.assertEqual(recovered.outcome.unwrap(), "recovered")

    def test_then_handler_raises(self) -> None:
        fut: Future[int] = Future()
        exn = MyException()
        def fail(x: int) -> int:
            raise exn
        chained = fut.then(fail)
        fut.resolve(1)
        self.assertIsInstance(chained.outcome, outcome.Error)
        self.assertIs(chained.outcome.error, exn) # type: ignore

    def test_then_adopts_future(self) -> None:
        fut: Future[int] = Future()
        inner: Future[str] = Future()
        chained = fut.then(lambda x: inner)
        fut.resolve(1)
        self.assertFalse(chained.is_settled())
        inner.resolve("inner")
        self.assertEqual(chained.outcome.unwrap(), "inner")

class TestFutureGet(TrioTestCase):
    async def test_get_waits(self) -> None:
        fut: Future[int] = Future()
        async def settle_later() -> None:
            await trio.sleep(0)
            fut.resolve(5)
        self.nursery.start_soon(settle_later)
        self.assertEqual(await fut.get(), 5)

    async def test_get_twice(self) -> None:
        fut: Future[int] = Future()
        fut.reject(MyException("bad"))
        for _ in range(2):
            with self.assertRaises(MyException):
                await fut.get()
