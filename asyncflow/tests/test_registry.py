from asyncflow.exceptions import Kind, LoopTerminated
from asyncflow.loop import LoopControl
from asyncflow.registry import LoopRegistry
from asyncflow.tests.trio_test_case import TrioTestCase
import trio

class TestLoopRegistry(TrioTestCase):
    async def asyncSetUp(self) -> None:
        self.registry = LoopRegistry()

    async def test_supersede(self) -> None:
        second_calls = 0
        def second(control: LoopControl) -> bool:
            nonlocal second_calls
            second_calls += 1
            return second_calls == 3
        first_future = self.registry.unique("x").until(self.nursery, lambda control: False)
        first_loop = self.registry.get("x")
        second_future = self.registry.unique("x").until(self.nursery, second)
        with self.assertRaises(LoopTerminated) as cm:
            await first_future.get()
        self.assertEqual(cm.exception.kind, Kind.CANCEL)
        self.assertIn("Overriting unique task `x`", str(cm.exception))
        self.assertEqual(str(cm.exception), "[Cancel] Overriting unique task `x` with a newer one.")
        self.assertIsNot(self.registry.get("x"), first_loop)
        await second_future.get()
        self.assertEqual(second_calls, 3)

    async def test_independent_ids(self) -> None:
        a = self.registry.unique("a").until(self.nursery, lambda control: control.iteration == 2)
        b = self.registry.unique("b").until(self.nursery, lambda control: control.iteration == 2)
        self.assertEqual(len(self.registry), 2)
        await a.get()
        await b.get()

    async def test_entry_removed_on_completion(self) -> None:
        future = self.registry.unique("x").until(self.nursery, lambda control: True)
        self.assertIn("x", self.registry)
        await future.get()
        self.assertNotIn("x", self.registry)
        self.assertIsNone(self.registry.get("x"))

    async def test_newest_entry_survives_supersession(self) -> None:
        self.registry.unique("x").until(self.nursery, lambda control: False)
        future = self.registry.unique("x").until(self.nursery, lambda control: False)
        await trio.sleep(0)
        loop = self.registry.get("x")
        self.assertIsNotNone(loop)
        self.assertIs(loop.future, future) # type: ignore
        loop.cancel() # type: ignore
        self.assertEqual(len(self.registry), 0)

    async def test_raising_callback_stays_out_of_nursery(self) -> None:
        future = self.registry.unique("x").until(self.nursery, lambda control: True)
        seen = []
        def explode(result) -> None:
            raise RuntimeError("callback failed")
        future.add_done_callback(explode)
        future.add_done_callback(seen.append)
        with self.assertLogs('asyncflow.future', level='ERROR'):
            await future.get()
        self.assertEqual(len(seen), 1)
        self.assertNotIn("x", self.registry)
