"""
Test cases for the asyncio listener.
"""

import asyncio
from typing import List
import unittest

from .broadcaster import Broadcaster
from .listener import Listener
from ..helper.error import InvalidWorkerError


class TestListener(unittest.IsolatedAsyncioTestCase):
    """Test the asyncio listener implementation."""

    async def test_listen_and_notify(self):
        broadcaster = Broadcaster[str]("testBroadcaster")
        listener = Listener(broadcaster)
        received: List[str] = []

        listener.listen(received.append)
        self.assertTrue(listener.is_listening())

        broadcaster.broadcast("first")
        broadcaster.broadcast("second")

        self.assertTrue(await listener.wait_for_notifications_processed(timeout=2.0))
        self.assertEqual(received, ["first", "second"])

        await listener.stop()
        self.assertFalse(listener.is_listening())
        self.assertEqual(broadcaster.subscriber_count(), 0)

    async def test_async_notify_function(self):
        broadcaster = Broadcaster[int]("testBroadcaster")
        listener = Listener(broadcaster)
        received: List[int] = []

        async def notify(value: int):
            await asyncio.sleep(0)
            received.append(value * 2)

        listener.listen(notify)
        broadcaster.broadcast(21)

        self.assertTrue(await listener.wait_for_notifications_processed(timeout=2.0))
        self.assertEqual(received, [42])
        await listener.stop()

    async def test_failing_notify_function_keeps_listening(self):
        broadcaster = Broadcaster[int]("testBroadcaster")
        listener = Listener(broadcaster)
        received: List[int] = []

        def notify(value: int):
            if value == 1:
                raise ValueError("bad message")
            received.append(value)

        listener.listen(notify)
        with self.assertLogs("workqueue.core.listener", level="ERROR") as logs:
            broadcaster.broadcast(1)
            broadcaster.broadcast(2)
            self.assertTrue(
                await listener.wait_for_notifications_processed(timeout=2.0)
            )

        self.assertEqual(received, [2])
        self.assertIn("bad message", logs.output[0])
        self.assertTrue(listener.is_listening())
        await listener.stop()

    async def test_listen_twice_is_rejected(self):
        listener = Listener(Broadcaster[int]("testBroadcaster"))
        listener.listen(lambda value: None)
        with self.assertRaises(RuntimeError):
            listener.listen(lambda value: None)
        await listener.stop()

    async def test_invalid_notify_function(self):
        listener = Listener(Broadcaster[int]("testBroadcaster"))
        with self.assertRaises(InvalidWorkerError):
            listener.listen("not a function")  # type: ignore[arg-type]

    async def test_stop_before_listen(self):
        listener = Listener(Broadcaster[int]("testBroadcaster"))
        await listener.stop()
        self.assertFalse(listener.is_listening())
        self.assertTrue(await listener.wait_for_notifications_processed(timeout=0.1))


if __name__ == "__main__":
    unittest.main()
