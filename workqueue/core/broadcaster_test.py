"""
Test cases for the asyncio-based broadcaster.
"""

import unittest
import asyncio

from .broadcaster import JOB_ADDED, Broadcaster, JobEvent, new_broadcaster


class TestBroadcaster(unittest.IsolatedAsyncioTestCase):
    """Test the asyncio-based broadcaster implementation."""

    async def test_new_broadcaster(self):
        """Test creating a new broadcaster."""
        b = Broadcaster[int]("testBroadcaster")
        self.assertEqual(
            len(b.listeners),
            0,
            "A new broadcaster should start with an empty listeners map",
        )

    async def test_broadcasters_are_independent(self):
        """Two broadcasters with the same name do not share subscribers."""
        b1 = new_broadcaster("events")
        b2 = new_broadcaster("events")
        self.assertIsNot(b1, b2)

        b1.subscribe()
        self.assertEqual(b1.subscriber_count(), 1)
        self.assertEqual(b2.subscriber_count(), 0)

    async def test_subscribe_and_unsubscribe(self):
        """Test subscribing to and unsubscribing from a broadcaster."""
        b: Broadcaster[int] = Broadcaster[int]("testBroadcaster")
        ch = b.subscribe()
        self.assertTrue(ch.broadcaster_id)
        self.assertEqual(b.subscriber_count(), 1)

        b.unsubscribe(ch)
        self.assertEqual(b.subscriber_count(), 0)

        # Unsubscribing twice is harmless
        b.unsubscribe(ch)
        self.assertEqual(b.subscriber_count(), 0)

    async def test_broadcast(self):
        """Test broadcasting to multiple channels."""
        b = Broadcaster[int]("testBroadcaster")
        ch1 = b.subscribe()
        ch2 = b.subscribe()

        num_messages = 5
        for i in range(num_messages):
            self.assertEqual(b.broadcast(i), 2)

        for ch in (ch1, ch2):
            received = [ch.get_nowait() for _ in range(num_messages)]
            self.assertEqual(received, list(range(num_messages)))
            with self.assertRaises(asyncio.QueueEmpty):
                ch.get_nowait()

    async def test_broadcast_without_subscribers(self):
        b = Broadcaster[str]("testBroadcaster")
        self.assertEqual(b.broadcast("nobody listens"), 0)

    async def test_full_subscriber_drops_message(self):
        """A bounded subscriber queue drops messages instead of blocking."""
        b = Broadcaster[int]("testBroadcaster", maxsize=1)
        ch = b.subscribe()

        self.assertEqual(b.broadcast(1), 1)
        self.assertEqual(b.broadcast(2), 0)
        self.assertEqual(ch.get_nowait(), 1)
        self.assertTrue(ch.empty())

    async def test_await_broadcast_message(self):
        """A waiting subscriber is woken by a broadcast."""
        b = Broadcaster[JobEvent]("testBroadcaster")
        ch = b.subscribe()

        async def publish():
            await asyncio.sleep(0.01)
            b.broadcast(JobEvent(JOB_ADDED, "email", None))

        asyncio.create_task(publish())
        event = await asyncio.wait_for(ch.get(), timeout=1.0)
        self.assertEqual(event.name, JOB_ADDED)
        self.assertEqual(event.queue_name, "email")


if __name__ == "__main__":
    unittest.main()
