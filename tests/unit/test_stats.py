"""
Unit tests for stats snapshots and the stats channel
"""
import unittest
import threading
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from speedtest.stats import Stats
from speedtest.network.channel import StatsChannel, ChannelClosed


class TestStats(unittest.TestCase):
    """Test snapshot arithmetic"""

    def test_since_is_fieldwise_difference(self):
        """Test since() subtracts every field"""
        later = Stats(bytes=5000, blocks=7, elapsed=3.0, overhead=0.5, repeats=2, dropped=4)
        earlier = Stats(bytes=2000, blocks=3, elapsed=1.0, overhead=0.25, repeats=1, dropped=1)

        window = later.since(earlier)

        self.assertEqual(window, Stats(bytes=3000, blocks=4, elapsed=2.0, overhead=0.25,
                                       repeats=1, dropped=3))

    def test_since_self_is_zero(self):
        """Test a zero-width window is all zeros"""
        snapshot = Stats(bytes=123, blocks=4, elapsed=1.5, overhead=0.1, repeats=1, dropped=2)

        self.assertEqual(snapshot.since(snapshot), Stats())
        self.assertTrue(snapshot.since(snapshot).is_empty())

    def test_bits_per_second(self):
        """Test rate is bytes * 8 over elapsed seconds"""
        self.assertEqual(Stats(bytes=2_000_000, elapsed=1.0).bits_per_second(), 16_000_000)
        self.assertEqual(Stats(bytes=100).bits_per_second(), 0.0)

    def test_snapshot_is_immutable(self):
        """Test snapshots cannot be modified"""
        snapshot = Stats(bytes=1)
        with self.assertRaises(AttributeError):
            snapshot.bytes = 2


class TestStatsChannel(unittest.TestCase):
    """Test the latest-value channel"""

    def test_receive_returns_latest(self):
        """Test only the newest published snapshot is seen"""
        channel = StatsChannel()
        self.assertIsNone(channel.receive())

        channel.try_publish(Stats(bytes=1))
        channel.try_publish(Stats(bytes=2))

        self.assertEqual(channel.receive(), Stats(bytes=2))
        self.assertEqual(channel.published_count, 2)

    def test_publish_skips_while_reader_holds_lock(self):
        """Test publishing never waits for a busy reader"""
        channel = StatsChannel()

        with channel.lock:
            self.assertFalse(channel.try_publish(Stats(bytes=1)))

        self.assertEqual(channel.skipped_count, 1)
        self.assertIsNone(channel.receive())

    def test_concurrent_skips_all_counted(self):
        """Test skips from several publishers are never lost"""
        channel = StatsChannel()

        def publish():
            for _ in range(1000):
                channel.try_publish(Stats(bytes=1))

        with channel.lock:
            threads = [threading.Thread(target=publish) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(channel.skipped_count, 4000)
        self.assertEqual(channel.published_count, 0)

    def test_closed_channel(self):
        """Test receive raises after close and publishes are refused"""
        channel = StatsChannel()
        channel.try_publish(Stats(bytes=10, elapsed=1.0))
        channel.close()

        self.assertTrue(channel.closed)
        with self.assertRaises(ChannelClosed):
            channel.receive()
        self.assertFalse(channel.try_publish(Stats(bytes=20)))
        self.assertEqual(channel.drain(), Stats(bytes=10, elapsed=1.0))

    def test_close_with_final_snapshot(self):
        """Test the final snapshot given to close() is what drain() returns"""
        channel = StatsChannel()
        channel.try_publish(Stats(bytes=10, elapsed=1.0))
        channel.close(final=Stats(bytes=30, elapsed=2.0))

        self.assertEqual(channel.drain(), Stats(bytes=30, elapsed=2.0))


if __name__ == '__main__':
    unittest.main()
