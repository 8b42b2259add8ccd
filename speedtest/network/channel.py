"""
Stats notification channel between a transfer loop and its reporter
"""
import threading
from typing import Optional

from speedtest.stats import Stats


class ChannelClosed(Exception):
    """Raised by receive() once the channel is closed and drained"""


class StatsChannel:
    """
    Latest-value mailbox for stats snapshots.
    The transfer loop publishes without ever waiting; if the reporter is
    reading at that moment the snapshot is skipped. Skipped snapshots lose
    nothing because counters are cumulative.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.latest: Optional[Stats] = None
        self.final: Optional[Stats] = None
        self.is_closed = False

        # Statistics; skips are counted outside the mailbox lock
        self.published_count = 0
        self.skipped_count = 0
        self.skipped_lock = threading.Lock()

    def try_publish(self, stats: Stats) -> bool:
        """
        Offer a snapshot without blocking.

        Args:
            stats: Current cumulative snapshot

        Returns:
            True if the snapshot was stored, False if it was skipped
        """
        if not self.lock.acquire(blocking=False):
            with self.skipped_lock:
                self.skipped_count += 1
            return False

        try:
            if self.is_closed:
                return False
            self.latest = stats
            self.published_count += 1
            return True
        finally:
            self.lock.release()

    def receive(self) -> Optional[Stats]:
        """
        Get the most recent snapshot.

        Returns:
            Latest Stats or None if nothing was published yet

        Raises:
            ChannelClosed: If the channel was closed
        """
        with self.lock:
            if self.is_closed:
                raise ChannelClosed()
            return self.latest

    def close(self, final: Optional[Stats] = None):
        """
        Close the channel.

        Args:
            final: Last snapshot of the session, flushed by the reporter
        """
        with self.lock:
            self.is_closed = True
            if final is not None:
                self.final = final
            elif self.final is None:
                self.final = self.latest

    def drain(self) -> Optional[Stats]:
        """Get the final snapshot after close, or the latest one while open"""
        with self.lock:
            if self.is_closed:
                return self.final
            return self.latest

    @property
    def closed(self) -> bool:
        with self.lock:
            return self.is_closed
