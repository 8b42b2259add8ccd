"""
Transfer engine: send or receive loops driven by recycled pool blocks
"""
import time
import logging
from dataclasses import replace
from enum import Enum
from typing import Optional

from speedtest.network.buffer_pool import Block, PoolClosed
from speedtest.network.channel import StatsChannel
from speedtest.stats import Stats

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Which way payload flows for a session"""
    SEND = "send"
    RECEIVE = "receive"


class TransferSession:
    """
    One directional transfer bound to one connection.

    Each loop iteration is exactly one I/O call. Around it, the session
    publishes a snapshot, recycles the block and fetches the next one, and
    none of those steps may wait: a full sink counts as a drop, an empty
    source counts as a repeat, a busy reporter misses the snapshot.

    run() returns the final Stats when the block source is closed and
    re-raises the I/O error otherwise. `stats` always holds the snapshot of
    completed I/O calls, including after a failure.
    """

    def __init__(
        self,
        conn,
        direction: Direction,
        source,
        sink,
        channel: Optional[StatsChannel] = None
    ):
        """
        Args:
            conn: Connected stream with sendall() and recv_into()
            direction: SEND to write blocks, RECEIVE to read into them
            source: Block source with acquire() and try_acquire()
            sink: Block sink with try_release()
            channel: Where snapshots are published (optional)
        """
        self.conn = conn
        self.direction = direction
        self.source = source
        self.sink = sink
        self.channel = channel

        self.stats = Stats()
        self.block: Optional[Block] = None
        self.owned = False

    def _io(self, block: Block) -> int:
        if self.direction is Direction.SEND:
            self.conn.sendall(block.view)
            return len(block.view)

        n = self.conn.recv_into(block.view)
        if n == 0:
            raise EOFError("connection closed by peer")
        return n

    def run(self) -> Stats:
        """
        Run the transfer loop until the source closes or I/O fails.

        Returns:
            Final cumulative Stats on clean end

        Raises:
            OSError, EOFError: The I/O failure that ended the session
        """
        try:
            self.block = self.source.acquire()
        except PoolClosed:
            logger.debug("Block source closed before the first block")
            return self.stats

        # False while reusing a block that was already handed back
        self.owned = True
        try:
            return self._loop()
        finally:
            if self.owned:
                self.sink.try_release(self.block)

    def _loop(self) -> Stats:
        s = Stats()
        start = time.monotonic()
        overhead_mark = start

        while True:
            overhead = s.overhead + (time.monotonic() - overhead_mark)
            n = self._io(self.block)
            overhead_mark = time.monotonic()

            s = replace(
                s,
                bytes=s.bytes + n,
                blocks=s.blocks + 1,
                elapsed=overhead_mark - start,
                overhead=overhead,
            )
            self.stats = s

            if self.channel is not None:
                self.channel.try_publish(s)

            # A block reused after a repeat is already back in the pool
            if self.owned:
                if self.sink.try_release(self.block):
                    self.owned = False
                else:
                    s = replace(s, dropped=s.dropped + 1)

            try:
                next_block = self.source.try_acquire()
            except PoolClosed:
                logger.debug(f"Block source closed after {s.blocks} blocks")
                self.stats = s
                return s

            if next_block is None:
                # Resend (or overwrite) the current block; payload is irrelevant
                s = replace(s, repeats=s.repeats + 1)
            else:
                self.block = next_block
                self.owned = True

            self.stats = s


def provide(conn, source, sink, channel: Optional[StatsChannel] = None) -> Stats:
    """
    Write blocks to the connection until the source closes or a write fails.

    Args:
        conn: Connected socket-like object
        source: Block source
        sink: Where sent blocks are recycled
        channel: Stats channel for the reporter

    Returns:
        Final Stats when the source was closed
    """
    session = TransferSession(conn, Direction.SEND, source, sink, channel)
    return session.run()


def consume(conn, source, sink, channel: Optional[StatsChannel] = None) -> Stats:
    """
    Read from the connection into blocks until the source closes or a read fails.

    Args:
        conn: Connected socket-like object
        source: Block source
        sink: Where filled blocks are recycled
        channel: Stats channel for the reporter

    Returns:
        Final Stats when the source was closed
    """
    session = TransferSession(conn, Direction.RECEIVE, source, sink, channel)
    return session.run()
