"""
Buffer pool for recycling transfer blocks carved from one large allocation
"""
import os
import threading
import logging
from typing import Optional
from collections import deque

from common.config import Config
from common.units import format_ibytes

logger = logging.getLogger(__name__)


class PoolClosed(Exception):
    """Raised when the pool has been closed and no blocks are left"""


class Block:
    """
    A fixed-length slice of the pool's backing buffer.
    """

    __slots__ = ("offset", "length", "view")

    def __init__(self, arena: memoryview, offset: int, length: int):
        """
        Args:
            arena: View over the whole backing buffer
            offset: Start of this block within the arena
            length: Block length in bytes
        """
        self.offset = offset
        self.length = length
        self.view = arena[offset:offset + length]

    def __len__(self):
        return self.length

    def __repr__(self):
        return f"Block(offset={self.offset}, length={self.length})"


class BufferPool:
    """
    Bounded FIFO of reusable blocks.
    Only the first acquire of a session may block; recycling and fetching
    the next block are attempts that fail instead of waiting.
    """

    def __init__(
        self,
        chunk_size: int,
        buffer_size: int,
        capacity: Optional[int] = None
    ):
        """
        Args:
            chunk_size: Size of each block in bytes
            buffer_size: Total size of the backing buffer in bytes
            capacity: Maximum number of queued blocks (defaults to block count + POOL_SLACK)
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {chunk_size}")
        if buffer_size < chunk_size:
            raise ValueError(
                f"buffer size {buffer_size} is smaller than chunk size {chunk_size}"
            )

        self.chunk_size = chunk_size
        self.num_blocks = buffer_size // chunk_size
        self.buffer_size = self.num_blocks * chunk_size

        if capacity is None:
            capacity = self.num_blocks + Config.POOL_SLACK
        if capacity < self.num_blocks:
            raise ValueError(
                f"capacity {capacity} cannot hold all {self.num_blocks} blocks"
            )
        self.capacity = capacity

        # One allocation, sliced into disjoint blocks
        self.arena = bytearray(self.buffer_size)
        arena_view = memoryview(self.arena)
        self.available_blocks: deque[Block] = deque(
            Block(arena_view, i * chunk_size, chunk_size)
            for i in range(self.num_blocks)
        )

        self.lock = threading.Lock()
        self.condition = threading.Condition(self.lock)
        self.closed = False

        # Statistics
        self.acquired_count = 0
        self.released_count = 0
        self.refused_count = 0
        self.wait_count = 0

    def acquire(self, timeout: Optional[float] = None) -> Optional[Block]:
        """
        Acquire a block, waiting until one is available.

        Args:
            timeout: Maximum time to wait in seconds (None for indefinite)

        Returns:
            Block or None if timeout

        Raises:
            PoolClosed: If the pool was closed and is empty
        """
        with self.condition:
            while not self.available_blocks:
                if self.closed:
                    raise PoolClosed()
                self.wait_count += 1
                if not self.condition.wait(timeout):
                    return None

            self.acquired_count += 1
            return self.available_blocks.popleft()

    def try_acquire(self) -> Optional[Block]:
        """
        Take a block without waiting.

        Returns:
            Block or None if none is available

        Raises:
            PoolClosed: If the pool was closed and is empty
        """
        with self.lock:
            if self.available_blocks:
                self.acquired_count += 1
                return self.available_blocks.popleft()
            if self.closed:
                raise PoolClosed()
            return None

    def try_release(self, block: Block) -> bool:
        """
        Return a block without waiting.

        Args:
            block: Block to give back

        Returns:
            False if the pool is full or closed and the block was not taken
        """
        with self.condition:
            if self.closed or len(self.available_blocks) >= self.capacity:
                self.refused_count += 1
                return False

            self.available_blocks.append(block)
            self.released_count += 1
            self.condition.notify()
            return True

    def close(self):
        """Stop handing out blocks once the queue drains and wake all waiters"""
        with self.condition:
            self.closed = True
            self.condition.notify_all()

    def randomize(self):
        """Fill the backing buffer with random bytes"""
        logger.info(f"Randomizing {format_ibytes(len(self.arena))} buffer")
        self.arena[:] = os.urandom(len(self.arena))

    def available(self) -> int:
        """Get number of available blocks"""
        with self.lock:
            return len(self.available_blocks)

    def get_statistics(self) -> dict:
        """
        Get pool statistics.

        Returns:
            Dictionary with statistics
        """
        with self.lock:
            return {
                'chunk_size': self.chunk_size,
                'num_blocks': self.num_blocks,
                'capacity': self.capacity,
                'available': len(self.available_blocks),
                'acquired_count': self.acquired_count,
                'released_count': self.released_count,
                'refused_count': self.refused_count,
                'wait_count': self.wait_count,
            }
