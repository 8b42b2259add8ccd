"""
Transfer statistics snapshots
"""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class Stats:
    """
    Immutable snapshot of cumulative transfer counters for one session.

    All counters are non-decreasing while a session runs, so any two snapshots
    of the same session can be subtracted with since().
    """
    bytes: int = 0
    blocks: int = 0
    elapsed: float = 0.0  # seconds since the session started
    overhead: float = 0.0  # seconds spent outside I/O calls
    repeats: int = 0  # no fresh block was ready, previous one was reused
    dropped: int = 0  # pool was full, used block discarded

    def since(self, earlier: "Stats") -> "Stats":
        """
        Field-wise difference against an earlier snapshot of the same session.

        Args:
            earlier: Snapshot taken before this one

        Returns:
            Stats describing only the window between the two snapshots
        """
        return Stats(
            bytes=self.bytes - earlier.bytes,
            blocks=self.blocks - earlier.blocks,
            elapsed=self.elapsed - earlier.elapsed,
            overhead=self.overhead - earlier.overhead,
            repeats=self.repeats - earlier.repeats,
            dropped=self.dropped - earlier.dropped,
        )

    def is_empty(self) -> bool:
        """True when no time has elapsed, so no rate can be derived"""
        return self.elapsed <= 0

    def bits_per_second(self) -> float:
        """Throughput over the snapshot's elapsed time"""
        if self.is_empty():
            return 0.0
        return self.bytes * 8 / self.elapsed

    def to_dict(self) -> dict:
        return asdict(self)
