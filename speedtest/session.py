"""
A transfer session wired to its own stats channel and reporter
"""
from typing import Callable, Optional

from common.config import Config
from speedtest.network.buffer_pool import BufferPool
from speedtest.network.channel import StatsChannel
from speedtest.reporter import Reporter
from speedtest.stats import Stats
from speedtest.transfer import Direction, TransferSession


class ReportedSession:
    """
    Runs one TransferSession while a Reporter prints its windows.
    The reporter is always flushed and stopped when the transfer ends,
    whether it ended cleanly or with an I/O error.
    """

    def __init__(
        self,
        conn,
        direction: Direction,
        pool: BufferPool,
        prefix: str,
        interval: float = Config.REPORT_INTERVAL,
        metrics=None,
        sink: Optional[Callable[[str], None]] = None
    ):
        """
        Args:
            conn: Connected socket
            direction: Payload direction for this side
            pool: Shared pool used as both block source and sink
            prefix: Label for report lines
            interval: Seconds between report lines
            metrics: Optional TransferMetrics
            sink: Callable receiving report lines
        """
        self.direction = direction
        self.metrics = metrics
        self.channel = StatsChannel()
        self.transfer = TransferSession(conn, direction, pool, pool, self.channel)
        self.reporter = Reporter(
            prefix,
            self.channel,
            interval=interval,
            sink=sink,
            metrics=metrics,
            direction=direction.value
        )

    @property
    def stats(self) -> Stats:
        return self.transfer.stats

    def run(self) -> Stats:
        """
        Run the transfer to completion.

        Returns:
            Final Stats on clean end

        Raises:
            OSError, EOFError: The I/O failure that ended the transfer
        """
        self.reporter.start()
        if self.metrics is not None:
            self.metrics.session_started(self.direction.value)

        try:
            return self.transfer.run()
        finally:
            self.channel.close(final=self.transfer.stats)
            self.reporter.stop()
            self.reporter.join()
            if self.metrics is not None:
                self.metrics.session_finished(self.direction.value)
