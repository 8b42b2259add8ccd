"""
Periodic throughput reporting for a transfer session
"""
import threading
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from common.config import Config
from common.units import format_bytes, format_bit_rate, format_duration, format_si
from speedtest.network.channel import StatsChannel, ChannelClosed
from speedtest.stats import Stats

logger = logging.getLogger(__name__)


@dataclass
class WindowReport:
    """One rendered report window"""
    window: Stats
    bits_per_second: float
    line: str


def format_window(prefix: str, window: Stats) -> str:
    """Render one window as a human readable throughput line"""
    return (
        f"{prefix}: {format_bytes(window.bytes)} in {format_duration(window.elapsed)}: "
        f"{format_bit_rate(window.bits_per_second())}  "
        f"[{format_si(window.blocks, 'blocks')}, {window.repeats} repeats, "
        f"{window.dropped} drops, {format_duration(window.overhead)} overhead]"
    )


def format_total(prefix: str, total: Stats) -> str:
    """Render the cumulative summary for a finished session"""
    return (
        f"{prefix}: total {format_bytes(total.bytes)} in {format_duration(total.elapsed)} "
        f"({format_bit_rate(total.bits_per_second())} average)"
    )


class Reporter:
    """
    Samples the latest snapshot of a session on a fixed interval and emits
    the throughput of the window since the previous sample.
    """

    def __init__(
        self,
        prefix: str,
        channel: StatsChannel,
        interval: float = Config.REPORT_INTERVAL,
        sink: Optional[Callable[[str], None]] = None,
        metrics=None,
        direction: str = ""
    ):
        """
        Args:
            prefix: Label put in front of every line
            channel: Channel the transfer loop publishes to
            interval: Seconds between samples
            sink: Callable receiving each rendered line (defaults to logger.info)
            metrics: Optional TransferMetrics fed with every window
            direction: Metrics label for the session direction
        """
        self.prefix = prefix
        self.channel = channel
        self.interval = interval
        self.sink = sink if sink is not None else logger.info
        self.metrics = metrics
        self.direction = direction

        self.last = Stats()
        self.reports_emitted = 0

        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def _emit(self, line: str):
        try:
            self.sink(line)
        except Exception as e:
            logger.warning(f"Report sink failed: {e}")

    def _report(self, latest: Optional[Stats]) -> Optional[WindowReport]:
        if latest is None:
            return None

        window = latest.since(self.last)
        if window.is_empty():
            return None

        self.last = latest
        report = WindowReport(
            window=window,
            bits_per_second=window.bits_per_second(),
            line=format_window(self.prefix, window),
        )
        self._emit(report.line)
        self.reports_emitted += 1

        if self.metrics is not None and self.direction:
            self.metrics.observe_window(self.direction, window)

        return report

    def tick(self) -> Optional[WindowReport]:
        """
        Report the window since the previous tick.

        Returns:
            WindowReport, or None if there is nothing new to report

        Raises:
            ChannelClosed: If the session's channel was closed
        """
        return self._report(self.channel.receive())

    def flush(self) -> Optional[WindowReport]:
        """Report the last window of a closed channel and the session total"""
        report = self._report(self.channel.drain())
        if not self.last.is_empty():
            self._emit(format_total(self.prefix, self.last))
        return report

    def run(self):
        """Main reporting loop"""
        while not self.stop_event.wait(self.interval):
            try:
                self.tick()
            except ChannelClosed:
                break

        self.flush()

    def start(self):
        """Start the reporting thread"""
        if self.thread is not None:
            return

        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

    def stop(self):
        """Wake the reporting thread so it flushes and exits"""
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None):
        if self.thread is not None:
            self.thread.join(timeout)
