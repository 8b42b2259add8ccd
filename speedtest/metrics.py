"""
Metrics collection using Prometheus client
"""
from prometheus_client import Counter, Gauge, CollectorRegistry, REGISTRY, start_http_server
from typing import Dict, Optional
import threading
import logging

from speedtest.stats import Stats

logger = logging.getLogger(__name__)


class TransferMetrics:
    """
    Metrics for transfer sessions, labelled by direction.
    Create one instance per registry; sessions share it.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Args:
            registry: Prometheus registry (None for default)
        """
        self.registry = registry if registry is not None else REGISTRY

        self.bytes_transferred = Counter(
            'speedtest_bytes',
            'Total payload bytes moved by transfer sessions',
            ['direction'],
            registry=self.registry
        )

        self.blocks_transferred = Counter(
            'speedtest_blocks',
            'Total I/O calls completed by transfer sessions',
            ['direction'],
            registry=self.registry
        )

        self.repeats = Counter(
            'speedtest_repeats',
            'Iterations that reused a block because none was available',
            ['direction'],
            registry=self.registry
        )

        self.dropped = Counter(
            'speedtest_dropped',
            'Blocks discarded because the pool was full',
            ['direction'],
            registry=self.registry
        )

        self.throughput = Gauge(
            'speedtest_throughput_bits_per_second',
            'Throughput over the last report window',
            ['direction'],
            registry=self.registry
        )

        self.active_sessions = Gauge(
            'speedtest_active_sessions',
            'Number of transfer sessions currently running',
            registry=self.registry
        )

        # Lock for thread safety
        self.lock = threading.Lock()

        # Local totals per direction
        self._totals: Dict[str, Stats] = {}
        self._running: Dict[str, int] = {}

    def observe_window(self, direction: str, window: Stats):
        """
        Record one report window.

        Args:
            direction: "send" or "receive"
            window: Stats delta for the window
        """
        with self.lock:
            total = self._totals.get(direction, Stats())
            self._totals[direction] = Stats(
                bytes=total.bytes + window.bytes,
                blocks=total.blocks + window.blocks,
                elapsed=total.elapsed + window.elapsed,
                overhead=total.overhead + window.overhead,
                repeats=total.repeats + window.repeats,
                dropped=total.dropped + window.dropped,
            )

        self.bytes_transferred.labels(direction=direction).inc(window.bytes)
        self.blocks_transferred.labels(direction=direction).inc(window.blocks)
        self.repeats.labels(direction=direction).inc(window.repeats)
        self.dropped.labels(direction=direction).inc(window.dropped)
        self.throughput.labels(direction=direction).set(window.bits_per_second())

    def session_started(self, direction: Optional[str] = None):
        """Count a new running session"""
        self.active_sessions.inc()
        if direction is not None:
            with self.lock:
                self._running[direction] = self._running.get(direction, 0) + 1

    def session_finished(self, direction: Optional[str] = None):
        """
        Count a finished session.

        Args:
            direction: Direction of the session; its throughput gauge drops
                to zero once no session in that direction is running
        """
        self.active_sessions.dec()
        if direction is None:
            return

        with self.lock:
            running = max(self._running.get(direction, 0) - 1, 0)
            self._running[direction] = running
        if running == 0:
            self.throughput.labels(direction=direction).set(0)

    def get_metrics_dict(self) -> Dict:
        """Get accumulated totals as dictionary"""
        with self.lock:
            return {
                direction: stats.to_dict()
                for direction, stats in self._totals.items()
            }


class MetricsServer:
    """
    Prometheus metrics HTTP server.
    """

    def __init__(self, port: int = 0, registry: Optional[CollectorRegistry] = None):
        """
        Args:
            port: Port to serve metrics on (0 disables the server)
            registry: Registry to expose (None for default)
        """
        self.port = port
        self.registry = registry if registry is not None else REGISTRY
        self.started = False

    def start(self):
        """Start metrics server"""
        if not self.port:
            return

        try:
            start_http_server(self.port, registry=self.registry)
            self.started = True
            logger.info(f"Metrics server started on port {self.port}")
        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
