"""
Speed test server: accepts clients and serves one transfer per connection
"""
import socket
import threading
import logging
from typing import Callable, Optional, Set, Tuple

from common.config import Config
from common.units import format_address
from speedtest.handshake import HandshakeError, Mode, read_mode
from speedtest.network.buffer_pool import BufferPool
from speedtest.session import ReportedSession
from speedtest.transfer import Direction

logger = logging.getLogger(__name__)


class SpeedTestServer:
    """
    Listens for clients and runs each connection in its own thread.
    All connections share one buffer pool.
    """

    def __init__(
        self,
        address: Tuple[str, int],
        pool: BufferPool,
        interval: float = Config.REPORT_INTERVAL,
        metrics=None,
        sink: Optional[Callable[[str], None]] = None
    ):
        """
        Args:
            address: (host, port) to listen on; port 0 picks a free port
            pool: Buffer pool shared by all sessions
            interval: Seconds between report lines
            metrics: Optional TransferMetrics
            sink: Callable receiving report lines
        """
        self.address = address
        self.pool = pool
        self.interval = interval
        self.metrics = metrics
        self.sink = sink

        self.listener: Optional[socket.socket] = None
        self.running = False
        self.thread: Optional[threading.Thread] = None

        # Open client connections, closed on shutdown
        self.connections: Set[socket.socket] = set()
        self.handlers: Set[threading.Thread] = set()
        self.lock = threading.Lock()

    @property
    def server_address(self) -> Tuple[str, int]:
        return self.listener.getsockname()[:2]

    def bind(self):
        """Open the listening socket"""
        if self.listener is None:
            self.listener = socket.create_server(self.address)
            # Poll so shutdown() is noticed without a pending connection
            self.listener.settimeout(0.5)
            self.running = True
            logger.info(f"Listening on {format_address(self.server_address)}")

    def serve_forever(self):
        """Accept clients until shutdown() is called"""
        self.bind()

        while self.running:
            try:
                conn, addr = self.listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self.running:
                    break
                logger.error(f"Connection failure: {e}")
                continue

            conn.settimeout(None)
            thread = threading.Thread(
                target=self.handle_connection,
                args=(conn, addr),
                daemon=True
            )
            with self.lock:
                self.connections.add(conn)
                self.handlers.add(thread)
            thread.start()

    def start(self):
        """Serve in a background thread"""
        self.bind()
        self.thread = threading.Thread(target=self.serve_forever, daemon=True)
        self.thread.start()

    def shutdown(self, timeout: float = 5.0):
        """
        Stop accepting, close every open connection and wait for the
        sessions to flush their reports.

        Args:
            timeout: Seconds to wait for each thread
        """
        self.running = False

        if self.listener is not None:
            self.listener.close()

        # No new connections once the accept loop has exited
        if self.thread is not None:
            self.thread.join(timeout)

        with self.lock:
            connections = list(self.connections)
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                # Already disconnected
                pass

        with self.lock:
            handlers = list(self.handlers)
        for thread in handlers:
            thread.join(timeout)

    def handle_connection(self, conn: socket.socket, addr):
        """
        Run the handshake and the requested transfer for one client.

        Args:
            conn: Accepted client socket
            addr: Client address
        """
        client = f"Client {format_address(addr)}"
        logger.info(f"{client}: Connected")

        try:
            self._serve_client(conn, client)
        finally:
            with self.lock:
                self.connections.discard(conn)
                self.handlers.discard(threading.current_thread())
            conn.close()

    def _serve_client(self, conn: socket.socket, client: str):
        try:
            mode = read_mode(conn)
        except (OSError, EOFError, HandshakeError) as e:
            logger.error(f"{client}: failure: {e}")
            return

        if mode is Mode.BYE:
            logger.info(f"{client}: goodbye")
            return

        # Client uploads: the server receives, and the other way round
        if mode is Mode.UPLOAD:
            direction, label = Direction.RECEIVE, "upload"
        else:
            direction, label = Direction.SEND, "download"

        logger.info(f"{client}: starting {label}")
        session = ReportedSession(
            conn,
            direction,
            self.pool,
            client,
            interval=self.interval,
            metrics=self.metrics,
            sink=self.sink
        )

        try:
            session.run()
        except EOFError:
            logger.info(f"{client}: {label} ended, connection closed by client")
        except OSError as e:
            logger.error(f"{client}: failed {label}: {e}")
        else:
            logger.info(f"{client}: {label} finished")
