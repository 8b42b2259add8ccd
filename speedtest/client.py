"""
Speed test client: uploads to or downloads from a server
"""
import socket
import threading
import logging
from typing import Callable, Optional

from common.config import Config
from common.units import parse_address
from speedtest.handshake import Mode, send_mode
from speedtest.network.buffer_pool import BufferPool
from speedtest.session import ReportedSession
from speedtest.stats import Stats
from speedtest.transfer import Direction

logger = logging.getLogger(__name__)


def connect(server: str) -> socket.socket:
    """
    Open a TCP connection to "host:port".

    Raises:
        ConnectionError: If the server cannot be reached
    """
    host, port = parse_address(server)
    try:
        return socket.create_connection((host or "localhost", port))
    except OSError as e:
        raise ConnectionError(f"Cannot connect to {server}: {e}") from e


def _hang_up(conn: socket.socket, finished: threading.Event):
    finished.set()
    try:
        conn.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Shutdown after test duration failed: {e}")


def run_client(
    mode: Mode,
    server: str,
    pool: BufferPool,
    interval: float = Config.REPORT_INTERVAL,
    duration: Optional[float] = None,
    metrics=None,
    sink: Optional[Callable[[str], None]] = None
) -> Stats:
    """
    Connect to a server and run one upload or download.

    Args:
        mode: Mode.UPLOAD or Mode.DOWNLOAD
        server: Server address including port
        pool: Buffer pool for this client
        interval: Seconds between report lines
        duration: Stop after this many seconds (None runs until the connection ends)
        metrics: Optional TransferMetrics
        sink: Callable receiving report lines

    Returns:
        Stats of the finished transfer

    Raises:
        ConnectionError: If the server cannot be reached
        OSError, EOFError: If the transfer failed before the duration elapsed
    """
    if mode is Mode.BYE:
        raise ValueError("bye is not a transfer mode")

    conn = connect(server)
    if mode is Mode.UPLOAD:
        direction = Direction.SEND
        logger.info(f"Connected to {server}: Uploading")
    else:
        direction = Direction.RECEIVE
        logger.info(f"Connected to {server}: Downloading")

    finished = threading.Event()
    timer: Optional[threading.Timer] = None

    try:
        send_mode(conn, mode)

        session = ReportedSession(
            conn,
            direction,
            pool,
            f"Server {server}",
            interval=interval,
            metrics=metrics,
            sink=sink
        )

        if duration is not None:
            timer = threading.Timer(duration, _hang_up, args=(conn, finished))
            timer.daemon = True
            timer.start()

        try:
            stats = session.run()
        except (OSError, EOFError):
            if not finished.is_set():
                raise
            # Our own hang-up ended the transfer
            stats = session.stats
    finally:
        if timer is not None:
            timer.cancel()
        conn.close()

    logger.info("Done")
    return stats


def upload(server: str, pool: BufferPool, **kwargs) -> Stats:
    """Send blocks to the server until the connection ends"""
    return run_client(Mode.UPLOAD, server, pool, **kwargs)


def download(server: str, pool: BufferPool, **kwargs) -> Stats:
    """Receive blocks from the server until the connection ends"""
    return run_client(Mode.DOWNLOAD, server, pool, **kwargs)


def say_goodbye(server: str):
    """Connect and immediately end the conversation"""
    conn = connect(server)
    try:
        send_mode(conn, Mode.BYE)
    finally:
        conn.close()
