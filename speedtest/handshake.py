"""
Mode handshake: one command line sent by the client before any payload
"""
from enum import Enum

from common.config import Config


class HandshakeError(ValueError):
    """The peer sent something that is not a known command"""


class Mode(Enum):
    """Command sent by the client, named from the client's point of view"""
    UPLOAD = "upload"
    DOWNLOAD = "download"
    BYE = "bye"


def send_mode(conn, mode: Mode):
    """
    Announce the client's mode.

    Args:
        conn: Connected socket
        mode: Mode to request
    """
    conn.sendall(mode.value.encode("ascii") + b"\n")


def read_mode(conn, max_bytes: int = Config.HANDSHAKE_MAX_BYTES) -> Mode:
    """
    Read the client's command line.

    Reads one byte at a time so that payload following the command is left
    in the socket for the transfer loop.

    Args:
        conn: Connected socket
        max_bytes: Longest accepted command line

    Returns:
        Requested Mode

    Raises:
        EOFError: If the peer closed before sending a full line
        HandshakeError: If the command is too long or unknown
    """
    line = bytearray()
    while True:
        byte = conn.recv(1)
        if not byte:
            raise EOFError("connection closed during handshake")
        if byte == b"\n":
            break
        line += byte
        if len(line) > max_bytes:
            raise HandshakeError(f"command longer than {max_bytes} bytes")

    command = line.decode("ascii", errors="replace").strip().lower()
    try:
        return Mode(command)
    except ValueError:
        raise HandshakeError(f"unknown command {command!r}") from None
