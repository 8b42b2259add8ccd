"""
Size, address and human-readable formatting helpers
"""
import re
from typing import Tuple

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")

# Sizes on the command line are base 2 even without the "i": 64KB == 64KiB
_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "KIB": 1024,
    "M": 1024 ** 2,
    "MB": 1024 ** 2,
    "MIB": 1024 ** 2,
    "G": 1024 ** 3,
    "GB": 1024 ** 3,
    "GIB": 1024 ** 3,
    "T": 1024 ** 4,
    "TB": 1024 ** 4,
    "TIB": 1024 ** 4,
}

_SI_BYTES = ["B", "kB", "MB", "GB", "TB", "PB", "EB"]
_IEC_BYTES = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]
_SI_PREFIXES = ["", "k", "M", "G", "T", "P", "E"]


def parse_size(text: str) -> int:
    """
    Parse a human size such as "64KB", "16MiB" or "1048576".

    Args:
        text: Size string

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a valid size
    """
    match = _SIZE_RE.match(str(text))
    if not match:
        raise ValueError(f"invalid size: {text!r}")

    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ValueError(f"invalid size unit {unit!r} in {text!r}")

    return int(float(number) * multiplier)


def parse_address(text: str) -> Tuple[str, int]:
    """
    Split "host:port" (or ":port", "[::1]:port") into a socket address.

    Raises:
        ValueError: If no valid port is present
    """
    host, sep, port = text.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"address must include a port: {text!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    port_number = int(port)
    if port_number > 65535:
        raise ValueError(f"port out of range: {text!r}")

    return host, port_number


def format_address(address) -> str:
    """Render a socket address tuple as host:port"""
    host, port = address[0], address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _humanate(value: float, base: int, sizes) -> str:
    if value < 10:
        return f"{int(value)} B"

    exponent = 0
    while exponent < len(sizes) - 1 and value >= base ** (exponent + 1):
        exponent += 1

    scaled = int(value / base ** exponent * 10 + 0.5) / 10
    if scaled < 10:
        return f"{scaled:.1f} {sizes[exponent]}"
    return f"{scaled:.0f} {sizes[exponent]}"


def format_bytes(value: float) -> str:
    """Format a byte count with SI prefixes, e.g. "2.0 MB" """
    return _humanate(value, 1000, _SI_BYTES)


def format_ibytes(value: float) -> str:
    """Format a byte count with IEC prefixes, e.g. "16 MiB" """
    return _humanate(value, 1024, _IEC_BYTES)


def format_bit_rate(bits_per_second: float) -> str:
    """Format a bit rate with SI prefixes, e.g. "16 Mbps" """
    return format_bytes(bits_per_second)[:-1] + "bps"


def _trim(value: float, places: int) -> str:
    text = f"{value:.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_si(value: float, unit: str = "") -> str:
    """
    Format a count with SI prefixes, e.g. format_si(1234, "blocks") -> "1.234k blocks".
    """
    exponent = 0
    magnitude = abs(value)
    while exponent < len(_SI_PREFIXES) - 1 and magnitude >= 1000 ** (exponent + 1):
        exponent += 1

    text = _trim(value / 1000 ** exponent, 3) + _SI_PREFIXES[exponent]
    if unit:
        text = f"{text} {unit}"
    return text


def format_duration(seconds: float) -> str:
    """
    Format a duration the way Go prints time.Duration, e.g. "1.5s", "350ms", "2m3s".
    """
    if seconds == 0:
        return "0s"

    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)

    if seconds < 1e-6:
        return f"{sign}{int(round(seconds * 1e9))}ns"
    if seconds < 1e-3:
        return f"{sign}{_trim(seconds * 1e6, 3)}µs"
    if seconds < 1:
        return f"{sign}{_trim(seconds * 1e3, 6)}ms"

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    text = f"{_trim(secs, 6)}s"
    if hours:
        text = f"{int(hours)}h{int(minutes)}m{text}"
    elif minutes:
        text = f"{int(minutes)}m{text}"
    return sign + text
