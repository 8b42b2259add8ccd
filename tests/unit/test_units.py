"""
Unit tests for size parsing, addresses and formatting
"""
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from common.config import Config
from common.units import (
    format_address,
    format_bit_rate,
    format_bytes,
    format_duration,
    format_ibytes,
    format_si,
    parse_address,
    parse_size,
)


class TestParsing(unittest.TestCase):
    """Test command line value parsing"""

    def test_parse_size_is_base_two(self):
        """Test size units are powers of 1024"""
        self.assertEqual(parse_size("64KB"), 64 * 1024)
        self.assertEqual(parse_size("16MiB"), 16 * 1024 * 1024)
        self.assertEqual(parse_size("1g"), 1024 ** 3)
        self.assertEqual(parse_size("1.5K"), 1536)
        self.assertEqual(parse_size("4096"), 4096)

    def test_parse_size_rejects_garbage(self):
        """Test invalid sizes raise ValueError"""
        for text in ("", "KB", "12XB", "-1K"):
            with self.assertRaises(ValueError):
                parse_size(text)

    def test_parse_address(self):
        """Test host:port variants"""
        self.assertEqual(parse_address(":5555"), ("", 5555))
        self.assertEqual(parse_address("example.com:80"), ("example.com", 80))
        self.assertEqual(parse_address("[::1]:5555"), ("::1", 5555))

        with self.assertRaises(ValueError):
            parse_address("example.com")
        with self.assertRaises(ValueError):
            parse_address("host:99999")

    def test_format_address(self):
        """Test socket addresses render as host:port"""
        self.assertEqual(format_address(("127.0.0.1", 5555)), "127.0.0.1:5555")
        self.assertEqual(format_address(("::1", 5555, 0, 0)), "[::1]:5555")

    def test_config_defaults_parse(self):
        """Test configured default sizes are valid"""
        self.assertEqual(parse_size(Config.CHUNK_SIZE), 64 * 1024)
        self.assertEqual(parse_size(Config.BUFFER_SIZE), 16 * 1024 * 1024)
        self.assertIn("POOL_SLACK", Config.get_config_dict())


class TestFormatting(unittest.TestCase):
    """Test human scaled output"""

    def test_format_bytes(self):
        """Test SI byte formatting"""
        self.assertEqual(format_bytes(5), "5 B")
        self.assertEqual(format_bytes(10240), "10 kB")
        self.assertEqual(format_bytes(2_000_000), "2.0 MB")
        self.assertEqual(format_bytes(16_000_000), "16 MB")

    def test_format_ibytes(self):
        """Test IEC byte formatting"""
        self.assertEqual(format_ibytes(16 * 1024 * 1024), "16 MiB")
        self.assertEqual(format_ibytes(1536), "1.5 KiB")

    def test_format_bit_rate(self):
        """Test bit rates use the byte scale with a bps unit"""
        self.assertEqual(format_bit_rate(16_000_000), "16 Mbps")
        self.assertEqual(format_bit_rate(2_500_000_000), "2.5 Gbps")

    def test_format_si(self):
        """Test counts are scaled by thousands"""
        self.assertEqual(format_si(10, "blocks"), "10 blocks")
        self.assertEqual(format_si(1234, "blocks"), "1.234k blocks")
        self.assertEqual(format_si(2_000_000), "2M")

    def test_format_duration(self):
        """Test Go-style durations"""
        self.assertEqual(format_duration(0), "0s")
        self.assertEqual(format_duration(1.5), "1.5s")
        self.assertEqual(format_duration(0.35), "350ms")
        self.assertEqual(format_duration(0.000015), "15µs")
        self.assertEqual(format_duration(125), "2m5s")
        self.assertEqual(format_duration(3725), "1h2m5s")


if __name__ == '__main__':
    unittest.main()
