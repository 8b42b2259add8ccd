"""
Unit tests for the mode handshake
"""
import unittest
import socket
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from speedtest.handshake import HandshakeError, Mode, read_mode, send_mode


class TestHandshake(unittest.TestCase):
    """Test the command line exchanged before the transfer"""

    def setUp(self):
        self.client, self.server = socket.socketpair()

    def tearDown(self):
        self.client.close()
        self.server.close()

    def test_round_trip_each_mode(self):
        """Test every mode is understood by the server side"""
        for mode in Mode:
            send_mode(self.client, mode)
            self.assertIs(read_mode(self.server), mode)

    def test_payload_after_command_is_not_consumed(self):
        """Test bytes following the command stay in the socket"""
        self.client.sendall(b"upload\npayload")

        self.assertIs(read_mode(self.server), Mode.UPLOAD)
        self.assertEqual(self.server.recv(100), b"payload")

    def test_case_and_whitespace_tolerated(self):
        """Test the command is matched loosely"""
        self.client.sendall(b" Download\r\n")

        self.assertIs(read_mode(self.server), Mode.DOWNLOAD)

    def test_unknown_command(self):
        """Test an unknown command raises HandshakeError"""
        self.client.sendall(b"sideways\n")

        with self.assertRaises(HandshakeError):
            read_mode(self.server)

    def test_overlong_command(self):
        """Test a line past the limit is rejected"""
        self.client.sendall(b"x" * 20 + b"\n")

        with self.assertRaises(HandshakeError):
            read_mode(self.server, max_bytes=16)

    def test_peer_closed_before_newline(self):
        """Test a half-sent command raises EOFError"""
        self.client.sendall(b"upl")
        self.client.close()

        with self.assertRaises(EOFError):
            read_mode(self.server)


if __name__ == '__main__':
    unittest.main()
