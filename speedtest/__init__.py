"""
Network throughput tester built around a buffer-recycling transfer loop
"""
__version__ = "0.1.0"
