"""
Command line entry point for the speed tester
"""
import argparse
import logging
import sys
from typing import List, Optional

from common.config import Config
from common.units import parse_address, parse_size
from speedtest.client import download, say_goodbye, upload
from speedtest.metrics import MetricsServer, TransferMetrics
from speedtest.network.buffer_pool import BufferPool
from speedtest.server import SpeedTestServer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser"""
    parser = argparse.ArgumentParser(
        prog='speedtester',
        description='Measure sustained TCP throughput between two hosts'
    )
    parser.add_argument('-c', '--chunk-size', type=parse_size, default=Config.CHUNK_SIZE,
                        help='Size of each buffer chunk (default: %(default)s)')
    parser.add_argument('-s', '--buffer-size', type=parse_size, default=Config.BUFFER_SIZE,
                        help='Total buffer size (default: %(default)s)')
    parser.add_argument('--interval', type=float, default=Config.REPORT_INTERVAL,
                        help='Seconds between report lines')
    parser.add_argument('--metrics-port', type=int, default=Config.METRICS_PORT,
                        help='Serve Prometheus metrics on this port (0 disables)')
    parser.add_argument('--log-level', type=str.upper, default=Config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Start a server that clients can connect to')
    serve.add_argument('--addr', default=Config.SERVE_ADDR, help='Address to serve on')

    for name, help_text in (
        ('download', 'Check download speed from server'),
        ('upload', 'Check upload speed to server'),
    ):
        client = subparsers.add_parser(name, help=help_text)
        client.add_argument('server', help='Server address, including port')
        client.add_argument('--duration', type=float, default=None,
                            help='Stop after this many seconds')

    bye = subparsers.add_parser('bye', help='Check that a server accepts connections')
    bye.add_argument('server', help='Server address, including port')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        logging.basicConfig(level=args.log_level.upper(), format=Config.LOG_FORMAT)
    except ValueError as e:
        parser.error(str(e))

    if args.command == 'bye':
        try:
            say_goodbye(args.server)
        except (ConnectionError, ValueError) as e:
            logger.error(str(e))
            return 1
        logger.info(f"Server {args.server} is up")
        return 0

    try:
        pool = BufferPool(args.chunk_size, args.buffer_size)
    except ValueError as e:
        parser.error(str(e))

    metrics = TransferMetrics()
    MetricsServer(args.metrics_port).start()

    if args.command == 'serve':
        try:
            address = parse_address(args.addr)
        except ValueError as e:
            parser.error(str(e))

        pool.randomize()
        server = SpeedTestServer(address, pool, interval=args.interval, metrics=metrics)
        try:
            server.serve_forever()
        except OSError as e:
            logger.error(f"Cannot listen on {args.addr}: {e}")
            return 1
        except KeyboardInterrupt:
            logger.info("Shutting down...")
            server.shutdown()
        return 0

    run = upload if args.command == 'upload' else download
    if args.command == 'upload':
        pool.randomize()

    try:
        run(args.server, pool, interval=args.interval, duration=args.duration, metrics=metrics)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except (ConnectionError, ValueError) as e:
        logger.error(str(e))
        return 1
    except (OSError, EOFError) as e:
        logger.error(f"Transfer failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
