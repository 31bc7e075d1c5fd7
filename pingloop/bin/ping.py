#!/usr/bin/env python3
import logging
import argparse
import sys

from pingloop.utils.ip import parse_ipv4_address
from pingloop.utils.ping import ping
import pingloop.constants as const


logging.basicConfig(
    level=logging.INFO,
    format='%(message)s')
LOG = logging.getLogger(__name__)


def _ipv4_address(value):
    try:
        return parse_ipv4_address(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='pingloop',
        description='Send ICMP echo requests to an IPv4 address once per '
                    'interval and report replies and timeouts')
    parser.add_argument('address', type=_ipv4_address,
                        help='literal IPv4 address, hostnames are not resolved')
    parser.add_argument('--version', action='version',
                        version=f'version {const.VERSION}')
    parser.add_argument('-i', '--interval', type=float, default=const.INTERVAL,
                        help='seconds between echo requests. Defaults to 1')
    parser.add_argument('-l', '--log-file', action='store_true',
                        help='also write replies and timeouts to a log file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='log discarded datagrams')
    args = parser.parse_args(argv)

    if args.interval <= 0:
        parser.error('INTERVAL must be positive!')

    return args


def main(argv=None):
    args = _parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        ok = ping(args.address, args.interval, args.log_file)
    except KeyboardInterrupt:
        return 0
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
