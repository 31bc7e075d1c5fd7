import logging
import select
import socket
from socket import AF_INET, SOCK_RAW
import time
from collections import deque

import pingloop.constants as const
from pingloop.utils.icmp import EchoMessage, decode, encode
from pingloop.utils.ip import parse_ipv4_address, split_ip_packet
from pingloop.utils.session import Session
from pingloop.utils.timer import IntervalTimer
from pingloop.utils.tracker import ExchangeTracker


LOG = logging.getLogger(__name__)

TIMER = 'timer'
DATAGRAM = 'datagram'


class PingError(RuntimeError):
    """The loop cannot make progress: socket, select or timer failure."""


def _now_ms():
    return time.monotonic() * 1000


class Pinger:
    """Single-threaded echo loop over one raw socket and one interval timer.

    Every wake of `wait` may report both sources at once; the events are
    queued and `run_once` dispatches exactly one of them per call, so a
    datagram and a timer firing never share an iteration.
    """

    def __init__(self, sock, dest_addr, timer=None, session=None, tracker=None,
                 clock=_now_ms, selector=select.select):
        self.sock = sock
        self.dest_addr = dest_addr
        self.timer = timer if timer is not None else IntervalTimer()
        self.session = session if session is not None else Session()
        self.tracker = tracker if tracker is not None else ExchangeTracker()
        self._clock = clock
        self._select = selector
        self._events = deque()

    def wait(self):
        """Block until the timer is due or the socket is readable."""
        if not self.timer.armed:
            self.timer.arm()
        try:
            readable, *_ = self._select([self.sock], [], [], self.timer.time_left())
        except OSError as e:
            raise PingError(f'select failed: {e}') from e

        events = []
        if readable:
            events.append(DATAGRAM)
        if self.timer.due():
            events.append(TIMER)
        return events

    def run_once(self):
        """Handle the next event, waiting for one if none is queued."""
        if not self._events:
            self._events.extend(self.wait())
        if not self._events:
            return None

        event = self._events.popleft()
        if event == TIMER:
            self.on_timer()
        else:
            self.on_datagram()
        return event

    def run_forever(self):
        self.timer.arm()
        while True:
            self.run_once()

    def on_timer(self):
        """Send the next echo request, reporting any request it evicts."""
        try:
            self.timer.acknowledge()
        except RuntimeError as e:
            raise PingError(f'timer: {e}') from e
        seq_num = self.session.advance()
        evicted, evicted_seq = self.tracker.record_send(seq_num, self._clock())
        if evicted:
            LOG.info('timeout seq=%d', evicted_seq)

        request = EchoMessage.request(self.session.identifier, seq_num, time.time_ns())
        try:
            self.sock.sendto(encode(request), (self.dest_addr, 0))
        except OSError as e:
            raise PingError(f'sendto {self.dest_addr} failed: {e}') from e
        return seq_num

    def on_datagram(self):
        """Receive one datagram; returns ``(seq_num, ttl, rtt_ms)`` for a match."""
        try:
            packet, addr = self.sock.recvfrom(const.MTU)
        except OSError as e:
            raise PingError(f'recvfrom failed: {e}') from e
        now = self._clock()

        parts = split_ip_packet(packet)
        if parts is None:
            LOG.debug('Dropped %d byte datagram from %s', len(packet), addr)
            return None
        ip_header, icmp_packet = parts

        decoded = decode(icmp_packet)
        if decoded is None:
            return None
        reply, _ = decoded

        if reply.id != self.session.identifier:
            LOG.debug('Dropped reply for foreign id=%d from %s', reply.id, ip_header.source)
            return None

        rtt = self.tracker.record_reply(reply.seq_num, now)
        if rtt is None:
            exchange = self.tracker.get(reply.seq_num)
            LOG.debug('Dropped reply seq=%d: %s', reply.seq_num,
                      exchange.outcome.value if exchange is not None else 'outside window')
            return None

        LOG.info('reply seq=%d ttl=%d time=%.2fms', reply.seq_num, ip_header.ttl, rtt)
        return reply.seq_num, ip_header.ttl, rtt


def ping(address, interval=const.INTERVAL, log_to_file=False):
    """Ping `address` every `interval` seconds until a fatal error.

    `address` must be a literal IPv4 address. Returns False after logging the
    error that stopped the loop.
    """
    dest_addr = parse_ipv4_address(address)
    timer = IntervalTimer(interval)

    fh = None
    if log_to_file:
        fh = logging.FileHandler('%d-ping-%s.log' % (time.time(), dest_addr), 'w')
        LOG.addHandler(fh)
    try:
        with socket.socket(AF_INET, SOCK_RAW, const.ICMP_PROTO) as sock:
            Pinger(sock, dest_addr, timer).run_forever()
    except PermissionError:
        LOG.error('Must be superuser')
    except PingError as e:
        LOG.error(e)
    except OSError as e:
        LOG.error('Cannot open raw socket: %s', e)
    finally:
        if fh is not None:
            LOG.removeHandler(fh)
            fh.close()
    return False
