import logging
import struct
from collections import namedtuple

import pingloop.constants as const


LOG = logging.getLogger(__name__)


# ICMP echo is type(8), code(8), checksum(16), id(16), sequence(16)
# followed by an opaque 64-bit timestamp the peer echoes back untouched.
_EchoMessage = namedtuple('_EchoMessage', [
    'type',
    'code',
    'checksum',
    'id',
    'seq_num',
    'timestamp',
])


def get_icmp_checksum(data):
    """Internet checksum of `data` with its checksum field already zeroed."""
    def carry_around_add(a, b):
        c = a + b
        return (c & 0xffff) + (c >> 16)

    s = 0
    for i in range(0, len(data) - 1, 2):
        w = (data[i] << 8) + data[i+1]
        s = carry_around_add(s, w)
    if len(data) % 2:
        s = carry_around_add(s, data[-1] << 8)
    return ~s & 0xffff


class EchoMessage(_EchoMessage):
    _header_format = '!BBHHH'
    # timestamp is opaque to the peer, so it stays in host byte order
    _timestamp_format = '=Q'
    size = const.ECHO_MESSAGE_SIZE

    def pack(self):
        """Wire bytes with the checksum filled in; `self.checksum` is ignored."""
        data = bytearray(
            struct.pack(self._header_format, self.type, self.code, 0, self.id, self.seq_num) +
            struct.pack(self._timestamp_format, self.timestamp))
        struct.pack_into('!H', data, 2, get_icmp_checksum(data))
        return bytes(data)

    @classmethod
    def unpack(cls, byte_obj):
        header_size = struct.calcsize(cls._header_format)
        header = struct.unpack(cls._header_format, byte_obj[:header_size])
        (timestamp,) = struct.unpack(cls._timestamp_format, byte_obj[header_size:cls.size])
        return cls(*header, timestamp)

    @classmethod
    def request(cls, id, seq_num, timestamp):
        return cls(*const.ICMP_ECHO_REQUEST, 0, id, seq_num, timestamp)


def encode(message):
    return message.pack()


def decode(data):
    """Parse an ICMP echo reply out of `data` (outer IP header already removed).

    Returns ``(message, consumed)`` or None when `data` is too short, is not an
    echo reply, or carries a bad checksum. A shared raw socket sees plenty of
    such traffic, so rejection is not an error.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError('Packet parameter must be bytes or bytearray!')
    if len(data) < EchoMessage.size:
        LOG.debug('Dropped %d byte packet: too short', len(data))
        return None

    message = EchoMessage.unpack(data)
    if (message.type, message.code) != const.ICMP_ECHO_REPLY:
        LOG.debug('Dropped ICMP type=%d code=%d', message.type, message.code)
        return None

    copy = bytearray(data)
    copy[2:4] = b'\x00\x00'
    checksum = get_icmp_checksum(copy)
    if checksum != message.checksum:
        LOG.debug('Dropped reply seq=%d: checksum 0x%04x != 0x%04x',
                  message.seq_num, message.checksum, checksum)
        return None

    return message, EchoMessage.size
