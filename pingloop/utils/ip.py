import ipaddress
import struct
from collections import namedtuple

import pingloop.constants as const


_IPv4Header = namedtuple('_IPv4Header', [
    'version',
    'ihl',
    'tos',
    'total_length',
    'id',
    'flags',
    'fragment_offset',
    'ttl',
    'proto',
    'checksum',
    'src',
    'dest',
])


class IPv4Header(_IPv4Header):
    # options are not supported, the header is always 20 bytes
    _format = '!BBHHHBBH4s4s'
    size = const.IPV4_HEADER_SIZE

    @classmethod
    def unpack(cls, byte_obj):
        (ver_ihl, tos, tot_len, id, flags_offset, *others) = struct.unpack(cls._format, byte_obj)
        version = ver_ihl >> 4
        ihl = ver_ihl & 0xF
        flags = flags_offset >> 13
        fragment_offset = flags_offset & 0x1FFF
        return cls(version, ihl, tos, tot_len, id, flags, fragment_offset, *others)

    @property
    def source(self):
        return str(ipaddress.IPv4Address(self.src))


def split_ip_packet(packet):
    """Split a raw socket datagram into its IPv4 header and ICMP payload.

    Returns None for datagrams too short to hold the header.
    """
    if len(packet) < IPv4Header.size:
        return None
    return IPv4Header.unpack(packet[:IPv4Header.size]), packet[IPv4Header.size:]


def parse_ipv4_address(address):
    """Validate a literal dotted-quad IPv4 address; hostnames are rejected."""
    try:
        return str(ipaddress.IPv4Address(address))
    except ipaddress.AddressValueError as e:
        raise ValueError(f'{address!r} is not an IPv4 address: {e}') from e
