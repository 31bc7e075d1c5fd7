# constants for pingloop package
import struct


ICMP_PROTO = 1
ICMP_ECHO_REQUEST = 8, 0
ICMP_ECHO_REPLY = 0, 0

# type(8), code(8), checksum(16), id(16), sequence(16), timestamp(64)
ECHO_MESSAGE_SIZE = struct.calcsize('!BBHHHQ')

WINDOW = 5
SEQUENCE_MODULUS = 1 << 16
INTERVAL = 1.0

MTU = 1500
IPV4_HEADER_SIZE = 20

VERSION = '0.1.0'
