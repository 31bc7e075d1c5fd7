import struct

import pytest

import pingloop.constants as const
from pingloop.utils.icmp import EchoMessage, decode, encode, get_icmp_checksum


def _reply(id, seq_num, timestamp):
    return EchoMessage(*const.ICMP_ECHO_REPLY, 0, id, seq_num, timestamp)


def _reply_bytes(id=0x1234, seq_num=7, timestamp=0x0102030405060708):
    return encode(_reply(id, seq_num, timestamp))


def test_checksum_known_vector():
    # RFC 1071 example words 0001 f203 f4f5 f6f7
    data = bytes.fromhex('0001f203f4f5f6f7')
    assert get_icmp_checksum(data) == 0x220d


def test_checksum_odd_length_pads_high_byte():
    assert get_icmp_checksum(b'\x01') == get_icmp_checksum(b'\x01\x00')
    assert get_icmp_checksum(b'\x01\x02\x03') == get_icmp_checksum(b'\x01\x02\x03\x00')


def test_checksum_folds_carries():
    assert get_icmp_checksum(b'\xff\xff\xff\xff\x00\x02') == 0xfffd


def test_checksum_recomputes_to_same_value():
    data = bytearray(encode(EchoMessage.request(42, 3, 99)))
    received = struct.unpack('!H', data[2:4])[0]
    data[2:4] = b'\x00\x00'
    assert get_icmp_checksum(data) == received


def test_packed_message_sums_to_zero():
    # a correct checksum makes the one's complement sum of the whole message 0xffff
    data = encode(EchoMessage.request(1, 2, 3))
    assert get_icmp_checksum(data) == 0


def test_encode_layout():
    data = encode(EchoMessage.request(0xabcd, 0x0102, 5))
    assert len(data) == EchoMessage.size == 16
    assert data[0] == 8
    assert data[1] == 0
    assert data[4:6] == b'\xab\xcd'
    assert data[6:8] == b'\x01\x02'
    assert data[8:] == struct.pack('=Q', 5)


def test_encode_ignores_given_checksum():
    message = EchoMessage.request(1, 1, 1)
    assert encode(message._replace(checksum=0xdead)) == encode(message)


def test_decode_reply():
    message, consumed = decode(_reply_bytes())
    assert consumed == 16
    assert (message.type, message.code) == (0, 0)
    assert message.id == 0x1234
    assert message.seq_num == 7
    assert message.timestamp == 0x0102030405060708


def test_decode_keeps_fields_of_encoded_reply():
    original = _reply(65535, 65535, 2 ** 64 - 1)
    message, _ = decode(encode(original))
    assert (message.id, message.seq_num, message.timestamp) == \
        (original.id, original.seq_num, original.timestamp)


def test_decode_accepts_trailing_payload_covered_by_checksum():
    data = bytearray(_reply_bytes() + b'\x00\x00')
    assert decode(bytes(data)) is not None


def test_decode_rejects_short_buffer():
    assert decode(_reply_bytes()[:15]) is None
    assert decode(b'') is None


def test_decode_rejects_request():
    assert decode(encode(EchoMessage.request(1, 1, 1))) is None


def test_decode_rejects_nonzero_code():
    data = bytearray(_reply_bytes())
    data[1] = 1
    assert decode(bytes(data)) is None


@pytest.mark.parametrize('offset', [4, 5, 6, 7, 8, 15])
def test_decode_rejects_flipped_bit(offset):
    data = bytearray(_reply_bytes())
    data[offset] ^= 0x10
    assert decode(bytes(data)) is None


def test_decode_rejects_corrupted_checksum():
    data = bytearray(_reply_bytes())
    data[2] ^= 0xff
    assert decode(bytes(data)) is None


def test_decode_requires_bytes():
    with pytest.raises(TypeError):
        decode('not bytes')
