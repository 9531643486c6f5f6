import pytest
from hypothesis import given
from hypothesis import strategies as st

from protowire.errors import DecodeError
from protowire.wire import (
    MAX_TAG,
    MIN_TAG,
    RECURSION_LIMIT,
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

U64_MAX = 2**64 - 1

VARINT_CASES = [
    (2**0 - 1, [0x00]),
    (2**0, [0x01]),
    (2**7 - 1, [0x7F]),
    (2**7, [0x80, 0x01]),
    (300, [0xAC, 0x02]),
    (2**14 - 1, [0xFF, 0x7F]),
    (2**14, [0x80, 0x80, 0x01]),
    (2**21 - 1, [0xFF, 0xFF, 0x7F]),
    (2**21, [0x80, 0x80, 0x80, 0x01]),
    (2**28 - 1, [0xFF, 0xFF, 0xFF, 0x7F]),
    (2**28, [0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**35 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**35, [0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**42 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**42, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**49 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**49, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**56 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**56, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (2**63 - 1, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
    (2**63, [0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80, 0x01]),
    (U64_MAX, [0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x01]),
]


@pytest.mark.parametrize(("value", "encoded"), VARINT_CASES)
def test_varint(value, encoded):
    buf = bytearray()
    encode_varint(value, buf)
    assert bytes(buf) == bytes(encoded)
    assert encoded_len_varint(value) == len(encoded)
    reader = Reader(bytes(encoded))
    assert decode_varint(reader) == value
    assert not reader.has_remaining()


def test_varint_decode_leaves_trailing_bytes():
    reader = Reader(bytes([0xAC, 0x02, 0x07]))
    assert decode_varint(reader) == 300
    assert reader.remaining() == 1
    assert decode_varint(reader) == 7


@given(st.integers(min_value=0, max_value=U64_MAX))
def test_varint_roundtrip(value):
    buf = bytearray()
    encode_varint(value, buf)
    assert len(buf) == encoded_len_varint(value)
    assert 1 <= len(buf) <= 10
    assert decode_varint(Reader(buf)) == value


@pytest.mark.parametrize("data", [b"", b"\x80", b"\xff\xff\xff", b"\xff" * 10, b"\xff" * 11])
def test_invalid_varint(data):
    with pytest.raises(DecodeError, match="invalid varint"):
        decode_varint(Reader(data))


@pytest.mark.parametrize("value", [-1, U64_MAX + 1])
def test_encode_varint_out_of_range(value):
    with pytest.raises(ValueError):
        encode_varint(value, bytearray())


def test_reader_operations():
    reader = Reader(b"\x01\x02\x03\x04")
    assert reader.remaining() == 4
    assert reader.read_byte() == 1
    assert reader.read(2) == b"\x02\x03"
    reader.advance(1)
    assert not reader.has_remaining()
    with pytest.raises(DecodeError, match="buffer underflow"):
        reader.read_byte()
    with pytest.raises(DecodeError, match="buffer underflow"):
        reader.read(1)


def test_wire_type_values():
    assert [int(w) for w in WireType] == [0, 1, 2, 3, 4, 5]
    with pytest.raises(DecodeError, match="invalid wire type value: 6"):
        WireType.from_value(6)


@given(
    st.integers(min_value=MIN_TAG, max_value=MAX_TAG),
    st.sampled_from(list(WireType)),
)
def test_key_roundtrip(tag, wire_type):
    buf = bytearray()
    encode_key(tag, wire_type, buf)
    assert len(buf) == key_len(tag)
    assert 1 <= len(buf) <= 5
    reader = Reader(buf)
    assert decode_key(reader) == (tag, wire_type)
    assert not reader.has_remaining()


def test_encode_key_pinned_bytes():
    buf = bytearray()
    encode_key(1, WireType.START_GROUP, buf)
    encode_key(2, WireType.VARINT, buf)
    encode_key(1, WireType.END_GROUP, buf)
    assert bytes(buf) == bytes([0x0B, 0x10, 0x0C])


@pytest.mark.parametrize("tag", [0, MAX_TAG + 1])
def test_encode_key_rejects_bad_tag(tag):
    with pytest.raises(ValueError):
        encode_key(tag, WireType.VARINT, bytearray())


def test_decode_key_errors():
    with pytest.raises(DecodeError, match="invalid tag value: 0"):
        decode_key(Reader(b"\x00"))
    with pytest.raises(DecodeError, match="invalid wire type value: 7"):
        decode_key(Reader(b"\x0f"))
    buf = bytearray()
    encode_varint(2**32, buf)
    with pytest.raises(DecodeError, match="invalid key value"):
        decode_key(Reader(buf))


def test_check_wire_type():
    check_wire_type(WireType.VARINT, WireType.VARINT)
    with pytest.raises(DecodeError, match="invalid wire type"):
        check_wire_type(WireType.VARINT, WireType.LENGTH_DELIMITED)


def test_decode_context_recursion():
    ctx = DecodeContext()
    assert ctx.recurse_count == RECURSION_LIMIT
    assert ctx.enter_recursion().recurse_count == RECURSION_LIMIT - 1
    assert ctx.recurse_count == RECURSION_LIMIT
    exhausted = DecodeContext(1).enter_recursion()
    with pytest.raises(DecodeError, match="recursion limit reached"):
        exhausted.limit_reached()


def _append_varint(values, reader, ctx):
    values.append(decode_varint(reader))


def test_merge_loop_collects_values():
    buf = bytearray()
    payload = bytearray()
    for value in (1, 300, 0):
        encode_varint(value, payload)
    encode_varint(len(payload), buf)
    buf += payload
    buf.append(0x7F)
    reader = Reader(buf)
    values = []
    merge_loop(values, reader, DecodeContext(), _append_varint)
    assert values == [1, 300, 0]
    assert reader.remaining() == 1


def test_merge_loop_underflow():
    with pytest.raises(DecodeError, match="buffer underflow"):
        merge_loop([], Reader(b"\x05\x01"), DecodeContext(), _append_varint)


def test_merge_loop_length_exceeded():
    with pytest.raises(DecodeError, match="delimited length exceeded"):
        merge_loop([], Reader(b"\x01\x80\x01"), DecodeContext(), _append_varint)


@pytest.mark.parametrize(
    ("wire_type", "body"),
    [
        (WireType.VARINT, b"\xac\x02"),
        (WireType.THIRTY_TWO_BIT, b"\x00\x00\x80\x3f"),
        (WireType.SIXTY_FOUR_BIT, b"\x01" * 8),
        (WireType.LENGTH_DELIMITED, b"\x03abc"),
    ],
)
def test_skip_field_simple(wire_type, body):
    reader = Reader(body + b"\x10")
    skip_field(wire_type, 1, reader, DecodeContext())
    assert reader.remaining() == 1


def test_skip_group():
    # unused group (tag=5) followed by an int32 field (tag=2)
    reader = Reader(bytes([0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x10, 0x20]))
    tag, wire_type = decode_key(reader)
    assert (tag, wire_type) == (5, WireType.START_GROUP)
    skip_field(wire_type, tag, reader, DecodeContext())
    assert decode_key(reader) == (2, WireType.VARINT)
    assert decode_varint(reader) == 0x20


def test_skip_group_wrong_end_tag():
    reader = Reader(bytes([0x30, 0x01, 0x14]))
    with pytest.raises(DecodeError, match="unexpected end group tag"):
        skip_field(WireType.START_GROUP, 1, reader, DecodeContext())


def test_skip_bare_end_group():
    with pytest.raises(DecodeError, match="unexpected end group tag"):
        skip_field(WireType.END_GROUP, 1, Reader(b""), DecodeContext())


def test_skip_field_underflow():
    with pytest.raises(DecodeError, match="buffer underflow"):
        skip_field(WireType.SIXTY_FOUR_BIT, 1, Reader(b"\x00\x00"), DecodeContext())
    with pytest.raises(DecodeError, match="buffer underflow"):
        skip_field(WireType.LENGTH_DELIMITED, 1, Reader(b"\x05ab"), DecodeContext())


def test_skip_deeply_nested_groups_hits_recursion_limit():
    reader = Reader(b"C" * (1 << 12))
    tag, wire_type = decode_key(reader)
    with pytest.raises(DecodeError, match="recursion limit reached"):
        skip_field(wire_type, tag, reader, DecodeContext())