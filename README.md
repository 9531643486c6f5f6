# protowire

Building blocks for reading and writing the Protocol Buffers binary wire
format: varints, field keys, scalar codecs, embedded messages, groups and
maps, together with a `Message` base class and the well-known wrapper types.

It has no dependencies outside the standard library.

## Modules

- `protowire.wire`: `Reader` (a cursor over bytes), `WireType`,
  `DecodeContext`, and the functions `encode_varint`, `decode_varint`,
  `encoded_len_varint`, `encode_key`, `decode_key`, `key_len`,
  `check_wire_type`, `merge_loop` and `skip_field`.
- `protowire.scalars`: the codec classes `Codec`, `VarintCodec`,
  `FixedCodec`, `StringCodec` and `BytesCodec`, and one ready-made codec per
  scalar type: `BOOL`, `INT32`, `INT64`, `UINT32`, `UINT64`, `SINT32`,
  `SINT64`, `FLOAT`, `DOUBLE`, `FIXED32`, `FIXED64`, `SFIXED32`, `SFIXED64`,
  `STRING` and `BYTES`.
- `protowire.message`: the `Message` base class and the length delimiter
  helpers `encode_length_delimiter`, `length_delimiter_len` and
  `decode_length_delimiter`.
- `protowire.composite`: embedded messages (`encode_message`,
  `merge_message`, ...), groups (`encode_group`, `merge_group`, ...) and
  maps (`encode_map`, `merge_map`, `encoded_len_map`).
- `protowire.wrappers`: `BoolValue`, `Int32Value`, `Int64Value`,
  `UInt32Value`, `UInt64Value`, `FloatValue`, `DoubleValue`, `StringValue`,
  `BytesValue` and `Empty`.
- `protowire.errors`: `DecodeError` and `EncodeError`, both subclasses of
  `ValueError`.

## Varints and keys

```python
from protowire.wire import Reader, WireType, encode_varint, decode_varint, encode_key, decode_key

buf = bytearray()
encode_key(1, WireType.VARINT, buf)
encode_varint(300, buf)

reader = Reader(bytes(buf))
tag, wire_type = decode_key(reader)   # (1, WireType.VARINT)
value = decode_varint(reader)         # 300
```

Malformed input raises `protowire.errors.DecodeError`. Its `str()` starts with
`failed to decode Protobuf message:` followed by the description, for example
`invalid varint`, `buffer underflow` or `invalid wire type value: 7`.

Values that cannot be represented (a negative varint, an `int32` out of range,
a tag outside 1 to 2^29 - 1) raise a plain `ValueError` while encoding.

## Writing a message

Subclass `Message` and implement `encode_raw`, `merge_field`, `encoded_len`
and `clear`. The class must be constructible with no arguments.

```python
from dataclasses import dataclass

from protowire.message import Message
from protowire.scalars import INT32, STRING
from protowire.wire import skip_field


@dataclass
class Person(Message):
    id: int = 0
    name: str = ""

    def encode_raw(self, buf):
        if self.id != 0:
            INT32.encode(1, self.id, buf)
        if self.name:
            STRING.encode(2, self.name, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.id = INT32.merge(wire_type, reader, ctx)
        elif tag == 2:
            self.name = STRING.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return (INT32.encoded_len(1, self.id) if self.id != 0 else 0) + (
            STRING.encoded_len(2, self.name) if self.name else 0
        )

    def clear(self):
        self.id = 0
        self.name = ""


data = Person(150, "Ann").encode_to_bytes()   # b"\x08\x96\x01\x12\x03Ann"
assert Person.decode(data) == Person(150, "Ann")
```

The base class then provides:

- `encode(buf, capacity=None)` and `encode_length_delimited(buf, capacity=None)`
  append to a `bytearray`; when `capacity` is given and the output would not
  fit, `EncodeError` is raised (with `required_capacity` and `remaining`).
- `encode_to_bytes()` and `encode_length_delimited_to_bytes()`.
- `decode(data)` and `decode_length_delimited(data)` as class methods, and
  `merge(data)` and `merge_length_delimited(data)` on an instance. `data` may
  be `bytes`, `bytearray`, `memoryview` or a `Reader`.

Nested decoding stops at a depth of 100 and raises `DecodeError` with the
description `recursion limit reached`.

## Repeated fields, groups and maps

Each codec has `encode_repeated`, `merge_repeated` and `encoded_len_repeated`;
`VarintCodec` and `FixedCodec` also have `encode_packed` and
`encoded_len_packed`, and their `merge_repeated` accepts both packed and
unpacked input.

Map fields take a key codec and a value codec:

```python
from protowire.composite import encode_map, encoded_len_map
from protowire.scalars import INT32, STRING

buf = bytearray()
encode_map(INT32, STRING, 3, {1: "one"}, buf)
assert len(buf) == encoded_len_map(INT32, STRING, 3, {1: "one"})
```

Keys and values equal to their default are left out of each entry;
`value_default` overrides the value codec's default.

## Wrapper types

```python
from protowire.wrappers import UInt32Value

data = UInt32Value(42).encode_to_bytes()
assert UInt32Value.decode(data) == UInt32Value(42)
```

A wrapper whose value is the default encodes to no bytes.

## What it does not do

There is no schema compiler: messages are written by hand as shown above.
There is no reflection, JSON mapping or text format, and only the wrapper
types and `Empty` are provided among the well-known types.

## Running the tests

```
pip install -e ".[test]"
pytest
```