"""Encoding of embedded messages, groups and map fields."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, MutableMapping, Sequence, TypeVar

from protowire.errors import DecodeError
from protowire.message import Message
from protowire.scalars import Codec
from protowire.wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

M = TypeVar("M", bound=Message)

_MAP_KEY_TAG = 1
_MAP_VALUE_TAG = 2


def _merge_field_into(msg: Message, reader: Reader, ctx: DecodeContext) -> None:
    tag, wire_type = decode_key(reader)
    msg.merge_field(tag, wire_type, reader, ctx)


def encode_message(tag: int, msg: Message, buf: bytearray) -> None:
    """Append ``msg`` as a length-delimited embedded message field ``tag``."""
    encode_key(tag, WireType.LENGTH_DELIMITED, buf)
    encode_varint(msg.encoded_len(), buf)
    msg.encode_raw(buf)


def merge_message(
    wire_type: WireType, msg: Message, reader: Reader, ctx: DecodeContext
) -> None:
    """Read an embedded message whose key has been read and merge it into ``msg``."""
    check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
    ctx.limit_reached()
    merge_loop(msg, reader, ctx.enter_recursion(), _merge_field_into)


def encode_repeated_messages(
    tag: int, messages: Iterable[Message], buf: bytearray
) -> None:
    """Append every message as its own field ``tag``."""
    for msg in messages:
        encode_message(tag, msg, buf)


def merge_repeated_messages(
    wire_type: WireType,
    messages: list[M],
    factory: Callable[[], M],
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Read one element of a repeated message field and append it to ``messages``."""
    check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
    msg = factory()
    merge_message(WireType.LENGTH_DELIMITED, msg, reader, ctx)
    messages.append(msg)


def encoded_len_message(tag: int, msg: Message) -> int:
    """Encoded size of ``msg`` as an embedded message field ``tag``."""
    length = msg.encoded_len()
    return key_len(tag) + encoded_len_varint(length) + length


def encoded_len_repeated_messages(tag: int, messages: Sequence[Message]) -> int:
    """Encoded size of ``messages`` as a repeated message field ``tag``."""
    lengths = [msg.encoded_len() for msg in messages]
    return key_len(tag) * len(lengths) + sum(
        length + encoded_len_varint(length) for length in lengths
    )


def encode_group(tag: int, msg: Message, buf: bytearray) -> None:
    """Append ``msg`` as group field ``tag``, between start and end group keys."""
    encode_key(tag, WireType.START_GROUP, buf)
    msg.encode_raw(buf)
    encode_key(tag, WireType.END_GROUP, buf)


def merge_group(
    tag: int,
    wire_type: WireType,
    msg: Message,
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Read the body of group ``tag`` up to its end key and merge it into ``msg``."""
    check_wire_type(WireType.START_GROUP, wire_type)
    ctx.limit_reached()
    while True:
        field_tag, field_wire_type = decode_key(reader)
        if field_wire_type == WireType.END_GROUP:
            if field_tag != tag:
                raise DecodeError("unexpected end group tag")
            return
        msg.merge_field(field_tag, field_wire_type, reader, ctx.enter_recursion())


def encode_repeated_groups(
    tag: int, messages: Iterable[Message], buf: bytearray
) -> None:
    """Append every message as its own group field ``tag``."""
    for msg in messages:
        encode_group(tag, msg, buf)


def merge_repeated_groups(
    tag: int,
    wire_type: WireType,
    messages: list[M],
    factory: Callable[[], M],
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Read one element of a repeated group field and append it to ``messages``."""
    check_wire_type(WireType.START_GROUP, wire_type)
    msg = factory()
    merge_group(tag, WireType.START_GROUP, msg, reader, ctx)
    messages.append(msg)


def encoded_len_group(tag: int, msg: Message) -> int:
    """Encoded size of ``msg`` as group field ``tag``."""
    return 2 * key_len(tag) + msg.encoded_len()


def encoded_len_repeated_groups(tag: int, messages: Sequence[Message]) -> int:
    """Encoded size of ``messages`` as a repeated group field ``tag``."""
    return 2 * key_len(tag) * len(messages) + sum(
        msg.encoded_len() for msg in messages
    )


def _resolve_default(value_codec: Codec, value_default: Any) -> Any:
    return value_codec.default if value_default is None else value_default


def _entry_len(
    key_codec: Codec, value_codec: Codec, key: Any, value: Any, value_default: Any
) -> tuple[int, bool, bool]:
    skip_key = key == key_codec.default
    skip_value = value == value_default
    length = (0 if skip_key else key_codec.encoded_len(_MAP_KEY_TAG, key)) + (
        0 if skip_value else value_codec.encoded_len(_MAP_VALUE_TAG, value)
    )
    return length, skip_key, skip_value


def encode_map(
    key_codec: Codec,
    value_codec: Codec,
    tag: int,
    values: Mapping[Any, Any],
    buf: bytearray,
    value_default: Any = None,
) -> None:
    """Append ``values`` as map field ``tag``, one entry per key.

    Keys and values equal to their defaults are left out of each entry.
    ``value_default`` overrides the value codec's default when given.
    """
    value_default = _resolve_default(value_codec, value_default)
    for key, value in values.items():
        length, skip_key, skip_value = _entry_len(
            key_codec, value_codec, key, value, value_default
        )
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(length, buf)
        if not skip_key:
            key_codec.encode(_MAP_KEY_TAG, key, buf)
        if not skip_value:
            value_codec.encode(_MAP_VALUE_TAG, value, buf)


def merge_map(
    key_codec: Codec,
    value_codec: Codec,
    values: MutableMapping[Any, Any],
    reader: Reader,
    ctx: DecodeContext,
    value_default: Any = None,
) -> None:
    """Read one map entry whose key has been read and store it in ``values``."""
    entry = [key_codec.default, _resolve_default(value_codec, value_default)]

    def merge_entry(state: list[Any], rdr: Reader, inner: DecodeContext) -> None:
        field_tag, wire_type = decode_key(rdr)
        if field_tag == _MAP_KEY_TAG:
            state[0] = key_codec.merge(wire_type, rdr, inner)
        elif field_tag == _MAP_VALUE_TAG:
            state[1] = value_codec.merge(wire_type, rdr, inner)
        else:
            skip_field(wire_type, field_tag, rdr, inner)

    ctx.limit_reached()
    merge_loop(entry, reader, ctx.enter_recursion(), merge_entry)
    values[entry[0]] = entry[1]


def encoded_len_map(
    key_codec: Codec,
    value_codec: Codec,
    tag: int,
    values: Mapping[Any, Any],
    value_default: Any = None,
) -> int:
    """Encoded size of ``values`` as map field ``tag``."""
    value_default = _resolve_default(value_codec, value_default)
    total = key_len(tag) * len(values)
    for key, value in values.items():
        length, _, _ = _entry_len(key_codec, value_codec, key, value, value_default)
        total += encoded_len_varint(length) + length
    return total