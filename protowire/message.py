"""The Protobuf message interface and helpers for length delimiters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TypeVar

from protowire.errors import DecodeError, EncodeError
from protowire.wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    decode_varint,
    encode_varint,
    encoded_len_varint,
    merge_loop,
)

M = TypeVar("M", bound="Message")

_Data = bytes | bytearray | memoryview | Reader


def _as_reader(data: _Data) -> Reader:
    return data if isinstance(data, Reader) else Reader(data)


def _check_capacity(required: int, capacity: int | None) -> None:
    if capacity is not None and required > capacity:
        raise EncodeError(required, capacity)


class Message(ABC):
    """A Protocol Buffers message.

    Subclasses implement the four abstract methods; encoding and decoding of
    whole messages is built on top of them. A subclass must be constructible
    with no arguments, giving the message with every field at its default.
    """

    @abstractmethod
    def encode_raw(self, buf: bytearray) -> None:
        """Append the message's fields to ``buf``, without a length delimiter."""

    @abstractmethod
    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        """Read one field whose key has already been read and merge it into self."""

    @abstractmethod
    def encoded_len(self) -> int:
        """Encoded length of the message without a length delimiter."""

    @abstractmethod
    def clear(self) -> None:
        """Reset every field to its default."""

    def encode(self, buf: bytearray, capacity: int | None = None) -> None:
        """Append the message to ``buf``.

        When ``capacity`` is given it is the room left for the message, and
        EncodeError is raised if the message does not fit.
        """
        _check_capacity(self.encoded_len(), capacity)
        self.encode_raw(buf)

    def encode_to_bytes(self) -> bytes:
        """Return the encoded message."""
        buf = bytearray()
        self.encode_raw(buf)
        return bytes(buf)

    def encode_length_delimited(
        self, buf: bytearray, capacity: int | None = None
    ) -> None:
        """Append the message preceded by its length to ``buf``.

        When ``capacity`` is given and the delimited message does not fit,
        EncodeError is raised and nothing is written.
        """
        length = self.encoded_len()
        _check_capacity(length + encoded_len_varint(length), capacity)
        encode_varint(length, buf)
        self.encode_raw(buf)

    def encode_length_delimited_to_bytes(self) -> bytes:
        """Return the message preceded by its length."""
        buf = bytearray()
        encode_varint(self.encoded_len(), buf)
        self.encode_raw(buf)
        return bytes(buf)

    @classmethod
    def decode(cls: type[M], data: _Data) -> M:
        """Decode a message from all of ``data``."""
        message = cls()
        message.merge(data)
        return message

    @classmethod
    def decode_length_delimited(cls: type[M], data: _Data) -> M:
        """Decode a length-delimited message from the start of ``data``."""
        message = cls()
        message.merge_length_delimited(data)
        return message

    def merge(self, data: _Data) -> None:
        """Decode all of ``data`` and merge its fields into self."""
        reader = _as_reader(data)
        ctx = DecodeContext()
        while reader.has_remaining():
            tag, wire_type = decode_key(reader)
            self.merge_field(tag, wire_type, reader, ctx)

    def merge_length_delimited(self, data: _Data) -> None:
        """Decode a length-delimited message from ``data`` and merge it into self."""
        reader = _as_reader(data)
        ctx = DecodeContext()
        check_wire_type(WireType.LENGTH_DELIMITED, WireType.LENGTH_DELIMITED)
        ctx.limit_reached()
        merge_loop(self, reader, ctx.enter_recursion(), _merge_one_field)


def _merge_one_field(message: Message, reader: Reader, ctx: DecodeContext) -> None:
    tag, wire_type = decode_key(reader)
    message.merge_field(tag, wire_type, reader, ctx)


def encode_length_delimiter(
    length: int, buf: bytearray, capacity: int | None = None
) -> None:
    """Append a length delimiter to ``buf``.

    When ``capacity`` is given and the delimiter does not fit, EncodeError is raised.
    """
    _check_capacity(encoded_len_varint(length), capacity)
    encode_varint(length, buf)


def length_delimiter_len(length: int) -> int:
    """Encoded size of a length delimiter, from 1 to 10 bytes."""
    return encoded_len_varint(length)


def decode_length_delimiter(data: _Data) -> int:
    """Read a length delimiter from the start of ``data``."""
    reader = _as_reader(data)
    try:
        return decode_varint(reader)
    except DecodeError:
        raise