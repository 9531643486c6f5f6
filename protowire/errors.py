"""Errors raised while encoding and decoding Protobuf data."""

from __future__ import annotations

_DECODE_PREFIX = "failed to decode Protobuf message: "


class DecodeError(ValueError):
    """The input does not hold a valid Protobuf message.

    The description is a best-effort root cause. ``stack`` holds
    ``(message, field)`` name pairs locating the failure, one per nesting level.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description
        self.stack: list[tuple[str, str]] = []

    def push(self, message: str, field: str) -> None:
        """Record the message and field in which decoding failed."""
        self.stack.append((message, field))

    def __str__(self) -> str:
        location = "".join(f"{message}.{field}: " for message, field in self.stack)
        return f"{_DECODE_PREFIX}{location}{self.description}"

    def __repr__(self) -> str:
        return f"DecodeError(description={self.description!r}, stack={self.stack!r})"


class EncodeError(ValueError):
    """A message did not fit in the capacity that was available for it."""

    def __init__(self, required: int, remaining: int) -> None:
        super().__init__(required, remaining)
        self.required_capacity = required
        self.remaining = remaining

    def __str__(self) -> str:
        return (
            "failed to encode Protobuf messsage; insufficient buffer capacity "
            f"(required: {self.required_capacity}, remaining: {self.remaining})"
        )

    def __repr__(self) -> str:
        return (
            f"EncodeError(required={self.required_capacity}, "
            f"remaining={self.remaining})"
        )