"""A bounds-checked reader and the tag-length-value primitives of DER."""

from __future__ import annotations

import enum
from typing import Callable, TypeVar

from pkiverify.errors import ErrorKind, WebPkiError

R = TypeVar("R")

CONSTRUCTED = 0x20
CONTEXT_SPECIFIC = 0x80

# Only the low tag number form (tag numbers 0 to 30) is supported.
_HIGH_TAG_RANGE_START = 31

# Lengths below this are encoded in a single byte.
_SHORT_FORM_LEN_MAX = 128

_LONG_FORM_LEN_ONE_BYTE = 0x81
_LONG_FORM_LEN_ONE_BYTE_MAX = 0xFF
_LONG_FORM_LEN_TWO_BYTES = 0x82
_LONG_FORM_LEN_TWO_BYTES_MAX = 0xFFFF
_LONG_FORM_LEN_THREE_BYTES = 0x83
_LONG_FORM_LEN_THREE_BYTES_MAX = 0xFFFFFF
_LONG_FORM_LEN_FOUR_BYTES = 0x84
_LONG_FORM_LEN_FOUR_BYTES_MAX = 0xFFFFFFFF

# Long-form lengths of two bytes: the default limit for reading a value.
TWO_BYTE_DER_SIZE = _LONG_FORM_LEN_TWO_BYTES_MAX

# Four-byte long-form lengths: the largest value that can be read at all.
MAX_DER_SIZE = _LONG_FORM_LEN_FOUR_BYTES_MAX

# For each long-form leading octet: the number of length bytes that follow and
# the largest length that a shorter encoding could already express.
_LONG_FORMS: dict[int, tuple[int, int]] = {
    _LONG_FORM_LEN_ONE_BYTE: (1, _SHORT_FORM_LEN_MAX - 1),
    _LONG_FORM_LEN_TWO_BYTES: (2, _LONG_FORM_LEN_ONE_BYTE_MAX),
    _LONG_FORM_LEN_THREE_BYTES: (3, _LONG_FORM_LEN_TWO_BYTES_MAX),
    _LONG_FORM_LEN_FOUR_BYTES: (4, _LONG_FORM_LEN_THREE_BYTES_MAX),
}


class Tag(enum.IntEnum):
    """The DER tags that are understood."""

    BOOLEAN = 0x01
    INTEGER = 0x02
    BIT_STRING = 0x03
    OCTET_STRING = 0x04
    OID = 0x06
    ENUM = 0x0A
    SEQUENCE = CONSTRUCTED | 0x10
    UTC_TIME = 0x17
    GENERALIZED_TIME = 0x18
    CONTEXT_SPECIFIC_CONSTRUCTED_0 = CONTEXT_SPECIFIC | CONSTRUCTED | 0
    CONTEXT_SPECIFIC_CONSTRUCTED_1 = CONTEXT_SPECIFIC | CONSTRUCTED | 1
    CONTEXT_SPECIFIC_CONSTRUCTED_3 = CONTEXT_SPECIFIC | CONSTRUCTED | 3


def _bad_der() -> WebPkiError:
    return WebPkiError(ErrorKind.BAD_DER)


class Reader:
    """Reads bytes from an input front to back, never past its end.

    Running out of input raises ``WebPkiError`` of kind ``BAD_DER``.
    """

    def __init__(self, data: bytes | bytearray | memoryview = b"") -> None:
        self._data = bytes(data)
        self._pos = 0

    def __repr__(self) -> str:
        return f"Reader(remaining={len(self._data) - self._pos})"

    def at_end(self) -> bool:
        """Whether every byte has been read."""
        return self._pos >= len(self._data)

    def peek(self, byte: int) -> bool:
        """Whether the next byte equals ``byte``, without consuming it."""
        return not self.at_end() and self._data[self._pos] == int(byte)

    def read_byte(self) -> int:
        """Read and return one byte."""
        if self.at_end():
            raise _bad_der()
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_bytes(self, count: int) -> bytes:
        """Read and return exactly ``count`` bytes."""
        if count < 0 or len(self._data) - self._pos < count:
            raise _bad_der()
        start = self._pos
        self._pos += count
        return self._data[start : self._pos]

    def read_bytes_to_end(self) -> bytes:
        """Read and return every remaining byte."""
        rest = self._data[self._pos :]
        self._pos = len(self._data)
        return rest

    def read_partial(self, func: Callable[[Reader], R]) -> tuple[bytes, R]:
        """Apply ``func`` and return the bytes it consumed with its result."""
        start = self._pos
        result = func(self)
        return self._data[start : self._pos], result

    def read_all(self, error: WebPkiError, func: Callable[[Reader], R]) -> R:
        """Apply ``func`` and raise ``error`` if it leaves input unread."""
        result = func(self)
        if not self.at_end():
            raise error
        return result


def read_tag_and_get_value_limited(reader: Reader, size_limit: int) -> tuple[int, bytes]:
    """Read one tag-length-value item whose length is below ``size_limit``."""
    tag = reader.read_byte()
    if tag & _HIGH_TAG_RANGE_START == _HIGH_TAG_RANGE_START:
        raise _bad_der()  # High tag number form is not allowed.

    first = reader.read_byte()
    if first & _SHORT_FORM_LEN_MAX == 0:
        length = first
    else:
        form = _LONG_FORMS.get(first)
        if form is None:
            raise _bad_der()  # Longer lengths are not supported.
        count, shorter_max = form
        length = int.from_bytes(reader.read_bytes(count), "big")
        if length <= shorter_max:
            raise _bad_der()  # Not the canonical encoding.

    if length >= size_limit:
        raise _bad_der()  # Larger than the caller accepts.

    return tag, reader.read_bytes(length)


def read_tag_and_get_value(reader: Reader) -> tuple[int, bytes]:
    """Read one tag-length-value item of at most a two-byte length."""
    return read_tag_and_get_value_limited(reader, TWO_BYTE_DER_SIZE)


def expect_tag_and_get_value_limited(reader: Reader, tag: Tag, size_limit: int) -> bytes:
    """Read an item that must carry ``tag`` and return its value."""
    actual_tag, value = read_tag_and_get_value_limited(reader, size_limit)
    if int(actual_tag) != int(tag):
        raise _bad_der()
    return value


def expect_tag(reader: Reader, tag: Tag) -> bytes:
    """Read an item that must carry ``tag`` with the default size limit."""
    return expect_tag_and_get_value_limited(reader, tag, TWO_BYTE_DER_SIZE)


def nested_limited(
    reader: Reader,
    tag: Tag,
    error: WebPkiError,
    decoder: Callable[[Reader], R],
    size_limit: int,
) -> R:
    """Decode the whole value of an item tagged ``tag``.

    A missing or mistagged item, or a decoder that leaves bytes unread,
    raises ``error``; errors raised by the decoder itself pass through.
    """
    try:
        value = expect_tag_and_get_value_limited(reader, tag, size_limit)
    except WebPkiError:
        raise error from None
    return Reader(value).read_all(error, decoder)


def nested(reader: Reader, tag: Tag, error: WebPkiError, decoder: Callable[[Reader], R]) -> R:
    """``nested_limited`` with the default size limit."""
    return nested_limited(reader, tag, error, decoder, TWO_BYTE_DER_SIZE)


def nested_of_mut(
    reader: Reader,
    outer_tag: Tag,
    inner_tag: Tag,
    error: WebPkiError,
    allow_empty: bool,
    decoder: Callable[[Reader], object],
) -> None:
    """Apply ``decoder`` to every ``inner_tag`` item inside an ``outer_tag`` item."""

    def decode_outer(outer: Reader) -> None:
        if allow_empty and outer.at_end():
            return
        while True:
            nested(outer, inner_tag, error, decoder)
            if outer.at_end():
                break

    nested(reader, outer_tag, error, decode_outer)