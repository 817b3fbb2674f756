"""Decoders for common DER values built on the tag-length-value reader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, TypeVar

from pkiverify.der import Reader, Tag, expect_tag, nested
from pkiverify.errors import DerTypeId, ErrorKind, WebPkiError

T = TypeVar("T")

# Lengths below this are encoded in a single byte.
_SHORT_FORM_LEN_MAX = 128


def _bad_der() -> WebPkiError:
    return WebPkiError(ErrorKind.BAD_DER)


def _trailing(type_id: DerTypeId) -> WebPkiError:
    return WebPkiError(ErrorKind.TRAILING_DATA, context=type_id)


def read_all(
    data: bytes | bytearray | memoryview,
    error: WebPkiError,
    decoder: Callable[[Reader], T],
) -> T:
    """Decode ``data`` with ``decoder``, raising ``error`` if bytes are left over."""
    return Reader(data).read_all(error, decoder)


def iter_der(
    data: bytes | bytearray | memoryview,
    decoder: Callable[[Reader], T],
) -> Iterator[T]:
    """Yield values decoded one after another until ``data`` is consumed."""
    reader = Reader(data)
    while not reader.at_end():
        yield decoder(reader)


def asn1_wrap(tag: Tag | int, data: bytes | bytearray | memoryview) -> bytes:
    """Prefix ``data`` with ``tag`` and its canonically encoded length."""
    body = bytes(data)
    length = len(body)
    if length < _SHORT_FORM_LEN_MAX:
        return bytes((int(tag), length)) + body
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    header = bytes((int(tag), _SHORT_FORM_LEN_MAX + len(length_bytes)))
    return header + length_bytes + body


def bit_string_with_no_unused_bits(reader: Reader) -> bytes:
    """Read a BIT STRING that has no padding bits and return its contents."""

    def decode(value: Reader) -> bytes:
        if value.read_byte() != 0:
            raise _bad_der()
        return value.read_bytes_to_end()

    return nested(reader, Tag.BIT_STRING, _trailing(DerTypeId.BIT_STRING), decode)


@dataclass(frozen=True)
class BitStringFlags:
    """A set of flags carried in the bits of a BIT STRING, most significant first."""

    raw_bits: bytes

    def bit_set(self, bit: int) -> bool:
        """Whether flag number ``bit`` is set; flags past the end are unset."""
        byte_index, offset = divmod(bit, 8)
        if byte_index >= len(self.raw_bits):
            return False
        return bool((self.raw_bits[byte_index] >> (7 - offset)) & 1)


def bit_string_flags(data: bytes | bytearray | memoryview) -> BitStringFlags:
    """Parse the contents of a BIT STRING holding flags (X.690 11.2)."""

    def decode(bit_string: Reader) -> BitStringFlags:
        padding_bits = bit_string.read_byte()
        raw_bits = bit_string.read_bytes_to_end()

        # At most 7 bits of padding, and none at all without flag bytes.
        if padding_bits > 7 or (not raw_bits and padding_bits != 0):
            raise _bad_der()

        # Padding bits must be zero under the distinguished encoding rules.
        if padding_bits and raw_bits[-1] & ((1 << padding_bits) - 1):
            raise _bad_der()
        return BitStringFlags(raw_bits)

    return read_all(data, _bad_der(), decode)


def nonnegative_integer(reader: Reader) -> bytes:
    """Read a non-negative INTEGER and return its big-endian magnitude."""
    value = expect_tag(reader, Tag.INTEGER)
    if not value:
        raise _bad_der()
    first, rest = value[0], value[1:]
    if first == 0:
        if not rest:
            return value  # Zero.
        if rest[0] & 0x80:
            return rest  # A necessary leading zero.
        raise _bad_der()  # An unnecessary leading zero.
    if first & 0x80 == 0:
        return value
    raise _bad_der()  # Negative.


def read_u8(reader: Reader) -> int:
    """Read a non-negative INTEGER that fits in a single byte."""
    value = nonnegative_integer(reader)
    if len(value) != 1:
        raise _bad_der()
    return value[0]


def read_bool(reader: Reader) -> bool:
    """Read an optional BOOLEAN, which is false when absent.

    An explicitly encoded default value (false) is accepted.
    """
    if not reader.peek(Tag.BOOLEAN):
        return False

    def decode(value: Reader) -> bool:
        byte = value.read_byte()
        if byte == 0xFF:
            return True
        if byte == 0x00:
            return False
        raise _bad_der()

    return nested(reader, Tag.BOOLEAN, _trailing(DerTypeId.BOOL), decode)