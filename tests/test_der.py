import pytest

from pkiverify.der import (
    MAX_DER_SIZE,
    TWO_BYTE_DER_SIZE,
    Reader,
    Tag,
    expect_tag,
    expect_tag_and_get_value_limited,
    nested,
    nested_limited,
    nested_of_mut,
    read_tag_and_get_value,
    read_tag_and_get_value_limited,
)
from pkiverify.errors import DerTypeId, ErrorKind, WebPkiError

EXAMPLE_TAG = int(Tag.SEQUENCE)


def _expect_bad_der(func, *args):
    with pytest.raises(WebPkiError) as exc:
        func(*args)
    assert exc.value.kind is ErrorKind.BAD_DER


@pytest.mark.parametrize(
    "tag, byte",
    [
        (Tag.SEQUENCE, 0x30),
        (Tag.CONTEXT_SPECIFIC_CONSTRUCTED_0, 0xA0),
        (Tag.CONTEXT_SPECIFIC_CONSTRUCTED_3, 0xA3),
    ],
)
def test_tag_values(tag, byte):
    assert expect_tag(Reader(bytes([byte, 0x01, 0x07])), tag) == b"\x07"
    read_tag, _ = read_tag_and_get_value(Reader(bytes([byte, 0x00])))
    assert read_tag == tag


def test_reader_basic_operations():
    reader = Reader(b"\x01\x02\x03\x04")
    assert not reader.at_end()
    assert reader.peek(0x01)
    assert not reader.peek(0x02)
    assert reader.read_byte() == 1
    assert reader.read_bytes(2) == b"\x02\x03"
    assert reader.read_bytes_to_end() == b"\x04"
    assert reader.at_end()
    assert not reader.peek(0x04)


def test_reader_past_end_is_bad_der():
    _expect_bad_der(Reader(b"").read_byte)
    _expect_bad_der(Reader(b"\x01").read_bytes, 2)


def test_reader_read_partial_returns_consumed_bytes():
    reader = Reader(b"\x30\x01\x00\x05")
    consumed, value = reader.read_partial(lambda r: expect_tag(r, Tag.SEQUENCE))
    assert consumed == b"\x30\x01\x00"
    assert value == b"\x00"
    assert reader.read_byte() == 5


def test_reader_read_all_rejects_leftover():
    error = WebPkiError(ErrorKind.TRAILING_DATA, context=DerTypeId.SIGNED_DATA)
    assert Reader(b"\x07").read_all(error, lambda r: r.read_byte()) == 7
    with pytest.raises(WebPkiError) as exc:
        Reader(b"\x07\x08").read_all(error, lambda r: r.read_byte())
    assert exc.value == error


def test_read_tag_and_get_value_short_form():
    reader = Reader(bytes([0x30, 0x03, 1, 2, 3]))
    assert read_tag_and_get_value(reader) == (0x30, b"\x01\x02\x03")
    assert reader.at_end()


def test_read_tag_and_get_value_one_byte_long_form():
    data = bytes([0x04, 0x81, 0x80]) + b"\xaa" * 0x80
    tag, value = read_tag_and_get_value(Reader(data))
    assert tag == 0x04
    assert value == b"\xaa" * 0x80


def test_read_tag_and_get_value_default_limit():
    inputs = [
        bytes([EXAMPLE_TAG, 0x83, 0xFF, 0xFF, 0xFF]),
        bytes([EXAMPLE_TAG, 0x84, 0xFF, 0xFF, 0xFF, 0xFF]),
    ]
    for data in inputs:
        _expect_bad_der(read_tag_and_get_value, Reader(data))


def test_read_tag_and_get_value_limited_high_form():
    _expect_bad_der(read_tag_and_get_value_limited, Reader(b"\xff"), TWO_BYTE_DER_SIZE)


@pytest.mark.parametrize(
    "data",
    [
        bytes([EXAMPLE_TAG, 0x81, 0x01]),
        bytes([EXAMPLE_TAG, 0x82, 0x00, 0x01]),
        bytes([EXAMPLE_TAG, 0x83, 0x00, 0x00, 0x01]),
        bytes([EXAMPLE_TAG, 0x84, 0x00, 0x00, 0x00, 0x01]),
    ],
)
def test_read_tag_and_get_value_limited_non_canonical(data):
    _expect_bad_der(read_tag_and_get_value_limited, Reader(data), TWO_BYTE_DER_SIZE)


def test_read_tag_and_get_value_unsupported_length_form():
    data = bytes([EXAMPLE_TAG, 0x85, 0x01, 0x00, 0x00, 0x00, 0x00])
    _expect_bad_der(read_tag_and_get_value_limited, Reader(data), MAX_DER_SIZE)


def test_read_tag_and_get_value_truncated():
    _expect_bad_der(read_tag_and_get_value, Reader(b""))
    _expect_bad_der(read_tag_and_get_value, Reader(bytes([EXAMPLE_TAG])))
    _expect_bad_der(read_tag_and_get_value, Reader(bytes([EXAMPLE_TAG, 0x02, 0x00])))
    _expect_bad_der(read_tag_and_get_value, Reader(bytes([EXAMPLE_TAG, 0x82, 0x01])))


SHORT_INPUT = b"\xff"
SHORT_ENCODED = bytes([EXAMPLE_TAG, 0x01]) + SHORT_INPUT
LONG_INPUT = b"\x01" * 65537
LONG_ENCODED = bytes([EXAMPLE_TAG, 0x83, 0x01, 0x00, 0x01]) + LONG_INPUT


@pytest.mark.parametrize(
    "data, limit, ok",
    [
        (SHORT_ENCODED, 1, False),
        (SHORT_ENCODED, len(SHORT_ENCODED) + 1, True),
        (LONG_ENCODED, len(LONG_INPUT), False),
        (LONG_ENCODED, len(LONG_INPUT) + 1, True),
    ],
)
def test_read_tag_and_get_value_limited_limits(data, limit, ok):
    reader = Reader(data)
    if ok:
        tag, value = read_tag_and_get_value_limited(reader, limit)
        assert tag == EXAMPLE_TAG
        assert value == data[-len(value) :]
        assert reader.at_end()
    else:
        _expect_bad_der(read_tag_and_get_value_limited, reader, limit)


def test_three_byte_length_needs_larger_limit():
    _expect_bad_der(read_tag_and_get_value, Reader(LONG_ENCODED))
    tag, value = read_tag_and_get_value_limited(Reader(LONG_ENCODED), MAX_DER_SIZE)
    assert tag == EXAMPLE_TAG
    assert len(value) == 65537


def test_expect_tag_matches_and_mismatches():
    assert expect_tag(Reader(b"\x02\x01\x05"), Tag.INTEGER) == b"\x05"
    _expect_bad_der(expect_tag, Reader(b"\x02\x01\x05"), Tag.SEQUENCE)
    assert expect_tag_and_get_value_limited(Reader(b"\x04\x02ab"), Tag.OCTET_STRING, 3) == b"ab"
    _expect_bad_der(expect_tag_and_get_value_limited, Reader(b"\x04\x02ab"), Tag.OCTET_STRING, 2)


NESTED_ERROR = WebPkiError(ErrorKind.TRAILING_DATA, context=DerTypeId.EXTENSION)


def test_nested_decodes_value():
    reader = Reader(b"\x30\x01\x05\x99")
    assert nested(reader, Tag.SEQUENCE, NESTED_ERROR, lambda r: r.read_byte()) == 5
    assert reader.read_byte() == 0x99


def test_nested_wrong_tag_raises_given_error():
    with pytest.raises(WebPkiError) as exc:
        nested(Reader(b"\x02\x01\x05"), Tag.SEQUENCE, NESTED_ERROR, lambda r: r.read_byte())
    assert exc.value == NESTED_ERROR


def test_nested_leftover_raises_given_error():
    with pytest.raises(WebPkiError) as exc:
        nested(Reader(b"\x30\x02\x05\x06"), Tag.SEQUENCE, NESTED_ERROR, lambda r: r.read_byte())
    assert exc.value == NESTED_ERROR


def test_nested_decoder_error_passes_through():
    def decoder(reader):
        raise WebPkiError(ErrorKind.EXTENSION_VALUE_INVALID)

    with pytest.raises(WebPkiError) as exc:
        nested(Reader(b"\x30\x01\x05"), Tag.SEQUENCE, NESTED_ERROR, decoder)
    assert exc.value.kind is ErrorKind.EXTENSION_VALUE_INVALID


def test_nested_limited_respects_limit():
    data = b"\x30\x02\x05\x06"
    assert nested_limited(Reader(data), Tag.SEQUENCE, NESTED_ERROR, Reader.read_bytes_to_end, 3) == b"\x05\x06"
    with pytest.raises(WebPkiError) as exc:
        nested_limited(Reader(data), Tag.SEQUENCE, NESTED_ERROR, Reader.read_bytes_to_end, 2)
    assert exc.value == NESTED_ERROR


def test_nested_of_mut_visits_each_inner_item():
    seen = []
    data = b"\x30\x06\x02\x01\x01\x02\x01\x02"
    nested_of_mut(
        Reader(data),
        Tag.SEQUENCE,
        Tag.INTEGER,
        NESTED_ERROR,
        False,
        lambda r: seen.append(r.read_bytes_to_end()),
    )
    assert seen == [b"\x01", b"\x02"]


def test_nested_of_mut_empty_outer():
    seen = []
    nested_of_mut(Reader(b"\x30\x00"), Tag.SEQUENCE, Tag.INTEGER, NESTED_ERROR, True, seen.append)
    assert seen == []
    with pytest.raises(WebPkiError) as exc:
        nested_of_mut(Reader(b"\x30\x00"), Tag.SEQUENCE, Tag.INTEGER, NESTED_ERROR, False, seen.append)
    assert exc.value == NESTED_ERROR


def test_nested_of_mut_wrong_inner_tag():
    with pytest.raises(WebPkiError) as exc:
        nested_of_mut(
            Reader(b"\x30\x03\x04\x01\x01"),
            Tag.SEQUENCE,
            Tag.INTEGER,
            NESTED_ERROR,
            True,
            Reader.read_bytes_to_end,
        )
    assert exc.value == NESTED_ERROR