# pkiverify

pkiverify is a set of low-level parts for checking Web PKI X.509 material.
It has a strict DER reader, decoders for common DER values, and one
exception type whose errors can be ranked by how specific they are.
It uses only the standard library.

## Installation

```
pip install .
```

To also install the test dependencies:

```
pip install ".[test]"
```

## Modules

### `pkiverify.errors`

- `WebPkiError` is the exception that every failure raises. Its `kind` attribute holds an `ErrorKind`.
- Some kinds need extra fields, which are passed as keyword arguments:
  - `CERT_EXPIRED` takes `time` and `not_after`.
  - `CERT_NOT_VALID_YET` takes `time` and `not_before`.
  - `CRL_EXPIRED` takes `time` and `next_update`.
  - `TRAILING_DATA` takes a `DerTypeId` as its `context`.
  - `CERT_NOT_VALID_FOR_NAME` takes an `InvalidNameContext` as its `context`.
  - `REQUIRED_EKU_NOT_FOUND_CONTEXT` takes a `context`.

  A missing field, or one that the kind does not take, raises `ValueError`. A context of the wrong type raises `TypeError`.
- Two errors compare equal when their kind and fields match.
- `rank()` returns a number that says how specific the error is; a higher number is more useful to a user.
- `most_specific(new)` returns whichever of the two errors ranks higher. On a tie it keeps the first.
- `is_fatal()` is true for the "maximum exceeded" kinds of signature checks, path build calls and name constraint comparisons.

### `pkiverify.der`

- `Reader` reads untrusted bytes front to back. It offers `at_end`, `peek`, `read_byte`, `read_bytes`, `read_bytes_to_end`, `read_partial` and `read_all`. Reading past the end raises `WebPkiError` of kind `BAD_DER`.
- `read_tag_and_get_value_limited(reader, size_limit)` reads one tag-length-value item and returns `(tag, value)`. It rejects:
  - high-tag-number forms,
  - non-canonical lengths,
  - lengths of more than four bytes,
  - lengths not below `size_limit`.
- `read_tag_and_get_value` and `expect_tag` use the default limit, `TWO_BYTE_DER_SIZE` (0xFFFF).
- `expect_tag_and_get_value_limited` and `expect_tag` also require a given `Tag`.
- `nested(reader, tag, error, decoder)` and `nested_limited` run `decoder` over the whole value of one tagged item. They raise `error` in two cases: the item is missing or has the wrong tag, or the decoder leaves bytes unread.
- `nested_of_mut` applies a decoder to each inner item of an outer item, for example each element of a SEQUENCE OF.

### `pkiverify.der_values`

- `bit_string_with_no_unused_bits(reader)` reads a BIT STRING that has no padding bits.
- `bit_string_flags(data)` parses the contents of a flags BIT STRING into `BitStringFlags`. Its `bit_set(n)` reports flag `n`; flags past the end count as unset.
- `nonnegative_integer(reader)` returns the big-endian magnitude of a non-negative INTEGER. It rejects negative values and unnecessary leading zeros.
- `read_u8(reader)` reads an INTEGER in 0..255.
- `read_bool(reader)` reads an optional BOOLEAN. It returns `False` when the next item is not a BOOLEAN.
- `read_all(data, error, decoder)` decodes `data` and raises `error` if bytes are left over.
- `iter_der(data, decoder)` yields values until `data` is used up.
- `asn1_wrap(tag, data)` prefixes `data` with a tag and its canonical length.

## Example

```python
from pkiverify.der import Reader, Tag, expect_tag
from pkiverify.der_values import asn1_wrap, bit_string_flags, iter_der, read_u8
from pkiverify.errors import ErrorKind, WebPkiError

reader = Reader(bytes([0x30, 0x03, 0x02, 0x01, 0x05]))
body = expect_tag(reader, Tag.SEQUENCE)
assert body == bytes([0x02, 0x01, 0x05])
assert list(iter_der(body, read_u8)) == [5]

assert asn1_wrap(Tag.SEQUENCE, body) == bytes([0x30, 0x03, 0x02, 0x01, 0x05])

flags = bit_string_flags(bytes([0x01, 0x06]))
assert flags.bit_set(5) and flags.bit_set(6) and not flags.bit_set(7)

try:
    # A length of 1 written in long form is not canonical.
    expect_tag(Reader(bytes([0x30, 0x81, 0x01, 0x00])), Tag.SEQUENCE)
except WebPkiError as err:
    assert err.kind is ErrorKind.BAD_DER
```

## What it does not do

This package only parses DER and reports errors. It does not:

- verify signatures,
- parse whole certificates or certificate revocation lists,
- build or check certificate paths,
- match certificates against host names.

Those steps are left to the code that uses these parts.

## Running the tests

```
pytest
```