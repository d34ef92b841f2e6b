"""A small, strict DER reader: tags, lengths and nested values."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import IntEnum
from typing import TypeVar

from pkivalid.errors import ErrorKind, PkiError

T = TypeVar("T")

CONSTRUCTED = 0x20
CONTEXT_SPECIFIC = 0x80

# Tags whose low five bits are all set use the high tag number form,
# which is not supported.
_HIGH_TAG_RANGE_START = 31

# A first length octet with the top bit clear holds the length itself.
_SHORT_FORM_LEN_MAX = 128

_LONG_FORM_LEN_ONE_BYTE = 0x81
_LONG_FORM_LEN_ONE_BYTE_MAX = 0xFF
_LONG_FORM_LEN_TWO_BYTES = 0x82
_LONG_FORM_LEN_TWO_BYTES_MAX = 0xFFFF
_LONG_FORM_LEN_THREE_BYTES = 0x83
_LONG_FORM_LEN_THREE_BYTES_MAX = 0xFFFFFF
_LONG_FORM_LEN_FOUR_BYTES = 0x84
_LONG_FORM_LEN_FOUR_BYTES_MAX = 0xFFFFFFFF

# Number of length octets and the largest length that a shorter form could
# already express (anything at or below it is non-canonical).
_LONG_FORMS: dict[int, tuple[int, int]] = {
    _LONG_FORM_LEN_TWO_BYTES: (2, _LONG_FORM_LEN_ONE_BYTE_MAX),
    _LONG_FORM_LEN_THREE_BYTES: (3, _LONG_FORM_LEN_TWO_BYTES_MAX),
    _LONG_FORM_LEN_FOUR_BYTES: (4, _LONG_FORM_LEN_THREE_BYTES_MAX),
}

TWO_BYTE_DER_SIZE = _LONG_FORM_LEN_TWO_BYTES_MAX
"""Default size limit: values whose length fits in two long-form octets."""

MAX_DER_SIZE = _LONG_FORM_LEN_FOUR_BYTES_MAX
"""Largest value size that can be read for any purpose."""


class Tag(IntEnum):
    """DER tags understood by the parser."""

    BOOLEAN = 0x01
    INTEGER = 0x02
    BIT_STRING = 0x03
    OCTET_STRING = 0x04
    OID = 0x06
    ENUM = 0x0A
    UTF8_STRING = 0x0C
    SEQUENCE = CONSTRUCTED | 0x10
    SET = CONSTRUCTED | 0x11
    UTC_TIME = 0x17
    GENERALIZED_TIME = 0x18
    CONTEXT_SPECIFIC_CONSTRUCTED_0 = CONTEXT_SPECIFIC | CONSTRUCTED | 0
    CONTEXT_SPECIFIC_CONSTRUCTED_1 = CONTEXT_SPECIFIC | CONSTRUCTED | 1
    CONTEXT_SPECIFIC_CONSTRUCTED_3 = CONTEXT_SPECIFIC | CONSTRUCTED | 3


def _bad_der() -> PkiError:
    return PkiError(ErrorKind.BAD_DER)


class Reader:
    """A forward-only cursor over a byte string.

    Running off the end of the input raises ``PkiError(BAD_DER)``.
    """

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read_byte(self) -> int:
        """Read and return one byte."""
        if self._pos >= len(self._data):
            raise _bad_der()
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_bytes(self, count: int) -> bytes:
        """Read exactly ``count`` bytes."""
        end = self._pos + count
        if count < 0 or end > len(self._data):
            raise _bad_der()
        value = self._data[self._pos:end]
        self._pos = end
        return value

    def read_bytes_to_end(self) -> bytes:
        """Read whatever remains of the input."""
        value = self._data[self._pos:]
        self._pos = len(self._data)
        return value

    def peek(self, byte: int) -> bool:
        """Whether the next byte equals ``byte``, without consuming it."""
        return self._pos < len(self._data) and self._data[self._pos] == byte

    def at_end(self) -> bool:
        """Whether all input has been consumed."""
        return self._pos >= len(self._data)

    def read_partial(self, decoder: Callable[[Reader], T]) -> tuple[bytes, T]:
        """Run ``decoder`` and return the bytes it consumed with its result."""
        start = self._pos
        result = decoder(self)
        return self._data[start:self._pos], result

    def __repr__(self) -> str:
        return f"Reader(position={self._pos}, length={len(self._data)})"


def read_all(
    data: bytes | bytearray | memoryview,
    error: PkiError,
    decoder: Callable[[Reader], T],
) -> T:
    """Decode all of ``data``; raise ``error`` if input remains afterwards."""
    reader = Reader(data)
    result = decoder(reader)
    if not reader.at_end():
        raise error
    return result


def read_tag_and_get_value(
    reader: Reader, size_limit: int = TWO_BYTE_DER_SIZE
) -> tuple[int, bytes]:
    """Read one tag-length-value item and return its tag and value bytes.

    Only low tag numbers and canonical lengths of up to four octets are
    accepted, and the length must be below ``size_limit``.
    """
    tag = reader.read_byte()
    if (tag & _HIGH_TAG_RANGE_START) == _HIGH_TAG_RANGE_START:
        raise _bad_der()

    first = reader.read_byte()
    if (first & _SHORT_FORM_LEN_MAX) == 0:
        length = first
    elif first == _LONG_FORM_LEN_ONE_BYTE:
        length = reader.read_byte()
        if length < _SHORT_FORM_LEN_MAX:
            raise _bad_der()
    elif first in _LONG_FORMS:
        octets, smaller_form_max = _LONG_FORMS[first]
        length = int.from_bytes(reader.read_bytes(octets), "big")
        if length <= smaller_form_max:
            raise _bad_der()
    else:
        raise _bad_der()

    if length >= size_limit:
        raise _bad_der()

    return tag, reader.read_bytes(length)


def expect_tag(
    reader: Reader, tag: int, size_limit: int = TWO_BYTE_DER_SIZE
) -> bytes:
    """Read one item, requiring it to carry ``tag``, and return its value."""
    actual_tag, value = read_tag_and_get_value(reader, size_limit)
    if actual_tag != int(tag):
        raise _bad_der()
    return value


def nested(
    reader: Reader,
    tag: int,
    error: PkiError,
    decoder: Callable[[Reader], T],
    size_limit: int = TWO_BYTE_DER_SIZE,
) -> T:
    """Read an item with ``tag`` and decode all of its value with ``decoder``.

    A missing or malformed item, or value bytes left over, raise ``error``;
    errors raised by ``decoder`` itself pass through unchanged.
    """
    try:
        value = expect_tag(reader, tag, size_limit)
    except PkiError:
        raise error from None
    return read_all(value, error, decoder)


def nested_of(
    reader: Reader,
    outer_tag: int,
    inner_tag: int,
    error: PkiError,
    decoder: Callable[[Reader], object],
) -> None:
    """Decode an ``outer_tag`` item holding one or more ``inner_tag`` items."""

    def decode_outer(outer: Reader) -> None:
        while True:
            nested(outer, inner_tag, error, decoder)
            if outer.at_end():
                break

    nested(reader, outer_tag, error, decode_outer)


def iter_der(
    data: bytes | bytearray | memoryview, parser: Callable[[Reader], T]
) -> Iterator[T]:
    """Yield values parsed one after another until ``data`` is used up."""
    reader = Reader(data)
    while not reader.at_end():
        yield parser(reader)