"""Decoders for primitive DER values: bit strings, small integers and booleans."""

from __future__ import annotations

from dataclasses import dataclass

from pkivalid.der import Reader, Tag, expect_tag, nested, read_all
from pkivalid.errors import DerTypeId, ErrorKind, PkiError


def _bad_der() -> PkiError:
    return PkiError(ErrorKind.BAD_DER)


def bit_string_with_no_unused_bits(reader: Reader) -> bytes:
    """Read a BIT STRING whose final octet has no padding bits and return its bits."""

    def decode(value: Reader) -> bytes:
        unused_bits_at_end = value.read_byte()
        if unused_bits_at_end != 0:
            raise _bad_der()
        return value.read_bytes_to_end()

    return nested(
        reader,
        Tag.BIT_STRING,
        PkiError.trailing_data(DerTypeId.BIT_STRING),
        decode,
    )


@dataclass(frozen=True)
class BitStringFlags:
    """A set of flags encoded as the bits of a DER BIT STRING.

    Bit 0 is the most significant bit of the first octet.
    """

    raw_bits: bytes

    def bit_set(self, bit: int) -> bool:
        """Whether flag number ``bit`` is set; bits past the end are unset."""
        byte_index, offset = divmod(bit, 8)
        if byte_index >= len(self.raw_bits):
            return False
        return (self.raw_bits[byte_index] >> (7 - offset)) & 1 != 0


def bit_string_flags(data: bytes | bytearray | memoryview) -> BitStringFlags:
    """Decode the value of a BIT STRING holding flags.

    The first octet counts the padding bits in the last octet; it must be at
    most seven, zero when there are no flag octets, and the padding bits
    themselves must be zero.
    """

    def decode(bit_string: Reader) -> BitStringFlags:
        padding_bits = bit_string.read_byte()
        raw_bits = bit_string.read_bytes_to_end()

        if padding_bits > 7 or (not raw_bits and padding_bits != 0):
            raise _bad_der()
        if not raw_bits:
            return BitStringFlags(raw_bits)

        padding_mask = (1 << padding_bits) - 1
        if padding_bits > 0 and raw_bits[-1] & padding_mask:
            raise _bad_der()
        return BitStringFlags(raw_bits)

    return read_all(data, _bad_der(), decode)


def nonnegative_integer(reader: Reader) -> bytes:
    """Read a non-negative INTEGER and return its big-endian magnitude.

    A necessary leading zero octet is stripped; an unnecessary one, an empty
    value or a negative value is rejected.
    """
    value = expect_tag(reader, Tag.INTEGER)
    if not value:
        raise _bad_der()
    first, rest = value[0], value[1:]
    if first == 0:
        if not rest:
            return value
        if rest[0] & 0x80:
            return rest
        raise _bad_der()
    if first & 0x80 == 0:
        return value
    raise _bad_der()


def read_u8(reader: Reader) -> int:
    """Read a non-negative INTEGER that fits in one octet."""
    value = nonnegative_integer(reader)
    if len(value) != 1:
        raise _bad_der()
    return value[0]


def read_optional_bool(reader: Reader) -> bool:
    """Read an optional BOOLEAN, returning False when none is present.

    The explicit encoding of false is accepted for compatibility.
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

    return nested(
        reader,
        Tag.BOOLEAN,
        PkiError.trailing_data(DerTypeId.BOOL),
        decode,
    )