import pytest

from pkivalid.der import (
    MAX_DER_SIZE,
    TWO_BYTE_DER_SIZE,
    Reader,
    Tag,
    expect_tag,
    iter_der,
    nested,
    nested_of,
    read_all,
    read_tag_and_get_value,
)
from pkivalid.errors import DerTypeId, ErrorKind, PkiError

EXAMPLE_TAG = int(Tag.SEQUENCE)
BAD_DER = PkiError(ErrorKind.BAD_DER)
TRAILING = PkiError.trailing_data(DerTypeId.EXTENSION)


def der_encode_length(length):
    if length < 128:
        return bytes([length])
    encoded = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([len(encoded) | 0x80]) + encoded


def tlv(tag, value):
    return bytes([tag]) + der_encode_length(len(value)) + value


@pytest.mark.parametrize(
    "tag, raw",
    [
        (Tag.SEQUENCE, 0x30),
        (Tag.SET, 0x31),
        (Tag.CONTEXT_SPECIFIC_CONSTRUCTED_0, 0xA0),
        (Tag.CONTEXT_SPECIFIC_CONSTRUCTED_3, 0xA3),
    ],
)
def test_tag_values_match_encoded_bytes(tag, raw):
    assert expect_tag(Reader(bytes([raw, 0x01, 0x05])), tag) == b"\x05"


def test_size_limits_bound_readable_lengths():
    value = b"\x00" * 0xFFFF
    data = bytes([0x04, 0x82, 0xFF, 0xFF]) + value
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(data), TWO_BYTE_DER_SIZE)
    assert exc.value == BAD_DER
    tag, got = read_tag_and_get_value(Reader(data), MAX_DER_SIZE)
    assert tag == 0x04
    assert got == value


def test_reader_reads_in_order():
    reader = Reader(b"\x01\x02\x03\x04")
    assert reader.read_byte() == 1
    assert reader.read_bytes(2) == b"\x02\x03"
    assert not reader.at_end()
    assert reader.read_bytes_to_end() == b"\x04"
    assert reader.at_end()


def test_reader_read_byte_past_end():
    reader = Reader(b"")
    with pytest.raises(PkiError) as exc:
        reader.read_byte()
    assert exc.value == BAD_DER


def test_reader_read_bytes_past_end_does_not_advance():
    reader = Reader(b"\x01\x02")
    with pytest.raises(PkiError) as exc:
        reader.read_bytes(3)
    assert exc.value == BAD_DER
    assert reader.read_bytes(2) == b"\x01\x02"


def test_reader_peek():
    reader = Reader(b"\x30\x00")
    assert reader.peek(0x30)
    assert not reader.peek(0x31)
    assert reader.read_byte() == 0x30
    reader.read_byte()
    assert not reader.peek(0x30)


def test_reader_read_partial():
    reader = Reader(b"\x30\x01\xaa\x05")
    consumed, value = reader.read_partial(lambda r: expect_tag(r, Tag.SEQUENCE))
    assert consumed == b"\x30\x01\xaa"
    assert value == b"\xaa"
    assert reader.read_bytes_to_end() == b"\x05"


def test_read_all_success():
    assert read_all(b"\x07", TRAILING, lambda r: r.read_byte()) == 7


def test_read_all_trailing_data():
    with pytest.raises(PkiError) as exc:
        read_all(b"\x07\x08", TRAILING, lambda r: r.read_byte())
    assert exc.value == TRAILING


def test_read_all_decoder_error_passes_through():
    with pytest.raises(PkiError) as exc:
        read_all(b"", TRAILING, lambda r: r.read_byte())
    assert exc.value == BAD_DER


@pytest.mark.parametrize(
    "data",
    [
        bytes([EXAMPLE_TAG, 0x83, 0xFF, 0xFF, 0xFF]),
        bytes([EXAMPLE_TAG, 0x84, 0xFF, 0xFF, 0xFF, 0xFF]),
    ],
)
def test_read_tag_and_get_value_default_limit(data):
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(data))
    assert exc.value == BAD_DER


def test_read_tag_and_get_value_high_form():
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(b"\xff"), TWO_BYTE_DER_SIZE)
    assert exc.value == BAD_DER


@pytest.mark.parametrize(
    "data",
    [
        bytes([EXAMPLE_TAG, 0x81, 0x01]),
        bytes([EXAMPLE_TAG, 0x82, 0x00, 0x01]),
        bytes([EXAMPLE_TAG, 0x83, 0x00, 0x00, 0x01]),
        bytes([EXAMPLE_TAG, 0x84, 0x00, 0x00, 0x00, 0x01]),
    ],
)
def test_read_tag_and_get_value_non_canonical(data):
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(data), TWO_BYTE_DER_SIZE)
    assert exc.value == BAD_DER


def test_read_tag_and_get_value_unsupported_length_octets():
    data = bytes([EXAMPLE_TAG, 0x85, 0x01, 0x00, 0x00, 0x00, 0x00])
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(data), MAX_DER_SIZE)
    assert exc.value == BAD_DER


SHORT_INPUT = b"\xff"
SHORT_ENCODED = tlv(EXAMPLE_TAG, SHORT_INPUT)
LONG_INPUT = b"\x01" * 65537
LONG_ENCODED = tlv(EXAMPLE_TAG, LONG_INPUT)


@pytest.mark.parametrize(
    "data, limit",
    [(SHORT_ENCODED, 1), (LONG_ENCODED, len(LONG_INPUT))],
)
def test_read_tag_and_get_value_limit_exceeded(data, limit):
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(data), limit)
    assert exc.value == BAD_DER


@pytest.mark.parametrize(
    "data, limit, value",
    [
        (SHORT_ENCODED, len(SHORT_ENCODED) + 1, SHORT_INPUT),
        (LONG_ENCODED, len(LONG_INPUT) + 1, LONG_INPUT),
    ],
)
def test_read_tag_and_get_value_within_limit(data, limit, value):
    tag, got = read_tag_and_get_value(Reader(data), limit)
    assert tag == EXAMPLE_TAG
    assert got == value


def test_read_tag_and_get_value_one_byte_long_form():
    value = b"\x00" * 200
    tag, got = read_tag_and_get_value(Reader(bytes([0x04, 0x81, 200]) + value))
    assert tag == 0x04
    assert got == value


def test_read_tag_and_get_value_truncated_value():
    with pytest.raises(PkiError) as exc:
        read_tag_and_get_value(Reader(b"\x04\x03\x01\x02"))
    assert exc.value == BAD_DER


def test_expect_tag_matches():
    reader = Reader(b"\x02\x01\x05\x04\x00")
    assert expect_tag(reader, Tag.INTEGER) == b"\x05"
    assert expect_tag(reader, Tag.OCTET_STRING) == b""
    assert reader.at_end()


def test_expect_tag_mismatch():
    with pytest.raises(PkiError) as exc:
        expect_tag(Reader(b"\x02\x01\x05"), Tag.SEQUENCE)
    assert exc.value == BAD_DER


def test_nested_decodes_value():
    data = tlv(0x30, b"\x02\x01\x07")
    result = nested(Reader(data), Tag.SEQUENCE, TRAILING, lambda r: expect_tag(r, Tag.INTEGER))
    assert result == b"\x07"


def test_nested_wrong_tag_raises_given_error():
    with pytest.raises(PkiError) as exc:
        nested(Reader(b"\x31\x00"), Tag.SEQUENCE, TRAILING, lambda r: None)
    assert exc.value == TRAILING


def test_nested_empty_input_raises_given_error():
    with pytest.raises(PkiError) as exc:
        nested(Reader(b""), Tag.SEQUENCE, TRAILING, lambda r: None)
    assert exc.value == TRAILING


def test_nested_leftover_raises_given_error():
    data = tlv(0x30, b"\x02\x01\x07\x05\x00")
    with pytest.raises(PkiError) as exc:
        nested(Reader(data), Tag.SEQUENCE, TRAILING, lambda r: expect_tag(r, Tag.INTEGER))
    assert exc.value == TRAILING


def test_nested_decoder_error_passes_through():
    data = tlv(0x30, b"\x05\x00")
    with pytest.raises(PkiError) as exc:
        nested(Reader(data), Tag.SEQUENCE, TRAILING, lambda r: expect_tag(r, Tag.INTEGER))
    assert exc.value == BAD_DER


def test_nested_of_visits_each_inner_item():
    inner = tlv(0x30, b"\x02\x01\x01") + tlv(0x30, b"\x02\x01\x02")
    data = tlv(0x30, inner)
    seen = []
    nested_of(
        Reader(data),
        Tag.SEQUENCE,
        Tag.SEQUENCE,
        TRAILING,
        lambda r: seen.append(expect_tag(r, Tag.INTEGER)),
    )
    assert seen == [b"\x01", b"\x02"]


def test_nested_of_requires_at_least_one_item():
    with pytest.raises(PkiError) as exc:
        nested_of(Reader(b"\x30\x00"), Tag.SEQUENCE, Tag.SEQUENCE, TRAILING, lambda r: None)
    assert exc.value == TRAILING


def test_nested_of_wrong_inner_tag():
    data = tlv(0x30, tlv(0x31, b""))
    with pytest.raises(PkiError) as exc:
        nested_of(Reader(data), Tag.SEQUENCE, Tag.SEQUENCE, TRAILING, lambda r: None)
    assert exc.value == TRAILING


def test_iter_der_yields_all_values():
    data = b"\x02\x01\x01\x02\x01\x02\x02\x01\x03"
    values = list(iter_der(data, lambda r: expect_tag(r, Tag.INTEGER)))
    assert values == [b"\x01", b"\x02", b"\x03"]


def test_iter_der_empty():
    assert list(iter_der(b"", lambda r: expect_tag(r, Tag.INTEGER))) == []


def test_iter_der_raises_on_malformed_item():
    values = iter_der(b"\x02\x01\x01\x05\x00", lambda r: expect_tag(r, Tag.INTEGER))
    assert next(values) == b"\x01"
    with pytest.raises(PkiError) as exc:
        next(values)
    assert exc.value == BAD_DER