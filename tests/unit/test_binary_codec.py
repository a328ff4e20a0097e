"""Test the Avro binary payload codec."""

import math
import struct

import pytest

from evtwire.codec.binary import (
    MAX_ZERO_WIDTH_ITEMS,
    BinaryDecoder,
    BinaryEncoder,
    decode_value,
    encode_value,
    min_width,
)
from evtwire.core.errors import PayloadDecodeError, PayloadEncodeError
from evtwire.core.schema import derive_schema
from evtwire.core.shapes import shape_of


def _schema(annotation):
    return derive_schema(shape_of(annotation))


class TestLongs:
    @pytest.mark.parametrize(
        "n,encoded",
        [
            (0, b"\x00"),
            (-1, b"\x01"),
            (1, b"\x02"),
            (8, b"\x10"),
            (-64, b"\x7f"),
            (64, b"\x80\x01"),
            (2**63 - 1, b"\xfe" + b"\xff" * 8 + b"\x01"),
            (-(2**63), b"\xff" * 9 + b"\x01"),
        ],
    )
    def test_zigzag_varint(self, n, encoded):
        enc = BinaryEncoder()
        enc.write_long(n)
        assert enc.getvalue() == encoded
        assert BinaryDecoder(encoded).read_long() == n

    def test_out_of_range(self):
        with pytest.raises(PayloadEncodeError):
            BinaryEncoder().write_long(2**63)

    def test_overlong_varint(self):
        with pytest.raises(PayloadDecodeError, match="Varint"):
            BinaryDecoder(b"\x80" * 11).read_long()


class TestEncode:
    def test_string(self):
        assert encode_value(_schema(str), "hello") == b"\x0ahello"

    def test_unicode_string(self):
        assert encode_value(_schema(str), "é") == b"\x04\xc3\xa9"

    def test_double(self):
        assert encode_value(_schema(float), 8.0) == struct.pack("<d", 8.0)
        assert encode_value(_schema(float), 8) == struct.pack("<d", 8.0)

    def test_boolean_and_null(self):
        assert encode_value(_schema(bool), True) == b"\x01"
        assert encode_value(_schema(None), None) == b""

    def test_bytes(self):
        assert encode_value(_schema(bytes), b"\x00\xff") == b"\x04\x00\xff"

    def test_array(self):
        assert encode_value(_schema(list[str]), ["a", "b"]) == b"\x04\x02a\x02b\x00"
        assert encode_value(_schema(list[str]), []) == b"\x00"

    def test_tuple(self):
        data = encode_value(_schema(tuple[int, str, float]), (8, "a", 8.0))
        assert data == b"\x10\x02a" + struct.pack("<d", 8.0)

    def test_optional_field(self, quote):
        schema = derive_schema(shape_of(type(quote)))
        with_size = encode_value(schema, quote)
        without = encode_value(schema, quote.model_copy(update={"size": None}))
        assert len(with_size) == len(without) + 1

    @pytest.mark.parametrize(
        "annotation,value",
        [
            (str, 8),
            (int, "8"),
            (int, 8.5),
            (bool, 1),
            (None, 0),
            (bytes, "ab"),
            (list[str], "ab"),
            (list[str], ["a", 8]),
            (tuple[int, str], (8,)),
            (tuple[int, str], [8, "a"]),
        ],
    )
    def test_wrong_value(self, annotation, value):
        with pytest.raises(PayloadEncodeError):
            encode_value(_schema(annotation), value)


class TestDecode:
    def test_round_trip(self, quote):
        cases = [
            (str, "hello"),
            (int, -123456789),
            (float, 2.5),
            (bool, False),
            (bytes, b"\x00\x01"),
            (None, None),
            (list[str], ["a", "b"]),
            (list[list[int]], [[1, 2], [], [3]]),
            (tuple[int, str, float], (8, "a", 8.0)),
            (list[tuple[int, str]], [(1, "a"), (2, "b")]),
            (type(quote), quote),
        ]
        for annotation, value in cases:
            schema = _schema(annotation)
            assert decode_value(schema, encode_value(schema, value)) == value

    def test_decoded_tuple_type(self):
        schema = _schema(tuple[int, str])
        assert isinstance(decode_value(schema, b"\x02\x02a"), tuple)

    def test_offset(self):
        assert decode_value(_schema(str), b"XXXX\x02a", 4) == "a"

    def test_negative_block_count(self):
        # count -2 followed by the block's byte size
        assert decode_value(_schema(list[str]), b"\x03\x08\x02a\x02b\x00") == ["a", "b"]

    def test_multiple_blocks(self):
        assert decode_value(_schema(list[int]), b"\x02\x02\x04\x04\x06\x00") == [1, 2, 3]

    @pytest.mark.parametrize(
        "annotation,data,match",
        [
            (str, b"\x0ahel", "Truncated"),
            (str, b"", "Truncated"),
            (float, b"\x00\x00", "Truncated"),
            (str, b"\x03", "Negative length"),
            (str, b"\x04\xff\xfe", "UTF-8"),
            (bool, b"\x02", "Invalid boolean"),
            (int, b"\x02\x00", "trailing"),
            (list[str], b"\x04\x02a", "Truncated"),
        ],
    )
    def test_corrupt_payload(self, annotation, data, match):
        with pytest.raises(PayloadDecodeError, match=match):
            decode_value(_schema(annotation), data)

    def test_bad_union_branch(self, quote):
        schema = derive_schema(shape_of(type(quote)))
        data = bytearray(encode_value(schema, quote.model_copy(update={"size": None, "venues": []})))
        # symbol, bid, ask, then the union index of size
        union_at = 1 + len(quote.symbol) + 16
        data[union_at] = 0x08
        with pytest.raises(PayloadDecodeError, match="Union branch"):
            decode_value(schema, bytes(data))


class TestHostileInput:
    def _count(self, n):
        enc = BinaryEncoder()
        enc.write_long(n)
        return enc.getvalue()

    def test_zero_width_items_capped(self):
        data = self._count(2**40) + b"\x00"
        with pytest.raises(PayloadDecodeError, match="zero-width"):
            decode_value(_schema(list[None]), data)

    def test_zero_width_cap_spans_blocks(self):
        half = MAX_ZERO_WIDTH_ITEMS // 2 + 1
        data = self._count(half) + self._count(half) + b"\x00"
        with pytest.raises(PayloadDecodeError, match="zero-width"):
            decode_value(_schema(list[tuple[()]]), data)

    def test_zero_width_items_within_cap(self):
        assert decode_value(_schema(list[None]), self._count(3) + b"\x00") == [None] * 3

    def test_count_larger_than_buffer(self):
        data = self._count(1000) + b"\x02a\x00"
        with pytest.raises(PayloadDecodeError, match="Array block of 1000 items"):
            decode_value(_schema(list[str]), data)

    def test_negative_count_larger_than_buffer(self):
        data = self._count(-(2**40)) + self._count(8) + b"\x02a\x00"
        with pytest.raises(PayloadDecodeError, match="Array block"):
            decode_value(_schema(list[int]), data)

    def test_doubles_need_eight_bytes_each(self):
        data = self._count(2) + struct.pack("<d", 1.0) + b"\x00"
        with pytest.raises(PayloadDecodeError, match="needs at least 16 bytes"):
            decode_value(_schema(list[float]), data)

    def test_min_width(self):
        assert min_width("null") == 0
        assert min_width("double") == 8
        assert min_width("string") == 1
        assert min_width(_schema(tuple[None, float, int]).avro) == 9
        assert min_width(_schema(tuple[()]).avro) == 0


class TestUnencodable:
    def test_lone_surrogate_string(self):
        with pytest.raises(PayloadEncodeError, match="UTF-8"):
            encode_value(_schema(str), "\ud800")

    def test_lone_surrogate_in_tuple(self):
        with pytest.raises(PayloadEncodeError):
            encode_value(_schema(tuple[int, str]), (1, "a\udfffb"))


class TestNonFinite:
    @pytest.mark.parametrize("value", [math.inf, -math.inf])
    def test_infinity_round_trips(self, value):
        schema = _schema(float)
        assert decode_value(schema, encode_value(schema, value)) == value

    def test_nan_round_trips(self):
        schema = _schema(float)
        assert math.isnan(decode_value(schema, encode_value(schema, math.nan)))


class TestSequencesDecodeAsLists:
    def test_tuple_value_comes_back_as_list(self):
        schema = _schema(list[str])
        decoded = decode_value(schema, encode_value(schema, ("a", "b")))
        assert decoded == ["a", "b"]
        assert isinstance(decoded, list)
