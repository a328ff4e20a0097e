"""Avro binary datum encoding, driven by a ``Schema``'s Avro document.

Layout
------
=========  ==========================================================
null       nothing
boolean    one byte, 0 or 1
long       zig-zag varint, at most 10 bytes
double     8 bytes IEEE-754, little-endian
bytes      long length, then raw bytes
string     long length, then UTF-8 bytes
array      one block: long count, items; then a 0 terminator
record     fields in declaration order
union      long branch index, then the branch value
=========  ==========================================================

Decoders also accept negative block counts (count followed by a byte
size), as written by other Avro implementations. A block count is
rejected when the remaining bytes cannot hold that many items; arrays of
zero-width items (null, empty tuple) are capped at ``MAX_ZERO_WIDTH_ITEMS``.
Sequences always decode as lists, even when a tuple was encoded.
"""

from __future__ import annotations

import struct
from typing import Any

from pydantic import BaseModel, ValidationError

from evtwire.core.errors import PayloadDecodeError, PayloadEncodeError
from evtwire.core.schema import Schema

_DOUBLE = struct.Struct("<d")
_LONG_MIN = -(2**63)
_LONG_MAX = 2**63 - 1
_MAX_VARINT_BYTES = 10
# Upper bound on items of an array whose item schema takes no bytes on the
# wire (list[none], list[tuple[]]); longer arrays are treated as corrupt.
MAX_ZERO_WIDTH_ITEMS = 1 << 20


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

class BinaryEncoder:
    """Appends Avro primitives to a byte buffer."""

    def __init__(self) -> None:
        self.buf = bytearray()

    def write_long(self, n: int) -> None:
        if not _LONG_MIN <= n <= _LONG_MAX:
            raise PayloadEncodeError(f"Integer {n} does not fit in 64 bits")
        n = (n << 1) ^ (n >> 63)
        while n & ~0x7F:
            self.buf.append((n & 0x7F) | 0x80)
            n >>= 7
        self.buf.append(n)

    def write_boolean(self, b: bool) -> None:
        self.buf.append(1 if b else 0)

    def write_double(self, d: float) -> None:
        self.buf += _DOUBLE.pack(d)

    def write_bytes(self, b: bytes) -> None:
        self.write_long(len(b))
        self.buf += b

    def write_string(self, s: str) -> None:
        try:
            raw = s.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise PayloadEncodeError(f"String is not valid UTF-8: {exc}") from exc
        self.write_bytes(raw)

    def getvalue(self) -> bytes:
        return bytes(self.buf)


def _fail(expected: str, value: Any) -> PayloadEncodeError:
    return PayloadEncodeError(f"Expected {expected}, got {type(value).__name__}: {value!r}")


def write_datum(enc: BinaryEncoder, avro: Any, value: Any) -> None:
    if isinstance(avro, str):
        if avro == "null":
            if value is not None:
                raise _fail("None", value)
        elif avro == "boolean":
            if not isinstance(value, bool):
                raise _fail("bool", value)
            enc.write_boolean(value)
        elif avro == "long":
            if not isinstance(value, int):
                raise _fail("int", value)
            enc.write_long(int(value))
        elif avro == "double":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise _fail("float", value)
            enc.write_double(float(value))
        elif avro == "string":
            if not isinstance(value, str):
                raise _fail("str", value)
            enc.write_string(value)
        elif avro == "bytes":
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise _fail("bytes", value)
            enc.write_bytes(bytes(value))
        else:
            raise PayloadEncodeError(f"Unknown primitive type {avro!r}")
        return

    if isinstance(avro, list):
        _write_union(enc, avro, value)
        return

    kind = avro["type"]
    if kind == "array":
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            raise _fail("list", value)
        if value:
            enc.write_long(len(value))
            for item in value:
                write_datum(enc, avro["items"], item)
        enc.write_long(0)
    elif kind == "record":
        _write_record(enc, avro, value)
    else:
        raise PayloadEncodeError(f"Unknown schema type {kind!r}")


def _write_union(enc: BinaryEncoder, branches: list[Any], value: Any) -> None:
    if value is None and "null" in branches:
        enc.write_long(branches.index("null"))
        return
    for index, branch in enumerate(branches):
        if branch == "null":
            continue
        enc.write_long(index)
        write_datum(enc, branch, value)
        return
    raise _fail(f"one of {branches}", value)


def _write_record(enc: BinaryEncoder, avro: dict[str, Any], value: Any) -> None:
    fields = avro["fields"]
    if isinstance(value, BaseModel):
        if type(value).__name__ != avro["name"]:
            raise _fail(avro["name"], value)
        for f in fields:
            write_datum(enc, f["type"], getattr(value, f["name"]))
        return
    if not isinstance(value, tuple):
        raise _fail(f"tuple of {len(fields)}", value)
    if len(value) != len(fields):
        raise PayloadEncodeError(
            f"Expected tuple of {len(fields)}, got {len(value)} elements"
        )
    for f, item in zip(fields, value):
        write_datum(enc, f["type"], item)


def encode_value(schema: Schema, value: Any) -> bytes:
    """Encode ``value`` as an Avro binary datum under ``schema``."""
    enc = BinaryEncoder()
    write_datum(enc, schema.avro, value)
    return enc.getvalue()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

class BinaryDecoder:
    """Reads Avro primitives from a byte buffer."""

    def __init__(self, data: bytes | memoryview, offset: int = 0) -> None:
        self.data = memoryview(data)
        self.pos = offset

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def _take(self, n: int) -> memoryview:
        if n < 0:
            raise PayloadDecodeError(f"Negative length {n} at offset {self.pos}")
        if self.remaining < n:
            raise PayloadDecodeError(
                f"Truncated payload: need {n} bytes at offset {self.pos}, "
                f"have {self.remaining}"
            )
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read_long(self) -> int:
        n = 0
        shift = 0
        for _ in range(_MAX_VARINT_BYTES):
            b = self._take(1)[0]
            n |= (b & 0x7F) << shift
            if not b & 0x80:
                return (n >> 1) ^ -(n & 1)
            shift += 7
        raise PayloadDecodeError(f"Varint longer than {_MAX_VARINT_BYTES} bytes")

    def read_boolean(self) -> bool:
        b = self._take(1)[0]
        if b > 1:
            raise PayloadDecodeError(f"Invalid boolean byte {b:#x}")
        return b == 1

    def read_double(self) -> float:
        return _DOUBLE.unpack(self._take(_DOUBLE.size))[0]

    def read_bytes(self) -> bytes:
        return bytes(self._take(self.read_long()))

    def read_string(self) -> str:
        raw = self.read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadDecodeError(f"Invalid UTF-8 in string: {exc}") from exc


def read_datum(dec: BinaryDecoder, avro: Any, records: dict[str, type]) -> Any:
    if isinstance(avro, str):
        if avro == "null":
            return None
        if avro == "boolean":
            return dec.read_boolean()
        if avro == "long":
            return dec.read_long()
        if avro == "double":
            return dec.read_double()
        if avro == "string":
            return dec.read_string()
        if avro == "bytes":
            return dec.read_bytes()
        raise PayloadDecodeError(f"Unknown primitive type {avro!r}")

    if isinstance(avro, list):
        index = dec.read_long()
        if not 0 <= index < len(avro):
            raise PayloadDecodeError(f"Union branch {index} out of range")
        return read_datum(dec, avro[index], records)

    kind = avro["type"]
    if kind == "array":
        items: list[Any] = []
        while True:
            count = dec.read_long()
            if count == 0:
                return items
            if count < 0:
                dec.read_long()  # block byte size, not needed
                count = -count
            _check_block(dec, avro["items"], count, len(items))
            for _ in range(count):
                items.append(read_datum(dec, avro["items"], records))
    if kind == "record":
        return _read_record(dec, avro, records)
    raise PayloadDecodeError(f"Unknown schema type {kind!r}")


def min_width(avro: Any) -> int:
    """Smallest number of bytes one datum of ``avro`` can occupy."""
    if isinstance(avro, str):
        if avro == "null":
            return 0
        if avro == "double":
            return _DOUBLE.size
        return 1
    if isinstance(avro, list):
        return 1
    if avro["type"] == "record":
        return sum(min_width(f["type"]) for f in avro["fields"])
    return 1


def _check_block(dec: BinaryDecoder, items: Any, count: int, seen: int) -> None:
    width = min_width(items)
    if width:
        if count * width > dec.remaining:
            raise PayloadDecodeError(
                f"Array block of {count} items needs at least {count * width} bytes, "
                f"have {dec.remaining}"
            )
    elif seen + count > MAX_ZERO_WIDTH_ITEMS:
        raise PayloadDecodeError(
            f"Array of {seen + count} zero-width items exceeds {MAX_ZERO_WIDTH_ITEMS}"
        )


def _read_record(dec: BinaryDecoder, avro: dict[str, Any], records: dict[str, type]) -> Any:
    cls = records.get(avro["name"], tuple)
    if cls is tuple:
        return tuple(read_datum(dec, f["type"], records) for f in avro["fields"])
    data = {f["name"]: read_datum(dec, f["type"], records) for f in avro["fields"]}
    try:
        return cls.model_validate(data)
    except ValidationError as exc:
        raise PayloadDecodeError(f"Invalid {avro['name']} record: {exc}") from exc


def decode_value(schema: Schema, data: bytes | memoryview, offset: int = 0) -> Any:
    """Decode one Avro binary datum; every byte after ``offset`` must be consumed."""
    dec = BinaryDecoder(data, offset)
    value = read_datum(dec, schema.avro, schema.records)
    if dec.remaining:
        raise PayloadDecodeError(f"{dec.remaining} trailing bytes after payload")
    return value
