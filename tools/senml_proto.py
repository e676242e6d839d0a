#!/usr/bin/env python3
"""
senml_proto.py - SenML protobuf-style binary encoder/decoder

Wire format (protobuf compatible):
    Pack    := { key(1, BYTES) length Record }*
    Record  := { key(tag, wire_type) payload }*
    key     := varint((tag << 3) | wire_type)

Record field tags (append only, never renumber):
    ┌─────┬──────────────┬──────────┬───────────────┐
    │ Tag │ Field        │ Wire     │ Emitted       │
    ├─────┼──────────────┼──────────┼───────────────┤
    │  1  │ link         │ bytes    │ if non-empty  │
    │  2  │ base_name    │ bytes    │ if non-empty  │
    │  3  │ base_time    │ fixed64  │ always        │
    │  4  │ base_unit    │ bytes    │ if non-empty  │
    │  5  │ base_version │ varint   │ always        │
    │  6  │ base_value   │ fixed64  │ always        │
    │  7  │ base_sum     │ fixed64  │ always        │
    │  8  │ name         │ bytes    │ if non-empty  │
    │  9  │ unit         │ bytes    │ if non-empty  │
    │ 10  │ time         │ fixed64  │ always        │
    │ 11  │ update_time  │ fixed64  │ always        │
    │ 12  │ value        │ fixed64  │ if present    │
    │ 13  │ string_value │ bytes    │ if present    │
    │ 14  │ data_value   │ bytes    │ if present    │
    │ 15  │ bool_value   │ varint   │ if present    │
    │ 16  │ sum          │ fixed64  │ if present    │
    │ 17  │ coord_value  │ bytes    │ if present    │  packed doubles
    │ 18  │ long_value   │ varint   │ if present    │  int64
    └─────┴──────────────┴──────────┴───────────────┘

Doubles are little-endian IEEE 754. Decoding is permissive: unknown tags
and unexpected wire types are skipped, and truncated input ends the scan
with whatever was decoded so far.

Usage:
    from senml_proto import encode_proto, decode_proto

    data = encode_proto(pack.records)
    records = decode_proto(data)
"""

import io
import struct
from enum import IntEnum
from typing import Any, Dict, List, NamedTuple, Tuple

from senml_model import Record


# =============================================================================
# Constants
# =============================================================================

class WireType(IntEnum):
    """Protobuf wire types."""
    VARINT = 0
    FIXED64 = 1
    BYTES = 2
    FIXED32 = 5


LINK_TAG = 1
BASE_NAME_TAG = 2
BASE_TIME_TAG = 3
BASE_UNIT_TAG = 4
BASE_VERSION_TAG = 5
BASE_VALUE_TAG = 6
BASE_SUM_TAG = 7
NAME_TAG = 8
UNIT_TAG = 9
TIME_TAG = 10
UPDATE_TIME_TAG = 11
VALUE_TAG = 12
STRING_VALUE_TAG = 13
DATA_VALUE_TAG = 14
BOOL_VALUE_TAG = 15
SUM_TAG = 16
COORD_VALUE_TAG = 17
LONG_VALUE_TAG = 18

RECORDS_TAG = 1

MASK64 = (1 << 64) - 1
MAX_VARINT_BYTES = 10


class WireError(ValueError):
    """Input ended early or could not be parsed."""


# =============================================================================
# Varint encoding
# =============================================================================

def encode_varint(value: int) -> bytes:
    """Encode integer as varint (negative values as 64-bit two's complement)."""
    value &= MASK64
    result = []
    while value > 127:
        result.append((value & 0x7F) | 0x80)
        value >>= 7
    result.append(value)
    return bytes(result)


def decode_varint(stream: io.BytesIO) -> int:
    """Decode unsigned 64-bit varint from stream."""
    result = 0
    for i in range(MAX_VARINT_BYTES):
        b = stream.read(1)
        if not b:
            raise WireError("Unexpected end of stream")
        byte = b[0]
        result |= (byte & 0x7F) << (7 * i)
        if not (byte & 0x80):
            return result & MASK64
    raise WireError("Varint too long")


def to_int64(value: int) -> int:
    """Reinterpret an unsigned 64-bit value as signed."""
    return value - (1 << 64) if value >= (1 << 63) else value


def encode_key(tag: int, wire_type: WireType) -> bytes:
    return encode_varint((tag << 3) | wire_type)


def decode_key(stream: io.BytesIO) -> Tuple[int, int]:
    key = decode_varint(stream)
    return key >> 3, key & 0x07


def read_exact(stream: io.BytesIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise WireError(f"Unexpected end of stream: need {size} bytes")
    return data


def read_length_delimited(stream: io.BytesIO) -> bytes:
    return read_exact(stream, decode_varint(stream))


def skip_field(stream: io.BytesIO, wire_type: int) -> None:
    """Skip over a field payload of the given wire type."""
    if wire_type == WireType.VARINT:
        decode_varint(stream)
    elif wire_type == WireType.FIXED64:
        read_exact(stream, 8)
    elif wire_type == WireType.BYTES:
        read_length_delimited(stream)
    elif wire_type == WireType.FIXED32:
        read_exact(stream, 4)
    else:
        raise WireError(f"Unsupported wire type: {wire_type}")


# =============================================================================
# Field codecs
# =============================================================================

def _write_string(value: str) -> bytes:
    data = value.encode('utf-8')
    return encode_varint(len(data)) + data


def _read_string(stream: io.BytesIO) -> str:
    return read_length_delimited(stream).decode('utf-8', errors='replace')


def _write_double(value: float) -> bytes:
    return struct.pack('<d', value)


def _read_double(stream: io.BytesIO) -> float:
    return struct.unpack('<d', read_exact(stream, 8))[0]


def _write_packed_doubles(values: List[float]) -> bytes:
    data = b''.join(struct.pack('<d', v) for v in values)
    return encode_varint(len(data)) + data


def _read_packed_doubles(stream: io.BytesIO) -> List[float]:
    data = read_length_delimited(stream)
    count = len(data) // 8
    return list(struct.unpack(f'<{count}d', data[:count * 8]))


class FieldCodec(NamedTuple):
    wire_type: WireType
    write: Any
    read: Any


CODECS: Dict[str, FieldCodec] = {
    'string': FieldCodec(WireType.BYTES, _write_string, _read_string),
    'double': FieldCodec(WireType.FIXED64, _write_double, _read_double),
    'uint': FieldCodec(WireType.VARINT, encode_varint, decode_varint),
    'bool': FieldCodec(WireType.VARINT,
                       lambda v: encode_varint(1 if v else 0),
                       lambda s: decode_varint(s) != 0),
    'int64': FieldCodec(WireType.VARINT, encode_varint,
                        lambda s: to_int64(decode_varint(s))),
    'packed': FieldCodec(WireType.BYTES, _write_packed_doubles, _read_packed_doubles),
}

# Emission rules
ALWAYS = 'always'
NONEMPTY = 'nonempty'
PRESENT = 'present'


class ProtoField(NamedTuple):
    tag: int
    attr: str
    codec: str
    emit: str


RECORD_FIELDS: Tuple[ProtoField, ...] = (
    ProtoField(LINK_TAG, 'link', 'string', NONEMPTY),
    ProtoField(BASE_NAME_TAG, 'base_name', 'string', NONEMPTY),
    ProtoField(BASE_TIME_TAG, 'base_time', 'double', ALWAYS),
    ProtoField(BASE_UNIT_TAG, 'base_unit', 'string', NONEMPTY),
    ProtoField(BASE_VERSION_TAG, 'base_version', 'uint', ALWAYS),
    ProtoField(BASE_VALUE_TAG, 'base_value', 'double', ALWAYS),
    ProtoField(BASE_SUM_TAG, 'base_sum', 'double', ALWAYS),
    ProtoField(NAME_TAG, 'name', 'string', NONEMPTY),
    ProtoField(UNIT_TAG, 'unit', 'string', NONEMPTY),
    ProtoField(TIME_TAG, 'time', 'double', ALWAYS),
    ProtoField(UPDATE_TIME_TAG, 'update_time', 'double', ALWAYS),
    ProtoField(VALUE_TAG, 'value', 'double', PRESENT),
    ProtoField(STRING_VALUE_TAG, 'string_value', 'string', PRESENT),
    ProtoField(DATA_VALUE_TAG, 'data_value', 'string', PRESENT),
    ProtoField(BOOL_VALUE_TAG, 'bool_value', 'bool', PRESENT),
    ProtoField(SUM_TAG, 'sum', 'double', PRESENT),
    ProtoField(COORD_VALUE_TAG, 'coord_value', 'packed', PRESENT),
    ProtoField(LONG_VALUE_TAG, 'long_value', 'int64', PRESENT),
)

FIELDS_BY_TAG: Dict[int, ProtoField] = {f.tag: f for f in RECORD_FIELDS}


# =============================================================================
# Encoder
# =============================================================================

def encode_record(record: Record) -> bytes:
    """Encode one record as a sub-message body, fields in tag order."""
    output = io.BytesIO()
    for f in RECORD_FIELDS:
        value = getattr(record, f.attr)
        if f.emit == PRESENT and value is None:
            continue
        if f.emit == NONEMPTY and not value:
            continue
        codec = CODECS[f.codec]
        output.write(encode_key(f.tag, codec.wire_type))
        output.write(codec.write(value))
    return output.getvalue()


def encode_proto(records: List[Record]) -> bytes:
    """Encode records as a flat sequence of length-delimited sub-messages."""
    output = io.BytesIO()
    for record in records:
        body = encode_record(record)
        output.write(encode_key(RECORDS_TAG, WireType.BYTES))
        output.write(encode_varint(len(body)))
        output.write(body)
    return output.getvalue()


# =============================================================================
# Decoder
# =============================================================================

def decode_record(data: bytes) -> Record:
    """Decode a record sub-message body. Unknown fields are skipped."""
    record = Record()
    stream = io.BytesIO(data)
    while stream.tell() < len(data):
        try:
            tag, wire_type = decode_key(stream)
            f = FIELDS_BY_TAG.get(tag)
            codec = CODECS[f.codec] if f else None
            if codec is not None and wire_type == codec.wire_type:
                setattr(record, f.attr, codec.read(stream))
            else:
                skip_field(stream, wire_type)
        except WireError:
            break
    return record


def decode_proto(data: bytes) -> List[Record]:
    """
    Decode a binary pack into records.

    Chunks other than length-delimited tag 1 are skipped. A record chunk
    cut short by the end of input is decoded from the bytes available.
    """
    records: List[Record] = []
    stream = io.BytesIO(data)
    while stream.tell() < len(data):
        try:
            tag, wire_type = decode_key(stream)
            if tag == RECORDS_TAG and wire_type == WireType.BYTES:
                length = decode_varint(stream)
                chunk = stream.read(length)
                records.append(decode_record(chunk))
                if len(chunk) < length:
                    break
            else:
                skip_field(stream, wire_type)
        except WireError:
            break
    return records
