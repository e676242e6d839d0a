#!/usr/bin/env python3
"""
senml_formats.py - SenML JSON, XML and CBOR representations

All three formats share one field table. JSON and XML use the short RFC
8428 names; CBOR uses the RFC integer labels (negative for base fields),
with the link carried under its text key "l" as RFC 8428 allows for
fields without a registered label.

    JSON:  [{"bn":"dev1:","n":"temp","u":"Cel","v":20.6}, ...]
    XML:   <sensml xmlns="urn:ietf:params:xml:ns:senml">
             <senml bn="dev1:" n="temp" u="Cel" v="20.6" />
           </sensml>
    CBOR:  [{-2: "dev1:", 0: "temp", 1: "Cel", 2: 20.6}, ...]

Base and metadata fields are omitted when zero or empty; value fields are
omitted only when absent, so v=0 and vb=false survive a round trip.
"""

import base64
import decimal
import json
import math
import numbers
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, NamedTuple, Union

import cbor2

from senml_model import XMLNS, DecodeError, EncodeError, Pack, Record
from senml_numeric import numeric_from


class DocField(NamedTuple):
    attr: str
    key: str
    label: Union[int, str]
    kind: str
    optional: bool


# Order matches the order keys are written
FIELDS = (
    DocField('link', 'l', 'l', 'str', False),
    DocField('base_name', 'bn', -2, 'str', False),
    DocField('base_time', 'bt', -3, 'float', False),
    DocField('base_unit', 'bu', -4, 'str', False),
    DocField('base_version', 'bver', -1, 'uint', False),
    DocField('base_value', 'bv', -5, 'float', False),
    DocField('base_sum', 'bs', -6, 'float', False),
    DocField('name', 'n', 0, 'str', False),
    DocField('unit', 'u', 1, 'str', False),
    DocField('time', 't', 6, 'float', False),
    DocField('update_time', 'ut', 7, 'float', False),
    DocField('value', 'v', 2, 'float', True),
    DocField('string_value', 'vs', 3, 'str', True),
    DocField('data_value', 'vd', 8, 'data', True),
    DocField('bool_value', 'vb', 4, 'bool', True),
    DocField('coord_value', 'vc', 9, 'coords', True),
    DocField('long_value', 'vl', 10, 'int', True),
    DocField('sum', 's', 5, 'float', True),
)

FIELDS_BY_KEY = {f.key: f for f in FIELDS}
FIELDS_BY_LABEL = {f.label: f for f in FIELDS}

ROOT_TAG = 'sensml'
RECORD_TAG = 'senml'


# =============================================================================
# Field coercion
# =============================================================================

def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (numbers.Real, decimal.Decimal))


def _to_float(f: DocField, value: Any) -> float:
    if not _is_number(value):
        raise DecodeError(f"Field '{f.key}': expected number, got {type(value).__name__}")
    if isinstance(value, numbers.Rational) and not isinstance(value, int):
        return float(value)
    try:
        return numeric_from(value).to_float64()
    except (TypeError, ValueError, OverflowError) as e:
        raise DecodeError(f"Field '{f.key}': {e}") from e


def _to_int(f: DocField, value: Any) -> int:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"Field '{f.key}': expected integer, got {value!r}")
    if f.kind == 'uint' and not 0 <= value < (1 << 64):
        raise DecodeError(f"Field '{f.key}': {value} out of range")
    if f.kind == 'int' and not -(1 << 63) <= value < (1 << 63):
        raise DecodeError(f"Field '{f.key}': {value} out of range")
    return value


def coerce_field(f: DocField, value: Any) -> Any:
    """Convert a decoded document value to the record attribute type."""
    if f.kind == 'str':
        if not isinstance(value, str):
            raise DecodeError(f"Field '{f.key}': expected string, got {type(value).__name__}")
        return value
    if f.kind == 'data':
        if isinstance(value, (bytes, bytearray)):
            return base64.urlsafe_b64encode(bytes(value)).decode('ascii').rstrip('=')
        if not isinstance(value, str):
            raise DecodeError(f"Field '{f.key}': expected string, got {type(value).__name__}")
        return value
    if f.kind == 'float':
        return _to_float(f, value)
    if f.kind in ('uint', 'int'):
        return _to_int(f, value)
    if f.kind == 'bool':
        if not isinstance(value, bool):
            raise DecodeError(f"Field '{f.key}': expected boolean, got {type(value).__name__}")
        return value
    if f.kind == 'coords':
        if not isinstance(value, (list, tuple)):
            raise DecodeError(f"Field '{f.key}': expected array, got {type(value).__name__}")
        return [_to_float(f, v) for v in value]
    raise ValueError(f"Unknown field kind: {f.kind}")


def _include(f: DocField, value: Any) -> bool:
    if f.optional:
        return value is not None
    return bool(value)


def record_to_dict(record: Record, labels: bool = False) -> Dict[Union[str, int], Any]:
    """Map a record to a document object keyed by JSON names or CBOR labels."""
    result = {}
    for f in FIELDS:
        value = getattr(record, f.attr)
        if not _include(f, value):
            continue
        if f.kind == 'coords':
            value = list(value)
        result[f.label if labels else f.key] = value
    return result


def record_from_dict(obj: Any, labels: bool = False) -> Record:
    """Build a record from a document object. Unknown keys are ignored."""
    if not isinstance(obj, dict):
        raise DecodeError(f"Expected record object, got {type(obj).__name__}")
    index = FIELDS_BY_LABEL if labels else FIELDS_BY_KEY
    record = Record()
    for key, value in obj.items():
        f = index.get(key)
        if f is None or value is None:
            continue
        setattr(record, f.attr, coerce_field(f, value))
    return record


def _records_from_list(items: Any, labels: bool = False) -> List[Record]:
    if not isinstance(items, list):
        raise DecodeError(f"Expected array of records, got {type(items).__name__}")
    return [record_from_dict(item, labels) for item in items]


# =============================================================================
# JSON
# =============================================================================

def _dump_json(obj: Any) -> str:
    try:
        return json.dumps(obj, separators=(',', ':'), allow_nan=False)
    except ValueError as e:
        raise EncodeError(f"JSON cannot carry NaN or infinity: {e}") from e


def encode_json(records: List[Record]) -> bytes:
    """Encode records as a JSON array. Non-finite numbers raise EncodeError."""
    items = [record_to_dict(r) for r in records]
    return _dump_json(items).encode('utf-8')


def decode_json(data: Union[bytes, str]) -> List[Record]:
    try:
        items = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    return _records_from_list(items)


def record_to_json(record: Record) -> str:
    """Single record as a JSON object."""
    return _dump_json(record_to_dict(record))


def record_from_json(data) -> Record:
    """Parse a single record from a JSON string, bytes, or readable file."""
    if hasattr(data, 'read'):
        data = data.read()
    try:
        obj = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    return record_from_dict(obj)


# =============================================================================
# XML
# =============================================================================

def format_number(value: float) -> str:
    """Shortest text for a number; integral values drop the '.0'."""
    if math.isfinite(value) and float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


# Anything outside the XML 1.0 Char production
XML_INVALID_CHARS = re.compile('[^\t\n\r\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]')


def xml_text(text: str) -> str:
    """Replace characters XML 1.0 cannot carry with U+FFFD."""
    return XML_INVALID_CHARS.sub('\ufffd', text)


def _format_attr(f: DocField, value: Any) -> str:
    if f.kind == 'float':
        return format_number(value)
    if f.kind == 'bool':
        return 'true' if value else 'false'
    if f.kind == 'coords':
        return ' '.join(format_number(v) for v in value)
    return xml_text(str(value))


TRUE_TEXT = ('1', 't', 'T', 'true', 'TRUE', 'True')
FALSE_TEXT = ('0', 'f', 'F', 'false', 'FALSE', 'False')


def _parse_attr(f: DocField, text: str) -> Any:
    try:
        if f.kind == 'float':
            return float(text)
        if f.kind in ('uint', 'int'):
            return coerce_field(f, int(text))
        if f.kind == 'coords':
            return [float(v) for v in text.split()]
    except ValueError as e:
        raise DecodeError(f"Attribute '{f.key}': invalid value {text!r}") from e
    if f.kind == 'bool':
        if text in TRUE_TEXT:
            return True
        if text in FALSE_TEXT:
            return False
        raise DecodeError(f"Attribute '{f.key}': invalid boolean {text!r}")
    return text


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def encode_xml(pack: Pack) -> bytes:
    root = ET.Element(ROOT_TAG, {'xmlns': XMLNS})
    for record in pack.records:
        attrs = {}
        for f in FIELDS:
            value = getattr(record, f.attr)
            if _include(f, value):
                attrs[f.key] = _format_attr(f, value)
        ET.SubElement(root, RECORD_TAG, attrs)
    return ET.tostring(root, encoding='unicode').encode('utf-8')


def decode_xml(data: Union[bytes, str]) -> Pack:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise DecodeError(f"Invalid XML: {e}") from e
    if _local_name(root.tag) != ROOT_TAG:
        raise DecodeError(f"Expected <{ROOT_TAG}> root element, got <{_local_name(root.tag)}>")

    records = []
    for element in root:
        if _local_name(element.tag) != RECORD_TAG:
            continue
        record = Record()
        for key, text in element.attrib.items():
            f = FIELDS_BY_KEY.get(_local_name(key))
            if f is not None:
                setattr(record, f.attr, _parse_attr(f, text))
        records.append(record)
    return Pack(records=records, xmlns=XMLNS)


# =============================================================================
# CBOR
# =============================================================================

def encode_cbor(records: List[Record]) -> bytes:
    items = [record_to_dict(r, labels=True) for r in records]
    return cbor2.dumps(items, canonical=True)


def decode_cbor(data: bytes) -> List[Record]:
    try:
        items = cbor2.loads(data)
    except (cbor2.CBORDecodeError, ValueError, TypeError, ArithmeticError) as e:
        raise DecodeError(f"Invalid CBOR: {e}") from e
    return _records_from_list(items, labels=True)
