#!/usr/bin/env python3
"""
senml_codec.py - SenML encode/decode entry points

Selects a codec by Format. Decoding always validates the resulting pack;
encoding never does.

Formats:
    JSON   array of objects with RFC 8428 keys
    XML    <sensml> document with one <senml> element per record
    CBOR   array of maps with RFC 8428 integer labels
    PROTO  protobuf-style tag/wire-type records (see senml_proto.py)

Usage:
    from senml_codec import Format, Pack, Record, decode, encode, normalize

    pack = Pack([Record(base_name='dev1:', name='temp', value=20.6)])
    data = encode(pack, Format.CBOR)
    pack = decode(data, Format.CBOR)
    resolved = normalize(pack)

    python senml_codec.py              # demo
    python senml_codec.py --self-test  # built-in checks
"""

import sys
from enum import IntEnum
from typing import Union

from senml_model import (
    XMLNS, DEFAULT_VERSION, Pack, Record, ValueKind,
    SenMLError, VersionChangeError, EmptyNameError, BadCharError,
    TooManyValuesError, NoValuesError, UnsupportedFormatError, DecodeError, EncodeError,
)
from senml_validate import validate, normalize
from senml_proto import encode_proto, decode_proto
from senml_formats import (
    encode_json, decode_json, encode_xml, decode_xml, encode_cbor, decode_cbor,
)


class Format(IntEnum):
    JSON = 1
    XML = 2
    CBOR = 3
    PROTO = 4


def _resolve_format(fmt: Union[Format, int]) -> Format:
    try:
        return Format(fmt)
    except ValueError:
        raise UnsupportedFormatError() from None


def decode(data: bytes, fmt: Union[Format, int]) -> Pack:
    """Decode data in the given format and validate the pack."""
    fmt = _resolve_format(fmt)
    if fmt == Format.JSON:
        pack = Pack(records=decode_json(data))
    elif fmt == Format.XML:
        pack = decode_xml(data)
    elif fmt == Format.CBOR:
        pack = Pack(records=decode_cbor(data))
    else:
        pack = Pack(records=decode_proto(data))

    validate(pack)
    return pack


def encode(pack: Pack, fmt: Union[Format, int]) -> bytes:
    """Encode a pack in the given format. The pack is not validated."""
    fmt = _resolve_format(fmt)
    if fmt == Format.JSON:
        return encode_json(pack.records)
    if fmt == Format.XML:
        return encode_xml(pack)
    if fmt == Format.CBOR:
        return encode_cbor(pack.records)
    return encode_proto(pack.records)


__all__ = [
    'Format', 'decode', 'encode', 'validate', 'normalize',
    'XMLNS', 'DEFAULT_VERSION', 'Pack', 'Record', 'ValueKind',
    'SenMLError', 'VersionChangeError', 'EmptyNameError', 'BadCharError',
    'TooManyValuesError', 'NoValuesError', 'UnsupportedFormatError', 'DecodeError',
    'EncodeError',
]


# =============================================================================
# Self-test / demo
# =============================================================================

def log_info(msg: str) -> None:
    print(f"[INFO] {msg}", file=sys.stderr)


def log_warn(msg: str) -> None:
    print(f"[WARN] {msg}", file=sys.stderr)


DEMO_PACK = Pack(records=[
    Record(base_name='urn:dev:ow:10e2073a01080063:', base_time=1.320067464e9,
           base_unit='%RH', name='humidity', value=20.0),
    Record(name='temperature', unit='Cel', value=23.1),
    Record(name='door', bool_value=False, time=60),
    Record(name='firmware', string_value='1.2.3', time=120),
])


def _check_round_trip(fmt: Format) -> None:
    decoded = decode(encode(DEMO_PACK, fmt), fmt)
    assert decoded.records == DEMO_PACK.records, f"{fmt.name} records differ"


def _check_proto_bytes() -> None:
    data = encode(Pack([Record(name='test1', value=1.0)]), Format.PROTO)
    assert data[:2] == bytes([0x0A, 0x3F]), data[:2].hex()
    assert b'\x42\x05test1' in data
    assert data.endswith(bytes.fromhex('61000000000000f03f')), data[-9:].hex()


def _check_normalize() -> None:
    resolved = normalize(DEMO_PACK)
    names = [r.name for r in resolved.records]
    assert names[0] == 'urn:dev:ow:10e2073a01080063:humidity', names
    assert resolved.records[1].unit == 'Cel'
    assert resolved.records[0].unit == '%RH'
    assert resolved.records[3].time == 1.320067464e9 + 120


def _check_errors() -> None:
    cases = [
        (Pack([Record(value=1.0)]), EmptyNameError),
        (Pack([Record(name='_x', value=1.0)]), BadCharError),
        (Pack([Record(name='x', value=1.0, bool_value=True)]), TooManyValuesError),
        (Pack([Record(name='x')]), NoValuesError),
        (Pack([Record(name='a', base_version=5, value=1.0),
               Record(name='b', base_version=7, value=1.0)]), VersionChangeError),
    ]
    for pack, error in cases:
        try:
            validate(pack)
        except error:
            continue
        raise AssertionError(f"expected {error.__name__}")


def self_test() -> int:
    checks = [(f'round trip {fmt.name}', lambda fmt=fmt: _check_round_trip(fmt))
              for fmt in Format]
    checks += [
        ('proto wire bytes', _check_proto_bytes),
        ('normalize', _check_normalize),
        ('validation errors', _check_errors),
    ]
    failed = 0
    for name, check in checks:
        try:
            check()
            print(f"[PASS] {name}")
        except (AssertionError, SenMLError) as e:
            failed += 1
            print(f"[FAIL] {name}: {e}")
    if failed:
        log_warn(f"{failed} of {len(checks)} checks failed")
    else:
        log_info(f"All {len(checks)} checks passed")
    return 1 if failed else 0


if __name__ == '__main__':
    import argparse
    from dataclasses import asdict

    import yaml

    parser = argparse.ArgumentParser(description='SenML encoder/decoder')
    parser.add_argument('--self-test', action='store_true', help='Run built-in checks')
    args = parser.parse_args()

    if args.self_test:
        sys.exit(self_test())

    print("=== SenML Codec Demo ===\n")
    for fmt in Format:
        data = encode(DEMO_PACK, fmt)
        print(f"{fmt.name} ({len(data)} bytes):")
        if fmt in (Format.JSON, Format.XML):
            print(data.decode('utf-8'))
        else:
            print(' '.join(f'{b:02X}' for b in data))
        print()

    resolved = normalize(decode(encode(DEMO_PACK, Format.PROTO), Format.PROTO))
    print("Normalized:")
    print(yaml.dump([asdict(r) for r in resolved.records], default_flow_style=False, sort_keys=False))
