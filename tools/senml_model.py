#!/usr/bin/env python3
"""
senml_model.py - SenML (RFC 8428) Record and Pack data model

A Pack is an ordered list of Records. Each Record carries identity fields,
base fields inherited forward by later records, and at most one value.

Record fields (JSON key in brackets):
    link         [l]     provenance URL, never inherited
    base_name    [bn]    prefix for this and following names
    base_time    [bt]    added to this and following times
    base_unit    [bu]    unit for following records without one
    base_version [bver]  protocol version (10 when omitted)
    base_value   [bv]    added to this record's value only
    base_sum     [bs]    added to this and following sums
    name         [n]
    unit         [u]
    time         [t]
    update_time  [ut]
    value        [v]     float
    string_value [vs]    str
    data_value   [vd]    base64 data carried as str
    bool_value   [vb]    bool
    coord_value  [vc]    list of floats
    long_value   [vl]    signed 64-bit int
    sum          [s]     float accumulator

Zero or empty base/metadata fields mean "not set". Value fields and sum
use None for "absent".
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional


XMLNS = 'urn:ietf:params:xml:ns:senml'
DEFAULT_VERSION = 10


# =============================================================================
# Errors
# =============================================================================

class SenMLError(ValueError):
    """Base class for SenML validation and format errors."""

    message = 'senml error'

    def __init__(self, message: Optional[str] = None, index: Optional[int] = None):
        self.index = index
        text = message or self.message
        if index is not None:
            text = f"{text} (record {index})"
        super().__init__(text)


class VersionChangeError(SenMLError):
    message = 'version change'


class EmptyNameError(SenMLError):
    message = 'empty name'


class BadCharError(SenMLError):
    message = 'invalid char'


class TooManyValuesError(SenMLError):
    message = 'more than one value in the record'


class NoValuesError(SenMLError):
    message = 'no value or sum field found'


class UnsupportedFormatError(SenMLError):
    message = 'unsupported format'


class DecodeError(SenMLError):
    """Document could not be parsed into records."""
    message = 'malformed document'


class EncodeError(SenMLError):
    """A record holds a value the target format cannot represent."""
    message = 'value cannot be encoded'


# =============================================================================
# Value kinds
# =============================================================================

class ValueKind(Enum):
    """Mutually exclusive value kinds, with the attribute each one lives in."""
    VALUE = 'value'
    STRING = 'string_value'
    DATA = 'data_value'
    BOOL = 'bool_value'
    COORD = 'coord_value'
    LONG = 'long_value'


# =============================================================================
# Record / Pack
# =============================================================================

@dataclass
class Record:
    """One SenML entry."""
    link: str = ''
    base_name: str = ''
    base_time: float = 0.0
    base_unit: str = ''
    base_version: int = 0
    base_value: float = 0.0
    base_sum: float = 0.0
    name: str = ''
    unit: str = ''
    time: float = 0.0
    update_time: float = 0.0
    value: Optional[float] = None
    string_value: Optional[str] = None
    data_value: Optional[str] = None
    bool_value: Optional[bool] = None
    coord_value: Optional[List[float]] = None
    long_value: Optional[int] = None
    sum: Optional[float] = None

    def value_kinds(self) -> List[ValueKind]:
        """Populated value kinds, in declaration order."""
        return [k for k in ValueKind if getattr(self, k.value) is not None]

    @property
    def value_kind(self) -> Optional[ValueKind]:
        """The single populated value kind, or None."""
        kinds = self.value_kinds()
        if len(kinds) > 1:
            raise TooManyValuesError()
        return kinds[0] if kinds else None

    def current(self) -> Any:
        """Return whichever value is set (None if only a sum is carried)."""
        kind = self.value_kind
        if kind is None:
            return None
        return getattr(self, kind.value)

    def copy(self) -> 'Record':
        coords = list(self.coord_value) if self.coord_value is not None else None
        return replace(self, coord_value=coords)


@dataclass
class Pack:
    """Ordered collection of records."""
    records: List[Record] = field(default_factory=list)
    xmlns: str = ''

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
