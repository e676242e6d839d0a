#!/usr/bin/env python3
"""
senml_validate.py - SenML pack validation and normalization

validate() checks the RFC 8428 structural rules over a pack in one pass,
stopping at the first offending record. normalize() folds the base fields
into every record and sorts the result by absolute time.

Usage:
    from senml_validate import validate, normalize

    validate(pack)              # raises SenMLError subclasses
    resolved = normalize(pack)  # new Pack, input untouched
"""

import re

from senml_model import (
    DEFAULT_VERSION, Pack,
    VersionChangeError, EmptyNameError, BadCharError,
    TooManyValuesError, NoValuesError,
)


# Names may contain these anywhere except as the first character
NAME_CHARS = re.compile(r'[A-Za-z0-9\-:./_]+')
BAD_FIRST_CHARS = '-:./_'


def validate_name(name: str) -> None:
    """Check an effective (base-prefixed) name for disallowed characters."""
    if name[0] in BAD_FIRST_CHARS:
        raise BadCharError()
    if not NAME_CHARS.fullmatch(name):
        raise BadCharError()


def validate(pack: Pack) -> None:
    """
    Validate a pack.

    Raises:
        VersionChangeError: a record sets a base version that differs from
            the first one established in the pack
        EmptyNameError: base name + name is empty
        TooManyValuesError: more than one value field set
        NoValuesError: no value, no sum and no inherited base sum
        BadCharError: effective name has a disallowed character
    """
    bver = 0
    bname = ''
    bsum = 0.0

    for i, r in enumerate(pack.records):
        if bver == 0 and r.base_version != 0:
            bver = r.base_version
        version = r.base_version or bver
        if version != bver:
            raise VersionChangeError(index=i)

        if r.base_name:
            bname = r.base_name
        if r.base_sum != 0:
            bsum = r.base_sum

        name = bname + r.name
        if not name:
            raise EmptyNameError(index=i)

        count = len(r.value_kinds())
        if count > 1:
            raise TooManyValuesError(index=i)
        if r.sum is not None or bsum != 0:
            count += 1
        if count < 1:
            raise NoValuesError(index=i)

        try:
            validate_name(name)
        except BadCharError:
            raise BadCharError(index=i) from None


def normalize(pack: Pack) -> Pack:
    """
    Resolve base fields into every record.

    Base name, time, sum and unit carry forward until overridden; base value
    applies only to its own record. A base version of 10 is dropped since it
    is the default. Records are stable-sorted by absolute time.
    """
    validate(pack)

    bname = ''
    btime = 0.0
    bsum = 0.0
    bunit = ''
    records = []

    for src in pack.records:
        r = src.copy()
        if r.base_time != 0:
            btime = r.base_time
        if r.base_sum != 0:
            bsum = r.base_sum
        if r.base_unit:
            bunit = r.base_unit
        if r.base_name:
            bname = r.base_name

        r.name = bname + r.name
        r.time = btime + r.time
        if r.sum is not None:
            r.sum = bsum + r.sum
        elif bsum != 0 and not r.value_kinds():
            # Record carries only the inherited sum
            r.sum = bsum
        if not r.unit:
            r.unit = bunit
        if r.value is not None and r.base_value != 0:
            r.value = r.base_value + r.value
        if r.base_version == DEFAULT_VERSION:
            r.base_version = 0

        r.base_time = 0.0
        r.base_value = 0.0
        r.base_unit = ''
        r.base_name = ''
        r.base_sum = 0.0
        records.append(r)

    records.sort(key=lambda rec: rec.time)
    return Pack(records=records, xmlns=pack.xmlns)
