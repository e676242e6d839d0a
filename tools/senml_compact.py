#!/usr/bin/env python3
"""
senml_compact.py - Factor shared names and units back into base fields

compact() is the size-saving inverse of normalize() for names and units:
the longest common name prefix becomes the first record's base name and
the most frequent unit becomes its base unit.

    [{"n":"dev1:temp","u":"Cel","v":1}, {"n":"dev1:hum","u":"Cel","v":2}]
      -> [{"bn":"dev1:","bu":"Cel","n":"temp","v":1}, {"n":"hum","v":2}]
"""

from collections import Counter
from typing import Dict, List

from senml_model import Pack
from senml_validate import normalize


def lcp(strings: List[str]) -> str:
    """Longest common prefix."""
    if not strings:
        return ''
    if len(strings) == 1:
        return strings[0]
    low, high = min(strings), max(strings)
    for i, (a, b) in enumerate(zip(low, high)):
        if a != b:
            return low[:i]
    return low


def max_unit(units: Dict[str, int]) -> str:
    """Unit used more than once with the highest count ('' if none)."""
    unit = ''
    best = 1
    for u, count in units.items():
        if count > best:
            unit = u
            best = count
    return unit


def compact(pack: Pack) -> Pack:
    """
    Normalize the pack, then move the common name prefix and most frequent
    unit into base fields on the first record.

    A base unit is only factored out when every record has a unit, since
    records without one would otherwise inherit it.
    """
    resolved = normalize(pack)
    records = resolved.records
    if not records:
        return resolved

    prefix = lcp([r.name for r in records])
    units = Counter(r.unit for r in records)
    bunit = max_unit(units) if '' not in units else ''

    for r in records:
        r.name = r.name[len(prefix):]
        if bunit and r.unit == bunit:
            r.unit = ''

    records[0].base_name = prefix
    records[0].base_unit = bunit
    return resolved
