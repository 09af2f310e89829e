"""
iso_fields.py - ISO 8583 field catalog and length resolution

The built-in catalog reproduces the historical field table. A vendor
catalog can be loaded from YAML:

    fields:
      2:  {name: PAN, prefix: 2, multiplier: 1}
      3:  {name: Process Code, length: 6}
      35: {name: Track2, prefix: 2, multiplier: 2, consume: 38}
      62: {name: Private, prefix: 4, multiplier: 2, text: true}

Usage:
    from iso_fields import DEFAULT_CATALOG, load_catalog

    spec = DEFAULT_CATALOG[4]
    length, count = spec.resolve(cursor)
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from iso_cursor import HexCursor

# Container kinds for fields whose value nests further entries
EMV = 'emv'
PRIVATE = 'private'
CONTAINER_KINDS = (EMV, PRIVATE)


class CatalogError(ValueError):
    """A field catalog definition is unusable."""


@dataclass(frozen=True)
class Fixed:
    """Value is always `width` hex characters."""
    width: int


@dataclass(frozen=True)
class Prefixed:
    """
    Value length comes from a decimal prefix of `prefix_digits` characters,
    scaled by `multiplier` into hex characters.
    """
    prefix_digits: int
    multiplier: int = 1


LengthRule = Union[Fixed, Prefixed]


@dataclass(frozen=True)
class FieldSpec:
    """One catalog entry."""
    number: int
    name: str
    rule: LengthRule
    text: bool = False
    container: Optional[str] = None
    consume: Optional[int] = None

    def resolve(self, cursor: HexCursor) -> Tuple[int, int]:
        """
        Read any length prefix and return (declared_length, chars_to_consume).

        Odd lengths are padded by one character for byte alignment. A pinned
        `consume` overrides the count entirely and the prefix only labels
        the displayed length.
        """
        if isinstance(self.rule, Fixed):
            length = self.rule.width
        else:
            prefix = cursor.take_decimal(
                self.rule.prefix_digits, f"length prefix for field {self.number}"
            )
            length = prefix * self.rule.multiplier

        if self.consume is not None:
            return length, self.consume
        return length, length + (length % 2)


def _fixed(number, name, width, **kw) -> FieldSpec:
    return FieldSpec(number, name, Fixed(width), **kw)


def _prefixed(number, name, digits, multiplier, **kw) -> FieldSpec:
    return FieldSpec(number, name, Prefixed(digits, multiplier), **kw)


TEXT_FIELDS = frozenset({37, 38, 41, 42, 44, 49, 50, 51, 62, 116, 122})

_CATALOG_ENTRIES = [
    _prefixed(2, "PAN", 2, 1),
    _fixed(3, "Process Code", 6),
    _fixed(4, "Transaction Amount", 12),
    _fixed(5, "Settlement Amount", 12),
    _fixed(6, "Cardholder Billing Amount", 12),
    _fixed(7, "Transaction Date and Time", 10),
    _fixed(9, "Conversion rate, settlement", 8),
    _fixed(10, "Conversion rate, cardholder billing", 8),
    _fixed(11, "Trace", 6),
    _fixed(12, "Time", 6),
    _fixed(13, "Date", 4),
    _fixed(14, "Card Expiration Date", 4),
    _fixed(15, "Settlement Date", 4),
    _fixed(18, "Merchant Category Code", 4),
    _fixed(19, "Acquirer Country Code", 3),
    _fixed(22, "POS Entry Mode", 4),
    _fixed(23, "Card Sequence Number", 3),
    _fixed(24, "Function Code", 4),
    _fixed(25, "POS Condition Code", 2),
    _prefixed(32, "Institution Identification Code Acquiring", 2, 1),
    # Prefix labels the length only; 38 characters are always taken.
    # Suspected defect, preserved as-is.
    _prefixed(35, "Track2", 2, 2, consume=38),
    _fixed(37, "Retrieval Ref #", 24),
    _fixed(38, "Authorization Code", 12),
    _fixed(39, "Response Code", 4),
    _fixed(41, "Terminal", 16),
    _fixed(42, "Acceptor", 30),
    _fixed(43, "Card Acceptor Name/Location", 40),
    _prefixed(44, "Additional response data", 2, 2),
    _prefixed(45, "Track 1 Data", 2, 1),
    _prefixed(48, "Additional Data", 4, 2, container=PRIVATE),
    _fixed(49, "Transaction Currency Code", 6),
    _fixed(50, "Settlement Currency Code", 6),
    _fixed(51, "Billing Currency Code", 6),
    _fixed(52, "PinBlock", 16),
    _prefixed(54, "Amount", 4, 2),
    _prefixed(55, "ICC Data", 4, 2, container=EMV),
    _prefixed(60, "Reserved National", 4, 2),
    _prefixed(62, "Private", 4, 2),
    _fixed(64, "MAC", 16),
    _fixed(70, "Network Management Code", 4),
    _prefixed(116, "Reserved National", 4, 2),
    _prefixed(121, "Additional Data", 4, 2, container=PRIVATE),
    _prefixed(122, "Additional Data", 4, 2),
    _fixed(128, "MAC", 16),
]

DEFAULT_CATALOG: Dict[int, FieldSpec] = {
    spec.number: replace(spec, text=spec.number in TEXT_FIELDS)
    for spec in _CATALOG_ENTRIES
}


def _positive_int(entry: Mapping[str, Any], key: str, number: int, minimum: int = 1) -> int:
    value = entry[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise CatalogError(f"Field {number}: '{key}' must be an integer >= {minimum}, got {value!r}")
    return value


def field_spec_from_dict(number: Any, entry: Mapping[str, Any]) -> FieldSpec:
    """Build a FieldSpec from one catalog-file entry."""
    try:
        number = int(number)
    except (TypeError, ValueError):
        raise CatalogError(f"Field number must be an integer, got {number!r}")
    if not 1 < number <= 128:
        raise CatalogError(f"Field number out of range: {number}")
    if not isinstance(entry, Mapping):
        raise CatalogError(f"Field {number}: definition must be a mapping")

    if ('length' in entry) == ('prefix' in entry):
        raise CatalogError(f"Field {number}: exactly one of 'length' or 'prefix' is required")

    if 'length' in entry:
        rule: LengthRule = Fixed(_positive_int(entry, 'length', number))
    else:
        multiplier = _positive_int(entry, 'multiplier', number) if 'multiplier' in entry else 1
        rule = Prefixed(_positive_int(entry, 'prefix', number), multiplier)

    container = entry.get('container')
    if container is not None and container not in CONTAINER_KINDS:
        raise CatalogError(f"Field {number}: unknown container '{container}'")

    consume = _positive_int(entry, 'consume', number, minimum=0) if 'consume' in entry else None

    return FieldSpec(
        number=number,
        name=str(entry.get('name', '')),
        rule=rule,
        text=bool(entry.get('text', False)),
        container=container,
        consume=consume,
    )


def catalog_from_dict(data: Mapping[str, Any]) -> Dict[int, FieldSpec]:
    """Build a catalog from parsed YAML/JSON data."""
    if not isinstance(data, Mapping) or not isinstance(data.get('fields'), Mapping):
        raise CatalogError("Catalog must contain a 'fields' mapping")

    catalog = dict(DEFAULT_CATALOG) if data.get('extend', False) else {}
    for number, entry in data['fields'].items():
        spec = field_spec_from_dict(number, entry)
        catalog[spec.number] = spec
    return catalog


def load_catalog(path: Union[str, Path]) -> Dict[int, FieldSpec]:
    """Load a field catalog from a YAML file."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogError(f"Invalid YAML in {path}: {e}")
    return catalog_from_dict(data or {})
