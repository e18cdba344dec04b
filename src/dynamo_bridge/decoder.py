from __future__ import annotations

import base64
import json
import re
from collections.abc import Callable, Iterator, Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Union

from dynamo_bridge.models import EncodedAttribute

GenericValue = Union[
    int,
    Decimal,
    str,
    bool,
    None,
    dict[str, "GenericValue"],
    list["GenericValue"],
]

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class DecodeError(ValueError):
    """Raised when an attribute value cannot be decoded."""


class AttributeVariant(str, Enum):
    NUMBER = "N"
    STRING = "S"
    MAP = "M"
    LIST = "L"
    BOOL = "BOOL"
    NULL = "NULL"
    BINARY = "B"
    BINARY_SET = "BS"
    STRING_SET = "SS"
    NUMBER_SET = "NS"


# First match wins. Some encodings satisfy more than one check, so the order is load-bearing.
VARIANT_PRIORITY: tuple[tuple[AttributeVariant, Callable[[EncodedAttribute], bool]], ...] = (
    (AttributeVariant.NUMBER, lambda a: bool(a.n)),
    (AttributeVariant.STRING, lambda a: bool(a.s)),
    (AttributeVariant.MAP, lambda a: a.m is not None),
    (AttributeVariant.LIST, lambda a: a.l is not None),
    (AttributeVariant.BOOL, lambda a: a.bool_ is not None),
    (AttributeVariant.NULL, lambda a: bool(a.null)),
    (AttributeVariant.BINARY, lambda a: a.b is not None),
    (AttributeVariant.BINARY_SET, lambda a: len(a.bs) > 0),
    (AttributeVariant.STRING_SET, lambda a: len(a.ss) > 0),
    (AttributeVariant.NUMBER_SET, lambda a: len(a.ns) > 0),
)


def resolve_variant(attribute: EncodedAttribute) -> AttributeVariant:
    for variant, matches in VARIANT_PRIORITY:
        if matches(attribute):
            return variant
    raise DecodeError("unrecognized attribute encoding")


def decode_attribute(attribute: EncodedAttribute) -> GenericValue:
    variant = resolve_variant(attribute)

    if variant is AttributeVariant.NUMBER:
        return _parse_number(attribute.n)
    if variant is AttributeVariant.STRING:
        return attribute.s
    if variant is AttributeVariant.MAP:
        return {key: decode_attribute(value) for key, value in attribute.m.items()}
    if variant is AttributeVariant.LIST:
        return [decode_attribute(item) for item in attribute.l]
    if variant is AttributeVariant.BOOL:
        return attribute.bool_
    if variant is AttributeVariant.NULL:
        return None
    if variant is AttributeVariant.BINARY:
        return _b64(attribute.b)
    if variant is AttributeVariant.BINARY_SET:
        return [_b64(item) for item in attribute.bs]
    if variant is AttributeVariant.STRING_SET:
        return list(attribute.ss)
    if variant is AttributeVariant.NUMBER_SET:
        return [_parse_decimal(item) for item in attribute.ns]

    raise DecodeError(f"Unhandled attribute variant: {variant}")


def decode_snapshot(snapshot: Mapping[str, EncodedAttribute]) -> dict[str, GenericValue]:
    decoded: dict[str, GenericValue] = {}
    for name, attribute in snapshot.items():
        try:
            decoded[name] = decode_attribute(attribute)
        except DecodeError as exc:
            raise DecodeError(f"Field {name!r}: {exc}") from exc
    return decoded


def serialize_detail(value: GenericValue) -> str:
    """Render a decoded value as compact JSON.

    Decimals are written as bare JSON numbers using their exact textual form, so
    ``Decimal("1.10")`` stays ``1.10`` instead of passing through a float.
    """
    return "".join(_iter_json(value))


def _iter_json(value: GenericValue) -> Iterator[str]:
    # bool before int: bool is an int subclass.
    if value is None or isinstance(value, (bool, str)):
        yield json.dumps(value, ensure_ascii=False)
    elif isinstance(value, int):
        yield str(value)
    elif isinstance(value, Decimal):
        yield str(value)
    elif isinstance(value, dict):
        yield "{"
        for position, (key, item) in enumerate(value.items()):
            if position:
                yield ","
            yield json.dumps(key, ensure_ascii=False)
            yield ":"
            yield from _iter_json(item)
        yield "}"
    elif isinstance(value, list):
        yield "["
        for position, item in enumerate(value):
            if position:
                yield ","
            yield from _iter_json(item)
        yield "]"
    else:
        raise TypeError(f"Unsupported value type for detail serialization: {type(value)!r}")


def _parse_number(text: str) -> int | Decimal:
    if _INTEGER_PATTERN.fullmatch(text):
        return int(text)
    # Fractional and exponent forms such as "1.5" or "1E+3".
    return _parse_decimal(text)


def _parse_decimal(text: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise DecodeError(f"Invalid numeric value: {text!r}") from exc

    if not value.is_finite():
        raise DecodeError(f"Invalid numeric value: {text!r}")
    return value


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
