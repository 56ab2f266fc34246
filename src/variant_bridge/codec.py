"""Conversion between rich values and property channel values.

Three codecs cover the three storage shapes returned by `classify()`:

- scalar: one rich scalar <-> one narrow scalar
- array: rich array of scalars <-> narrow array, element by element
- serialized: any other rich value <-> canonical YAML text stored as a
  narrow string

uint64 values share the int64 storage domain. Values above 2**63 - 1 are
stored as their two's complement (negative) int64 counterpart and turned
back into uint64 when read with an expected uint64 type.
"""

import logging
from typing import Any

import yaml

from .exceptions import ConversionError
from .exceptions import MalformedSerializedValueError
from .exceptions import SignatureError
from .exceptions import TypeMismatchError
from .exceptions import UnsupportedElementTypeError
from .exceptions import UnsupportedTypeError
from .mapper import classify
from .models import UNREPRESENTABLE
from .models import NarrowKind
from .models import NarrowType
from .models import NarrowValue
from .types import RichType
from .types import TypeTag
from .types import Variant
from .types import normalize_payload

logger = logging.getLogger(__name__)

INT64_MAX = 2**63 - 1
UINT64_SPAN = 2**64

SERIALIZED_TYPE = NarrowType(NarrowKind.STRING)

_LINE_BREAKS = ("\n", "\r", "\x85", "\u2028", "\u2029")


class _SingleLineDumper(yaml.SafeDumper):
    """SafeDumper that escapes line breaks instead of folding strings."""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    style = '"' if any(ch in data for ch in _LINE_BREAKS) else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_SingleLineDumper.add_representer(str, _represent_str)


# ===== Scalar Codec =====


def scalar_to_narrow(variant: Variant) -> NarrowValue:
    """Convert a rich scalar to a narrow scalar.

    Raises:
        UnsupportedTypeError: If variant is not a scalar
        ConversionError: If the value does not fit the narrow kind
    """
    narrow_type = _expect_shape(variant.type, is_array=False)
    return NarrowValue(narrow_type, _scalar_out(variant.type.tag, variant.value))


def scalar_to_rich(narrow: NarrowValue, rich_type: RichType | str) -> Variant:
    """Convert a narrow scalar to a rich scalar of rich_type.

    Raises:
        UnsupportedTypeError: If rich_type is not a scalar
        TypeMismatchError: If narrow does not have the kind rich_type maps to
        ConversionError: If the value does not fit rich_type
    """
    rich_type = RichType.coerce(rich_type)
    narrow_type = _expect_shape(rich_type, is_array=False)
    _check_stored_type(narrow, narrow_type, rich_type)
    return Variant(rich_type, _scalar_in(rich_type, narrow.value))


def _scalar_out(tag: TypeTag, value: Any) -> Any:
    if tag is TypeTag.UINT64 and value > INT64_MAX:
        return value - UINT64_SPAN
    return value


def _scalar_in(rich_type: RichType, value: Any) -> Any:
    if rich_type.tag is TypeTag.UINT64 and value < 0:
        value += UINT64_SPAN
    return normalize_payload(rich_type, value)


# ===== Array Codec =====


def array_to_narrow(variant: Variant) -> NarrowValue:
    """Convert a rich array of scalars to a narrow array.

    Order and length are preserved; an empty array stays an empty array.

    Raises:
        UnsupportedTypeError: If variant is not an array of scalars
        UnsupportedElementTypeError: If an element cannot be converted
    """
    narrow_type = _expect_shape(variant.type, is_array=True)
    tag = variant.type.element.tag

    elements = []
    for index, item in enumerate(variant.value):
        try:
            elements.append(narrow_type.kind.check(_scalar_out(tag, item)))
        except ConversionError as e:
            raise UnsupportedElementTypeError(f"Array element {index} of type '{variant.type}': {e}") from e
    return NarrowValue(narrow_type, elements)


def array_to_rich(narrow: NarrowValue, rich_type: RichType | str) -> Variant:
    """Convert a narrow array to a rich array of rich_type.

    Raises:
        UnsupportedTypeError: If rich_type is not an array of scalars
        TypeMismatchError: If narrow is not an array of the expected kind
        UnsupportedElementTypeError: If an element cannot be converted
    """
    rich_type = RichType.coerce(rich_type)
    narrow_type = _expect_shape(rich_type, is_array=True)
    _check_stored_type(narrow, narrow_type, rich_type)

    elements = []
    for index, item in enumerate(narrow.value):
        try:
            elements.append(_scalar_in(rich_type.element, item))
        except ConversionError as e:
            raise UnsupportedElementTypeError(f"Array element {index} for type '{rich_type}': {e}") from e
    return Variant(rich_type, elements)


# ===== Serialized Codec =====


def serialize(variant: Variant) -> str:
    """Render a rich value as canonical single-line YAML.

    The rendering depends only on the value, so writing the same value twice
    stores the same text.

    Raises:
        UnsupportedTypeError: If the value cannot be rendered
    """
    try:
        text = yaml.dump(
            _to_plain(variant.type, variant.value),
            Dumper=_SingleLineDumper,
            default_flow_style=True,
            sort_keys=False,
            allow_unicode=True,
            width=float("inf"),
        )
    except yaml.YAMLError as e:
        raise UnsupportedTypeError(f"Cannot serialize value of type '{variant.type}': {e}") from e

    # Plain top-level scalars get an explicit document end marker
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    text = text.rstrip("\n")
    logger.debug(f"Serialized value of type '{variant.type}' as {text!r}")
    return text


def deserialize(text: str, rich_type: RichType | str) -> Variant:
    """Parse text produced by serialize() back into a rich value.

    Args:
        text: Serialized value
        rich_type: Type the text is expected to hold

    Raises:
        MalformedSerializedValueError: If text is not valid YAML or does not
            describe a value of rich_type
    """
    rich_type = RichType.coerce(rich_type)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedSerializedValueError(f"Invalid serialized value for type '{rich_type}': {e}") from e

    try:
        return Variant(rich_type, _from_plain(rich_type, data))
    except (ConversionError, SignatureError) as e:
        raise MalformedSerializedValueError(f"Serialized value {text!r} does not match type '{rich_type}': {e}") from e


def serialized_to_narrow(variant: Variant) -> NarrowValue:
    """Serialize a rich value into a narrow string."""
    return NarrowValue(SERIALIZED_TYPE, serialize(variant))


def serialized_to_rich(narrow: NarrowValue, rich_type: RichType | str) -> Variant:
    """Parse a narrow string holding a serialized rich value.

    Raises:
        TypeMismatchError: If narrow is not a string scalar
        MalformedSerializedValueError: If the text cannot be parsed
    """
    rich_type = RichType.coerce(rich_type)
    _check_stored_type(narrow, SERIALIZED_TYPE, rich_type)
    return deserialize(narrow.value, rich_type)


def _to_plain(rich_type: RichType, value: Any) -> Any:
    tag = rich_type.tag
    if tag is TypeTag.VARIANT:
        return {"signature": value.signature, "value": _to_plain(value.type, value.value)}
    if tag is TypeTag.MAYBE:
        return None if value is None else _to_plain(rich_type.element, value)
    if tag is TypeTag.ARRAY:
        return [_to_plain(rich_type.element, item) for item in value]
    if tag in (TypeTag.TUPLE, TypeTag.DICT_ENTRY):
        return [_to_plain(child, item) for child, item in zip(rich_type.children, value, strict=True)]
    return value


def _from_plain(rich_type: RichType, data: Any) -> Any:
    tag = rich_type.tag

    if tag is TypeTag.VARIANT:
        if not isinstance(data, dict) or set(data) != {"signature", "value"}:
            raise ConversionError(f"Expected mapping with signature and value, got {data!r}")
        inner = RichType.parse(data["signature"])
        return Variant(inner, _from_plain(inner, data["value"]))

    if tag is TypeTag.MAYBE:
        return None if data is None else _from_plain(rich_type.element, data)

    if tag is TypeTag.ARRAY:
        if not isinstance(data, list):
            raise ConversionError(f"Expected list for type '{rich_type}', got {data!r}")
        return [_from_plain(rich_type.element, item) for item in data]

    if tag in (TypeTag.TUPLE, TypeTag.DICT_ENTRY):
        if not isinstance(data, list) or len(data) != len(rich_type.children):
            raise ConversionError(
                f"Expected list of {len(rich_type.children)} items for type '{rich_type}', got {data!r}"
            )
        return tuple(_from_plain(child, item) for child, item in zip(rich_type.children, data, strict=True))

    return data


# ===== Dispatch =====


def to_narrow(variant: Variant) -> NarrowValue:
    """Convert a rich value with the codec its type classifies to."""
    narrow_type = classify(variant.type)
    if narrow_type is UNREPRESENTABLE:
        return serialized_to_narrow(variant)
    if narrow_type.is_array:
        return array_to_narrow(variant)
    return scalar_to_narrow(variant)


def to_rich(narrow: NarrowValue, rich_type: RichType | str) -> Variant:
    """Convert a narrow value back with the codec rich_type classifies to."""
    rich_type = RichType.coerce(rich_type)
    narrow_type = classify(rich_type)
    if narrow_type is UNREPRESENTABLE:
        return serialized_to_rich(narrow, rich_type)
    if narrow_type.is_array:
        return array_to_rich(narrow, rich_type)
    return scalar_to_rich(narrow, rich_type)


def _expect_shape(rich_type: RichType, is_array: bool) -> NarrowType:
    narrow_type = classify(rich_type)
    if narrow_type is UNREPRESENTABLE or narrow_type.is_array != is_array:
        shape = "an array of scalars" if is_array else "a scalar"
        raise UnsupportedTypeError(f"Type '{rich_type}' is not {shape}")
    return narrow_type


def _check_stored_type(narrow: NarrowValue, expected: NarrowType, rich_type: RichType) -> None:
    if narrow.type != expected:
        raise TypeMismatchError(f"Stored {narrow.type} value cannot be read as type '{rich_type}' (expects {expected})")
