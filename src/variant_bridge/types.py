"""Rich type model: type signatures and typed values.

A rich type is written as a compact signature string:

    b y n q i u x t d s o g    scalars (bool, byte, int16 ... signature)
    h                          handle
    v                          variant (a value carrying its own type)
    aT                         array of T
    mT                         maybe T
    (T...)                     tuple
    {KV}                       dict entry with scalar key K

`RichType.parse()` turns a signature into an immutable tree and `str()`
renders it back. `Variant` pairs a type with a Python payload that has been
checked against it.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ConversionError
from .exceptions import SignatureError


class TypeTag(Enum):
    """Outermost tag of a rich type, keyed by its signature character."""

    BOOLEAN = "b"
    BYTE = "y"
    INT16 = "n"
    UINT16 = "q"
    INT32 = "i"
    UINT32 = "u"
    INT64 = "x"
    UINT64 = "t"
    DOUBLE = "d"
    STRING = "s"
    OBJECT_PATH = "o"
    SIGNATURE = "g"
    HANDLE = "h"
    VARIANT = "v"
    ARRAY = "a"
    MAYBE = "m"
    TUPLE = "("
    DICT_ENTRY = "{"


SCALAR_TAGS = frozenset(
    {
        TypeTag.BOOLEAN,
        TypeTag.BYTE,
        TypeTag.INT16,
        TypeTag.UINT16,
        TypeTag.INT32,
        TypeTag.UINT32,
        TypeTag.INT64,
        TypeTag.UINT64,
        TypeTag.DOUBLE,
        TypeTag.STRING,
        TypeTag.OBJECT_PATH,
        TypeTag.SIGNATURE,
    }
)

# Tags allowed as dict entry keys
BASIC_TAGS = SCALAR_TAGS | {TypeTag.HANDLE}

INTEGER_RANGES = {
    TypeTag.BYTE: (0, 2**8 - 1),
    TypeTag.INT16: (-(2**15), 2**15 - 1),
    TypeTag.UINT16: (0, 2**16 - 1),
    TypeTag.INT32: (-(2**31), 2**31 - 1),
    TypeTag.UINT32: (0, 2**32 - 1),
    TypeTag.INT64: (-(2**63), 2**63 - 1),
    TypeTag.UINT64: (0, 2**64 - 1),
    TypeTag.HANDLE: (-(2**31), 2**31 - 1),
}

_OBJECT_PATH_RE = re.compile(r"^/$|^(/[A-Za-z0-9_]+)+$")
_LEAF_TAGS = {tag.value: tag for tag in BASIC_TAGS | {TypeTag.VARIANT}}


@dataclass(frozen=True)
class RichType:
    """Immutable rich type descriptor.

    Attributes:
        tag: Outermost type tag
        children: Component types (element type for arrays and maybes,
            members for tuples, key and value for dict entries)
    """

    tag: TypeTag
    children: tuple["RichType", ...] = ()

    @classmethod
    def parse(cls, signature: str) -> "RichType":
        """Parse a signature holding exactly one complete type.

        Args:
            signature: Type signature such as "i", "as" or "(is)"

        Returns:
            Parsed RichType

        Raises:
            SignatureError: If the signature is malformed
        """
        if not isinstance(signature, str):
            raise SignatureError(f"Type signature must be a string, got {type(signature).__name__}")
        rich_type, end = _parse_one(signature, 0)
        if end != len(signature):
            raise SignatureError(f"Trailing characters in type signature '{signature}'")
        return rich_type

    @classmethod
    def parse_many(cls, signature: str) -> tuple["RichType", ...]:
        """Parse a signature holding zero or more complete types."""
        types = []
        pos = 0
        while pos < len(signature):
            rich_type, pos = _parse_one(signature, pos)
            types.append(rich_type)
        return tuple(types)

    @classmethod
    def coerce(cls, value: "RichType | str") -> "RichType":
        """Return value as a RichType, parsing it if it is a signature."""
        if isinstance(value, RichType):
            return value
        return cls.parse(value)

    @property
    def is_scalar(self) -> bool:
        return self.tag in SCALAR_TAGS

    @property
    def element(self) -> "RichType":
        """Element type of an array or maybe."""
        if self.tag not in (TypeTag.ARRAY, TypeTag.MAYBE):
            raise TypeError(f"Type '{self}' has no element type")
        return self.children[0]

    def __str__(self) -> str:
        if self.tag is TypeTag.TUPLE:
            return "(" + "".join(str(child) for child in self.children) + ")"
        if self.tag is TypeTag.DICT_ENTRY:
            return "{" + "".join(str(child) for child in self.children) + "}"
        return self.tag.value + "".join(str(child) for child in self.children)


def _parse_one(signature: str, pos: int) -> tuple[RichType, int]:
    if pos >= len(signature):
        raise SignatureError(f"Incomplete type signature '{signature}'")

    char = signature[pos]
    if char in _LEAF_TAGS:
        return RichType(_LEAF_TAGS[char]), pos + 1

    if char in ("a", "m"):
        element, end = _parse_one(signature, pos + 1)
        return RichType(TypeTag(char), (element,)), end

    if char == "(":
        members = []
        pos += 1
        while pos < len(signature) and signature[pos] != ")":
            member, pos = _parse_one(signature, pos)
            members.append(member)
        if pos >= len(signature):
            raise SignatureError(f"Unterminated tuple in type signature '{signature}'")
        return RichType(TypeTag.TUPLE, tuple(members)), pos + 1

    if char == "{":
        key, pos = _parse_one(signature, pos + 1)
        if key.tag not in BASIC_TAGS:
            raise SignatureError(f"Dict entry key must be a basic type in '{signature}'")
        value, pos = _parse_one(signature, pos)
        if pos >= len(signature) or signature[pos] != "}":
            raise SignatureError(f"Dict entry must have exactly two types in '{signature}'")
        return RichType(TypeTag.DICT_ENTRY, (key, value)), pos + 1

    raise SignatureError(f"Unexpected character '{char}' at position {pos} in type signature '{signature}'")


def is_object_path(value: str) -> bool:
    """Check object path syntax ("/" or "/seg/seg" with [A-Za-z0-9_] segments)."""
    return bool(_OBJECT_PATH_RE.match(value))


def is_signature(value: str) -> bool:
    """Check that value is a sequence of complete type signatures."""
    try:
        RichType.parse_many(value)
    except SignatureError:
        return False
    return True


@dataclass(frozen=True)
class Variant:
    """Rich value: a type and a payload checked against it.

    Payloads are normalised so that equal values compare equal:

    - scalars and handles: bool, int, float or str
    - arrays: list
    - tuples and dict entries: tuple (dict entries as (key, value))
    - maybe: None for nothing, otherwise the inner payload
    - variant: a nested Variant

    Raises:
        SignatureError: If type is a malformed signature string
        ConversionError: If value does not conform to type
    """

    type: RichType
    value: Any

    def __post_init__(self):
        rich_type = RichType.coerce(self.type)
        object.__setattr__(self, "type", rich_type)
        object.__setattr__(self, "value", normalize_payload(rich_type, self.value))

    @property
    def signature(self) -> str:
        return str(self.type)


def normalize_payload(rich_type: RichType, value: Any) -> Any:
    """Check value against rich_type and return its normalised form.

    Raises:
        ConversionError: If value does not conform to rich_type
    """
    tag = rich_type.tag

    if tag is TypeTag.BOOLEAN:
        if not isinstance(value, bool):
            raise ConversionError(f"Expected bool for type 'b', got {value!r}")
        return value

    if tag in INTEGER_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConversionError(f"Expected integer for type '{rich_type}', got {value!r}")
        low, high = INTEGER_RANGES[tag]
        if not low <= value <= high:
            raise ConversionError(f"Value {value} out of range for type '{rich_type}'")
        return value

    if tag is TypeTag.DOUBLE:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConversionError(f"Expected number for type 'd', got {value!r}")
        return float(value)

    if tag in (TypeTag.STRING, TypeTag.OBJECT_PATH, TypeTag.SIGNATURE):
        if not isinstance(value, str):
            raise ConversionError(f"Expected string for type '{rich_type}', got {value!r}")
        if tag is TypeTag.OBJECT_PATH and not is_object_path(value):
            raise ConversionError(f"Invalid object path {value!r}")
        if tag is TypeTag.SIGNATURE and not is_signature(value):
            raise ConversionError(f"Invalid type signature {value!r}")
        return value

    if tag is TypeTag.VARIANT:
        if not isinstance(value, Variant):
            raise ConversionError(f"Expected Variant for type 'v', got {value!r}")
        return value

    if tag is TypeTag.MAYBE:
        if value is None:
            return None
        return normalize_payload(rich_type.element, value)

    if tag is TypeTag.ARRAY:
        if rich_type.element.tag is TypeTag.BYTE and isinstance(value, (bytes, bytearray)):
            return list(value)
        if not _is_sequence(value):
            raise ConversionError(f"Expected sequence for type '{rich_type}', got {value!r}")
        return [normalize_payload(rich_type.element, item) for item in value]

    # Tuples and dict entries
    if not _is_sequence(value) or len(value) != len(rich_type.children):
        raise ConversionError(
            f"Expected sequence of {len(rich_type.children)} items for type '{rich_type}', got {value!r}"
        )
    return tuple(normalize_payload(child, item) for child, item in zip(rich_type.children, value, strict=True))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
