"""Mapping from rich types to property channel storage types."""

import logging

from .models import UNREPRESENTABLE
from .models import NarrowKind
from .models import NarrowType
from .models import Unrepresentable
from .types import SCALAR_TAGS
from .types import RichType
from .types import TypeTag

logger = logging.getLogger(__name__)

# uint64 shares the int64 storage domain; object paths and signatures are strings.
SCALAR_KINDS: dict[TypeTag, NarrowKind] = {
    TypeTag.BOOLEAN: NarrowKind.BOOLEAN,
    TypeTag.BYTE: NarrowKind.UCHAR,
    TypeTag.INT16: NarrowKind.INT16,
    TypeTag.UINT16: NarrowKind.UINT16,
    TypeTag.INT32: NarrowKind.INT32,
    TypeTag.UINT32: NarrowKind.UINT32,
    TypeTag.INT64: NarrowKind.INT64,
    TypeTag.UINT64: NarrowKind.INT64,
    TypeTag.DOUBLE: NarrowKind.DOUBLE,
    TypeTag.STRING: NarrowKind.STRING,
    TypeTag.OBJECT_PATH: NarrowKind.STRING,
    TypeTag.SIGNATURE: NarrowKind.STRING,
}


def is_scalar_tag(tag: TypeTag) -> bool:
    """Check whether tag maps directly to a narrow scalar kind."""
    return tag in SCALAR_TAGS


def classify(rich_type: RichType | str) -> NarrowType | Unrepresentable:
    """Classify a rich type by how the property channel can store it.

    Scalars map to a scalar kind. An array maps to an array of a scalar kind
    only when its element is itself a scalar. Everything else (variants,
    maybes, tuples, dict entries, handles, nested arrays) is unrepresentable
    and goes through text serialization.

    Args:
        rich_type: RichType or type signature string

    Returns:
        NarrowType, or UNREPRESENTABLE if no native encoding exists

    Raises:
        SignatureError: If rich_type is a malformed signature string
    """
    rich_type = RichType.coerce(rich_type)

    if rich_type.tag is TypeTag.ARRAY:
        element = rich_type.children[0]
        if is_scalar_tag(element.tag):
            result = NarrowType(SCALAR_KINDS[element.tag], is_array=True)
        else:
            result = UNREPRESENTABLE
    elif is_scalar_tag(rich_type.tag):
        result = NarrowType(SCALAR_KINDS[rich_type.tag])
    else:
        result = UNREPRESENTABLE

    logger.debug(f"Classified type '{rich_type}' as {result}")
    return result
