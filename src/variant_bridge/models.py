"""Data models for variant-bridge."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .exceptions import ConversionError

DEFAULT_CHANNEL = "variant-bridge"
DEFAULT_BACKEND = "property-channel"


class NarrowKind(Enum):
    """Scalar kinds understood by the property channel."""

    BOOLEAN = "bool"
    UCHAR = "uchar"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    DOUBLE = "double"
    STRING = "string"

    def check(self, value: Any) -> Any:
        """Check a scalar against this kind's domain.

        Args:
            value: Scalar to check

        Returns:
            The value, with integers widened to float for DOUBLE

        Raises:
            ConversionError: If value is outside the domain
        """
        if self is NarrowKind.BOOLEAN:
            if not isinstance(value, bool):
                raise ConversionError(f"Expected bool for {self.value}, got {value!r}")
            return value

        if self is NarrowKind.STRING:
            if not isinstance(value, str):
                raise ConversionError(f"Expected str for {self.value}, got {value!r}")
            return value

        if self is NarrowKind.DOUBLE:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConversionError(f"Expected number for {self.value}, got {value!r}")
            return float(value)

        if isinstance(value, bool) or not isinstance(value, int):
            raise ConversionError(f"Expected int for {self.value}, got {value!r}")
        low, high = _NARROW_RANGES[self]
        if not low <= value <= high:
            raise ConversionError(f"Value {value} out of range for {self.value}")
        return value


_NARROW_RANGES = {
    NarrowKind.UCHAR: (0, 2**8 - 1),
    NarrowKind.INT16: (-(2**15), 2**15 - 1),
    NarrowKind.UINT16: (0, 2**16 - 1),
    NarrowKind.INT32: (-(2**31), 2**31 - 1),
    NarrowKind.UINT32: (0, 2**32 - 1),
    NarrowKind.INT64: (-(2**63), 2**63 - 1),
}


@dataclass(frozen=True)
class NarrowType:
    """Storage type in the property channel: a scalar kind or an array of it."""

    kind: NarrowKind
    is_array: bool = False

    def __str__(self) -> str:
        return f"array<{self.kind.value}>" if self.is_array else self.kind.value


class Unrepresentable:
    """Marker for rich types with no native narrow encoding."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNREPRESENTABLE"


UNREPRESENTABLE = Unrepresentable()


@dataclass(frozen=True)
class NarrowValue:
    """Value stored in the property channel.

    Scalars hold a bool, int, float or str. Arrays hold a tuple of scalars
    that all have the array's kind.

    Raises:
        ConversionError: If value does not fit type
    """

    type: NarrowType
    value: Any

    def __post_init__(self):
        kind = self.type.kind
        if self.type.is_array:
            if isinstance(self.value, (str, bytes)) or not isinstance(self.value, (list, tuple)):
                raise ConversionError(f"Expected sequence for {self.type}, got {self.value!r}")
            object.__setattr__(self, "value", tuple(kind.check(item) for item in self.value))
        else:
            object.__setattr__(self, "value", kind.check(self.value))

    @classmethod
    def scalar(cls, kind: NarrowKind, value: Any) -> "NarrowValue":
        return cls(NarrowType(kind), value)

    @classmethod
    def array(cls, kind: NarrowKind, values: list[Any] | tuple[Any, ...]) -> "NarrowValue":
        return cls(NarrowType(kind, is_array=True), values)


class BatchPolicy(Enum):
    """How a batch write reacts to a failing entry.

    BEST_EFFORT continues with the remaining entries; FAIL_FAST stops at the
    first failure. Both report failure unless every entry succeeded.
    """

    BEST_EFFORT = "best-effort"
    FAIL_FAST = "fail-fast"


@dataclass(frozen=True)
class KeyChanged:
    """One key changed."""

    key: str
    origin_tag: Any = None


@dataclass(frozen=True)
class KeysChanged:
    """Several keys below path changed (keys are relative to path)."""

    path: str
    keys: tuple[str, ...]
    origin_tag: Any = None


@dataclass(frozen=True)
class BridgeConfig:
    """Configuration for a settings bridge.

    Attributes:
        channel: Name of the property channel to open
        store_path: YAML file persisting the channel (None keeps it in memory)
        backend: Name the backend is looked up under in the registry
        batch_policy: Failure policy for batch writes
        locked_keys: Keys locked in the channel when it is opened
    """

    channel: str = DEFAULT_CHANNEL
    store_path: Path | None = None
    backend: str = DEFAULT_BACKEND
    batch_policy: BatchPolicy = BatchPolicy.BEST_EFFORT
    locked_keys: tuple[str, ...] = ()
