"""Property channels: the narrow key/value store behind the bridge.

A channel stores NarrowValues under slash-delimited keys and can lock keys
against writing. `PropertyChannel` is the interface the bridge needs;
`MemoryChannel` and `YamlChannel` are the reference stores.
"""

import logging
from pathlib import Path
from typing import Any
from typing import Protocol

import yaml

from .exceptions import ChannelError
from .exceptions import ConversionError
from .exceptions import NoSuchKeyError
from .exceptions import NotWritableError
from .exceptions import TypeMismatchError
from .models import DEFAULT_CHANNEL
from .models import NarrowKind
from .models import NarrowType
from .models import NarrowValue
from .utils import ancestors
from .utils import is_descendant
from .utils import is_valid_key

logger = logging.getLogger(__name__)


class PropertyChannel(Protocol):
    """Interface of the narrow property store.

    Every call is atomic per key. Writes and resets of locked keys raise
    NotWritableError; reads of absent keys raise NoSuchKeyError.
    """

    name: str

    def has_property(self, key: str) -> bool: ...

    def get_property(self, key: str) -> NarrowValue: ...

    def set_property(self, key: str, value: NarrowValue) -> None: ...

    def get_array(self, key: str) -> NarrowValue: ...

    def set_array(self, key: str, value: NarrowValue) -> None: ...

    def reset_property(self, key: str, recursive: bool = False) -> None: ...

    def is_property_locked(self, key: str) -> bool: ...

    def flush(self) -> None: ...


class MemoryChannel:
    """In-memory property channel.

    Args:
        name: Channel name
        locked_keys: Keys to lock; a lock also covers every key below it
    """

    def __init__(self, name: str = DEFAULT_CHANNEL, locked_keys: tuple[str, ...] | list[str] = ()):
        if not name:
            raise ChannelError("Channel name must not be empty")
        self.name = name
        self._properties: dict[str, NarrowValue] = {}
        self._locked: set[str] = set()
        for key in locked_keys:
            self.lock_property(key)

    # ===== Queries =====

    def has_property(self, key: str) -> bool:
        return key in self._properties

    def get_property(self, key: str) -> NarrowValue:
        """Get the value stored at key, scalar or array.

        Raises:
            NoSuchKeyError: If key is not set
        """
        try:
            return self._properties[key]
        except KeyError:
            raise NoSuchKeyError(f"Property '{key}' does not exist in channel '{self.name}'") from None

    def get_array(self, key: str) -> NarrowValue:
        """Get the array stored at key.

        Raises:
            NoSuchKeyError: If key is not set
            TypeMismatchError: If key holds a scalar
        """
        value = self.get_property(key)
        if not value.type.is_array:
            raise TypeMismatchError(f"Property '{key}' holds a {value.type}, not an array")
        return value

    def is_property_locked(self, key: str) -> bool:
        return key in self._locked or any(ancestor in self._locked for ancestor in ancestors(key))

    def keys(self) -> list[str]:
        """List all set keys in sorted order."""
        return sorted(self._properties)

    # ===== Mutations =====

    def set_property(self, key: str, value: NarrowValue) -> None:
        """Store a scalar or array value at key.

        Raises:
            NotWritableError: If key is locked
            ConversionError: If key is malformed or value is not a NarrowValue
        """
        self._check_writable(key)
        if not isinstance(value, NarrowValue):
            raise ConversionError(f"Cannot store {value!r} in property '{key}': not a NarrowValue")
        self._properties[key] = value
        self._changed()

    def set_array(self, key: str, value: NarrowValue) -> None:
        """Store an array value at key.

        Raises:
            NotWritableError: If key is locked
            TypeMismatchError: If value is not an array
        """
        if isinstance(value, NarrowValue) and not value.type.is_array:
            raise TypeMismatchError(f"Cannot store {value.type} in property '{key}' as an array")
        self.set_property(key, value)

    def reset_property(self, key: str, recursive: bool = False) -> None:
        """Remove key, and every key below it if recursive.

        Raises:
            NotWritableError: If key is locked
        """
        self._check_writable(key)
        removed = [k for k in self._properties if k == key or (recursive and is_descendant(k, key))]
        for k in removed:
            del self._properties[k]
        if removed:
            self._changed()

    def lock_property(self, key: str) -> None:
        if not is_valid_key(key):
            raise ChannelError(f"Invalid property key '{key}'")
        self._locked.add(key)

    def unlock_property(self, key: str) -> None:
        self._locked.discard(key)

    def flush(self) -> None:
        """Nothing to persist for an in-memory channel."""
        pass

    # ===== Private Helpers =====

    def _check_writable(self, key: str) -> None:
        if not is_valid_key(key):
            raise ConversionError(f"Invalid property key '{key}'")
        if self.is_property_locked(key):
            raise NotWritableError(f"Property '{key}' is locked in channel '{self.name}'")

    def _changed(self) -> None:
        pass


class YamlChannel(MemoryChannel):
    """Property channel persisted to a YAML file.

    File layout:

        channel: variant-bridge
        locked: [/system/lockdown]
        properties:
          /module/count: {kind: int32, value: 42}
          /module/tags: {kind: string, array: true, value: [a, b]}

    Every mutation rewrites the file unless autosave is off, in which case
    flush() persists pending changes. With autosave on, a mutation whose
    file write fails is undone before the error is raised.

    Only the locks listed in the file are written back; locks passed as
    locked_keys or added with lock_property() last for this instance.

    Args:
        path: YAML file path (created on first write)
        name: Channel name
        locked_keys: Keys locked in addition to those listed in the file
        autosave: Persist after every mutation

    Raises:
        ChannelError: If the file exists but cannot be read or parsed
    """

    def __init__(
        self,
        path: Path,
        name: str = DEFAULT_CHANNEL,
        locked_keys: tuple[str, ...] | list[str] = (),
        autosave: bool = True,
    ):
        super().__init__(name, locked_keys)
        self.path = Path(path)
        self.autosave = autosave
        self._dirty = False
        self._file_locked: set[str] = set()
        self._load()

    def set_property(self, key: str, value: NarrowValue) -> None:
        """Store value at key and persist it.

        Raises:
            NotWritableError: If key is locked
            ConversionError: If key is malformed or value is not a NarrowValue
            ChannelError: If the file cannot be written (the channel is left unchanged)
        """
        properties, dirty = dict(self._properties), self._dirty
        try:
            super().set_property(key, value)
        except ChannelError:
            self._properties, self._dirty = properties, dirty
            raise

    def reset_property(self, key: str, recursive: bool = False) -> None:
        """Remove key (and its subtree if recursive) and persist the change.

        Raises:
            NotWritableError: If key is locked
            ChannelError: If the file cannot be written (the channel is left unchanged)
        """
        properties, dirty = dict(self._properties), self._dirty
        try:
            super().reset_property(key, recursive)
        except ChannelError:
            self._properties, self._dirty = properties, dirty
            raise

    def flush(self) -> None:
        """Write the channel to its file if anything changed.

        Raises:
            ChannelError: If the file cannot be written
        """
        if not self._dirty:
            return
        self._write_yaml(self._to_document())
        self._dirty = False
        logger.debug(f"Saved channel '{self.name}' to {self.path}")

    def _changed(self) -> None:
        self._dirty = True
        if self.autosave:
            self.flush()

    def _load(self) -> None:
        data = self._read_yaml()
        if data is None:
            return

        try:
            for key in data.get("locked") or []:
                self.lock_property(key)
                self._file_locked.add(key)
            for key, entry in (data.get("properties") or {}).items():
                if not is_valid_key(key):
                    raise ChannelError(f"Invalid property key '{key}'")
                self._properties[key] = _value_from_entry(entry)
        except (AttributeError, KeyError, TypeError, ValueError, ConversionError) as e:
            raise ChannelError(f"Invalid channel data in {self.path}: {e}") from e

        logger.debug(f"Loaded {len(self._properties)} properties for channel '{self.name}' from {self.path}")

    def _to_document(self) -> dict[str, Any]:
        properties = {}
        for key in sorted(self._properties):
            value = self._properties[key]
            entry: dict[str, Any] = {"kind": value.type.kind.value}
            if value.type.is_array:
                entry["array"] = True
                entry["value"] = list(value.value)
            else:
                entry["value"] = value.value
            properties[key] = entry
        return {"channel": self.name, "locked": sorted(self._file_locked), "properties": properties}

    def _read_yaml(self) -> dict[str, Any] | None:
        """Read the channel file.

        Returns:
            Dictionary from YAML or None if file doesn't exist

        Raises:
            ChannelError: If the file cannot be read or is not a mapping
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ChannelError(f"Failed to read channel '{self.name}' from {self.path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ChannelError(f"Channel file {self.path} must contain a mapping")
        return data

    def _write_yaml(self, data: dict[str, Any]) -> None:
        """Write the channel file.

        Raises:
            ChannelError: If write fails
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        except (OSError, yaml.YAMLError) as e:
            raise ChannelError(f"Failed to write channel '{self.name}' to {self.path}: {e}") from e


def _value_from_entry(entry: dict[str, Any]) -> NarrowValue:
    kind = NarrowKind(entry["kind"])
    return NarrowValue(NarrowType(kind, is_array=bool(entry.get("array", False))), entry["value"])


def open_channel(
    name: str = DEFAULT_CHANNEL,
    path: Path | None = None,
    locked_keys: tuple[str, ...] | list[str] = (),
) -> MemoryChannel:
    """Open a property channel by name.

    Args:
        name: Channel name
        path: YAML file persisting the channel; None opens an in-memory channel
        locked_keys: Keys to lock in the opened channel

    Returns:
        Opened channel

    Raises:
        ChannelError: If the channel cannot be opened
    """
    if path is None:
        channel = MemoryChannel(name, locked_keys)
    else:
        channel = YamlChannel(path, name, locked_keys)
    logger.debug(f"Opened channel '{name}'" + (f" backed by {path}" if path else " in memory"))
    return channel
