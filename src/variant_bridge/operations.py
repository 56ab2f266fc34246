"""Single-key read, write, reset and writability operations."""

import logging

from . import codec
from .channel import PropertyChannel
from .exceptions import ConversionError
from .exceptions import NoSuchKeyError
from .mapper import classify
from .models import UNREPRESENTABLE
from .types import RichType
from .types import Variant

logger = logging.getLogger(__name__)


class KeyOperations:
    """Reads and writes rich values at single keys of a property channel.

    Errors are raised as BridgeError subclasses; no change notifications are
    sent at this level.

    Args:
        channel: Property channel holding the values
    """

    def __init__(self, channel: PropertyChannel):
        self.channel = channel

    def read(self, key: str, expected_type: RichType | str, default_value: bool = False) -> Variant | None:
        """Read the value at key as expected_type.

        Default values belong to the schema, not to the channel, so asking
        for the default always yields None.

        Args:
            key: Property key
            expected_type: Rich type the caller expects
            default_value: Whether the default value is requested

        Returns:
            Rich value, or None if a default was requested or key is not set

        Raises:
            TypeMismatchError: If the stored value has the wrong kind
            MalformedSerializedValueError: If serialized text cannot be parsed
            ConversionError: If the stored value does not fit expected_type
        """
        if default_value:
            return None

        if not self.channel.has_property(key):
            logger.debug(f"Key '{key}' not found in channel '{self.channel.name}'")
            return None

        expected_type = RichType.coerce(expected_type)
        narrow_type = classify(expected_type)
        if narrow_type is not UNREPRESENTABLE and narrow_type.is_array:
            stored = self.channel.get_array(key)
        else:
            stored = self.channel.get_property(key)

        value = codec.to_rich(stored, expected_type)
        logger.debug(f"Read key '{key}' as '{expected_type}'")
        return value

    def write(self, key: str, value: Variant | None) -> None:
        """Store value at key, or reset key if value is None.

        Locked keys are rejected by the channel itself.

        Raises:
            NoSuchKeyError: If resetting a key that is not set
            NotWritableError: If key is locked
            UnsupportedTypeError: If the value cannot be stored
            ConversionError: If the value does not fit its storage type
        """
        if value is None:
            self.reset(key)
            return

        if not isinstance(value, Variant):
            raise ConversionError(f"Cannot write {value!r} to key '{key}': not a Variant")

        narrow = codec.to_narrow(value)
        if narrow.type.is_array:
            self.channel.set_array(key, narrow)
        else:
            self.channel.set_property(key, narrow)
        logger.debug(f"Wrote key '{key}' with type '{value.type}' as {narrow.type}")

    def reset(self, key: str) -> None:
        """Reset key and everything below it.

        Raises:
            NoSuchKeyError: If key is not set
            NotWritableError: If key is locked
        """
        if not self.channel.has_property(key):
            raise NoSuchKeyError(f"Cannot reset non-existing key '{key}'")
        self.channel.reset_property(key, recursive=True)
        logger.debug(f"Reset key '{key}'")

    def is_writable(self, key: str) -> bool:
        return not self.channel.is_property_locked(key)
