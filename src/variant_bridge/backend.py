"""Settings backend interface and its property channel implementation."""

import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from .batch import BatchWriter
from .channel import PropertyChannel
from .channel import open_channel
from .exceptions import BridgeError
from .exceptions import ChannelError
from .models import BatchPolicy
from .models import BridgeConfig
from .notifications import ChangeNotifier
from .notifications import Observer
from .operations import KeyOperations
from .types import RichType
from .types import Variant

logger = logging.getLogger(__name__)


class SettingsBackend(ABC):
    """Storage backend for a typed settings API.

    Read failures yield None and write failures yield False; backends never
    raise from these calls. Successful writes and resets notify observers
    connected with connect().
    """

    def __init__(self):
        self.notifier = ChangeNotifier()

    @abstractmethod
    def read(self, key: str, expected_type: RichType | str, default_value: bool = False) -> Variant | None:
        """Read key as expected_type, or None if unavailable."""

    @abstractmethod
    def write(self, key: str, value: Variant | None, origin_tag: Any = None) -> bool:
        """Write value at key (None resets it)."""

    @abstractmethod
    def write_tree(self, entries: Mapping[str, Variant | None], origin_tag: Any = None) -> bool:
        """Write several keys at once."""

    @abstractmethod
    def reset(self, key: str, origin_tag: Any = None) -> bool:
        """Reset key."""

    @abstractmethod
    def get_writable(self, key: str) -> bool:
        """Check whether key can be written."""

    def subscribe(self, name: str) -> None:
        """Watch a path for changes made outside this backend."""
        raise NotImplementedError(f"{type(self).__name__} does not support subscriptions")

    def unsubscribe(self, name: str) -> None:
        """Stop watching a path."""
        raise NotImplementedError(f"{type(self).__name__} does not support subscriptions")

    def sync(self) -> None:
        """Flush pending writes."""
        pass

    def connect(self, observer: Observer) -> None:
        """Register observer for change events."""
        self.notifier.connect(observer)

    def disconnect(self, observer: Observer) -> bool:
        """Unregister observer."""
        return self.notifier.disconnect(observer)


class ChannelSettingsBackend(SettingsBackend):
    """Settings backend storing values in a property channel.

    Scalars and arrays of scalars are stored natively; every other type is
    stored as serialized text. The channel does not push changes back, so
    subscribe() and unsubscribe() are unsupported.

    Args:
        config: Bridge configuration (channel name, store file, locks, batch policy)
        channel: Already opened channel to use instead of opening one from config

    Raises:
        ChannelError: If the channel cannot be opened
    """

    def __init__(self, config: BridgeConfig | None = None, channel: PropertyChannel | None = None):
        super().__init__()
        self.config = config or BridgeConfig()

        if channel is None:
            try:
                channel = open_channel(self.config.channel, self.config.store_path, self.config.locked_keys)
            except ChannelError as e:
                logger.error(f"Could not open channel '{self.config.channel}': {e}")
                raise

        self.channel = channel
        self.operations = KeyOperations(channel)
        self.batch_writer = BatchWriter(self.operations, self.notifier, self.config.batch_policy)

    @property
    def batch_policy(self) -> BatchPolicy:
        return self.batch_writer.policy

    def read(self, key: str, expected_type: RichType | str, default_value: bool = False) -> Variant | None:
        """Read key as expected_type.

        Returns:
            Rich value, or None if a default was requested, the key is not
            set or the stored value cannot be converted
        """
        try:
            return self.operations.read(key, expected_type, default_value)
        except BridgeError as e:
            logger.warning(f"Failed to read key '{key}' as '{expected_type}': {e}")
            return None

    def write(self, key: str, value: Variant | None, origin_tag: Any = None) -> bool:
        """Write value at key, or reset key if value is None.

        Returns:
            True if written (and observers notified), False otherwise
        """
        try:
            self.operations.write(key, value)
        except BridgeError as e:
            action = "reset" if value is None else "write"
            logger.warning(f"Failed to {action} key '{key}': {e}")
            return False

        self.notifier.changed(key, origin_tag)
        logger.info(f"{'Reset' if value is None else 'Wrote'} key '{key}' in channel '{self.channel.name}'")
        return True

    def write_tree(self, entries: Mapping[str, Variant | None], origin_tag: Any = None) -> bool:
        """Write several keys, notifying observers once for all modified keys.

        Returns:
            True if every entry succeeded
        """
        return self.batch_writer.write_batch(entries, origin_tag)

    def reset(self, key: str, origin_tag: Any = None) -> bool:
        """Reset key and everything below it.

        Returns:
            True if the key existed and was reset
        """
        try:
            self.operations.reset(key)
        except BridgeError as e:
            logger.warning(f"Failed to reset key '{key}': {e}")
            return False

        self.notifier.changed(key, origin_tag)
        logger.info(f"Reset key '{key}' in channel '{self.channel.name}'")
        return True

    def get_writable(self, key: str) -> bool:
        return self.operations.is_writable(key)

    def sync(self) -> None:
        """Persist the channel.

        Raises:
            ChannelError: If the channel cannot be written
        """
        self.channel.flush()
