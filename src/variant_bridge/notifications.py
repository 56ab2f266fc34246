"""Change notifications sent to observers of a settings backend."""

import logging
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any

from .models import KeyChanged
from .models import KeysChanged
from .utils import relative_key

logger = logging.getLogger(__name__)

ChangeEvent = KeyChanged | KeysChanged
Observer = Callable[[ChangeEvent], Any]


class ChangeNotifier:
    """Delivers change events to connected observers in connection order."""

    def __init__(self):
        self._observers: list[Observer] = []

    def connect(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def disconnect(self, observer: Observer) -> bool:
        """Disconnect observer.

        Returns:
            True if removed, False if it was not connected
        """
        if observer not in self._observers:
            return False
        self._observers.remove(observer)
        return True

    def changed(self, key: str, origin_tag: Any = None) -> None:
        """Notify observers that one key changed."""
        self._emit(KeyChanged(key, origin_tag))

    def keys_changed(self, path: str, keys: Iterable[str], origin_tag: Any = None) -> None:
        """Notify observers that several keys changed.

        Args:
            path: Common path of the keys
            keys: Full keys below path; sent relative to path, sorted
            origin_tag: Opaque writer token
        """
        relative = tuple(sorted({relative_key(key, path) for key in keys}))
        self._emit(KeysChanged(path, relative, origin_tag))

    def _emit(self, event: ChangeEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Change observer {observer!r} failed for {event}: {e}")
