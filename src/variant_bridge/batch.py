"""Batch writes of several keys with a single change notification."""

import logging
from collections.abc import Mapping
from typing import Any

from .exceptions import BridgeError
from .models import BatchPolicy
from .notifications import ChangeNotifier
from .operations import KeyOperations
from .types import Variant

logger = logging.getLogger(__name__)

ROOT_PATH = "/"


class BatchWriter:
    """Writes a batch of keys and reports the keys that changed.

    Entries are applied in lexicographic key order through the same
    single-key logic as KeyOperations.write(): a Variant is written, None
    resets the key. The batch is not atomic; entries that succeed stay
    written even when others fail.

    After the batch, at most one notification is sent: a single-key one when
    exactly one key changed, a multi-key one under "/" when several did, and
    none when nothing changed.

    Args:
        operations: Single-key operations to apply entries with
        notifier: Receives the change notification
        policy: BEST_EFFORT continues past failures, FAIL_FAST stops at the first
    """

    def __init__(
        self,
        operations: KeyOperations,
        notifier: ChangeNotifier,
        policy: BatchPolicy = BatchPolicy.BEST_EFFORT,
    ):
        self.operations = operations
        self.notifier = notifier
        self.policy = policy

    def write_batch(self, entries: Mapping[str, Variant | None], origin_tag: Any = None) -> bool:
        """Apply all entries and notify observers of the modified keys.

        Args:
            entries: Key to value (or None for reset)
            origin_tag: Opaque writer token passed to the notification

        Returns:
            True if every entry succeeded (an empty batch succeeds)
        """
        if not entries:
            logger.debug("Empty batch, nothing to write")
            return True

        modified: set[str] = set()
        failed: list[str] = []

        for key in sorted(entries):
            try:
                self.operations.write(key, entries[key])
            except BridgeError as e:
                logger.warning(f"Batch write of key '{key}' failed: {e}")
                failed.append(key)
                if self.policy is BatchPolicy.FAIL_FAST:
                    break
                continue
            modified.add(key)

        self._notify(modified, origin_tag)
        logger.info(f"Batch of {len(entries)} entries modified {len(modified)} keys, {len(failed)} failed")
        return not failed

    def _notify(self, modified: set[str], origin_tag: Any) -> None:
        if not modified:
            return
        if len(modified) == 1:
            self.notifier.changed(next(iter(modified)), origin_tag)
        else:
            self.notifier.keys_changed(ROOT_PATH, modified, origin_tag)
