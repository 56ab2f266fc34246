"""Loading bridge configuration from YAML and the environment.

Example settings file:

    bridge:
      channel: variant-bridge
      store_path: store.yaml        # relative to this file; omit for in-memory
      batch_policy: best-effort     # or fail-fast
      locked_keys:
        - /system/lockdown

Environment variables override the file:
    VARIANT_BRIDGE_CHANNEL, VARIANT_BRIDGE_STORE, VARIANT_BRIDGE_BATCH_POLICY
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .models import DEFAULT_BACKEND
from .models import DEFAULT_CHANNEL
from .models import BatchPolicy
from .models import BridgeConfig
from .utils import deep_merge
from .utils import is_valid_key

logger = logging.getLogger(__name__)

ENV_CHANNEL = "VARIANT_BRIDGE_CHANNEL"
ENV_STORE = "VARIANT_BRIDGE_STORE"
ENV_BATCH_POLICY = "VARIANT_BRIDGE_BATCH_POLICY"

DEFAULTS: dict[str, Any] = {
    "bridge": {
        "channel": DEFAULT_CHANNEL,
        "store_path": None,
        "backend": DEFAULT_BACKEND,
        "batch_policy": BatchPolicy.BEST_EFFORT.value,
        "locked_keys": [],
    }
}


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> BridgeConfig:
    """Load bridge configuration.

    Resolution order (highest to lowest priority):
    1. Environment variables
    2. Settings file
    3. Defaults

    Args:
        path: YAML settings file (missing file means defaults)
        env: Environment mapping (default: os.environ)

    Returns:
        Resolved BridgeConfig

    Raises:
        ConfigFileError: If the file cannot be read or parsed
        ConfigValidationError: If a setting has an invalid value
    """
    env = os.environ if env is None else env
    settings = DEFAULTS
    base_dir = None

    if path is not None:
        path = Path(path)
        base_dir = path.parent
        data = _read_yaml(path)
        if data:
            settings = deep_merge(settings, data)

    bridge = dict(settings["bridge"])
    if env.get(ENV_CHANNEL):
        bridge["channel"] = env[ENV_CHANNEL]
    if env.get(ENV_STORE):
        bridge["store_path"] = str(Path(env[ENV_STORE]).expanduser())
    if env.get(ENV_BATCH_POLICY):
        bridge["batch_policy"] = env[ENV_BATCH_POLICY]

    return _build_config(bridge, base_dir)


def _build_config(bridge: dict[str, Any], base_dir: Path | None) -> BridgeConfig:
    channel = bridge.get("channel")
    if not isinstance(channel, str) or not channel:
        raise ConfigValidationError(f"Channel name must be a non-empty string, got {channel!r}")

    backend = bridge.get("backend")
    if not isinstance(backend, str) or not backend:
        raise ConfigValidationError(f"Backend name must be a non-empty string, got {backend!r}")

    try:
        policy = BatchPolicy(bridge.get("batch_policy"))
    except ValueError:
        choices = ", ".join(p.value for p in BatchPolicy)
        raise ConfigValidationError(
            f"Unknown batch policy {bridge.get('batch_policy')!r} (expected one of {choices})"
        ) from None

    store_path = bridge.get("store_path")
    if store_path is not None:
        store_path = Path(store_path)
        if base_dir is not None and not store_path.is_absolute():
            store_path = base_dir / store_path

    locked_keys = bridge.get("locked_keys") or []
    if not isinstance(locked_keys, list) or not all(is_valid_key(key) for key in locked_keys):
        raise ConfigValidationError(f"locked_keys must be a list of property keys, got {locked_keys!r}")

    return BridgeConfig(
        channel=channel,
        store_path=store_path,
        backend=backend,
        batch_policy=policy,
        locked_keys=tuple(locked_keys),
    )


def _read_yaml(path: Path) -> dict[str, Any] | None:
    """Read YAML settings file.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary from YAML or None if file doesn't exist

    Raises:
        ConfigFileError: If the file cannot be read or is not a mapping
    """
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults")
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Failed to read configuration from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict) or not isinstance(data.get("bridge", {}), dict):
        raise ConfigFileError(f"Configuration in {path} must be a mapping with a 'bridge' section")
    return data
