"""variant-bridge: Typed settings stored in a property channel.

This library lets a typed-variant settings API keep its values in a simpler
property store. Values whose type the store understands (scalars and arrays
of scalars) are stored natively; everything else (tuples, dict entries,
maybes, variants, nested arrays) is stored as canonical YAML text.

Public API:
    ChannelSettingsBackend: Settings backend over a property channel
    SettingsBackend: Abstract backend interface
    RichType, Variant: Rich type descriptors and typed values
    NarrowKind, NarrowType, NarrowValue: Property channel values
    classify: Map a rich type to its storage type
    MemoryChannel, YamlChannel, open_channel: Property channels
    BridgeConfig, BatchPolicy, load_config: Configuration
    get_backend, backend_from_config: Backend registry lookup
    BridgeError and subclasses: Exception types

Example:
    ```python
    from variant_bridge import ChannelSettingsBackend, Variant

    backend = ChannelSettingsBackend()
    backend.connect(print)

    backend.write("/module/count", Variant("i", 42), origin_tag="app")
    backend.read("/module/count", "i").value      # 42

    backend.write("/module/opaque", Variant("(is)", (7, "x")))
    backend.channel.get_property("/module/opaque").value   # '[7, x]'
    ```
"""

from .backend import ChannelSettingsBackend
from .backend import SettingsBackend
from .channel import MemoryChannel
from .channel import PropertyChannel
from .channel import YamlChannel
from .channel import open_channel
from .config import load_config
from .exceptions import BackendError
from .exceptions import BackendNotFoundError
from .exceptions import BridgeError
from .exceptions import ChannelError
from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .exceptions import ConversionError
from .exceptions import MalformedSerializedValueError
from .exceptions import NoSuchKeyError
from .exceptions import NotWritableError
from .exceptions import SignatureError
from .exceptions import TypeMismatchError
from .exceptions import UnsupportedElementTypeError
from .exceptions import UnsupportedTypeError
from .mapper import classify
from .models import UNREPRESENTABLE
from .models import BatchPolicy
from .models import BridgeConfig
from .models import KeyChanged
from .models import KeysChanged
from .models import NarrowKind
from .models import NarrowType
from .models import NarrowValue
from .registry import backend_from_config
from .registry import get_backend
from .types import RichType
from .types import TypeTag
from .types import Variant

__version__ = "0.1.0"

__all__ = [
    "ChannelSettingsBackend",
    "SettingsBackend",
    "MemoryChannel",
    "PropertyChannel",
    "YamlChannel",
    "open_channel",
    "load_config",
    "classify",
    "UNREPRESENTABLE",
    "BatchPolicy",
    "BridgeConfig",
    "KeyChanged",
    "KeysChanged",
    "NarrowKind",
    "NarrowType",
    "NarrowValue",
    "RichType",
    "TypeTag",
    "Variant",
    "backend_from_config",
    "get_backend",
    "BridgeError",
    "BackendError",
    "BackendNotFoundError",
    "ChannelError",
    "ConfigFileError",
    "ConfigValidationError",
    "ConversionError",
    "MalformedSerializedValueError",
    "NoSuchKeyError",
    "NotWritableError",
    "SignatureError",
    "TypeMismatchError",
    "UnsupportedElementTypeError",
    "UnsupportedTypeError",
]
