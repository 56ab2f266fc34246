"""Exceptions for variant-bridge."""


class BridgeError(Exception):
    """Base exception for bridge errors."""

    pass


class NoSuchKeyError(BridgeError):
    """Key does not exist in the property channel."""

    pass


class NotWritableError(BridgeError):
    """Property channel rejected a write because the key is locked."""

    pass


class UnsupportedTypeError(BridgeError):
    """Rich type cannot be stored, not even through serialization."""

    pass


class UnsupportedElementTypeError(UnsupportedTypeError):
    """An array element could not be converted with the scalar codec."""

    pass


class MalformedSerializedValueError(BridgeError):
    """Serialized text could not be parsed back into the expected type."""

    pass


class ConversionError(BridgeError):
    """A value does not fit the type it is being converted to."""

    pass


class TypeMismatchError(ConversionError):
    """Stored narrow value does not have the kind the expected type predicts."""

    pass


class SignatureError(BridgeError, ValueError):
    """Type signature string is malformed."""

    pass


class ChannelError(BridgeError):
    """Property channel could not be opened or persisted."""

    pass


class ConfigFileError(BridgeError):
    """Error reading configuration file."""

    pass


class ConfigValidationError(BridgeError):
    """Error validating configuration data."""

    pass


class BackendError(BridgeError):
    """Registered backend could not be instantiated."""

    pass


class BackendNotFoundError(BackendError):
    """No backend is registered under the requested name."""

    pass
