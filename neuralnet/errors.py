"""
errors.py
~~~~~~~~~

Exception types raised by the network core and its persistence layer.

Every error derives from NetworkError so callers can catch the whole family
in one place. Validation errors also derive from ValueError.
"""


class NetworkError(Exception):
    """Base class for all neural network errors."""


class DimensionMismatch(NetworkError, ValueError):
    """Matrix operands have incompatible shapes for the operation."""


class InvalidShape(NetworkError, ValueError):
    """A matrix does not have the shape an operation requires."""


class EmptyInput(NetworkError, ValueError):
    """A zero-length vector was given where values are required."""


class InputSizeMismatch(NetworkError, ValueError):
    """Input vector length does not match the configured input count."""


class TargetSizeMismatch(NetworkError, ValueError):
    """Target vector length does not match the output layer size."""


class ConfigMismatch(NetworkError, ValueError):
    """Network configuration and weights disagree, or the config is invalid."""


class UnknownActivation(NetworkError, ValueError):
    """The activation identifier has no strategy implementation."""


class StorageError(NetworkError):
    """Base class for persistence failures."""


class ModelNotFound(StorageError):
    """The model file does not exist."""


class ModelIOError(StorageError):
    """Reading or writing the model file failed."""


class DecodeError(StorageError):
    """Persisted model bytes could not be decoded."""
