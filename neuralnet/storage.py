"""
storage.py
~~~~~~~~~~

File persistence for networks.

A JSONFile pairs a Marshaller (network <-> bytes) with plain file I/O.
Saving creates any missing parent directories; loading distinguishes a
missing file from other I/O failures and from undecodable content.
"""

import os
from typing import Optional, Protocol

from neuralnet import serialization
from neuralnet.errors import ModelIOError, ModelNotFound
from neuralnet.network import Network


class Marshaller(Protocol):
    """Encodes networks to bytes and back."""

    def marshal(self, network: Network) -> bytes:
        ...

    def unmarshal(self, data: bytes) -> Network:
        ...


class JSONMarshaller:
    """Marshaller using the versioned JSON model document."""

    def marshal(self, network: Network) -> bytes:
        return serialization.dumps(network)

    def unmarshal(self, data: bytes) -> Network:
        return serialization.loads(data)


class JSONFile:
    """Stores networks as JSON model documents on disk."""

    def __init__(self, marshaller: Optional[Marshaller] = None):
        self.marshaller = marshaller if marshaller is not None else JSONMarshaller()

    def save(self, network: Network, path: str) -> None:
        """
        Write a network to a file.

        Args:
            network: Network to persist
            path: Destination file; parent directories are created

        Raises:
            ModelIOError: If the directories or file cannot be written
        """
        data = self.marshaller.marshal(network)
        directory = os.path.dirname(path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise ModelIOError(f"writing model file '{path}': {e}") from e

    def load(self, path: str) -> Network:
        """
        Read a network from a file.

        Raises:
            ModelNotFound: If the file does not exist
            ModelIOError: If the file cannot be read
            DecodeError: If the content is not a valid model document
            ConfigMismatch: If the stored weights disagree with the config
        """
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except FileNotFoundError as e:
            raise ModelNotFound(f"model file '{path}' not found") from e
        except OSError as e:
            raise ModelIOError(f"reading model file '{path}': {e}") from e
        return self.marshaller.unmarshal(data)


_default_file = JSONFile()


def save_to_path(network: Network, path: str) -> None:
    """Save a network to path as a JSON model document."""
    _default_file.save(network, path)


def load_from_path(path: str) -> Network:
    """Load a network from a JSON model document at path."""
    return _default_file.load(path)


def model_exists(path: str) -> bool:
    """Return True if a model file exists at path."""
    return os.path.isfile(path)
