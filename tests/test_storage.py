"""
test_storage.py
~~~~~~~~~~~~~~~

Tests for saving and loading model files.
"""

import os

import pytest

from neuralnet import storage
from neuralnet.errors import DecodeError, ModelIOError, ModelNotFound, StorageError
from neuralnet.network import Network, NetworkConfig


@pytest.fixture
def network():
    """A small seeded 2-2-1 network."""
    return Network.new_random(NetworkConfig(input_count=2, layer_counts=[2, 1], rand_seed=5))


@pytest.mark.integration
class TestJSONFile:
    """Test file persistence of networks."""

    def test_save_and_load(self, tmp_path, network):
        """Test that a saved network loads back unchanged."""
        path = str(tmp_path / 'model.json')
        storage.save_to_path(network, path)
        assert storage.model_exists(path)
        assert storage.load_from_path(path) == network

    def test_save_creates_parent_directories(self, tmp_path, network):
        """Test that missing parent directories are created."""
        path = str(tmp_path / 'a' / 'b' / 'model.json')
        storage.save_to_path(network, path)
        assert os.path.isfile(path)

    def test_save_overwrites(self, tmp_path, network):
        """Test that saving again replaces the previous model."""
        path = str(tmp_path / 'model.json')
        storage.save_to_path(network, path)
        network.train([0.5, 0.5], [1.0])
        storage.save_to_path(network, path)
        assert storage.load_from_path(path).trained_count == 1

    def test_load_missing_file(self, tmp_path):
        """Test that a missing file raises ModelNotFound."""
        path = str(tmp_path / 'missing.json')
        assert not storage.model_exists(path)
        with pytest.raises(ModelNotFound):
            storage.load_from_path(path)

    def test_load_garbage(self, tmp_path):
        """Test that an undecodable file raises DecodeError."""
        path = tmp_path / 'model.json'
        path.write_bytes(b'garbage')
        with pytest.raises(DecodeError):
            storage.load_from_path(str(path))

    def test_load_directory(self, tmp_path):
        """Test that reading a directory raises a storage I/O error."""
        with pytest.raises((ModelIOError, ModelNotFound)):
            storage.load_from_path(str(tmp_path))

    def test_save_into_file_path(self, tmp_path, network):
        """Test that a parent path that is a regular file raises ModelIOError."""
        blocker = tmp_path / 'blocker'
        blocker.write_text('x')
        with pytest.raises(ModelIOError):
            storage.save_to_path(network, str(blocker / 'model.json'))

    def test_storage_errors_share_base(self, tmp_path):
        """Test that storage failures can be caught as StorageError."""
        with pytest.raises(StorageError):
            storage.load_from_path(str(tmp_path / 'missing.json'))

    def test_custom_marshaller(self, tmp_path, network):
        """Test that JSONFile delegates encoding to its marshaller."""
        calls = []

        class Recording(storage.JSONMarshaller):
            def marshal(self, net):
                calls.append('marshal')
                return super().marshal(net)

            def unmarshal(self, data):
                calls.append('unmarshal')
                return super().unmarshal(data)

        f = storage.JSONFile(Recording())
        path = str(tmp_path / 'model.json')
        f.save(network, path)
        assert f.load(path) == network
        assert calls == ['marshal', 'unmarshal']
