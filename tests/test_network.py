"""
test_network.py
~~~~~~~~~~~~~~~

Unit tests for network construction, prediction and training.
"""

import numpy as np
import pytest

from neuralnet import matutil
from neuralnet.activation import ActivationType
from neuralnet.errors import (
    ConfigMismatch,
    InputSizeMismatch,
    TargetSizeMismatch,
    UnknownActivation,
)
from neuralnet.network import Network, NetworkConfig


# Hand-picked weights for a 3 -> 2 -> 1 network
HIDDEN_WEIGHTS = [[0.1, 0.2, 0.3], [-0.4, 0.5, -0.6]]
OUTPUT_WEIGHTS = [[0.7, -0.8]]


def config_321(**overrides) -> NetworkConfig:
    values = dict(input_count=3, layer_counts=[2, 1], rate=0.1, rand_seed=0)
    values.update(overrides)
    return NetworkConfig(**values)


@pytest.fixture
def fixed_network():
    """A 3-2-1 sigmoid network with known weights and learning rate 1."""
    return Network.new(
        config_321(rate=1.0),
        [np.array(HIDDEN_WEIGHTS), np.array(OUTPUT_WEIGHTS)]
    )


@pytest.fixture
def random_network():
    """A 3-2-1 network generated from seed 0."""
    return Network.new_random(config_321())


@pytest.mark.unit
class TestConstruction:
    """Test building networks from configurations and weights."""

    def test_new_random_shapes(self):
        """Test that random weights match every layer's shape."""
        net = Network.new_random(NetworkConfig(input_count=4, layer_counts=[3, 2, 1]))
        assert [w.shape for w in net.weights] == [(3, 4), (2, 3), (1, 2)]

    def test_new_random_advances_rand_state(self):
        """Test that the config records how many values were drawn."""
        net = Network.new_random(config_321(rand_state=5))
        assert net.config.rand_state == 5 + 3 * 2 + 2 * 1
        assert net.rand().state == net.config.rand_state

    def test_new_random_is_deterministic(self):
        """Test that the same seed builds identical weights."""
        assert Network.new_random(config_321()) == Network.new_random(config_321())

    def test_new_random_differs_by_seed(self):
        """Test that different seeds build different weights."""
        a = Network.new_random(config_321(rand_seed=1))
        b = Network.new_random(config_321(rand_seed=2))
        assert not np.array_equal(a.weights[0], b.weights[0])

    def test_new_wrong_layer_count(self):
        """Test that a missing weight matrix raises ConfigMismatch."""
        with pytest.raises(ConfigMismatch):
            Network.new(config_321(), [np.array(HIDDEN_WEIGHTS)])

    def test_new_wrong_element_count(self):
        """Test that a weight matrix with the wrong size raises ConfigMismatch."""
        with pytest.raises(ConfigMismatch):
            Network.new(config_321(), [np.ones((2, 2)), np.array(OUTPUT_WEIGHTS)])

    def test_new_wrong_orientation(self):
        """Test that a transposed weight matrix raises ConfigMismatch."""
        with pytest.raises(ConfigMismatch):
            Network.new(config_321(), [np.ones((3, 2)), np.array(OUTPUT_WEIGHTS)])

    @pytest.mark.parametrize('overrides', [
        {'input_count': 0},
        {'layer_counts': []},
        {'layer_counts': [2, 0]},
        {'rate': 0},
        {'rate': -0.5},
        {'rand_seed': -1},
    ])
    def test_invalid_config(self, overrides):
        """Test that invalid configurations raise ConfigMismatch."""
        with pytest.raises(ConfigMismatch):
            Network.new_random(config_321(**overrides))

    @pytest.mark.parametrize('overrides', [
        {'input_count': True},
        {'layer_counts': [True, 1]},
        {'layer_counts': [2.0, 1]},
        {'rate': True},
        {'rand_seed': False},
    ])
    def test_bools_and_floats_are_not_counts(self, overrides):
        """Test that bools and floats are rejected where integers are required."""
        with pytest.raises(ConfigMismatch):
            Network.new_random(config_321(**overrides))

    def test_numpy_integers_accepted(self):
        """Test that numpy integer sizes build a network with plain int config."""
        config = NetworkConfig(
            input_count=np.int64(3),
            layer_counts=np.array([2, 1]),
            rate=np.float32(0.5),
            rand_seed=np.uint32(0)
        )
        net = Network.new_random(config)
        assert [w.shape for w in net.weights] == [(2, 3), (1, 2)]
        assert type(net.config.input_count) is int
        assert all(type(c) is int for c in net.config.layer_counts)
        assert net.config.rate == 0.5
        assert net.config == Network.new_random(config_321(rate=0.5)).config

    def test_reserved_activation(self):
        """Test that the reserved leaky ReLU activation cannot be built."""
        with pytest.raises(UnknownActivation):
            Network.new_random(config_321(activation=ActivationType.LEAKY_RELU))

    def test_config_is_snapshot(self, random_network):
        """Test that mutating the returned config does not change the network."""
        config = random_network.config
        config.layer_counts.append(5)
        config.trained = 99
        assert random_network.config.layer_counts == [2, 1]
        assert random_network.trained_count == 0

    def test_weights_are_copied(self):
        """Test that the caller's arrays are not shared with the network."""
        hidden = np.array(HIDDEN_WEIGHTS)
        net = Network.new(config_321(), [hidden, np.array(OUTPUT_WEIGHTS)])
        hidden[0, 0] = 42.0
        assert net.weights[0][0, 0] == 0.1


@pytest.mark.unit
class TestPredict:
    """Test forward propagation."""

    def test_predict_known_weights(self, fixed_network):
        """Test the forward pass against a value computed by hand."""
        got = matutil.to_vector(fixed_network.predict([1, 2, 3]))
        assert got == [pytest.approx(0.5929921163023758, rel=1e-12)]

    def test_predict_tanh(self):
        """Test the forward pass with tanh activation."""
        net = Network.new(
            config_321(activation=ActivationType.TANH),
            [np.array(HIDDEN_WEIGHTS), np.array(OUTPUT_WEIGHTS)]
        )
        assert net.predict_vector([1, 2, 3]) == [pytest.approx(0.85825186460753955, rel=1e-9)]

    def test_predict_returns_column(self):
        """Test that the prediction is a column matrix of output size."""
        net = Network.new_random(NetworkConfig(input_count=4, layer_counts=[3, 2]))
        assert net.predict([1, 2, 3, 4]).shape == (2, 1)

    def test_predict_seeded_is_repeatable(self):
        """Test that seeded networks predict bit-identical values across builds."""
        first = Network.new_random(config_321()).predict_vector([1, 2, 3])
        second = Network.new_random(config_321()).predict_vector([1, 2, 3])
        assert first == second
        assert first == [pytest.approx(0.571597564384344, rel=1e-12)]

    @pytest.mark.parametrize('inputs', [None, [], [1], [1, 2], [1, 2, 3, 4]])
    def test_predict_input_size_mismatch(self, random_network, inputs):
        """Test that wrong input lengths raise InputSizeMismatch."""
        with pytest.raises(InputSizeMismatch):
            random_network.predict(inputs)


@pytest.mark.unit
class TestTrain:
    """Test backpropagation and weight updates."""

    def test_train_updates_weights(self, fixed_network):
        """Test one training step against weights computed by hand."""
        fixed_network.train([1, 2, 3], [1])
        hidden, output = fixed_network.weights
        np.testing.assert_allclose(
            hidden,
            [[0.14521020301312521, 0.29042040602625041, 0.43563060903937556],
             [-0.45792355184738326, 0.38415289630523353, -0.77377065554214963]],
            rtol=1e-12
        )
        np.testing.assert_allclose(
            output, [[0.77880041374851927, -0.77726164400337061]], rtol=1e-12
        )

    def test_predict_after_training(self, fixed_network):
        """Test that training on an example moves its prediction toward the target."""
        before = fixed_network.predict_vector([1, 2, 3])[0]
        fixed_network.train([1, 2, 3], [1])
        after = fixed_network.predict_vector([1, 2, 3])[0]
        assert after == pytest.approx(0.64493796334908471, rel=1e-12)
        assert after > before

    def test_train_increments_count(self, random_network):
        """Test that each successful call increments the trained counter by one."""
        random_network.train([1, 2, 3], [1])
        assert random_network.trained_count == 1
        random_network.train([1, 2, 3], [0])
        assert random_network.trained_count == 2

    def test_train_four_layer_network(self):
        """Test training a network with two hidden layers."""
        net = Network.new_random(config_321(layer_counts=[2, 2, 1]))
        before = [w.copy() for w in net.weights]
        net.train([1, 2, 3], [1])
        assert net.trained_count == 1
        assert all(not np.array_equal(a, b) for a, b in zip(before, net.weights))

    def test_train_tanh(self):
        """Test that tanh networks train and stay finite."""
        net = Network.new_random(config_321(activation=ActivationType.TANH))
        for _ in range(10):
            net.train([0.1, 0.5, 0.9], [0.5])
        assert net.trained_count == 10
        assert all(np.all(np.isfinite(w)) for w in net.weights)

    def test_repeated_training_reduces_error(self):
        """Test that online training converges on a single example."""
        net = Network.new_random(config_321(rate=0.5))
        initial = abs(0.9 - net.predict_vector([0.2, 0.4, 0.6])[0])
        for _ in range(200):
            net.train([0.2, 0.4, 0.6], [0.9])
        final = abs(0.9 - net.predict_vector([0.2, 0.4, 0.6])[0])
        assert final < initial

    @pytest.mark.parametrize('inputs,targets,error', [
        (None, [1], InputSizeMismatch),
        ([], [1], InputSizeMismatch),
        ([1], [1], InputSizeMismatch),
        ([1, 2, 3], None, TargetSizeMismatch),
        ([1, 2, 3], [], TargetSizeMismatch),
        ([1, 2, 3], [1, 2, 3], TargetSizeMismatch),
    ])
    def test_failed_training_changes_nothing(self, random_network, inputs, targets, error):
        """Test that validation failures leave weights and counter untouched."""
        before = [w.copy() for w in random_network.weights]
        with pytest.raises(error):
            random_network.train(inputs, targets)
        assert random_network.trained_count == 0
        assert all(np.array_equal(a, b) for a, b in zip(before, random_network.weights))

    def test_weights_replaced_not_mutated(self, fixed_network):
        """Test that training swaps in new matrices instead of editing old ones."""
        old = fixed_network.weights
        snapshot = [w.copy() for w in old]
        fixed_network.train([1, 2, 3], [1])
        assert fixed_network.weights is not old
        assert all(np.array_equal(a, b) for a, b in zip(snapshot, old))
