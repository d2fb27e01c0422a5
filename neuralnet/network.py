"""
network.py
~~~~~~~~~~

Multilayer feedforward neural network trained by online backpropagation.

The network holds one weight matrix per layer (hidden layers followed by
the output layer). Layer i has shape (layer_counts[i], layer_counts[i-1]),
where the input count stands in for layer -1. Training replaces the whole
list of weight matrices at once, after every delta has been computed, so a
failed call never leaves a partially updated network behind.
"""

import copy
import numbers
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from neuralnet import matutil
from neuralnet.activation import Activation, ActivationType, get_activation
from neuralnet.errors import (
    ConfigMismatch,
    InputSizeMismatch,
    InvalidShape,
    TargetSizeMismatch,
)
from neuralnet.matutil import Matrix
from neuralnet.rand import Rand, random_matrix


def _is_integer(value: Any) -> bool:
    """True for ints and numpy integers, but not bools."""
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _as_int(value: Any) -> Any:
    return int(value) if _is_integer(value) else value


@dataclass
class NetworkConfig:
    """
    Network hyperparameters and training bookkeeping.

    Attributes:
        input_count: Number of input neurons
        layer_counts: Neuron counts of the hidden layers then the output layer
        rate: Learning rate applied to every weight delta
        activation: Activation function used by every layer
        rand_seed: Seed of the weight initialization stream
        rand_state: Number of values already drawn from that stream
        trained: Number of examples the network has been trained on
    """

    input_count: int
    layer_counts: List[int]
    rate: float = 0.1
    activation: ActivationType = ActivationType.SIGMOID
    rand_seed: int = 0
    rand_state: int = 0
    trained: int = 0

    def __post_init__(self) -> None:
        self.input_count = _as_int(self.input_count)
        self.layer_counts = [_as_int(count) for count in self.layer_counts]
        self.rand_seed = _as_int(self.rand_seed)
        self.rand_state = _as_int(self.rand_state)
        self.trained = _as_int(self.trained)
        if isinstance(self.rate, numbers.Real) and not isinstance(self.rate, bool):
            self.rate = float(self.rate)
        self.activation = ActivationType.parse(self.activation)

    @property
    def output_count(self) -> int:
        """Size of the output layer."""
        return self.layer_counts[-1]

    def weight_shapes(self) -> List[Tuple[int, int]]:
        """Expected (rows, cols) of each layer's weight matrix."""
        shapes = []
        previous = self.input_count
        for count in self.layer_counts:
            shapes.append((count, previous))
            previous = count
        return shapes

    def validate(self) -> None:
        """
        Check that the configuration describes a buildable network.

        Raises:
            ConfigMismatch: On non-positive sizes or rate, or negative counters
        """
        if not _is_integer(self.input_count) or self.input_count <= 0:
            raise ConfigMismatch(
                f"input count must be a positive integer, got {self.input_count}"
            )
        if not self.layer_counts:
            raise ConfigMismatch("at least one layer (the output layer) is required")
        for i, count in enumerate(self.layer_counts):
            if not _is_integer(count) or count <= 0:
                raise ConfigMismatch(
                    f"layer {i} neuron count must be a positive integer, got {count}"
                )
        rate_ok = isinstance(self.rate, numbers.Real) and not isinstance(self.rate, bool)
        if not rate_ok or not self.rate > 0:
            raise ConfigMismatch(f"learning rate must be positive, got {self.rate}")
        for name in ('rand_seed', 'rand_state', 'trained'):
            value = getattr(self, name)
            if not _is_integer(value) or value < 0:
                raise ConfigMismatch(
                    f"{name} must be a non-negative integer, got {value}"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation used by the JSON document format."""
        return {
            'input_count': self.input_count,
            'layer_counts': list(self.layer_counts),
            'rate': self.rate,
            'activation': self.activation.value,
            'rand_seed': self.rand_seed,
            'rand_state': self.rand_state,
            'trained': self.trained,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NetworkConfig':
        """
        Inverse of to_dict().

        Raises:
            KeyError: If a required field is missing
            UnknownActivation: If the activation value is not recognized
        """
        return cls(
            input_count=data['input_count'],
            layer_counts=list(data['layer_counts']),
            rate=data['rate'],
            activation=ActivationType.parse(data.get('activation', 0)),
            rand_seed=data.get('rand_seed', 0),
            rand_state=data.get('rand_state', 0),
            trained=data.get('trained', 0),
        )


class Network:
    """
    A feedforward network with one weight matrix per layer.

    Not safe for concurrent use: callers must serialize train() and
    predict() calls on the same instance.
    """

    def __init__(self, config: NetworkConfig, weights: Sequence[Matrix]):
        """
        Build a network from a configuration and explicit weights.

        Args:
            config: Network configuration, copied on construction
            weights: One matrix per configured layer, in layer order

        Raises:
            ConfigMismatch: If the weights disagree with the configuration
            UnknownActivation: If the configured activation has no strategy
        """
        config = copy.deepcopy(config)
        config.validate()
        self._activation: Activation = get_activation(config.activation)

        if weights is None or len(weights) != len(config.layer_counts):
            count = 0 if weights is None else len(weights)
            raise ConfigMismatch(
                f"expected {len(config.layer_counts)} weight matrices, got {count}"
            )

        checked = []
        for i, (weight, shape) in enumerate(zip(weights, config.weight_shapes())):
            try:
                matrix = matutil.copy(weight)
            except InvalidShape as e:
                raise ConfigMismatch(f"layer {i} weights: {e}") from e
            if matrix.size != shape[0] * shape[1]:
                raise ConfigMismatch(
                    f"layer {i} expects {shape[0] * shape[1]} weights "
                    f"({shape[0]}x{shape[1]}), got {matrix.size}"
                )
            if matrix.shape != shape:
                raise ConfigMismatch(
                    f"layer {i} weights must be {shape[0]}x{shape[1]}, "
                    f"got {matrix.shape[0]}x{matrix.shape[1]}"
                )
            checked.append(matrix)

        self._config = config
        self._weights: Tuple[Matrix, ...] = tuple(checked)

    @classmethod
    def new(cls, config: NetworkConfig, weights: Sequence[Matrix]) -> 'Network':
        """Build a network from explicit, validated weights."""
        return cls(config, weights)

    @classmethod
    def new_random(cls, config: NetworkConfig) -> 'Network':
        """
        Build a network with freshly drawn random weights.

        Weights are drawn layer by layer from the stream at
        (config.rand_seed, config.rand_state). The new network's rand_state
        is advanced past every value drawn.

        Raises:
            ConfigMismatch: If the configuration is invalid
        """
        config = copy.deepcopy(config)
        config.validate()
        rng = Rand(config.rand_seed, config.rand_state).stream()

        weights = []
        drawn = 0
        for rows, cols in config.weight_shapes():
            weights.append(random_matrix(rows, cols, rng))
            drawn += rows * cols

        config.rand_state += drawn
        return cls(config, weights)

    @property
    def config(self) -> NetworkConfig:
        """A snapshot of the network configuration."""
        return copy.deepcopy(self._config)

    @property
    def trained_count(self) -> int:
        """Number of examples this network has been trained on."""
        return self._config.trained

    @property
    def weights(self) -> Tuple[Matrix, ...]:
        """The read-only weight matrices, hidden layers first."""
        return self._weights

    @property
    def output_count(self) -> int:
        return self._config.output_count

    def rand(self) -> Rand:
        """Position of the network's random stream."""
        return Rand(self._config.rand_seed, self._config.rand_state)

    def _input_matrix(self, input_data: Optional[Sequence[float]]) -> Matrix:
        size = 0 if input_data is None else len(input_data)
        if size != self._config.input_count:
            raise InputSizeMismatch(
                f"input data length {size} does not match "
                f"input count {self._config.input_count}"
            )
        return matutil.from_vector(input_data)

    def _target_matrix(self, target_data: Optional[Sequence[float]]) -> Matrix:
        size = 0 if target_data is None else len(target_data)
        if size != self._config.output_count:
            raise TargetSizeMismatch(
                f"target data length {size} does not match "
                f"output count {self._config.output_count}"
            )
        return matutil.from_vector(target_data)

    def _forward(self, inputs: Matrix) -> List[Matrix]:
        """Run the forward pass, returning every layer's output."""
        outputs = []
        current = inputs
        for weight in self._weights:
            current = matutil.apply(
                self._activation.value, matutil.dot(weight, current)
            )
            outputs.append(current)
        return outputs

    def predict(self, input_data: Sequence[float]) -> Matrix:
        """
        Compute the network output for one example.

        Args:
            input_data: One value per input neuron

        Returns:
            Single-column matrix holding the output layer activations

        Raises:
            InputSizeMismatch: If len(input_data) != input count
        """
        inputs = self._input_matrix(input_data)
        return self._forward(inputs)[-1]

    def predict_vector(self, input_data: Sequence[float]) -> List[float]:
        """Like predict(), returning the outputs as a list."""
        return matutil.to_vector(self.predict(input_data))

    def train(self, input_data: Sequence[float], target_data: Sequence[float]) -> None:
        """
        Train the network on a single example.

        Runs the forward pass, propagates the output error back through the
        layers and adjusts every weight matrix by gradient descent. Either
        all layers are updated and the trained counter is incremented, or,
        on error, nothing changes.

        Args:
            input_data: One value per input neuron
            target_data: Expected value per output neuron

        Raises:
            InputSizeMismatch: If len(input_data) != input count
            TargetSizeMismatch: If len(target_data) != output count
        """
        inputs = self._input_matrix(input_data)
        targets = self._target_matrix(target_data)

        outputs = self._forward(inputs)
        layers = len(self._weights)

        # Errors for every layer are derived from the pre-update weights.
        errors: List[Optional[Matrix]] = [None] * layers
        errors[-1] = matutil.sub(targets, outputs[-1])
        for i in range(layers - 2, -1, -1):
            errors[i] = matutil.dot(
                matutil.transpose(self._weights[i + 1]), errors[i + 1]
            )

        adjusted: List[Optional[Matrix]] = [None] * layers
        for i in range(layers - 1, -1, -1):
            layer_inputs = outputs[i - 1] if i > 0 else inputs
            gradient = matutil.mul_elem(
                errors[i], self._activation.matrix_derivative(outputs[i])
            )
            delta = matutil.scale(
                self._config.rate,
                matutil.dot(gradient, matutil.transpose(layer_inputs))
            )
            adjusted[i] = matutil.add(self._weights[i], delta)

        self._weights = tuple(adjusted)
        self._config.trained += 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Network):
            return NotImplemented
        return (
            self._config == other._config
            and len(self._weights) == len(other._weights)
            and all(
                np.array_equal(a, b)
                for a, b in zip(self._weights, other._weights)
            )
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"Network(input_count={self._config.input_count}, "
            f"layer_counts={self._config.layer_counts}, "
            f"activation={self._config.activation.name.lower()}, "
            f"trained={self._config.trained})"
        )
