"""
activation.py
~~~~~~~~~~~~~

Activation strategies for the network layers.

A strategy supplies the scalar transform applied to every neuron and the
matrix derivative used during backpropagation. The derivative is expressed
in terms of the already activated outputs, not the raw weighted inputs.
"""

import math
from enum import Enum
from typing import Dict, Protocol, Union

from neuralnet import matutil
from neuralnet.errors import UnknownActivation
from neuralnet.matutil import Matrix


class ActivationType(Enum):
    """Identifiers for the supported activation functions."""

    SIGMOID = 0
    TANH = 1
    # Reserved; no strategy exists for it yet.
    LEAKY_RELU = 2

    @classmethod
    def parse(cls, value: Union['ActivationType', str, int]) -> 'ActivationType':
        """
        Resolve an activation identifier.

        Args:
            value: An ActivationType, its case-insensitive name or its value

        Returns:
            The matching ActivationType

        Raises:
            UnknownActivation: If nothing matches
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper().replace('-', '_')]
            except KeyError:
                raise UnknownActivation(
                    f"unknown activation '{value}'"
                ) from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise UnknownActivation(
                    f"unknown activation {value}"
                ) from None
        raise UnknownActivation(f"unknown activation {value!r}")


class Activation(Protocol):
    """Capabilities every activation strategy provides."""

    def value(self, v: float) -> float:
        ...

    def matrix_derivative(self, outputs: Matrix) -> Matrix:
        ...


class Sigmoid:
    """Logistic sigmoid activation."""

    def value(self, v: float) -> float:
        """Compute the sigmoid of a single value."""
        # Split on sign so math.exp never overflows.
        if v >= 0:
            return 1.0 / (1.0 + math.exp(-v))
        e = math.exp(v)
        return e / (1.0 + e)

    def matrix_derivative(self, outputs: Matrix) -> Matrix:
        """
        Derivative of the sigmoid from its outputs.

        Assumes the given values are sigmoid(v), so the derivative is
        sigmoid(v) * (1 - sigmoid(v)).
        """
        outputs = matutil.as_matrix(outputs)
        ones = matutil.new_matrix(
            outputs.shape[0], outputs.shape[1],
            matutil.fill_array(outputs.size, 1.0)
        )
        return matutil.mul_elem(outputs, matutil.sub(ones, outputs))

    def __repr__(self) -> str:
        return 'Sigmoid()'


class Tanh:
    """Hyperbolic tangent activation."""

    def value(self, v: float) -> float:
        """Compute the hyperbolic tangent of a single value."""
        return math.tanh(v)

    def matrix_derivative(self, outputs: Matrix) -> Matrix:
        """
        Derivative of tanh from its outputs.

        Assumes the given values are tanh(v), so the derivative is
        1 - tanh(v)^2.
        """
        outputs = matutil.as_matrix(outputs)
        squared = matutil.apply(lambda v: v * v, outputs)
        ones = matutil.new_matrix(
            outputs.shape[0], outputs.shape[1],
            matutil.fill_array(outputs.size, 1.0)
        )
        return matutil.sub(ones, squared)

    def __repr__(self) -> str:
        return 'Tanh()'


_STRATEGIES: Dict[ActivationType, type] = {
    ActivationType.SIGMOID: Sigmoid,
    ActivationType.TANH: Tanh,
}


def get_activation(kind: Union[ActivationType, str, int]) -> Activation:
    """
    Build the strategy for an activation identifier.

    Args:
        kind: ActivationType, name or enum value

    Returns:
        A strategy instance providing value() and matrix_derivative()

    Raises:
        UnknownActivation: If the identifier is unknown or has no strategy
    """
    activation_type = ActivationType.parse(kind)
    try:
        return _STRATEGIES[activation_type]()
    except KeyError:
        raise UnknownActivation(
            f"activation {activation_type.name.lower()} is not implemented"
        ) from None
