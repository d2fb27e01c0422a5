"""
test_activation.py
~~~~~~~~~~~~~~~~~~

Unit tests for the activation strategies.
"""

import math

import numpy as np
import pytest

from neuralnet import matutil
from neuralnet.activation import ActivationType, Sigmoid, Tanh, get_activation
from neuralnet.errors import UnknownActivation


@pytest.mark.unit
class TestSigmoid:
    """Test the logistic sigmoid."""

    def test_value(self):
        """Test known sigmoid values."""
        s = Sigmoid()
        assert s.value(0) == 0.5
        assert s.value(2) == pytest.approx(1 / (1 + math.exp(-2)))
        assert s.value(-2) == pytest.approx(1 / (1 + math.exp(2)))

    def test_value_extremes_do_not_overflow(self):
        """Test that very large magnitudes saturate instead of raising."""
        s = Sigmoid()
        assert s.value(1000) == 1.0
        assert s.value(-1000) == 0.0

    def test_matrix_derivative(self):
        """Test that the derivative is o * (1 - o) elementwise."""
        outputs = matutil.from_vector([0.5, 0.25, 1.0])
        got = matutil.to_vector(Sigmoid().matrix_derivative(outputs))
        assert got == [0.25, 0.1875, 0.0]


@pytest.mark.unit
class TestTanh:
    """Test the hyperbolic tangent."""

    def test_value(self):
        """Test known tanh values."""
        t = Tanh()
        assert t.value(0) == 0.0
        assert t.value(1.5) == math.tanh(1.5)

    def test_matrix_derivative(self):
        """Test that the derivative is 1 - o^2 elementwise."""
        outputs = matutil.from_vector([0.0, 0.5, -1.0])
        got = matutil.to_vector(Tanh().matrix_derivative(outputs))
        assert got == [1.0, 0.75, 0.0]

    def test_matrix_derivative_keeps_shape(self):
        """Test that multi-column outputs keep their shape."""
        outputs = np.full((2, 3), 0.5)
        assert Tanh().matrix_derivative(outputs).shape == (2, 3)


@pytest.mark.unit
class TestActivationSelection:
    """Test selecting a strategy from an identifier."""

    @pytest.mark.parametrize('kind,expected', [
        (ActivationType.SIGMOID, Sigmoid),
        (ActivationType.TANH, Tanh),
        ('sigmoid', Sigmoid),
        ('TANH', Tanh),
        (0, Sigmoid),
        (1, Tanh),
    ])
    def test_get_activation(self, kind, expected):
        """Test that known identifiers map to their strategies."""
        assert isinstance(get_activation(kind), expected)

    @pytest.mark.parametrize('kind', ['relu', 'softmax', 42, None, 1.5])
    def test_unknown_activation(self, kind):
        """Test that unrecognized identifiers raise UnknownActivation."""
        with pytest.raises(UnknownActivation):
            get_activation(kind)

    def test_leaky_relu_is_reserved(self):
        """Test that the reserved leaky ReLU identifier has no strategy."""
        with pytest.raises(UnknownActivation):
            get_activation(ActivationType.LEAKY_RELU)
        with pytest.raises(UnknownActivation):
            get_activation('leaky-relu')
