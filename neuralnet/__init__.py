"""
neuralnet package
~~~~~~~~~~~~~~~~~

Multilayer feedforward neural network trained by online backpropagation.
Contains the matrix helpers, activation strategies, the network engine,
model serialization and persistence, dataset readers, the training runner,
the command line interface and the API server.
"""

__version__ = "1.0.0"
