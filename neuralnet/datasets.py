"""
datasets.py
~~~~~~~~~~~

CSV dataset readers that turn records into network inputs and targets.

Each preset knows its record layout, how to scale raw values into the
(0.01, 1.0] range the sigmoid handles well, and how to encode the label as
a target vector (0.01 everywhere, 0.99 at the label's output neuron).
"""

import csv
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Sequence, Tuple

Example = Tuple[List[float], List[float]]
ParseRecord = Callable[[Sequence[str]], Example]

TARGET_OFF = 0.01
TARGET_ON = 0.99


class DatasetError(ValueError):
    """A dataset record could not be parsed."""


def scale_input(value: float, maximum: float) -> float:
    """Scale a raw value in [0, maximum] into [0.01, 1.0]."""
    return (value / maximum * 0.99) + 0.01


def one_hot_targets(index: int, count: int) -> List[float]:
    """
    Encode a class index as a target vector.

    Raises:
        DatasetError: If index is outside [0, count)
    """
    if not 0 <= index < count:
        raise DatasetError(f"label index {index} out of range for {count} outputs")
    targets = [TARGET_OFF] * count
    targets[index] = TARGET_ON
    return targets


def argmax(values: Sequence[float]) -> int:
    """Index of the highest value; the first one wins ties."""
    best_index = 0
    best = None
    for i, value in enumerate(values):
        if best is None or value > best:
            best_index, best = i, value
    return best_index


def _parse_float(cell: str) -> float:
    try:
        return float(cell)
    except ValueError:
        raise DatasetError(f"parse input: invalid number '{cell}'") from None


# ---------------------------------------------------------------------------
# MNIST: label,p0,...,p783 with pixel values 0-255
# ---------------------------------------------------------------------------

MNIST_INPUT_COUNT = 784
MNIST_OUTPUT_COUNT = 10


def parse_mnist_record(record: Sequence[str]) -> Example:
    """Parse an MNIST CSV record (label first, then 784 pixels)."""
    if len(record) != MNIST_INPUT_COUNT + 1:
        raise DatasetError(
            f"mismatched inputs: {len(record) - 1} record input values, "
            f"expecting input count {MNIST_INPUT_COUNT}"
        )
    inputs = [scale_input(_parse_float(cell), 255.0) for cell in record[1:]]
    try:
        label = int(record[0])
    except ValueError:
        raise DatasetError(f"target parse: invalid label '{record[0]}'") from None
    return inputs, one_hot_targets(label, MNIST_OUTPUT_COUNT)


# ---------------------------------------------------------------------------
# Iris: sepal length,sepal width,petal length,petal width,label
# ---------------------------------------------------------------------------

IRIS_INPUT_COUNT = 4
IRIS_OUTPUT_COUNT = 3

# Maximum value of each input column in the training data
IRIS_COLUMN_MAX = (8.0, 4.5, 7.0, 2.5)

IRIS_LABELS: Dict[str, int] = {
    'Iris-setosa': 0,
    'Iris-versicolor': 1,
    'Iris-virginica': 2,
}


def parse_iris_record(record: Sequence[str]) -> Example:
    """Parse an Iris CSV record (four measurements, then the label)."""
    if len(record) != IRIS_INPUT_COUNT + 1:
        raise DatasetError(
            f"mismatched inputs: {len(record) - 1} record input values, "
            f"expecting input count {IRIS_INPUT_COUNT}"
        )
    inputs = [
        scale_input(_parse_float(cell), maximum)
        for cell, maximum in zip(record[:IRIS_INPUT_COUNT], IRIS_COLUMN_MAX)
    ]
    label = record[IRIS_INPUT_COUNT].strip()
    if label not in IRIS_LABELS:
        raise DatasetError(f"unknown target label '{label}'")
    return inputs, one_hot_targets(IRIS_LABELS[label], IRIS_OUTPUT_COUNT)


@dataclass(frozen=True)
class Preset:
    """Network shape and parsing defaults for a known dataset."""

    name: str
    input_count: int
    output_count: int
    hidden_layer_counts: Tuple[int, ...]
    epochs: int
    train_log_batch: int
    test_log_batch: int
    parse_record: ParseRecord


PRESETS: Dict[str, Preset] = {
    'mnist': Preset(
        name='mnist',
        input_count=MNIST_INPUT_COUNT,
        output_count=MNIST_OUTPUT_COUNT,
        hidden_layer_counts=(100,),
        epochs=2,
        train_log_batch=10000,
        test_log_batch=1000,
        parse_record=parse_mnist_record,
    ),
    'iris': Preset(
        name='iris',
        input_count=IRIS_INPUT_COUNT,
        output_count=IRIS_OUTPUT_COUNT,
        hidden_layer_counts=(2,),
        epochs=200,
        train_log_batch=100,
        test_log_batch=10,
        parse_record=parse_iris_record,
    ),
}


def get_preset(name: str) -> Preset:
    """
    Look up a dataset preset by name.

    Raises:
        DatasetError: If no preset has that name
    """
    try:
        return PRESETS[name.lower()]
    except KeyError:
        raise DatasetError(
            f"unknown preset '{name}', expected one of {sorted(PRESETS)}"
        ) from None


def read_records(path: str, parse_record: ParseRecord) -> Iterator[Example]:
    """
    Yield (inputs, targets) for every non-empty row of a CSV file.

    Args:
        path: CSV file path
        parse_record: Function converting one row into an example

    Raises:
        DatasetError: If a row cannot be parsed; the message names the line
    """
    with open(path, newline='') as f:
        for line, record in enumerate(csv.reader(f), start=1):
            if not record:
                continue
            try:
                yield parse_record(record)
            except DatasetError as e:
                raise DatasetError(f"{path}:{line}: {e}") from e
