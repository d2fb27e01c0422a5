"""
trainer.py
~~~~~~~~~~

Epoch loops around the network's single-example train() and predict().

The network itself only ever sees one example at a time; looping over a
dataset, timing, progress logging and reporting live here.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from neuralnet.datasets import Example, argmax
from neuralnet.network import Network

logger = logging.getLogger(__name__)

ExampleSource = Callable[[], Iterable[Example]]


@dataclass
class EvaluationResult:
    """Outcome of scoring predictions against labelled examples."""

    correct: int
    total: int

    @property
    def accuracy(self) -> float:
        """Fraction of correct predictions (0.0 when nothing was tested)."""
        return self.correct / self.total if self.total else 0.0


def train_epoch(
    network: Network,
    examples: Iterable[Example],
    epoch: int = 1,
    log_batch: int = 1000,
    yield_func: Optional[Callable[[], None]] = None
) -> int:
    """
    Train a network on every example once.

    Args:
        network: Network to train in place
        examples: (inputs, targets) pairs
        epoch: Epoch number, used in log messages
        log_batch: Log progress every log_batch examples
        yield_func: Called after each example so cooperative schedulers
            can run other tasks

    Returns:
        Number of examples trained
    """
    count = 0
    batch_start = time.time()
    logger.info(f"Epoch {epoch}: training first {log_batch} records...")
    for inputs, targets in examples:
        network.train(inputs, targets)
        count += 1
        if count % log_batch == 0:
            logger.info(
                f"Epoch {epoch}: last batch took {time.time() - batch_start:.2f}s, "
                f"training next {log_batch} records from record {count + 1}..."
            )
            batch_start = time.time()
        if yield_func is not None:
            yield_func()
    return count


def train(
    network: Network,
    examples: ExampleSource,
    epochs: int,
    log_batch: int = 1000,
    test_examples: Optional[ExampleSource] = None,
    callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    yield_func: Optional[Callable[[], None]] = None
) -> int:
    """
    Train a network for a number of epochs.

    Args:
        network: Network to train in place
        examples: Callable returning a fresh iterable of examples per epoch
        epochs: Number of passes over the examples
        log_batch: Log progress every log_batch examples
        test_examples: Optional source evaluated after every epoch
        callback: Called after each epoch with a progress dictionary
            (epoch, total_epochs, trained, elapsed_time and, when
            test_examples is given, accuracy, correct and total)
        yield_func: Passed through to train_epoch()

    Returns:
        Total number of examples trained

    Raises:
        ValueError: If epochs or log_batch is not positive
    """
    if epochs < 1:
        raise ValueError(f"epochs must be a positive integer, got {epochs}")
    if log_batch < 1:
        raise ValueError(f"log_batch must be a positive integer, got {log_batch}")

    start = time.time()
    total = 0
    logger.info(f"Training {epochs} epochs")
    for epoch in range(1, epochs + 1):
        total += train_epoch(network, examples(), epoch, log_batch, yield_func)

        if callback is not None:
            progress: Dict[str, Any] = {
                'epoch': epoch,
                'total_epochs': epochs,
                'trained': network.trained_count,
                'elapsed_time': time.time() - start,
            }
            if test_examples is not None:
                result = evaluate(network, test_examples(), log_batch)
                progress.update(
                    accuracy=result.accuracy,
                    correct=result.correct,
                    total=result.total
                )
            callback(progress)

    logger.info(f"Time to train {epochs} epochs: {time.time() - start:.2f}s")
    return total


def evaluate(
    network: Network,
    examples: Iterable[Example],
    log_batch: int = 1000
) -> EvaluationResult:
    """
    Score a network's predictions against labelled examples.

    A prediction is correct when the highest output neuron matches the
    highest target value.
    """
    start = time.time()
    correct = 0
    total = 0
    logger.info("Starting prediction test...")
    for inputs, targets in examples:
        outputs = network.predict_vector(inputs)
        if argmax(outputs) == argmax(targets):
            correct += 1
        total += 1
        if total % log_batch == 0:
            logger.info(f"Prediction test record {total}...")

    result = EvaluationResult(correct=correct, total=total)
    logger.info(f"Took {time.time() - start:.2f}s to test")
    logger.info(
        f"Scored {correct}/{total} correct predictions: {result.accuracy:.2%}"
    )
    return result
