"""
cli.py
~~~~~~

Command line runner: train a network on a CSV dataset or test it.

If the model file exists the network is loaded from it (training resumes
where it left off); otherwise a new network with seeded random weights is
created. After training the model is written back to the same file.

Usage:
    neuralnet --action train --preset iris --dataset datasets/iris.csv
    neuralnet --action test --preset mnist
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence

from neuralnet import storage, trainer
from neuralnet.activation import ActivationType
from neuralnet.datasets import DatasetError, Preset, get_preset, read_records
from neuralnet.errors import NetworkError
from neuralnet.network import Network, NetworkConfig

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Set up logging from the LOG_LEVEL environment variable."""
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_layer_counts(value: str) -> List[int]:
    """Parse a comma-separated list of hidden layer neuron counts."""
    counts = []
    for part in value.split(','):
        try:
            count = int(part.strip())
        except ValueError:
            raise argparse.ArgumentTypeError(
                f"invalid layer count value '{value}'"
            ) from None
        if count <= 0:
            raise argparse.ArgumentTypeError(
                f"layer counts must be positive, got {count}"
            )
        counts.append(count)
    return counts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Train or test a feedforward neural network on a CSV dataset"
    )
    parser.add_argument("--action", type=str, choices=["train", "test"], required=True,
                        help="Action 'train' or 'test' against the dataset.")
    parser.add_argument("--preset", type=str, choices=["mnist", "iris"], default="mnist",
                        help="Dataset layout and network shape defaults.")
    parser.add_argument("--model", type=str, default="",
                        help="Model file to load and save; created if missing. "
                             "(default models/<preset>.default.model)")
    parser.add_argument("--dataset", type=str, default="",
                        help="Source dataset CSV. (default datasets/<preset>_<action>.csv)")
    parser.add_argument("--epochs", type=int, default=0,
                        help="Training epochs; ignored when testing. (default: preset's)")
    parser.add_argument("--activation", type=str, choices=["sigmoid", "tanh"], default="sigmoid",
                        help="Activation function for new networks.")
    parser.add_argument("--learning-rate", type=float, default=0.1,
                        help="Learning rate for new networks.")
    parser.add_argument("--random-seed", type=int, default=0,
                        help="Seed for random weight generation of new networks.")
    parser.add_argument("--hidden-layer-counts", type=parse_layer_counts, default=None,
                        help="Comma-separated neuron counts for hidden layers. (default: preset's)")
    return parser


def load_or_create(args: argparse.Namespace, preset: Preset) -> Network:
    """Load the model file if it exists, otherwise build a random network."""
    if storage.model_exists(args.model):
        logger.info(f"Loading model from file {args.model}...")
        network = storage.load_from_path(args.model)
        logger.info(f"Current network trained on {network.trained_count} records")
        return network

    hidden = args.hidden_layer_counts
    if hidden is None:
        hidden = list(preset.hidden_layer_counts)
    logger.info(
        f"No existing model file found at {args.model}, creating new network "
        f"with random weights seeded with {args.random_seed}..."
    )
    return Network.new_random(NetworkConfig(
        input_count=preset.input_count,
        layer_counts=list(hidden) + [preset.output_count],
        rate=args.learning_rate,
        activation=ActivationType.parse(args.activation),
        rand_seed=args.random_seed,
    ))


def run(args: argparse.Namespace) -> Optional[trainer.EvaluationResult]:
    """
    Execute a parsed command line.

    Returns:
        The evaluation result for 'test', None for 'train'

    Raises:
        NetworkError: On model construction, training or persistence errors
        DatasetError: If the dataset cannot be parsed
        OSError: If the dataset cannot be read
    """
    preset = get_preset(args.preset)
    if not args.model:
        args.model = os.path.join('models', f'{preset.name}.default.model')
    if not args.dataset:
        args.dataset = os.path.join('datasets', f'{preset.name}_{args.action}.csv')

    network = load_or_create(args, preset)
    config = network.config
    if config.input_count != preset.input_count or config.output_count != preset.output_count:
        raise DatasetError(
            f"{preset.name} requires {preset.input_count} inputs and "
            f"{preset.output_count} outputs, model has "
            f"{config.input_count} and {config.output_count}"
        )

    def examples():
        return read_records(args.dataset, preset.parse_record)

    if args.action == 'train':
        epochs = args.epochs or preset.epochs
        trainer.train(network, examples, epochs, log_batch=preset.train_log_batch)
        storage.save_to_path(network, args.model)
        logger.info(f"Saved model to {args.model} ({network.trained_count} records trained)")
        return None

    return trainer.evaluate(network, examples(), log_batch=preset.test_log_batch)


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (NetworkError, ValueError, OSError) as e:
        logger.error(f"{args.action} failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
