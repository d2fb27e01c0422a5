"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server with WebSocket support for neural network training.

This module provides endpoints for:
- Creating networks with seeded random weights
- Running predictions for single examples
- Training networks on submitted examples with real-time progress updates
- Persisting networks to/from the SQLite model registry

The server uses:
- Flask for REST API endpoints
- Flask-SocketIO for WebSocket communication
- Gevent for cooperative background training tasks
- SQLite for network persistence
"""

import os
import sys
import uuid
import logging
from typing import Any, Dict, List, Optional

import gevent
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from neuralnet import trainer
from neuralnet.activation import ActivationType
from neuralnet.datasets import Example, argmax
from neuralnet.errors import NetworkError
from neuralnet.model_persistence import ModelDatabase, architecture_of
from neuralnet.network import Network, NetworkConfig

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # In production, silence noisy third-party logs but keep our logs visible
    if is_production:
        for logger_name in ['socketio', 'engineio', 'engineio.server',
                            'socketio.server', 'werkzeug']:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
        logging.getLogger('neuralnet').setLevel(logging.INFO)
    else:
        logging.getLogger('socketio').setLevel(logging.INFO)
        logging.getLogger('engineio').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

is_production = os.getenv('FLASK_ENV') == 'production'

# SocketIO pushes training progress to connected clients
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode='gevent',
    logger=not is_production,
    engineio_logger=not is_production,
    ping_timeout=60,
    ping_interval=25
)

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}

# Training jobs being tracked: {job_id: job_info}
training_jobs: Dict[str, Dict[str, Any]] = {}

# Model registry, created on first use
_db: Optional[ModelDatabase] = None


def _get_db() -> ModelDatabase:
    """
    Get or create the global model registry.

    The database lives in MODEL_DIR (default 'models').
    """
    global _db
    if _db is None:
        model_dir = os.getenv('MODEL_DIR', 'models')
        _db = ModelDatabase(db_path=os.path.join(model_dir, 'networks.db'))
    return _db


def _find_network(network_id: str) -> Optional[Dict[str, Any]]:
    """
    Return the in-memory entry for a network, loading it if only saved.

    Raises:
        NetworkError: If the saved model cannot be decoded
    """
    if network_id in active_networks:
        return active_networks[network_id]

    net = _get_db().load_network_from_db(network_id)
    if net is None:
        return None

    metadata = _get_db().get_network_metadata_from_db(network_id) or {}
    active_networks[network_id] = {
        'network': net,
        'accuracy': metadata.get('accuracy')
    }
    logger.info(f"Loaded network {network_id} from the registry")
    return active_networks[network_id]


def _network_summary(network_id: str, info: Dict[str, Any]) -> Dict[str, Any]:
    net: Network = info['network']
    config = net.config
    return {
        'network_id': network_id,
        'architecture': architecture_of(net),
        'activation': config.activation.name.lower(),
        'learning_rate': config.rate,
        'random_seed': config.rand_seed,
        'trained_count': net.trained_count,
        'accuracy': info.get('accuracy')
    }


def _active_job_for(network_id: str) -> Optional[str]:
    for job_id, job in training_jobs.items():
        if job['network_id'] == network_id and job['status'] in ('pending', 'training'):
            return job_id
    return None


def _parse_examples(items: Any, net: Network) -> List[Example]:
    """
    Validate submitted examples against the network's layer sizes.

    Raises:
        ValueError: Describing the first malformed example
    """
    if not isinstance(items, list) or not items:
        raise ValueError('examples must be a non-empty list')

    config = net.config
    examples = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f'example {i} must be an object with input and target')
        inputs, targets = item.get('input'), item.get('target')
        if not isinstance(inputs, list) or len(inputs) != config.input_count:
            raise ValueError(
                f'example {i}: input must be a list of {config.input_count} numbers'
            )
        if not isinstance(targets, list) or len(targets) != config.output_count:
            raise ValueError(
                f'example {i}: target must be a list of {config.output_count} numbers'
            )
        try:
            examples.append(([float(v) for v in inputs], [float(v) for v in targets]))
        except (TypeError, ValueError):
            raise ValueError(f'example {i}: values must be numbers') from None
    return examples


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """
    Return server status and statistics.

    Counts only training jobs that are pending or in progress.
    """
    active_statuses = ('pending', 'training')
    active_training = sum(
        1 for job in training_jobs.values()
        if job.get('status') in active_statuses
    )

    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks),
        'training_jobs': active_training
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new neural network with seeded random weights.

    Request body:
        {
            'input_count': 4,
            'layer_counts': [2, 3],      # hidden layers then output layer
            'activation': 'sigmoid',     # optional, 'sigmoid' or 'tanh'
            'learning_rate': 0.1,        # optional
            'random_seed': 0             # optional
        }

    Returns:
        JSON with network_id and the network summary
    """
    data = request.get_json(silent=True) or {}
    input_count = data.get('input_count')
    layer_counts = data.get('layer_counts')

    if not isinstance(input_count, int) or not isinstance(layer_counts, list):
        logger.warning(f"Invalid architecture requested: {input_count}, {layer_counts}")
        return jsonify({
            'error': 'input_count must be an integer and layer_counts a list'
        }), 400

    try:
        config = NetworkConfig(
            input_count=input_count,
            layer_counts=layer_counts,
            rate=data.get('learning_rate', 0.1),
            activation=ActivationType.parse(data.get('activation', 'sigmoid')),
            rand_seed=data.get('random_seed', 0)
        )
        net = Network.new_random(config)
    except NetworkError as e:
        logger.warning(f"Rejected network configuration: {e}")
        return jsonify({'error': str(e)}), 400

    network_id = str(uuid.uuid4())
    active_networks[network_id] = {'network': net, 'accuracy': None}
    logger.info(f"Created network {network_id} with architecture {architecture_of(net)}")

    summary = _network_summary(network_id, active_networks[network_id])
    summary['status'] = 'created'
    return jsonify(summary), 201


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all available networks (both in-memory and saved)."""
    in_memory = []
    for nid, info in active_networks.items():
        summary = _network_summary(nid, info)
        summary['status'] = 'in_memory'
        in_memory.append(summary)

    saved_only = []
    for net in _get_db().list_networks_from_db():
        if net['network_id'] not in active_networks:
            net['status'] = 'saved'
            saved_only.append(net)

    logger.debug(f"Listing networks: {len(in_memory)} in memory, {len(saved_only)} saved")
    return jsonify({'networks': in_memory + saved_only}), 200


@app.route('/api/networks/<network_id>', methods=['GET'])
def get_network(network_id: str):
    """Return the configuration and training state of one network."""
    try:
        info = _find_network(network_id)
    except NetworkError as e:
        logger.exception(f"Failed to load network {network_id}: {e}")
        return jsonify({'error': f'Failed to load network: {e}'}), 500
    if info is None:
        return jsonify({'error': 'Network not found'}), 404
    return jsonify(_network_summary(network_id, info)), 200


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from both memory and the registry."""
    if _active_job_for(network_id) is not None:
        return jsonify({'error': 'Network is training'}), 409

    deleted_from_memory = active_networks.pop(network_id, None) is not None
    deleted_from_disk = _get_db().delete_network_from_db(network_id)

    if not deleted_from_memory and not deleted_from_disk:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    logger.info(f"Deleted network {network_id}: memory={deleted_from_memory}, disk={deleted_from_disk}")
    return jsonify({
        'network_id': network_id,
        'deleted_from_memory': deleted_from_memory,
        'deleted_from_disk': deleted_from_disk
    }), 200


@app.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Run the network on one input vector.

    Request body:
        {'input': [0.1, 0.2, ...]}

    Returns:
        JSON with the output layer values and the index of the highest one
    """
    try:
        info = _find_network(network_id)
    except NetworkError as e:
        logger.exception(f"Failed to load network {network_id}: {e}")
        return jsonify({'error': f'Failed to load network: {e}'}), 500
    if info is None:
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    inputs = data.get('input')
    if not isinstance(inputs, list):
        return jsonify({'error': 'input must be a list of numbers'}), 400

    try:
        output = info['network'].predict_vector(inputs)
    except (NetworkError, TypeError, ValueError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'network_id': network_id,
        'output': output,
        'prediction': argmax(output)
    }), 200


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Start training a network in the background.

    Request body:
        {
            'examples': [{'input': [...], 'target': [...]}, ...],
            'epochs': 1,                 # optional
            'test_examples': [...]       # optional, scored after each epoch
        }

    Returns:
        JSON with job_id, network_id, and status
    """
    try:
        info = _find_network(network_id)
    except NetworkError as e:
        logger.exception(f"Failed to load network {network_id}: {e}")
        return jsonify({'error': f'Failed to load network: {e}'}), 500
    if info is None:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    if _active_job_for(network_id) is not None:
        return jsonify({'error': 'Network is already training'}), 409

    data = request.get_json(silent=True) or {}
    epochs = data.get('epochs', 1)
    if not isinstance(epochs, int) or epochs < 1:
        return jsonify({'error': 'epochs must be a positive integer'}), 400

    net = info['network']
    try:
        examples = _parse_examples(data.get('examples'), net)
        test_examples = None
        if data.get('test_examples') is not None:
            test_examples = _parse_examples(data.get('test_examples'), net)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    job_id = str(uuid.uuid4())
    training_jobs[job_id] = {
        'network_id': network_id,
        'status': 'pending',
        'progress': 0,
        'epochs': epochs
    }

    logger.info(
        f"Created training job {job_id} for network {network_id}: "
        f"epochs={epochs}, examples={len(examples)}"
    )

    # Run training in background so we can return immediately
    socketio.start_background_task(
        train_network_task,
        network_id, job_id, examples, epochs, test_examples
    )

    return jsonify({
        'job_id': job_id,
        'network_id': network_id,
        'status': 'training_started'
    }), 202


def train_network_task(
    network_id: str,
    job_id: str,
    examples: List[Example],
    epochs: int,
    test_examples: Optional[List[Example]] = None
) -> None:
    """
    Background task that trains a neural network.

    Sends progress updates via WebSocket after every epoch.
    """
    info = active_networks[network_id]
    net: Network = info['network']

    def on_epoch_complete(data: Dict[str, Any]) -> None:
        """Called after each training epoch to send progress updates."""
        progress = (data['epoch'] / data['total_epochs']) * 100

        training_jobs[job_id]['status'] = 'training'
        training_jobs[job_id]['progress'] = progress
        training_jobs[job_id]['trained_count'] = data['trained']

        socketio.emit('training_update', {
            'job_id': job_id,
            'network_id': network_id,
            'epoch': data['epoch'],
            'total_epochs': data['total_epochs'],
            'trained_count': data['trained'],
            'accuracy': data.get('accuracy'),
            'elapsed_time': data['elapsed_time'],
            'progress': progress
        })

        # Let gevent send the message immediately
        gevent.sleep(0)

    def yield_to_other_tasks() -> None:
        gevent.sleep(0)

    try:
        logger.info(f"Starting training for job {job_id}")
        training_jobs[job_id]['status'] = 'training'

        trainer.train(
            net,
            lambda: examples,
            epochs,
            log_batch=max(len(examples), 1),
            test_examples=(lambda: test_examples) if test_examples else None,
            callback=on_epoch_complete,
            yield_func=yield_to_other_tasks
        )

        accuracy = None
        if test_examples:
            accuracy = trainer.evaluate(net, test_examples).accuracy
            info['accuracy'] = accuracy

        training_jobs[job_id].update(
            status='completed',
            progress=100,
            accuracy=accuracy,
            trained_count=net.trained_count
        )
        logger.info(f"Training completed for job {job_id}: {net.trained_count} examples trained")

        socketio.emit('training_complete', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'completed',
            'accuracy': accuracy,
            'trained_count': net.trained_count,
            'progress': 100
        })
        gevent.sleep(0)

    except Exception as e:
        logger.exception(f"Training failed for job {job_id}: {e}")

        training_jobs[job_id]['status'] = 'failed'
        training_jobs[job_id]['error'] = str(e)

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': str(e)
        })
        gevent.sleep(0)


@app.route('/api/training/<job_id>', methods=['GET'])
def get_training_status(job_id: str):
    """Get the current status of a training job."""
    if job_id in training_jobs:
        return jsonify(training_jobs[job_id]), 200

    logger.warning(f"Status requested for non-existent job: {job_id}")
    return jsonify({'error': 'Training job not found'}), 404


@app.route('/api/networks/<network_id>/save', methods=['POST'])
def save_network_endpoint(network_id: str):
    """Persist a network in memory to the model registry."""
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404
    if _active_job_for(network_id) is not None:
        return jsonify({'error': 'Network is training'}), 409

    info = active_networks[network_id]
    try:
        _get_db().save_network_to_db(
            info['network'], network_id, accuracy=info.get('accuracy')
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'network_id': network_id,
        'status': 'saved',
        'trained_count': info['network'].trained_count
    }), 200


# ============================================================================
# CLEANUP
# ============================================================================

# Days after which saved networks are removed by the periodic cleanup
CLEANUP_DAYS = 2
CLEANUP_INTERVAL = 86400
CLEANUP_RETRY_INTERVAL = 3600

_cleanup_task_started = False


def cleanup_finished_training_jobs() -> int:
    """
    Remove completed or failed training jobs from memory.

    Returns:
        Number of jobs removed
    """
    finished_statuses = {'completed', 'failed'}
    jobs_to_remove = [
        job_id for job_id, job_info in training_jobs.items()
        if job_info.get('status') in finished_statuses
    ]

    for job_id in jobs_to_remove:
        del training_jobs[job_id]

    if jobs_to_remove:
        logger.info(f"Cleaned up {len(jobs_to_remove)} finished training job(s)")
    return len(jobs_to_remove)


def cleanup_old_networks(days: float = CLEANUP_DAYS) -> int:
    """
    Delete saved networks older than `days` and drop them from memory.

    Networks that were never saved stay in memory, and so do networks
    with a training job in progress.

    Returns:
        Number of networks deleted from the registry
    """
    db = _get_db()
    saved_before = {net['network_id'] for net in db.list_networks_from_db()}
    deleted_count = db.delete_old_networks(days=days)

    if deleted_count > 0:
        saved_after = {net['network_id'] for net in db.list_networks_from_db()}
        for nid in saved_before - saved_after:
            if nid in active_networks and _active_job_for(nid) is None:
                del active_networks[nid]
                logger.info(f"Removed network {nid} from memory (deleted from database)")

    logger.info(f"Cleanup: deleted {deleted_count} network(s) older than {days} day(s)")
    return deleted_count


def cleanup_old_networks_task() -> None:
    """
    Background task that runs on startup, then every 24 hours to:
    - Delete networks older than CLEANUP_DAYS from the registry
    - Remove those networks from memory
    - Remove completed/failed training jobs from memory
    """
    while True:
        try:
            cleanup_old_networks(CLEANUP_DAYS)
            cleanup_finished_training_jobs()
            gevent.sleep(CLEANUP_INTERVAL)
        except Exception as e:
            logger.exception(f"Error during network cleanup: {e}")
            gevent.sleep(CLEANUP_RETRY_INTERVAL)


def start_cleanup_task() -> None:
    """
    Start the background cleanup task.

    Idempotent: calling it more than once has no effect.
    """
    global _cleanup_task_started

    if _cleanup_task_started:
        logger.debug("Cleanup task already started, skipping")
        return

    _cleanup_task_started = True
    logger.info("Starting cleanup task (runs immediately, then every 24 hours)")
    gevent.spawn(cleanup_old_networks_task)


@app.route('/api/networks/cleanup', methods=['POST'])
def cleanup_old_networks_endpoint():
    """
    Delete saved networks older than the given number of days.

    Finished training jobs are dropped as well.

    Request body (optional):
        {'days': 2}  # defaults to 2
    """
    data = request.get_json(silent=True) or {}
    days = data.get('days', CLEANUP_DAYS)

    if isinstance(days, bool) or not isinstance(days, (int, float)) or days < 0:
        return jsonify({'error': 'days must be a non-negative number'}), 400

    deleted_count = cleanup_old_networks(days)
    jobs_removed = cleanup_finished_training_jobs()

    return jsonify({
        'deleted_count': deleted_count,
        'jobs_removed': jobs_removed,
        'days': days,
        'message': f'Successfully deleted {deleted_count} network(s) older than {days} day(s)'
    }), 200


# ============================================================================
# SERVER STARTUP
# ============================================================================

def main() -> None:
    port = int(os.environ.get('PORT', 8000))
    logger.info(f"Starting server at http://localhost:{port}/")
    start_cleanup_task()

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=not is_production,
            use_reloader=False
        )
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        raise


if __name__ == '__main__':
    main()
