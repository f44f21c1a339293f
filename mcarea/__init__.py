"""Monte Carlo area estimation with batch-parallel aggregation."""

from . import cli
from . import distributed
from . import errors
from . import estimator
from . import executors
from . import logging_utils
from . import metrics
from . import random_state
from . import scaling
from . import signal_handler
from . import statistics
from .errors import EstimationCancelled, InvalidSampleSize
from .estimator import (
    UNIT_BOUNDS,
    Bounds,
    MonteCarloEstimator,
    aggregate,
    aggregate_counts,
    count_inside,
    estimate,
    estimate_from_counts,
)
from .executors import CancellationToken, SerialExecutor, run_batches, worker_pool

__version__ = "0.1.0"

__all__ = [
    'cli',
    'distributed',
    'errors',
    'estimator',
    'executors',
    'logging_utils',
    'metrics',
    'random_state',
    'scaling',
    'signal_handler',
    'statistics',
    'Bounds',
    'UNIT_BOUNDS',
    'MonteCarloEstimator',
    'InvalidSampleSize',
    'EstimationCancelled',
    'CancellationToken',
    'SerialExecutor',
    'aggregate',
    'aggregate_counts',
    'count_inside',
    'estimate',
    'estimate_from_counts',
    'run_batches',
    'worker_pool',
]
