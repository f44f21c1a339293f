import logging

import numpy as np
import pytest

from mcarea.executors import worker_pool


@pytest.fixture
def rng():
    """Seeded numpy generator."""
    return np.random.default_rng(20240917)


@pytest.fixture
def thread_pool():
    with worker_pool("thread", max_workers=4) as pool:
        yield pool


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield root

    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
