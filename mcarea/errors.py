"""Exceptions raised by the estimator and its batch runner."""

from __future__ import annotations

from typing import Any


__all__ = ["InvalidSampleSize", "EstimationCancelled"]


class InvalidSampleSize(ValueError):
    """A sample or batch count is not a positive integer."""

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value = value
        super().__init__(f"{name} must be a positive integer, got {value!r}")


class EstimationCancelled(RuntimeError):
    """The cancellation token fired before every batch finished.

    Attributes:
        completed: Number of batches whose results had been collected
        total: Number of batches requested
    """

    def __init__(self, completed: int, total: int):
        self.completed = completed
        self.total = total
        super().__init__(f"Estimation cancelled after {completed}/{total} batches")
