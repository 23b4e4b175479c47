"""Interface between the optimizer and the alignment objective it minimizes."""

from __future__ import annotations

import abc
from dataclasses import dataclass

import numpy as np


@dataclass(slots=True)
class LinearizedCost:
    """Aggregated local linearization of the alignment objective at one pose."""

    error: float
    H: np.ndarray  # (6, 6) symmetric, rotation block first
    b: np.ndarray  # (6,) negative gradient

    @property
    def is_finite(self) -> bool:
        return bool(np.isfinite(self.error) and np.all(np.isfinite(self.H)) and np.all(np.isfinite(self.b)))


class CostModel(abc.ABC):
    """Base class for registration objectives (point-to-plane, GICP, NDT, ...).

    Implementations own correspondence search and residual aggregation. The
    optimizer only sees the aggregated 6x6 system.
    """

    @abc.abstractmethod
    def linearize(self, pose: np.ndarray) -> LinearizedCost:
        """Return error, H and b of the objective at a 4x4 pose."""

    @abc.abstractmethod
    def compute_error(self, pose: np.ndarray) -> float:
        """Evaluate the objective at a 4x4 pose without building H and b."""
