"""pytest configuration and fixtures for the pose_refiner test suite."""

from __future__ import annotations

from typing import List

import numpy as np
import pytest

from pose_refiner.geometry import hat, transform_points
from pose_refiner.optimization import CostModel, LinearizedCost


class PointToPointCost(CostModel):
    """Sum of squared distances between transformed source points and fixed target matches."""

    def __init__(self, source: np.ndarray, target: np.ndarray) -> None:
        self.source = np.asarray(source, dtype=np.float64)
        self.target = np.asarray(target, dtype=np.float64)

    def residuals(self, pose: np.ndarray) -> np.ndarray:
        return transform_points(self.source, pose) - self.target

    def linearize(self, pose: np.ndarray) -> LinearizedCost:
        transformed = transform_points(self.source, pose)
        residuals = transformed - self.target

        # d(exp(delta) @ pose @ p) / d(delta) = [-hat(p'), I] at delta = 0
        jacobians = np.zeros((len(transformed), 3, 6))
        jacobians[:, :, :3] = -np.stack([hat(point) for point in transformed])
        jacobians[:, :, 3:] = np.eye(3)

        H = np.einsum("nki,nkj->ij", jacobians, jacobians)
        gradient = np.einsum("nki,nk->i", jacobians, residuals)
        return LinearizedCost(error=float(np.sum(residuals**2)), H=H, b=-gradient)

    def compute_error(self, pose: np.ndarray) -> float:
        return float(np.sum(self.residuals(pose) ** 2))


class RecordingCost(PointToPointCost):
    """Point-to-point cost that remembers every pose it is evaluated at."""

    def __init__(self, source: np.ndarray, target: np.ndarray) -> None:
        super().__init__(source, target)
        self.poses: List[np.ndarray] = []

    def linearize(self, pose: np.ndarray) -> LinearizedCost:
        self.poses.append(pose.copy())
        return super().linearize(pose)

    def compute_error(self, pose: np.ndarray) -> float:
        self.poses.append(pose.copy())
        return super().compute_error(pose)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(7)


@pytest.fixture
def points(rng: np.random.Generator) -> np.ndarray:
    """Well-spread 3D points, enough to constrain all six DOF."""
    return rng.uniform(-1.0, 1.0, size=(200, 3))


@pytest.fixture
def spd_matrix(rng: np.random.Generator) -> np.ndarray:
    A = rng.normal(size=(6, 6))
    return A @ A.T + 6.0 * np.eye(6)
