"""Stopping test on the most recent pose increment."""

from __future__ import annotations

import numpy as np

from pose_refiner.geometry.se3 import rotation_angle, translation_norm


class ConvergenceChecker:
    """Declares convergence once both halves of an increment are small.

    Rotation and translation are measured separately: the rotation change is
    the angle of the delta transform in radians, the translation change is
    the Euclidean length of its translation.
    """

    def __init__(self, rotation_epsilon: float = 2e-3, transformation_epsilon: float = 5e-4) -> None:
        if rotation_epsilon <= 0 or transformation_epsilon <= 0:
            raise ValueError("Convergence thresholds must be positive")
        self._rotation_epsilon = rotation_epsilon
        self._transformation_epsilon = transformation_epsilon

    @property
    def rotation_epsilon(self) -> float:
        return self._rotation_epsilon

    @property
    def transformation_epsilon(self) -> float:
        return self._transformation_epsilon

    def rotation_change(self, delta: np.ndarray) -> float:
        return rotation_angle(delta)

    def translation_change(self, delta: np.ndarray) -> float:
        return translation_norm(delta)

    def is_converged(self, delta: np.ndarray) -> bool:
        return (
            self.rotation_change(delta) <= self._rotation_epsilon
            and self.translation_change(delta) <= self._transformation_epsilon
        )
