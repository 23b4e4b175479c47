"""Gauss-Newton and Levenberg-Marquardt steps on the reduced linear system."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from loguru import logger
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from pose_refiner.dof.projector import DofProjector, LinearSystem
from pose_refiner.geometry.se3 import compose_increment
from pose_refiner.optimization.convergence import ConvergenceChecker
from pose_refiner.optimization.cost import CostModel

# Smallest accepted ratio between the squared extreme pivots of the Cholesky factor.
PIVOT_RATIO_TOLERANCE = 1e-12

# Floor on the LM damping diagonal, so axes with zero curvature still get damped.
MIN_DAMPING_DIAGONAL = 1e-6


class OptimizerMode(str, Enum):
    GAUSS_NEWTON = "gauss_newton"
    LEVENBERG_MARQUARDT = "levenberg_marquardt"


class StepStatus(str, Enum):
    ACCEPTED = "accepted"
    CONVERGED_IN_PLACE = "converged_in_place"
    SINGULAR_SYSTEM = "singular_system"
    DAMPING_EXHAUSTED = "damping_exhausted"


@dataclass(slots=True)
class StepOutcome:
    """Result of one outer iteration of a step solver."""

    status: StepStatus
    pose: np.ndarray  # pose after the step; the input pose unless ACCEPTED
    increment: np.ndarray  # (6,) canonical increment, zero on failure
    delta: np.ndarray  # 4x4 exp(increment)
    error: Optional[float] = None  # objective at `pose`, when the solver evaluated it
    trials: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status in (StepStatus.ACCEPTED, StepStatus.CONVERGED_IN_PLACE)


def solve_gauss_newton(H: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    """Solve H @ delta = b by Cholesky factorization.

    Returns:
        The solution, or None when H is singular, indefinite or non-finite.
    """
    H = np.asarray(H, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if not (np.all(np.isfinite(H)) and np.all(np.isfinite(b))):
        return None

    try:
        factor, lower = cho_factor(0.5 * (H + H.T), lower=True, check_finite=False)
    except LinAlgError:
        return None

    pivots = np.abs(np.diag(factor))
    if pivots.min() ** 2 <= PIVOT_RATIO_TOLERANCE * pivots.max() ** 2:
        return None

    delta = cho_solve((factor, lower), b, check_finite=False)
    if not np.all(np.isfinite(delta)):
        return None
    return delta


def _failed_step(pose: np.ndarray, status: StepStatus, trials: int) -> StepOutcome:
    return StepOutcome(status=status, pose=pose, increment=np.zeros(6), delta=np.eye(4), trials=trials)


class StepSolver(abc.ABC):
    """Computes and applies one pose increment from a reduced linear system."""

    mode: OptimizerMode

    @abc.abstractmethod
    def step(
        self,
        pose: np.ndarray,
        system: LinearSystem,
        error: float,
        cost_model: CostModel,
        projector: DofProjector,
    ) -> StepOutcome:
        """Advance `pose` by one outer iteration."""


class GaussNewtonSolver(StepSolver):
    """Undamped Newton step; every solvable step is taken."""

    mode = OptimizerMode.GAUSS_NEWTON

    def step(
        self,
        pose: np.ndarray,
        system: LinearSystem,
        error: float,
        cost_model: CostModel,
        projector: DofProjector,
    ) -> StepOutcome:
        reduced = solve_gauss_newton(system.H, system.b)
        if reduced is None:
            return _failed_step(pose, StepStatus.SINGULAR_SYSTEM, trials=1)

        increment = projector.expand_b(reduced)
        candidate, delta = compose_increment(pose, increment)
        return StepOutcome(status=StepStatus.ACCEPTED, pose=candidate, increment=increment, delta=delta)


class LevenbergMarquardtSolver(StepSolver):
    """Damped step (H + lambda * diag(H)) @ delta = b with trial evaluation.

    Lambda persists across outer iterations of one optimization and is seeded
    from the curvature scale of the first reduced system it sees. Diagonal
    entries are taken in absolute value and floored at MIN_DAMPING_DIAGONAL.
    """

    mode = OptimizerMode.LEVENBERG_MARQUARDT

    def __init__(
        self,
        max_iterations: int = 10,
        init_lambda_factor: float = 1e-9,
        lambda_increase_factor: float = 10.0,
        lambda_decrease_factor: float = 3.0,
        checker: Optional[ConvergenceChecker] = None,
        debug_print: bool = False,
    ) -> None:
        """
        Args:
            max_iterations: Damped solves tried per outer iteration before giving up
            init_lambda_factor: Initial lambda relative to the largest diagonal entry of H
            lambda_increase_factor: Lambda multiplier after a rejected trial
            lambda_decrease_factor: Lambda divisor after an accepted trial
            checker: Lets a rejected but negligible step count as convergence
            debug_print: Log every trial at DEBUG level
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if init_lambda_factor <= 0:
            raise ValueError("init_lambda_factor must be positive")
        if lambda_increase_factor <= 1.0 or lambda_decrease_factor <= 1.0:
            raise ValueError("Lambda increase and decrease factors must be greater than 1")
        self._max_iterations = max_iterations
        self._init_lambda_factor = init_lambda_factor
        self._increase = lambda_increase_factor
        self._decrease = lambda_decrease_factor
        self._checker = checker
        self._debug = debug_print
        self._lambda: Optional[float] = None

    @property
    def lambda_(self) -> Optional[float]:
        """Current damping factor; None until the first step seeds it."""
        return self._lambda

    def step(
        self,
        pose: np.ndarray,
        system: LinearSystem,
        error: float,
        cost_model: CostModel,
        projector: DofProjector,
    ) -> StepOutcome:
        H, b = system.H, system.b
        diagonal = np.maximum(np.abs(np.diag(H)), MIN_DAMPING_DIAGONAL)
        if self._lambda is None:
            self._lambda = self._init_lambda_factor * float(diagonal.max())
        damping = np.diag(diagonal)

        for trial in range(1, self._max_iterations + 1):
            reduced = solve_gauss_newton(H + self._lambda * damping, b)
            if reduced is None:
                if self._debug:
                    logger.debug(f"LM trial {trial}: damped system singular (lambda={self._lambda:.3e})")
                self._lambda *= self._increase
                continue

            increment = projector.expand_b(reduced)
            candidate, delta = compose_increment(pose, increment)
            candidate_error = float(cost_model.compute_error(candidate))
            accepted = candidate_error < error

            if self._debug:
                logger.debug(
                    f"LM trial {trial}: lambda={self._lambda:.3e} error={error:.6e} "
                    f"candidate={candidate_error:.6e} step={np.linalg.norm(increment):.3e} "
                    f"accepted={accepted}"
                )

            if accepted:
                self._lambda /= self._decrease
                return StepOutcome(
                    status=StepStatus.ACCEPTED,
                    pose=candidate,
                    increment=increment,
                    delta=delta,
                    error=candidate_error,
                    trials=trial,
                )

            # No improvement, but the step is already below the stopping thresholds.
            if self._checker is not None and self._checker.is_converged(delta):
                return StepOutcome(
                    status=StepStatus.CONVERGED_IN_PLACE,
                    pose=pose,
                    increment=increment,
                    delta=delta,
                    error=error,
                    trials=trial,
                )

            self._lambda *= self._increase

        return _failed_step(pose, StepStatus.DAMPING_EXHAUSTED, trials=self._max_iterations)
