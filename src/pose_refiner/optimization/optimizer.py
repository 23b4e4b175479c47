"""Iterative least-squares pose refinement on SE(3)."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np
from loguru import logger

from pose_refiner.dof.projector import DofProjector
from pose_refiner.geometry.se3 import as_pose
from pose_refiner.optimization.convergence import ConvergenceChecker
from pose_refiner.optimization.cost import CostModel, LinearizedCost
from pose_refiner.optimization.step_solver import (
    GaussNewtonSolver,
    LevenbergMarquardtSolver,
    OptimizerMode,
    StepSolver,
    StepStatus,
)

if TYPE_CHECKING:
    from pose_refiner.config import OptimizerConfig


class TerminationStatus(str, Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STEP_FAILED = "step_failed"


@dataclass(slots=True)
class OptimizationResult:
    """Result of one optimization run."""

    pose: np.ndarray  # 4x4 final estimate (last accepted pose)
    converged: bool
    hessian: np.ndarray  # 6x6 Hessian at the last accepted linearization
    status: TerminationStatus
    iterations: int  # outer iterations performed
    error: float  # objective at `pose`
    failure: Optional[StepStatus] = None  # why the step failed, for STEP_FAILED


@dataclass
class OptimizerState:
    """Mutable iteration state, owned by a single optimize() call."""

    pose: np.ndarray
    iteration: int = 0
    error: float = float("inf")
    hessian: np.ndarray = field(default_factory=lambda: np.zeros((6, 6)))
    status: TerminationStatus = TerminationStatus.RUNNING
    failure: Optional[StepStatus] = None
    # True when a step moved the pose without evaluating the objective there.
    error_stale: bool = False


class PoseOptimizer:
    """Refines a rigid pose by minimizing a cost model's objective."""

    def __init__(
        self,
        cost_model: CostModel,
        dof_projector: Optional[DofProjector] = None,
        mode: OptimizerMode = OptimizerMode.LEVENBERG_MARQUARDT,
        max_iterations: int = 64,
        rotation_epsilon: float = 2e-3,
        transformation_epsilon: float = 5e-4,
        lm_max_iterations: int = 10,
        lm_init_lambda_factor: float = 1e-9,
        lm_lambda_increase_factor: float = 10.0,
        lm_lambda_decrease_factor: float = 3.0,
        debug_print: bool = False,
    ) -> None:
        """
        Args:
            cost_model: Objective providing linearize() and compute_error()
            dof_projector: Axis restriction (all six axes free if None)
            mode: Gauss-Newton or Levenberg-Marquardt steps
            max_iterations: Outer iteration cap
            rotation_epsilon: Convergence threshold on the increment's rotation angle (rad)
            transformation_epsilon: Convergence threshold on the increment's translation length
            lm_max_iterations: Damping retries per outer iteration (LM only)
            lm_init_lambda_factor: Initial lambda relative to max(diag(H)) (LM only)
            lm_lambda_increase_factor: Lambda multiplier after a rejected trial (LM only)
            lm_lambda_decrease_factor: Lambda divisor after an accepted trial (LM only)
            debug_print: Log per-iteration details at DEBUG level
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._cost_model = cost_model
        self._projector = dof_projector or DofProjector.identity()
        self._mode = OptimizerMode(mode)
        self._max_iterations = max_iterations
        self._checker = ConvergenceChecker(rotation_epsilon, transformation_epsilon)
        self._lm_settings = dict(
            max_iterations=lm_max_iterations,
            init_lambda_factor=lm_init_lambda_factor,
            lambda_increase_factor=lm_lambda_increase_factor,
            lambda_decrease_factor=lm_lambda_decrease_factor,
        )
        self._debug = debug_print
        self._final_hessian = np.zeros((6, 6))
        # Fail on bad LM settings now rather than on the first optimize() call.
        self._build_step_solver()

    @classmethod
    def from_config(
        cls,
        cost_model: CostModel,
        config: "OptimizerConfig",
        dof_projector: Optional[DofProjector] = None,
    ) -> "PoseOptimizer":
        return cls(
            cost_model=cost_model,
            dof_projector=dof_projector,
            mode=config.mode,
            max_iterations=config.max_iterations,
            rotation_epsilon=config.rotation_epsilon,
            transformation_epsilon=config.transformation_epsilon,
            lm_max_iterations=config.lm.max_iterations,
            lm_init_lambda_factor=config.lm.init_lambda_factor,
            lm_lambda_increase_factor=config.lm.lambda_increase_factor,
            lm_lambda_decrease_factor=config.lm.lambda_decrease_factor,
            debug_print=config.debug_print,
        )

    @property
    def mode(self) -> OptimizerMode:
        return self._mode

    @property
    def dof_projector(self) -> DofProjector:
        return self._projector

    @property
    def convergence_checker(self) -> ConvergenceChecker:
        return self._checker

    @property
    def final_hessian(self) -> np.ndarray:
        """6x6 Hessian of the most recent optimize() call."""
        return self._final_hessian.copy()

    def evaluate_cost(self, pose: np.ndarray) -> LinearizedCost:
        """Linearize the objective at `pose` without running the optimizer."""
        return self._cost_model.linearize(as_pose(pose))

    def optimize(self, initial_pose: np.ndarray) -> OptimizationResult:
        """
        Iterate from `initial_pose` until convergence, the iteration cap, or a failed step.

        Args:
            initial_pose: 4x4 initial guess

        Returns:
            OptimizationResult holding the last accepted pose
        """
        start_time = time.perf_counter()
        state = OptimizerState(pose=as_pose(initial_pose))
        solver = self._build_step_solver()

        while state.status == TerminationStatus.RUNNING:
            if state.iteration >= self._max_iterations:
                state.status = TerminationStatus.MAX_ITERATIONS_REACHED
                break
            state.iteration += 1

            linearized = self._cost_model.linearize(state.pose)
            state.error = float(linearized.error)
            if not linearized.is_finite:
                logger.warning(f"Iteration {state.iteration}: cost model returned a non-finite system")
                state.status = TerminationStatus.STEP_FAILED
                state.failure = StepStatus.SINGULAR_SYSTEM
                break

            system = self._projector.project(linearized.H, linearized.b)
            outcome = solver.step(state.pose, system, state.error, self._cost_model, self._projector)

            if not outcome.succeeded:
                logger.warning(f"Iteration {state.iteration}: {solver.mode.value} step failed ({outcome.status.value})")
                state.status = TerminationStatus.STEP_FAILED
                state.failure = outcome.status
                break

            state.pose = outcome.pose
            state.hessian = linearized.H
            if outcome.error is not None:
                state.error = outcome.error
            state.error_stale = outcome.error is None

            if self._debug:
                logger.debug(
                    f"Iteration {state.iteration}: error={linearized.error:.6e} "
                    f"rotation_change={self._checker.rotation_change(outcome.delta):.3e} "
                    f"translation_change={self._checker.translation_change(outcome.delta):.3e} "
                    f"step={outcome.status.value}"
                )

            if outcome.status == StepStatus.CONVERGED_IN_PLACE or self._checker.is_converged(outcome.delta):
                state.status = TerminationStatus.CONVERGED

        if state.error_stale:
            state.error = float(self._cost_model.compute_error(state.pose))
        self._final_hessian = state.hessian.copy()

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Pose optimization finished in {elapsed_ms:.1f}ms: status={state.status.value}, "
            f"iterations={state.iteration}, error={state.error:.6e}"
        )

        return OptimizationResult(
            pose=state.pose,
            converged=state.status == TerminationStatus.CONVERGED,
            hessian=state.hessian.copy(),
            status=state.status,
            iterations=state.iteration,
            error=state.error,
            failure=state.failure,
        )

    def _build_step_solver(self) -> StepSolver:
        if self._mode == OptimizerMode.GAUSS_NEWTON:
            return GaussNewtonSolver()
        return LevenbergMarquardtSolver(checker=self._checker, debug_print=self._debug, **self._lm_settings)


def optimize(
    initial_pose: np.ndarray,
    cost_model: CostModel,
    max_iterations: int = 64,
    mode: OptimizerMode = OptimizerMode.LEVENBERG_MARQUARDT,
    dof_projector: Optional[DofProjector] = None,
    **settings: object,
) -> OptimizationResult:
    """One-shot wrapper around PoseOptimizer; extra keyword arguments go to its constructor."""
    optimizer = PoseOptimizer(
        cost_model,
        dof_projector=dof_projector,
        mode=mode,
        max_iterations=max_iterations,
        **settings,
    )
    return optimizer.optimize(initial_pose)
