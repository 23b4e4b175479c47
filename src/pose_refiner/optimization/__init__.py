"""Manifold-aware least-squares optimization of rigid poses."""

from .convergence import ConvergenceChecker
from .cost import CostModel, LinearizedCost
from .optimizer import OptimizationResult, OptimizerState, PoseOptimizer, TerminationStatus, optimize
from .step_solver import (
    GaussNewtonSolver,
    LevenbergMarquardtSolver,
    OptimizerMode,
    StepOutcome,
    StepSolver,
    StepStatus,
    solve_gauss_newton,
)

__all__ = [
    "ConvergenceChecker",
    "CostModel",
    "GaussNewtonSolver",
    "LevenbergMarquardtSolver",
    "LinearizedCost",
    "OptimizationResult",
    "OptimizerMode",
    "OptimizerState",
    "PoseOptimizer",
    "StepOutcome",
    "StepSolver",
    "StepStatus",
    "TerminationStatus",
    "optimize",
    "solve_gauss_newton",
]
