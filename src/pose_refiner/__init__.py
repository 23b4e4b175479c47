"""Least-squares rigid pose refinement package."""

from .config import RefinementConfig, load_config  # noqa: F401
from .dof import DofProjector  # noqa: F401
from .optimization import CostModel, LinearizedCost, OptimizerMode, PoseOptimizer, optimize  # noqa: F401
