"""DOF reduction for constrained pose refinement."""

from .projector import AXIS_NAMES, DofKind, DofProjector, LinearSystem

__all__ = ["AXIS_NAMES", "DofKind", "DofProjector", "LinearSystem"]
