"""Rigid-transform helpers shared by the optimizer and cost models."""

from .se3 import (
    as_pose,
    compose_increment,
    hat,
    rotation_angle,
    se3_exp,
    transform_points,
    translation_norm,
)

__all__ = [
    "as_pose",
    "compose_increment",
    "hat",
    "rotation_angle",
    "se3_exp",
    "transform_points",
    "translation_norm",
]
