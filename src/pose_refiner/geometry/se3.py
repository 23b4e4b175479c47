"""SE(3) utilities for composing tangent increments onto rigid poses."""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation

# Below this angle the left Jacobian falls back to its Taylor expansion.
SMALL_ANGLE = 1e-10


def hat(vector: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrix of a 3-vector."""
    x, y, z = np.asarray(vector, dtype=np.float64).reshape(3)
    return np.array(
        [
            [0.0, -z, y],
            [z, 0.0, -x],
            [-y, x, 0.0],
        ]
    )


def as_pose(pose: np.ndarray) -> np.ndarray:
    """Return a float64 copy of a 4x4 homogeneous transform.

    Raises:
        ValueError: If the input is not a finite 4x4 matrix.
    """
    matrix = np.array(pose, dtype=np.float64)
    if matrix.shape != (4, 4):
        raise ValueError(f"Pose must be a 4x4 matrix, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise ValueError("Pose contains non-finite entries")
    return matrix


def se3_exp(increment: np.ndarray) -> np.ndarray:
    """Map a tangent increment to a rigid transform.

    Args:
        increment: 6-vector ordered as rotation (rotation vector, radians)
            followed by translation.

    Returns:
        4x4 homogeneous transform.
    """
    increment = np.asarray(increment, dtype=np.float64).reshape(6)
    omega = increment[:3]
    upsilon = increment[3:]

    theta = np.linalg.norm(omega)
    W = hat(omega)
    if theta < SMALL_ANGLE:
        V = np.eye(3) + 0.5 * W
    else:
        V = (
            np.eye(3)
            + (1.0 - np.cos(theta)) / theta**2 * W
            + (theta - np.sin(theta)) / theta**3 * (W @ W)
        )

    transform = np.eye(4)
    transform[:3, :3] = Rotation.from_rotvec(omega).as_matrix()
    transform[:3, 3] = V @ upsilon
    return transform


def compose_increment(pose: np.ndarray, increment: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Apply a tangent increment on the left.

    Returns:
        (exp(increment) @ pose, exp(increment))
    """
    delta = se3_exp(increment)
    return delta @ pose, delta


def rotation_angle(transform: np.ndarray) -> float:
    """Rotation angle in radians of the rotation block of a transform."""
    rotation = np.asarray(transform, dtype=np.float64)[:3, :3]
    return float(Rotation.from_matrix(rotation).magnitude())


def translation_norm(transform: np.ndarray) -> float:
    """Euclidean length of the translation block of a transform."""
    return float(np.linalg.norm(np.asarray(transform, dtype=np.float64)[:3, 3]))


def transform_points(points: np.ndarray, pose: np.ndarray) -> np.ndarray:
    """Apply a rigid transform to an (N, 3) array of points."""
    points = np.asarray(points, dtype=np.float64)
    if len(points) == 0:
        return points.reshape(0, 3)
    return points @ pose[:3, :3].T + pose[:3, 3]
