"""Tests for the SE(3) helpers."""

from __future__ import annotations

import numpy as np
import pytest

from pose_refiner.geometry import as_pose, compose_increment, rotation_angle, se3_exp, translation_norm


def test_zero_increment_is_exact_identity() -> None:
    assert np.array_equal(se3_exp(np.zeros(6)), np.eye(4))


def test_pure_translation_increment() -> None:
    T = se3_exp(np.array([0.0, 0.0, 0.0, 1.0, 2.0, 3.0]))

    assert np.array_equal(T[:3, :3], np.eye(3))
    np.testing.assert_allclose(T[:3, 3], [1.0, 2.0, 3.0])
    assert translation_norm(T) == pytest.approx(np.sqrt(14.0))


def test_rotation_increment_about_z() -> None:
    T = se3_exp(np.array([0.0, 0.0, np.pi / 2, 0.0, 0.0, 0.0]))

    np.testing.assert_allclose(T[:3, :3] @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)
    assert rotation_angle(T) == pytest.approx(np.pi / 2)
    np.testing.assert_allclose(T[:3, 3], 0.0, atol=1e-12)


def test_exp_is_a_rigid_transform(rng: np.random.Generator) -> None:
    T = se3_exp(rng.normal(size=6))

    np.testing.assert_allclose(T[:3, :3] @ T[:3, :3].T, np.eye(3), atol=1e-12)
    assert np.linalg.det(T[:3, :3]) == pytest.approx(1.0)
    np.testing.assert_array_equal(T[3], [0.0, 0.0, 0.0, 1.0])


def test_compose_increment_is_left_multiplication(rng: np.random.Generator) -> None:
    pose = se3_exp(rng.normal(size=6))
    increment = rng.normal(scale=0.1, size=6)

    composed, delta = compose_increment(pose, increment)

    np.testing.assert_allclose(delta, se3_exp(increment))
    np.testing.assert_allclose(composed, se3_exp(increment) @ pose)


def test_as_pose_rejects_malformed_input() -> None:
    with pytest.raises(ValueError):
        as_pose(np.eye(3))
    bad = np.eye(4)
    bad[0, 3] = np.nan
    with pytest.raises(ValueError):
        as_pose(bad)
