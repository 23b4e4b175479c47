"""Tests for DOF projection."""

from __future__ import annotations

import numpy as np
import pytest

from pose_refiner.config import DofConfig
from pose_refiner.dof import DofKind, DofProjector


def test_identity_projector_is_a_no_op(rng: np.random.Generator) -> None:
    projector = DofProjector.identity()
    H = rng.normal(size=(6, 6))
    v = rng.normal(size=6)

    assert projector.dim == 6
    np.testing.assert_array_equal(projector.reduce_H(H), H)
    np.testing.assert_array_equal(projector.reduce_b(v), v)
    np.testing.assert_array_equal(projector.expand_b(v), v)


def test_translation_only_keeps_trailing_block(rng: np.random.Generator) -> None:
    projector = DofProjector.translation_only()
    H = rng.normal(size=(6, 6))
    v = rng.normal(size=6)

    assert projector.dim == 3
    assert projector.locked_axes == ("rx", "ry", "rz")
    np.testing.assert_array_equal(projector.reduce_H(H), H[3:, 3:])

    roundtrip = projector.expand_b(projector.reduce_b(v))
    np.testing.assert_array_equal(roundtrip[:3], 0.0)
    np.testing.assert_array_equal(roundtrip[3:], v[3:])


@pytest.mark.parametrize(
    "mask",
    [
        (True, False, False, False, False, False),
        (False, False, True, True, True, False),
        (True, True, False, True, True, False),
        (False, True, True, True, True, True),
    ],
)
def test_custom_mask_selects_free_axes(mask: tuple, rng: np.random.Generator) -> None:
    projector = DofProjector.custom(mask)
    keep = np.array(mask)
    H = rng.normal(size=(6, 6))
    v = rng.normal(size=6)

    assert projector.kind == DofKind.CUSTOM
    assert projector.dim == keep.sum()
    np.testing.assert_array_equal(projector.reduce_H(H), H[keep][:, keep])

    roundtrip = projector.expand_b(projector.reduce_b(v))
    np.testing.assert_array_equal(roundtrip[keep], v[keep])
    np.testing.assert_array_equal(roundtrip[~keep], 0.0)


def test_project_builds_reduced_system(spd_matrix: np.ndarray) -> None:
    projector = DofProjector.translation_only()
    system = projector.project(spd_matrix, np.arange(6.0))

    assert system.dim == 3
    np.testing.assert_array_equal(system.b, [3.0, 4.0, 5.0])


@pytest.mark.parametrize("mask", [(True,) * 5, (True,) * 7, (False,) * 6])
def test_invalid_masks_are_rejected(mask: tuple) -> None:
    with pytest.raises(ValueError):
        DofProjector.custom(mask)


def test_dimension_must_match_mask() -> None:
    with pytest.raises(ValueError):
        DofProjector((True, True, False, False, False, False), dim=3)


def test_shape_mismatch_is_rejected() -> None:
    projector = DofProjector.translation_only()
    with pytest.raises(ValueError):
        projector.expand_b(np.zeros(6))
    with pytest.raises(ValueError):
        projector.reduce_H(np.zeros((3, 3)))


def test_from_config() -> None:
    assert DofProjector.from_config(DofConfig()).kind == DofKind.FULL
    assert DofProjector.from_config(DofConfig(kind="translation_only")).dim == 3

    custom = DofProjector.from_config(DofConfig(kind="custom", mask=[False, False, True, True, True, False]))
    assert custom.mask == (False, False, True, True, True, False)
    assert custom.dim == 3
