"""Degrees-of-freedom projection between the 6-DOF and reduced linear systems."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from pose_refiner.config import DofConfig

# Canonical increment layout: rotation block first, translation block last.
FULL_DOF = 6
AXIS_NAMES = ("rx", "ry", "rz", "tx", "ty", "tz")


class DofKind(str, Enum):
    FULL = "full"
    TRANSLATION_ONLY = "translation_only"
    CUSTOM = "custom"


@dataclass(slots=True)
class LinearSystem:
    """Normal equations H @ delta = b, with b holding the negative gradient."""

    H: np.ndarray  # (D, D) symmetric
    b: np.ndarray  # (D,)

    @property
    def dim(self) -> int:
        return self.b.shape[0]


def count_free(mask: Sequence[bool]) -> int:
    return sum(1 for keep in mask if keep)


class DofProjector:
    """Restricts the optimizer to the axes selected by a boolean mask."""

    def __init__(self, mask: Sequence[bool], kind: DofKind = DofKind.CUSTOM, dim: int | None = None) -> None:
        """
        Args:
            mask: Six flags in canonical order (rx, ry, rz, tx, ty, tz); True keeps the axis free
            kind: Variant tag, used for logging and for the fast paths
            dim: Expected reduced dimension; checked against the mask when given
        """
        flags = tuple(bool(keep) for keep in mask)
        if len(flags) != FULL_DOF:
            raise ValueError(f"DOF mask must have {FULL_DOF} entries, got {len(flags)}")
        free = count_free(flags)
        if free == 0:
            raise ValueError("DOF mask must keep at least one axis free")
        if dim is not None and dim != free:
            raise ValueError(f"DOF mask frees {free} axes but dimension {dim} was requested")

        self._mask: Tuple[bool, ...] = flags
        self._kind = DofKind(kind)
        self._indices = np.flatnonzero(flags)

    @classmethod
    def identity(cls) -> "DofProjector":
        return cls((True,) * FULL_DOF, kind=DofKind.FULL, dim=6)

    @classmethod
    def translation_only(cls) -> "DofProjector":
        return cls((False, False, False, True, True, True), kind=DofKind.TRANSLATION_ONLY, dim=3)

    @classmethod
    def custom(cls, mask: Sequence[bool]) -> "DofProjector":
        return cls(mask, kind=DofKind.CUSTOM)

    @classmethod
    def from_config(cls, config: "DofConfig") -> "DofProjector":
        if config.kind == DofKind.FULL:
            return cls.identity()
        if config.kind == DofKind.TRANSLATION_ONLY:
            return cls.translation_only()
        return cls.custom(config.mask or ())

    @property
    def kind(self) -> DofKind:
        return self._kind

    @property
    def mask(self) -> Tuple[bool, ...]:
        return self._mask

    @property
    def dim(self) -> int:
        return len(self._indices)

    @property
    def locked_axes(self) -> Tuple[str, ...]:
        return tuple(name for name, keep in zip(AXIS_NAMES, self._mask) if not keep)

    def reduce_H(self, H: np.ndarray) -> np.ndarray:
        H = np.asarray(H, dtype=np.float64)
        if H.shape != (FULL_DOF, FULL_DOF):
            raise ValueError(f"Expected a 6x6 matrix, got shape {H.shape}")
        if self._kind == DofKind.FULL:
            return H.copy()
        if self._kind == DofKind.TRANSLATION_ONLY:
            return H[3:, 3:].copy()
        return H[np.ix_(self._indices, self._indices)]

    def reduce_b(self, b: np.ndarray) -> np.ndarray:
        b = np.asarray(b, dtype=np.float64).reshape(-1)
        if b.shape != (FULL_DOF,):
            raise ValueError(f"Expected a 6-vector, got shape {b.shape}")
        return b[self._indices]

    def expand_b(self, reduced: np.ndarray) -> np.ndarray:
        """Scatter a reduced vector into a 6-vector; locked axes stay exactly zero."""
        reduced = np.asarray(reduced, dtype=np.float64).reshape(-1)
        if reduced.shape != (self.dim,):
            raise ValueError(f"Expected a {self.dim}-vector, got shape {reduced.shape}")
        full = np.zeros(FULL_DOF)
        full[self._indices] = reduced
        return full

    def project(self, H: np.ndarray, b: np.ndarray) -> LinearSystem:
        return LinearSystem(H=self.reduce_H(H), b=self.reduce_b(b))

    def __repr__(self) -> str:
        return f"DofProjector(kind={self._kind.value}, mask={self._mask})"
