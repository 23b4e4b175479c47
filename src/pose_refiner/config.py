"""Configuration schema and loader for the pose refinement optimizer."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from pose_refiner.dof.projector import FULL_DOF, DofKind
from pose_refiner.optimization.step_solver import OptimizerMode


class LevenbergMarquardtConfig(BaseModel):
    max_iterations: int = Field(10, ge=1)
    init_lambda_factor: float = Field(1e-9, gt=0.0)
    lambda_increase_factor: float = Field(10.0, gt=1.0)
    lambda_decrease_factor: float = Field(3.0, gt=1.0)


class OptimizerConfig(BaseModel):
    mode: OptimizerMode = OptimizerMode.LEVENBERG_MARQUARDT
    max_iterations: int = Field(64, ge=1)
    rotation_epsilon: float = Field(2e-3, gt=0.0)
    transformation_epsilon: float = Field(5e-4, gt=0.0)
    debug_print: bool = False
    lm: LevenbergMarquardtConfig = Field(default_factory=LevenbergMarquardtConfig)


class DofConfig(BaseModel):
    kind: DofKind = DofKind.FULL
    mask: Optional[List[bool]] = None

    @model_validator(mode="after")
    def ensure_mask(self) -> "DofConfig":
        if self.mask is not None and len(self.mask) != FULL_DOF:
            raise ValueError(f"DOF mask must have {FULL_DOF} entries, got {len(self.mask)}")
        if self.kind == DofKind.CUSTOM:
            if self.mask is None:
                raise ValueError("A custom DOF configuration requires a mask")
            if not any(self.mask):
                raise ValueError("DOF mask must keep at least one axis free")
        return self


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    output: str = Field("stderr")

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()


class RefinementConfig(BaseModel):
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
    dof: DofConfig = Field(default_factory=DofConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> RefinementConfig:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as handle:
        raw: Dict[str, object] = yaml.safe_load(handle) or {}
    return RefinementConfig.model_validate(raw)
