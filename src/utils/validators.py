"""YAML schema validation and config loading.

Validates scope configuration files with pydantic so bad values fail at load
time with the offending key named, instead of surfacing as a blank frame:
    - Scope schema (scope.v1.yaml): buffer size, fade, sweep, gain
    - Source block: test-signal frequency and amplitude
    - Render block: batch size and sample count for offline previews

Units:
    - Sizes: pixels
    - tc: samples
    - sweep: fraction of width per sample
    - freq: cycles per sample

Usage:
    from src.utils import validators

    cfg = validators.load_scope_config("configs/scope.v1.yaml")
    scope = Scope.from_config(cfg)
"""

from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceConfig(BaseModel):
    """Sine test signal driving offline previews."""
    freq: float = Field(default=0.004, ge=0.0, le=0.5, description="Cycles per sample")
    amplitude: float = Field(default=0.8, description="Peak amplitude (1.0 = half height)")
    phase: float = Field(default=0.0, ge=0.0, lt=1.0, description="Start phase, cycles")


class RenderConfig(BaseModel):
    """Batching for offline previews."""
    block_size: int = Field(default=64, gt=0, description="Samples per provide_samples call")
    total_samples: int = Field(default=2000, ge=0, description="Samples fed in total")


class ScopeConfigV1(BaseModel):
    """Scope configuration (scope.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("scope.v1", alias="schema", description="Schema version")
    width: int = Field(640, gt=0, description="Buffer width (px)")
    height: int = Field(480, gt=0, description="Buffer height (px)")
    tc: float = Field(1000.0, gt=0.0, description="Fade time constant (samples)")
    sweep: float = Field(0.001, gt=0.0, le=1.0, description="Width fraction per sample")
    gain: float = Field(1.0, description="Vertical gain")
    source: SourceConfig = Field(default_factory=SourceConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "scope.v1":
            raise ValueError(f"Expected schema 'scope.v1', got '{v}'")
        return v


def load_scope_config(path: Union[str, Path]) -> ScopeConfigV1:
    """Load and validate a scope config from YAML.

    Parameters
    ----------
    path : str or Path
        Path to a scope.v1 YAML file

    Returns
    -------
    ScopeConfigV1
        Validated config

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (message names the file and the offending keys)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scope config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return ScopeConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Scope config validation failed at {path}: {e}") from e
