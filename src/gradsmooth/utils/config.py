"""
Configuration management for gradsmooth.

Provides typed pydantic models and a YAML loader with defaults matching the
command-line flags of ``scripts/run_smoothing.py``.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Optional, Literal, Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import yaml

from ..exceptions import ConfigurationError


# -----------------------
# Typed config structures
# -----------------------


class SmoothingConfig(BaseModel):
    """Immutable run parameters for one smoothing run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    num_neighbors: int = Field(default=5, description="Number of nearest neighbors (k) for the knn-search")
    dimension: Optional[int] = Field(
        default=None,
        description="Ambient dimension d of the cloud (None = take it from the loaded cloud)",
    )
    codimension: int = Field(default=1, description="Co-dimension of the manifold the cloud was sampled from")
    iterations: int = Field(default=10, description="Number of gradient flow iterations")
    step_size_normal: float = Field(default=0.10, description="Step size along the estimated normal subspace")
    step_size_tangent: float = Field(default=0.0, description="Step size along the estimated tangent subspace")
    normal_projection: bool = Field(default=False, description="Project the gradient onto the estimated normals")
    lock_neighbors: bool = Field(default=False, description="Compute neighbors once and reuse them every iteration")
    num_threads: int = Field(default=1, description="Number of worker threads")
    max_leaf_size: int = Field(default=10, description="Maximum number of points in a k-d tree leaf")
    index_backend: Literal["kd_tree", "brute"] = Field(default="kd_tree")

    def check(self) -> None:
        """
        Validate the parameters that do not depend on the point cloud.

        Raises:
            ConfigurationError: On the first invalid parameter found
        """
        if self.num_neighbors <= 0:
            raise ConfigurationError(f"num_neighbors must be positive, got {self.num_neighbors}")
        if self.codimension <= 0:
            raise ConfigurationError(f"codimension must be positive, got {self.codimension}")
        if self.dimension is not None and self.codimension >= self.dimension:
            raise ConfigurationError(
                f"codimension ({self.codimension}) must be smaller than dimension ({self.dimension})"
            )
        if self.iterations < 0:
            raise ConfigurationError(f"iterations must be non-negative, got {self.iterations}")
        if self.num_threads < 1:
            raise ConfigurationError(f"num_threads must be at least 1, got {self.num_threads}")
        if self.max_leaf_size < 1:
            raise ConfigurationError(f"max_leaf_size must be at least 1, got {self.max_leaf_size}")
        if not (math.isfinite(self.step_size_normal) and math.isfinite(self.step_size_tangent)):
            raise ConfigurationError("step sizes must be finite")

    def validate_for(self, n_points: int, dimension: int) -> int:
        """
        Validate the configuration against a concrete point cloud shape.

        Args:
            n_points: Number of points n in the cloud
            dimension: Ambient dimension d of the cloud

        Returns:
            The resolved ambient dimension

        Raises:
            ConfigurationError: If k >= n, c >= d or any parameter is invalid
        """
        self.check()
        if self.dimension is not None and self.dimension != dimension:
            raise ConfigurationError(
                f"Configured dimension {self.dimension} does not match cloud dimension {dimension}"
            )
        if self.codimension >= dimension:
            raise ConfigurationError(
                f"Loaded point cloud with lower dimension ({dimension}) than codimension ({self.codimension})"
            )
        if self.num_neighbors >= n_points:
            raise ConfigurationError(
                f"num_neighbors ({self.num_neighbors}) must be smaller than the number of points ({n_points})"
            )
        return dimension

    def with_overrides(self, **overrides: Any) -> "SmoothingConfig":
        """Return a validated copy with the given fields replaced (None values are ignored)."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        try:
            return SmoothingConfig.model_validate({**self.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid smoothing parameters: {e}") from e


class PathsConfig(BaseModel):
    input: Optional[str] = Field(default=None, description="Default input .npy path")
    output: Optional[str] = Field(default=None, description="Default output .npy path")


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    file: Optional[str] = Field(default=None)


class AppConfig(BaseModel):
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -----------------------
# Loader
# -----------------------

# src/gradsmooth/utils/config.py -> repository root
REPO_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG = REPO_ROOT / "config" / "default.yaml"


def _read_yaml(cfg_path: Path) -> Dict[str, Any]:
    """Parse a YAML file into a mapping (an empty file is an empty mapping)."""
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse YAML in {cfg_path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Top level of {cfg_path} must be a mapping, got {type(raw).__name__}"
        )
    return raw


def load_config(path: Optional[str | Path] = None, *, allow_missing: bool = True) -> AppConfig:
    """
    Read an AppConfig from YAML.

    Without ``path`` the repository's ``config/default.yaml`` is used. A
    missing file yields the built-in defaults unless ``allow_missing`` is
    False.

    Raises:
        FileNotFoundError: The file is missing and ``allow_missing`` is False
        ConfigurationError: The file is not valid YAML, has unknown keys or
            holds invalid smoothing parameters
    """
    cfg_path = DEFAULT_CONFIG if path is None else Path(path)
    if not cfg_path.exists():
        if not allow_missing:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return AppConfig()

    try:
        cfg = AppConfig.model_validate(_read_yaml(cfg_path))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {cfg_path}: {e}") from e

    cfg.smoothing.check()
    return cfg
