# -*- coding: utf-8 -*-
"""
Centralised Configuration for the Multi-Series Forecaster
==========================================================

All configurable parameters are defined here as typed dataclasses.
The master ``Config`` class composes every sub-config and provides
serialisation, summary printing, and global singleton management.

Configuration Groups
--------------------
- PathConfig        — output / log directories
- ParallelConfig    — outer and inner pool sizes, executor backend
- SeasonalityConfig — seasonal period search
- ARMAConfig        — autoregressive hyperparameter grid
- BoostConfig       — feature-importance ensemble
- StackConfig       — stacked regression cross-validation
- VARConfig         — horizon, lag depth, objective, status output
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Optional
import json

from .parallel import default_subworkers, default_workers


# =========================================================================
# Path Configuration
# =========================================================================

@dataclass
class PathConfig:
    """File and directory paths, all derived from *base_dir*."""
    base_dir: Path = field(default_factory=lambda: Path.cwd())

    @property
    def output_dir(self) -> Path:
        return self.base_dir / "outputs"

    @property
    def results_dir(self) -> Path:
        return self.output_dir / "results"

    @property
    def logs_dir(self) -> Path:
        return self.output_dir / "logs"

    def ensure_directories(self) -> None:
        """Create every output directory if missing."""
        for d in [self.output_dir, self.results_dir, self.logs_dir]:
            d.mkdir(parents=True, exist_ok=True)


# =========================================================================
# Parallelism
# =========================================================================

@dataclass
class ParallelConfig:
    """Pool sizes.  ``None`` resolves to the core-count defaults."""
    n_workers: Optional[int] = None       # outer pool (per-series units)
    n_subworkers: Optional[int] = None    # inner pool (per-unit optimisation)
    backend: str = "process"              # 'process' or 'thread'

    @property
    def default_workers(self) -> int:
        return default_workers()

    @property
    def default_subworkers(self) -> int:
        return default_subworkers()


# =========================================================================
# Univariate collaborators
# =========================================================================

@dataclass
class SeasonalityConfig:
    """Seasonal period search bounds."""
    max_period_fraction: float = 1.0 / 3
    min_subsequence: int = 3


@dataclass
class ARMAConfig:
    """Hyperparameter grid searched on the 2h holdout."""
    methods: List[str] = field(default_factory=lambda: ["lin", "nonlin", "both"])
    weight_schemes: List[str] = field(default_factory=lambda: ["equal", "informative"])
    max_periods: int = 3
    max_candidates: int = 10


# =========================================================================
# Multivariate collaborators
# =========================================================================

@dataclass
class BoostConfig:
    """Random-subspace feature-importance ensemble."""
    learner_trials: int = 100
    epochs: int = 100
    holdout_fraction: float = 0.2
    n_neighbors: int = 5
    random_state: int = 42


@dataclass
class StackConfig:
    """Stacked regression cross-validation grid."""
    cv_folds: int = 3
    k_grid: List[int] = field(default_factory=lambda: [1, 2, 3, 5, 8, 13])
    threshold_grid: List[float] = field(default_factory=lambda: [0.0, 0.2, 0.4, 0.6, 0.8])


# =========================================================================
# Forecast run
# =========================================================================

@dataclass
class VARConfig:
    """Run-level settings for ``NonparametricVAR``."""
    h: int = 12
    tau: int = 0
    objective: str = "min"     # 'min' / 'max' (or 'minimize' / 'maximize')
    status: bool = True


# =========================================================================
# Master Configuration
# =========================================================================

@dataclass
class Config:
    """Master configuration composing every sub-config."""
    paths: PathConfig = field(default_factory=PathConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)

    # Univariate stage
    seasonality: SeasonalityConfig = field(default_factory=SeasonalityConfig)
    arma: ARMAConfig = field(default_factory=ARMAConfig)

    # Multivariate stage
    boost: BoostConfig = field(default_factory=BoostConfig)
    stack: StackConfig = field(default_factory=StackConfig)

    var: VARConfig = field(default_factory=VARConfig)

    # --- convenience properties ---

    @property
    def output_dir(self) -> str:
        return str(self.paths.output_dir)

    # --- serialisation ---

    def to_dict(self) -> Dict:
        def _cvt(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: _cvt(v) for k, v in obj.__dict__.items()}
            if isinstance(obj, Path):
                return str(obj)
            if isinstance(obj, (list, tuple)):
                return [_cvt(i) for i in obj]
            if isinstance(obj, dict):
                return {k: _cvt(v) for k, v in obj.items()}
            return obj
        return _cvt(self)

    def save(self, filepath: Path) -> None:
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def summary(self) -> str:
        outer = self.parallel.n_workers or self.parallel.default_workers
        inner = self.parallel.n_subworkers or self.parallel.default_subworkers
        return (
            f"\n{'='*72}\n"
            f"  Multi-Series Forecaster Configuration Summary\n"
            f"{'='*72}\n\n"
            f"  RUN\n"
            f"    Horizon (h)     : {self.var.h}\n"
            f"    Lag depth (tau) : {self.var.tau}\n"
            f"    Objective       : {self.var.objective}\n"
            f"    Status output   : {self.var.status}\n\n"
            f"  PARALLELISM\n"
            f"    Backend         : {self.parallel.backend}\n"
            f"    Outer workers   : {outer}\n"
            f"    Inner workers   : {inner}\n\n"
            f"  UNIVARIATE\n"
            f"    Max period frac : {self.seasonality.max_period_fraction:.3f}\n"
            f"    Methods         : {', '.join(self.arma.methods)}\n"
            f"    Weight schemes  : {', '.join(self.arma.weight_schemes)}\n"
            f"    Max periods     : {self.arma.max_periods}\n\n"
            f"  MULTIVARIATE\n"
            f"    Learner trials  : {self.boost.learner_trials}\n"
            f"    Epochs          : {self.boost.epochs}\n"
            f"    Holdout         : {self.boost.holdout_fraction:.0%}\n"
            f"    CV folds        : {self.stack.cv_folds}\n"
            f"{'='*72}\n"
        )


# =========================================================================
# Global Config Singleton
# =========================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Return global config (create default on first call)."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_default_config() -> Config:
    """Return a *fresh* default Config instance."""
    return Config()


def set_config(config: Config) -> None:
    """Replace the global config singleton."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset to a fresh default Config."""
    global _config
    _config = Config()
