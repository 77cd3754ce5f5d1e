"""
Configuration for the tuning engine.

Every section is a dataclass with working defaults. ``EngineConfig.from_yaml``
loads overrides from a YAML file, and a handful of environment variables take
the highest priority so hosts can flip behaviour without editing files:

- ``PERFTUNER_ADAPTIVE_ENABLED``: enable/disable adaptive profile stepping
- ``PERFTUNER_SEED``: seed for every injected random source
- ``PERFTUNER_STORE_DIR``: directory for the JSON file store
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip().lower() in _TRUTHY


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidConfigurationError(message)


@dataclass
class AdaptiveTuningConfig:
    """Closed-loop controller settings."""
    enabled: bool = True
    sampling_interval_s: float = 1.0
    window_seconds: float = 10.0
    max_window_samples: int = 600
    min_fps_threshold: float = 45.0
    max_latency_threshold_ms: float = 33.0
    promote_threshold: float = 0.9
    demote_threshold: float = 0.7
    high_interaction: float = 0.8
    low_interaction: float = 0.3
    interaction_window_seconds: float = 5.0
    interaction_saturation: int = 10

    def validate(self) -> None:
        _require(self.sampling_interval_s > 0, "sampling_interval_s must be > 0")
        _require(self.window_seconds > 0, "window_seconds must be > 0")
        _require(self.max_window_samples >= 1, "max_window_samples must be >= 1")
        _require(self.max_latency_threshold_ms > 0, "max_latency_threshold_ms must be > 0")
        _require(
            self.demote_threshold < self.promote_threshold,
            f"demote_threshold ({self.demote_threshold}) must be below "
            f"promote_threshold ({self.promote_threshold})",
        )
        _require(
            0.0 <= self.low_interaction < self.high_interaction <= 1.0,
            "interaction thresholds must satisfy 0 <= low < high <= 1",
        )
        _require(self.interaction_window_seconds > 0, "interaction_window_seconds must be > 0")
        _require(self.interaction_saturation >= 1, "interaction_saturation must be >= 1")


@dataclass
class OptimizationConfig:
    """Parameter optimizer search settings."""
    max_iterations: int = 10
    convergence_threshold: float = 0.05
    learning_rate: float = 0.1
    exploration_rate: float = 0.2
    min_improvement: float = 0.05

    def validate(self) -> None:
        _require(1 <= self.max_iterations <= 1000,
                 f"max_iterations must be in [1, 1000], got {self.max_iterations}")
        _require(0.0 <= self.convergence_threshold < 1.0,
                 f"convergence_threshold must be in [0, 1), got {self.convergence_threshold}")
        _require(0.0 < self.learning_rate <= 1.0,
                 f"learning_rate must be in (0, 1], got {self.learning_rate}")
        _require(0.0 <= self.exploration_rate <= 1.0,
                 f"exploration_rate must be in [0, 1], got {self.exploration_rate}")
        _require(0.0 <= self.min_improvement < 1.0,
                 f"min_improvement must be in [0, 1), got {self.min_improvement}")


@dataclass
class ValidationConfig:
    """Parameter validator sweep settings."""
    test_iterations: int = 5
    stability_threshold: float = 0.1
    performance_weight: float = 0.7
    stability_weight: float = 0.3
    min_confidence: float = 0.6

    def validate(self) -> None:
        _require(1 <= self.test_iterations <= 100,
                 f"test_iterations must be in [1, 100], got {self.test_iterations}")
        _require(0.0 <= self.stability_threshold <= 1.0, "stability_threshold must be in [0, 1]")
        _require(self.performance_weight >= 0 and self.stability_weight >= 0,
                 "weights must be non-negative")
        _require(self.performance_weight + self.stability_weight > 0,
                 "performance_weight + stability_weight must be > 0")
        _require(0.0 <= self.min_confidence <= 1.0, "min_confidence must be in [0, 1]")


@dataclass
class LearningConfig:
    """Cross-device learner settings."""
    assign_similarity: float = 0.7
    recommend_similarity: float = 0.6
    auto_train_queue_size: int = 5
    max_kmeans_iterations: int = 100
    max_clusters: int = 5

    def validate(self) -> None:
        _require(0.0 <= self.assign_similarity <= 1.0, "assign_similarity must be in [0, 1]")
        _require(0.0 <= self.recommend_similarity <= 1.0, "recommend_similarity must be in [0, 1]")
        _require(self.auto_train_queue_size >= 0, "auto_train_queue_size must be >= 0")
        _require(self.max_kmeans_iterations >= 1, "max_kmeans_iterations must be >= 1")
        _require(self.max_clusters >= 1, "max_clusters must be >= 1")


@dataclass
class EngineConfig:
    """Top-level configuration handed to ``TuningEngine``."""
    adaptive: AdaptiveTuningConfig = field(default_factory=AdaptiveTuningConfig)
    optimization: OptimizationConfig = field(default_factory=OptimizationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    rng_seed: Optional[int] = None
    store_dir: Optional[str] = None
    min_recommendation_confidence: float = 0.6

    def __post_init__(self):
        self.apply_env_overrides()

    def apply_env_overrides(self) -> None:
        """Environment variables win over file and constructor values."""
        enabled = _env_flag("PERFTUNER_ADAPTIVE_ENABLED")
        if enabled is not None:
            self.adaptive.enabled = enabled
        seed = os.getenv("PERFTUNER_SEED")
        if seed:
            try:
                self.rng_seed = int(seed)
            except ValueError:
                logger.warning(f"Ignoring non-integer PERFTUNER_SEED={seed!r}")
        store_dir = os.getenv("PERFTUNER_STORE_DIR")
        if store_dir:
            self.store_dir = store_dir

    def validate(self) -> None:
        self.adaptive.validate()
        self.optimization.validate()
        self.validation.validate()
        self.learning.validate()
        _require(0.0 <= self.min_recommendation_confidence <= 1.0,
                 "min_recommendation_confidence must be in [0, 1]")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "EngineConfig":
        cfg = cfg or {}
        return cls(
            adaptive=_section(AdaptiveTuningConfig, cfg.get("adaptive")),
            optimization=_section(OptimizationConfig, cfg.get("optimization")),
            validation=_section(ValidationConfig, cfg.get("validation")),
            learning=_section(LearningConfig, cfg.get("learning")),
            rng_seed=cfg.get("rng_seed"),
            store_dir=cfg.get("store_dir"),
            min_recommendation_confidence=float(cfg.get("min_recommendation_confidence", 0.6)),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EngineConfig":
        with open(yaml_path, "r") as f:
            cfg = yaml.safe_load(f) or {}
        config = cls.from_dict(cfg)
        logger.info(f"Loaded engine config from {yaml_path}")
        return config


def _section(section_cls, raw: Optional[Dict[str, Any]]):
    """Build a config section, ignoring unknown keys with a warning."""
    raw = raw or {}
    known = {f.name for f in fields(section_cls)}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown {section_cls.__name__} keys: {sorted(unknown)}")
    return section_cls(**{k: v for k, v in raw.items() if k in known})
