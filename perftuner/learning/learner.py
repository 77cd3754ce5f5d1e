"""
Cross-device learner.

Optimization results are queued with ``add_result`` and folded into the
``LearningModel`` by ``train``:

1. each queued device joins the most similar cluster (or starts a new one);
2. improvement-weighted global statistics are recomputed per tunable;
3. with two or more clusters, K-means regroups every member device;
4. the model is persisted.

Training works on a deep copy and swaps it in only when every stage finished,
so a cancelled or failed pass leaves the live model untouched and puts the
batch back at the front of the queue.
"""

import copy
import logging
import math
import random
import string
import time
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence, Tuple

import numpy as np

from ..config import LearningConfig
from ..device.capability import DEFAULT_CORES, DEFAULT_MEMORY_GB
from ..device.catalog import ProfileCatalog
from ..errors import ConcurrentOperationError
from ..events import log_event
from ..storage import LEARNING_MODEL_KEY, KeyValueStore, load_record, save_record
from ..tasks import CancellationToken, run_steps, run_steps_async
from ..types import (
    TUNABLE_PARAMETERS,
    CrossDeviceRecommendation,
    DeviceInfo,
    OptimizationResult,
    PerformanceProfile,
    TrainingProgress,
)
from .kmeans import iter_kmeans
from .model import (
    DeviceCluster,
    LearningModel,
    ParameterStats,
    create_initial_model,
    is_compatible,
)

logger = logging.getLogger(__name__)

FEATURE_COUNT = 5
RECENCY_HORIZON_S = 30 * 24 * 60 * 60
_ID_ALPHABET = string.ascii_lowercase + string.digits


def device_features(device: DeviceInfo) -> np.ndarray:
    """[memory, cores, capability, pixel ratio, touch] with documented defaults."""
    return np.array([
        DEFAULT_MEMORY_GB if device.memory_gb is None else device.memory_gb,
        DEFAULT_CORES if device.logical_cores is None else device.logical_cores,
        device.capability,
        device.pixel_ratio or 1.0,
        1.0 if device.touch_support else 0.0,
    ], dtype=float)


def similarity(a: DeviceInfo, b: DeviceInfo) -> float:
    """1 - euclidean distance / sqrt(feature count), floored at 0."""
    distance = float(np.linalg.norm(device_features(a) - device_features(b)))
    return max(0.0, 1.0 - distance / math.sqrt(FEATURE_COUNT))


def compute_centroid(devices: Sequence[DeviceInfo]) -> DeviceInfo:
    """Component-wise mean of numeric fields; touch if any member has touch."""
    if not devices:
        return DeviceInfo()
    feats = np.array([device_features(d) for d in devices])
    memory, cores, capability, pixel_ratio, _ = feats.mean(axis=0)
    battery = float(np.mean([0.5 if d.battery_level is None else d.battery_level for d in devices]))
    first = devices[0]
    return DeviceInfo(
        platform=first.platform,
        memory_gb=float(memory),
        logical_cores=float(cores),
        network=first.network,
        battery_level=battery,
        screen_resolution=first.screen_resolution,
        pixel_ratio=float(pixel_ratio),
        touch_support=any(d.touch_support for d in devices),
        capability=float(min(1.0, max(0.0, capability))),
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def weighted_stats(values: Sequence[float], weights: Sequence[float]) -> Tuple[float, float]:
    """Weighted mean and std. Negative weights count as 0; all-zero means uniform."""
    v = np.asarray(values, dtype=float)
    w = np.maximum(np.asarray(weights, dtype=float), 0.0)
    if w.sum() <= 0:
        w = np.ones_like(v)
    mean = float(np.average(v, weights=w))
    std = float(np.sqrt(np.average((v - mean) ** 2, weights=w)))
    return mean, std


class CrossDeviceLearner:
    def __init__(
        self,
        catalog: Optional[ProfileCatalog] = None,
        config: Optional[LearningConfig] = None,
        store: Optional[KeyValueStore] = None,
        rng: Optional[random.Random] = None,
        np_rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.catalog = catalog or ProfileCatalog()
        self.config = config or LearningConfig()
        self.config.validate()
        self.store = store
        self.rng = rng or random.Random()
        self.np_rng = np_rng or np.random.default_rng()
        self._clock = clock
        self.model: Optional[LearningModel] = None
        self._queue: List[Tuple[DeviceInfo, OptimizationResult]] = []
        self._training = False

    # ---- lifecycle -------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self.model is not None

    @property
    def training(self) -> bool:
        return self._training

    def load(self) -> LearningModel:
        """Load the stored model, falling back to a fresh one."""
        if self.store is None:
            self.model = create_initial_model()
        else:
            model = load_record(self.store, LEARNING_MODEL_KEY, LearningModel, create_initial_model)
            if not is_compatible(model.version):
                logger.warning(
                    f"Stored learning model version {model.version} is incompatible, starting fresh"
                )
                model = create_initial_model()
            self.model = model
        logger.info(
            f"Cross-device learner initialized with {len(self.model.clusters)} clusters "
            f"(version {self.model.version})"
        )
        return self.model

    def _ensure_loaded(self) -> LearningModel:
        if self.model is None:
            return self.load()
        return self.model

    def snapshot(self) -> LearningModel:
        """Deep copy of the live model for read-only consumers."""
        return self._ensure_loaded().model_copy(deep=True)

    # ---- queue and training ----------------------------------------------

    def add_result(self, device: DeviceInfo, result: OptimizationResult) -> None:
        if not result.success:
            logger.warning("Ignoring failed optimization result for learning")
            return
        self._queue.append((device, result))
        threshold = self.config.auto_train_queue_size
        if threshold and len(self._queue) >= threshold and not self._training:
            logger.info(f"Training queue reached {len(self._queue)}, training now")
            self.train()

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    def iter_train(self) -> Generator[TrainingProgress, None, bool]:
        if self._training:
            raise ConcurrentOperationError("Training is already in progress")
        self._ensure_loaded()
        return self._train_steps()

    def train(self, token: Optional[CancellationToken] = None) -> bool:
        """Process the queue. Returns False when there was nothing to train on."""
        return run_steps(self.iter_train(), token)

    async def train_async(self, token: Optional[CancellationToken] = None) -> bool:
        return await run_steps_async(self.iter_train(), token)

    def _train_steps(self):
        if self._training:
            raise ConcurrentOperationError("Training is already in progress")
        if not self._queue:
            return False
        self._training = True
        batch = self._queue[:]
        self._queue.clear()
        completed = False
        try:
            logger.info(f"Training cross-device model on {len(batch)} results")
            work = self.model.model_copy(deep=True)
            now = self._clock()

            for i, (device, result) in enumerate(batch, start=1):
                self._fold_into_clusters(work, device, result.optimized_profile, now)
                yield TrainingProgress(stage="assign", iteration=i)

            self._update_global(work, batch)
            yield TrainingProgress(stage="global")

            if len(work.clusters) >= 2:
                yield from self._recluster(work, now)

            work.last_training = now
            self.model = work
            completed = True
            if self.store is not None:
                save_record(self.store, LEARNING_MODEL_KEY, self.model)
            log_event(
                logger, "training_completed",
                batch=len(batch), clusters=len(work.clusters),
                throttle_mean=round(work.global_optimizations.throttle_interval.mean, 3),
            )
            return True
        finally:
            if not completed:
                self._queue[:0] = batch
                logger.info(f"Training aborted, {len(batch)} results returned to the queue")
            self._training = False

    def _fold_into_clusters(self, model: LearningModel, device: DeviceInfo,
                            profile: PerformanceProfile, now: float) -> None:
        best: Optional[DeviceCluster] = None
        best_sim = 0.0
        for cluster in model.clusters:
            sim = similarity(device, cluster.centroid)
            if sim > best_sim and sim > self.config.assign_similarity:
                best, best_sim = cluster, sim

        if best is not None:
            best.devices.append(device)
            best.performance_profiles.append(profile)
            best.centroid = compute_centroid(best.devices)
            best.last_updated = now
            self._refresh_cluster(best, now)
            logger.debug(f"Device folded into {best.name} (similarity={best_sim:.3f})")
            return

        cluster = DeviceCluster(
            id=self._new_cluster_id(now),
            name=f"Device Cluster {len(model.clusters) + 1}",
            devices=[device],
            centroid=device,
            performance_profiles=[profile],
            last_updated=now,
        )
        self._refresh_cluster(cluster, now)
        model.clusters.append(cluster)
        logger.debug(f"Created {cluster.name} ({cluster.id})")

    def _refresh_cluster(self, cluster: DeviceCluster, now: float) -> None:
        cluster.estimated_average_improvement = self.estimate_improvement(cluster)
        cluster.confidence = self.cluster_confidence(cluster, now)

    def estimate_improvement(self, cluster: DeviceCluster) -> float:
        """Mean relative throttle/debounce reduction versus the catalog preset."""
        if not cluster.performance_profiles:
            return 0.0
        base = self.catalog.select(cluster.centroid.capability)
        gains = [
            ((base.throttle_interval - p.throttle_interval) / base.throttle_interval
             + (base.debounce_delay - p.debounce_delay) / base.debounce_delay) / 2.0
            for p in cluster.performance_profiles
        ]
        return float(np.mean(gains))

    @staticmethod
    def cluster_confidence(cluster: DeviceCluster, now: float) -> float:
        size = min(len(cluster.devices) / 10.0, 1.0)
        recency = max(0.0, 1.0 - (now - cluster.last_updated) / RECENCY_HORIZON_S)
        return min(1.0, 0.5 + size * 0.3 + recency * 0.2)

    def _update_global(self, model: LearningModel, batch) -> None:
        improvements = [result.improvements.overall for _, result in batch]
        for name in TUNABLE_PARAMETERS:
            values = [getattr(result.optimized_profile, name) for _, result in batch]
            mean, std = weighted_stats(values, improvements)
            previous = model.global_optimizations.get(name)
            setattr(model.global_optimizations, name, ParameterStats(
                mean=mean,
                std=std,
                confidence=min(0.9, previous.confidence + 0.1),
            ))

    def _recluster(self, model: LearningModel, now: float):
        members: List[Tuple[DeviceInfo, PerformanceProfile]] = [
            (d, p)
            for cluster in model.clusters
            for d, p in zip(cluster.devices, cluster.performance_profiles)
        ]
        points = np.array([device_features(d) for d, _ in members])
        k = min(self.config.max_clusters, math.ceil(len(model.clusters) / 2))
        result = yield from iter_kmeans(
            points, k, self.np_rng, model.convergence_threshold,
            self.config.max_kmeans_iterations,
        )

        old = model.clusters
        rebuilt: List[DeviceCluster] = []
        for j in range(len(result.centroids)):
            idx = np.flatnonzero(result.labels == j)
            if len(idx) == 0:
                continue
            devices = [members[i][0] for i in idx]
            profiles = [members[i][1] for i in idx]
            source = old[len(rebuilt)] if len(rebuilt) < len(old) else None
            cluster = DeviceCluster(
                id=source.id if source is not None else self._new_cluster_id(now),
                name=f"Device Cluster {len(rebuilt) + 1}",
                devices=devices,
                centroid=compute_centroid(devices),
                performance_profiles=profiles,
                last_updated=now,
            )
            self._refresh_cluster(cluster, now)
            rebuilt.append(cluster)
        model.clusters = rebuilt
        logger.info(
            f"Re-clustered {len(members)} devices into {len(rebuilt)} clusters "
            f"(k={k}, iterations={result.iterations}, converged={result.converged})"
        )

    def _new_cluster_id(self, now: float) -> str:
        suffix = "".join(self.rng.choice(_ID_ALPHABET) for _ in range(9))
        return f"cluster_{int(now * 1000)}_{suffix}"

    # ---- queries ---------------------------------------------------------

    def recommend(self, device: DeviceInfo) -> Optional[CrossDeviceRecommendation]:
        """Profile learned from the most similar cluster, or from global statistics."""
        if self.model is None:
            return None

        best: Optional[DeviceCluster] = None
        best_sim = 0.0
        for cluster in self.model.clusters:
            sim = similarity(device, cluster.centroid)
            if sim > best_sim and sim > self.config.recommend_similarity:
                best, best_sim = cluster, sim

        base = self.catalog.select(device.capability)
        if best is None or not best.performance_profiles:
            stats = self.model.global_optimizations
            profile = base.with_tunables(**{
                name: max(1, round_half_up(stats.get(name).mean)) for name in TUNABLE_PARAMETERS
            })
            return CrossDeviceRecommendation(
                device=device,
                recommended_profile=profile,
                confidence=stats.throttle_interval.confidence,
                reasoning="Using global optimizations (no similar devices found)",
                similar_devices=[],
                estimated_improvement=0.1,
            )

        profile = base.with_tunables(**{
            name: max(1, round_half_up(float(np.mean(
                [getattr(p, name) for p in best.performance_profiles]
            ))))
            for name in TUNABLE_PARAMETERS
        })
        return CrossDeviceRecommendation(
            device=device,
            recommended_profile=profile,
            confidence=best.confidence * best_sim,
            reasoning=f"Based on {len(best.devices)} similar devices in {best.name}",
            similar_devices=list(best.devices),
            estimated_improvement=best.estimated_average_improvement,
            cluster_id=best.id,
        )

    def status(self) -> Dict[str, Any]:
        model = self.model
        return {
            "initialized": model is not None,
            "training": self._training,
            "cluster_count": len(model.clusters) if model else 0,
            "training_queue_length": len(self._queue),
            "last_training": model.last_training if model else None,
            "model_version": model.version if model else None,
        }

    def clusters(self) -> List[DeviceCluster]:
        return [c.model_copy(deep=True) for c in self._ensure_loaded().clusters]

    # ---- maintenance -----------------------------------------------------

    def clear(self) -> None:
        if self._training:
            raise ConcurrentOperationError("Cannot clear the model while training")
        self.model = create_initial_model()
        self._queue.clear()
        self._save()

    def update_learning_rate(self, rate: float) -> float:
        model = self._ensure_loaded()
        model.learning_rate = max(0.01, min(0.5, rate))
        self._save()
        return model.learning_rate

    def update_convergence_threshold(self, threshold: float) -> float:
        model = self._ensure_loaded()
        model.convergence_threshold = max(0.01, min(0.2, threshold))
        self._save()
        return model.convergence_threshold

    def _save(self) -> None:
        if self.store is not None and self.model is not None:
            save_record(self.store, LEARNING_MODEL_KEY, self.model)
