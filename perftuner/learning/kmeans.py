"""
K-means over device feature vectors.

Centroids start at ``k`` distinct data points drawn with the injected
``numpy.random.Generator``. A centroid whose group empties keeps its previous
position. The loop stops when the largest centroid movement in an iteration
falls below ``threshold`` or after ``max_iterations``.
"""

from dataclasses import dataclass
from typing import Generator, Optional, Tuple

import numpy as np

from ..tasks import run_steps
from ..types import TrainingProgress


@dataclass
class KMeansResult:
    centroids: np.ndarray
    labels: np.ndarray
    iterations: int
    movement: float
    converged: bool


def assign(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for every point (ties go to the lowest index)."""
    dists = np.linalg.norm(points[:, None, :] - centroids[None, :, :], axis=2)
    return np.argmin(dists, axis=1)


def kmeans_step(points: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
    """One assign + update pass. Returns (new centroids, labels, max movement)."""
    labels = assign(points, centroids)
    updated = centroids.copy()
    for j in range(len(centroids)):
        members = points[labels == j]
        if len(members):
            updated[j] = members.mean(axis=0)
    movement = float(np.max(np.linalg.norm(updated - centroids, axis=1))) if len(centroids) else 0.0
    return updated, labels, movement


def init_centroids(points: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    idx = rng.choice(len(points), size=k, replace=False)
    return points[np.sort(idx)].astype(float)


def iter_kmeans(
    points: np.ndarray,
    k: int,
    rng: np.random.Generator,
    threshold: float,
    max_iterations: int = 100,
    centroids: Optional[np.ndarray] = None,
) -> Generator[TrainingProgress, None, KMeansResult]:
    points = np.asarray(points, dtype=float)
    if len(points) == 0:
        raise ValueError("k-means needs at least one point")
    k = max(1, min(k, len(points)))
    centroids = init_centroids(points, k, rng) if centroids is None else np.asarray(centroids, dtype=float)

    iterations = 0
    movement = float("inf")
    while iterations < max_iterations:
        centroids, labels, movement = kmeans_step(points, centroids)
        iterations += 1
        yield TrainingProgress(stage="kmeans", iteration=iterations, movement=movement)
        if movement < threshold:
            break

    # Labels that match the final centroids
    labels = assign(points, centroids)
    return KMeansResult(
        centroids=centroids,
        labels=labels,
        iterations=iterations,
        movement=movement,
        converged=movement < threshold,
    )


def kmeans(points: np.ndarray, k: int, rng: np.random.Generator, threshold: float,
           max_iterations: int = 100) -> KMeansResult:
    return run_steps(iter_kmeans(points, k, rng, threshold, max_iterations))
