import numpy as np
from sklearn.utils import check_random_state
from typing import NamedTuple, Optional, Union

from kmseg.errors import InvalidArgument

DEFAULT_MAX_ITERATIONS = 30

SeedLike = Optional[Union[int, np.random.RandomState]]


class ClusterResult(NamedTuple):
    centroids: np.ndarray  # k x 3
    labels: np.ndarray     # n, index of the centroid each point is assigned to
    iterations: int        # number of assignment/update passes actually run
    converged: bool        # True if the last pass changed no label


def squared_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Return the n x k matrix of squared Euclidean distances."""
    dists = np.empty((points.shape[0], centroids.shape[0]), dtype=np.float64)
    # One column at a time keeps memory at n*k instead of n*k*3.
    for j, centroid in enumerate(centroids):
        diff = points - centroid
        dists[:, j] = np.einsum("ij,ij->i", diff, diff)
    return dists


def assign_labels(points, centroids) -> np.ndarray:
    """
    Assign every point to its nearest centroid.

    Exact ties go to the lowest centroid index (np.argmin returns the first
    minimum).
    """
    points = np.asarray(points, dtype=np.float64)
    centroids = np.asarray(centroids, dtype=np.float64)
    return np.argmin(squared_distances(points, centroids), axis=1)


def initial_centroids(points, k: int, seed: SeedLike = None) -> np.ndarray:
    """Pick k distinct points (without replacement) as starting centroids."""
    points = np.asarray(points, dtype=np.float64)
    rng = check_random_state(seed)
    indices = rng.choice(points.shape[0], size=k, replace=False)
    return points[indices].copy()


def update_centroids(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Move each centroid to the channel-wise mean of its assigned points.

    A centroid with no assigned points keeps its previous value.
    """
    k = centroids.shape[0]
    sums = np.zeros((k, 3), dtype=np.float64)
    np.add.at(sums, labels, points)
    counts = np.bincount(labels, minlength=k)

    updated = centroids.copy()
    occupied = counts > 0
    updated[occupied] = sums[occupied] / counts[occupied, None]
    return updated


def _validate(points: np.ndarray, k: int, max_iterations: int):
    if points.ndim != 2 or points.shape[1] != 3:
        raise InvalidArgument(f"Expected an Nx3 array of color points, got shape {points.shape}.")
    n = points.shape[0]
    if n == 0:
        raise InvalidArgument("Cannot cluster an empty point set.")
    if k < 1:
        raise InvalidArgument(f"k must be at least 1, got {k}.")
    if k > n:
        raise InvalidArgument(f"k ({k}) cannot exceed the number of points ({n}).")
    if max_iterations < 0:
        raise InvalidArgument(f"max_iterations must be non-negative, got {max_iterations}.")


def kmeans(
    points,
    k: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    seed: SeedLike = None,
) -> ClusterResult:
    """
    Cluster color points with Lloyd's algorithm.

    Args:
        points (array-like): Nx3 color points in [0, 1].
        k (int): Number of clusters, 1 <= k <= N.
        max_iterations (int): Upper bound on assignment/update passes. 0 returns
            the randomly chosen initial centroids untouched.
        seed (int, np.random.RandomState, optional): Source of randomness for
            picking the initial centroids. Pass a fixed value for reproducible runs.

    Returns:
        ClusterResult: Final centroids, per-point labels, passes run and whether
        the run stopped at a fixed point.

    Raises:
        InvalidArgument: If points is empty or not Nx3, k is out of [1, N], or
            max_iterations is negative.
    """
    points = np.asarray(points, dtype=np.float64)
    _validate(points, k, max_iterations)

    centroids = initial_centroids(points, k, seed)
    if max_iterations == 0:
        return ClusterResult(centroids, assign_labels(points, centroids), 0, False)

    # No previous assignment exists before the first pass, so it always counts as changed.
    labels = np.full(points.shape[0], -1, dtype=np.intp)
    iterations = 0
    converged = False
    for _ in range(max_iterations):
        new_labels = assign_labels(points, centroids)
        changed = bool(np.any(new_labels != labels))
        labels = new_labels

        centroids = update_centroids(points, labels, centroids)
        iterations += 1

        if not changed:
            converged = True
            break

    return ClusterResult(centroids, labels, iterations, converged)
