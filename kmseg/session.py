from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np
import typer
from PIL import Image

from kmseg.camera import CameraState
from kmseg.cluster import DEFAULT_MAX_ITERATIONS, ClusterResult, SeedLike, kmeans
from kmseg.errors import InvalidArgument
from kmseg.file_utils import DEFAULT_MAX_WIDTH, load_image
from kmseg.gestures import GestureController
from kmseg.plot import render_point_cloud
from kmseg.samples import extract_color_points
from kmseg.segmentation import segmented_image

ALREADY_CLUSTERED_MESSAGE = "K-means already run. Reset or load a new image to run again."


class SegmentationSession:
    """
    Everything that belongs to one loaded image: its pixels, the color points
    built from them, the clustering result and the view of the point cloud.

    Clustering runs at most once per loaded image. A second run_clustering()
    call before reset() or load() does nothing and reports through notify.
    """

    def __init__(
        self,
        pixels,
        notify: Callable[[str], None] = typer.echo,
        camera: Optional[CameraState] = None,
    ):
        self.notify = notify
        self.camera = camera if camera is not None else CameraState()
        self.gestures = GestureController(self.camera)
        self.load(pixels)

    @classmethod
    def from_file(
        cls,
        input_path: Union[str, Path],
        max_width: int = DEFAULT_MAX_WIDTH,
        notify: Callable[[str], None] = typer.echo,
        camera: Optional[CameraState] = None,
    ) -> "SegmentationSession":
        session = cls(load_image(input_path, max_width), notify=notify, camera=camera)
        session.notify(f"Image loaded {session.width}x{session.height}")
        return session

    def load(self, pixels) -> None:
        """Replace the image; drops points, centroids and the run guard."""
        pixels = np.asarray(pixels, dtype=np.float32)
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise InvalidArgument(f"Expected an HxWx3 pixel buffer, got shape {pixels.shape}.")
        self.pixels = pixels
        self.reset()

    def reset(self) -> None:
        self.points: Optional[np.ndarray] = None
        self.result: Optional[ClusterResult] = None
        self.clustered = False

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def centroids(self) -> Optional[np.ndarray]:
        return self.result.centroids if self.result is not None else None

    def build_points(self) -> np.ndarray:
        self.points = extract_color_points(self.pixels)
        return self.points

    def run_clustering(
        self,
        k: int,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        seed: SeedLike = None,
    ) -> Optional[ClusterResult]:
        """
        Cluster this image's colors once.

        Returns:
            ClusterResult, or None if clustering already ran for this image.

        Raises:
            InvalidArgument: From kmeans(); the guard stays unset in that case.
        """
        if self.clustered:
            self.notify(ALREADY_CLUSTERED_MESSAGE)
            return None
        if self.points is None:
            self.build_points()

        self.notify(f"Running k-means k={k} ...")
        result = kmeans(self.points, k, max_iterations=max_iterations, seed=seed)
        self.result = result
        self.clustered = True
        state = "converged" if result.converged else "stopped"
        self.notify(f"K-means {state} after {result.iterations} iteration(s)")
        return result

    def render_plot(self, size: Tuple[int, int] = (600, 600)) -> Image.Image:
        points = self.points if self.points is not None else self.build_points()
        return render_point_cloud(points, self.camera, size=size, centroids=self.centroids)

    def segmented(self) -> Optional[Image.Image]:
        """The recolored image, or None before clustering has run."""
        if self.result is None:
            return None
        return segmented_image(self.pixels, self.result.centroids)
