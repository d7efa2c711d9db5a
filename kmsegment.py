import json
import math
import sys
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import rich.traceback
import typer
from PIL import UnidentifiedImageError

from kmseg import file_utils, legend
from kmseg.camera import CameraState
from kmseg.cluster import DEFAULT_MAX_ITERATIONS
from kmseg.errors import InvalidArgument
from kmseg.gestures import events_from_records
from kmseg.session import SegmentationSession


class KMFile(Enum):
    SEGMENTED = "segmented"
    POINT_CLOUD = "point_cloud"
    PALETTE_LEGEND = "palette_legend"


KM_FILE_BASENAMES: Dict[KMFile, str] = {
    KMFile.SEGMENTED: "kmseg-segmented.png",
    KMFile.POINT_CLOUD: "kmseg-point_cloud.png",
    KMFile.PALETTE_LEGEND: "kmseg-palette_legend.png",
}


def validate_output_dir(
    output_dir: Path, overwrite: bool = False, expect: Optional[List[KMFile]] = None,
) -> Dict[KMFile, Path]:
    if expect and not overwrite:
        clobbered_files_found = [
            str(output_dir / KM_FILE_BASENAMES[key]) for key in expect
            if (output_dir / KM_FILE_BASENAMES[key]).exists()
        ]
        if clobbered_files_found:
            typer.secho("Error: Files already exist:", fg=typer.colors.RED)
            for path_str in clobbered_files_found: typer.secho(f"  {path_str}", fg=typer.colors.RED)
            typer.secho("Use --yes (-y) to overwrite.", fg=typer.colors.YELLOW); raise typer.Exit(code=1)

    return {key: output_dir / name for key, name in KM_FILE_BASENAMES.items()}


def load_gesture_script(path: Path) -> list:
    """Read a JSON array of gesture records (see kmseg.gestures.events_from_records)."""
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValueError("Gesture script must be a JSON array of event objects.")
    return list(events_from_records(records))


def kmseg_cli(
    input_path: Path = typer.Argument(
        ...,
        help="Input image file (e.g., image.jpg).",
        metavar="INPUT_FILE",
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
    ),
    output_dir: Path = typer.Argument(
        ...,
        help="Directory for output files. Will be created if it doesn't exist.",
        metavar="OUTPUT_DIRECTORY",
        file_okay=False, dir_okay=True, writable=True, resolve_path=True,
    ),
    # --- Clustering Options ---
    k: int = typer.Option(3, "--k", "-k", min=1, help="Number of color clusters. Default: 3."),
    max_iterations: int = typer.Option(
        DEFAULT_MAX_ITERATIONS, "--max-iterations", min=0,
        help=f"Maximum k-means iterations. Default: {DEFAULT_MAX_ITERATIONS}."
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", envvar="KMSEG_SEED",
        help="Seed for picking the initial centroids. Default: random."
    ),
    max_width: int = typer.Option(
        file_utils.DEFAULT_MAX_WIDTH, "--max-width", min=1,
        help=f"Downsample wider images to this width before clustering. Default: {file_utils.DEFAULT_MAX_WIDTH}px."
    ),
    plot_only: bool = typer.Option(False, "--plot-only", help="Only plot the color cloud, skip clustering."),
    # --- View Options ---
    plot_size: int = typer.Option(600, "--plot-size", min=16, help="Side of the square point-cloud image. Default: 600px."),
    rot_x: float = typer.Option(25.0, "--rot-x", help="Initial rotation about the horizontal axis, degrees. Default: 25."),
    rot_y: float = typer.Option(-30.0, "--rot-y", help="Initial rotation about the vertical axis, degrees. Default: -30."),
    zoom: float = typer.Option(1.2, "--zoom", min=0.01, help="Initial zoom. Default: 1.2."),
    gestures: Optional[Path] = typer.Option(
        None, "--gestures", help="JSON file of pointer/wheel events to replay onto the view before plotting.",
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
    ),
    # --- Output Options ---
    skip_legend: bool = typer.Option(False, "--skip-legend", help="Skip generating palette legend."),
    swatch_size: int = typer.Option(40, "--swatch-size", min=10, help="Legend swatch size. Default: 40px."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite existing files."),
):
    """
    Segments an image by k-means clustering of its colors and plots the color cloud.
    """
    command_line_str = " ".join(sys.argv)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        typer.echo(f"Using output directory: {output_dir}")
    except OSError as e:
        typer.secho(f"Error creating output directory {output_dir}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)

    expected_outputs: List[KMFile] = [KMFile.POINT_CLOUD]
    if not plot_only:
        expected_outputs.append(KMFile.SEGMENTED)
        if not skip_legend:
            expected_outputs.append(KMFile.PALETTE_LEGEND)
    output_paths = validate_output_dir(output_dir, overwrite=yes, expect=expected_outputs)

    camera = CameraState(rot_x=math.radians(rot_x), rot_y=math.radians(rot_y), zoom=zoom)
    try:
        session = SegmentationSession.from_file(input_path, max_width=max_width, camera=camera)
    except (FileNotFoundError, UnidentifiedImageError, InvalidArgument) as e:
        typer.secho(f"Error loading image {input_path}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)

    if gestures:
        try:
            events = load_gesture_script(gestures)
        except (OSError, ValueError) as e:
            typer.secho(f"Error reading gesture script {gestures}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)
        changes = session.gestures.replay(events)
        typer.echo(f"Replayed {len(events)} gesture event(s), {changes} changed the view.")

    points = session.build_points()
    typer.echo(f"Plotted {len(points)} points")

    if not plot_only:
        try:
            result = session.run_clustering(k, max_iterations=max_iterations, seed=seed)
        except InvalidArgument as e:
            typer.secho(f"Error: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)
        cluster_metadata = {
            "K": str(k),
            "MaxIterations": str(max_iterations),
            "Seed": str(seed) if seed is not None else "random",
            "Iterations": str(result.iterations),
            "Converged": str(result.converged),
        }
    else:
        cluster_metadata = {}

    view_metadata = {
        "RotX": f"{session.camera.rot_x:.6f}",
        "RotY": f"{session.camera.rot_y:.6f}",
        "Zoom": f"{session.camera.zoom:.6f}",
        "Pan": f"{session.camera.pan_x:.2f},{session.camera.pan_y:.2f}",
    }

    plot_path = output_paths[KMFile.POINT_CLOUD]
    file_utils.save_png(
        session.render_plot((plot_size, plot_size)),
        plot_path,
        command_line_invocation=command_line_str,
        additional_metadata={
            "FileType": "Point Cloud Plot",
            "SourceImage": str(input_path),
            "Points": str(len(points)),
            **cluster_metadata,
            **view_metadata,
        }
    )
    typer.echo(f"Point cloud plot saved to: {plot_path}")

    if not plot_only:
        segmented_path = output_paths[KMFile.SEGMENTED]
        file_utils.save_png(
            session.segmented(),
            segmented_path,
            command_line_invocation=command_line_str,
            additional_metadata={
                "FileType": "Segmented Image",
                "SourceImage": str(input_path),
                "Size": f"{session.width}x{session.height}",
                **cluster_metadata,
            }
        )
        typer.echo(f"K-means finished, segmented image saved to: {segmented_path}")

        if not skip_legend:
            legend_image = legend.create_legend_image(session.centroids, swatch_size=swatch_size)
            if legend_image:
                legend_path = output_paths[KMFile.PALETTE_LEGEND]
                file_utils.save_png(
                    legend_image,
                    legend_path,
                    command_line_invocation=command_line_str,
                    additional_metadata={
                        "FileType": "Palette Legend",
                        "PaletteColors": str(len(session.centroids)),
                        "SwatchSize": str(swatch_size),
                    }
                )
                typer.echo(f"Palette legend saved to: {legend_path}")
            else:
                typer.secho("Warning: Palette legend could not be generated (no centroids).", fg=typer.colors.YELLOW)

    typer.secho("\nProcessing complete!", fg=typer.colors.GREEN)
    typer.echo(f"Outputs in: {output_dir.resolve()}")


if __name__ == "__main__":
    rich.traceback.install(show_locals=False, suppress=[typer])
    typer.run(kmseg_cli)
