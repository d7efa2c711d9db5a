# tests/test_cli.py
import json
import subprocess
import sys
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

REPO_ROOT = Path(__file__).resolve().parent.parent


def create_dummy_image(path: Path):
    img = Image.new("RGB", (64, 64), color=(150, 120, 200))
    draw = ImageDraw.Draw(img)
    draw.rectangle([(8, 8), (32, 32)], fill=(200, 50, 50))
    draw.ellipse([(30, 30), (60, 60)], fill=(50, 200, 50))
    img.save(path)


def run_cli(*args):
    return subprocess.run(
        [sys.executable, "kmsegment.py", *map(str, args)],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
    )


def test_kmsegment_cli_with_all_outputs(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    output_dir = tmp_path / "output"

    result = run_cli(input_image, output_dir, "--k", "3", "--seed", "7", "--plot-size", "128")

    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    for filename in ["kmseg-segmented.png", "kmseg-point_cloud.png", "kmseg-palette_legend.png"]:
        assert (output_dir / filename).exists(), f"Expected output file not found: {filename}"
    assert "Processing complete!" in result.stdout

    with Image.open(output_dir / "kmseg-segmented.png") as seg:
        assert seg.size == (64, 64)
        assert seg.info["kmseg:K"] == "3"
        assert seg.info["kmseg:Seed"] == "7"
        colors = {c for _, c in seg.getcolors(maxcolors=64 * 64)}
    assert len(colors) <= 3


def test_refuses_to_overwrite_without_yes(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    output_dir = tmp_path / "output"

    assert run_cli(input_image, output_dir, "--seed", "1").returncode == 0
    again = run_cli(input_image, output_dir, "--seed", "1")
    assert again.returncode == 1
    assert "already exist" in again.stdout
    assert run_cli(input_image, output_dir, "--seed", "1", "-y").returncode == 0


def test_k_larger_than_pixel_count_fails(tmp_path):
    input_image = tmp_path / "tiny.png"
    Image.new("RGB", (2, 1), color=(0, 0, 0)).save(input_image)

    result = run_cli(input_image, tmp_path / "out", "--k", "3")

    assert result.returncode == 1
    assert "cannot exceed" in result.stdout


def test_plot_only_with_gesture_script(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    script = tmp_path / "gestures.json"
    script.write_text(json.dumps([
        {"type": "down", "id": 1, "x": 0, "y": 0},
        {"type": "move", "id": 1, "x": 30, "y": 0},
        {"type": "up", "id": 1, "x": 30, "y": 0},
        {"type": "wheel", "deltaY": -100},
    ]))
    output_dir = tmp_path / "output"

    result = run_cli(input_image, output_dir, "--plot-only", "--gestures", script, "--plot-size", "96")

    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert (output_dir / "kmseg-point_cloud.png").exists()
    assert not (output_dir / "kmseg-segmented.png").exists()
    assert "2 changed the view" in result.stdout
    with Image.open(output_dir / "kmseg-point_cloud.png") as plot_img:
        assert plot_img.size == (96, 96)
        assert float(plot_img.info["kmseg:Zoom"]) == pytest.approx(1.2 * 1.1)


def test_kmsegment_cli_help_output():
    result = run_cli("--help")
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()


def test_extract_meta_script(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    output_dir = tmp_path / "output"
    assert run_cli(input_image, output_dir, "--seed", "3").returncode == 0

    result = subprocess.run(
        [sys.executable, "extract_kmseg_meta.py", str(output_dir / "kmseg-segmented.png")],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
    )

    assert result.returncode == 0
    assert "FileType: Segmented Image" in result.stdout
    assert "Seed: 3" in result.stdout
