from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--canvas-width", "160", "--canvas-height", "120"]
HIGHRES_ARGS = ["--mode", "highres", "--resolution", "custom", "--width", "320", "--height", "240"]


@dataclass
class Example:
    name: str
    args: list[str]
    output: str

    @property
    def path(self) -> Path:
        return EXAMPLES_ROOT / self.name / self.output

    def full_args(self) -> list[str]:
        return [sys.executable, "render.py", *self.args, "--output", str(self.path)]


EXAMPLES: list[Example] = [
    Example("max-iterations", [*BASE_ARGS, "--max-iterations", "500"], "high-iterations.png"),
    Example("zoom", [*BASE_ARGS, "--zoom", "4"], "zoomed.png"),
    Example("offset", [*BASE_ARGS, "--zoom", "20", "--offset-real", "-0.745", "--offset-imag", "0.11"], "seahorse-valley.png"),
    Example("julia", [*BASE_ARGS, "--set", "julia"], "julia-default.png"),
    Example("julia-constant", [*BASE_ARGS, "--set", "julia", "--julia-real", "-0.8", "--julia-imag", "0.156"], "julia-dendrite.png"),
    Example("grayscale", [*BASE_ARGS, "--color-scheme", "grayscale"], "grayscale.png"),
    Example("blackwhite", [*BASE_ARGS, "--color-scheme", "blackwhite"], "blackwhite.png"),
    Example("cool", [*BASE_ARGS, "--color-scheme", "cool"], "cool.png"),
    Example("vibrant", [*BASE_ARGS, "--color-scheme", "vibrant"], "vibrant.png"),
    Example(
        "custom",
        [*BASE_ARGS, "--color-scheme", "custom", "--start-color", "#0a3ba0", "--middle-color", "#f5d300", "--end-color", "#ffffff"],
        "custom-gradient.png",
    ),
    Example("randomize", [*BASE_ARGS, "--color-scheme", "custom", "--randomize", "all", "--seed", "7"], "random-gradient.png"),
    Example("colormap", [*BASE_ARGS, "--colormap", "twilight_shifted"], "twilight.png"),
    Example("format", [*BASE_ARGS, "--format", "jpg"], "view.jpg"),
    Example("highres", HIGHRES_ARGS, "highres.png"),
    Example("chunk-size", [*HIGHRES_ARGS, "--chunk-size", "5000"], "big-chunks.png"),
    Example("animation", ["--mode", "animation", *BASE_ARGS, "--frames", "12", "--zoom-speed", "400"], "slow-zoom.gif"),
    Example("verbose", [*BASE_ARGS, "--verbose"], "diagnostic.png"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _ensure_clean([example.path.parent])
        example.path.parent.mkdir(parents=True, exist_ok=True)
        subprocess.run(example.full_args(), check=True)
        if not example.path.is_file():
            raise RuntimeError(f"Expected file {example.path} was not created")
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
