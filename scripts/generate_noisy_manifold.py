"""
Generate noisy samples of simple manifolds as .npy point clouds.

- circle: 1-manifold in R^2 (use --codimension 1)
- sphere: 2-manifold in R^3 (use --codimension 1)
- plane:  2-manifold in R^3 with wavy height (use --codimension 1)
- helix:  1-manifold in R^3 (use --codimension 2)

Writes to data/synthetic/<shape>.npy unless --output is given.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np

sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.utils.export import save_point_cloud


def make_circle(n: int, rng: np.random.Generator) -> np.ndarray:
    theta = rng.uniform(0.0, 2 * np.pi, size=n)
    return np.column_stack([np.cos(theta), np.sin(theta)])


def make_sphere(n: int, rng: np.random.Generator) -> np.ndarray:
    v = rng.standard_normal(size=(n, 3))
    return v / np.linalg.norm(v, axis=1, keepdims=True)


def make_plane(n: int, rng: np.random.Generator) -> np.ndarray:
    xy = rng.uniform(-1.0, 1.0, size=(n, 2))
    z = 0.1 * np.sin(3 * xy[:, 0]) * np.cos(2 * xy[:, 1])
    return np.column_stack([xy, z])


def make_helix(n: int, rng: np.random.Generator) -> np.ndarray:
    t = rng.uniform(0.0, 4 * np.pi, size=n)
    return np.column_stack([np.cos(t), np.sin(t), 0.15 * t])


SHAPES = {
    "circle": make_circle,
    "sphere": make_sphere,
    "plane": make_plane,
    "helix": make_helix,
}


def add_noise(points: np.ndarray, sigma: float, rng: np.random.Generator) -> np.ndarray:
    """Add isotropic Gaussian noise."""
    return points + sigma * rng.standard_normal(size=points.shape)


def main():
    parser = argparse.ArgumentParser(description="Generate noisy manifold samples")
    parser.add_argument("shape", choices=sorted(SHAPES))
    parser.add_argument("--num-points", type=int, default=2000)
    parser.add_argument("--noise", type=float, default=0.05, help="Standard deviation of the Gaussian noise")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=str, default=None)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    clean = SHAPES[args.shape](args.num_points, rng)
    noisy = add_noise(clean, args.noise, rng)

    out = Path(args.output) if args.output else (
        Path(__file__).parent.parent / "data" / "synthetic" / f"{args.shape}.npy"
    )
    save_point_cloud(out, noisy)
    print(f"Wrote: {out} ({noisy.shape[0]} points, dimension {noisy.shape[1]})")


if __name__ == "__main__":
    main()
