"""Lightweight smoke tests for the feature-preserving smoothing pipeline.

Why this file exists:
- it can be run directly (`python tests/test_pipeline.py`) as a quick smoke check

These tests are intentionally fast and data-free (synthetic meshes only).
They validate that the smoother runs end to end and returns correctly-shaped,
finite outputs.
"""

from __future__ import annotations

import os
import sys

import numpy as np

# Allow running this file directly via `python tests/test_pipeline.py`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tests.meshes import make_grid_mesh, make_unit_cube_mesh  # noqa: E402


def _assert_finite_array(name: str, arr: np.ndarray) -> None:
    if not np.isfinite(arr).all():
        bad = np.argwhere(~np.isfinite(arr))[:10]
        raise AssertionError(f"{name} contains non-finite values at indices: {bad.tolist()}")


def test_feature_preserving_smoothing_smoke() -> None:
    # Import here to keep module import lightweight.
    from src.mesh_smoother import feature_preserving_smoothing

    verts, faces = make_unit_cube_mesh()

    for mode in ("uniform", "cotangent"):
        out, info = feature_preserving_smoothing(
            verts, faces, iterations=2, sharp_angle=30.0, laplacian_mode=mode
        )
        assert out.shape == verts.shape
        assert isinstance(info, dict)
        assert info["marked_edges"] == 12
        assert info["corner"] == 8
        _assert_finite_array(f"cube/{mode}", out)

    rng = np.random.default_rng(7)
    verts, faces = make_grid_mesh(6)
    noisy = verts.copy()
    noisy[:, 2] += rng.normal(scale=0.05, size=len(verts))

    out, info = feature_preserving_smoothing(
        noisy, faces, iterations=3, include_boundary=True, reproject=True, target=(verts, faces)
    )
    assert out.shape == verts.shape
    assert info["iterations"] == 3
    _assert_finite_array("grid/reprojected", out)
    # interior vertices are reprojected onto the flat target; boundary
    # vertices follow the (noisy) initial boundary curve instead
    i, j = np.meshgrid(np.arange(6), np.arange(6))
    interior = ((i > 0) & (i < 5) & (j > 0) & (j < 5)).ravel()
    assert np.allclose(out[interior, 2], 0.0, atol=1e-9)


def main() -> int:
    """Entry point for running the smoke test directly."""

    test_feature_preserving_smoothing_smoke()
    print("OK: feature-preserving smoother executed successfully.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
