#!/usr/bin/env python3
"""
Command-line feature-preserving smoothing.

Reads any surface mesh pyvista can load, marks sharp creases by dihedral
angle, smooths it and writes the result.

Usage:
    python3 scripts/smooth_mesh.py input.stl --output smoothed.stl [--sharp-angle 40]
"""

import argparse
import os
import sys

import pyvista as pv

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.mesh_smoother import (
    PolygonMesh,
    SmootherError,
    SmootherOptions,
    VertexLabel,
    mesh_smoother,
)
from src.mesh_smoother.metrics import displacement_stats, hausdorff_distance

pv.OFF_SCREEN = True


def load_mesh(path):
    data = pv.read(path)
    if not isinstance(data, pv.PolyData):
        data = data.extract_surface()
    return PolygonMesh.from_pyvista(data)


def build_parser():
    parser = argparse.ArgumentParser(description='Feature-preserving mesh smoothing')
    parser.add_argument('input', help='Input surface mesh (any format pyvista reads)')
    parser.add_argument('--output', required=True, help='Output mesh path')
    parser.add_argument('--target', help='Reference surface for reprojection (defaults to the input)')
    parser.add_argument('--sharp-angle', type=float, default=40.0,
                        help='Dihedral angle in degrees above which edges are creases (default: 40)')
    parser.add_argument('--include-boundary', action='store_true',
                        help='Treat open boundary edges as creases')
    parser.add_argument('--mode', choices=['uniform', 'cotangent'], default='cotangent',
                        help='Laplacian discretization (default: cotangent)')
    parser.add_argument('--iterations', type=int, default=10, help='Smoothing iterations (default: 10)')
    parser.add_argument('--w-laplace', type=float, default=0.01)
    parser.add_argument('--w-regular', type=float, default=1.0)
    parser.add_argument('--w-feature', type=float, default=1.0)
    parser.add_argument('--w-corner', type=float, default=1.0)
    parser.add_argument('--no-reproject', action='store_true',
                        help='Do not snap results back onto the target surface and creases')
    parser.add_argument('--quiet', action='store_true', help='Only print errors')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        options = SmootherOptions(
            laplacian_mode=args.mode,
            w_laplace=args.w_laplace,
            w_regular=args.w_regular,
            w_feature=args.w_feature,
            w_corner=args.w_corner,
            n_iters=args.iterations,
            reproject_on_target=not args.no_reproject,
        )
    except ValueError as e:
        print(f"Invalid options: {e}")
        return 2

    mesh = load_mesh(args.input)
    target = load_mesh(args.target) if args.target else None
    n_marked = mesh.mark_sharp_edges(args.sharp_angle, include_boundary=args.include_boundary)
    original = mesh.verts.copy()

    if not args.quiet:
        print(f"Loaded {mesh.num_verts()} vertices, {mesh.num_polys()} polygons, {n_marked} crease edges")

    try:
        mesh_smoother(mesh, target, options, verbose=not args.quiet)
    except SmootherError as e:
        print(f"Smoothing failed: {e}")
        return 1

    out_dir = os.path.dirname(args.output)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    mesh.to_pyvista().save(args.output)

    if not args.quiet:
        stats = displacement_stats(original, mesh.verts, mesh.labels)
        counts = {label.name.lower(): int((mesh.labels == label).sum()) for label in VertexLabel}
        print(f"Labels: {counts}")
        print(f"Hausdorff distance: {hausdorff_distance(original, mesh.verts):.6f}")
        print(f"Max displacement: {stats['max_displacement']:.6f}")
        print(f"Saved to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
