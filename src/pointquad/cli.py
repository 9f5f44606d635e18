"""
Command-line interface for pointquad.

Provides commands for building quadtree snapshots from point files and
querying them.
"""

import argparse
import json
import random
import sys
from pathlib import Path
from typing import List, Optional

from .builder import build_quadtree
from .duckdb_oracle import DuckDBOracle, read_points
from .geometry import Circle, Point, QueryRange, Rectangle
from .logger import set_debug
from .quadtree import QuadTree, DEFAULT_CAPACITY, DEFAULT_DEPTH
from .serialize import save_tree, load_tree


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pointquad",
        description="Build and query 2D point quadtrees",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build a quadtree snapshot from a point file",
    )
    build_parser.add_argument(
        "input",
        type=Path,
        help="CSV, Parquet or JSON file with point coordinates",
    )
    build_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output snapshot path (default: <input>.quadtree.json)",
    )
    _add_tree_arguments(build_parser)
    build_parser.add_argument(
        "--padding",
        type=float,
        default=0.0,
        help="Margin around the bounding box of the points (default: 0)",
    )
    build_parser.add_argument(
        "--compress",
        action="store_true",
        help="Write a zlib-compressed snapshot (.zz suffix)",
    )

    # Query command
    query_parser = subparsers.add_parser(
        "query",
        help="List the points of a snapshot inside a rectangle or circle",
    )
    query_parser.add_argument("snapshot", type=Path, help="Snapshot file")
    shape = query_parser.add_mutually_exclusive_group(required=True)
    shape.add_argument(
        "--rect",
        type=float,
        nargs=4,
        metavar=("X", "Y", "W", "H"),
        help="Rectangle given by center and full width/height",
    )
    shape.add_argument(
        "--circle",
        type=float,
        nargs=3,
        metavar=("X", "Y", "R"),
        help="Circle given by center and radius",
    )

    # Closest command
    closest_parser = subparsers.add_parser(
        "closest",
        help="List the points of a snapshot nearest to a location",
    )
    closest_parser.add_argument("snapshot", type=Path, help="Snapshot file")
    closest_parser.add_argument("x", type=float, help="Search x coordinate")
    closest_parser.add_argument("y", type=float, help="Search y coordinate")
    closest_parser.add_argument(
        "-k", "--count",
        type=int,
        default=1,
        help="Number of points to return (default: 1)",
    )
    closest_parser.add_argument(
        "--max-distance",
        type=float,
        default=float("inf"),
        help="Ignore points further away than this (default: no limit)",
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show statistics for a snapshot",
    )
    stats_parser.add_argument("snapshot", type=Path, help="Snapshot file")

    # Verify command
    verify_parser = subparsers.add_parser(
        "verify",
        help="Cross-check tree queries against a DuckDB oracle",
    )
    verify_parser.add_argument(
        "input",
        type=Path,
        help="CSV, Parquet or JSON file with point coordinates",
    )
    _add_tree_arguments(verify_parser)
    verify_parser.add_argument(
        "--queries",
        type=int,
        default=100,
        help="Number of random queries of each kind (default: 100)",
    )
    verify_parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for query generation (default: 42)",
    )

    return parser


def _add_tree_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--capacity",
        type=int,
        default=DEFAULT_CAPACITY,
        help=f"Points per leaf before subdividing (default: {DEFAULT_CAPACITY})",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_DEPTH,
        help=f"Maximum subdivision depth (default: {DEFAULT_DEPTH})",
    )
    parser.add_argument(
        "--x-column",
        type=str,
        default="x",
        help="Name of the x coordinate column (default: x)",
    )
    parser.add_argument(
        "--y-column",
        type=str,
        default="y",
        help="Name of the y coordinate column (default: y)",
    )


def _print_points(points: List[Point]) -> None:
    for p in points:
        print(json.dumps({"x": p.x, "y": p.y, "payload": p.payload}, default=str))


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the build command."""
    print(f"Reading points from: {args.input}")
    points = read_points(args.input, args.x_column, args.y_column)
    print(f"Loaded {len(points)} points")

    print("Building quadtree...")
    tree, stats = build_quadtree(
        points,
        capacity=args.capacity,
        depth=args.depth,
        padding=args.padding,
    )

    print(f"\nBuild statistics:")
    print(f"  Points inserted: {stats.points_inserted}")
    print(f"  Points rejected: {stats.points_rejected}")
    print(f"  Nodes: {tree.node_count}")
    print(f"  Leaf nodes: {tree.leaf_count}")
    print(f"  Max depth reached: {tree.max_depth}")

    output_path = args.output
    if output_path is None:
        suffix = ".quadtree.json.zz" if args.compress else ".quadtree.json"
        output_path = args.input.with_name(args.input.stem + suffix)
    elif args.compress and output_path.suffix != ".zz":
        output_path = output_path.with_name(output_path.name + ".zz")

    size = save_tree(tree, output_path)
    print(f"Wrote {size} bytes to {output_path}")

    return 0


def cmd_query(args: argparse.Namespace) -> int:
    """Handle the query command."""
    tree = load_tree(args.snapshot)

    query_range: QueryRange
    if args.rect:
        query_range = Rectangle(*args.rect)
    else:
        query_range = Circle(*args.circle)

    _print_points(tree.query(query_range))
    return 0


def cmd_closest(args: argparse.Namespace) -> int:
    """Handle the closest command."""
    tree = load_tree(args.snapshot)
    found = tree.closest(Point(args.x, args.y), args.count, args.max_distance)
    _print_points(found)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the stats command."""
    tree = load_tree(args.snapshot)
    b = tree.boundary

    print(f"Snapshot statistics for {args.snapshot}:")
    print(f"  Boundary: center=({b.x}, {b.y}) size={b.w}x{b.h}")
    print(f"  Capacity: {tree.capacity}")
    print(f"  Depth budget: {tree.depth}")
    print(f"  Points: {len(tree)}")
    print(f"  Nodes: {tree.node_count}")
    print(f"  Leaf nodes: {tree.leaf_count}")
    print(f"  Max depth reached: {tree.max_depth}")

    return 0


def _random_ranges(tree: QuadTree, rng: random.Random, count: int) -> List[QueryRange]:
    b = tree.boundary
    ranges: List[QueryRange] = []
    for _ in range(count):
        x = rng.uniform(b.left, b.right)
        y = rng.uniform(b.top, b.bottom)
        ranges.append(Rectangle(x, y, rng.uniform(0, b.w / 2), rng.uniform(0, b.h / 2)))
        ranges.append(Circle(x, y, rng.uniform(0, max(b.w, b.h) / 4)))
    return ranges


def cmd_verify(args: argparse.Namespace) -> int:
    """Handle the verify command."""
    points = read_points(args.input, args.x_column, args.y_column)
    if not points:
        print("Error: no points to verify")
        return 1

    tree, stats = build_quadtree(points, capacity=args.capacity, depth=args.depth)
    rng = random.Random(args.seed)
    failures = 0

    with DuckDBOracle(points) as oracle:
        if len(tree) != oracle.count():
            print(f"Point count mismatch: tree={len(tree)} oracle={oracle.count()}")
            failures += 1

        for query_range in _random_ranges(tree, rng, args.queries):
            expected = sorted((p.x, p.y) for p in oracle.query(query_range))
            actual = sorted((p.x, p.y) for p in tree.query(query_range))
            if expected != actual:
                print(f"Range mismatch for {query_range}: expected {len(expected)}, got {len(actual)}")
                failures += 1

        b = tree.boundary
        for _ in range(args.queries):
            search = Point(rng.uniform(b.left, b.right), rng.uniform(b.top, b.bottom))
            k = rng.randint(1, 10)
            expected = [p.distance_from(search) for p in oracle.closest(search, k)]
            actual = [p.distance_from(search) for p in tree.closest(search, k)]
            if expected != actual:
                print(f"Nearest mismatch for ({search.x}, {search.y}), k={k}")
                failures += 1

    total = 3 * args.queries + 1
    print(f"Verified {total} checks against DuckDB: {total - failures} passed, {failures} failed")
    return 0 if failures == 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_debug(True)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "build": cmd_build,
        "query": cmd_query,
        "closest": cmd_closest,
        "stats": cmd_stats,
        "verify": cmd_verify,
    }

    try:
        return commands[args.command](args)
    except (FileNotFoundError, TypeError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
