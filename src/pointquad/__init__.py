"""
pointquad: 2D point quadtree with range and nearest-neighbor queries.

This package provides a recursive point quadtree over an axis-aligned
boundary, rectangle and circle query ranges, branch-and-bound k-nearest
search, and a flat JSON snapshot format.
"""

__version__ = "0.1.0"

from .geometry import Point, Rectangle, Circle, QueryRange
from .quadtree import QuadTree, DEFAULT_CAPACITY, DEFAULT_DEPTH
from .builder import QuadTreeBuilder, BuilderConfig, build_quadtree
from .serialize import serialize_tree, deserialize_tree, save_tree, load_tree
from .oracle import Oracle, LinearScanOracle
from .duckdb_oracle import DuckDBOracle, read_points, create_oracle_from_file

__all__ = [
    "Point",
    "Rectangle",
    "Circle",
    "QueryRange",
    "QuadTree",
    "DEFAULT_CAPACITY",
    "DEFAULT_DEPTH",
    "QuadTreeBuilder",
    "BuilderConfig",
    "build_quadtree",
    "serialize_tree",
    "deserialize_tree",
    "save_tree",
    "load_tree",
    "Oracle",
    "LinearScanOracle",
    "DuckDBOracle",
    "read_points",
    "create_oracle_from_file",
]
