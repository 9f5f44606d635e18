"""
Bulk quadtree construction.

This module builds a tree from a collection of points in one pass. When no
boundary is given, the builder sizes the root to the bounding box of the
input, optionally padded, so that every point is accepted.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .geometry import Point, Rectangle
from .quadtree import QuadTree, DEFAULT_CAPACITY, DEFAULT_DEPTH
from .logger import logger


@dataclass
class BuilderConfig:
    """Configuration for the quadtree builder."""

    capacity: int = DEFAULT_CAPACITY
    """Points a leaf holds before it subdivides."""

    depth: int = DEFAULT_DEPTH
    """Maximum number of subdivisions along any branch."""

    padding: float = 0.0
    """Margin added on every side of a computed bounding box."""

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("capacity must be at least 1")
        if self.depth < 0:
            raise ValueError("depth must be non-negative")
        if self.padding < 0:
            raise ValueError("padding must be non-negative")


@dataclass
class BuilderStats:
    """Statistics collected while building a tree."""

    points_seen: int = 0
    points_inserted: int = 0
    points_rejected: int = 0


def bounding_rectangle(points: Sequence[Point], padding: float = 0.0) -> Rectangle:
    """
    Smallest rectangle containing all points, grown by padding on each side.

    Args:
        points: Non-empty sequence of points
        padding: Margin to add around the box

    Returns:
        The bounding Rectangle
    """
    if not points:
        raise ValueError("Cannot compute the bounding box of no points")

    min_x = min(p.x for p in points)
    min_y = min(p.y for p in points)
    max_x = max(p.x for p in points)
    max_y = max(p.y for p in points)

    return Rectangle.from_edges(
        min_x - padding, min_y - padding, max_x + padding, max_y + padding
    )


class QuadTreeBuilder:
    """
    Builder that inserts a batch of points into a new tree.
    """

    def __init__(self, config: Optional[BuilderConfig] = None):
        """
        Args:
            config: Builder configuration (defaults to BuilderConfig())
        """
        self.config = config or BuilderConfig()
        self.stats = BuilderStats()

    def build(self, points: Iterable[Point], boundary: Optional[Rectangle] = None) -> QuadTree:
        """
        Build a tree holding the given points.

        Args:
            points: Points to insert, in insertion order
            boundary: Root boundary; computed from the points if omitted

        Returns:
            The populated QuadTree
        """
        self.stats = BuilderStats()  # Reset stats
        points = list(points)

        if boundary is None:
            boundary = bounding_rectangle(points, self.config.padding)

        tree = QuadTree(boundary, self.config.capacity, self.config.depth)

        for point in points:
            self.stats.points_seen += 1
            if tree.insert(point):
                self.stats.points_inserted += 1
            else:
                self.stats.points_rejected += 1

        logger.info(
            "Built quadtree: %d points inserted, %d rejected, %d nodes",
            self.stats.points_inserted, self.stats.points_rejected, tree.node_count,
        )
        return tree


def build_quadtree(
    points: Iterable[Point],
    boundary: Optional[Rectangle] = None,
    capacity: int = DEFAULT_CAPACITY,
    depth: int = DEFAULT_DEPTH,
    padding: float = 0.0,
) -> Tuple[QuadTree, BuilderStats]:
    """
    Convenience function to build a quadtree.

    Args:
        points: Points to insert
        boundary: Root boundary (bounding box of the points if omitted)
        capacity: Leaf capacity
        depth: Depth budget
        padding: Margin around a computed bounding box

    Returns:
        Tuple of (QuadTree, BuilderStats)
    """
    config = BuilderConfig(capacity=capacity, depth=depth, padding=padding)
    builder = QuadTreeBuilder(config)
    tree = builder.build(points, boundary)
    return tree, builder.stats
