"""
Geometry primitives for the point quadtree.

This module defines the points stored in the tree and the two query shapes
(axis-aligned rectangles and circles) used to search it.

Coordinates follow screen conventions: y grows downwards, so the "north"
half of a rectangle is the half with the smaller y values.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Tuple
import math


# Quadrant names accepted by Rectangle.subdivide
NE = "ne"
NW = "nw"
SE = "se"
SW = "sw"

# Fixed child order used for insertion and traversal
QUADRANTS: Tuple[str, ...] = (NE, NW, SE, SW)


@dataclass(frozen=True)
class Point:
    """
    An immutable 2D point carrying an opaque user payload.
    """
    x: float
    y: float
    payload: Any = None

    def distance_from(self, other: Point) -> float:
        """Euclidean distance to another point."""
        dx = other.x - self.x
        dy = other.y - self.y
        return math.sqrt(dx * dx + dy * dy)


class QueryRange(ABC):
    """
    A region that can be used to query the tree.

    The tree prunes every subtree whose boundary the range does not
    intersect, then filters the remaining points with contains().
    """

    @abstractmethod
    def contains(self, point: Point) -> bool:
        """Return True if the point lies inside this range."""
        pass

    @abstractmethod
    def intersects(self, rect: Rectangle) -> bool:
        """Return True if this range overlaps the given rectangle."""
        pass


@dataclass(frozen=True)
class Rectangle(QueryRange):
    """
    An axis-aligned rectangle given by its center and full size.

    The edges are derived once from (x, y, w, h); all of them are
    inclusive for containment tests.
    """
    x: float  # center x
    y: float  # center y
    w: float  # full width
    h: float  # full height
    left: float = field(init=False, repr=False, compare=False)
    right: float = field(init=False, repr=False, compare=False)
    top: float = field(init=False, repr=False, compare=False)
    bottom: float = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise ValueError(
                f"Invalid rectangle: w={self.w}, h={self.h} must be non-negative"
            )
        object.__setattr__(self, "left", self.x - self.w / 2)
        object.__setattr__(self, "right", self.x + self.w / 2)
        object.__setattr__(self, "top", self.y - self.h / 2)
        object.__setattr__(self, "bottom", self.y + self.h / 2)

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> Rectangle:
        """
        Build a rectangle whose derived edges cover the given ones.

        Rounding in the center/size round trip can move a derived edge
        inwards by an ulp; the size is grown until all four edges are covered.
        """
        cx = left + (right - left) / 2
        cy = top + (bottom - top) / 2
        width = right - left
        height = bottom - top
        rect = cls(cx, cy, width, height)

        step = math.ulp(max(abs(left), abs(right), abs(top), abs(bottom), 1.0))
        while (
            rect.left > left or rect.right < right
            or rect.top > top or rect.bottom < bottom
        ):
            width += step
            height += step
            step *= 2
            rect = cls(cx, cy, width, height)
        return rect

    def union(self, other: Rectangle) -> Rectangle:
        """Smallest rectangle covering both this rectangle and other."""
        return Rectangle.from_edges(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def contains(self, point: Point) -> bool:
        """Check if the point is within this rectangle, edges included."""
        return (
            self.left <= point.x <= self.right
            and self.top <= point.y <= self.bottom
        )

    def intersects(self, rect: Rectangle) -> bool:
        """Check if two rectangles overlap; touching edges count."""
        return not (
            self.right < rect.left or rect.right < self.left
            or self.bottom < rect.top or rect.bottom < self.top
        )

    def subdivide(self, quadrant: str) -> Rectangle:
        """
        Return one quadrant of this rectangle.

        Args:
            quadrant: One of "ne", "nw", "se", "sw"

        Returns:
            Rectangle of half width and height centered at (x ± w/4, y ± h/4).
        """
        w = self.w / 2
        h = self.h / 2
        if quadrant == NE:
            return Rectangle(self.x + self.w / 4, self.y - self.h / 4, w, h)
        if quadrant == NW:
            return Rectangle(self.x - self.w / 4, self.y - self.h / 4, w, h)
        if quadrant == SE:
            return Rectangle(self.x + self.w / 4, self.y + self.h / 4, w, h)
        if quadrant == SW:
            return Rectangle(self.x - self.w / 4, self.y + self.h / 4, w, h)
        raise ValueError(f"Unknown quadrant: {quadrant!r}")

    def x_distance_from(self, point: Point) -> float:
        """Distance along x to the nearer vertical edge, 0 if within the span."""
        if self.left <= point.x <= self.right:
            return 0.0
        return min(abs(point.x - self.left), abs(point.x - self.right))

    def y_distance_from(self, point: Point) -> float:
        """Distance along y to the nearer horizontal edge, 0 if within the span."""
        if self.top <= point.y <= self.bottom:
            return 0.0
        return min(abs(point.y - self.top), abs(point.y - self.bottom))

    def distance_from(self, point: Point) -> float:
        """
        Minimum distance from the point to any point inside the rectangle.

        Never larger than the distance to a point actually stored inside,
        which is what makes it safe for pruning nearest-neighbor search.
        """
        dx = self.x_distance_from(point)
        dy = self.y_distance_from(point)
        return math.sqrt(dx * dx + dy * dy)


@dataclass(frozen=True)
class Circle(QueryRange):
    """
    A circular query range.
    """
    x: float
    y: float
    r: float
    r_squared: float = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.r < 0:
            raise ValueError(f"Invalid circle: r={self.r} must be non-negative")
        object.__setattr__(self, "r_squared", self.r * self.r)

    def contains(self, point: Point) -> bool:
        dx = point.x - self.x
        dy = point.y - self.y
        return dx * dx + dy * dy <= self.r_squared

    def intersects(self, rect: Rectangle) -> bool:
        x_dist = abs(rect.x - self.x)
        y_dist = abs(rect.y - self.y)

        half_w = rect.w / 2
        half_h = rect.h / 2

        # Too far apart along either axis
        if x_dist > self.r + half_w or y_dist > self.r + half_h:
            return False

        # Center projects inside the rectangle's span
        if x_dist <= half_w or y_dist <= half_h:
            return True

        # Otherwise the nearest corner decides
        corner_dx = x_dist - half_w
        corner_dy = y_dist - half_h
        return corner_dx * corner_dx + corner_dy * corner_dy <= self.r_squared
