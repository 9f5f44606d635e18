"""
Point quadtree.

A QuadTree node owns a rectangular boundary and stores points locally until
it holds more than `capacity` of them; it then subdivides into four children
(NE, NW, SE, SW) and hands its points down. Every node carries a remaining
depth budget; a node whose budget reached zero never subdivides and accepts
any number of points instead.
"""

from __future__ import annotations
from numbers import Real
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .geometry import Point, QueryRange, Rectangle, QUADRANTS
from .logger import logger


DEFAULT_CAPACITY = 8
DEFAULT_DEPTH = 10


class QuadTree:
    """
    A node of a point quadtree; the root node is the tree.

    Children, once created, are ordered NE, NW, SE, SW (indices 0-3).
    """

    def __init__(self, boundary: Rectangle, capacity: int, depth: int = DEFAULT_DEPTH):
        """
        Initialize an empty node.

        Args:
            boundary: Region this node is responsible for
            capacity: Points a leaf holds before it subdivides (>= 1)
            depth: Remaining subdivisions allowed below this node
        """
        if boundary is None:
            raise TypeError("boundary is None")
        if not isinstance(boundary, Rectangle):
            raise TypeError(
                f"boundary should be a Rectangle but is a {type(boundary).__name__}"
            )
        if isinstance(capacity, bool) or not isinstance(capacity, Real):
            raise TypeError(
                f"capacity should be a number but is a {type(capacity).__name__}"
            )
        if capacity < 1:
            raise ValueError("capacity must be greater than 0")

        self.boundary = boundary
        self.capacity = capacity
        self.depth = depth
        self.points: List[Point] = []
        self.divided = False
        self.children: List[QuadTree] = []

    @classmethod
    def from_boundary(cls, boundary: Rectangle, capacity: Optional[int] = None) -> QuadTree:
        """Create a tree covering an existing rectangle."""
        return cls(boundary, capacity or DEFAULT_CAPACITY)

    @classmethod
    def from_bounds(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        capacity: Optional[int] = None,
    ) -> QuadTree:
        """Create a tree from center coordinates and full width/height."""
        return cls(Rectangle(x, y, w, h), capacity or DEFAULT_CAPACITY)

    @classmethod
    def from_dimensions(
        cls,
        width: float,
        height: float,
        capacity: Optional[int] = None,
    ) -> QuadTree:
        """
        Create a tree covering a canvas of the given size.

        The boundary spans (0, 0) to (width, height).

        Like the other factories, a missing or zero capacity falls back to
        DEFAULT_CAPACITY.
        """
        if width is None:
            raise TypeError("width is None")
        if height is None:
            raise TypeError("height is None")
        return cls(Rectangle(width / 2, height / 2, width, height), capacity or DEFAULT_CAPACITY)

    @property
    def northeast(self) -> Optional[QuadTree]:
        return self.children[0] if self.divided else None

    @property
    def northwest(self) -> Optional[QuadTree]:
        return self.children[1] if self.divided else None

    @property
    def southeast(self) -> Optional[QuadTree]:
        return self.children[2] if self.divided else None

    @property
    def southwest(self) -> Optional[QuadTree]:
        return self.children[3] if self.divided else None

    def subdivide(self) -> None:
        """Create the four children. A node subdivides at most once."""
        self.children = [
            QuadTree(self.boundary.subdivide(quadrant), self.capacity, self.depth - 1)
            for quadrant in QUADRANTS
        ]
        self.divided = True
        logger.debug(
            "Subdivided node at (%s, %s) size %sx%s, depth budget left %d",
            self.boundary.x, self.boundary.y, self.boundary.w, self.boundary.h,
            self.depth - 1,
        )

    def insert(self, point: Point) -> bool:
        """
        Insert a point.

        Args:
            point: Point to store

        Returns:
            True if stored, False if the point lies outside this node.
        """
        if not self.boundary.contains(point):
            return False

        if self.divided:
            # Edges are inclusive, so a point on a dividing line goes to
            # the first child that accepts it.
            for child in self.children:
                if child.insert(point):
                    return True
            # Rounded quadrant edges can leave a sliver of this boundary
            # uncovered; such points stay here.
            self.points.append(point)
            return True

        if self.depth <= 0 or len(self.points) < self.capacity:
            if self.depth <= 0 and len(self.points) == self.capacity:
                logger.debug(
                    "Depth budget exhausted at (%s, %s); leaf grows past capacity %s",
                    self.boundary.x, self.boundary.y, self.capacity,
                )
            self.points.append(point)
            return True

        self.subdivide()
        points, self.points = self.points, []
        for existing in points:
            self.insert(existing)
        return self.insert(point)

    def query(self, range: QueryRange, found: Optional[List[Point]] = None) -> List[Point]:
        """
        Collect every stored point inside a range.

        Args:
            range: Rectangle, Circle or any other QueryRange
            found: Optional list to append results to

        Returns:
            The list of matching points (found, if given).
        """
        if found is None:
            found = []

        if not range.intersects(self.boundary):
            return found

        for point in self.points:
            if range.contains(point):
                found.append(point)

        for child in self.children:
            child.query(range, found)

        return found

    def closest(
        self,
        search_point: Point,
        max_count: int = 1,
        max_distance: float = float("inf"),
    ) -> List[Point]:
        """
        Find the nearest stored points.

        Args:
            search_point: Point to search around
            max_count: Maximum number of points to return
            max_distance: Ignore points further away than this

        Returns:
            Up to max_count points within max_distance, nearest first.
        """
        if search_point is None:
            raise ValueError("closest needs a point")

        found, _ = self._k_nearest(search_point, max_count, max_distance, 0.0, 0)
        return found

    def _k_nearest(
        self,
        search_point: Point,
        max_count: int,
        max_distance: float,
        furthest_distance: float,
        found_so_far: int,
    ) -> Tuple[List[Point], float]:
        """
        Branch-and-bound step of closest().

        Returns:
            Tuple of (candidates sorted by distance and truncated to
            max_count, furthest distance accepted so far)
        """
        found: List[Point] = []

        def lower_bound(child: QuadTree) -> float:
            return child.boundary.distance_from(search_point)

        for child in sorted(self.children, key=lower_bound):
            distance = lower_bound(child)
            if distance > max_distance:
                continue
            if found_so_far < max_count or distance < furthest_distance:
                child_points, furthest_distance = child._k_nearest(
                    search_point, max_count, max_distance, furthest_distance, found_so_far
                )
                found.extend(child_points)
                found_so_far += len(child_points)

        for point in self.points:
            distance = point.distance_from(search_point)
            if distance > max_distance:
                continue
            if found_so_far < max_count or distance < furthest_distance:
                found.append(point)
                furthest_distance = max(distance, furthest_distance)
                found_so_far += 1

        found.sort(key=lambda p: p.distance_from(search_point))
        if len(found) > max_count:
            del found[int(max_count):]
        return found, furthest_distance

    def for_each(self, fn: Callable[[Point], Any]) -> None:
        """Apply fn to every stored point."""
        for point in self:
            fn(point)

    def __iter__(self) -> Iterator[Point]:
        """Yield local points in storage order, then children NE, NW, SE, SW."""
        yield from self.points
        for child in self.children:
            yield from child

    def __len__(self) -> int:
        count = len(self.points)
        for child in self.children:
            count += len(child)
        return count

    def merge(self, other: QuadTree, capacity: Optional[int] = None) -> QuadTree:
        """
        Build a new tree holding the points of this tree and other.

        Args:
            other: Tree to merge with
            capacity: Capacity of the new tree (defaults to this tree's)

        Returns:
            A fresh QuadTree over the union of both boundaries.
        """
        if capacity is None:
            capacity = self.capacity
        result = QuadTree(self.boundary.union(other.boundary), capacity)
        for point in self:
            result.insert(point)
        for point in other:
            result.insert(point)
        return result

    def to_json(self) -> Dict[str, Any]:
        """
        Flatten the tree into a JSON-compatible dict.

        Only the boundary, capacity, depth and the points survive; the
        subdivision shape is rebuilt on load.
        """
        return {
            "x": self.boundary.x,
            "y": self.boundary.y,
            "w": self.boundary.w,
            "h": self.boundary.h,
            "depth": self.depth,
            "capacity": self.capacity,
            "points": [
                {"x": p.x, "y": p.y, "payload": p.payload} for p in self
            ],
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> QuadTree:
        """
        Rebuild a tree from the output of to_json().

        Points are reinserted in array order.
        """
        if any(obj.get(key) is None for key in ("x", "y", "w", "h")):
            raise ValueError("JSON missing boundary information")

        tree = cls(
            Rectangle(obj["x"], obj["y"], obj["w"], obj["h"]),
            obj.get("capacity"),
            obj.get("depth", DEFAULT_DEPTH),
        )
        for item in obj.get("points", []):
            tree.insert(_as_point(item))
        return tree

    @property
    def node_count(self) -> int:
        """Total number of nodes in this subtree."""
        return 1 + sum(child.node_count for child in self.children)

    @property
    def leaf_count(self) -> int:
        """Number of undivided nodes in this subtree."""
        if not self.divided:
            return 1
        return sum(child.leaf_count for child in self.children)

    @property
    def max_depth(self) -> int:
        """Number of subdivision levels below this node."""
        if not self.divided:
            return 0
        return 1 + max(child.max_depth for child in self.children)

    def __repr__(self) -> str:
        return (
            f"QuadTree(boundary={self.boundary!r}, capacity={self.capacity}, "
            f"depth={self.depth}, points={len(self)})"
        )


def _as_point(item: Union[Point, Mapping[str, Any]]) -> Point:
    if isinstance(item, Point):
        return item
    return Point(item["x"], item["y"], item.get("payload"))
