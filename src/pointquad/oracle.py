"""
Oracle interface for point queries.

An oracle answers the same questions as the quadtree (range and nearest
queries) without any spatial index. It provides ground truth when checking
that a tree returns the right points.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List

from .geometry import Point, QueryRange


class Oracle(ABC):
    """
    Abstract base class for ground-truth point query oracles.
    """

    @abstractmethod
    def query(self, range: QueryRange) -> List[Point]:
        """
        Return every point inside a range.

        Args:
            range: Rectangle, Circle or other QueryRange

        Returns:
            Matching points in no particular order
        """
        pass

    @abstractmethod
    def closest(
        self,
        search_point: Point,
        max_count: int = 1,
        max_distance: float = float("inf"),
    ) -> List[Point]:
        """
        Return the nearest points.

        Args:
            search_point: Point to search around
            max_count: Maximum number of points to return
            max_distance: Ignore points further away than this

        Returns:
            Up to max_count points, nearest first
        """
        pass

    def count(self) -> int:
        """Number of points known to the oracle."""
        return len(self.query_all())

    @abstractmethod
    def query_all(self) -> List[Point]:
        """Return every point known to the oracle."""
        pass


class LinearScanOracle(Oracle):
    """
    Oracle that scans a plain list for every query.
    """

    def __init__(self, points: Iterable[Point]):
        self._points = list(points)

    def query(self, range: QueryRange) -> List[Point]:
        return [p for p in self._points if range.contains(p)]

    def closest(
        self,
        search_point: Point,
        max_count: int = 1,
        max_distance: float = float("inf"),
    ) -> List[Point]:
        if search_point is None:
            raise ValueError("closest needs a point")
        candidates = [
            p for p in self._points
            if p.distance_from(search_point) <= max_distance
        ]
        candidates.sort(key=lambda p: p.distance_from(search_point))
        if len(candidates) > max_count:
            del candidates[int(max_count):]
        return candidates

    def query_all(self) -> List[Point]:
        return list(self._points)
