"""
DuckDB-based oracle and point loading.

This module implements an oracle that keeps the points in a DuckDB table and
answers range and nearest queries in SQL, independently of the quadtree. It
also reads point files (CSV, Parquet, JSON) through DuckDB's readers.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import math

import duckdb

from .geometry import Circle, Point, QueryRange, Rectangle
from .logger import logger
from .oracle import Oracle


# DuckDB table functions by file suffix
READERS: Dict[str, str] = {
    ".csv": "read_csv_auto",
    ".tsv": "read_csv_auto",
    ".parquet": "read_parquet",
    ".json": "read_json_auto",
    ".ndjson": "read_json_auto",
}


class DuckDBOracle(Oracle):
    """
    Oracle implementation backed by an in-memory DuckDB table.

    Points live in a table points(idx, x, y); idx is the position in the
    input sequence and maps query results back to the original Point objects.
    """

    def __init__(self, points: Sequence[Point], database: str = ":memory:"):
        """
        Initialize the DuckDB oracle.

        Args:
            points: Points to load
            database: DuckDB database path (in-memory by default)
        """
        self._points = list(points)
        self._con = duckdb.connect(database)
        self._load_points()

    def _load_points(self) -> None:
        """Load points into DuckDB."""
        self._con.execute("""
            CREATE OR REPLACE TABLE points (idx INTEGER, x DOUBLE, y DOUBLE)
        """)
        if self._points:
            self._con.executemany(
                "INSERT INTO points VALUES (?, ?, ?)",
                [(i, float(p.x), float(p.y)) for i, p in enumerate(self._points)],
            )

    def _to_points(self, rows: List[Tuple]) -> List[Point]:
        return [self._points[row[0]] for row in rows]

    def query(self, range: QueryRange) -> List[Point]:
        """
        Return every point inside a range.

        Rectangles and circles are evaluated in SQL; other ranges are
        tested point by point.
        """
        if isinstance(range, Rectangle):
            rows = self._con.execute("""
                SELECT idx FROM points
                WHERE x >= ? AND x <= ? AND y >= ? AND y <= ?
                ORDER BY idx
            """, [range.left, range.right, range.top, range.bottom]).fetchall()
            return self._to_points(rows)

        if isinstance(range, Circle):
            rows = self._con.execute("""
                SELECT idx FROM points
                WHERE (x - $cx) * (x - $cx) + (y - $cy) * (y - $cy) <= $r2
                ORDER BY idx
            """, {"cx": range.x, "cy": range.y, "r2": range.r_squared}).fetchall()
            return self._to_points(rows)

        return [p for p in self._points if range.contains(p)]

    def closest(
        self,
        search_point: Point,
        max_count: int = 1,
        max_distance: float = float("inf"),
    ) -> List[Point]:
        """
        Return the nearest points, ties broken by input order.
        """
        if search_point is None:
            raise ValueError("closest needs a point")
        if max_count <= 0:
            return []

        where = ""
        params = {"sx": search_point.x, "sy": search_point.y}
        if not math.isinf(max_distance):
            where = "WHERE dist <= $max_distance"
            params["max_distance"] = max_distance

        rows = self._con.execute(f"""
            SELECT idx, dist FROM (
                SELECT idx, sqrt((x - $sx) * (x - $sx) + (y - $sy) * (y - $sy)) AS dist
                FROM points
            )
            {where}
            ORDER BY dist, idx
            LIMIT {int(max_count)}
        """, params).fetchall()
        return self._to_points(rows)

    def query_all(self) -> List[Point]:
        return list(self._points)

    def count(self) -> int:
        """Number of points in the table."""
        return self._con.execute("SELECT count(*) FROM points").fetchone()[0]

    def close(self) -> None:
        """Close the database connection."""
        if getattr(self, "_con", None):
            self._con.close()
            self._con = None

    def __del__(self):
        """Cleanup on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def read_points(
    path: Union[str, Path],
    x_column: str = "x",
    y_column: str = "y",
) -> List[Point]:
    """
    Read points from a CSV, Parquet or JSON file.

    Columns other than the coordinates become a dict payload; without any
    other column the payload is None. Rows with a NULL coordinate are skipped.

    Args:
        path: Input file
        x_column: Name of the x coordinate column
        y_column: Name of the y coordinate column

    Returns:
        List of points in file order
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Could not find {path}")

    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(
            f"Unsupported file type {path.suffix!r}; expected one of {sorted(READERS)}"
        )

    con = duckdb.connect(":memory:")
    try:
        escaped = str(path).replace("'", "''")
        result = con.execute(f"SELECT * FROM {reader}('{escaped}')")
        columns = [d[0] for d in result.description]
        rows = result.fetchall()
    finally:
        con.close()

    for name in (x_column, y_column):
        if name not in columns:
            raise ValueError(f"Column {name!r} not found in {path} (columns: {columns})")

    xi = columns.index(x_column)
    yi = columns.index(y_column)
    others = [(i, name) for i, name in enumerate(columns) if i not in (xi, yi)]

    points = []
    skipped = 0
    for row in rows:
        if row[xi] is None or row[yi] is None:
            skipped += 1
            continue
        payload: Optional[dict] = {name: row[i] for i, name in others} if others else None
        points.append(Point(float(row[xi]), float(row[yi]), payload))

    if skipped:
        logger.warning("Skipped %d rows with missing coordinates in %s", skipped, path)

    return points


def create_oracle_from_file(
    path: Union[str, Path],
    x_column: str = "x",
    y_column: str = "y",
) -> DuckDBOracle:
    """
    Convenience function to create an oracle from a point file.

    Args:
        path: CSV, Parquet or JSON file
        x_column: Name of the x coordinate column
        y_column: Name of the y coordinate column

    Returns:
        Configured DuckDBOracle instance
    """
    return DuckDBOracle(read_points(path, x_column, y_column))
