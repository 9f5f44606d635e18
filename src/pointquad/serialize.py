"""
Quadtree snapshot serialization.

A snapshot is the flat JSON object produced by QuadTree.to_json():

    {"x": ..., "y": ..., "w": ..., "h": ..., "depth": ..., "capacity": ...,
     "points": [{"x": ..., "y": ..., "payload": ...}, ...]}

encoded as UTF-8 text and optionally zlib-compressed. The subdivision shape
is not stored; loading reinserts the points in snapshot order.
"""

from pathlib import Path
from typing import Union
import json
import zlib

from .quadtree import QuadTree


# File suffixes that mark a compressed snapshot
COMPRESSED_SUFFIXES = (".zz", ".zlib")


def serialize_tree(tree: QuadTree, compress: bool = False) -> bytes:
    """
    Serialize a quadtree to bytes, optionally with compression.

    Args:
        tree: QuadTree to serialize
        compress: Whether to apply zlib compression

    Returns:
        Serialized (and optionally compressed) bytes
    """
    data = json.dumps(tree.to_json(), separators=(",", ":")).encode("utf-8")

    if compress:
        data = zlib.compress(data, level=9)

    return data


def deserialize_tree(data: bytes, compressed: bool = False) -> QuadTree:
    """
    Deserialize a quadtree from bytes.

    Args:
        data: Serialized tree bytes
        compressed: Whether data is zlib compressed

    Returns:
        Deserialized QuadTree
    """
    if compressed:
        try:
            data = zlib.decompress(data)
        except zlib.error as e:
            raise ValueError(f"Invalid snapshot: {e}") from e

    try:
        obj = json.loads(data.decode("utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid snapshot: {e}") from e

    if not isinstance(obj, dict):
        raise ValueError("Invalid snapshot: expected a JSON object")

    return QuadTree.from_json(obj)


def _is_compressed(path: Path) -> bool:
    return path.suffix in COMPRESSED_SUFFIXES


def save_tree(tree: QuadTree, path: Union[str, Path]) -> int:
    """
    Write a snapshot to disk.

    Args:
        tree: QuadTree to save
        path: Output file; a .zz or .zlib suffix enables compression

    Returns:
        Number of bytes written
    """
    path = Path(path)
    data = serialize_tree(tree, compress=_is_compressed(path))
    path.write_bytes(data)
    return len(data)


def load_tree(path: Union[str, Path]) -> QuadTree:
    """
    Read a snapshot written by save_tree().

    Args:
        path: Snapshot file

    Returns:
        The rebuilt QuadTree
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")
    return deserialize_tree(path.read_bytes(), compressed=_is_compressed(path))
