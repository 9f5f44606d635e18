"""Tests for quadtree snapshot serialization."""

import json
import zlib

import pytest
from pointquad.serialize import (
    serialize_tree,
    deserialize_tree,
    save_tree,
    load_tree,
)
from pointquad.geometry import Point, Rectangle
from pointquad.quadtree import QuadTree


@pytest.fixture
def tree():
    """A small divided tree with dict payloads."""
    tree = QuadTree(Rectangle(0, 0, 40, 40), 2, depth=4)
    coords = [(-10, 10), (-10, -10), (10, 10), (10, -10), (-15, 15), (0, 0)]
    for i, (x, y) in enumerate(coords):
        tree.insert(Point(x, y, {"index": i, "name": f"p{i}"}))
    return tree


def point_set(tree):
    return sorted((p.x, p.y, p.payload["index"], p.payload["name"]) for p in tree)


class TestSerializeTree:
    """Tests for serialize_tree and deserialize_tree."""

    def test_serialize_is_json(self, tree):
        """Test that an uncompressed snapshot is plain JSON."""
        data = serialize_tree(tree)
        obj = json.loads(data.decode("utf-8"))
        assert obj == tree.to_json()

    def test_serialize_compressed(self, tree):
        """Test that compression wraps the same JSON in zlib."""
        data = serialize_tree(tree, compress=True)
        assert zlib.decompress(data) == serialize_tree(tree)

    def test_roundtrip(self, tree):
        """Test serialize -> deserialize keeps boundary, settings and points."""
        restored = deserialize_tree(serialize_tree(tree))

        assert restored.boundary == tree.boundary
        assert restored.capacity == tree.capacity
        assert restored.depth == tree.depth
        assert point_set(restored) == point_set(tree)

    def test_roundtrip_compressed(self, tree):
        """Test round trip with compression."""
        data = serialize_tree(tree, compress=True)
        restored = deserialize_tree(data, compressed=True)
        assert point_set(restored) == point_set(tree)

    def test_snapshot_is_stable(self, tree):
        """Test that a reloaded tree serializes to the same snapshot."""
        data = serialize_tree(tree)
        assert serialize_tree(deserialize_tree(data)) == data

    def test_missing_boundary(self):
        """Test that a snapshot without boundary raises error."""
        with pytest.raises(ValueError, match="JSON missing boundary information"):
            deserialize_tree(b'{"points": []}')

    def test_invalid_json(self):
        """Test that malformed bytes raise error."""
        with pytest.raises(ValueError):
            deserialize_tree(b"{not json")

    def test_corrupt_compressed(self):
        """Test that garbage compressed bytes raise error."""
        with pytest.raises(ValueError, match="Invalid snapshot"):
            deserialize_tree(b"definitely not zlib", compressed=True)

    def test_not_an_object(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(ValueError):
            deserialize_tree(b"[1, 2, 3]")

    def test_unserializable_payload(self):
        """Test that payloads must be JSON-serializable."""
        tree = QuadTree(Rectangle(0, 0, 10, 10), 2)
        tree.insert(Point(1, 1, object()))
        with pytest.raises(TypeError):
            serialize_tree(tree)


class TestSaveLoad:
    """Tests for save_tree and load_tree."""

    def test_save_and_load(self, tree, tmp_path):
        """Test writing and reading a plain snapshot."""
        path = tmp_path / "tree.json"
        size = save_tree(tree, path)

        assert size == path.stat().st_size
        json.loads(path.read_text())  # plain JSON on disk

        restored = load_tree(path)
        assert point_set(restored) == point_set(tree)

    def test_save_and_load_compressed(self, tree, tmp_path):
        """Test that a .zz suffix selects compression."""
        path = tmp_path / "tree.json.zz"
        save_tree(tree, path)

        assert zlib.decompress(path.read_bytes()) == serialize_tree(tree)
        assert point_set(load_tree(path)) == point_set(tree)

    def test_load_missing(self, tmp_path):
        """Test that a missing snapshot raises error."""
        with pytest.raises(FileNotFoundError):
            load_tree(tmp_path / "missing.json")
