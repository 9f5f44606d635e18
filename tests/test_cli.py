"""Tests for the command-line interface."""

import json
import random

import pytest
from pointquad.cli import create_parser, main
from pointquad.serialize import load_tree


@pytest.fixture
def points_csv(tmp_path):
    """A CSV file with 200 random points and an id column."""
    rng = random.Random(8)
    lines = ["x,y,id"]
    for i in range(200):
        lines.append(f"{rng.uniform(0, 50)!r},{rng.uniform(0, 50)!r},{i}")
    path = tmp_path / "points.csv"
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def snapshot(points_csv, tmp_path):
    """A snapshot built from points_csv."""
    output = tmp_path / "tree.json"
    assert main(["build", str(points_csv), "-o", str(output), "--capacity", "4"]) == 0
    return output


class TestParser:
    """Tests for argument parsing."""

    def test_build_defaults(self):
        """Test default build options."""
        args = create_parser().parse_args(["build", "in.csv"])
        assert args.capacity == 8
        assert args.depth == 10
        assert args.padding == 0.0
        assert args.output is None
        assert not args.compress

    def test_query_needs_shape(self):
        """Test that query requires a rectangle or a circle."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["query", "tree.json"])

    def test_query_shapes_exclusive(self):
        """Test that rectangle and circle cannot be combined."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(
                ["query", "tree.json", "--rect", "0", "0", "1", "1", "--circle", "0", "0", "1"]
            )


class TestCommands:
    """Tests for CLI commands."""

    def test_no_command(self, capsys):
        """Test that no command prints help and fails."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_build(self, points_csv, tmp_path, capsys):
        """Test building a snapshot from a CSV file."""
        output = tmp_path / "tree.json"
        assert main(["build", str(points_csv), "-o", str(output), "--capacity", "4"]) == 0

        out = capsys.readouterr().out
        assert "Loaded 200 points" in out
        assert "Points inserted: 200" in out

        tree = load_tree(output)
        assert len(tree) == 200
        assert tree.capacity == 4
        assert sorted(p.payload["id"] for p in tree) == list(range(200))

    def test_build_default_output(self, points_csv):
        """Test that the snapshot lands next to the input by default."""
        assert main(["build", str(points_csv)]) == 0
        assert (points_csv.parent / "points.quadtree.json").exists()

    def test_build_compressed(self, points_csv, tmp_path):
        """Test writing a compressed snapshot."""
        output = tmp_path / "tree.json"
        assert main(["build", str(points_csv), "-o", str(output), "--compress"]) == 0

        compressed = tmp_path / "tree.json.zz"
        assert compressed.exists()
        assert len(load_tree(compressed)) == 200

    def test_build_missing_input(self, tmp_path, capsys):
        """Test that a missing input file fails cleanly."""
        assert main(["build", str(tmp_path / "missing.csv")]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_query_rect(self, snapshot, capsys):
        """Test a rectangle query printing JSON lines."""
        capsys.readouterr()
        assert main(["query", str(snapshot), "--rect", "25", "25", "100", "100"]) == 0

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 200
        assert {"x", "y", "payload"} == set(json.loads(lines[0]))

    def test_query_circle(self, snapshot, capsys):
        """Test a circle query."""
        capsys.readouterr()
        assert main(["query", str(snapshot), "--circle", "25", "25", "10"]) == 0

        tree = load_tree(snapshot)
        for line in capsys.readouterr().out.strip().splitlines():
            p = json.loads(line)
            assert (p["x"] - 25) ** 2 + (p["y"] - 25) ** 2 <= 100 + 1e-9
        assert len(tree) == 200

    def test_closest(self, snapshot, capsys):
        """Test nearest search output order."""
        capsys.readouterr()
        assert main(["closest", str(snapshot), "10", "10", "-k", "3"]) == 0

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 3
        distances = [
            ((p["x"] - 10) ** 2 + (p["y"] - 10) ** 2) ** 0.5
            for p in map(json.loads, lines)
        ]
        assert distances == sorted(distances)

    def test_closest_max_distance(self, snapshot, capsys):
        """Test that a tiny radius finds nothing far away."""
        capsys.readouterr()
        assert main(["closest", str(snapshot), "500", "500", "--max-distance", "1"]) == 0
        assert capsys.readouterr().out.strip() == ""

    def test_stats(self, snapshot, capsys):
        """Test snapshot statistics."""
        capsys.readouterr()
        assert main(["stats", str(snapshot)]) == 0

        out = capsys.readouterr().out
        assert "Points: 200" in out
        assert "Capacity: 4" in out
        assert "Leaf nodes:" in out

    def test_stats_missing_snapshot(self, tmp_path, capsys):
        """Test that a missing snapshot fails cleanly."""
        assert main(["stats", str(tmp_path / "none.json")]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_stats_snapshot_without_capacity(self, tmp_path, capsys):
        """Test that a snapshot missing its capacity fails cleanly."""
        path = tmp_path / "tree.json"
        path.write_text(json.dumps({"x": 0, "y": 0, "w": 10, "h": 10, "points": []}))

        assert main(["stats", str(path)]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_stats_corrupt_compressed_snapshot(self, tmp_path, capsys):
        """Test that a corrupt compressed snapshot fails cleanly."""
        path = tmp_path / "tree.json.zz"
        path.write_bytes(b"garbage bytes")

        assert main(["stats", str(path)]) == 1
        assert "Invalid snapshot" in capsys.readouterr().out

    def test_verify(self, points_csv, capsys):
        """Test the DuckDB cross-check."""
        assert main(["verify", str(points_csv), "--queries", "20", "--capacity", "3"]) == 0
        assert "0 failed" in capsys.readouterr().out

    def test_verbose(self, points_csv, tmp_path):
        """Test that verbose mode runs with debug logging."""
        from pointquad.logger import logger, set_debug
        import logging

        try:
            assert main(["-v", "build", str(points_csv), "-o", str(tmp_path / "t.json")]) == 0
            assert logger.level == logging.DEBUG
        finally:
            set_debug(False)
