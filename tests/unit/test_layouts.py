"""Unit tests for layout files and batch layout preview."""

import math
from pathlib import Path

import pytest

from linknode.errors import LayoutFileError, UnknownLayoutError
from linknode.graph import GraphModel, LayoutAlgorithm, LayoutPreviewer, WorldPositions
from linknode.graph import layouts
from linknode.graph.layouts import compute_layout, repair_positions
from linknode.graph.persistence import format_layout_line, load_layout, parse_layout_line, read_layout, save_layout
from linknode.models import Bundles, RelationshipSpec
from linknode.view import LinkNodeView


@pytest.fixture
def world() -> WorldPositions:
    world = WorldPositions()
    world.set("1.1.1.1", 0.125, -3.5)
    world.set("host, with comma", 1e-9, 12345.678)
    world.set("ünïcode|pipe", -0.1, 0.2)
    return world


class TestLayoutFiles:
    """Tests for layout persistence."""

    def test_line_format(self) -> None:
        """Test a line is three URL-encoded tokens."""
        line = format_layout_line("a,b", 1.5, -2.0)
        assert line == "a%2Cb,1.5,-2.0"
        assert parse_layout_line(line) == ("a,b", (1.5, -2.0))

    def test_round_trip(self, tmp_path: Path, world: WorldPositions) -> None:
        """Test saved positions are restored exactly."""
        path = tmp_path / "layout.txt"
        original = world.snapshot()
        assert save_layout(path, world, list(original)) == 3

        for entity in original:
            world.set(entity, 0.0, 0.0)
        updated = load_layout(path, world, list(original))

        assert sorted(updated) == sorted(original)
        assert world.snapshot() == original

    def test_unknown_entities_ignored(self, tmp_path: Path, world: WorldPositions) -> None:
        """Test loading never creates entities and leaves absent ones alone."""
        path = tmp_path / "layout.txt"
        save_layout(path, world, ["1.1.1.1", "ünïcode|pipe"])

        fresh = WorldPositions()
        fresh.set("1.1.1.1", 9.0, 9.0)
        fresh.set("other", 5.0, 5.0)
        updated = load_layout(path, fresh, ["1.1.1.1", "other"])

        assert updated == ["1.1.1.1"]
        assert fresh.get("1.1.1.1") == (0.125, -3.5)
        assert fresh.get("other") == (5.0, 5.0)
        assert "ünïcode|pipe" not in fresh

    def test_malformed_line_changes_nothing(self, tmp_path: Path, world: WorldPositions) -> None:
        """Test one bad line fails the load before any update."""
        path = tmp_path / "layout.txt"
        path.write_text("1.1.1.1,7.0,7.0\nbroken-line\n", encoding="utf-8")
        before = world.snapshot()
        with pytest.raises(LayoutFileError):
            load_layout(path, world, list(before))
        assert world.snapshot() == before

    def test_bad_coordinate(self, tmp_path: Path) -> None:
        """Test a non-numeric coordinate is rejected."""
        path = tmp_path / "layout.txt"
        path.write_text("a,x,1.0\n", encoding="utf-8")
        with pytest.raises(LayoutFileError):
            read_layout(path)

    @pytest.mark.parametrize("line", ["a,nan,0.5", "a,0.5,inf", "a,-inf,1.0", "a,NaN,-Infinity"])
    def test_non_finite_coordinate(self, tmp_path: Path, line: str) -> None:
        """Test nan and infinite coordinates are rejected."""
        path = tmp_path / "layout.txt"
        path.write_text(line + "\n", encoding="utf-8")
        with pytest.raises(LayoutFileError, match="non-finite"):
            read_layout(path)

    def test_non_finite_leaves_view_usable(
        self, tmp_path: Path, view: LinkNodeView, flow_records: Bundles, sip_dip: RelationshipSpec
    ) -> None:
        """Test a nan line leaves world positions alone and the viewport working."""
        view.set_records(flow_records)
        view.add_relationship(sip_dip)
        before = view.engine.world.snapshot()
        path = tmp_path / "layout.txt"
        path.write_text("2.2.2.2,1.0,1.0\n1.1.1.1,nan,0.5\n", encoding="utf-8")

        with pytest.raises(LayoutFileError):
            view.load_layout(path)
        assert view.engine.world.snapshot() == before
        view.pan(10.0, 0.0)
        assert view.zoom_to_fit().width > 0

    def test_missing_file(self, tmp_path: Path, world: WorldPositions) -> None:
        """Test I/O failures surface as LayoutFileError."""
        with pytest.raises(LayoutFileError):
            load_layout(tmp_path / "nope.txt", world, ["1.1.1.1"])

    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        """Test blank lines are tolerated."""
        path = tmp_path / "layout.txt"
        path.write_text("\na,1.0,2.0\n\n", encoding="utf-8")
        assert read_layout(path) == {"a": (1.0, 2.0)}


def _ring(n: int) -> GraphModel:
    graph: GraphModel[str] = GraphModel(directed=False)
    for k in range(n):
        u, v = f"n{k}", f"n{(k + 1) % n}"
        i, j = graph.add_node(u), graph.add_node(v)
        graph.increment(i, j)
        graph.increment(j, i)
    return graph


class TestLayoutPreview:
    """Tests for batch layout preview."""

    def test_parse_algorithm(self) -> None:
        """Test algorithm names parse and unknown names raise."""
        assert LayoutAlgorithm.parse("circular") == LayoutAlgorithm.CIRCULAR
        with pytest.raises(UnknownLayoutError):
            LayoutAlgorithm.parse("hyperbolic")

    def test_preview_keeps_request_order(self) -> None:
        """Test every candidate comes back, in request order."""
        graph = _ring(6).to_networkx()
        requested = [LayoutAlgorithm.SPRING, LayoutAlgorithm.CIRCULAR, LayoutAlgorithm.SHELL, LayoutAlgorithm.RANDOM]
        previewer = LayoutPreviewer(workers=2, iterations=10, seed=42)
        candidates = previewer.preview(graph, {}, requested, center=(0.0, 0.0), scale=1.0)

        assert [c.algorithm for c in candidates] == requested
        for candidate in candidates:
            assert set(candidate.positions) == set(graph.nodes)
            assert all(math.isfinite(x) and math.isfinite(y) for x, y in candidate.positions.values())

    def test_circular_is_centered(self) -> None:
        """Test the circular layout honors center and scale."""
        graph = _ring(4).to_networkx()
        candidate = compute_layout(LayoutAlgorithm.CIRCULAR, graph, {}, (10.0, 10.0), 2.0)
        for x, y in candidate.positions.values():
            assert math.hypot(x - 10.0, y - 10.0) == pytest.approx(2.0)

    def test_empty_graph(self) -> None:
        """Test an empty graph yields an empty candidate."""
        graph = GraphModel(directed=False).to_networkx()
        candidate = compute_layout(LayoutAlgorithm.SPRING, graph, {}, (0.0, 0.0), 1.0)
        assert candidate.positions == {}

    def test_no_algorithms(self) -> None:
        """Test an empty request returns nothing."""
        assert LayoutPreviewer().preview(_ring(3).to_networkx(), {}, []) == []

    def test_failed_candidate_dropped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a worker failure drops only that candidate."""
        real = layouts.compute_layout

        def flaky(algorithm, *args, **kwargs):
            if algorithm == LayoutAlgorithm.SHELL:
                raise RuntimeError("boom")
            return real(algorithm, *args, **kwargs)

        monkeypatch.setattr(layouts, "compute_layout", flaky)
        previewer = LayoutPreviewer(workers=2, seed=1)
        candidates = previewer.preview(
            _ring(5).to_networkx(), {}, [LayoutAlgorithm.SHELL, LayoutAlgorithm.CIRCULAR]
        )
        assert [c.algorithm for c in candidates] == [LayoutAlgorithm.CIRCULAR]

    def test_repair_positions(self) -> None:
        """Test NaN/inf coordinates are replaced near the center."""
        positions, repaired = repair_positions(
            {"a": (float("nan"), 1.0), "b": (1.0, 2.0), "c": (float("inf"), 0.0)},
            center=(5.0, 5.0),
            scale=1.0,
            seed=3,
        )
        assert repaired == 2
        assert positions["b"] == (1.0, 2.0)
        for entity in ("a", "c"):
            x, y = positions[entity]
            assert 4.0 <= x <= 6.0 and 4.0 <= y <= 6.0
