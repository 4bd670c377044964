"""Unit tests for render contexts, scenes and view publishing."""

from datetime import datetime, timedelta

import pytest

from linknode.config import Settings
from linknode.models import Bundles, EdgeStyle, RelationshipSpec, Tablet
from linknode.render import (
    CancellationToken,
    LabelKind,
    LabelSpec,
    NodeSizeMode,
    RenderOptions,
    Scene,
    build_render_context,
    link_key,
)
from linknode.view import LinkNodeView

FLOW_POSITIONS = {
    "1.1.1.1": (100.0, 100.0),
    "2.2.2.2": (300.0, 100.0),
    "3.3.3.3": (100.0, 400.0),
    "4.4.4.4": (300.0, 400.0),
}


@pytest.fixture
def flow_view(view: LinkNodeView, flow_records: Bundles, sip_dip: RelationshipSpec, place) -> LinkNodeView:
    view.set_records(flow_records)
    view.add_relationship(sip_dip)
    place(view, FLOW_POSITIONS)
    return view


class TestRenderContext:
    """Tests for per-frame aggregation."""

    def test_every_record_mapped_or_unmapped(self, view: LinkNodeView, mixed_records: Bundles, sip_dip, place) -> None:
        """Test records split exactly into drawn and unmapped."""
        view.set_records(mixed_records)
        view.add_relationship(sip_dip)
        place(view, {"1.1.1.1": (10.0, 10.0), "2.2.2.2": (50.0, 10.0), "5.5.5.5": (90.0, 10.0)})

        ctx = view.context
        dns = set(mixed_records.tablets[1].bundles)
        assert view.no_mapping() == dns
        mapped = ctx.mapped_bundles()
        assert not mapped & ctx.no_mapping
        assert mapped | ctx.no_mapping == set(mixed_records)

    def test_link_and_node_totals(self, flow_view: LinkNodeView) -> None:
        """Test counters aggregate records per link and node."""
        ctx = flow_view.context
        a, b = "100,100", "300,100"
        assert ctx.link_counter.total(link_key(a, b)) == 3.0
        assert ctx.node_counter.total(a) == 3.0
        assert ctx.entity_counter.total("1.1.1.1") == 3.0
        assert ctx.entities_for(a) == {"1.1.1.1"}
        assert ctx.node_for("2.2.2.2") == b
        assert ctx.degree(a) == 1

    def test_same_pixel_aggregates(self, flow_view: LinkNodeView, place) -> None:
        """Test entities on one pixel become one node and a self link."""
        place(flow_view, {"2.2.2.2": (100.3, 100.4)})
        ctx = flow_view.context
        assert ctx.entities_for("100,100") == {"1.1.1.1", "2.2.2.2"}
        self_link = flow_view.scene.shape(f"link:{link_key('100,100', '100,100')}")
        assert self_link is not None
        assert not self_link.arrow

    def test_cancelled_token_aborts(self, flow_view: LinkNodeView, flow_records: Bundles, test_settings: Settings) -> None:
        """Test a superseded pass stops and reports it."""
        token = CancellationToken(1, lambda: 2)
        ctx = build_render_context(
            flow_view.engine,
            flow_view.transform,
            flow_records,
            RenderOptions(),
            flow_view.colors,
            test_settings,
            token,
        )
        assert ctx.aborted
        assert len(ctx.link_counter) == 0

    def test_link_styles(self, view: LinkNodeView, flow_records: Bundles, place) -> None:
        """Test mixed styles on one line fall back to solid."""
        view.set_records(flow_records)
        view.add_relationship(RelationshipSpec("sip", "dip", style=EdgeStyle.DOTTED))
        place(view, FLOW_POSITIONS)
        key = f"link:{link_key('100,100', '300,100')}"
        assert view.scene.shape(key).style == EdgeStyle.DOTTED

        view.add_relationship(RelationshipSpec("sip", "dip", style=EdgeStyle.SOLID))
        assert view.scene.shape(key).style == EdgeStyle.SOLID

    def test_strict_matches(self, flow_view: LinkNodeView, flow_records: Bundles) -> None:
        """Test strict matching needs every relationship to resolve."""
        flow_view.add_relationship(RelationshipSpec("sip", "user"))
        assert len(flow_view.scene.links()) == 2
        assert not flow_view.no_mapping()

        flow_view.set_options(RenderOptions(strict_matches=True))
        assert len(flow_view.scene) == 0
        assert flow_view.no_mapping() == set(flow_records)

    def test_timing_marks(self, view: LinkNodeView, place) -> None:
        """Test timing marks are normalized into the record time range."""
        tablet = Tablet("flows", ["sip", "dip"])
        start = datetime(2024, 5, 1, 12, 0, 0)
        for seconds in (0, 5, 10):
            tablet.add({"sip": "a", "dip": "b"}, timestamp=start + timedelta(seconds=seconds))
        view.set_records(Bundles(tablets=[tablet]))
        view.add_relationship(RelationshipSpec("sip", "dip"))
        view.options.timing_marks = True
        place(view, {"a": (10.0, 10.0), "b": (90.0, 10.0)})

        (link,) = view.scene.links()
        assert link.timing == pytest.approx([0.0, 0.5, 1.0])

    def test_scope(self, flow_view: LinkNodeView) -> None:
        """Test the render scope restricts what is drawn."""
        flow_view.set_scope(lambda b: b.get("dport") == "22")
        drawn = {e for n in flow_view.scene.nodes() for e in n.entities}
        assert drawn == {"3.3.3.3", "4.4.4.4"}
        assert len(flow_view.scope()) == 1

        flow_view.set_scope(None)
        assert len(flow_view.scene.nodes()) == 4


class TestScene:
    """Tests for drawn shapes and record lookups."""

    def test_shape_record_lookups(self, flow_view: LinkNodeView, flow_records: Bundles) -> None:
        """Test shapes and records find each other."""
        link_id = f"link:{link_key('100,100', '300,100')}"
        behind = flow_view.bundles_for_shape(link_id)
        assert len(behind) == 3

        bundle = next(iter(behind))
        assert flow_view.shapes_for_bundle(bundle) == {link_id, "node:100,100", "node:300,100"}
        assert flow_view.bundles_for_shape("node:nowhere") == set()

    def test_hit_testing(self, flow_view: LinkNodeView) -> None:
        """Test point and rectangle picks."""
        assert flow_view.entities_at(101, 99) == {"1.1.1.1"}
        assert flow_view.entities_at(200, 300) == set()
        assert flow_view.entities_in_rect(50, 50, 350, 150) == {"1.1.1.1", "2.2.2.2"}

    def test_link_contains(self, flow_view: LinkNodeView) -> None:
        """Test a point near the segment hits the link."""
        link = flow_view.scene.shape(f"link:{link_key('100,100', '300,100')}")
        assert link.contains(200, 102)
        assert not link.contains(200, 120)

    def test_node_sizes_follow_counts(self, flow_view: LinkNodeView, test_settings: Settings) -> None:
        """Test larger nodes for more records and draw order."""
        scene = flow_view.scene
        big = scene.node("100,100")
        small = scene.node("100,400")
        assert big.radius == test_settings.node_max_px
        assert small.radius < big.radius
        assert scene.nodes()[-1].node_key in ("100,100", "300,100")

    def test_summary_is_plain_data(self, flow_view: LinkNodeView) -> None:
        """Test the summary dump has every primitive."""
        summary = flow_view.scene.summary()
        assert summary["render_id"] == flow_view.scene.render_id
        assert len(summary["nodes"]) == 4
        assert len(summary["links"]) == 2

    def test_transparency(self, flow_view: LinkNodeView) -> None:
        """Test transparency adds an alpha channel to smaller shapes."""
        flow_view.set_options(RenderOptions(transparency=True))
        assert len(flow_view.scene.node("100,400").color) == 9
        assert len(flow_view.scene.node("100,100").color) == 7


class TestLabels:
    """Tests for node and link labels in a scene."""

    def test_node_labels(self, flow_view: LinkNodeView) -> None:
        """Test node labels are on by default."""
        assert flow_view.scene.node("100,100").label == "1.1.1.1"

    def test_dynamic_labels(self, flow_view: LinkNodeView) -> None:
        """Test dynamic labels only show for selected or sticky nodes."""
        flow_view.selection.select({"1.1.1.1"})
        flow_view.sticky.add("4.4.4.4")
        flow_view.set_options(RenderOptions(dynamic_labels=True))
        labeled = {n.node_key for n in flow_view.scene.nodes() if n.label}
        assert labeled == {"100,100", "300,400"}
        assert flow_view.scene.node("100,100").selected

    def test_sticky_survives_labels_off(self, flow_view: LinkNodeView) -> None:
        """Test sticky nodes keep their label with node labels off."""
        flow_view.sticky.add("3.3.3.3")
        flow_view.set_options(RenderOptions(node_labels=False))
        labeled = {n.node_key for n in flow_view.scene.nodes() if n.label}
        assert labeled == {"100,400"}

    def test_link_labels(self, flow_view: LinkNodeView) -> None:
        """Test link labels combine several calculators."""
        flow_view.set_options(
            RenderOptions(
                link_labels=True,
                link_label_selection=[LabelSpec(LabelKind.COUNT), LabelSpec(LabelKind.FIELD, "dport")],
            )
        )
        link = flow_view.scene.shape(f"link:{link_key('100,100', '300,100')}")
        assert link.label == "3 | [2 dport]"


class _ReentrantRenderer:
    """Requests a newer render while drawing."""

    def __init__(self, view: LinkNodeView) -> None:
        self.view = view
        self.calls = 0

    def draw(self, context, options, selection, sticky) -> Scene:
        self.calls += 1
        self.view.request_render()
        return Scene(context.render_id)


class TestPublishing:
    """Tests for atomic publication of frames."""

    def test_lookups_empty_before_render(self, test_settings: Settings) -> None:
        """Test lookups are empty before anything is published."""
        view = LinkNodeView(test_settings)
        assert view.scene is None
        assert view.no_mapping() == set()
        assert view.entities_at(0, 0) == set()
        assert view.bundles_for_shape("node:0,0") == set()

    def test_superseded_render_not_published(self, view: LinkNodeView, flow_records: Bundles, sip_dip) -> None:
        """Test a pass overtaken during drawing publishes nothing."""
        renderer = _ReentrantRenderer(view)
        view.renderer = renderer
        view.set_records(flow_records)
        assert view.add_relationship(sip_dip)
        assert renderer.calls == 2
        assert view.scene is None
        assert view.context is None
        assert view.render() is None

    def test_published_pair_matches(self, flow_view: LinkNodeView) -> None:
        """Test the published context and scene share a render id."""
        scene = flow_view.render()
        assert scene is flow_view.scene
        assert flow_view.context.render_id == scene.render_id

    def test_degree_sizing(self, flow_view: LinkNodeView, test_settings: Settings) -> None:
        """Test degree sizing uses the number of linked nodes."""
        flow_view.set_options(RenderOptions(node_size=NodeSizeMode.DEGREE))
        assert {n.radius for n in flow_view.scene.nodes()} == {float(test_settings.node_max_px)}
