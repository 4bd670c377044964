"""Pytest configuration and fixtures."""

import pytest

from linknode.config import Settings, get_test_settings
from linknode.graph.transform import Extents
from linknode.models import Bundles, RelationshipSpec, Tablet
from linknode.view import LinkNodeView


@pytest.fixture
def test_settings() -> Settings:
    """Deterministic settings for tests."""
    return get_test_settings()


@pytest.fixture
def flow_records() -> Bundles:
    """Three identical flows plus one flow between other hosts."""
    return Bundles.from_rows(
        [
            {"sip": "1.1.1.1", "dip": "2.2.2.2", "dport": "80"},
            {"sip": "1.1.1.1", "dip": "2.2.2.2", "dport": "80"},
            {"sip": "1.1.1.1", "dip": "2.2.2.2", "dport": "443"},
            {"sip": "3.3.3.3", "dip": "4.4.4.4", "dport": "22"},
        ],
        name="flows",
    )


@pytest.fixture
def mixed_records() -> Bundles:
    """A flow tablet plus a DNS tablet that lacks the flow fields."""
    flows = Tablet("flows", ["sip", "dip"])
    flows.add({"sip": "1.1.1.1", "dip": "2.2.2.2"})
    flows.add({"sip": "1.1.1.1", "dip": "5.5.5.5"})
    dns = Tablet("dns", ["query"])
    dns.add({"query": "example.com"})
    return Bundles(tablets=[flows, dns])


@pytest.fixture
def sip_dip() -> RelationshipSpec:
    return RelationshipSpec("sip", "dip")


@pytest.fixture
def view(test_settings: Settings) -> LinkNodeView:
    """A view whose world coordinates equal screen pixels."""
    view = LinkNodeView(test_settings)
    view.transform.set_extents(
        Extents(0.0, 0.0, float(test_settings.surface_width), float(test_settings.surface_height))
    )
    return view


@pytest.fixture
def place():
    """Move entities of a view to fixed world positions and re-render."""

    def _place(view: LinkNodeView, positions: dict[str, tuple[float, float]]) -> None:
        for entity, (x, y) in positions.items():
            view.engine.world.set(entity, x, y)
        view.transform.transform()
        view.render()

    return _place
