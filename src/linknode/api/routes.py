"""API routes for the link-node view.

Provides:
- /records and /relationships to build the graph
- /render and /shapes/{id}/records to draw and trace back to records
- /interaction/* for pointer gestures and mode keys
- /view/* and /layout/* for viewport, bookmarks and layouts
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from linknode.errors import LinkNodeError
from linknode.graph.layouts import LayoutAlgorithm, LayoutCandidate
from linknode.graph.transform import Extents
from linknode.interaction.controller import ModeKey, PointerButton, PointerEvent
from linknode.models.records import Bundle, Bundles, Tablet
from linknode.models.relationship import EdgeStyle, RelationshipSpec
from linknode.view import LinkNodeView

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request / Response Models
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    records: int
    nodes: int
    links: int
    version: str = "0.1.0"


class TabletPayload(BaseModel):
    """One tabular source sent inline."""

    name: str = "records"
    rows: list[dict[str, Any]]
    multi_valued: list[str] = []
    timestamp_field: str | None = None


class RecordsRequest(BaseModel):
    tablets: list[TabletPayload]


class GraphSummary(BaseModel):
    """Size of the graph after a change."""

    records: int
    nodes: int
    directed_links: int
    relationships: list[str]


class RelationshipRequest(BaseModel):
    """A relationship, either as fields or as its encoded form."""

    from_field: str | None = None
    to_field: str | None = None
    from_icon: str = ""
    to_icon: str = ""
    from_typed: bool = False
    to_typed: bool = False
    style: EdgeStyle = EdgeStyle.SOLID
    ignore_not_set: bool = False
    encoded: str | None = None


class RelationshipInfo(BaseModel):
    encoded: str
    from_field: str
    to_field: str
    style: EdgeStyle
    ignore_not_set: bool


class RelationshipListResponse(BaseModel):
    active: list[RelationshipInfo]
    recent: list[RelationshipInfo]


class GraphAnalysisResponse(BaseModel):
    """Structural measures; conductance is for the current selection."""

    biconnected_components: list[list[str]]
    cut_vertices: list[str]
    clustering: dict[str, float]
    conductance: float


class PointerRequest(BaseModel):
    sx: float
    sy: float
    button: PointerButton = PointerButton.PRIMARY
    shift: bool = False
    ctrl: bool = False


class KeyRequest(BaseModel):
    key: ModeKey
    down: bool = True


class InteractionResponse(BaseModel):
    state: str
    selection: list[str]
    latches: list[str]


class ViewConfigBody(BaseModel):
    config: str


class ZoomRequest(BaseModel):
    steps: float = Field(default=1.0, description="Positive zooms in, negative zooms out")
    anchor_sx: float | None = None
    anchor_sy: float | None = None


class ExtentsResponse(BaseModel):
    x: float
    y: float
    width: float
    height: float


class LayoutFileRequest(BaseModel):
    path: str


class LayoutPreviewRequest(BaseModel):
    algorithms: list[str] = Field(default_factory=lambda: [a.value for a in LayoutAlgorithm])


class CandidateInfo(BaseModel):
    index: int
    algorithm: str
    duration_ms: float
    repaired: int
    positions: dict[str, tuple[float, float]]


class AdoptRequest(BaseModel):
    index: int = Field(ge=0)


# ============================================================================
# Helper Functions
# ============================================================================


def get_view(request: Request) -> LinkNodeView:
    """Get the view from app state."""
    return request.app.state.view


def _summary(view: LinkNodeView) -> GraphSummary:
    return GraphSummary(
        records=len(view.records),
        nodes=len(view.engine.undirected),
        directed_links=view.engine.directed.edge_count(),
        relationships=[str(s) for s in view.engine.relationships],
    )


def _extents(extents: Extents) -> ExtentsResponse:
    return ExtentsResponse(x=extents.x, y=extents.y, width=extents.width, height=extents.height)


def _relationship_info(spec: RelationshipSpec) -> RelationshipInfo:
    return RelationshipInfo(
        encoded=spec.encode(),
        from_field=spec.from_field,
        to_field=spec.to_field,
        style=spec.style,
        ignore_not_set=spec.ignore_not_set,
    )


def _spec(body: RelationshipRequest) -> RelationshipSpec:
    if body.encoded:
        return RelationshipSpec.decode(body.encoded)
    if not body.from_field or not body.to_field:
        raise HTTPException(status_code=400, detail="from_field and to_field are required")
    return RelationshipSpec(
        from_field=body.from_field,
        to_field=body.to_field,
        from_icon=body.from_icon,
        to_icon=body.to_icon,
        from_typed=body.from_typed,
        to_typed=body.to_typed,
        style=body.style,
        ignore_not_set=body.ignore_not_set,
    )


def _interaction(view: LinkNodeView) -> InteractionResponse:
    return InteractionResponse(
        state=view.controller.state.value,
        selection=sorted(view.selection),
        latches=sorted(k.value for k in view.controller.latches),
    )


def _record(bundle: Bundle) -> dict[str, Any]:
    return {
        "tablet": bundle.tablet,
        "timestamp": bundle.timestamp.isoformat() if bundle.timestamp else None,
        "values": dict(bundle.values),
    }


# ============================================================================
# Graph Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    view = get_view(request)
    return HealthResponse(
        status="healthy",
        records=len(view.records),
        nodes=len(view.engine.undirected),
        links=view.engine.directed.edge_count(),
    )


@router.post("/records", response_model=GraphSummary)
async def set_records(request: Request, body: RecordsRequest) -> GraphSummary:
    """Replace the root record set."""
    view = get_view(request)
    s = view.settings
    tablets = []
    for payload in body.tablets:
        tablet = Tablet(
            payload.name,
            [],
            multi_valued=payload.multi_valued,
            not_set=s.not_set,
            delimiter=s.multi_value_delimiter,
        )
        for row in payload.rows:
            timestamp = None
            raw = row.get(payload.timestamp_field) if payload.timestamp_field else None
            if raw:
                try:
                    timestamp = datetime.fromisoformat(str(raw))
                except ValueError:
                    raise HTTPException(status_code=400, detail=f"Bad timestamp {raw!r}")
            tablet.add(row, timestamp=timestamp)
        tablets.append(tablet)

    view.set_records(Bundles(tablets=tablets))
    logger.info(f"Loaded {len(view.records)} records in {len(tablets)} tablets")
    return _summary(view)


@router.post("/relationships", response_model=GraphSummary)
async def add_relationship(request: Request, body: RelationshipRequest) -> GraphSummary:
    """Activate a relationship (no-op if already active)."""
    view = get_view(request)
    try:
        view.add_relationship(_spec(body))
    except LinkNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _summary(view)


@router.delete("/relationships", response_model=GraphSummary)
async def remove_relationship(request: Request, body: RelationshipRequest) -> GraphSummary:
    """Deactivate a relationship."""
    view = get_view(request)
    try:
        removed = view.remove_relationship(_spec(body))
    except LinkNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Relationship not active")
    return _summary(view)


@router.get("/relationships", response_model=RelationshipListResponse)
async def list_relationships(request: Request) -> RelationshipListResponse:
    """Active relationships and the most recently used ones."""
    view = get_view(request)
    return RelationshipListResponse(
        active=[_relationship_info(s) for s in view.engine.relationships],
        recent=[_relationship_info(s) for s in view.engine.history.recent()],
    )


@router.get("/graph/analysis", response_model=GraphAnalysisResponse)
async def graph_analysis(request: Request) -> GraphAnalysisResponse:
    """Biconnected components, cut vertices, clustering and conductance."""
    view = get_view(request)
    return GraphAnalysisResponse(**view.graph_analysis())


# ============================================================================
# Render Endpoints
# ============================================================================


@router.get("/render")
async def render(request: Request) -> dict:
    """Render a frame and return its primitives."""
    view = get_view(request)
    scene = view.render()
    if scene is None:
        raise HTTPException(status_code=409, detail="Render superseded")
    summary = scene.summary()
    summary["no_mapping"] = len(view.no_mapping())
    return summary


@router.get("/shapes/{shape_id}/records")
async def shape_records(request: Request, shape_id: str) -> list[dict]:
    """Records behind a rendered shape."""
    view = get_view(request)
    if view.scene is None or view.scene.shape(shape_id) is None:
        raise HTTPException(status_code=404, detail="Shape not found")
    bundles = view.bundles_for_shape(shape_id)
    return [_record(b) for b in bundles]


# ============================================================================
# Interaction Endpoints
# ============================================================================


def _event(body: PointerRequest) -> PointerEvent:
    return PointerEvent(body.sx, body.sy, body.button, body.shift, body.ctrl)


@router.post("/interaction/press", response_model=InteractionResponse)
async def press(request: Request, body: PointerRequest) -> InteractionResponse:
    view = get_view(request)
    view.press(_event(body))
    return _interaction(view)


@router.post("/interaction/drag", response_model=InteractionResponse)
async def drag(request: Request, body: PointerRequest) -> InteractionResponse:
    view = get_view(request)
    view.drag(_event(body))
    return _interaction(view)


@router.post("/interaction/release", response_model=InteractionResponse)
async def release(request: Request, body: PointerRequest) -> InteractionResponse:
    view = get_view(request)
    view.release(_event(body))
    return _interaction(view)


@router.post("/interaction/keys", response_model=InteractionResponse)
async def mode_key(request: Request, body: KeyRequest) -> InteractionResponse:
    """Press or release a mode latch key."""
    view = get_view(request)
    if body.down:
        view.key_down(body.key)
    else:
        view.key_up(body.key)
    return _interaction(view)


# ============================================================================
# View Endpoints
# ============================================================================


@router.get("/view/config", response_model=ViewConfigBody)
async def get_view_config(request: Request) -> ViewConfigBody:
    return ViewConfigBody(config=get_view(request).view_config())


@router.put("/view/config", response_model=ViewConfigBody)
async def put_view_config(request: Request, body: ViewConfigBody) -> ViewConfigBody:
    """Apply a bookmarked configuration; malformed strings change nothing."""
    view = get_view(request)
    try:
        view.apply_view_config(body.config)
    except LinkNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ViewConfigBody(config=view.view_config())


@router.post("/view/zoom", response_model=ExtentsResponse)
async def zoom(request: Request, body: ZoomRequest) -> ExtentsResponse:
    view = get_view(request)
    return _extents(view.zoom(body.steps, body.anchor_sx, body.anchor_sy))


@router.post("/view/fit", response_model=ExtentsResponse)
async def fit(request: Request) -> ExtentsResponse:
    """Zoom to fit the visible entities."""
    return _extents(get_view(request).zoom_to_fit())


# ============================================================================
# Layout Endpoints
# ============================================================================


@router.post("/layout/save")
async def save_layout(request: Request, body: LayoutFileRequest) -> dict:
    view = get_view(request)
    try:
        count = view.save_layout(body.path)
    except LinkNodeError as e:
        logger.exception(f"Error saving layout: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return {"saved": count}


@router.post("/layout/load")
async def load_layout(request: Request, body: LayoutFileRequest) -> dict:
    view = get_view(request)
    try:
        updated = view.load_layout(body.path)
    except LinkNodeError as e:
        logger.exception(f"Error loading layout: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return {"updated": len(updated)}


@router.post("/layout/preview", response_model=list[CandidateInfo])
async def preview_layouts(request: Request, body: LayoutPreviewRequest) -> list[CandidateInfo]:
    """Compute candidate layouts; adopt one with /layout/adopt."""
    view = get_view(request)
    try:
        algorithms = [LayoutAlgorithm.parse(name) for name in body.algorithms]
    except LinkNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    candidates: list[LayoutCandidate] = view.preview_layouts(algorithms)
    request.app.state.candidates = candidates
    return [
        CandidateInfo(
            index=i,
            algorithm=c.algorithm.value,
            duration_ms=c.duration_ms,
            repaired=c.repaired,
            positions=c.positions,
        )
        for i, c in enumerate(candidates)
    ]


@router.post("/layout/adopt")
async def adopt_layout(request: Request, body: AdoptRequest) -> dict:
    """Apply one previewed candidate."""
    view = get_view(request)
    candidates: list[LayoutCandidate] = getattr(request.app.state, "candidates", [])
    if body.index >= len(candidates):
        raise HTTPException(status_code=404, detail="Candidate not found")
    updated = view.adopt_layout(candidates[body.index])
    request.app.state.candidates = []
    return {"updated": len(updated)}
