"""Graph construction, coordinate transform and layout persistence.

Provides:
- GraphModel: multigraph over entity strings with record references
- RelationshipEngine: derives directed/undirected graphs from records
- CoordinateTransform: world <-> screen mapping, zoom, pan, fit
- Layout files and batch layout preview
"""

from linknode.graph.analysis import GraphAnalysis
from linknode.graph.layouts import LayoutAlgorithm, LayoutCandidate, LayoutPreviewer
from linknode.graph.model import GraphModel
from linknode.graph.persistence import load_layout, read_layout, save_layout
from linknode.graph.relationships import RelationshipEngine
from linknode.graph.transform import CoordinateTransform, Extents, screen_key
from linknode.graph.world import WorldPositions

__all__ = [
    # Graph
    "GraphModel",
    "GraphAnalysis",
    "RelationshipEngine",
    "WorldPositions",
    # Transform
    "CoordinateTransform",
    "Extents",
    "screen_key",
    # Layouts
    "LayoutAlgorithm",
    "LayoutCandidate",
    "LayoutPreviewer",
    "save_layout",
    "load_layout",
    "read_layout",
]
