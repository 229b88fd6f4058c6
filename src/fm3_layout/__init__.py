"""
fm3-layout: FM^3 multilevel force-directed graph layout in Python.

The engine combines graph reduction, connected component packing,
solar-system multilevel coarsening and a damped force iteration whose
repulsive forces are computed exactly, on a grid, or with a reduced
quadtree and multipole expansions (NMM).

Example:
    from fm3_layout import FMMMLayout

    layout = FMMMLayout(nodes=nodes, links=links, random_seed=1)
    layout.run()
"""

__version__ = "0.1.0"

# Base class for building layouts
from .base import BaseLayout

# The FM^3 layout
from .fmmm import FMMMLayout, GraphStructureWarning, fmmm_layout

# Force calculation
from .force import (
    ConvergenceWarning,
    ExactRepulsion,
    ForceIterator,
    GridRepulsion,
    MultipoleRepulsion,
    RepulsionStrategy,
)
from .graph import LayoutGraph

# Metrics for layout quality evaluation
from .metrics import (
    bounding_box,
    edge_length_ratios,
    edge_length_uniformity,
    edge_length_variance,
    layout_quality_summary,
    repulsion_energy,
)

# Configuration
from .options import (
    AllowedPositions,
    EdgeLengthMeasurement,
    FMMMOptions,
    ForceModel,
    GalaxyChoice,
    InitialPlacementForces,
    InitialPlacementMult,
    MaxIterChange,
    PageFormat,
    PreSort,
    QualityVsSpeed,
    ReducedTreeConstruction,
    RepulsiveForcesMethod,
    SmallestCellFinding,
    StopCriterion,
    TipOver,
)
from .packing import Rectangle, pack_rectangles

# Preprocessing utilities
from .preprocessing import connected_components, reduce_graph

# Spatial data structures
from .spatial import QuadTree, QuadTreeNode

# Shared types
from .types import Event, EventType, Link, LinkLike, Node, NodeLike

# Validation
from .validation import (
    InvalidLinkError,
    InvalidNodeError,
    ValidationError,
    validate_link_indices,
    validate_node_sizes,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Node",
    "Link",
    "EventType",
    "Event",
    "NodeLike",
    "LinkLike",
    # Layout
    "BaseLayout",
    "FMMMLayout",
    "fmmm_layout",
    "GraphStructureWarning",
    "LayoutGraph",
    # Configuration
    "FMMMOptions",
    "PageFormat",
    "QualityVsSpeed",
    "EdgeLengthMeasurement",
    "AllowedPositions",
    "TipOver",
    "PreSort",
    "GalaxyChoice",
    "MaxIterChange",
    "InitialPlacementMult",
    "ForceModel",
    "RepulsiveForcesMethod",
    "StopCriterion",
    "InitialPlacementForces",
    "ReducedTreeConstruction",
    "SmallestCellFinding",
    # Force calculation
    "ConvergenceWarning",
    "ForceIterator",
    "RepulsionStrategy",
    "ExactRepulsion",
    "GridRepulsion",
    "MultipoleRepulsion",
    # Packing
    "Rectangle",
    "pack_rectangles",
    # Metrics
    "repulsion_energy",
    "edge_length_ratios",
    "edge_length_variance",
    "edge_length_uniformity",
    "bounding_box",
    "layout_quality_summary",
    # Spatial data structures
    "QuadTree",
    "QuadTreeNode",
    # Validation
    "ValidationError",
    "InvalidNodeError",
    "InvalidLinkError",
    "validate_link_indices",
    "validate_node_sizes",
    # Preprocessing
    "reduce_graph",
    "connected_components",
]
