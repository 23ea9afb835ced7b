# KDGeo - Arbre K-dimensionnel pour la recherche du plus proche voisin pondéré

# Import main components for direct API access
from kdgeo.core.errors import (
    KDGeoError,
    MissingDimension,
    InvalidDistance,
    InvalidWeight,
    InvalidConfiguration,
)
from kdgeo.core.tree import KDTree, KDNode, Point
from kdgeo.builder.builder import build_tree
from kdgeo.search.searcher import search, Searcher, Neighbor
from kdgeo.search.trace import SearchTrace, TraceEvent

__version__ = "1.0.0"
