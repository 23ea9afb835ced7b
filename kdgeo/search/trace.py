"""
Trace de diagnostic pour la recherche KDGeo.
Enregistre les décisions de la recherche sous forme d'événements structurés,
sans influencer le résultat.
"""

from typing import Any, Dict, Iterator, List, NamedTuple, Optional

# Types d'événements émis par la recherche
SELF_EXCLUDED = "self_excluded"
REJECTED = "rejected"
ADMITTED = "admitted"
VISIT_LEFT = "visit_left"
SKIP_LEFT = "skip_left"
VISIT_RIGHT = "visit_right"
SKIP_RIGHT = "skip_right"
OUT_OF_RANGE = "out_of_range"
SELECTED = "selected"
NO_CANDIDATE = "no_candidate"


class TraceEvent(NamedTuple):
    """Une décision prise sur un nœud pendant la recherche."""

    kind: str
    depth: int
    node_id: Any
    coordinates: tuple
    detail: Dict[str, Any]


class SearchTrace:
    """
    Collecteur d'événements de recherche.
    Passé à search() via le paramètre trace; la recherche ne lit jamais son contenu.
    """

    def __init__(self):
        self.events: List[TraceEvent] = []

    def record(self, kind: str, depth: int, node, **detail) -> None:
        self.events.append(TraceEvent(kind, depth, node.id, node.coordinates, detail))

    def kinds(self, node_id: Any = None) -> List[str]:
        """Types d'événements dans l'ordre, éventuellement filtrés sur un nœud."""
        return [e.kind for e in self.events if node_id is None or e.node_id == node_id]

    def first(self, kind: str) -> Optional[TraceEvent]:
        for event in self.events:
            if event.kind == kind:
                return event
        return None

    def clear(self) -> None:
        self.events = []

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[TraceEvent]:
        return iter(self.events)

    def format(self) -> str:
        """Rend la trace lisible, indentée selon la profondeur."""
        lines = []
        for event in self.events:
            indent = "  " * event.depth
            label = event.node_id if event.node_id is not None else event.coordinates
            details = ", ".join(f"{key}={value}" for key, value in event.detail.items())
            line = f"{indent}[{event.kind}] {label}"
            if details:
                line += f" ({details})"
            lines.append(line)
        return "\n".join(lines)
