"""
Edge store for the Voronoi diagram.

Edges are keyed by the unordered pair of sites they separate and collect
their endpoints as the sweep discovers them. An edge whose two sites share a
y-coordinate has a vertical bisector and fills its ``top``/``bottom`` slots;
every other edge fills ``left``/``right``.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

import structlog

from .geometry import BOTTOM, LEFT, RIGHT, TOP, Point

logger = structlog.get_logger()

EdgeKey = FrozenSet[int]


def edge_key(a: int, b: int) -> EdgeKey:
    return frozenset((a, b))


def slot_for_direction(direction: Point) -> str:
    """Name of the slot at the end of an edge reached by travelling ``direction``."""
    if direction.x < 0:
        return LEFT
    if direction.x > 0:
        return RIGHT
    return TOP if direction.y < 0 else BOTTOM


@dataclass(eq=False)
class Edge:
    """Voronoi edge between two sites."""

    left_site: int
    right_site: int
    left_point: Point
    right_point: Point
    left: Optional[Point] = None
    right: Optional[Point] = None
    top: Optional[Point] = None
    bottom: Optional[Point] = None

    @property
    def key(self) -> EdgeKey:
        return edge_key(self.left_site, self.right_site)

    @property
    def sites(self) -> Tuple[int, int]:
        return (self.left_site, self.right_site)

    @property
    def is_vertical(self) -> bool:
        """True if the bisector is vertical (both sites share y)."""
        return self.left_point.y == self.right_point.y

    @property
    def slot_names(self) -> Tuple[str, str]:
        return (TOP, BOTTOM) if self.is_vertical else (LEFT, RIGHT)

    @property
    def endpoints(self) -> Tuple[Optional[Point], Optional[Point]]:
        first, second = self.slot_names
        return getattr(self, first), getattr(self, second)

    @property
    def vertex_count(self) -> int:
        return sum(p is not None for p in self.endpoints)

    @property
    def is_complete(self) -> bool:
        return self.vertex_count == 2

    def missing_slots(self) -> List[str]:
        return [name for name in self.slot_names if getattr(self, name) is None]

    def add_vertex(self, vertex: Point, travel: Point) -> bool:
        """
        Record a vertex discovered at the end reached by travelling ``travel``.

        Args:
            vertex: The Voronoi vertex
            travel: Direction along the bisector pointing at the vertex's end

        Returns:
            True if the vertex was stored, False if that slot was already filled
        """
        slot = slot_for_direction(travel)
        existing = getattr(self, slot)
        if existing is not None:
            logger.warning("Edge slot already filled",
                           sites=self.sites, slot=slot,
                           existing=tuple(existing), vertex=tuple(vertex))
            return False
        setattr(self, slot, vertex)
        return True

    def as_segment(self) -> Tuple[Point, Point]:
        """Both endpoints; only valid once the edge is complete."""
        first, second = self.endpoints
        if first is None or second is None:
            raise ValueError(f"Edge {self.sites} is not complete")
        return first, second


class EdgeStore:
    """Growable set of edges keyed by unordered site pair."""

    def __init__(self, sites: Sequence[Point]):
        self._sites = sites
        self._edges: Dict[EdgeKey, Edge] = {}

    def get_or_create(self, left_site: int, right_site: int) -> Edge:
        """
        Return the edge between two sites, creating it on first use.

        The creation order of ``left_site``/``right_site`` is kept on the edge;
        later lookups with the pair reversed return the same edge.
        """
        key = edge_key(left_site, right_site)
        edge = self._edges.get(key)
        if edge is None:
            edge = Edge(
                left_site=left_site,
                right_site=right_site,
                left_point=self._sites[left_site],
                right_point=self._sites[right_site],
            )
            self._edges[key] = edge
            logger.debug("Edge created", sites=(left_site, right_site))
        return edge

    def get(self, a: int, b: int) -> Optional[Edge]:
        return self._edges.get(edge_key(a, b))

    def keys(self) -> List[EdgeKey]:
        return list(self._edges)

    def __contains__(self, key: EdgeKey) -> bool:
        return key in self._edges

    def __iter__(self) -> Iterator[Edge]:
        return iter(self._edges.values())

    def __len__(self) -> int:
        return len(self._edges)
