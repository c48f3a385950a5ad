"""
Voronoi diagram construction with Fortune's sweep-line algorithm.

The builder pops events from the queue in sweep order (increasing y), keeps
the beachline and the edge store in step, derives circle events from each
changed arc neighbourhood and, once the queue is empty, extends the edges
that were never closed off to a fixed bounding square.

The sweep itself runs on a copy of the sites translated so that their
bounding box is centred on the origin, with tolerances scaled by the extent
of that box. Vertices and clipped endpoints are reported in input
coordinates, so the diagram does not depend on where the sites sit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import numpy as np
import structlog

from ..config import settings
from .beachline import NULL_ARC, ArcSpan, Beachline
from .edges import Edge, EdgeStore
from .errors import (
    BeachlineError,
    Defect,
    InvalidSitesError,
    IterationLimitError,
    UnboundEdgeError,
)
from .event_queue import Event, EventQueue, SiteEvent, VertexEvent
from .geometry import (
    BOTTOM,
    LEFT,
    RIGHT,
    TOP,
    Point,
    boundary_point,
    breakpoint_direction,
    circumcircle,
    orientation,
)

logger = structlog.get_logger()

DiagnosticsCallback = Callable[[str, Dict[str, Any]], None]


class DiagramState(Enum):
    """Lifecycle of a diagram build."""
    RUNNING = "running"
    FINALIZING = "finalizing"
    DONE = "done"


class DiagramConfig(NamedTuple):
    """Configuration for a single diagram build."""
    bound: float = 100.0
    epsilon: float = 1e-9
    strict: bool = True
    max_events: Optional[int] = None

    @classmethod
    def from_settings(cls, source=None) -> "DiagramConfig":
        """Build a config from application settings (defaults to the global ones)."""
        source = source or settings
        return cls(bound=source.bound, epsilon=source.epsilon, strict=source.strict)


@dataclass
class VoronoiResult:
    """Finished diagram: sites, complete edges and any defects found."""
    sites: List[Point]
    edges: List[Edge]
    vertices: List[Point] = field(default_factory=list)
    defects: List[Defect] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.defects

    def edge_array(self) -> np.ndarray:
        """Edge endpoints as an (m, 2, 2) array."""
        if not self.edges:
            return np.empty((0, 2, 2))
        return np.array([e.as_segment() for e in self.edges], dtype=float)

    def site_pairs(self) -> np.ndarray:
        """Site index pairs as an (m, 2) array, in the layout of scipy's ridge_points."""
        if not self.edges:
            return np.empty((0, 2), dtype=int)
        return np.array([e.sites for e in self.edges], dtype=int)


def validate_sites(sites) -> List[Point]:
    """
    Convert input coordinates into a list of points.

    Args:
        sites: Sequence or array of (x, y) pairs

    Returns:
        One Point per site, in input order

    Raises:
        InvalidSitesError: If the input is empty, not (n, 2), non-finite or
            contains the same coordinate twice
    """
    try:
        arr = np.asarray(sites, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidSitesError(f"Sites must be (x, y) pairs: {exc}") from exc

    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidSitesError(f"Sites must have shape (n, 2), got {arr.shape}")
    if len(arr) == 0:
        raise InvalidSitesError("At least one site is required")
    if not np.all(np.isfinite(arr)):
        raise InvalidSitesError("Site coordinates must be finite")
    if len(np.unique(arr, axis=0)) != len(arr):
        raise InvalidSitesError("Site coordinates must be distinct")

    return [Point(float(x), float(y)) for x, y in arr]


class VoronoiDiagram:
    """
    Builds a Voronoi diagram from a set of sites.

    Owns the site list, the event queue, the beachline and the edge store.
    ``compute()`` runs the sweep to completion; ``step()`` processes a single
    event for callers that want to observe intermediate states.
    """

    def __init__(self, sites, config: Optional[DiagramConfig] = None,
                 diagnostics: Optional[DiagnosticsCallback] = None):
        """
        Initialize the diagram and seed the event queue.

        Args:
            sites: Sequence or array of distinct (x, y) pairs
            config: Build configuration; defaults to values from settings
            diagnostics: Optional callback receiving ``(event, fields)`` for
                every step of the sweep
        """
        self.config = config or DiagramConfig.from_settings()
        self._sites = validate_sites(sites)
        self._diagnostics = diagnostics

        self.offset, self.scale = _frame_of(self._sites)
        self._frame_sites = [Point(p.x - self.offset.x, p.y - self.offset.y) for p in self._sites]
        if len(set(self._frame_sites)) != len(self._frame_sites):
            raise InvalidSitesError("Sites are not distinct at the precision of their common offset")

        self.queue = EventQueue()
        self.queue.push_sites(self._frame_sites)
        self.beachline = Beachline(self._frame_sites, epsilon=self.config.epsilon, scale=self.scale)
        self.edges = EdgeStore(self._sites)

        self.vertices: List[Point] = []
        self.defects: List[Defect] = []
        self.events_processed = 0
        self.max_events = self.config.max_events or 4 * len(self._sites) + 8

        first = self.queue.peek()
        self._first_row_y = first.point.y
        # Sweep-frame y, see ``offset``
        self.sweep_position = first.point.y
        self.state = DiagramState.RUNNING

        logger.info("Building Voronoi diagram", sites=len(self._sites), bound=self.config.bound)

    @property
    def sites(self) -> List[Point]:
        return list(self._sites)

    def _to_input(self, p: Point) -> Point:
        """Map a point from the sweep frame back to input coordinates."""
        return Point(p.x + self.offset.x, p.y + self.offset.y)

    def _emit(self, event: str, **fields) -> None:
        logger.debug(event, **fields)
        if self._diagnostics is not None:
            self._diagnostics(event, fields)

    # Event loop

    def compute(self) -> VoronoiResult:
        """Run the sweep to exhaustion, finalize unbounded edges and return the result."""
        while self.state is DiagramState.RUNNING:
            self.step()
        if self.state is DiagramState.FINALIZING:
            self.complete_unbound_edges()

        result = self.result()
        logger.info("Voronoi diagram complete",
                    sites=len(result.sites),
                    edges=len(result.edges),
                    vertices=len(result.vertices),
                    events=self.events_processed,
                    defects=len(result.defects))
        return result

    def step(self) -> Optional[Event]:
        """
        Process the next event.

        Returns:
            The processed event, or None once the queue is exhausted (the
            diagram then moves to the finalizing state)
        """
        if self.state is not DiagramState.RUNNING:
            return None
        if self.queue.is_empty():
            self.state = DiagramState.FINALIZING
            return None
        if self.events_processed >= self.max_events:
            raise IterationLimitError(
                f"Processed {self.events_processed} events for {len(self._sites)} sites"
            )

        event = self.queue.pop()
        self.events_processed += 1
        if isinstance(event, SiteEvent):
            self._handle_site_event(event)
        else:
            self._handle_vertex_event(event)

        if self.queue.is_empty():
            self.state = DiagramState.FINALIZING
        return event

    def _handle_site_event(self, event: SiteEvent) -> None:
        point = event.point
        self.sweep_position = point.y
        site = self._sites[event.site]
        self._emit("site_event", site=event.site, x=site.x, y=site.y)

        if self.beachline.is_empty():
            self.beachline.add_initial_arc(event.site)
            return

        # Every site so far shares this y: the parabolas are vertical rays
        if point.y == self._first_row_y:
            left_site = self.beachline.site_of(self.beachline.rightmost())
            arc = self.beachline.add_adjacent_arcs(left_site, event.site)
            self.edges.get_or_create(left_site, event.site)
            self._emit("arc_appended", arc=arc, site=event.site, left_site=left_site)
            return

        located = self.beachline.locate_arc(point, self.sweep_position)
        if located.tied_sites:
            logger.warning("Equidistant parabolas at new site",
                           site=event.site, tied_sites=located.tied_sites,
                           chosen=located.site)
            self._emit("parabola_tie", site=event.site,
                       tied_sites=located.tied_sites, chosen=located.site)
        self._split_arc(located.arc, event.site)

    def _split_arc(self, intersected: int, site: int) -> None:
        """Insert the arc of ``site`` into ``intersected`` and refresh circle events."""
        left, right = self.beachline.neighbours(intersected)
        intersected_site = self.beachline.site_of(intersected)

        # The split arc's own circle event can never happen now
        stale = self.queue.vertex_event_for(intersected)
        if stale is not None:
            self.queue.remove_vertex_events([stale])
            self._emit("false_alarm", sites=stale.sites, vertex=tuple(self._to_input(stale.vertex)))

        left_event = self.queue.vertex_event_for(left) if left != NULL_ARC else None
        right_event = self.queue.vertex_event_for(right) if right != NULL_ARC else None

        arc = self.beachline.add_intersecting_arc(site, intersected)
        left_part, right_part = self.beachline.neighbours(arc)

        # Neighbouring events keep their circle, only the arc handle changes
        if left_event is not None:
            self.queue.retarget(left_event, intersected, left_part)
        if right_event is not None:
            self.queue.retarget(right_event, intersected, right_part)

        self.edges.get_or_create(intersected_site, site)
        self._emit("arc_split", arc=intersected, site=intersected_site,
                   new_arc=arc, new_site=site)

        self._queue_vertex_events(left_part, right_part)

    def _queue_vertex_events(self, *arcs: int) -> None:
        added = self.queue.push_vertex_events([self.get_vertex_event(arc) for arc in arcs])
        for queued in added:
            self._emit("vertex_event_queued", sites=queued.sites,
                       vertex=tuple(self._to_input(queued.vertex)),
                       trigger_y=queued.trigger.y + self.offset.y)

    def _handle_vertex_event(self, event: VertexEvent) -> None:
        self.sweep_position = event.trigger.y

        left, right = self.beachline.neighbours(event.middle)
        if (left, right) != (event.left, event.right):
            raise BeachlineError(
                f"Vertex event for arc {event.middle} expected neighbours "
                f"{(event.left, event.right)}, found {(left, right)}"
            )

        # Edges live in input coordinates; slot directions follow the input sites
        left_site, middle_site, right_site = event.sites
        a = self._sites[left_site]
        b = self._sites[middle_site]
        c = self._sites[right_site]
        vertex = self._to_input(event.vertex)
        self.vertices.append(vertex)
        self._emit("vertex_event", sites=event.sites, x=vertex.x, y=vertex.y)

        # The breakpoints either side of the middle arc meet at the vertex
        self.edges.get_or_create(left_site, middle_site).add_vertex(vertex, breakpoint_direction(a, b))
        self.edges.get_or_create(middle_site, right_site).add_vertex(vertex, breakpoint_direction(b, c))

        self.queue.remove_vertex_events([
            self.queue.vertex_event_for(left),
            self.queue.vertex_event_for(right),
        ])
        self.beachline.remove_arc(event.middle)

        # The new breakpoint starts at the vertex and travels away from it
        travel = breakpoint_direction(a, c)
        self.edges.get_or_create(left_site, right_site).add_vertex(vertex, Point(-travel.x, -travel.y))

        self._queue_vertex_events(left, right)

    def get_vertex_event(self, arc: int) -> Optional[VertexEvent]:
        """
        Circle event for an arc and its two neighbours, if one exists.

        Rejected when the arc lacks a neighbour, two of the three sites
        coincide, the breakpoints around the arc move apart, the circle is
        not finite, or the event would lie before the current sweep position.
        """
        if arc == NULL_ARC or not self.beachline.is_active(arc):
            return None
        left, right = self.beachline.neighbours(arc)
        if left == NULL_ARC or right == NULL_ARC:
            return None

        sites = (
            self.beachline.site_of(left),
            self.beachline.site_of(arc),
            self.beachline.site_of(right),
        )
        if len(set(sites)) < 3:
            return None
        a, b, c = (self._frame_sites[s] for s in sites)
        if a == b or b == c or a == c:
            return None

        # Only converging breakpoints meet
        if orientation(a, b, c) <= 0:
            return None

        circle = circumcircle(a, b, c)
        if not circle.is_finite():
            return None

        trigger = circle.bottom
        tolerance = self.config.epsilon * self.scale
        if trigger.y < self.sweep_position - tolerance:
            return None

        return VertexEvent(left, arc, right, sites, circle.centre, trigger)

    # Finalization

    def complete_unbound_edges(self) -> None:
        """
        Extend every edge that is still open to the boundary square.

        An edge with one endpoint is extended along its bisector in the
        direction of the missing slot. An edge with no endpoint is only
        legitimate when the diagram has no vertices at all (collinear sites);
        it then becomes the full bisector clipped to the square. Otherwise it
        is reported as an ``UnboundEdgeError``, raised in strict mode and
        recorded as a defect otherwise.
        """
        if self.state is DiagramState.RUNNING:
            raise BeachlineError("Cannot finalize while events are pending")
        if self.state is DiagramState.DONE:
            return

        bound = self.config.bound
        for edge in self.edges:
            missing = edge.missing_slots()
            if not missing:
                continue

            a, b = edge.left_point, edge.right_point
            if len(missing) == 2:
                if self.vertices:
                    error = UnboundEdgeError(edge.sites)
                    if self.config.strict:
                        raise error
                    logger.error("Edge without vertices", sites=edge.sites)
                    self.defects.append(Defect.from_error(error))
                    continue
                for slot in missing:
                    setattr(edge, slot, boundary_point(a, b, slot, bound))
            else:
                slot = missing[0]
                anchor = edge.endpoints[0] or edge.endpoints[1]
                target = boundary_point(a, b, slot, bound)
                if not _lies_beyond(target, anchor, slot):
                    target = anchor
                setattr(edge, slot, target)
            self._emit("edge_clipped", sites=edge.sites, slots=missing)

        self.state = DiagramState.DONE

    # Read-only views

    def result(self) -> VoronoiResult:
        return VoronoiResult(
            sites=list(self._sites),
            edges=[e for e in self.edges if e.is_complete],
            vertices=list(self.vertices),
            defects=list(self.defects),
        )

    def beachline_snapshot(self) -> List[ArcSpan]:
        """Current arcs and their extents in input coordinates, left to right."""
        dx = self.offset.x
        return [
            span._replace(x_start=span.x_start + dx, x_end=span.x_end + dx)
            for span in self.beachline.snapshot(self.sweep_position)
        ]


def _frame_of(sites: List[Point]):
    """
    Offset and scale of the frame the sweep runs in.

    Returns:
        Centre of the sites' bounding box and the larger side of that box
        (1.0 for a single site)
    """
    arr = np.array(sites, dtype=float)
    low = arr.min(axis=0)
    high = arr.max(axis=0)
    centre = (low + high) / 2
    extent = float(np.max(high - low))
    return Point(float(centre[0]), float(centre[1])), extent if extent > 0 else 1.0


def _lies_beyond(target: Point, anchor: Point, slot: str) -> bool:
    if slot == LEFT:
        return target.x <= anchor.x
    if slot == RIGHT:
        return target.x >= anchor.x
    if slot == TOP:
        return target.y <= anchor.y
    if slot == BOTTOM:
        return target.y >= anchor.y
    raise ValueError(f"Unknown slot {slot!r}")


def build_voronoi(sites, config: Optional[DiagramConfig] = None,
                  diagnostics: Optional[DiagnosticsCallback] = None) -> VoronoiResult:
    """
    Build a Voronoi diagram in one call.

    Args:
        sites: Sequence or array of distinct (x, y) pairs
        config: Build configuration; defaults to values from settings
        diagnostics: Optional callback receiving ``(event, fields)``

    Returns:
        VoronoiResult with every edge complete
    """
    return VoronoiDiagram(sites, config=config, diagnostics=diagnostics).compute()
