"""
Beachline of parabolic arcs.

The beachline is a doubly linked chain of arcs stored in an arena and
addressed by integer handles. Handles are allocated from a per-beachline
counter and never reused, so a handle held by a pending circle event can be
checked for liveness at any time. ``NULL_ARC`` marks a missing neighbour.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, NamedTuple, Sequence, Set

import structlog

from .errors import BeachlineError
from .geometry import Point, breakpoint_x, parabola_height

logger = structlog.get_logger()

NULL_ARC = -1


@dataclass
class Arc:
    """One parabola segment of the beachline."""
    handle: int
    site: int
    left: int = NULL_ARC
    right: int = NULL_ARC


class ArcSpan(NamedTuple):
    """Read-only view of an arc and its horizontal extent at a sweep position."""
    handle: int
    site: int
    x_start: float
    x_end: float


class LocateResult(NamedTuple):
    """Arc found under a new site, with the tied sites if the choice was ambiguous."""
    arc: int
    site: int
    height: float
    tied_sites: tuple


class Beachline:
    """Arena-backed doubly linked list of arcs, ordered left to right."""

    def __init__(self, sites: Sequence[Point], epsilon: float = 1e-9, scale: float = 1.0):
        """
        Args:
            sites: Site coordinates indexed by site id (shared with the diagram)
            epsilon: Tolerance for equal parabola heights, relative to ``scale``
            scale: Extent of the site set the coordinates live in
        """
        self._sites = sites
        self.epsilon = epsilon
        self.scale = scale
        self._arcs: Dict[int, Arc] = {}
        self._dead: Set[int] = set()
        self._next_handle = 0
        self._head = NULL_ARC
        self._tail = NULL_ARC

    # Arena

    def _new_arc(self, site: int) -> Arc:
        arc = Arc(self._next_handle, site)
        self._next_handle += 1
        self._arcs[arc.handle] = arc
        return arc

    def _kill(self, handle: int) -> None:
        del self._arcs[handle]
        self._dead.add(handle)

    def _link(self, left: int, right: int) -> None:
        if left == NULL_ARC:
            self._head = right
        else:
            self._arcs[left].right = right
        if right == NULL_ARC:
            self._tail = left
        else:
            self._arcs[right].left = left

    def arc(self, handle: int) -> Arc:
        """Active arc record for a handle."""
        try:
            return self._arcs[handle]
        except KeyError:
            raise BeachlineError(f"Arc {handle} is not on the beachline") from None

    def is_active(self, handle: int) -> bool:
        return handle in self._arcs

    def is_dead(self, handle: int) -> bool:
        return handle in self._dead

    def is_empty(self) -> bool:
        return not self._arcs

    def leftmost(self) -> int:
        return self._head

    def rightmost(self) -> int:
        return self._tail

    def site_of(self, handle: int) -> int:
        return self.arc(handle).site

    def neighbours(self, handle: int):
        """(left, right) handles of an arc; either may be ``NULL_ARC``."""
        arc = self.arc(handle)
        return arc.left, arc.right

    def __iter__(self) -> Iterator[Arc]:
        handle = self._head
        while handle != NULL_ARC:
            arc = self._arcs[handle]
            yield arc
            handle = arc.right

    def __len__(self) -> int:
        return len(self._arcs)

    # Mutations

    def add_initial_arc(self, site: int) -> int:
        """Start the beachline with a single arc."""
        if not self.is_empty():
            raise BeachlineError("Beachline already has arcs")
        arc = self._new_arc(site)
        self._head = self._tail = arc.handle
        logger.debug("Initial arc", arc=arc.handle, site=site)
        return arc.handle

    def add_adjacent_arcs(self, left_site: int, right_site: int) -> int:
        """
        Place an arc for ``right_site`` directly right of ``left_site``'s arc.

        Used while every site seen so far lies on the first sweep row, where
        the parabolas are degenerate vertical rays and nothing is split. If
        the beachline is empty the arc for ``left_site`` is created first.

        Returns:
            Handle of the new right arc
        """
        if self.is_empty():
            self.add_initial_arc(left_site)
        arcs = self.get_arcs_for_site(left_site)
        if not arcs:
            raise BeachlineError(f"Site {left_site} has no arc on the beachline")
        left = self.arc(arcs[-1])
        if left.right != NULL_ARC:
            raise BeachlineError(f"Arc {left.handle} of site {left_site} is not the rightmost arc")
        arc = self._new_arc(right_site)
        self._link(left.handle, arc.handle)
        self._link(arc.handle, NULL_ARC)
        logger.debug("Adjacent arc", arc=arc.handle, site=right_site, left=left.handle)
        return arc.handle

    def add_intersecting_arc(self, site: int, intersected: int) -> int:
        """
        Split an arc around a new site.

        ``intersected`` is replaced by a left remainder, the new arc and a
        right remainder; the remainders reference the intersected site and
        take over its outer neighbours. The intersected arc moves to the dead
        set.

        Returns:
            Handle of the new arc; the remainders are its neighbours
        """
        old = self.arc(intersected)
        if old.site == site:
            raise BeachlineError(f"Arc {intersected} already belongs to site {site}")
        outer_left, outer_right = old.left, old.right

        left_part = self._new_arc(old.site)
        middle = self._new_arc(site)
        right_part = self._new_arc(old.site)

        self._link(outer_left, left_part.handle)
        self._link(left_part.handle, middle.handle)
        self._link(middle.handle, right_part.handle)
        self._link(right_part.handle, outer_right)
        self._kill(intersected)

        logger.debug("Arc split", arc=intersected, site=old.site, new_arc=middle.handle,
                     new_site=site, left=left_part.handle, right=right_part.handle)
        return middle.handle

    def remove_arc(self, handle: int) -> None:
        """Splice an arc out of the chain, linking its neighbours together."""
        arc = self.arc(handle)
        self._link(arc.left, arc.right)
        self._kill(handle)
        logger.debug("Arc removed", arc=handle, site=arc.site)

    # Queries

    def get_arcs_for_site(self, site: int) -> List[int]:
        """Every active arc of a site, left to right."""
        return [arc.handle for arc in self if arc.site == site]

    def arc_bounds(self, handle: int, sweep: float):
        """Horizontal extent (x_start, x_end) of an arc at a sweep position."""
        arc = self.arc(handle)
        focus = self._sites[arc.site]
        start = -math.inf
        end = math.inf
        if arc.left != NULL_ARC:
            start = breakpoint_x(self._sites[self._arcs[arc.left].site], focus, sweep)
        if arc.right != NULL_ARC:
            end = breakpoint_x(focus, self._sites[self._arcs[arc.right].site], sweep)
        return start, end

    def snapshot(self, sweep: float) -> List[ArcSpan]:
        """Left-to-right arc extents at a sweep position, for renderers."""
        spans = []
        for arc in self:
            start, end = self.arc_bounds(arc.handle, sweep)
            spans.append(ArcSpan(arc.handle, arc.site, start, end))
        return spans

    def locate_arc(self, point: Point, sweep: float) -> LocateResult:
        """
        Find the arc a new site at ``point`` falls under.

        The owning site is the one whose parabola is highest at ``point.x``;
        sites lying on the sweep line are skipped. Parabolas whose heights
        agree within epsilon are a tie, resolved in favour of the site with
        the smaller x and reported in ``tied_sites``. Among the chosen site's
        arcs the one whose extent contains ``point.x`` wins; if rounding
        leaves none containing it the closest one is used.
        """
        heights = {}
        for arc in self:
            if arc.site in heights:
                continue
            focus = self._sites[arc.site]
            if focus.y == sweep:
                continue
            heights[arc.site] = parabola_height(focus, sweep, point.x)

        if not heights:
            raise BeachlineError("No arc with a focus above the sweep line")

        best_height = max(heights.values())
        tolerance = self.epsilon * self.scale
        tied = sorted(
            (site for site, h in heights.items() if best_height - h <= tolerance),
            key=lambda s: (self._sites[s].x, self._sites[s].y),
        )
        site = tied[0]

        candidates = self.get_arcs_for_site(site)
        chosen = None
        nearest = None
        nearest_gap = math.inf
        for handle in candidates:
            start, end = self.arc_bounds(handle, sweep)
            if start <= point.x <= end:
                chosen = handle
                break
            gap = start - point.x if point.x < start else point.x - end
            if gap < nearest_gap:
                nearest, nearest_gap = handle, gap
        if chosen is None:
            chosen = nearest

        return LocateResult(chosen, site, heights[site], tuple(tied) if len(tied) > 1 else ())

    def check_invariants(self) -> None:
        """
        Verify the chain is contiguous and no neighbours share a site.

        Raises:
            BeachlineError: On the first violation found
        """
        seen = 0
        previous = NULL_ARC
        for arc in self:
            if arc.left != previous:
                raise BeachlineError(f"Arc {arc.handle} has left link {arc.left}, expected {previous}")
            if previous != NULL_ARC and self._arcs[previous].site == arc.site:
                raise BeachlineError(f"Arcs {previous} and {arc.handle} share site {arc.site}")
            previous = arc.handle
            seen += 1
        if previous != self._tail:
            raise BeachlineError(f"Chain ends at {previous} but tail is {self._tail}")
        if seen != len(self._arcs):
            raise BeachlineError(f"Chain holds {seen} arcs but the arena holds {len(self._arcs)}")
