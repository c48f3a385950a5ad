"""
Event queue for the sweep.

Site events and vertex (circle) events are kept in two lists sorted in
descending sweep order, so the next event of each kind is the last element.
Vertex events are invalidated eagerly: anything that reaches ``pop()`` is
valid. Consumed events (popped or removed) are remembered by key so that a
topologically identical event is never queued again.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple, Union

import structlog

from .geometry import Point

logger = structlog.get_logger()

VertexKey = Tuple[FrozenSet[int], Point]


@dataclass(frozen=True)
class SiteEvent:
    """Sweep reaches an input site."""
    site: int
    point: Point


@dataclass(eq=False)
class VertexEvent:
    """
    Sweep reaches the bottom of the circle through three consecutive arcs.

    ``left``/``middle``/``right`` are arc handles; ``sites`` holds their
    three distinct site indices in the same order. The middle arc vanishes
    when the event fires. Arc handles may be retargeted while the event is
    pending (when a neighbouring arc is split), the sites never change.
    """
    left: int
    middle: int
    right: int
    sites: Tuple[int, int, int]
    vertex: Point
    trigger: Point

    @property
    def key(self) -> VertexKey:
        return (frozenset(self.sites), self.vertex)


Event = Union[SiteEvent, VertexEvent]


def _site_order(event: SiteEvent) -> Tuple[float, float]:
    return (event.point.y, event.point.x)


def _vertex_order(event: VertexEvent) -> Tuple[float, float]:
    return (event.trigger.y, event.trigger.x)


class EventQueue:
    """Priority queue of site and vertex events."""

    def __init__(self):
        self._sites: List[SiteEvent] = []
        self._vertices: List[VertexEvent] = []
        self._by_middle: Dict[int, VertexEvent] = {}
        self._pending_keys: Set[VertexKey] = set()
        self._consumed: Set[VertexKey] = set()

    def push_sites(self, points: Sequence[Point]) -> None:
        """
        Seed site events, one per point; site indices follow ``points`` order.

        Sorted descending by y, ties by descending x, so the earliest site in
        sweep order is popped first.
        """
        self._sites.extend(SiteEvent(i, p) for i, p in enumerate(points))
        self._sites.sort(key=_site_order, reverse=True)

    def push_vertex_events(self, events: Iterable[Optional[VertexEvent]]) -> List[VertexEvent]:
        """
        Queue vertex events, skipping ``None`` and duplicates.

        An event is a duplicate when an event with the same vertex and the
        same three sites (in any order) is pending or was already consumed.

        Returns:
            The events that were actually queued
        """
        added = []
        for event in events:
            if event is None:
                continue
            key = event.key
            if key in self._pending_keys or key in self._consumed:
                logger.debug("Duplicate vertex event skipped", sites=event.sites)
                continue
            self._vertices.append(event)
            self._pending_keys.add(key)
            self._by_middle[event.middle] = event
            added.append(event)
        if added:
            self._vertices.sort(key=_vertex_order, reverse=True)
        return added

    def remove_vertex_events(self, events: Iterable[Optional[VertexEvent]]) -> None:
        """Drop pending events and mark them consumed so they cannot return."""
        for event in events:
            if event is None:
                continue
            try:
                self._vertices.remove(event)
            except ValueError:
                continue
            self._forget(event)
            logger.debug("Vertex event removed", sites=event.sites)

    def vertex_event_for(self, middle: int) -> Optional[VertexEvent]:
        """Pending event whose middle arc is ``middle``, if any."""
        return self._by_middle.get(middle)

    def retarget(self, event: VertexEvent, old_arc: int, new_arc: int) -> None:
        """Point a pending event at ``new_arc`` wherever it referenced ``old_arc``."""
        if event.left == old_arc:
            event.left = new_arc
        if event.right == old_arc:
            event.right = new_arc
        if event.middle == old_arc:
            del self._by_middle[old_arc]
            event.middle = new_arc
            self._by_middle[new_arc] = event

    def peek(self) -> Event:
        """Next event without removing it."""
        if self.is_empty():
            raise IndexError("peek from an empty event queue")
        if self._site_first():
            return self._sites[-1]
        return self._vertices[-1]

    def pop(self) -> Event:
        """
        Remove and return the next event in sweep order.

        A site event and a vertex event at the same y are resolved in favour
        of the site event.
        """
        if self.is_empty():
            raise IndexError("pop from an empty event queue")
        if self._site_first():
            return self._sites.pop()
        event = self._vertices.pop()
        self._forget(event)
        return event

    def is_empty(self) -> bool:
        return not self._sites and not self._vertices

    @property
    def pending_vertices(self) -> int:
        return len(self._vertices)

    def is_consumed(self, event: VertexEvent) -> bool:
        return event.key in self._consumed

    def __len__(self) -> int:
        return len(self._sites) + len(self._vertices)

    def _site_first(self) -> bool:
        if not self._vertices:
            return True
        if not self._sites:
            return False
        return self._sites[-1].point.y <= self._vertices[-1].trigger.y

    def _forget(self, event: VertexEvent) -> None:
        key = event.key
        self._pending_keys.discard(key)
        self._consumed.add(key)
        if self._by_middle.get(event.middle) is event:
            del self._by_middle[event.middle]
