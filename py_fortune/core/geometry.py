"""
Geometry primitives for Fortune's sweep-line algorithm.

All functions here are pure. The sweep line moves towards increasing y, so a
parabola's focus always lies at or above (smaller y than) its directrix and
the beachline at a given x is the parabola with the greatest height there.
"""

import math
from typing import NamedTuple


class Point(NamedTuple):
    """Immutable 2-D coordinate."""
    x: float
    y: float


class Circle(NamedTuple):
    """Circle given by centre and radius."""
    centre: Point
    radius: float

    @property
    def bottom(self) -> Point:
        """Lowest point of the circle in sweep order (largest y)."""
        return Point(self.centre.x, self.centre.y + self.radius)

    def is_finite(self) -> bool:
        return is_finite_point(self.centre) and math.isfinite(self.radius)


NO_CIRCLE = Circle(Point(math.inf, math.inf), math.inf)

# Slot names, shared with the edge store
LEFT = "left"
RIGHT = "right"
TOP = "top"
BOTTOM = "bottom"


def is_finite_point(p: Point) -> bool:
    return math.isfinite(p.x) and math.isfinite(p.y)


def parabola_height(focus: Point, sweep: float, x: float) -> float:
    """
    Height of the parabola with the given focus and directrix ``y = sweep``.

    Args:
        focus: Parabola focus (a site)
        sweep: Current sweep line position
        x: Horizontal position to evaluate at

    Returns:
        y-coordinate of the parabola at x, or ``math.inf`` when the focus
        lies on the sweep line and the parabola degenerates to a ray
    """
    distance = sweep - focus.y
    if distance == 0:
        return math.inf
    return (sweep + focus.y) / 2 - (x - focus.x) ** 2 / (2 * distance)


def breakpoint_x(left: Point, right: Point, sweep: float) -> float:
    """
    Horizontal position of the breakpoint between two neighbouring arcs.

    The arc of ``left`` must lie immediately left of the arc of ``right`` on
    the beachline. Of the two parabola intersections this returns the one
    where that ordering holds.

    Args:
        left: Focus of the left arc
        right: Focus of the right arc
        sweep: Current sweep line position

    Returns:
        x-coordinate of the breakpoint
    """
    if left.y == right.y:
        return (left.x + right.x) / 2
    if left.y == sweep:
        return left.x
    if right.y == sweep:
        return right.x

    dl = 2 * (sweep - left.y)
    dr = 2 * (sweep - right.y)
    a = 1 / dl - 1 / dr
    b = -2 * left.x / dl + 2 * right.x / dr
    c = left.x * left.x / dl - right.x * right.x / dr - (left.y - right.y) / 2

    root = math.sqrt(max(b * b - 4 * a * c, 0.0))
    # Same root either way; pick the form without cancellation
    if b > 0:
        return 2 * c / (-b - root)
    return (-b + root) / (2 * a)


def orientation(a: Point, b: Point, c: Point) -> float:
    """Signed cross product of (b - a) and (c - a)."""
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


def circumcircle(a: Point, b: Point, c: Point) -> Circle:
    """
    Circle through three points.

    The points are sorted by (y, x) first so that every permutation of the
    same triple gives a bit-identical result. Pairs sharing a y-coordinate
    have a vertical perpendicular bisector (infinite inverse gradient) and
    are solved by substituting their x directly.

    Args:
        a, b, c: Points on the circle

    Returns:
        The circumcircle, or ``NO_CIRCLE`` for collinear input
    """
    p0, p1, p2 = sorted((a, b, c), key=lambda p: (p.y, p.x))
    if orientation(p0, p1, p2) == 0:
        return NO_CIRCLE

    # p0 and p2 cannot share y here, otherwise all three would be collinear
    mid_a = Point((p0.x + p2.x) / 2, (p0.y + p2.y) / 2)
    grad_a = -(p2.x - p0.x) / (p2.y - p0.y)

    if p0.y == p1.y:
        cx = (p0.x + p1.x) / 2
    elif p1.y == p2.y:
        cx = (p1.x + p2.x) / 2
    else:
        mid_b = Point((p0.x + p1.x) / 2, (p0.y + p1.y) / 2)
        grad_b = -(p1.x - p0.x) / (p1.y - p0.y)
        if grad_a == grad_b:
            return NO_CIRCLE
        cx = (grad_a * mid_a.x - grad_b * mid_b.x + mid_b.y - mid_a.y) / (grad_a - grad_b)

    cy = mid_a.y + grad_a * (cx - mid_a.x)
    centre = Point(cx, cy)
    radius = math.hypot(cx - p0.x, cy - p0.y)
    circle = Circle(centre, radius)
    return circle if circle.is_finite() else NO_CIRCLE


def breakpoint_direction(left: Point, right: Point) -> Point:
    """
    Direction a breakpoint travels as the sweep advances.

    The breakpoint between the arc of ``left`` and the arc of ``right`` moves
    along their bisector, keeping ``left`` on its left-hand side.
    """
    return Point(left.y - right.y, right.x - left.x)


def bisector_y(a: Point, b: Point, x: float) -> float:
    """
    y-coordinate of the perpendicular bisector of ``a`` and ``b`` at ``x``.

    Raises:
        ValueError: If the bisector is vertical (``a.y == b.y``)
    """
    if a.y == b.y:
        raise ValueError(f"Bisector of {a} and {b} is vertical")
    mx = (a.x + b.x) / 2
    my = (a.y + b.y) / 2
    return my - (b.x - a.x) / (b.y - a.y) * (x - mx)


def bisector_x(a: Point, b: Point, y: float) -> float:
    """
    x-coordinate of the perpendicular bisector of ``a`` and ``b`` at ``y``.

    Raises:
        ValueError: If the bisector is horizontal (``a.x == b.x``)
    """
    if a.x == b.x:
        raise ValueError(f"Bisector of {a} and {b} is horizontal")
    mx = (a.x + b.x) / 2
    my = (a.y + b.y) / 2
    return mx - (b.y - a.y) / (b.x - a.x) * (y - my)


def boundary_point(a: Point, b: Point, slot: str, bound: float) -> Point:
    """
    Point where the bisector of two sites leaves the square [-bound, bound]^2.

    Args:
        a, b: The two sites the bisector separates
        slot: Which way to follow the bisector: ``left`` or ``right`` for
            non-vertical bisectors, ``top`` or ``bottom`` for vertical ones
        bound: Half-width of the boundary square

    Returns:
        Boundary point on the bisector
    """
    if a.y == b.y:
        mx = (a.x + b.x) / 2
        return Point(mx, -bound if slot == TOP else bound)

    x = -bound if slot == LEFT else bound
    if a.x == b.x:
        return Point(x, (a.y + b.y) / 2)

    y = bisector_y(a, b, x)
    if abs(y) <= bound:
        return Point(x, y)
    # Steep bisector: it reaches a horizontal side first
    y = bound if y > bound else -bound
    return Point(bisector_x(a, b, y), y)


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)
