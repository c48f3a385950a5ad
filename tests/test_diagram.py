"""Tests for Voronoi diagram construction."""

import itertools
import math

import numpy as np
import pytest
from scipy.spatial import Voronoi

from py_fortune import DiagramConfig, VoronoiDiagram, build_voronoi
from py_fortune.core import DiagramState, SiteEvent, VertexEvent
from py_fortune.core.errors import InvalidSitesError, IterationLimitError, UnboundEdgeError
from py_fortune.core.geometry import Point, distance


def edge_keys(result):
    return [frozenset(e.sites) for e in result.edges]


class TestInputValidation:
    """Test rejection of malformed site sets."""

    @pytest.mark.parametrize("sites", [
        [],
        [(1, 2), (1, 2)],
        [(0, 0), (float("nan"), 1)],
        [(0, 0), (float("inf"), 1)],
        [(0, 0, 0), (1, 1, 1)],
        [(1, 2), (3,)],
    ])
    def test_invalid_sites(self, sites):
        with pytest.raises(InvalidSitesError):
            VoronoiDiagram(sites)

    def test_invalid_sites_is_value_error(self):
        with pytest.raises(ValueError):
            build_voronoi([(0, 0), (0, 0)])

    def test_sites_lost_to_common_offset(self):
        """Test that sites indistinguishable after centring are rejected."""
        with pytest.raises(InvalidSitesError):
            VoronoiDiagram([(0.0, 0.0), (1e-20, 0.0), (1e4, 0.0)])

    def test_numpy_input(self):
        result = build_voronoi(np.array([[0.0, 0.0], [0.0, 4.0]]), config=DiagramConfig(bound=10.0))
        assert len(result.edges) == 1


class TestSmallDiagrams:
    """Test hand-checked configurations."""

    def test_single_site(self):
        diagram = VoronoiDiagram([(1, 1)])
        result = diagram.compute()

        assert result.edges == []
        assert result.sites == [Point(1.0, 1.0)]
        assert diagram.state is DiagramState.DONE
        assert result.edge_array().shape == (0, 2, 2)

    def test_two_sites_full_bisector(self):
        """Test that two sites give one edge spanning the boundary square."""
        result = build_voronoi([(0, 0), (0, 4)], config=DiagramConfig(bound=10.0))

        assert len(result.edges) == 1
        edge = result.edges[0]
        assert edge.left == Point(-10.0, 2.0)
        assert edge.right == Point(10.0, 2.0)

    def test_vertical_initial_boundary(self):
        """Test that two sites sharing y produce a vertical edge using top/bottom."""
        result = build_voronoi([(0, 0), (5, 0)], config=DiagramConfig(bound=10.0))

        edge = result.edges[0]
        assert edge.is_vertical
        assert edge.top == Point(2.5, -10.0)
        assert edge.bottom == Point(2.5, 10.0)
        assert edge.left is None and edge.right is None

    def test_vertical_boundary_closed_by_vertex(self):
        """Test that the first-row edge receives its vertex in the bottom slot."""
        events = []
        diagram = VoronoiDiagram([(0, 0), (5, 0), (2.5, 5)], config=DiagramConfig(bound=10.0),
                                 diagnostics=lambda name, fields: events.append((name, fields)))
        result = diagram.compute()

        assert result.vertices == [Point(2.5, 1.875)]
        assert len(result.edges) == 3

        vertical = diagram.edges.get(0, 1)
        assert vertical.bottom == Point(2.5, 1.875)
        assert vertical.top == Point(2.5, -10.0)
        assert vertical.left is None and vertical.right is None

        for key in ((0, 2), (1, 2)):
            edge = diagram.edges.get(*key)
            assert not edge.is_vertical
            assert Point(2.5, 1.875) in edge.endpoints

        ties = [fields for name, fields in events if name == "parabola_tie"]
        assert ties == [{"site": 2, "tied_sites": (0, 1), "chosen": 0}]

    def test_collinear_sites(self):
        """Test that collinear sites give parallel full-line edges and no vertices."""
        result = build_voronoi([(0, 0), (0, 5), (0, 10)], config=DiagramConfig(bound=10.0))

        assert result.vertices == []
        segments = {frozenset(e.sites): e.as_segment() for e in result.edges}
        assert segments == {
            frozenset((0, 1)): (Point(-10.0, 2.5), Point(10.0, 2.5)),
            frozenset((1, 2)): (Point(-10.0, 7.5), Point(10.0, 7.5)),
        }

    def test_vertex_is_equidistant(self):
        result = build_voronoi([(0, 0), (4, 1), (1, 3)])
        (vertex,) = result.vertices
        distances = [distance(vertex, site) for site in result.sites]
        assert distances == pytest.approx([distances[0]] * 3)


class TestFixtureDiagram:
    """Test the nine-site fixture."""

    def test_edges(self, fixture_sites):
        """Test the planar subdivision built from the fixture."""
        result = build_voronoi(fixture_sites)
        n = len(fixture_sites)
        keys = edge_keys(result)

        assert result.ok
        assert n - 1 <= len(result.edges) <= n * (n - 1) // 2
        assert len(keys) == len(set(keys))
        assert set(itertools.chain.from_iterable(keys)) == set(range(n))
        assert all(e.is_complete for e in result.edges)

    def test_counts(self, fixture_sites):
        """Test edge and vertex counts satisfy Euler's formula."""
        result = build_voronoi(fixture_sites)

        assert len(result.edges) == 19
        assert len(result.vertices) == 11
        assert len(result.vertices) - len(result.edges) + len(result.sites) == 1

    def test_vertical_edge(self, fixture_sites):
        """Test that sites (3, 2) and (5, 2) share a vertical edge."""
        diagram = VoronoiDiagram(fixture_sites)
        diagram.compute()

        edge = diagram.edges.get(2, 3)
        assert edge.is_vertical
        assert edge.top == Point(4.0, -2.5)
        assert edge.bottom == Point(4.0, 3.5)

    def test_tie_is_reported(self, fixture_sites):
        """Test the equidistant parabolas under site (8, 8)."""
        events = []
        diagram = VoronoiDiagram(fixture_sites,
                                 diagnostics=lambda name, fields: events.append((name, fields)))
        result = diagram.compute()

        ties = [fields for name, fields in events if name == "parabola_tie"]
        assert ties == [{"site": 8, "tied_sites": (5, 7), "chosen": 5}]
        assert Point(8.0, 6.0) in result.vertices

    def test_idempotent(self, fixture_sites):
        first = build_voronoi(fixture_sites)
        second = build_voronoi(fixture_sites)

        np.testing.assert_array_equal(first.edge_array(), second.edge_array())
        np.testing.assert_array_equal(first.site_pairs(), second.site_pairs())

    def test_unbounded_edges_reach_boundary(self, fixture_sites):
        """Test that edges between hull neighbours end on the boundary square."""
        bound = 50.0
        result = build_voronoi(fixture_sites, config=DiagramConfig(bound=bound))

        on_boundary = [
            e for e in result.edges
            if any(max(abs(p.x), abs(p.y)) == pytest.approx(bound) for p in e.as_segment())
        ]
        hull_pairs = {frozenset(p) for p in ((6, 2), (2, 0), (0, 8), (8, 7), (7, 6))}
        assert {frozenset(e.sites) for e in on_boundary} == hull_pairs


class TestStepping:
    """Test single-step processing."""

    def test_step_through(self, fixture_sites):
        """Test the state machine and beachline invariants at every step."""
        diagram = VoronoiDiagram(fixture_sites)
        kinds = []

        while diagram.state is DiagramState.RUNNING:
            event = diagram.step()
            if event is None:
                break
            kinds.append(type(event))
            diagram.beachline.check_invariants()
            spans = diagram.beachline_snapshot()
            for left, right in zip(spans, spans[1:]):
                assert left.x_end == right.x_start

        assert diagram.state is DiagramState.FINALIZING
        assert kinds.count(SiteEvent) == len(fixture_sites)
        assert kinds.count(VertexEvent) == 11
        assert diagram.step() is None

        diagram.complete_unbound_edges()
        assert diagram.state is DiagramState.DONE

    def test_iteration_limit(self, fixture_sites):
        diagram = VoronoiDiagram(fixture_sites, config=DiagramConfig(max_events=3))
        with pytest.raises(IterationLimitError):
            diagram.compute()


class TestDefects:
    """Test reporting of edges that never received a vertex."""

    def run_to_finalizing(self, sites, strict):
        diagram = VoronoiDiagram(sites, config=DiagramConfig(strict=strict))
        while diagram.state is DiagramState.RUNNING:
            diagram.step()
        # Sites 6 and 0 are never neighbours
        diagram.edges.get_or_create(6, 0)
        return diagram

    def test_strict_raises(self, fixture_sites):
        diagram = self.run_to_finalizing(fixture_sites, strict=True)
        with pytest.raises(UnboundEdgeError) as excinfo:
            diagram.complete_unbound_edges()
        assert excinfo.value.sites == (6, 0)

    def test_lenient_collects_defect(self, fixture_sites):
        diagram = self.run_to_finalizing(fixture_sites, strict=False)
        diagram.complete_unbound_edges()
        result = diagram.result()

        assert not result.ok
        assert [d.kind for d in result.defects] == ["UnboundEdgeError"]
        assert result.defects[0].sites == (6, 0)
        assert frozenset((6, 0)) not in edge_keys(result)
        assert len(result.edges) == 19


GRID_SITES = [(x, y) for y in range(3) for x in range(3)]
HEXAGON_SITES = [
    (1.0, 0.0), (0.5, math.sqrt(3) / 2), (-0.5, math.sqrt(3) / 2),
    (-1.0, 0.0), (-0.5, -math.sqrt(3) / 2), (0.5, -math.sqrt(3) / 2),
]


class TestCocircularSites:
    """Test inputs where several circle events share one vertex."""

    @pytest.mark.parametrize("sites", [GRID_SITES, HEXAGON_SITES], ids=["grid", "hexagon"])
    def test_endpoints_are_nearest_to_their_sites(self, sites):
        """Test that every endpoint, including zero-length edges, lies between its two sites."""
        result = build_voronoi(sites, config=DiagramConfig(bound=10.0))
        points = np.array(result.sites)

        assert result.ok
        assert all(e.is_complete for e in result.edges)
        for edge in result.edges:
            a = result.sites[edge.left_site]
            b = result.sites[edge.right_site]
            for p in edge.as_segment():
                assert distance(p, a) == pytest.approx(distance(p, b), abs=1e-9)
                nearest = np.min(np.linalg.norm(points - np.array(p), axis=1))
                assert nearest >= distance(p, a) - 1e-9

    @pytest.mark.parametrize("sites", [GRID_SITES, HEXAGON_SITES], ids=["grid", "hexagon"])
    def test_contains_scipy_ridges(self, sites):
        result = build_voronoi(sites, config=DiagramConfig(bound=10.0))
        ridges = {frozenset(p) for p in Voronoi(np.array(sites, dtype=float)).ridge_points.tolist()}
        assert ridges <= set(edge_keys(result))


class TestAgainstScipy:
    """Compare with scipy.spatial.Voronoi on random input."""

    @pytest.mark.parametrize("seed,n", [(7, 40), (11, 120)])
    def test_random_sites(self, seed, n):
        rng = np.random.default_rng(seed)
        sites = rng.uniform(0, 10, size=(n, 2))

        result = build_voronoi(sites, config=DiagramConfig(bound=1000.0))
        vor = Voronoi(sites)

        assert set(edge_keys(result)) == {frozenset(p) for p in vor.ridge_points.tolist()}
        assert len(result.vertices) == len(vor.vertices)
        ours = np.array(result.vertices)
        for vertex in vor.vertices:
            assert np.min(np.linalg.norm(ours - vertex, axis=1)) < 1e-6
        assert all(e.is_complete for e in result.edges)
        assert len(result.vertices) - len(result.edges) + n == 1

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_sites_far_from_origin(self, seed):
        """Test that tightly packed sites translated far away keep their adjacency."""
        rng = np.random.default_rng(seed)
        base = rng.uniform(0, 1e-3, size=(50, 2))

        result = build_voronoi(base + 1e4, config=DiagramConfig(bound=2e4))

        assert result.ok
        assert set(edge_keys(result)) == {frozenset(p) for p in Voronoi(base).ridge_points.tolist()}

    def test_translation_moves_vertices_only(self, fixture_sites):
        """Test that a translated fixture gives the same edges with shifted vertices."""
        dx, dy = 1e6, -1e6
        moved = [(x + dx, y + dy) for x, y in fixture_sites]

        original = build_voronoi(fixture_sites)
        translated = build_voronoi(moved, config=DiagramConfig(bound=2e6))

        assert edge_keys(translated) == edge_keys(original)
        np.testing.assert_allclose(
            np.array(translated.vertices),
            np.array(original.vertices) + [dx, dy],
        )

    def test_input_order_does_not_change_geometry(self):
        rng = np.random.default_rng(3)
        sites = rng.uniform(-5, 5, size=(30, 2))
        order = rng.permutation(len(sites))

        first = build_voronoi(sites)
        second = build_voronoi(sites[order])

        def segments(result):
            return sorted(
                tuple(sorted((tuple(p) for p in e.as_segment())))
                for e in result.edges
            )

        assert segments(first) == segments(second)
