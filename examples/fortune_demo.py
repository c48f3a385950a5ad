#!/usr/bin/env python3
"""
Demo script building a Voronoi diagram and plotting its edges.
"""

import argparse

import numpy as np

from py_fortune import DiagramConfig, build_voronoi
from py_fortune.utils import configure_logging

FIXTURE_SITES = [(2, 9), (3, 7), (3, 2), (5, 2), (5, 5), (6, 6), (7, 1), (8, 4), (8, 8)]


def plot_diagram(result, bound: float):
    """Draw sites and edges with matplotlib."""
    import matplotlib.pyplot as plt

    segments = result.edge_array()
    sites = np.array(result.sites)

    plt.figure(figsize=(8, 8))
    for (x0, y0), (x1, y1) in segments:
        plt.plot([x0, x1], [y0, y1], color='steelblue', linewidth=1)
    plt.scatter(sites[:, 0], sites[:, 1], color='black', s=12, zorder=3)
    plt.xlim(-bound, bound)
    plt.ylim(bound, -bound)  # sweep runs down the screen
    plt.gca().set_aspect('equal')
    plt.title(f"Voronoi diagram ({len(result.sites)} sites, {len(result.edges)} edges)")
    plt.show()


def main():
    """Build the fixture diagram (or a random one) and print its edges."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--random', type=int, default=0, help='Use N random sites instead of the fixture')
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--bound', type=float, default=12.0)
    parser.add_argument('--plot', action='store_true', help='Plot the diagram with matplotlib')
    parser.add_argument('--log-level', default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)

    if args.random:
        rng = np.random.default_rng(args.seed)
        sites = rng.uniform(-args.bound * 0.8, args.bound * 0.8, size=(args.random, 2))
    else:
        sites = FIXTURE_SITES

    print("Py-Fortune Voronoi Demo")
    print("=" * 40)

    result = build_voronoi(sites, config=DiagramConfig(bound=args.bound))
    print(f"Sites: {len(result.sites)}  Edges: {len(result.edges)}  Vertices: {len(result.vertices)}")
    for edge in result.edges:
        (x0, y0), (x1, y1) = edge.as_segment()
        print(f"  {edge.left_site:>3} | {edge.right_site:<3} ({x0:8.3f}, {y0:8.3f}) -> ({x1:8.3f}, {y1:8.3f})")

    if args.plot:
        plot_diagram(result, args.bound)


if __name__ == "__main__":
    main()
