"""
Python implementation of Fortune's sweep-line algorithm for planar Voronoi diagrams.
"""

__version__ = "0.1.0"

from .core import DiagramConfig, VoronoiDiagram, VoronoiResult, build_voronoi

__all__ = ['DiagramConfig', 'VoronoiDiagram', 'VoronoiResult', 'build_voronoi', '__version__']
