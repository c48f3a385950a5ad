"""
Core Voronoi construction functionality.
"""

from .geometry import Point, Circle, circumcircle, parabola_height, breakpoint_x, bisector_y, bisector_x
from .event_queue import EventQueue, SiteEvent, VertexEvent
from .beachline import Beachline, NULL_ARC
from .edges import Edge, EdgeStore
from .diagram import DiagramConfig, DiagramState, VoronoiDiagram, VoronoiResult, build_voronoi
from .errors import (VoronoiError, InvalidSitesError, BeachlineError, UnboundEdgeError,
                     IterationLimitError, Defect)

__all__ = ['Point', 'Circle', 'circumcircle', 'parabola_height', 'breakpoint_x',
           'bisector_y', 'bisector_x',
           'EventQueue', 'SiteEvent', 'VertexEvent',
           'Beachline', 'NULL_ARC',
           'Edge', 'EdgeStore',
           'DiagramConfig', 'DiagramState', 'VoronoiDiagram', 'VoronoiResult', 'build_voronoi',
           'VoronoiError', 'InvalidSitesError', 'BeachlineError', 'UnboundEdgeError',
           'IterationLimitError', 'Defect']
