"""Causal graph construction and feedback loop detection.

Builds a polarity-tagged directed graph from pressure, generator, system and
action configuration, then finds and classifies the loops running through it.
"""

from .builder import BuildOptions, CausalGraph, GraphBuilder, build_causal_graph
from .loops import classify_loop, detect_cycles, enumerate_elementary_cycles, find_loops

__all__ = [
    "BuildOptions",
    "CausalGraph",
    "GraphBuilder",
    "build_causal_graph",
    "classify_loop",
    "detect_cycles",
    "enumerate_elementary_cycles",
    "find_loops",
]
