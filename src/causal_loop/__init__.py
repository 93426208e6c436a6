"""causal_loop package root.

Derives a causal dependency graph from world-simulation configuration
(pressures, generators, systems, actions) and finds the reinforcing and
balancing feedback loops running through it. Includes a small CLI and a JSON
server for the graph view.
"""

from .graph import BuildOptions, CausalGraph, GraphBuilder, build_causal_graph, classify_loop, detect_cycles, find_loops

__all__ = [
    "BuildOptions",
    "CausalGraph",
    "GraphBuilder",
    "build_causal_graph",
    "classify_loop",
    "detect_cycles",
    "find_loops",
]
