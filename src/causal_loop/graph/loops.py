from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx

from ..types import DetectionMode, Edge, Loop, LoopType, Node, Polarity

logger = logging.getLogger(__name__)

EdgeIndex = Dict[Tuple[str, str], Edge]


def _adjacency(node_ids: Sequence[str], edges: Iterable[Edge]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {nid: [] for nid in node_ids}
    for e in edges:
        targets = adjacency.get(e.source)
        # Parallel edges walk the same node sequence, so one entry per target is enough.
        if targets is not None and e.target not in targets:
            targets.append(e.target)
    return adjacency


def detect_cycles(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[List[str]]:
    """Single-pass depth-first cycle search.

    Roots are taken in node order and neighbours in edge declaration order.
    A cycle is recorded whenever a neighbour is still on the active path;
    nodes are never re-entered once visited, so this finds at least one
    cycle per reachable cyclic region but not every elementary cycle (see
    `enumerate_elementary_cycles`).
    """
    node_ids = [n.id for n in nodes]
    adjacency = _adjacency(node_ids, edges)

    cycles: List[List[str]] = []
    visited: Set[str] = set()

    for root in node_ids:
        if root in visited:
            continue
        path: List[str] = [root]
        on_path: Set[str] = {root}
        visited.add(root)
        stack = [(root, iter(adjacency.get(root, [])))]

        while stack:
            current, neighbours = stack[-1]
            nxt = next(neighbours, None)
            if nxt is None:
                stack.pop()
                path.pop()
                on_path.discard(current)
                continue
            if nxt in on_path:
                start = path.index(nxt)
                cycles.append(path[start:] + [nxt])
                continue
            if nxt in visited:
                continue
            visited.add(nxt)
            path.append(nxt)
            on_path.add(nxt)
            stack.append((nxt, iter(adjacency.get(nxt, []))))

    logger.debug("DFS cycle search over %d nodes found %d cycles", len(node_ids), len(cycles))
    return cycles


def _canonical_cycle(cycle: Sequence[str], order: Dict[str, int]) -> List[str]:
    """Rotate a cycle to start at its earliest-declared node."""
    start = min(range(len(cycle)), key=lambda idx: order.get(cycle[idx], len(order)))
    return [cycle[(start + i) % len(cycle)] for i in range(len(cycle))]


def enumerate_elementary_cycles(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[List[str]]:
    """Every elementary cycle, via networkx (Johnson's algorithm).

    Each cycle is rotated to start at its earliest-declared node and closed
    by repeating that node. Output is sorted by length, then by node order.
    """
    order = {n.id: idx for idx, n in enumerate(nodes)}
    G = nx.DiGraph()
    G.add_nodes_from(order)
    G.add_edges_from((e.source, e.target) for e in edges if e.source in order)

    found = [_canonical_cycle(c, order) for c in nx.simple_cycles(G)]
    found.sort(key=lambda c: (len(c), [order.get(nid, len(order)) for nid in c]))
    return [c + [c[0]] for c in found]


def first_edge_index(edges: Iterable[Edge]) -> EdgeIndex:
    """Map (source, target) to the first edge declared for that pair."""
    index: EdgeIndex = {}
    for e in edges:
        index.setdefault((e.source, e.target), e)
    return index


def count_negative_edges(loop: Sequence[str], edges: Iterable[Edge], index: Optional[EdgeIndex] = None) -> int:
    index = index if index is not None else first_edge_index(edges)
    negative = 0
    for src, dst in zip(loop, loop[1:]):
        edge = index.get((src, dst))
        if edge is not None and edge.polarity is Polarity.NEGATIVE:
            negative += 1
    return negative


def classify_loop(loop: Sequence[str], edges: Iterable[Edge], index: Optional[EdgeIndex] = None) -> LoopType:
    """Even number of negative links -> reinforcing, odd -> balancing.

    When parallel edges connect a pair, the first declared one decides.
    """
    negative = count_negative_edges(loop, edges, index)
    return LoopType.REINFORCING if negative % 2 == 0 else LoopType.BALANCING


def find_loops(graph, mode: DetectionMode = DetectionMode.DFS) -> List[Loop]:
    """Detect and classify the feedback loops of a built `CausalGraph`."""
    mode = DetectionMode(mode)
    if mode is DetectionMode.ELEMENTARY:
        cycles = enumerate_elementary_cycles(graph.nodes, graph.edges)
    else:
        cycles = detect_cycles(graph.nodes, graph.edges)

    index = first_edge_index(graph.edges)
    loops = []
    for cycle in cycles:
        negative = count_negative_edges(cycle, graph.edges, index)
        loops.append(
            Loop(
                nodes=list(cycle),
                type=LoopType.REINFORCING if negative % 2 == 0 else LoopType.BALANCING,
                negative_edges=negative,
            )
        )
    return loops


def describe_loop(loop: Sequence[str], labels: Optional[Dict[str, str]] = None) -> str:
    if not loop:
        return ""
    labels = labels or {}
    return " → ".join(labels.get(nid, nid) for nid in loop)
