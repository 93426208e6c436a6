"""Read-only views over a built graph, used by the CLI and the JSON API."""
from __future__ import annotations

from collections import Counter
from typing import Dict, List, Sequence

from ..types import EdgeType, Loop, LoopType, NodeKind
from .builder import CausalGraph


def summarize(graph: CausalGraph, loops: Sequence[Loop]) -> Dict:
    nodes_by_kind = Counter(n.kind.value for n in graph.nodes)
    edges_by_type = Counter(e.edge_type.value for e in graph.edges)
    return {
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
        "nodes_by_kind": {k.value: nodes_by_kind.get(k.value, 0) for k in NodeKind},
        "edges_by_type": {t.value: edges_by_type.get(t.value, 0) for t in EdgeType},
        "loops": len(loops),
        "reinforcing": sum(1 for lp in loops if lp.type is LoopType.REINFORCING),
        "balancing": sum(1 for lp in loops if lp.type is LoopType.BALANCING),
        "skipped": len(graph.skipped),
    }


def node_connections(graph: CausalGraph, node_id: str) -> Dict:
    """Incoming and outgoing edges of one node, with the peer's label and kind.

    Raises KeyError for an unknown node id.
    """
    node = graph.get_node(node_id)
    if node is None:
        raise KeyError(node_id)

    by_id = {n.id: n for n in graph.nodes}

    def _describe(peer_id: str, edge) -> Dict:
        peer = by_id.get(peer_id)
        return {
            "node": peer_id,
            "label": peer.label if peer else peer_id,
            "kind": peer.kind.value if peer else None,
            "polarity": edge.polarity.value,
            "edgeType": edge.edge_type.value,
            "edgeLabel": edge.label,
        }

    incoming: List[Dict] = [_describe(e.source, e) for e in graph.incoming(node_id)]
    outgoing: List[Dict] = [_describe(e.target, e) for e in graph.outgoing(node_id)]
    return {"node": node.to_dict(), "incoming": incoming, "outgoing": outgoing}
