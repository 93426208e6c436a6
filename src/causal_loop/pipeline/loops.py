from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from ..graph.builder import CausalGraph
from ..graph.loops import describe_loop, find_loops, first_edge_index
from ..types import DetectionMode, Loop


def _loop_entry(loop_id: str, loop: Loop, labels: Dict[str, str], index) -> Dict:
    edges = []
    for src, dst in zip(loop.nodes, loop.nodes[1:]):
        edge = index.get((src, dst))
        edges.append(
            {
                "source": src,
                "target": dst,
                "polarity": edge.polarity.value if edge else "neutral",
                "edge_type": edge.edge_type.value if edge else None,
            }
        )
    return {
        "id": loop_id,
        "nodes": list(loop.nodes),
        "labels": [labels.get(nid, nid) for nid in loop.nodes],
        "edges": edges,
        "length": loop.length,
        "negative_edges": loop.negative_edges,
        "polarity": loop.type.value,
        "description": describe_loop(loop.nodes, labels),
    }


def compute_loops(
    graph: CausalGraph,
    out_path: Path,
    *,
    mode: DetectionMode = DetectionMode.DFS,
    max_loops: int = 0,
    found: Optional[List[Loop]] = None,
) -> Dict:
    """Detect reinforcing and balancing loops and write the `loops.json` artifact.

    `max_loops` of 0 means no cap. Pass `found` to reuse loops already detected.
    """
    loops: Dict[str, List[Dict]] = {
        "reinforcing": [],
        "balancing": [],
        "notes": [],
    }

    if not graph.nodes:
        loops["notes"].append("Configuration contains no pressures, generators, systems or actions; loop detection skipped.")
        out_path.write_text(json.dumps(loops, indent=2), encoding="utf-8")
        return loops

    if found is None:
        found = find_loops(graph, mode=mode)
    if not found:
        loops["notes"].append(f"No feedback loops found among {len(graph.nodes)} nodes and {len(graph.edges)} edges.")

    labels = {n.id: n.label for n in graph.nodes}
    index = first_edge_index(graph.edges)
    for counter, loop in enumerate(found, start=1):
        if max_loops and counter > max_loops:
            loops["notes"].append(f"Truncated loop detection after {max_loops} loops ({len(found)} found).")
            break
        loops[loop.type.value].append(_loop_entry(f"L{counter:02d}", loop, labels, index))

    if graph.skipped:
        loops["notes"].append(f"{len(graph.skipped)} malformed or dangling references were skipped while building the graph.")

    out_path.write_text(json.dumps(loops, indent=2), encoding="utf-8")
    return loops
