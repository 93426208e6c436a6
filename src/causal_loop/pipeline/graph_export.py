from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

from ..graph.builder import CausalGraph


def write_graph(graph: CausalGraph, out_path: Path) -> Dict:
    """Write the `{nodes, links, skipped}` artifact consumed by the graph view."""
    data = graph.to_dict()
    out_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return data
