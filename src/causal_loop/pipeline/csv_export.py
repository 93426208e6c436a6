"""Generate CSV exports from pipeline artifacts."""
from __future__ import annotations

import csv
import json
from pathlib import Path


def load_json(path: Path | None) -> dict:
    """Load JSON file, return empty dict if not found or None."""
    if path is None or not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def generate_edges_csv(graph_path: Path, output_path: Path) -> int:
    """Generate edges CSV with source/target labels and kinds.

    Returns:
        Number of rows written
    """
    graph_data = load_json(graph_path)
    nodes = {n["id"]: n for n in graph_data.get("nodes", [])}

    fieldnames = [
        "source",
        "target",
        "source_label",
        "target_label",
        "source_kind",
        "target_kind",
        "polarity",
        "edge_type",
        "label",
    ]

    rows = []
    for link in graph_data.get("links", []):
        source = nodes.get(link.get("source"), {})
        target = nodes.get(link.get("target"), {})
        rows.append(
            {
                "source": link.get("source", ""),
                "target": link.get("target", ""),
                "source_label": source.get("label", ""),
                "target_label": target.get("label", ""),
                "source_kind": source.get("kind", ""),
                "target_kind": target.get("kind", ""),
                "polarity": link.get("polarity", ""),
                "edge_type": link.get("edgeType", ""),
                "label": link.get("label", ""),
            }
        )

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def generate_loops_csv(loops_path: Path, output_path: Path) -> int:
    """Generate loops CSV, one row per loop.

    Returns:
        Number of rows written
    """
    loops_data = load_json(loops_path)

    all_loops = []
    for loop_type in ["reinforcing", "balancing"]:
        for loop in loops_data.get(loop_type, []):
            all_loops.append({**loop, "loop_type": loop_type})
    all_loops.sort(key=lambda lp: int(str(lp.get("id", "L0"))[1:] or 0))

    fieldnames = [
        "loop_id",
        "loop_type",
        "length",
        "negative_edges",
        "loop_nodes",
        "description",
    ]

    rows = []
    for loop in all_loops:
        rows.append(
            {
                "loop_id": loop.get("id", ""),
                "loop_type": loop["loop_type"],
                "length": loop.get("length", ""),
                "negative_edges": loop.get("negative_edges", ""),
                "loop_nodes": " -> ".join(loop.get("nodes", [])),
                "description": loop.get("description", ""),
            }
        )

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)
