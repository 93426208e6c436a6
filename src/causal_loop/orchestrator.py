from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .config import AppConfig, load_config
from .graph.builder import BuildOptions, CausalGraph, GraphBuilder
from .graph.loops import find_loops
from .graph.summary import summarize
from .loader import load_collections
from .paths import for_project
from .pipeline.csv_export import generate_edges_csv, generate_loops_csv
from .pipeline.graph_export import write_graph
from .pipeline.loops import compute_loops
from .provenance.store import log_event
from .types import ConfigCollections, DetectionMode, Loop, Polarity, TriggerPolicy
from .validation.schema import validate_json_schema

logger = logging.getLogger(__name__)


def analyze(
    collections: ConfigCollections,
    options: Optional[BuildOptions] = None,
    mode: DetectionMode = DetectionMode.DFS,
) -> Tuple[CausalGraph, List[Loop]]:
    """Build the graph from in-memory collections and find its loops. No I/O."""
    graph = GraphBuilder(options).build(
        collections.pressures,
        collections.generators,
        collections.systems,
        collections.actions,
        collections.schema_,
    )
    return graph, find_loops(graph, mode=mode)


def load_project_graph(
    project: str,
    cfg: Optional[AppConfig] = None,
    options: Optional[BuildOptions] = None,
    mode: Optional[DetectionMode] = None,
) -> Tuple[CausalGraph, List[Loop]]:
    cfg = cfg or load_config()
    paths = for_project(cfg, project)
    collections = load_collections(paths.config_dir)
    return analyze(collections, options or cfg.build_options(), mode or cfg.env["LOOP_DETECTION"])


def run_analysis(
    project: str,
    trigger_policy: Optional[TriggerPolicy] = None,
    zero_polarity: Optional[Polarity] = None,
    mode: Optional[DetectionMode] = None,
    max_loops: Optional[int] = None,
    validate: bool = True,
    cfg: Optional[AppConfig] = None,
) -> Dict:
    """Run the causal loop analysis for a project and write its artifacts.

    Args:
        project: Project name under projects/
        trigger_policy: Override CL_TRIGGER_POLICY
        zero_polarity: Override CL_ZERO_DELTA_POLARITY
        mode: Override CL_LOOP_DETECTION
        max_loops: Override CL_MAX_LOOPS (0 = unlimited)
        validate: Validate written artifacts against schemas/

    Returns:
        Mapping of artifact name to path, plus a `summary` block.
    """
    logger.info(f"Starting causal loop analysis for project: {project}")
    cfg = cfg or load_config()
    paths = for_project(cfg, project)
    if not paths.base_dir.exists():
        raise FileNotFoundError(f"Project not found: {paths.base_dir}")
    paths.ensure()

    options = cfg.build_options()
    if trigger_policy is not None:
        options.trigger_policy = TriggerPolicy(trigger_policy)
    if zero_polarity is not None:
        options.zero_polarity = Polarity(zero_polarity)
    mode = DetectionMode(mode) if mode is not None else cfg.env["LOOP_DETECTION"]
    max_loops = cfg.env["MAX_LOOPS"] if max_loops is None else max_loops

    logger.info(f"Loading configuration from {paths.config_dir}")
    collections = load_collections(paths.config_dir)
    logger.info(
        f"✓ Loaded {len(collections.pressures)} pressures, {len(collections.generators)} generators, "
        f"{len(collections.systems)} systems, {len(collections.actions)} actions"
    )

    logger.info(f"Building graph and detecting feedback loops ({mode.value})...")
    graph, found = analyze(collections, options, mode)
    logger.info(f"✓ Built graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges")
    if graph.skipped:
        logger.warning(f"Skipped {len(graph.skipped)} malformed or dangling references")
        for ref in graph.skipped:
            logger.debug(f"  {ref.collection}/{ref.record_id}: {ref.reason} {ref.detail}")

    graph_data = write_graph(graph, paths.graph_path)
    loops_data = compute_loops(graph, paths.loops_path, mode=mode, max_loops=max_loops, found=found)
    logger.info(
        f"✓ Found {len(loops_data['reinforcing'])} reinforcing and {len(loops_data['balancing'])} balancing loops"
    )

    if validate:
        validate_json_schema(graph_data, cfg.schemas_dir / "graph.schema.json")
        validate_json_schema(loops_data, cfg.schemas_dir / "loops.schema.json")

    generate_edges_csv(paths.graph_path, paths.edges_export_path)
    generate_loops_csv(paths.loops_path, paths.loops_export_path)

    summary = summarize(graph, found)
    log_event(
        paths.provenance_db_path,
        "analysis_completed",
        {
            "project": project,
            "mode": mode.value,
            "trigger_policy": options.trigger_policy.value,
            "zero_polarity": options.zero_polarity.value,
            **summary,
        },
    )

    return {
        "graph": str(paths.graph_path),
        "loops": str(paths.loops_path),
        "edges_export": str(paths.edges_export_path),
        "loops_export": str(paths.loops_export_path),
        "summary": summary,
    }
