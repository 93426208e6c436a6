from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List

from .config import load_config
from .graph.summary import node_connections, summarize
from .loader import load_collections
from .orchestrator import analyze, load_project_graph, run_analysis
from .paths import for_project
from .server import run as run_server
from .types import DetectionMode, Polarity, TriggerPolicy


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with a clean format for terminal output."""
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []  # Clear any existing handlers
    root_logger.addHandler(handler)


def cmd_run(args: argparse.Namespace) -> int:
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        result = run_analysis(
            project=args.project,
            trigger_policy=args.trigger_policy,
            zero_polarity=args.zero_polarity,
            mode=args.mode,
            max_loops=args.max_loops,
            validate=not args.no_validate,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info("")
    logger.info("=" * 60)
    logger.info("Analysis output files:")
    logger.info("=" * 60)
    print(json.dumps(result, indent=2))
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        graph, loops = load_project_graph(args.project)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    if args.node:
        try:
            print(json.dumps(node_connections(graph, args.node), indent=2))
        except KeyError:
            logger.error(f"Unknown node: {args.node}")
            return 1
        return 0

    print(json.dumps(summarize(graph, loops), indent=2))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    cfg = load_config()
    paths = for_project(cfg, args.project)

    try:
        collections = load_collections(paths.config_dir)
    except (FileNotFoundError, ValueError) as e:
        print("Configuration validation failed:")
        print(" -", e)
        return 1

    graph, _ = analyze(collections, cfg.build_options(), cfg.env["LOOP_DETECTION"])
    if graph.skipped:
        print(f"Configuration loaded with {len(graph.skipped)} skipped references:")
        for ref in graph.skipped:
            print(f" - {ref.collection}/{ref.record_id or '?'}: {ref.reason} {ref.detail}".rstrip())
        return 1

    print(
        f"Configuration OK: {len(collections.pressures)} pressures, {len(collections.generators)} generators, "
        f"{len(collections.systems)} systems, {len(collections.actions)} actions."
    )
    return 0


def cmd_ui(args: argparse.Namespace) -> int:
    run_server(host=args.host, port=args.port, debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cld", description="Causal loop analysis for world-simulation configuration")
    sub = p.add_subparsers(dest="cmd", required=True)

    # cld run
    p_run = sub.add_parser("run", help="Build the causal graph, detect loops and write artifacts")
    p_run.add_argument("--project", required=True, help="Project name under projects/")
    p_run.add_argument("--trigger-policy", choices=[t.value for t in TriggerPolicy],
        help="Drop triggers naming unknown generators, or create the generator node")
    p_run.add_argument("--zero-polarity", choices=[Polarity.POSITIVE.value, Polarity.NEUTRAL.value],
        help="Polarity of a pressure change of exactly zero")
    p_run.add_argument("--mode", choices=[m.value for m in DetectionMode],
        help="Loop detection: single-pass DFS or every elementary cycle")
    p_run.add_argument("--max-loops", type=int, help="Cap the number of loops written (0 = unlimited)")
    p_run.add_argument("--no-validate", action="store_true", help="Skip JSON Schema validation of artifacts")
    p_run.add_argument("-v", "--verbose", action="store_true")
    p_run.set_defaults(func=cmd_run)

    # cld inspect
    p_in = sub.add_parser("inspect", help="Print graph summary, or one node's connections")
    p_in.add_argument("--project", required=True)
    p_in.add_argument("--node", help="Node id, e.g. pressure:conflict")
    p_in.add_argument("-v", "--verbose", action="store_true")
    p_in.set_defaults(func=cmd_inspect)

    # cld validate
    p_val = sub.add_parser("validate", help="Check that project configuration loads without skipped references")
    p_val.add_argument("--project", required=True)
    p_val.set_defaults(func=cmd_validate)

    # cld ui
    p_ui = sub.add_parser("ui", help="Serve graph and loop data as JSON")
    p_ui.add_argument("--host", default="127.0.0.1")
    p_ui.add_argument("--port", type=int, default=5000)
    p_ui.add_argument("--debug", action="store_true")
    p_ui.set_defaults(func=cmd_ui)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
