from __future__ import annotations

from typing import List, Optional

from flask import Flask, jsonify

from .config import AppConfig, load_config
from .graph.summary import node_connections, summarize
from .orchestrator import load_project_graph, run_analysis


def create_app(cfg: Optional[AppConfig] = None) -> Flask:
    cfg = cfg or load_config()
    app = Flask(__name__)

    def _load(project: str):
        return load_project_graph(project, cfg=cfg)

    @app.errorhandler(FileNotFoundError)
    def not_found(e):
        return jsonify({"status": "error", "error": str(e)}), 404

    @app.errorhandler(ValueError)
    def bad_config(e):
        return jsonify({"status": "error", "error": str(e)}), 500

    @app.route("/projects")
    def list_projects():
        projects: List[str] = []
        if cfg.projects_dir.exists():
            for p in sorted(cfg.projects_dir.iterdir()):
                if p.is_dir():
                    projects.append(p.name)
        return jsonify({"projects": projects})

    @app.route("/graph/<project>")
    def graph_route(project: str):
        graph, loops = _load(project)
        return jsonify({**graph.to_dict(), "summary": summarize(graph, loops)})

    @app.route("/loops/<project>")
    def loops_route(project: str):
        _, loops = _load(project)
        return jsonify(
            {
                "loops": [
                    {"nodes": lp.nodes, "type": lp.type.value, "negative_edges": lp.negative_edges}
                    for lp in loops
                ]
            }
        )

    @app.route("/nodes/<project>/<path:node_id>")
    def node_route(project: str, node_id: str):
        graph, _ = _load(project)
        try:
            return jsonify(node_connections(graph, node_id))
        except KeyError:
            return jsonify({"status": "error", "error": f"Unknown node: {node_id}"}), 404

    @app.route("/run/<project>", methods=["POST"])
    def run_route(project: str):
        result = run_analysis(project=project, cfg=cfg)
        return jsonify({"status": "ok", "artifacts": result})

    return app


def run(host: str = "127.0.0.1", port: int = 5000, debug: bool = False) -> None:
    app = create_app()
    app.run(host=host, port=port, debug=debug)
