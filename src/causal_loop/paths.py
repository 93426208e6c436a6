from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import AppConfig


@dataclass
class ProjectPaths:
    """Resolved paths for a given project: its configuration inputs and artifacts."""

    project: str
    base_dir: Path
    config_dir: Path
    artifacts_dir: Path
    db_dir: Path

    # Artifact subdirectories
    graph_dir: Path
    loops_dir: Path

    # Graph artifacts
    graph_path: Path
    edges_export_path: Path

    # Loop artifacts
    loops_path: Path
    loops_export_path: Path

    provenance_db_path: Path

    def ensure(self) -> None:
        """Ensure required directories exist."""
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)
        self.graph_dir.mkdir(parents=True, exist_ok=True)
        self.loops_dir.mkdir(parents=True, exist_ok=True)
        self.db_dir.mkdir(parents=True, exist_ok=True)


def for_project(cfg: AppConfig, project: str) -> ProjectPaths:
    base = cfg.projects_dir / project
    artifacts_dir = base / "artifacts"
    graph_dir = artifacts_dir / "graph"
    loops_dir = artifacts_dir / "loops"
    db_dir = base / "db"

    return ProjectPaths(
        project=project,
        base_dir=base,
        config_dir=base / "config",
        artifacts_dir=artifacts_dir,
        db_dir=db_dir,
        graph_dir=graph_dir,
        loops_dir=loops_dir,
        graph_path=graph_dir / "graph.json",
        edges_export_path=graph_dir / "edges_export.csv",
        loops_path=loops_dir / "loops.json",
        loops_export_path=loops_dir / "loops_export.csv",
        provenance_db_path=db_dir / "provenance.sqlite",
    )
