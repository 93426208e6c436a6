import csv
import json
import shutil
import tempfile
import unittest
from pathlib import Path

from causal_loop.config import AppConfig
from causal_loop.graph.builder import build_causal_graph
from causal_loop.orchestrator import run_analysis
from causal_loop.paths import for_project
from causal_loop.pipeline.csv_export import generate_edges_csv, generate_loops_csv
from causal_loop.pipeline.graph_export import write_graph
from causal_loop.pipeline.loops import compute_loops
from causal_loop.provenance.store import log_event, recent_events
from causal_loop.types import DetectionMode, Polarity, TriggerPolicy
from causal_loop.validation.schema import validate_json_schema


REPO_ROOT = Path(__file__).resolve().parents[1]
SCHEMAS_DIR = REPO_ROOT / "schemas"
SAMPLE_CONFIG = REPO_ROOT / "projects" / "frozen_reach" / "config"


def make_config(root: Path, **env) -> AppConfig:
    defaults = {
        "ZERO_DELTA_POLARITY": Polarity.POSITIVE,
        "TRIGGER_POLICY": TriggerPolicy.DROP,
        "LOOP_DETECTION": DetectionMode.DFS,
        "MAX_LOOPS": 0,
    }
    defaults.update(env)
    return AppConfig(root_dir=root, projects_dir=root / "projects", schemas_dir=SCHEMAS_DIR, env=defaults)


def fear_graph(delta=5):
    return build_causal_graph(
        [{
            "id": "fear",
            "name": "Fear",
            "growth": {"positiveFeedback": [{"type": "entity_count", "kind": "cultist"}]},
            "triggers": [{"activates": "recruit", "threshold": 50}],
        }],
        [{
            "id": "recruit",
            "name": "Recruit",
            "entityKind": "cultist",
            "stateUpdates": [{"type": "modify_pressure", "pressureId": "fear", "delta": delta}],
        }],
    )


class LoopArtifactTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_loop_artifact_structure(self) -> None:
        out = self.tmp / "loops.json"
        data = compute_loops(fear_graph(-5), out)

        self.assertEqual(json.loads(out.read_text(encoding="utf-8")), data)
        validate_json_schema(data, SCHEMAS_DIR / "loops.schema.json")
        for key in ("reinforcing", "balancing", "notes"):
            self.assertIn(key, data)

        self.assertEqual(len(data["balancing"]), 1)
        self.assertEqual(len(data["reinforcing"]), 1)
        balancing = data["balancing"][0]
        self.assertEqual(balancing["id"], "L01")
        self.assertEqual(balancing["labels"], ["Fear", "Recruit", "Fear"])
        self.assertEqual(balancing["description"], "Fear → Recruit → Fear")
        self.assertEqual(balancing["negative_edges"], 1)
        self.assertEqual(balancing["length"], 2)
        self.assertEqual(
            [e["polarity"] for e in balancing["edges"]],
            ["positive", "negative"],
        )

    def test_empty_graph_note(self) -> None:
        data = compute_loops(build_causal_graph(), self.tmp / "loops.json")
        self.assertEqual(data["reinforcing"], [])
        self.assertEqual(data["balancing"], [])
        self.assertEqual(len(data["notes"]), 1)

    def test_truncation(self) -> None:
        data = compute_loops(fear_graph(), self.tmp / "loops.json", max_loops=1)
        self.assertEqual(len(data["reinforcing"]) + len(data["balancing"]), 1)
        self.assertTrue(any("Truncated" in n for n in data["notes"]))

    def test_graph_artifact_and_csv_exports(self) -> None:
        graph_path = self.tmp / "graph.json"
        data = write_graph(fear_graph(), graph_path)
        validate_json_schema(data, SCHEMAS_DIR / "graph.schema.json")
        self.assertEqual(len(data["links"]), 4)

        rows = generate_edges_csv(graph_path, self.tmp / "edges.csv")
        self.assertEqual(rows, 4)
        with open(self.tmp / "edges.csv", newline="", encoding="utf-8") as f:
            records = list(csv.DictReader(f))
        self.assertEqual(records[0]["source_label"], "Recruit")
        self.assertEqual(records[0]["target_kind"], "pressure")

        loops_path = self.tmp / "loops.json"
        compute_loops(fear_graph(), loops_path)
        self.assertEqual(generate_loops_csv(loops_path, self.tmp / "loops.csv"), 2)
        with open(self.tmp / "loops.csv", newline="", encoding="utf-8") as f:
            loop_rows = list(csv.DictReader(f))
        self.assertEqual([r["loop_id"] for r in loop_rows], ["L01", "L02"])

    def test_schema_rejects_bad_artifact(self) -> None:
        with self.assertRaises(ValueError):
            validate_json_schema({"reinforcing": [], "balancing": []}, SCHEMAS_DIR / "loops.schema.json")


class ProvenanceTests(unittest.TestCase):
    def test_events_roundtrip_newest_first(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            db = tmp / "db" / "provenance.sqlite"
            self.assertEqual(recent_events(db), [])
            log_event(db, "first", {"n": 1})
            log_event(db, "second")
            events = recent_events(db)
            self.assertEqual([e["event"] for e in events], ["second", "first"])
            self.assertEqual(events[1]["payload"], {"n": 1})
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class RunAnalysisTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.cfg = make_config(self.tmp)
        shutil.copytree(SAMPLE_CONFIG, self.cfg.projects_dir / "frozen_reach" / "config")

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_run_writes_all_artifacts(self):
        result = run_analysis("frozen_reach", cfg=self.cfg)
        for key in ("graph", "loops", "edges_export", "loops_export"):
            self.assertTrue(Path(result[key]).exists(), f"missing artifact: {key}")

        summary = result["summary"]
        self.assertEqual(summary["nodes_by_kind"]["pressure"], 3)
        self.assertEqual(summary["nodes_by_kind"]["generator"], 3)
        self.assertEqual(summary["skipped"], 1)
        self.assertGreater(summary["loops"], 0)

        paths = for_project(self.cfg, "frozen_reach")
        events = recent_events(paths.provenance_db_path)
        self.assertEqual(events[0]["event"], "analysis_completed")
        self.assertEqual(events[0]["payload"]["trigger_policy"], "drop")

    def test_overrides(self):
        result = run_analysis(
            "frozen_reach",
            trigger_policy="create",
            mode="elementary",
            cfg=self.cfg,
        )
        self.assertEqual(result["summary"]["skipped"], 0)
        self.assertEqual(result["summary"]["nodes_by_kind"]["generator"], 4)

    def test_missing_project(self):
        with self.assertRaises(FileNotFoundError):
            run_analysis("nope", cfg=self.cfg)


if __name__ == "__main__":
    unittest.main()
