import contextlib
import io
import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from causal_loop import cli
from causal_loop.config import AppConfig
from causal_loop.server import create_app
from causal_loop.types import DetectionMode, Polarity, TriggerPolicy


REPO_ROOT = Path(__file__).resolve().parents[1]
SAMPLE_CONFIG = REPO_ROOT / "projects" / "frozen_reach" / "config"


def make_config(root: Path) -> AppConfig:
    env = {
        "ZERO_DELTA_POLARITY": Polarity.POSITIVE,
        "TRIGGER_POLICY": TriggerPolicy.DROP,
        "LOOP_DETECTION": DetectionMode.DFS,
        "MAX_LOOPS": 0,
    }
    return AppConfig(root_dir=root, projects_dir=root / "projects", schemas_dir=REPO_ROOT / "schemas", env=env)


class _ProjectTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.cfg = make_config(self.tmp)
        shutil.copytree(SAMPLE_CONFIG, self.cfg.projects_dir / "frozen_reach" / "config")

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)


class CLITests(_ProjectTestCase):
    def run_cli(self, *argv):
        out = io.StringIO()
        with mock.patch("causal_loop.orchestrator.load_config", return_value=self.cfg), \
                mock.patch("causal_loop.cli.load_config", return_value=self.cfg), \
                mock.patch("causal_loop.cli.setup_logging"), \
                contextlib.redirect_stdout(out):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def test_run(self):
        code, stdout = self.run_cli("run", "--project", "frozen_reach")
        self.assertEqual(code, 0)
        data = json.loads(stdout)
        for k in ["graph", "loops", "edges_export", "loops_export"]:
            self.assertTrue(Path(data[k]).exists(), f"missing artifact: {k}")

    def test_run_missing_project(self):
        code, _ = self.run_cli("run", "--project", "absent")
        self.assertEqual(code, 1)

    def test_inspect_summary_and_node(self):
        code, stdout = self.run_cli("inspect", "--project", "frozen_reach")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["nodes_by_kind"]["pressure"], 3)

        code, stdout = self.run_cli("inspect", "--project", "frozen_reach", "--node", "pressure:conflict")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["node"]["label"], "Conflict")

        code, _ = self.run_cli("inspect", "--project", "frozen_reach", "--node", "pressure:absent")
        self.assertEqual(code, 1)

    def test_validate_reports_dangling_trigger(self):
        code, stdout = self.run_cli("validate", "--project", "frozen_reach")
        self.assertEqual(code, 1)
        self.assertIn("dangling_trigger", stdout)

    def test_parser_rejects_unknown_mode(self):
        with self.assertRaises(SystemExit), contextlib.redirect_stderr(io.StringIO()):
            cli.build_parser().parse_args(["run", "--project", "x", "--mode", "sometimes"])


class FlaskServerTests(_ProjectTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client = create_app(self.cfg).test_client()

    def test_projects(self):
        r = self.client.get("/projects")
        self.assertEqual(r.status_code, 200)
        self.assertIn("frozen_reach", r.get_json()["projects"])

    def test_graph_and_loops(self):
        r = self.client.get("/graph/frozen_reach")
        self.assertEqual(r.status_code, 200)
        data = r.get_json()
        self.assertIn("nodes", data)
        self.assertIn("links", data)
        self.assertEqual(data["summary"]["skipped"], 1)

        r = self.client.get("/loops/frozen_reach")
        self.assertEqual(r.status_code, 200)
        loops = r.get_json()["loops"]
        self.assertTrue(loops)
        self.assertTrue(all(lp["type"] in ("reinforcing", "balancing") for lp in loops))

    def test_node_route(self):
        r = self.client.get("/nodes/frozen_reach/generator:hero_emergence")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["node"]["label"], "Hero Emergence")

        r = self.client.get("/nodes/frozen_reach/generator:absent")
        self.assertEqual(r.status_code, 404)

    def test_unknown_project(self):
        r = self.client.get("/graph/absent")
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.get_json()["status"], "error")

    def test_run_route(self):
        r = self.client.post("/run/frozen_reach")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["status"], "ok")


if __name__ == "__main__":
    unittest.main()
