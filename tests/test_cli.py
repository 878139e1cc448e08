import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from first_interactive.cli import app


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _write_input(self, payload: dict) -> Path:
        path = self.dir / "input.json"
        path.write_text(json.dumps(payload))
        return path

    def test_compute_writes_result(self):
        input_path = self._write_input({
            "timings": {
                "navigationStart": 600,
                "firstMeaningfulPaint": 3400,
                "domContentLoaded": 2000,
                "traceEnd": 12000
            },
            "long_tasks": []
        })
        out = self.dir / "result.json"

        result = self.runner.invoke(app, ["compute", "--input", str(input_path), "--out", str(out)])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(out.read_text()), {"timeInMs": 3400.0, "timestamp": 4000000.0})

    def test_compute_sorts_tasks_by_start(self):
        input_path = self._write_input({
            "timings": {
                "navigation_start_ms": 0,
                "first_meaningful_paint_ms": 200,
                "trace_end_ms": 60000
            },
            "long_tasks": [{"start": 9000, "end": 10000}, {"start": 2200, "end": 4000}]
        })
        out = self.dir / "result.json"

        result = self.runner.invoke(app, ["compute", "--input", str(input_path), "--out", str(out)])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(out.read_text())["timeInMs"], 4000.0)

    def test_compute_reports_trace_too_short(self):
        input_path = self._write_input({
            "timings": {"navigationStart": 0, "firstMeaningfulPaint": 3400, "traceEnd": 4500},
            "long_tasks": []
        })

        result = self.runner.invoke(app, ["compute", "--input", str(input_path), "--out", str(self.dir / "r.json")])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("longer than FMP", result.output)

    def test_compute_rejects_invalid_input(self):
        input_path = self._write_input({"timings": {"firstMeaningfulPaint": 3400}})

        result = self.runner.invoke(app, ["compute", "--input", str(input_path)])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Invalid input", result.output)

    def test_analyze_missing_trace(self):
        result = self.runner.invoke(app, ["analyze", "--trace", str(self.dir / "missing.json")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("not found", result.output)

    def test_analyze_writes_report(self):
        trace = self.dir / "trace.json"
        trace.write_text("{}")
        out = self.dir / "analysis.json"
        report = {
            "schema_version": "FI1",
            "first_interactive": {"timeInMs": 9500, "timestamp": 9500000},
            "error": None
        }

        with mock.patch("first_interactive.cli.analyze_trace", return_value=report) as analyze_trace:
            result = self.runner.invoke(
                app,
                ["analyze", "--trace", str(trace), "--out", str(out), "--long-task-ms", "60"]
            )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(out.read_text()), report)
        self.assertEqual(analyze_trace.call_args.kwargs["long_task_ms"], 60)


if __name__ == "__main__":
    unittest.main()
