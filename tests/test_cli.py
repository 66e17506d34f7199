import os
import tempfile
import unittest
from pathlib import Path

from openpyxl import load_workbook

from itemrecon.cli import build_results, load_config, run

DATA = Path(__file__).parent / "data"


class CliTests(unittest.TestCase):
    def test_build_results_from_json_inputs(self):
        result = build_results({}, {"CO": str(DATA / "co.json"), "FC": str(DATA / "fc.json")})
        self.assertEqual(len(result.rows), 4)

    def test_missing_config_gives_defaults(self):
        self.assertEqual(load_config(str(DATA / "missing.yaml")), {})

    def test_run_writes_workbook(self):
        with tempfile.TemporaryDirectory() as tmp:
            out = os.path.join(tmp, "report", "diff.xlsx")
            config = os.path.join(tmp, "config.yaml")
            with open(config, "w", encoding="utf-8") as file:
                file.write("export:\n  only_diffs: true\n")
            code = run([
                "--co", str(DATA / "co.json"),
                "--fc", str(DATA / "fc.json"),
                "--config", config,
                "--out", out,
                "--sort", "value_a",
                "--desc",
                "--log-level", "WARNING",
            ])
            self.assertEqual(code, 0)
            ws = load_workbook(out)["Comparison"]
            self.assertEqual(ws.max_row, 3)


if __name__ == "__main__":
    unittest.main()
