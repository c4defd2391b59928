import json
import tempfile
import unittest
from pathlib import Path

from vcoverride.core.record import build_run_record, write_run_record
from vcoverride.core.runner import RunSummary, UnitOutcome
from vcoverride.models import Diagnostic, ManifestCandidate, WorkUnit


class TestRunRecord(unittest.TestCase):
    def test_record_write(self):
        with tempfile.TemporaryDirectory() as td:
            out = Path(td)

            unit = WorkUnit(
                name="overrideVersionCodeDebug-0Manifest",
                project_path=":app",
                candidate=ManifestCandidate(str(out / "AndroidManifest.xml"), "debug", 0),
                must_run_after="processDebugManifest",
                required_by=["processDebugResources"],
            )
            outcomes = [UnitOutcome(unit, "PATCHED", "aaa", "bbb")]
            summary = RunSummary(total=1, patched=1, unchanged=0, missing=0, failed=0)
            diagnostics = [
                Diagnostic("INFO", "MANIFEST_UPDATE", "Updating", str(out / "AndroidManifest.xml")),
                Diagnostic("DEBUG", "UNIT_DONE", "done", None),
            ]

            record = build_run_record(
                tool_name="Tool",
                tool_version="0.0",
                override_value=42,
                summary=summary,
                outcomes=outcomes,
                diagnostics=diagnostics,
            )
            path = write_run_record(record, str(out / "records" / "run.json"))
            self.assertTrue(Path(path).exists())

            loaded = json.loads(Path(path).read_text(encoding="utf-8"))
            self.assertEqual(loaded["version_code"], 42)
            self.assertEqual(loaded["summary"]["patched"], 1)
            self.assertEqual(loaded["units"][0]["id"], ":app:overrideVersionCodeDebug-0Manifest")
            self.assertEqual(loaded["units"][0]["sha1_after"], "bbb")
            self.assertEqual([r["code"] for r in loaded["results"]], ["MANIFEST_UPDATE"])


if __name__ == "__main__":
    unittest.main()
