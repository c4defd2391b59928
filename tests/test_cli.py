import contextlib
import io
import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from vcoverride.cli import main

MANIFEST = (
    '<manifest xmlns:android="http://schemas.android.com/apk/res/android" '
    'package="com.example" android:versionCode="1">\n'
    "</manifest>\n"
)

NO_ENV = {"LEGACY_BUILD_VERSION": "", "CURRENT_BUILD_VERSION": ""}


def _write_build(root: Path) -> Path:
    merged = root / "merged"
    merged.mkdir()
    (merged / "AndroidManifest.xml").write_text(MANIFEST, encoding="utf-8")
    desc = {
        "name": "app",
        "plugins": ["com.android.application"],
        "variants": [{"name": "debug", "outputs": [{
            "process_manifest": {"properties": {
                "manifestOutputDirectory": "merged",
                "bundleManifestOutputDirectory": "bundle",
            }},
        }]}],
    }
    path = root / "build.json"
    path.write_text(json.dumps(desc), encoding="utf-8")
    return path


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestCli(unittest.TestCase):
    def test_run_patches_and_records(self):
        with tempfile.TemporaryDirectory() as td:
            tdp = Path(td)
            desc = _write_build(tdp)
            record = tdp / "record.json"

            with mock.patch.dict(os.environ, NO_ENV):
                code, out, _ = _run(["run", str(desc), "--build-version", "42", "--record", str(record)])

            self.assertEqual(code, 0)
            self.assertIn('android:versionCode="42"', (tdp / "merged" / "AndroidManifest.xml").read_text(encoding="utf-8"))
            self.assertIn("patched=1", out)
            self.assertIn("missing=1", out)
            loaded = json.loads(record.read_text(encoding="utf-8"))
            self.assertEqual(loaded["version_code"], 42)
            self.assertEqual(len(loaded["units"]), 2)

    def test_run_reads_environment(self):
        with tempfile.TemporaryDirectory() as td:
            tdp = Path(td)
            desc = _write_build(tdp)

            with mock.patch.dict(os.environ, {"LEGACY_BUILD_VERSION": "8", "CURRENT_BUILD_VERSION": ""}):
                code, _, _ = _run(["run", str(desc)])

            self.assertEqual(code, 0)
            self.assertIn('android:versionCode="8"', (tdp / "merged" / "AndroidManifest.xml").read_text(encoding="utf-8"))

    def test_plan_lists_units_without_writing(self):
        with tempfile.TemporaryDirectory() as td:
            tdp = Path(td)
            desc = _write_build(tdp)

            with mock.patch.dict(os.environ, NO_ENV):
                code, out, _ = _run(["plan", str(desc), "--build-version", "5"])

            self.assertEqual(code, 0)
            self.assertIn("overrideVersionCodeDebug-0Manifest", out)
            self.assertIn("overrideVersionCodeDebug-1Manifest", out)
            self.assertEqual((tdp / "merged" / "AndroidManifest.xml").read_text(encoding="utf-8"), MANIFEST)

    def test_invalid_value_exit_code(self):
        with tempfile.TemporaryDirectory() as td:
            tdp = Path(td)
            desc = _write_build(tdp)

            with mock.patch.dict(os.environ, NO_ENV):
                code, _, err = _run(["run", str(desc), "--build-version", "abc"])

            self.assertEqual(code, 2)
            self.assertIn("OVERRIDE_INVALID", err)
            self.assertEqual((tdp / "merged" / "AndroidManifest.xml").read_text(encoding="utf-8"), MANIFEST)

    def test_no_inputs_is_clean_skip(self):
        with tempfile.TemporaryDirectory() as td:
            desc = _write_build(Path(td))

            with mock.patch.dict(os.environ, NO_ENV):
                code, out, _ = _run(["run", str(desc)])

            self.assertEqual(code, 0)
            self.assertIn("SKIPPED", out)

    def test_patch_single_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text("<manifest", encoding="utf-8")

            code, _, err = _run(["patch", str(path), "--version-code", "3"])

            self.assertEqual(code, 1)
            self.assertIn("MANIFEST_FAILED", err)

    def test_patch_unreadable_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(MANIFEST, encoding="utf-8")

            real_open = Path.open

            def unreadable_open(self, mode="r", *args, **kwargs):
                if "r" in mode:
                    raise PermissionError("permission denied")
                return real_open(self, mode, *args, **kwargs)

            with mock.patch.object(Path, "open", unreadable_open):
                code, _, err = _run(["patch", str(path), "--version-code", "3"])

            self.assertEqual(code, 1)
            self.assertIn("MANIFEST_READ_FAILED", err)
            self.assertEqual(path.read_text(encoding="utf-8"), MANIFEST)


if __name__ == "__main__":
    unittest.main()
