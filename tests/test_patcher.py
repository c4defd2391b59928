import tempfile
import unittest
from pathlib import Path
from unittest import mock
from xml.etree import ElementTree

from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.errors import MalformedManifest, ManifestWriteFailure
from vcoverride.core.patcher import patch_manifest

NS = "http://schemas.android.com/apk/res/android"

SAMPLE = """<?xml version="1.0" encoding="utf-8"?>
<!-- <manifest android:versionCode="99"> in a comment -->
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    package="com.example.demo"
    android:versionCode="1"
    android:versionName="1.0">

    <uses-sdk android:minSdkVersion="21" />
    <application   android:label="Demo"
        android:icon="@mipmap/ic_launcher" >
        <meta-data android:name="versionCode" android:value="1"/>
    </application>
</manifest>
"""


class TestPatchManifest(unittest.TestCase):
    def test_rewrites_only_version_code(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(SAMPLE, encoding="utf-8")

            status = patch_manifest(str(path), 42)

            self.assertEqual(status, "PATCHED")
            expected = SAMPLE.replace('android:versionCode="1"', 'android:versionCode="42"')
            self.assertEqual(path.read_text(encoding="utf-8"), expected)

            root = ElementTree.parse(str(path)).getroot()
            self.assertEqual(root.get(f"{{{NS}}}versionCode"), "42")
            self.assertEqual(root.get(f"{{{NS}}}versionName"), "1.0")

    def test_idempotent(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(SAMPLE, encoding="utf-8")

            patch_manifest(str(path), 7)
            once = path.read_bytes()
            status = patch_manifest(str(path), 7)

            self.assertEqual(status, "UNCHANGED")
            self.assertEqual(path.read_bytes(), once)

    def test_missing_file_is_noop(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nope" / "AndroidManifest.xml"
            sink = Diagnostics()

            status = patch_manifest(str(path), 3, sink)

            self.assertEqual(status, "MISSING")
            self.assertFalse(path.exists())
            self.assertTrue(any(d.code == "MANIFEST_MISSING" for d in sink.results))
            self.assertFalse(sink.has_errors())

    def test_creates_attribute_when_absent(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(
                f'<manifest xmlns:android="{NS}" package="x">\n  <application/>\n</manifest>\n',
                encoding="utf-8",
            )

            patch_manifest(str(path), 5)

            self.assertEqual(
                path.read_text(encoding="utf-8"),
                f'<manifest xmlns:android="{NS}" package="x" android:versionCode="5">\n  <application/>\n</manifest>\n',
            )

    def test_declares_namespace_when_missing(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text('<manifest package="x"/>', encoding="utf-8")

            patch_manifest(str(path), 3)

            text = path.read_text(encoding="utf-8")
            self.assertEqual(text, f'<manifest package="x" xmlns:android="{NS}" android:versionCode="3"/>')

    def test_keeps_custom_prefix_and_quotes(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(f"<manifest xmlns:a='{NS}' a:versionCode='10'></manifest>", encoding="utf-8")

            patch_manifest(str(path), 11)

            self.assertEqual(
                path.read_text(encoding="utf-8"),
                f"<manifest xmlns:a='{NS}' a:versionCode='11'></manifest>",
            )

    def test_finds_attribute_under_second_bound_prefix(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(
                f'<manifest xmlns:a="{NS}" xmlns:android="{NS}" android:versionCode="1"/>',
                encoding="utf-8",
            )

            status = patch_manifest(str(path), 6)

            self.assertEqual(status, "PATCHED")
            self.assertEqual(
                path.read_text(encoding="utf-8"),
                f'<manifest xmlns:a="{NS}" xmlns:android="{NS}" android:versionCode="6"/>',
            )

    def test_preserves_crlf_and_bom(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            original = ("\ufeff" + SAMPLE.replace("\n", "\r\n")).encode("utf-8")
            path.write_bytes(original)

            patch_manifest(str(path), 42)

            expected = original.replace(b'android:versionCode="1"', b'android:versionCode="42"')
            self.assertEqual(path.read_bytes(), expected)

    def test_malformed_file_untouched(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text('<manifest android:versionCode="1"', encoding="utf-8")
            before = path.read_bytes()

            with self.assertRaises(MalformedManifest):
                patch_manifest(str(path), 2)

            self.assertEqual(path.read_bytes(), before)

    def test_empty_file_is_malformed(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_bytes(b"")

            with self.assertRaises(MalformedManifest):
                patch_manifest(str(path), 2)

    def test_write_failure_raises(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "AndroidManifest.xml"
            path.write_text(SAMPLE, encoding="utf-8")

            real_open = Path.open

            def read_only_open(self, mode="r", *args, **kwargs):
                if "w" in mode:
                    raise PermissionError("read-only file system")
                return real_open(self, mode, *args, **kwargs)

            with mock.patch.object(Path, "open", read_only_open):
                with self.assertRaises(ManifestWriteFailure):
                    patch_manifest(str(path), 2)

            self.assertEqual(path.read_text(encoding="utf-8"), SAMPLE)


if __name__ == "__main__":
    unittest.main()
