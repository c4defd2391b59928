from __future__ import annotations

import json
from pathlib import Path

MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    package="com.example.demo"
    android:versionCode="1"
    android:versionName="1.0">

    <!-- generated by processDebugManifest -->
    <application android:label="Demo" />
</manifest>
"""


def main():
    root = Path("demo_build")
    merged = root / "app" / "build" / "intermediates" / "merged_manifests" / "debug"
    bundle = root / "app" / "build" / "intermediates" / "bundle_manifest" / "debug"
    merged.mkdir(parents=True, exist_ok=True)
    bundle.mkdir(parents=True, exist_ok=True)

    (merged / "AndroidManifest.xml").write_text(MANIFEST, encoding="utf-8")
    (bundle / "AndroidManifest.xml").write_text(MANIFEST, encoding="utf-8")

    description = {
        "projects": [
            {
                "name": "app",
                "path": ":app",
                "plugins": ["com.android.application"],
                "tasks": ["processDebugManifest", "processDebugResources", "bundleDebugResources"],
                "variants": [
                    {
                        "name": "debug",
                        "outputs": [
                            {
                                "process_manifest": {
                                    "name": "processDebugManifest",
                                    "properties": {
                                        "manifestOutputDirectory": "app/build/intermediates/merged_manifests/debug",
                                        "bundleManifestOutputDirectory": "app/build/intermediates/bundle_manifest/debug",
                                    },
                                },
                                "process_resources": "processDebugResources",
                            }
                        ],
                    }
                ],
            },
            {"name": "lib", "path": ":lib", "plugins": ["com.android.library"]},
        ]
    }
    (root / "build.json").write_text(json.dumps(description, indent=2), encoding="utf-8")

    print(f"Created demo build at: {root.resolve()}")

if __name__ == "__main__":
    main()
