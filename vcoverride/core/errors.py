from __future__ import annotations


class InvalidOverrideValue(ValueError):
    """No usable override value; aborts the run before any file is touched."""


class MalformedManifest(ValueError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Manifest is not valid XML: {path} ({reason})")
        self.path = path
        self.reason = reason


class ManifestWriteFailure(OSError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed writing manifest: {path} ({reason})")
        self.path = path
        self.reason = reason
