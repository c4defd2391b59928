from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Literal, Optional

Algo = Literal["sha1", "md5"]


def manifest_digest(path: str, algo: Algo = "sha1") -> Optional[str]:
    """
    Hex digest of a manifest's bytes, or None when there is no readable file.

    Manifests are small, so the file is read in one go; the record uses the
    digests to tell a rewritten manifest from an untouched one.
    """
    if algo not in ("sha1", "md5"):
        raise ValueError(f"Unsupported hash algo: {algo}")

    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    return hashlib.new(algo, data).hexdigest()
