from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple
from xml.etree import ElementTree

from vcoverride.config import ANDROID_NS, ANDROID_PREFIX, VERSION_CODE_ATTR
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.errors import MalformedManifest, ManifestWriteFailure
from vcoverride.models import PatchStatus

_VERSION_CODE_KEY = f"{{{ANDROID_NS}}}{VERSION_CODE_ATTR}"

_DECLARED_ENCODING_RE = re.compile(rb"""^<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._\-]+)["']""")
_NS_DECL_RE = re.compile(r"""\sxmlns:([A-Za-z_][\w.\-]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


def _detect_encoding(raw: bytes) -> str:
    # A BOM is decoded as U+FEFF and written back unchanged
    if raw.startswith(b"\xff\xfe"):
        return "utf-16-le"
    if raw.startswith(b"\xfe\xff"):
        return "utf-16-be"
    m = _DECLARED_ENCODING_RE.match(raw.lstrip(b"\xef\xbb\xbf"))
    if m:
        return m.group(1).decode("ascii").lower()
    return "utf-8"


def _scan_to_close(text: str, start: int, allow_brackets: bool = False) -> int:
    """Index just past the '>' closing the markup at start, skipping quoted text."""
    quote = None
    depth = 0
    i = start + 1
    while i < len(text):
        c = text[i]
        if quote:
            if c == quote:
                quote = None
        elif c in ("'", '"'):
            quote = c
        elif allow_brackets and c == "[":
            depth += 1
        elif allow_brackets and c == "]":
            depth -= 1
        elif c == ">" and depth <= 0:
            return i + 1
        i += 1
    raise ValueError("unterminated markup")


def _root_start_tag(text: str) -> Tuple[int, int]:
    i = 0
    while True:
        j = text.find("<", i)
        if j < 0:
            raise ValueError("no root element")
        if text.startswith("<?", j):
            k = text.find("?>", j + 2)
            if k < 0:
                raise ValueError("unterminated processing instruction")
            i = k + 2
        elif text.startswith("<!--", j):
            k = text.find("-->", j + 4)
            if k < 0:
                raise ValueError("unterminated comment")
            i = k + 3
        elif text.startswith("<!", j):
            i = _scan_to_close(text, j, allow_brackets=True)
        else:
            return j, _scan_to_close(text, j)


def _android_prefixes(tag: str) -> Tuple[List[str], set]:
    bound: List[str] = []
    used = set()
    for m in _NS_DECL_RE.finditer(tag):
        prefix = m.group(1)
        uri = m.group(2) if m.group(2) is not None else m.group(3)
        used.add(prefix)
        if uri == ANDROID_NS and prefix not in bound:
            bound.append(prefix)
    return bound, used


def _rewrite_start_tag(tag: str, value: str) -> str:
    bound, used = _android_prefixes(tag)

    # The attribute may sit under any prefix bound to the Android namespace
    for prefix in bound:
        attr_re = re.compile(
            r"""(\s%s:%s\s*=\s*)(?:"[^"]*"|'[^']*')""" % (re.escape(prefix), VERSION_CODE_ATTR)
        )
        m = attr_re.search(tag)
        if m:
            quote = tag[m.end(1)]
            return tag[: m.end(1)] + f"{quote}{value}{quote}" + tag[m.end():]

    if bound:
        addition = f' {bound[0]}:{VERSION_CODE_ATTR}="{value}"'
    else:
        prefix = ANDROID_PREFIX
        n = 1
        while prefix in used:
            prefix = f"{ANDROID_PREFIX}{n}"
            n += 1
        addition = f' xmlns:{prefix}="{ANDROID_NS}" {prefix}:{VERSION_CODE_ATTR}="{value}"'

    body_len = len(tag) - (2 if tag.endswith("/>") else 1)
    insert_at = len(tag[:body_len].rstrip())
    return tag[:insert_at] + addition + tag[insert_at:]


def _parse(raw: bytes, path: str) -> ElementTree.Element:
    try:
        root = ElementTree.fromstring(raw)
    except ElementTree.ParseError as e:
        raise MalformedManifest(path, str(e)) from e
    if root is None:
        raise MalformedManifest(path, "empty document")
    return root


def patch_manifest(path: str, target_value: int, sink: Optional[Diagnostics] = None) -> PatchStatus:
    """
    Set android:versionCode on the root element of the manifest at path.

    Only the root start tag is rewritten; everything else in the file is
    written back exactly as read. A missing file is not an error.
    """
    sink = sink or Diagnostics()
    p = Path(path)
    value = str(int(target_value))

    if not p.is_file():
        sink.info("MANIFEST_MISSING", f"Manifest file at {p} does not exist, skipping", str(p))
        return "MISSING"

    sink.info("MANIFEST_UPDATE", f"Updating {p.name} at {p}", str(p))

    with p.open("rb") as f:
        raw = f.read()

    root = _parse(raw, str(p))
    current = root.get(_VERSION_CODE_KEY)
    if current == value:
        sink.debug("MANIFEST_UNCHANGED", f"versionCode already {value}", str(p))
        return "UNCHANGED"

    encoding = _detect_encoding(raw)
    try:
        text = raw.decode(encoding)
        start, end = _root_start_tag(text)
    except (LookupError, UnicodeDecodeError, ValueError) as e:
        raise MalformedManifest(str(p), str(e)) from e

    new_text = text[:start] + _rewrite_start_tag(text[start:end], value) + text[end:]
    try:
        new_raw = new_text.encode(encoding)
    except UnicodeEncodeError as e:
        raise ManifestWriteFailure(str(p), str(e)) from e

    # The edited document must still parse and carry the new value
    if _parse(new_raw, str(p)).get(_VERSION_CODE_KEY) != value:
        raise MalformedManifest(str(p), "root start tag could not be rewritten")

    try:
        with p.open("wb") as f:
            f.write(new_raw)
    except OSError as e:
        raise ManifestWriteFailure(str(p), str(e)) from e

    sink.debug(
        "MANIFEST_UPDATED",
        f"versionCode {current if current is not None else '(absent)'} -> {value}",
        str(p),
    )
    return "PATCHED"
