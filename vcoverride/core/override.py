from __future__ import annotations

import os
import re
from typing import Mapping, Optional, Tuple

from vcoverride.config import CURRENT_ENV_VAR, LEGACY_ENV_VAR, MAX_VERSION_CODE
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.errors import InvalidOverrideValue

_DECIMAL_RE = re.compile(r"^[0-9]+$")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse(name: str, value: str) -> int:
    if not _DECIMAL_RE.match(value):
        raise InvalidOverrideValue(f"{name} must be a non-negative base-10 integer, got '{value}'")
    digits = value.lstrip("0") or "0"
    if len(digits) > len(str(MAX_VERSION_CODE)) or int(digits, 10) > MAX_VERSION_CODE:
        raise InvalidOverrideValue(f"{name} must not exceed {MAX_VERSION_CODE}, got '{value[:20]}'")
    return int(digits, 10)


def _try_parse(name: str, value: str) -> Optional[int]:
    try:
        return _parse(name, value)
    except InvalidOverrideValue:
        return None


def read_override_inputs(
    environ: Optional[Mapping[str, str]] = None,
    legacy_var: str = LEGACY_ENV_VAR,
    current_var: str = CURRENT_ENV_VAR,
) -> Tuple[Optional[str], Optional[str]]:
    env = os.environ if environ is None else environ
    return _clean(env.get(legacy_var)), _clean(env.get(current_var))


def has_override_input(legacy: Optional[str], current: Optional[str]) -> bool:
    return _clean(legacy) is not None or _clean(current) is not None


def resolve_override(
    legacy: Optional[str],
    current: Optional[str],
    sink: Optional[Diagnostics] = None,
) -> int:
    """
    Pick the version code for this run.

    The current input wins over the legacy one; a differing legacy value is
    reported once as OVERRIDE_CONFLICT.
    """
    legacy = _clean(legacy)
    current = _clean(current)

    if legacy is None and current is None:
        raise InvalidOverrideValue(
            f"No build version supplied (set {CURRENT_ENV_VAR} or {LEGACY_ENV_VAR})"
        )

    if current is None:
        return _parse(LEGACY_ENV_VAR, legacy)  # type: ignore[arg-type]

    value = _parse(CURRENT_ENV_VAR, current)

    if legacy is not None:
        conflict = _try_parse(LEGACY_ENV_VAR, legacy) != value
        if conflict and sink:
            sink.warning(
                "OVERRIDE_CONFLICT",
                f"Conflict between {LEGACY_ENV_VAR} ({legacy}) and {CURRENT_ENV_VAR} ({current}), using the latter.",
            )

    return value
