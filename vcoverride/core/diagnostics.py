from __future__ import annotations

from typing import Callable, Dict, List, Optional

from vcoverride.models import Diagnostic

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Diagnostics:
    """
    Ordered sink for leveled diagnostics.

    Core functions report through an instance passed in by the caller; an
    optional listener sees every record as it is added (console echo,
    results list in the window).
    """

    def __init__(self, listener: Optional[Callable[[Diagnostic], None]] = None):
        self.results: List[Diagnostic] = []
        self._listener = listener

    def report(self, level: str, code: str, message: str, path: Optional[str] = None) -> Diagnostic:
        lvl = (level or "INFO").upper()
        if lvl not in LEVELS:
            raise ValueError(f"Unknown diagnostic level: {level}")
        d = Diagnostic(level=lvl, code=code, message=message, path=path)
        self.results.append(d)
        if self._listener:
            self._listener(d)
        return d

    def debug(self, code: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.report("DEBUG", code, message, path)

    def info(self, code: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.report("INFO", code, message, path)

    def warning(self, code: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.report("WARNING", code, message, path)

    def error(self, code: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.report("ERROR", code, message, path)

    def by_level(self, level: str) -> List[Diagnostic]:
        lvl = level.upper()
        return [d for d in self.results if d.level == lvl]

    def counts(self) -> Dict[str, int]:
        out = {lvl: 0 for lvl in LEVELS}
        for d in self.results:
            out[d.level] = out.get(d.level, 0) + 1
        return out

    def has_errors(self) -> bool:
        return any(d.level == "ERROR" for d in self.results)


def format_diagnostic(d: Diagnostic) -> str:
    suffix = f" ({d.path})" if d.path else ""
    return f"[{d.level}] {d.code}: {d.message}{suffix}"
