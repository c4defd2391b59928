from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from vcoverride.config import APP_NAME, APP_VERSION, CURRENT_ENV_VAR, HASH_ALGO_DEFAULT, LEGACY_ENV_VAR
from vcoverride.core.diagnostics import Diagnostics, format_diagnostic
from vcoverride.core.errors import InvalidOverrideValue, MalformedManifest, ManifestWriteFailure
from vcoverride.core.host import load_build_description
from vcoverride.core.override import read_override_inputs
from vcoverride.core.patcher import patch_manifest
from vcoverride.core.planner import plan_overrides
from vcoverride.core.record import build_run_record, write_run_record
from vcoverride.core.runner import execute_units

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_CONFIG = 2


def _make_sink(verbose: bool) -> Diagnostics:
    def _echo(d):
        if d.level == "DEBUG" and not verbose:
            return
        stream = sys.stderr if d.level in ("WARNING", "ERROR") else sys.stdout
        print(format_diagnostic(d), file=stream)

    return Diagnostics(listener=_echo)


def _inputs(args):
    legacy, current = read_override_inputs()
    if args.legacy_build_version is not None:
        legacy = args.legacy_build_version
    if args.build_version is not None:
        current = args.build_version
    return legacy, current


def _cmd_plan(args, execute: bool) -> int:
    sink = _make_sink(args.verbose)
    try:
        projects = load_build_description(args.description)
    except (OSError, ValueError) as e:
        sink.error("DESCRIPTION_INVALID", str(e), args.description)
        return EXIT_CONFIG

    legacy, current = _inputs(args)
    try:
        value, units = plan_overrides(projects, legacy, current, sink)
    except InvalidOverrideValue as e:
        sink.error("OVERRIDE_INVALID", str(e))
        return EXIT_CONFIG

    if not execute:
        for u in units:
            deps = ", ".join(u.required_by) or "-"
            print(f"{u.unit_id}  {u.candidate.path}  after={u.must_run_after}  before={deps}")
        return EXIT_ERRORS if sink.has_errors() else EXIT_OK

    summary, outcomes = None, []
    if value is not None:
        summary, outcomes = execute_units(units, value, sink)
        print(
            f"Override done: patched={summary.patched}, unchanged={summary.unchanged}, "
            f"missing={summary.missing}, failed={summary.failed}"
        )

    if args.record:
        record = build_run_record(
            tool_name=APP_NAME,
            tool_version=APP_VERSION,
            override_value=value,
            summary=summary,
            outcomes=outcomes,
            diagnostics=sink.results,
            description_path=args.description,
            hash_algo=HASH_ALGO_DEFAULT,
            include_debug=args.verbose,
        )
        print(f"Record written: {write_run_record(record, args.record)}")

    return EXIT_ERRORS if sink.has_errors() else EXIT_OK


def _cmd_patch(args) -> int:
    sink = _make_sink(args.verbose)
    if args.version_code < 0:
        sink.error("OVERRIDE_INVALID", f"Version code must be non-negative, got {args.version_code}")
        return EXIT_CONFIG
    try:
        status = patch_manifest(args.manifest, args.version_code, sink)
    except (MalformedManifest, ManifestWriteFailure) as e:
        sink.error("MANIFEST_FAILED", str(e), args.manifest)
        return EXIT_ERRORS
    except OSError as e:
        sink.error("MANIFEST_READ_FAILED", str(e), args.manifest)
        return EXIT_ERRORS
    print(status)
    return EXIT_OK


def _cmd_ui(args) -> int:
    from PySide6.QtWidgets import QApplication

    from vcoverride.ui.main_window import MainWindow

    app = QApplication.instance() or QApplication(sys.argv[:1])
    window = MainWindow()
    if args.description:
        window.description_edit.setText(args.description)
    window.show()
    return app.exec()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vcoverride", description=f"{APP_NAME} (v{APP_VERSION})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print DEBUG diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("plan", "List the manifest override units for a build description"),
        ("run", "Plan and apply the version code override"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("description", help="Path to the JSON build description")
        p.add_argument("--legacy-build-version", help=f"Overrides ${LEGACY_ENV_VAR}")
        p.add_argument("--build-version", help=f"Overrides ${CURRENT_ENV_VAR}")
        if name == "run":
            p.add_argument("--record", help="Write a JSON run record to this path")

    p = sub.add_parser("patch", help="Set versionCode in a single manifest file")
    p.add_argument("manifest")
    p.add_argument("--version-code", type=int, required=True)

    p = sub.add_parser("ui", help="Open the desktop window")
    p.add_argument("description", nargs="?")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "plan":
        return _cmd_plan(args, execute=False)
    if args.command == "run":
        return _cmd_plan(args, execute=True)
    if args.command == "patch":
        return _cmd_patch(args)
    return _cmd_ui(args)


if __name__ == "__main__":
    raise SystemExit(main())
