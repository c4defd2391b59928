import os
from pathlib import Path

from PySide6.QtCore import Qt, QObject, QThread, Signal
from PySide6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QFileDialog,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QSplitter,
    QMessageBox,
    QProgressBar,
)

from vcoverride.config import APP_NAME, APP_VERSION, CURRENT_ENV_VAR, HASH_ALGO_DEFAULT, LEGACY_ENV_VAR
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.errors import InvalidOverrideValue
from vcoverride.core.host import load_build_description
from vcoverride.core.override import read_override_inputs
from vcoverride.core.planner import plan_overrides
from vcoverride.core.record import build_run_record, write_run_record
from vcoverride.core.runner import execute_units


class OverrideWorker(QObject):
    progress = Signal(int, int, str)   # current, total, message
    finished = Signal(object, object, object)  # summary, outcomes, diagnostics

    def __init__(self, units, target_value):
        super().__init__()
        self.units = units
        self.target_value = target_value
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def run(self):
        def _is_cancelled():
            return self._cancelled

        def _progress(i, total, unit):
            self.progress.emit(i, total, f"{i}/{total}  {unit.unit_id}")

        sink = Diagnostics()
        summary, outcomes = execute_units(
            units=self.units,
            target_value=self.target_value,
            sink=sink,
            progress_cb=_progress,
            is_cancelled=_is_cancelled,
            hash_algo=HASH_ALGO_DEFAULT,
        )
        self.finished.emit(summary, outcomes, sink.results)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} (v{APP_VERSION})")
        self.setMinimumSize(960, 600)

        # State
        self._last_units = []
        self._last_value = None
        self._last_summary = None
        self._last_outcomes = []
        self._last_diagnostics = []
        self._worker_thread = None
        self._worker = None

        root = QWidget()
        self.setCentralWidget(root)

        main_layout = QVBoxLayout(root)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        # -------------------------
        # Build description
        # -------------------------
        self.description_edit = QLineEdit()
        self.description_edit.setPlaceholderText("Select build description (JSON)...")

        btn_browse = QPushButton("Browse...")
        btn_browse.clicked.connect(self.pick_description)

        desc_row = QHBoxLayout()
        desc_row.addWidget(QLabel("Build:"))
        desc_row.addWidget(self.description_edit, 1)
        desc_row.addWidget(btn_browse)
        main_layout.addLayout(desc_row)

        # -------------------------
        # Override inputs
        # -------------------------
        legacy, current = read_override_inputs()

        self.legacy_edit = QLineEdit()
        self.legacy_edit.setPlaceholderText(LEGACY_ENV_VAR)
        self.legacy_edit.setText(legacy or "")
        self.legacy_edit.setMaximumWidth(160)

        self.current_edit = QLineEdit()
        self.current_edit.setPlaceholderText(CURRENT_ENV_VAR)
        self.current_edit.setText(current or "")
        self.current_edit.setMaximumWidth(160)

        inputs_row = QHBoxLayout()
        inputs_row.addWidget(QLabel(f"{LEGACY_ENV_VAR}:"))
        inputs_row.addWidget(self.legacy_edit)
        inputs_row.addWidget(QLabel(f"{CURRENT_ENV_VAR}:"))
        inputs_row.addWidget(self.current_edit)
        inputs_row.addStretch(1)

        self.btn_plan = QPushButton("Plan")
        self.btn_plan.clicked.connect(self.on_plan_clicked)

        self.btn_apply = QPushButton("Apply")
        self.btn_apply.clicked.connect(self.on_apply_clicked)

        self.btn_export = QPushButton("Export Record")
        self.btn_export.setEnabled(False)  # enabled after Apply
        self.btn_export.clicked.connect(self.on_export_record_clicked)

        inputs_row.addWidget(self.btn_plan)
        inputs_row.addWidget(self.btn_apply)
        inputs_row.addWidget(self.btn_export)
        main_layout.addLayout(inputs_row)

        # -------------------------
        # Progress + Cancel
        # -------------------------
        prog_row = QHBoxLayout()

        self.progress = QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setValue(0)

        self.btn_cancel = QPushButton("Cancel")
        self.btn_cancel.setEnabled(False)
        self.btn_cancel.clicked.connect(self.on_cancel_clicked)

        prog_row.addWidget(QLabel("Progress:"))
        prog_row.addWidget(self.progress, 1)
        prog_row.addWidget(self.btn_cancel)
        main_layout.addLayout(prog_row)

        # -------------------------
        # Results + Log
        # -------------------------
        splitter = QSplitter(Qt.Horizontal)

        results_panel = QWidget()
        results_layout = QVBoxLayout(results_panel)
        results_layout.setContentsMargins(0, 0, 0, 0)
        results_layout.addWidget(QLabel("Results"))
        self.results_list = QListWidget()
        results_layout.addWidget(self.results_list, 1)

        logs_panel = QWidget()
        logs_layout = QVBoxLayout(logs_panel)
        logs_layout.setContentsMargins(0, 0, 0, 0)
        logs_layout.addWidget(QLabel("Log"))
        self.log_box = QPlainTextEdit()
        self.log_box.setReadOnly(True)
        self.log_box.setPlaceholderText("Logs will appear here...")
        logs_layout.addWidget(self.log_box, 1)

        splitter.addWidget(results_panel)
        splitter.addWidget(logs_panel)
        splitter.setSizes([560, 400])
        main_layout.addWidget(splitter, 1)

        self.log("Ready. Choose a build description, then Plan / Apply.")

        # Stable IDs for UI tests
        self.description_edit.setObjectName("description_edit")
        self.legacy_edit.setObjectName("legacy_edit")
        self.current_edit.setObjectName("current_edit")
        self.btn_plan.setObjectName("btn_plan")
        self.btn_apply.setObjectName("btn_apply")
        self.btn_export.setObjectName("btn_export")
        self.btn_cancel.setObjectName("btn_cancel")
        self.results_list.setObjectName("results_list")
        self.log_box.setObjectName("log_box")
        self.progress.setObjectName("progress")

    # -------------------------
    # UI Helpers
    # -------------------------
    def log(self, msg: str):
        self.log_box.appendPlainText(msg)

    def add_result(self, level: str, message: str):
        item = QListWidgetItem(f"[{level}] {message}")

        lvl = level.upper().strip()
        if lvl == "ERROR":
            item.setForeground(Qt.red)
        elif lvl == "WARNING":
            item.setForeground(Qt.darkYellow)
        elif lvl == "DEBUG":
            item.setForeground(Qt.gray)
        else:
            item.setForeground(Qt.darkGreen)

        self.results_list.addItem(item)

    def add_diagnostic(self, d):
        if d.level == "DEBUG":
            self.log(f"{d.code}: {d.message}")
            return
        suffix = f" ({d.path})" if d.path else ""
        self.add_result(d.level, f"{d.code}: {d.message}{suffix}")

    def pick_description(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Build Description", "", "JSON (*.json)")
        if path:
            self.description_edit.setText(os.path.normpath(path))
            self.log(f"Build description set: {path}")

    def _require_description(self):
        path = self.description_edit.text().strip()
        if not path or not os.path.isfile(path):
            QMessageBox.warning(self, "Missing Build Description", "Please choose a valid build description file.")
            return None
        return path

    # -------------------------
    # Plan
    # -------------------------
    def on_plan_clicked(self):
        self.results_list.clear()
        self._last_units = []
        self._last_value = None

        path = self._require_description()
        if not path:
            return

        self.log("---- PLAN START ----")
        self.log(f"Build: {path}")

        sink = Diagnostics(listener=self.add_diagnostic)
        try:
            projects = load_build_description(path)
        except (OSError, ValueError) as e:
            sink.error("DESCRIPTION_INVALID", str(e), path)
            self.log("---- PLAN BLOCKED ----")
            return

        try:
            value, units = plan_overrides(
                projects,
                self.legacy_edit.text(),
                self.current_edit.text(),
                sink,
            )
        except InvalidOverrideValue as e:
            sink.error("OVERRIDE_INVALID", str(e))
            self.log("---- PLAN BLOCKED ----")
            return

        self._last_value = value
        self._last_units = units

        self.add_result("INFO", f"Plan ready: {len(units)} manifest unit(s).")
        for u in units[:20]:
            self.add_result("INFO", f"{u.unit_id}  ->  {u.candidate.path}")
        if len(units) > 20:
            self.add_result("INFO", f"... +{len(units) - 20} more")

        self.log(f"Planned {len(units)} unit(s) for version code {value}.")
        self.log("---- PLAN DONE ----")

    # -------------------------
    # Apply
    # -------------------------
    def on_apply_clicked(self):
        if not self._last_units:
            self.log("No plan found. Auto-running Plan...")
            self.on_plan_clicked()

        if not self._last_units or self._last_value is None:
            QMessageBox.information(
                self,
                "Nothing to Apply",
                "Plan did not produce any manifest units. Check Results for skipped projects or invalid input.",
            )
            return

        self.progress.setValue(0)
        self.btn_cancel.setEnabled(True)
        self.btn_plan.setEnabled(False)
        self.btn_apply.setEnabled(False)
        self.btn_export.setEnabled(False)

        self.log("---- APPLY START ----")
        self.add_result("INFO", f"Overriding version code to {self._last_value} in {len(self._last_units)} unit(s)...")

        self._worker_thread = QThread()
        self._worker = OverrideWorker(self._last_units, self._last_value)
        self._worker.moveToThread(self._worker_thread)

        self._worker_thread.started.connect(self._worker.run)
        self._worker.progress.connect(self._on_progress)
        self._worker.finished.connect(self._on_finished)

        self._worker.finished.connect(self._worker_thread.quit)
        self._worker.finished.connect(self._worker.deleteLater)
        self._worker_thread.finished.connect(self._worker_thread.deleteLater)

        self._worker_thread.start()

    def _on_progress(self, current: int, total: int, message: str):
        self.progress.setValue(int((current / max(total, 1)) * 100))
        self.log(message)

    def _on_finished(self, summary, outcomes, diagnostics):
        self.btn_cancel.setEnabled(False)
        self.btn_plan.setEnabled(True)
        self.btn_apply.setEnabled(True)
        self.btn_export.setEnabled(True)

        self._last_summary = summary
        self._last_outcomes = outcomes or []
        self._last_diagnostics = diagnostics or []

        def _pri(d):
            return {"ERROR": 0, "WARNING": 1, "INFO": 2}.get(d.level, 3)

        for d in sorted(self._last_diagnostics, key=_pri):
            self.add_diagnostic(d)

        self.add_result(
            "INFO",
            f"Override done: patched={summary.patched}, unchanged={summary.unchanged}, "
            f"missing={summary.missing}, failed={summary.failed}",
        )
        if summary.failed == 0:
            self.progress.setValue(100)

        self.log("---- APPLY DONE ----")

    def on_cancel_clicked(self):
        if self._worker:
            self._worker.cancel()
            self.log("Cancel requested...")
            self.add_result("WARNING", "Cancel requested...")

    def on_export_record_clicked(self):
        if self._last_summary is None:
            QMessageBox.information(self, "Nothing to Export", "Run Apply first so there is a run to record.")
            return

        description = self.description_edit.text().strip()
        default = str(Path(description).with_name("version_code_override.json")) if description else ""
        path, _ = QFileDialog.getSaveFileName(self, "Save Run Record", default, "JSON (*.json)")
        if not path:
            return

        record = build_run_record(
            tool_name=APP_NAME,
            tool_version=APP_VERSION,
            override_value=self._last_value,
            summary=self._last_summary,
            outcomes=self._last_outcomes,
            diagnostics=self._last_diagnostics,
            description_path=description or None,
            hash_algo=HASH_ALGO_DEFAULT,
        )
        try:
            written = write_run_record(record, path)
        except OSError as e:
            self.add_result("ERROR", f"EXPORT_FAILED: {e}")
            QMessageBox.critical(self, "Export Failed", f"Export failed:\n{e}")
            return

        self.add_result("INFO", f"Record written: {written}")
        self.log(f"Record exported: {written}")
