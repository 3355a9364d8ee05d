"""
ProgressReporter adapters that render the orchestrator's step events.

The interactive reporter draws a step progress bar and prints summaries; the
basic reporter prints a single 'success' or 'failed' line for automation.
"""

import sys
from typing import TextIO

from tqdm import tqdm

from ..application.domain import (
    InstallReport,
    ProgressReporter,
    RunOptions,
    ServiceStatus,
    StepEvent,
    StepStatus,
)

_RELEASES_URL = "https://github.com/open-telemetry/opentelemetry-collector-releases"

_MARKERS = {
    StepStatus.SUCCESS: "✓",
    StepStatus.WARNING: "!",
    StepStatus.ERROR: "✗",
}


class InteractiveReporter(ProgressReporter):
    """Renders steps as a tqdm progress bar with status lines above it."""

    def __init__(self, stream: TextIO = sys.stdout):
        self.stream = stream
        self.progress_bar = None

    def _write(self, text: str = ""):
        tqdm.write(text, file=self.stream)

    def _close(self):
        if self.progress_bar is not None:
            self.progress_bar.close()
            self.progress_bar = None

    def started(self, options: RunOptions, total_steps: int):
        self._write("[OTEL] Initializing OpenTelemetry Installation Protocol...")
        self._write(f"[OTEL] Repository: {_RELEASES_URL}")
        self._write(f"[OTEL] Version: v{options.requested_version}")
        self._write(f"[OTEL] Mode: {options.mode.value}")
        self._write(f"[OTEL] Replace Config: {str(options.replace_config).lower()}")
        self._write()
        self.progress_bar = tqdm(
            total=total_steps,
            unit="step",
            file=self.stream,
            colour="green",
            bar_format="[OTEL] {desc} |{bar:20}| {percentage:3.0f}%",
        )

    def step(self, event: StepEvent):
        prefix = f"Step {event.index}/{event.total}:"
        if event.status is StepStatus.RUNNING:
            if self.progress_bar is not None:
                self.progress_bar.set_description_str(f"{prefix} {event.message}...")
            return

        self._write(f"[OTEL] {prefix} {_MARKERS[event.status]} {event.message}")
        if event.status is StepStatus.SUCCESS and self.progress_bar is not None:
            self.progress_bar.update(1)

    def completed(self, report: InstallReport):
        self._close()
        paths = report.paths
        service = paths.service_name
        running = report.service_status is ServiceStatus.RUNNING

        self._write()
        self._write("INSTALLATION COMPLETE")
        self._write("OpenTelemetry Collector Contrib has been successfully installed!")
        self._write(f"  Service: systemctl start {service}")
        self._write(f"  Config:  {paths.config_file}")
        if report.config_backup is not None:
            self._write(f"  Previous config backed up to: {report.config_backup}")
        if report.service_status is ServiceStatus.ABSENT:
            self._write(
                f"  No {paths.service_unit} unit is registered; "
                f"archive installs only place the binary at {paths.binary_path}."
            )

        self._write()
        self._write("Next steps:")
        if running:
            self._write(f"  1. Check status: systemctl status {service} (already running)")
            self._write(f"  2. View logs: journalctl -u {service} -f")
            self._write(f"  3. Edit configuration: {paths.config_file}")
            self._write(f"  4. Restart after config changes: systemctl restart {service}")
        else:
            self._write(f"  1. Start the service: systemctl start {service}")
            self._write(f"  2. Check status: systemctl status {service}")
            self._write(f"  3. View logs: journalctl -u {service} -f")
            self._write(f"  4. Edit configuration: {paths.config_file}")
        self._write()
        self._write(
            f"Note: Downloaded file {report.artifact_path.name} "
            f"has been kept for your reference."
        )

    def failed(self, event: StepEvent):
        self._close()
        self._write()
        self._write("INSTALLATION FAILED")
        self._write(f"  Step {event.index}/{event.total}: {event.step.value}")
        self._write(f"  Error: {event.message}")
        if event.detail:
            self._write()
            self._write("Context information:")
            for key, value in event.detail.items():
                label = key.replace("_", " ").capitalize()
                self._write(f"  {label}: {value}")


class BasicReporter(ProgressReporter):
    """Prints only the final outcome."""

    def __init__(self, stream: TextIO = sys.stdout):
        self.stream = stream

    def started(self, options: RunOptions, total_steps: int):
        pass

    def step(self, event: StepEvent):
        pass

    def completed(self, report: InstallReport):
        print("success", file=self.stream)

    def failed(self, event: StepEvent):
        print("failed", file=self.stream)
