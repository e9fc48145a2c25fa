from __future__ import annotations

import threading
from typing import Callable, Protocol

from . import journal
from .errors import StackError, UpgradeError
from .health import check_status, wait_until_ready
from .models import UpgradeReport
from .preflight import PreflightGate
from .recycler import ServiceControl, StackRecycler
from .runonce import OneTimeMigrationUnit, apply_all, influx_import, influx_units, unregistered_artifacts
from .settings import Settings, settings as default_settings
from .steps import MigrationStep, StepContext, Weather, default_steps, run_pipeline
from .stores import ConfigStore, MarkerStore
from .timezone import TimezoneSetter, normalized_timezone

# Their images change between releases; a plain reconcile would keep the old containers.
ALWAYS_RECYCLE = frozenset({"pypowerwall", "telegraf", "weather411"})


class ConfigSync(Protocol):
    def sync(self) -> None: ...


class Upgrader:
    """Runs the whole upgrade. Every phase is safe to repeat, so a failed run is resumed by running again."""

    def __init__(
        self,
        store: ConfigStore,
        markers: MarkerStore,
        control: ServiceControl,
        confirm: Callable[[str], bool],
        tz_setter: TimezoneSetter,
        config_sync: ConfigSync | None = None,
        weather: Weather | None = None,
        settings: Settings = default_settings,
        geteuid: Callable[[], int] | None = None,
        probe: Callable[[str, int, float], tuple[bool, str]] | None = None,
        cancel: threading.Event | None = None,
        steps: list[MigrationStep] | None = None,
        units: list[OneTimeMigrationUnit] | None = None,
    ):
        self.store = store
        self.markers = markers
        self.control = control
        self.confirm = confirm
        self.tz_setter = tz_setter
        self.config_sync = config_sync
        self.weather = weather
        self.settings = settings
        self.gate = PreflightGate(store, geteuid=geteuid)
        self.probe = probe or check_status
        self.cancel = cancel or threading.Event()
        self.steps = steps if steps is not None else default_steps()
        self.units = units
        self.report: UpgradeReport | None = None

    def run(self) -> UpgradeReport:
        # Nothing, not even the journal, is touched before the gate passes.
        pre = self.gate.check()
        self.report = report = UpgradeReport(
            installed_version=pre.installed,
            target_version=pre.target,
            warnings=list(pre.warnings),
        )

        journal.init_db()
        for w in pre.warnings:
            journal.log_event("WARN", w, step="preflight")
        journal.log_event("INFO", f"Upgrade from {pre.installed} to {pre.target}", step="preflight")

        if not self.confirm("Upgrade - Proceed?"):
            journal.log_event("INFO", "Cancel", step="preflight")
            report.status = "cancelled"
            return report

        run = journal.start_run(pre.installed, pre.target)
        try:
            self._upgrade(run.id, report)
        except UpgradeError as e:
            report.status = "failed"
            report.error = str(e)
            journal.log_event("ERROR", str(e), run_id=run.id)
            journal.finish_run(run.id, "failed")
            raise
        except KeyboardInterrupt:
            report.status = "failed"
            report.error = "interrupted"
            journal.log_event("ERROR", "Interrupted by operator", run_id=run.id)
            journal.finish_run(run.id, "failed")
            raise
        except Exception as e:
            report.status = "failed"
            report.error = f"{type(e).__name__}: {e}"
            journal.log_event("ERROR", report.error, run_id=run.id)
            journal.finish_run(run.id, "failed")
            raise

        report.status = "completed"
        journal.finish_run(run.id, "completed")
        return report

    def _upgrade(self, run_id: int, report: UpgradeReport) -> None:
        s = self.settings
        ctx = StepContext(store=self.store, confirm=self.confirm, weather=self.weather, run_id=run_id)
        recycler = StackRecycler(self.control, run_id=run_id)

        with normalized_timezone(self.store, self.tz_setter, s.default_tz):
            if self.config_sync is not None:
                journal.log_event("INFO", "Pulling configuration changes...", step="sync", run_id=run_id)
                self.config_sync.sync()
            run_pipeline(self.steps, ctx, report.config)

        recycler.reconcile()
        report.reconciles = recycler.reconciles

        journal.log_event("INFO", f"Waiting for {s.health_url} ...", step="health", run_id=run_id)
        report.waited_s = wait_until_ready(
            s.health_url,
            s.health_status,
            poll_interval_s=s.poll_interval_s,
            connect_timeout_s=s.connect_timeout_s,
            max_wait_s=s.max_wait_s or None,
            cancel=self.cancel,
            probe=self.probe,
        )
        journal.log_event("INFO", "up!", step="health", run_id=run_id)

        journal.log_event("INFO", "Add downsample continuous queries to InfluxDB...", step="influxdb", run_id=run_id)
        try:
            influx_import(self.control, s.influx_container, f"{s.influx_data_path}/influxdb.sql")()
        except RuntimeError as e:
            raise StackError(f"Importing influxdb.sql failed: {e}") from e

        units = self.units
        if units is None:
            units = influx_units(self.control, s.influx_container, s.influx_data_path)
            report.run_once.unregistered = unregistered_artifacts(self.store)
            for fname in report.run_once.unregistered:
                msg = f"{fname} is not a registered one-time migration and was not applied."
                report.warnings.append(msg)
                journal.log_event("WARN", msg, step="run-once", run_id=run_id)
        apply_all(units, self.markers, run_id=run_id, report=report.run_once)

        report.recycled = recycler.recycle(ALWAYS_RECYCLE | ctx.recycle)

        journal.log_event("INFO", "Restarting stack...", step="reconcile", run_id=run_id)
        recycler.reconcile()
        report.reconciles = recycler.reconciles
