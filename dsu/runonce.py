from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from . import journal
from .errors import MigrationUnitFailure
from .models import RunOnceReport
from .recycler import ServiceControl
from .stores import ConfigStore, MarkerStore

MIGRATIONS_DIR = "influxdb"
ARTIFACT_RE = re.compile(r"^run-once.*\.sql$")

# In the order they were released. Append new units at the end, never reorder.
REGISTERED_UNITS: tuple[str, ...] = (
    "run-once",
    "run-once-2",
    "run-once-3",
)


@dataclass(frozen=True)
class OneTimeMigrationUnit:
    name: str
    action: Callable[[], None]


def apply_all(
    units: list[OneTimeMigrationUnit],
    markers: MarkerStore,
    run_id: int | None = None,
    report: RunOnceReport | None = None,
) -> RunOnceReport:
    """Apply each unit that has no marker yet, marking it only once it succeeded.

    The first failure aborts the run; units before it stay marked.
    """
    report = report if report is not None else RunOnceReport()
    for unit in units:
        if markers.exists(unit.name):
            report.already_done.append(unit.name)
            continue
        journal.log_event("INFO", f"Executing single run query {unit.name}", step="run-once", run_id=run_id)
        try:
            unit.action()
        except MigrationUnitFailure:
            raise
        except Exception as e:
            raise MigrationUnitFailure(unit.name, f"{type(e).__name__}: {e}") from e
        markers.mark(unit.name)
        report.applied.append(unit.name)
    return report


def unregistered_artifacts(store: ConfigStore, registered: tuple[str, ...] = REGISTERED_UNITS) -> list[str]:
    """Migration files on disk that no registered unit will ever apply."""
    known = {f"{name}.sql" for name in registered}
    out: list[str] = []
    for path in store.list(MIGRATIONS_DIR):
        fname = path.rsplit("/", 1)[-1]
        if ARTIFACT_RE.match(fname) and fname not in known:
            out.append(fname)
    return out



def influx_import(control: ServiceControl, container: str, path: str) -> Callable[[], None]:
    """Action that imports a SQL file from inside the database container."""

    def action() -> None:
        code, output = control.exec(container, ["sh", "-c", f"influx -import -path={path}"])
        if code != 0:
            raise RuntimeError(f"influx exited with {code}: {output.strip()}")

    return action


def influx_units(
    control: ServiceControl,
    container: str,
    data_path: str,
    names: tuple[str, ...] = REGISTERED_UNITS,
) -> list[OneTimeMigrationUnit]:
    return [
        OneTimeMigrationUnit(name=n, action=influx_import(control, container, f"{data_path}/{n}.sql"))
        for n in names
    ]
