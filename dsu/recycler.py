from __future__ import annotations

from typing import Iterable, Protocol

from . import journal


class ServiceControl(Protocol):
    def reconcile(self) -> None: ...

    def stop(self, name: str) -> bool: ...

    def remove(self, name: str) -> bool: ...

    def exec(self, name: str, command: list[str]) -> tuple[int, str]: ...


class StackRecycler:
    """Brings the running services in line with their declarations."""

    def __init__(self, control: ServiceControl, run_id: int | None = None):
        self.control = control
        self.run_id = run_id
        self.reconciles = 0

    def reconcile(self) -> None:
        journal.log_event("INFO", "Updating stack...", step="reconcile", run_id=self.run_id)
        self.control.reconcile()
        self.reconciles += 1

    def recycle(self, names: Iterable[str]) -> list[str]:
        """Stop and remove each container so the next reconcile recreates it.

        A container that is already gone counts as done. Returns the names actually removed.
        """
        removed: list[str] = []
        for name in sorted(set(names)):
            journal.log_event("INFO", f"Deleting old {name}...", step="recycle", run_id=self.run_id)
            self.control.stop(name)
            if self.control.remove(name):
                removed.append(name)
            else:
                journal.log_event("INFO", f"{name} was not running", step="recycle", run_id=self.run_id)
        return removed
