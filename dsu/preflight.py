from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable

from . import TARGET_VERSION
from .errors import NotUpgradeable, PrivilegeError
from .stores import ConfigStore

CREDENTIALS_FILE = "pypowerwall.env"
VERSION_FILE = "VERSION"


@dataclass(frozen=True)
class PreflightResult:
    installed: str
    target: str
    warnings: list[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return self.installed == self.target


def read_installed_version(store: ConfigStore) -> str:
    if not store.exists(VERSION_FILE):
        return "Unknown"
    return store.read(VERSION_FILE).strip() or "Unknown"


class PreflightGate:
    """Refuses to start an upgrade that cannot succeed. Never writes anything."""

    def __init__(
        self,
        store: ConfigStore,
        target: str = TARGET_VERSION,
        geteuid: Callable[[], int] | None = None,
    ):
        self.store = store
        self.target = target
        self.geteuid = geteuid or os.geteuid

    def check(self) -> PreflightResult:
        # Root would leave root-owned files in a stack operated by a normal user.
        if self.geteuid() == 0:
            raise PrivilegeError("Running the upgrade as root will cause permission issues.")

        if not self.store.exists(CREDENTIALS_FILE):
            raise NotUpgradeable(f"Missing {CREDENTIALS_FILE}.")

        installed = read_installed_version(self.store)
        warnings: list[str] = []
        if installed == self.target:
            warnings.append(f"You already have the latest version (v{self.target}).")
        return PreflightResult(installed=installed, target=self.target, warnings=warnings)
