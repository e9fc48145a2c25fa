from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable

from .errors import ConfigSyncError, HelperError


def run(cmd: Iterable[str], cwd: str | Path, *, check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run a command in the stack directory, output goes straight to the console."""
    return subprocess.run(list(cmd), cwd=str(cwd), check=check, text=True)


class HelperScript:
    """A shell helper shipped with the stack (`tz.sh`, `weather.sh`)."""

    def __init__(self, stack_dir: str | Path, name: str):
        self.stack_dir = Path(stack_dir)
        self.name = name

    def available(self) -> bool:
        return (self.stack_dir / self.name).is_file()

    def __call__(self, *args: str) -> None:
        run(["bash", f"./{self.name}", *args], self.stack_dir)


class TimezoneHelper:
    def __init__(self, stack_dir: str | Path):
        self.script = HelperScript(stack_dir, "tz.sh")

    def available(self) -> bool:
        return self.script.available()

    def set(self, tz: str) -> None:
        try:
            self.script(tz)
        except (subprocess.CalledProcessError, OSError) as e:
            raise HelperError(f"tz.sh {tz} failed: {e}") from e


class WeatherSetup:
    def __init__(self, stack_dir: str | Path):
        self.script = HelperScript(stack_dir, "weather.sh")

    def available(self) -> bool:
        return self.script.available()

    def setup(self) -> None:
        self.script("setup")


class GitConfigSync:
    """Pulls new templates and definitions. Local edits are stashed first."""

    def __init__(self, stack_dir: str | Path):
        self.stack_dir = Path(stack_dir)

    def sync(self) -> None:
        try:
            run(["git", "stash"], self.stack_dir)
            run(["git", "pull", "--rebase"], self.stack_dir)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ConfigSyncError(f"Config sync failed: {e}") from e
