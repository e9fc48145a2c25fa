from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import TemplateMissing


class ConfigStore(ABC):
    """Text files of the stack, addressed by path relative to the stack directory."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def read(self, name: str) -> str:
        ...

    @abstractmethod
    def write(self, name: str, text: str) -> None:
        ...

    @abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        ...

    def copy(self, src: str, dst: str) -> None:
        self.write(dst, self.read(src))

    def instantiate(self, name: str, template: str | None = None) -> None:
        """Create `name` verbatim from its template (`<name>.sample` by default)."""
        template = template or f"{name}.sample"
        if not self.exists(template):
            raise TemplateMissing(f"Template '{template}' not found; cannot create '{name}'.")
        self.copy(template, name)


class FileConfigStore(ConfigStore):
    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def read(self, name: str) -> str:
        return self._path(name).read_text()

    def write(self, name: str, text: str) -> None:
        p = self._path(name)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text)

    def list(self, prefix: str = "") -> list[str]:
        base = self._path(prefix) if prefix else self.root
        if not base.is_dir():
            return []
        return sorted(str(p.relative_to(self.root)) for p in base.iterdir() if p.is_file())


class MemoryConfigStore(ConfigStore):
    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = dict(files or {})
        self.writes: list[str] = []

    def exists(self, name: str) -> bool:
        return name in self.files

    def read(self, name: str) -> str:
        try:
            return self.files[name]
        except KeyError:
            raise FileNotFoundError(name) from None

    def write(self, name: str, text: str) -> None:
        self.files[name] = text
        self.writes.append(name)

    def list(self, prefix: str = "") -> list[str]:
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        return sorted(n for n in self.files if n.startswith(prefix) and "/" not in n[len(prefix):])


class MarkerStore(ABC):
    """Durable done-flags for one-time migration units, keyed by unit name."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def mark(self, name: str) -> None:
        ...


class FileMarkerStore(MarkerStore):
    """One file per unit: `<directory>/<name><suffix>` containing `OK`.

    The default suffix matches the markers left next to the SQL files by earlier
    shell-based upgrades, so those units are not applied again.
    """

    def __init__(self, directory: str | os.PathLike[str], suffix: str = ".sql.done"):
        self.directory = Path(directory)
        self.suffix = suffix

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}{self.suffix}"

    def exists(self, name: str) -> bool:
        return self._path(name).exists()

    def mark(self, name: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(name).write_text("OK\n")


class MemoryMarkerStore(MarkerStore):
    def __init__(self, done: set[str] | None = None):
        self.done: set[str] = set(done or ())

    def exists(self, name: str) -> bool:
        return name in self.done

    def mark(self, name: str) -> None:
        self.done.add(name)
