from __future__ import annotations

import shlex
import subprocess
from pathlib import Path

import docker
from docker.errors import DockerException, NotFound

from .errors import StackError
from .settings import settings


def _client() -> docker.DockerClient:
    return docker.from_env()


class DockerServiceControl:
    """Talks to the local docker daemon; reconcile goes through the stack's compose wrapper."""

    def __init__(self, stack_dir: str | Path, compose_command: str | None = None):
        self.stack_dir = Path(stack_dir)
        self.compose_command = shlex.split(compose_command or settings.compose_command)
        self._docker: docker.DockerClient | None = None

    @property
    def client(self) -> docker.DockerClient:
        if self._docker is None:
            try:
                c = _client()
                c.ping()
            except DockerException as e:
                raise StackError(f"Docker is not available: {e}") from e
            self._docker = c
        return self._docker

    def reconcile(self) -> None:
        try:
            subprocess.run(self.compose_command, cwd=str(self.stack_dir), check=True, text=True)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise StackError(f"'{' '.join(self.compose_command)}' failed: {e}") from e

    def stop(self, name: str) -> bool:
        """Returns False if there is no such container."""
        try:
            self.client.containers.get(name).stop()
        except NotFound:
            return False
        except DockerException as e:
            raise StackError(f"Could not stop {name}: {e}") from e
        return True

    def remove(self, name: str) -> bool:
        """Returns False if there is no such container."""
        try:
            self.client.containers.get(name).remove(force=True)
        except NotFound:
            return False
        except DockerException as e:
            raise StackError(f"Could not remove {name}: {e}") from e
        return True

    def exec(self, name: str, command: list[str]) -> tuple[int, str]:
        try:
            cont = self.client.containers.get(name)
            res = cont.exec_run(command, tty=True)
        except NotFound as e:
            raise StackError(f"Container {name} is not running.") from e
        except DockerException as e:
            raise StackError(f"exec in {name} failed: {e}") from e
        output = res.output.decode(errors="replace") if isinstance(res.output, bytes) else str(res.output or "")
        return int(res.exit_code or 0), output
