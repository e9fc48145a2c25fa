import pytest
from docker.errors import NotFound

from conftest import FakeControl
from dsu.docker_ops import DockerServiceControl
from dsu.errors import StackError
from dsu.recycler import StackRecycler


def test_recycle_stops_then_removes():
    control = FakeControl(running={"telegraf"})
    removed = StackRecycler(control).recycle(["telegraf"])
    assert removed == ["telegraf"]
    assert control.calls == [("stop", "telegraf"), ("remove", "telegraf")]


def test_recycle_tolerates_missing_services():
    control = FakeControl(running={"grafana"})
    removed = StackRecycler(control).recycle({"weather411", "grafana", "telegraf"})
    assert removed == ["grafana"]
    assert ("remove", "weather411") in control.calls


def test_recycle_twice_is_harmless():
    control = FakeControl(running={"grafana"})
    r = StackRecycler(control)
    assert r.recycle(["grafana"]) == ["grafana"]
    assert r.recycle(["grafana"]) == []


def test_reconcile_counts():
    control = FakeControl()
    r = StackRecycler(control)
    r.reconcile()
    r.reconcile()
    assert r.reconciles == 2
    assert control.calls == [("reconcile",), ("reconcile",)]


class _Container:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def stop(self):
        self.log.append(("stop", self.name))

    def remove(self, force=False):
        self.log.append(("remove", self.name, force))

    def exec_run(self, cmd, tty=False):
        self.log.append(("exec", self.name, cmd))

        class _Res:
            exit_code = 0
            output = b"ok"

        return _Res()


class _Containers:
    def __init__(self, names, log):
        self.names = set(names)
        self.log = log

    def get(self, name):
        if name not in self.names:
            raise NotFound(f"No such container: {name}")
        return _Container(name, self.log)


class _Client:
    def __init__(self, names):
        self.log = []
        self.containers = _Containers(names, self.log)


def _docker_control(tmp_path, names=(), compose_command="true"):
    control = DockerServiceControl(tmp_path, compose_command=compose_command)
    control._docker = _Client(names)
    return control


def test_docker_control_missing_container_is_not_an_error(tmp_path):
    control = _docker_control(tmp_path)
    assert control.stop("weather411") is False
    assert control.remove("weather411") is False


def test_docker_control_removes_with_force(tmp_path):
    control = _docker_control(tmp_path, names={"grafana"})
    assert control.stop("grafana") is True
    assert control.remove("grafana") is True
    assert control.client.log == [("stop", "grafana"), ("remove", "grafana", True)]


def test_docker_control_exec(tmp_path):
    control = _docker_control(tmp_path, names={"influxdb"})
    assert control.exec("influxdb", ["sh", "-c", "influx -version"]) == (0, "ok")


def test_docker_control_exec_in_missing_container_fails(tmp_path):
    control = _docker_control(tmp_path)
    with pytest.raises(StackError):
        control.exec("influxdb", ["true"])


def test_reconcile_failure_is_a_stack_error(tmp_path):
    control = _docker_control(tmp_path, compose_command="false")
    with pytest.raises(StackError):
        control.reconcile()


def test_reconcile_runs_compose_command(tmp_path):
    _docker_control(tmp_path, compose_command="true").reconcile()
