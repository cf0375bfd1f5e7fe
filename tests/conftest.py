import os
import pytest

from clawdock.exceptions import ExternalCommandError


class FakeRunner:
    """
    Records docker commands instead of running them.
    """
    def __init__(self, available=("docker",), compose_ok=True, failing=None):
        self.available = set(available)
        self.compose_ok = compose_ok
        self.failing = failing or {}
        self.commands = []
        self.probes = []

    def which(self, program):
        return f"/usr/bin/{program}" if program in self.available else None

    def succeeds(self, command):
        self.probes.append(command)
        if command[:3] == ["docker", "compose", "version"]:
            return self.compose_ok
        return False

    def run(self, command, cwd=None):
        self.commands.append(command)
        line = " ".join(command)
        for prefix, code in self.failing.items():
            if line.startswith(prefix):
                raise ExternalCommandError(command, code)

    def steps(self):
        """Short names for the recorded commands: build, push, pull, onboard, up."""
        names = []
        for command in self.commands:
            if command[1] != "compose":
                names.append(command[1])
            elif "onboard" in command:
                names.append("onboard")
            elif "up" in command:
                names.append("up")
            else:
                names.append("compose")
        return names


class StaticAuthChecker:
    def __init__(self, result=True):
        self.result = result
        self.checked = []

    def check(self, registry):
        self.checked.append(registry)
        return self.result


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def operator_env(tmp_path, monkeypatch):
    """A fresh environment with HOME inside tmp_path and no OPENCLAW_* overrides."""
    for key in list(os.environ):
        if key.startswith("OPENCLAW_") or key == "DOCKER_CONFIG":
            monkeypatch.delenv(key)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    root = tmp_path / "deploy"
    root.mkdir()
    return root
