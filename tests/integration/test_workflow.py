"""
Integration tests for the deployment workflow with docker replaced by a recorder.
"""
import re
import yaml
import pytest

from conftest import FakeRunner, StaticAuthChecker
from clawdock.exceptions import AuthError, DependencyError, ExternalCommandError
from clawdock.MANAGERS.config_store import ConfigStore
from clawdock.MANAGERS.workflow import WorkflowOrchestrator
from clawdock.MODELS.deployment_config import DeploymentConfig, PERSISTED_KEYS, RunMode


def make_orchestrator(root, mode=RunMode.FULL, runner=None, auth_ok=True, environ=None):
    config = DeploymentConfig.from_environment(
        mode=mode, root_dir=str(root), environ=environ or {}, home=str(root / "home"))
    output = []
    orchestrator = WorkflowOrchestrator(
        config,
        runner=runner or FakeRunner(),
        auth_checker=StaticAuthChecker(auth_ok),
        echo=output.append,
    )
    return orchestrator, output


def env_values(path):
    values = {}
    for line in ConfigStore.read_lines(str(path)):
        key, _, value = line.partition("=")
        values[key] = value
    return values


def test_full_flow(tmp_path):
    """Test build, push, onboard and start run in order without a pull."""
    orchestrator, output = make_orchestrator(tmp_path)
    orchestrator.run()

    assert orchestrator.runner.steps() == ["build", "push", "onboard", "up"]
    assert orchestrator.auth_checker.checked == ["ghcr.io"]

    values = env_values(tmp_path / ".env")
    assert list(values) == PERSISTED_KEYS
    assert re.fullmatch(r"[0-9a-f]{64}", values["OPENCLAW_GATEWAY_TOKEN"])
    assert any("Gateway running" in line for line in output)


def test_build_command(tmp_path):
    orchestrator, _ = make_orchestrator(
        tmp_path, mode=RunMode.BUILD_ONLY, environ={"OPENCLAW_DOCKER_APT_PACKAGES": "ffmpeg git"})
    orchestrator.run()

    build, push = orchestrator.runner.commands
    assert build == [
        "docker", "build",
        "--build-arg", "OPENCLAW_DOCKER_APT_PACKAGES=ffmpeg git",
        "-t", "ghcr.io/neromorph/openclaw:main",
        "-f", str(tmp_path.resolve() / "Dockerfile"),
        str(tmp_path.resolve()),
    ]
    assert push == ["docker", "push", "ghcr.io/neromorph/openclaw:main"]


def test_build_only_stops_after_push(tmp_path):
    orchestrator, output = make_orchestrator(tmp_path, mode=RunMode.BUILD_ONLY)
    orchestrator.run()

    assert orchestrator.runner.steps() == ["build", "push"]
    assert any("Build and push complete: ghcr.io/neromorph/openclaw:main" in line for line in output)


def test_run_only_pulls_without_auth(tmp_path):
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY, auth_ok=False)
    orchestrator.run()

    assert orchestrator.runner.steps() == ["pull", "onboard", "up"]
    assert orchestrator.auth_checker.checked == []


def test_auth_failure_after_persisting(tmp_path):
    """Test that settings are saved even when the registry check fails."""
    orchestrator, _ = make_orchestrator(tmp_path, auth_ok=False)
    with pytest.raises(AuthError) as excinfo:
        orchestrator.run()

    assert "docker login ghcr.io" in excinfo.value.hint
    assert orchestrator.runner.commands == []
    assert (tmp_path / ".env").exists()


def test_missing_docker(tmp_path):
    runner = FakeRunner(available=())
    orchestrator, _ = make_orchestrator(tmp_path, runner=runner)
    with pytest.raises(DependencyError):
        orchestrator.run()
    assert not (tmp_path / ".env").exists()


def test_missing_compose(tmp_path):
    runner = FakeRunner(compose_ok=False)
    orchestrator, _ = make_orchestrator(tmp_path, runner=runner)
    with pytest.raises(DependencyError):
        orchestrator.run()
    assert not (tmp_path / ".env").exists()


def test_external_failure_stops_flow(tmp_path):
    runner = FakeRunner(failing={"docker push": 3})
    orchestrator, _ = make_orchestrator(tmp_path, runner=runner)
    with pytest.raises(ExternalCommandError) as excinfo:
        orchestrator.run()

    assert excinfo.value.exit_code == 3
    assert runner.steps() == ["build", "push"]


def test_no_overlay_without_mounts(tmp_path):
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY)
    orchestrator.run()

    assert not (tmp_path / "docker-compose.extra.yml").exists()
    onboard = orchestrator.runner.commands[1]
    assert onboard[:4] == ["docker", "compose", "-f", str(tmp_path.resolve() / "docker-compose.yml")]
    assert onboard[4:] == ["run", "--rm", "openclaw-cli", "dist/index.js", "onboard", "--no-install-daemon"]


def test_overlay_with_mounts(tmp_path):
    environ = {"OPENCLAW_EXTRA_MOUNTS": " /srv/a:/a , ,", "OPENCLAW_HOME_VOLUME": "clawhome"}
    orchestrator, output = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY, environ=environ)
    orchestrator.run()

    extra = tmp_path.resolve() / "docker-compose.extra.yml"
    data = yaml.safe_load(extra.read_text())
    assert data["services"]["openclaw-gateway"]["volumes"][0] == "clawhome:/home/node"
    assert data["services"]["openclaw-cli"]["volumes"][-1] == "/srv/a:/a"
    assert data["volumes"] == {"clawhome": None}

    up = orchestrator.runner.commands[-1]
    assert up[-3:] == ["up", "-d", "openclaw-gateway"]
    assert up.count("-f") == 2
    assert str(extra) in up
    assert any(f"-f {extra} logs -f openclaw-gateway" in line for line in output)


def test_rerun_keeps_foreign_lines(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("CUSTOM=keep\nOPENCLAW_GATEWAY_TOKEN=old\n")
    environ = {"OPENCLAW_GATEWAY_TOKEN": "fixed"}

    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY, environ=environ)
    orchestrator.run()
    first = env_file.read_bytes()
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY, environ=environ)
    orchestrator.run()

    assert env_file.read_bytes() == first
    lines = env_file.read_text().splitlines()
    assert lines[0] == "CUSTOM=keep"
    assert lines[1] == "OPENCLAW_GATEWAY_TOKEN=fixed"


def test_creates_host_directories(tmp_path):
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.BUILD_ONLY)
    orchestrator.run()
    assert (tmp_path / "home" / ".openclaw" / "workspace").is_dir()


def test_prepare_twice_lists_overlay_once(tmp_path):
    environ = {"OPENCLAW_EXTRA_MOUNTS": "/srv/a:/a"}
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY, environ=environ)
    orchestrator.prepare()
    files = orchestrator.prepare()

    assert files == [
        str(tmp_path.resolve() / "docker-compose.yml"),
        str(tmp_path.resolve() / "docker-compose.extra.yml"),
    ]
    assert orchestrator.compose_command("up").count("-f") == 2


def test_non_utf8_env_file_is_persisted(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_bytes(b"# caf\xe9 comment\nOPENCLAW_TAG=old\n")
    orchestrator, _ = make_orchestrator(tmp_path, mode=RunMode.RUN_ONLY)
    orchestrator.run()

    content = env_file.read_bytes()
    assert content.startswith(b"# caf\xe9 comment\nOPENCLAW_TAG=main\n")
    assert orchestrator.runner.steps() == ["pull", "onboard", "up"]
