# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Sequencing of the build, push, pull, onboard and start phases.
"""
import logging
import os
from typing import Callable, List, Optional

import click

from ..BUILDERS.overlay_builder import OverlayDocumentSynthesizer
from ..exceptions import AuthError, DependencyError
from ..MODELS.deployment_config import PERSISTED_KEYS, DeploymentConfig, RunMode
from ..PARSERS.mount_parser import MountSpecParser
from ..REGISTRY.auth_checker import RegistryAuthChecker
from ..RUNNERS.command_runner import CommandRunner
from ..UTILS import hints
from .config_store import ConfigStore

logger = logging.getLogger(__name__)

GATEWAY_SERVICE = "openclaw-gateway"
CLI_SERVICE = "openclaw-cli"


class WorkflowOrchestrator:
    """
    Drives one deployment run for the selected mode.

    Dependency check, then preparation (directories, overlay, .env) which
    always happens, then the build phase unless run-only, the pull for
    run-only, onboarding and the detached gateway start. Any failure ends the
    run; nothing is retried.
    """
    def __init__(self,
                 config: DeploymentConfig,
                 runner: Optional[CommandRunner] = None,
                 auth_checker: Optional[RegistryAuthChecker] = None,
                 store: Optional[ConfigStore] = None,
                 echo: Callable[[str], None] = click.echo):
        """
        Initializes the orchestrator.

        :param config: The resolved deployment configuration.
        :param runner: Executes docker commands.
        :param auth_checker: Checks registry credentials before the build.
        :param store: Persists the configuration to the .env file.
        :param echo: Writes operator-facing output.
        """
        self.config = config
        self.runner = runner or CommandRunner(env=config.compose_environment())
        self.auth_checker = auth_checker or RegistryAuthChecker.default(self.runner)
        self.store = store or ConfigStore()
        self.echo = echo
        self.synthesizer = OverlayDocumentSynthesizer(config.config_dir, config.workspace_dir)
        self.compose_files: List[str] = [str(config.compose_file)]

    def run(self):
        """
        Runs every phase the mode calls for.
        """
        mode = self.config.mode
        logger.debug("Starting %s run in %s", mode.value, self.config.root_dir)

        self.validate_dependencies()
        self.prepare()

        if mode != RunMode.RUN_ONLY:
            self.build_phase()
            if mode == RunMode.BUILD_ONLY:
                self.echo(hints.BUILD_COMPLETE_TEMPLATE.render(image=self.config.image))
                return

        if mode == RunMode.RUN_ONLY:
            self.pull_phase()

        self.onboard_phase()
        self.start_phase()

    def validate_dependencies(self):
        """
        Ensures docker and the compose plugin are installed.

        :raises DependencyError: If either is missing.
        """
        if not self.runner.which("docker"):
            raise DependencyError("Missing dependency: docker")
        if not self.runner.succeeds(["docker", "compose", "version"]):
            raise DependencyError("Docker Compose not available (try: docker compose version)")

    def prepare(self) -> List[str]:
        """
        Creates the host directories, writes the overlay if one is needed
        and persists the configuration.

        :return: The compose files to pass to docker compose.
        """
        config = self.config
        os.makedirs(config.config_dir, exist_ok=True)
        os.makedirs(config.workspace_dir, exist_ok=True)

        mounts = MountSpecParser.parse(config.extra_mounts)
        compose_files = [str(config.compose_file)]
        document = self.synthesizer.synthesize(config.home_volume, mounts)
        if document is not None:
            self.synthesizer.write(document, str(config.extra_compose_file))
            compose_files.append(str(config.extra_compose_file))
            logger.debug("Wrote overlay %s", config.extra_compose_file)
        self.compose_files = compose_files

        self.store.upsert(str(config.env_file), PERSISTED_KEYS, config.persisted_values())
        return compose_files

    def compose_command(self, *args: str) -> List[str]:
        """
        Builds a docker compose command line over all compose files.
        """
        command = ["docker", "compose"]
        for path in self.compose_files:
            command += ["-f", path]
        return command + list(args)

    def build_phase(self):
        """
        Checks registry credentials, then builds and pushes the image.

        :raises AuthError: If no credentials are found for the registry.
        """
        config = self.config
        registry = config.registry

        self.echo("==> Checking registry authentication...")
        if not self.auth_checker.check(registry):
            raise AuthError(f"Not logged in to {registry}",
                            hint=hints.AUTH_HINT_TEMPLATE.render(registry=registry))

        self.echo(f"==> Building Docker image: {config.image}")
        self.runner.run([
            "docker", "build",
            "--build-arg", f"OPENCLAW_DOCKER_APT_PACKAGES={config.apt_packages}",
            "-t", config.image,
            "-f", str(config.dockerfile),
            str(config.root_dir),
        ])

        self.echo(f"==> Pushing Docker image: {config.image}")
        self.runner.run(["docker", "push", config.image])

    def pull_phase(self):
        """Pulls the pre-built image."""
        self.echo(f"==> Pulling Docker image: {self.config.image}")
        self.runner.run(["docker", "pull", self.config.image])

    def onboard_phase(self):
        """
        Runs the interactive onboarding wizard, then lists provider commands.
        """
        self.echo(hints.ONBOARD_TEMPLATE.render(
            gateway_bind=self.config.gateway_bind,
            token=self.config.gateway_token,
        ))
        self.runner.run(self.compose_command(
            "run", "--rm", CLI_SERVICE, "dist/index.js", "onboard", "--no-install-daemon"))
        self.echo(hints.PROVIDERS_TEMPLATE.render(compose=hints.compose_hint(self.compose_files)))

    def start_phase(self):
        """
        Starts the gateway detached and prints how to reach it.
        """
        self.echo("")
        self.echo("==> Starting gateway")
        self.runner.run(self.compose_command("up", "-d", GATEWAY_SERVICE))
        self.echo(hints.COMPLETE_TEMPLATE.render(
            config_dir=self.config.config_dir,
            workspace_dir=self.config.workspace_dir,
            token=self.config.gateway_token,
            compose=hints.compose_hint(self.compose_files),
        ))
