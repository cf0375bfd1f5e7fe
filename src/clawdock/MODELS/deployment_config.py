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
Models for the resolved deployment configuration and run mode.
"""
import os
import secrets
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel

from ..exceptions import ConfigurationError, UsageError
from ..REGISTRY.image_reference import ImageReference


class RunMode(str, Enum):
    """
    Which phases of the workflow execute.
    """
    FULL = "full"
    BUILD_ONLY = "build-only"
    RUN_ONLY = "run-only"

    @classmethod
    def from_flags(cls, build_only: bool, run_only: bool) -> "RunMode":
        """
        Selects the mode from the two exclusivity flags.

        :raises UsageError: If both flags are set.
        """
        if build_only and run_only:
            raise UsageError("--build-only and --run-only are mutually exclusive")
        if build_only:
            return cls.BUILD_ONLY
        if run_only:
            return cls.RUN_ONLY
        return cls.FULL


# Order of keys in the persisted .env file.
PERSISTED_KEYS: List[str] = [
    "OPENCLAW_CONFIG_DIR",
    "OPENCLAW_WORKSPACE_DIR",
    "OPENCLAW_GATEWAY_PORT",
    "OPENCLAW_BRIDGE_PORT",
    "OPENCLAW_GATEWAY_BIND",
    "OPENCLAW_GATEWAY_TOKEN",
    "OPENCLAW_IMAGE",
    "OPENCLAW_EXTRA_MOUNTS",
    "OPENCLAW_HOME_VOLUME",
    "OPENCLAW_DOCKER_APT_PACKAGES",
    "OPENCLAW_REGISTRY_IMAGE",
    "OPENCLAW_TAG",
]


class DeploymentConfig(BaseModel):
    """
    Every setting of one invocation, resolved once from flags, environment
    and defaults and handed to each component.
    """
    mode: RunMode = RunMode.FULL
    root_dir: Path

    registry_image: str
    image_tag: str
    image: str

    extra_mounts: str = ""
    home_volume: str = ""

    gateway_port: str
    bridge_port: str
    gateway_bind: str
    gateway_token: str

    config_dir: str
    workspace_dir: str
    apt_packages: str = ""

    DEFAULT_REGISTRY: ClassVar[str] = "ghcr.io"
    DEFAULT_REGISTRY_IMAGE: ClassVar[str] = "neromorph/openclaw"
    DEFAULT_TAG: ClassVar[str] = "main"
    DEFAULT_GATEWAY_PORT: ClassVar[str] = "18789"
    DEFAULT_BRIDGE_PORT: ClassVar[str] = "18790"
    DEFAULT_GATEWAY_BIND: ClassVar[str] = "lan"

    COMPOSE_FILE: ClassVar[str] = "docker-compose.yml"
    EXTRA_COMPOSE_FILE: ClassVar[str] = "docker-compose.extra.yml"
    ENV_FILE: ClassVar[str] = ".env"
    DOCKERFILE: ClassVar[str] = "Dockerfile"

    @classmethod
    def from_environment(cls,
                         mode: RunMode = RunMode.FULL,
                         root_dir: Optional[str] = None,
                         environ: Optional[Mapping[str, str]] = None,
                         home: Optional[str] = None) -> "DeploymentConfig":
        """
        Builds the configuration from OPENCLAW_* variables.

        Unset and empty variables both fall back to their default. A gateway
        token is generated when none is supplied.

        :param mode: The selected run mode.
        :param root_dir: Directory holding the Dockerfile and compose files.
        :param environ: Variables to read, defaults to os.environ.
        :param home: Home directory used for the default config location.
        :raises ConfigurationError: If a value contains a line break.
        """
        env = dict(os.environ if environ is None else environ)
        home = home or env.get("HOME") or str(Path.home())

        def get(key: str, default: str = "") -> str:
            return env.get(key) or default

        registry_image = get("OPENCLAW_REGISTRY_IMAGE", cls.DEFAULT_REGISTRY_IMAGE)
        image_tag = get("OPENCLAW_TAG", cls.DEFAULT_TAG)
        image = get("OPENCLAW_IMAGE", f"{cls.DEFAULT_REGISTRY}/{registry_image}:{image_tag}")

        config = cls(
            mode=mode,
            root_dir=Path(root_dir or os.getcwd()).resolve(),
            registry_image=registry_image,
            image_tag=image_tag,
            image=image,
            extra_mounts=get("OPENCLAW_EXTRA_MOUNTS"),
            home_volume=get("OPENCLAW_HOME_VOLUME"),
            gateway_port=get("OPENCLAW_GATEWAY_PORT", cls.DEFAULT_GATEWAY_PORT),
            bridge_port=get("OPENCLAW_BRIDGE_PORT", cls.DEFAULT_BRIDGE_PORT),
            gateway_bind=get("OPENCLAW_GATEWAY_BIND", cls.DEFAULT_GATEWAY_BIND),
            gateway_token=get("OPENCLAW_GATEWAY_TOKEN") or secrets.token_hex(32),
            config_dir=get("OPENCLAW_CONFIG_DIR", os.path.join(home, ".openclaw")),
            workspace_dir=get("OPENCLAW_WORKSPACE_DIR", os.path.join(home, ".openclaw", "workspace")),
            apt_packages=get("OPENCLAW_DOCKER_APT_PACKAGES"),
        )

        # Each value must fit on a single .env line
        for key, value in config.persisted_values().items():
            if "\n" in value or "\r" in value:
                raise ConfigurationError(f"{key} must not contain a line break")
        return config

    @property
    def registry(self) -> str:
        """Registry host the image is pushed to and pulled from."""
        return ImageReference.parse(self.image).registry

    @property
    def compose_file(self) -> Path:
        return self.root_dir / self.COMPOSE_FILE

    @property
    def extra_compose_file(self) -> Path:
        return self.root_dir / self.EXTRA_COMPOSE_FILE

    @property
    def env_file(self) -> Path:
        return self.root_dir / self.ENV_FILE

    @property
    def dockerfile(self) -> Path:
        return self.root_dir / self.DOCKERFILE

    def persisted_values(self) -> Dict[str, str]:
        """
        Values written to the .env file, keyed in PERSISTED_KEYS order.
        """
        return {
            "OPENCLAW_CONFIG_DIR": self.config_dir,
            "OPENCLAW_WORKSPACE_DIR": self.workspace_dir,
            "OPENCLAW_GATEWAY_PORT": self.gateway_port,
            "OPENCLAW_BRIDGE_PORT": self.bridge_port,
            "OPENCLAW_GATEWAY_BIND": self.gateway_bind,
            "OPENCLAW_GATEWAY_TOKEN": self.gateway_token,
            "OPENCLAW_IMAGE": self.image,
            "OPENCLAW_EXTRA_MOUNTS": self.extra_mounts,
            "OPENCLAW_HOME_VOLUME": self.home_volume,
            "OPENCLAW_DOCKER_APT_PACKAGES": self.apt_packages,
            "OPENCLAW_REGISTRY_IMAGE": self.registry_image,
            "OPENCLAW_TAG": self.image_tag,
        }

    def compose_environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for docker subprocesses: the base environment overlaid
        with the persisted values so compose files can interpolate them.
        """
        env = dict(os.environ if base is None else base)
        env.update(self.persisted_values())
        return env
