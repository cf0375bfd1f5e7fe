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
Detection of stored registry credentials before pushing an image.
Uses the docker CLI first and falls back to reading its config.json.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..RUNNERS.command_runner import CommandRunner

logger = logging.getLogger(__name__)


class AuthStrategy(ABC):
    """One way of finding evidence that the registry is logged in."""

    name = "strategy"

    @abstractmethod
    def is_authenticated(self, registry: str) -> bool:
        """Returns True if this strategy finds credentials for the registry."""


class LoginQueryStrategy(AuthStrategy):
    """
    Asks the docker CLI directly. Works when credentials are stored in
    config.json without a helper.
    """

    name = "login-query"

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_authenticated(self, registry: str) -> bool:
        return self.runner.succeeds(["docker", "login", registry, "--get-login"])


class CredentialFileStrategy(AuthStrategy):
    """
    Inspects docker's config.json.

    A configured credential helper is trusted blindly: 'docker login' stores
    through it and the file holds no per-registry secret to look at.
    """

    name = "credential-file"

    HELPER_KEYS = ("credsStore", "credHelpers")

    def __init__(self, config_dir: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_dir: Docker config directory. Defaults to $DOCKER_CONFIG or ~/.docker
            environ: Environment used to resolve the default directory.
        """
        env = os.environ if environ is None else environ
        if config_dir is None:
            config_dir = env.get("DOCKER_CONFIG") or str(Path(env.get("HOME") or Path.home()) / ".docker")
        self.config_file = Path(config_dir) / "config.json"

    @staticmethod
    def _host_of(entry: str) -> str:
        """Strips scheme and path so 'https://ghcr.io/v1/' matches 'ghcr.io'."""
        if "://" in entry:
            entry = entry.split("://", 1)[1]
        return entry.split("/", 1)[0]

    def _check_document(self, data: Dict[str, Any], registry: str) -> bool:
        if any(data.get(key) for key in self.HELPER_KEYS):
            logger.debug("Credential helper configured in %s", self.config_file)
            return True
        auths = data.get("auths") or {}
        return any(self._host_of(entry) == registry for entry in auths)

    def is_authenticated(self, registry: str) -> bool:
        if not self.config_file.is_file():
            return False
        try:
            content = self.config_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("Cannot read %s: %s", self.config_file, e)
            return False

        try:
            data = json.loads(content)
        except ValueError:
            data = None
        if isinstance(data, dict):
            return self._check_document(data, registry)

        # Not valid JSON: fall back to plain text matching
        if any(f'"{key}"' in content for key in self.HELPER_KEYS):
            return True
        return f'"{registry}"' in content


class RegistryAuthChecker:
    """
    Runs the credential strategies in order; the first hit wins.
    """

    def __init__(self, strategies: List[AuthStrategy]):
        self.strategies = strategies

    @classmethod
    def default(cls, runner: CommandRunner,
                environ: Optional[Mapping[str, str]] = None) -> "RegistryAuthChecker":
        """Login query first, then config.json heuristics."""
        return cls([LoginQueryStrategy(runner), CredentialFileStrategy(environ=environ)])

    def check(self, registry: str) -> bool:
        """
        Reports whether credentials for the registry appear to be present.
        Never raises; a strategy that errors counts as no evidence.

        Args:
            registry: Registry host, e.g. 'ghcr.io'

        Returns:
            True if any strategy found credentials.
        """
        for strategy in self.strategies:
            try:
                found = strategy.is_authenticated(registry)
            except Exception as e:
                logger.debug("Auth strategy %s failed: %s", strategy.name, e)
                found = False
            logger.debug("Auth strategy %s for %s: %s", strategy.name, registry, found)
            if found:
                return True
        return False
