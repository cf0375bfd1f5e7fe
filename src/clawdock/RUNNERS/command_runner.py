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
Blocking execution of external commands such as docker and docker compose.
"""
import logging
import shutil
import subprocess
from typing import Dict, List, Optional

from ..exceptions import ExternalCommandError

logger = logging.getLogger(__name__)


class CommandRunner:
    """
    Runs external commands to completion in the foreground.

    Output is inherited from the current terminal so interactive commands
    (the onboarding wizard) work unchanged.
    """
    def __init__(self, env: Optional[Dict[str, str]] = None):
        """
        Initializes the runner.

        Args:
            env (Optional[Dict[str, str]]): Environment for every command. None inherits ours.
        """
        self.env = env

    def which(self, program: str) -> Optional[str]:
        """
        Locates a program on PATH.

        Returns:
            Optional[str]: Absolute path, or None if the program is missing.
        """
        return shutil.which(program)

    def run(self, command: List[str], cwd: Optional[str] = None) -> None:
        """
        Runs a command and waits for it.

        Args:
            command (List[str]): Command and arguments to execute.
            cwd (Optional[str]): Directory to run the command in.

        Raises:
            ExternalCommandError: If the command exits non-zero.
        """
        logger.debug("Running: %s", " ".join(command))
        result = subprocess.run(
            command,
            env=self.env,
            cwd=cwd,
            # Avoid shell=True for security reasons (CWE-78)
            shell=False,
        )
        if result.returncode != 0:
            raise ExternalCommandError(command, result.returncode)

    def succeeds(self, command: List[str]) -> bool:
        """
        Runs a probe command with its output discarded.

        Returns:
            bool: True if the command exited zero. A missing executable counts as failure.
        """
        logger.debug("Probing: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                env=self.env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                shell=False,
            )
        except OSError as e:
            logger.debug("Probe could not start: %s", e)
            return False
        return result.returncode == 0
