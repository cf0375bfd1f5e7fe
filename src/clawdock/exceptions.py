"""
Errors raised while preparing or launching a deployment.
"""
from typing import List, Optional


class ClawdockError(Exception):
    """
    Base class for every fatal condition the CLI reports to the operator.
    """
    exit_code = 1

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class UsageError(ClawdockError):
    """Conflicting or unknown command line flags."""
    exit_code = 2


class ConfigurationError(ClawdockError):
    """A setting cannot be stored in the .env file."""


class DependencyError(ClawdockError):
    """A required external tool is not installed."""


class AuthError(ClawdockError):
    """No credentials were found for the image registry."""


class ExternalCommandError(ClawdockError):
    """
    An invoked docker command exited non-zero.

    The command's own return code becomes the process exit code.
    """

    def __init__(self, command: List[str], returncode: int):
        super().__init__(f"Command failed with exit code {returncode}: {' '.join(command)}")
        self.command = command
        self.returncode = returncode

    @property
    def exit_code(self) -> int:
        return self.returncode
