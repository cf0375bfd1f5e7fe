"""
Command Line Interface for clawdock.
"""
import logging
import sys

import click

from ..exceptions import ClawdockError, UsageError
from ..MANAGERS.workflow import WorkflowOrchestrator
from ..MODELS.deployment_config import DeploymentConfig, RunMode
from ..REGISTRY.auth_checker import RegistryAuthChecker
from ..RUNNERS.command_runner import CommandRunner

EPILOG = """
\b
Without flags, runs the full flow: build, push, onboard, and start gateway.

\b
Examples:
  # Local: build and push to ghcr.io
  clawdock --build-only

\b
  # VPS: pull image, onboard, and start gateway
  clawdock --run-only

\b
  # Custom tag
  OPENCLAW_TAG=v2026.1.30 clawdock --build-only
"""


@click.command(epilog=EPILOG, context_settings={"help_option_names": ["--help", "-h"]})
@click.option('--build-only', '-b', is_flag=True,
              help='Build and push image only (for local dev machine)')
@click.option('--run-only', '-r', is_flag=True,
              help='Onboard and start gateway only (for cloud VPS)')
@click.option('--root-dir', envvar='OPENCLAW_ROOT_DIR', default=None,
              type=click.Path(file_okay=False),
              help='Directory with the Dockerfile, compose files and .env (default: current directory)')
@click.option('--verbose', '-v', is_flag=True, help='Log every docker command')
def cli(build_only, run_only, root_dir, verbose):
    """
    Build, push, onboard and start the OpenClaw gateway.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        mode = RunMode.from_flags(build_only, run_only)
    except UsageError as e:
        raise click.UsageError(str(e))

    try:
        config = DeploymentConfig.from_environment(mode=mode, root_dir=root_dir)
        runner = CommandRunner(env=config.compose_environment())
        orchestrator = WorkflowOrchestrator(
            config,
            runner=runner,
            auth_checker=RegistryAuthChecker.default(runner),
        )
        orchestrator.run()
    except ClawdockError as e:
        click.echo(f"Error: {e}", err=True)
        if e.hint:
            click.echo(e.hint, err=True)
        sys.exit(e.exit_code)
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == '__main__':
    main()
