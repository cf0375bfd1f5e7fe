"""
Builders for the docker-compose.extra.yml overlay that adds mounts to the stack.
"""
import os
import tempfile
from typing import List, Optional, Sequence

import yaml

from ..MODELS.overlay_document import OverlayDocument, ServiceVolumes

# Services of the base compose file that receive the mounts.
SERVICE_NAMES = ("openclaw-gateway", "openclaw-cli")

CONTAINER_HOME = "/home/node"
CONTAINER_CONFIG_DIR = "/home/node/.openclaw"
CONTAINER_WORKSPACE_DIR = "/home/node/.openclaw/workspace"


class OverlayDocumentSynthesizer:
    """
    Turns the home volume and extra mounts into a compose overlay document.
    """
    def __init__(self, config_dir: str, workspace_dir: str,
                 service_names: Sequence[str] = SERVICE_NAMES):
        """
        Initializes the synthesizer.

        :param config_dir: Host directory mounted as the OpenClaw config dir.
        :param workspace_dir: Host directory mounted as the agent workspace.
        :param service_names: Services that receive the volumes, in output order.
        """
        self.config_dir = config_dir
        self.workspace_dir = workspace_dir
        self.service_names = list(service_names)

    @staticmethod
    def is_named_volume(home_volume: str) -> bool:
        """
        A value without a path separator names a compose-managed volume;
        anything else is a host path to bind.
        """
        return bool(home_volume) and "/" not in home_volume

    def _service_volumes(self, home_volume: str, mounts: Sequence[str]) -> List[str]:
        volumes = []
        if home_volume:
            # The home volume hides the config/workspace binds, so remount them on top.
            volumes.append(f"{home_volume}:{CONTAINER_HOME}")
            volumes.append(f"{self.config_dir}:{CONTAINER_CONFIG_DIR}")
            volumes.append(f"{self.workspace_dir}:{CONTAINER_WORKSPACE_DIR}")
        volumes.extend(mounts)
        return volumes

    def synthesize(self, home_volume: Optional[str],
                   mounts: Sequence[str]) -> Optional[OverlayDocument]:
        """
        Builds the overlay document.

        :param home_volume: Named volume or host path for /home/node, may be empty.
        :param mounts: Extra mount specs, copied verbatim in order.
        :return: The document, or None when there is nothing to mount.
        """
        home_volume = home_volume or ""
        if not home_volume and not mounts:
            return None

        services = {
            name: ServiceVolumes(volumes=self._service_volumes(home_volume, mounts))
            for name in self.service_names
        }
        volumes = {}
        if self.is_named_volume(home_volume):
            volumes[home_volume] = None

        return OverlayDocument(services=services, volumes=volumes)

    @staticmethod
    def render(document: OverlayDocument) -> str:
        """
        Serializes the document to compose YAML.
        """
        return yaml.safe_dump(document.to_compose(), sort_keys=False, default_flow_style=False)

    def write(self, document: OverlayDocument, path: str) -> str:
        """
        Writes the document to disk, replacing any previous overlay.

        The YAML goes to a temporary file that is renamed over the target,
        so an interrupted run never leaves a truncated overlay.

        :param document: The overlay to write.
        :param path: Destination file.
        :return: The path written.
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".compose.", suffix=".yml", dir=directory or ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.render(document))
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return path
