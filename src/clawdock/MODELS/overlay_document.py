"""
Models for the compose overlay that adds volume mounts to the stack.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ServiceVolumes(BaseModel):
    """
    The volume list contributed to a single compose service.
    """
    volumes: List[str] = []


class OverlayDocument(BaseModel):
    """
    A compose overlay merged on top of the base docker-compose.yml.
    Equivalent to the parsed docker-compose.extra.yml file.
    """
    services: Dict[str, ServiceVolumes]
    volumes: Dict[str, Optional[Dict[str, Any]]] = {}

    def is_symmetric(self) -> bool:
        """
        True when every service carries the same mounts in the same order.
        """
        lists = [svc.volumes for svc in self.services.values()]
        return all(v == lists[0] for v in lists[1:])

    def to_compose(self) -> Dict[str, Any]:
        """
        Plain dict in compose layout, ready for YAML serialization.
        """
        data: Dict[str, Any] = {
            "services": {
                name: {"volumes": list(svc.volumes)}
                for name, svc in self.services.items()
            }
        }
        if self.volumes:
            data["volumes"] = dict(self.volumes)
        return data
