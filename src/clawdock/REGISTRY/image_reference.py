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
Image reference parsing.
Splits references like 'ghcr.io/neromorph/openclaw:main' into registry,
repository and tag so the registry host can be checked for credentials.
"""

from typing import Optional
from dataclasses import dataclass


@dataclass
class ImageReference:
    """
    Parsed image reference.

    Examples:
        - ghcr.io/neromorph/openclaw:main -> registry ghcr.io, tag main
        - localhost:5000/openclaw -> registry localhost:5000, tag latest
        - neromorph/openclaw:v1 -> registry docker.io
        - openclaw@sha256:abc123 -> registry docker.io, digest only
    """

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    DEFAULT_REGISTRY = "docker.io"
    DEFAULT_TAG = "latest"

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Parse an image reference string.

        Args:
            reference: Image reference (e.g. 'ghcr.io/neromorph/openclaw:main')

        Returns:
            Parsed ImageReference object.
        """
        reference = (reference or "").strip()
        if not reference:
            raise ValueError("Empty image reference")

        digest = None
        if "@" in reference:
            reference, digest = reference.rsplit("@", 1)

        # A colon followed by a slash belongs to a registry port, not a tag
        tag = None
        name, sep, suffix = reference.rpartition(":")
        if sep and "/" not in suffix:
            reference, tag = name, suffix

        first, slash, rest = reference.partition("/")
        if slash and ("." in first or ":" in first or first == "localhost"):
            registry, repository = first, rest
        else:
            registry = cls.DEFAULT_REGISTRY
            repository = reference if slash else f"library/{reference}"

        if not tag and not digest:
            tag = cls.DEFAULT_TAG

        return cls(registry=registry, repository=repository, tag=tag, digest=digest)

    @property
    def full_name(self) -> str:
        """Get full image name with registry."""
        name = f"{self.registry}/{self.repository}"
        if self.digest:
            return f"{name}@{self.digest}"
        if self.tag:
            return f"{name}:{self.tag}"
        return name

    def __str__(self) -> str:
        return self.full_name
