"""
Container image reference parsing, e.g. ``nginx``, ``user/app:v1`` or
``registry.example.com:5000/team/app@sha256:...``.
"""
import re
from dataclasses import dataclass
from typing import Optional
from ..errors import ImageReferenceError

_COMPONENT = re.compile(r'^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$')
_TAG = re.compile(r'^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$')
_DIGEST = re.compile(r'^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$')


@dataclass
class ImageReference:
    """
    Parsed image reference. Registry and tag defaults follow Docker Hub.
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
        Parses an image reference string.

        :param reference: The reference as written in a container spec.
        :return: The parsed reference.
        :raises ImageReferenceError: If the reference is malformed.
        """
        if not reference or reference != reference.strip():
            raise ImageReferenceError(f"Invalid image reference {reference!r}")

        remainder, digest = reference, None
        if "@" in remainder:
            remainder, digest = remainder.split("@", 1)
            if not _DIGEST.match(digest):
                raise ImageReferenceError(f"Invalid digest in image reference {reference!r}")

        tag = None
        name_start = remainder.rfind("/") + 1
        colon = remainder.find(":", name_start)
        if colon != -1:
            remainder, tag = remainder[:colon], remainder[colon + 1:]
            if not _TAG.match(tag):
                raise ImageReferenceError(f"Invalid tag in image reference {reference!r}")

        parts = remainder.split("/")
        first = parts[0]
        if len(parts) > 1 and ("." in first or ":" in first or first == "localhost"):
            registry, path = first, parts[1:]
        else:
            registry, path = cls.DEFAULT_REGISTRY, parts
            if len(path) == 1:
                path = ["library"] + path

        if not path or not all(_COMPONENT.match(p) for p in path):
            raise ImageReferenceError(f"Invalid repository in image reference {reference!r}")

        if tag is None and digest is None:
            tag = cls.DEFAULT_TAG
        return cls(registry=registry, repository="/".join(path), tag=tag, digest=digest)

    @property
    def full_name(self) -> str:
        name = f"{self.registry}/{self.repository}"
        if self.tag:
            name = f"{name}:{self.tag}"
        if self.digest:
            name = f"{name}@{self.digest}"
        return name

    @property
    def pinned(self) -> bool:
        """True when the image is addressed by digest."""
        return self.digest is not None

    def __str__(self) -> str:
        return self.full_name
