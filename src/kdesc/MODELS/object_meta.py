"""
Metadata shared by every descriptor kind.
"""
from typing import ClassVar, Dict
from pydantic import BaseModel


class ObjectMeta(BaseModel):
    """
    Identity and free-form metadata of a descriptor.
    """
    name: str
    namespace: str = "default"
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}


class Descriptor(BaseModel):
    """
    Base for the recognized descriptor kinds.

    Subclasses set KIND and API_VERSION; both are written back verbatim
    when a descriptor is serialized.
    """
    KIND: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = ""

    metadata: ObjectMeta

    @property
    def kind(self) -> str:
        return self.KIND

    @property
    def api_version(self) -> str:
        return self.API_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def key(self) -> str:
        """Short reference used in messages, e.g. ``Service/geoip``."""
        return f"{self.KIND}/{self.metadata.name}"

    @property
    def qualified_key(self) -> str:
        """Namespace-qualified identity, e.g. ``Service/default/geoip``."""
        return f"{self.KIND}/{self.metadata.namespace}/{self.metadata.name}"
