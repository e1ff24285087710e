"""
Models for Ingress-equivalent route descriptors.
"""
from enum import Enum
from typing import ClassVar, List, Optional, Union
from pydantic import BaseModel, Field, StrictInt, model_validator
from .object_meta import Descriptor

INGRESS_CLASS_ANNOTATION = "kubernetes.io/ingress.class"


class PathType(str, Enum):
    """
    How a request path is matched against a rule path.
    """
    PREFIX = "Prefix"
    EXACT = "Exact"
    IMPLEMENTATION_SPECIFIC = "ImplementationSpecific"


class RoutePath(BaseModel):
    """
    A path of a rule and the service port it forwards to.
    """
    path: str = "/"
    path_type: PathType = PathType.PREFIX
    backend_service_name: str = Field(min_length=1)
    backend_service_port_name: Optional[str] = None
    backend_service_port_number: Optional[StrictInt] = Field(default=None, ge=1, le=65535)

    @model_validator(mode="after")
    def _one_port_reference(self):
        has_name = self.backend_service_port_name is not None
        has_number = self.backend_service_port_number is not None
        if has_name == has_number:
            raise ValueError("backend must reference the service port by exactly one of name or number")
        return self

    @property
    def backend_port(self) -> Union[int, str]:
        if self.backend_service_port_name is not None:
            return self.backend_service_port_name
        return self.backend_service_port_number


class RouteRule(BaseModel):
    """
    Host rule; a missing host matches every host.
    """
    host: Optional[str] = None
    paths: List[RoutePath] = Field(min_length=1)


class RouteTLS(BaseModel):
    hosts: List[str] = []
    secret_name: Optional[str] = None


class RouteDescriptor(Descriptor):
    """
    Equivalent of a networking.k8s.io/v1 Ingress.

    Annotations live in the metadata and are never interpreted, apart from
    reading the legacy ingress class annotation as a fallback class name.
    """
    KIND: ClassVar[str] = "Ingress"
    API_VERSION: ClassVar[str] = "networking.k8s.io/v1"

    ingress_class_name: Optional[str] = None
    rules: List[RouteRule] = []
    tls: List[RouteTLS] = []

    @property
    def annotations(self):
        return self.metadata.annotations

    @property
    def ingress_class(self) -> Optional[str]:
        return self.ingress_class_name or self.metadata.annotations.get(INGRESS_CLASS_ANNOTATION)

    @property
    def hosts(self) -> List[str]:
        return [r.host for r in self.rules if r.host]

    def backends(self) -> List[RoutePath]:
        return [p for rule in self.rules for p in rule.paths]
