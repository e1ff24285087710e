"""
Models for Service descriptors: a stable endpoint selecting pods by label.
"""
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union
from pydantic import BaseModel, Field, StrictInt, field_validator
from .object_meta import Descriptor


class Protocol(str, Enum):
    """
    Transport protocols accepted on service and container ports.
    """
    TCP = "TCP"
    UDP = "UDP"
    SCTP = "SCTP"


class ServiceType(str, Enum):
    """
    How the service endpoint is exposed.
    """
    CLUSTER_IP = "ClusterIP"
    NODE_PORT = "NodePort"
    LOAD_BALANCER = "LoadBalancer"


class ServicePort(BaseModel):
    """
    A port exposed by the service and the pod port it forwards to.
    """
    name: Optional[str] = None
    port: StrictInt = Field(ge=1, le=65535)
    target_port: Optional[Union[int, str]] = None
    protocol: Protocol = Protocol.TCP

    @field_validator("target_port")
    @classmethod
    def _check_target_port(cls, value):
        if isinstance(value, int) and not 1 <= value <= 65535:
            raise ValueError("target port must be between 1 and 65535")
        if isinstance(value, str) and not value:
            raise ValueError("target port name must not be empty")
        return value

    @property
    def effective_target_port(self) -> Union[int, str]:
        """The target port, defaulting to the service port when unset."""
        return self.target_port if self.target_port is not None else self.port


class ServiceDescriptor(Descriptor):
    """
    Equivalent of a v1 Service.
    """
    KIND: ClassVar[str] = "Service"
    API_VERSION: ClassVar[str] = "v1"

    service_type: ServiceType = ServiceType.CLUSTER_IP
    ports: List[ServicePort] = Field(min_length=1)
    selector: Dict[str, str] = {}

    @property
    def port_names(self) -> List[str]:
        return [p.name for p in self.ports if p.name]

    def find_port(self, ref: Union[int, str]) -> Optional[ServicePort]:
        """
        Looks up a port by name (str) or by port number (int).

        :param ref: Port name or number.
        :return: The matching port, or None.
        """
        for port in self.ports:
            if isinstance(ref, int) and port.port == ref:
                return port
            if isinstance(ref, str) and port.name == ref:
                return port
        return None
