"""
Models for Deployment-equivalent workloads: replica count, update strategy
and the pod template with its containers.
"""
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union
from pydantic import BaseModel, Field, StrictInt, model_validator
from .object_meta import Descriptor
from .service_descriptor import Protocol


class UpdateStrategyType(str, Enum):
    """
    How running replicas are replaced when the template changes.
    """
    RECREATE = "Recreate"
    ROLLING_UPDATE = "RollingUpdate"


class EnvVar(BaseModel):
    """
    An environment variable passed opaquely into a container.

    ``value_from`` is kept as an uninterpreted mapping (secret or config
    references are resolved by the cluster, not here).
    """
    name: str = Field(min_length=1)
    value: Optional[str] = None
    value_from: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _one_source(self):
        if self.value is not None and self.value_from is not None:
            raise ValueError(f"env {self.name}: value and valueFrom are mutually exclusive")
        return self


class ContainerPort(BaseModel):
    """
    A port a container listens on.
    """
    container_port: StrictInt = Field(ge=1, le=65535)
    name: Optional[str] = None
    protocol: Protocol = Protocol.TCP


class ContainerSpec(BaseModel):
    """
    A single container of the pod template.
    """
    name: str = Field(min_length=1)
    image: str = Field(min_length=1)
    env: List[EnvVar] = []
    ports: List[ContainerPort] = []

    def env_map(self) -> Dict[str, Optional[str]]:
        return {e.name: e.value for e in self.env}

    def find_port(self, ref: Union[int, str]) -> Optional[ContainerPort]:
        """
        Looks up a container port by name (str) or number (int).
        """
        for port in self.ports:
            if isinstance(ref, int) and port.container_port == ref:
                return port
            if isinstance(ref, str) and port.name == ref:
                return port
        return None


class UpdateStrategy(BaseModel):
    """
    Update strategy, with the optional rolling update parameters.
    """
    type: UpdateStrategyType = UpdateStrategyType.ROLLING_UPDATE
    max_surge: Optional[Union[int, str]] = None
    max_unavailable: Optional[Union[int, str]] = None

    @model_validator(mode="after")
    def _rolling_params_only_for_rolling(self):
        if self.type == UpdateStrategyType.RECREATE and (
            self.max_surge is not None or self.max_unavailable is not None
        ):
            raise ValueError("rollingUpdate parameters are not allowed with the Recreate strategy")
        return self


class PodTemplate(BaseModel):
    """
    Template the workload stamps replicas from.
    """
    labels: Dict[str, str] = {}
    containers: List[ContainerSpec] = Field(min_length=1)


class WorkloadDescriptor(Descriptor):
    """
    Equivalent of an apps/v1 Deployment.
    """
    KIND: ClassVar[str] = "Deployment"
    API_VERSION: ClassVar[str] = "apps/v1"

    replicas: StrictInt = Field(default=1, ge=0)
    strategy: UpdateStrategy = Field(default_factory=UpdateStrategy)
    selector: Dict[str, str] = {}
    template: PodTemplate

    @property
    def pod_labels(self) -> Dict[str, str]:
        return self.template.labels
