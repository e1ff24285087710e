"""
Models for a complete manifest: the ordered set of descriptors of one document stream.
"""
from typing import Dict, Iterator, List, Optional, Type, Union
from pydantic import BaseModel
from .object_meta import Descriptor
from .service_descriptor import ServiceDescriptor
from .workload_descriptor import WorkloadDescriptor
from .route_descriptor import RouteDescriptor

AnyDescriptor = Union[ServiceDescriptor, WorkloadDescriptor, RouteDescriptor]

# (apiVersion, kind) -> model
RECOGNIZED_KINDS: Dict[tuple, Type[Descriptor]] = {
    (model.API_VERSION, model.KIND): model
    for model in (ServiceDescriptor, WorkloadDescriptor, RouteDescriptor)
}


class Manifest(BaseModel):
    """
    Parsed manifest. Resources keep their document order.
    """
    resources: List[AnyDescriptor] = []
    source: Optional[str] = None

    def __iter__(self) -> Iterator[AnyDescriptor]:
        return iter(self.resources)

    def __len__(self) -> int:
        return len(self.resources)

    @property
    def services(self) -> List[ServiceDescriptor]:
        return [r for r in self.resources if isinstance(r, ServiceDescriptor)]

    @property
    def workloads(self) -> List[WorkloadDescriptor]:
        return [r for r in self.resources if isinstance(r, WorkloadDescriptor)]

    @property
    def routes(self) -> List[RouteDescriptor]:
        return [r for r in self.resources if isinstance(r, RouteDescriptor)]

    def get(self, kind: str, name: str, namespace: Optional[str] = None) -> Optional[AnyDescriptor]:
        """
        Finds the first resource of the given kind and name.

        :param kind: Descriptor kind, e.g. ``Service``.
        :param name: Resource name.
        :param namespace: Restrict the lookup to a namespace.
        :return: The descriptor, or None.
        """
        for resource in self.resources:
            if resource.kind != kind or resource.name != name:
                continue
            if namespace is None or resource.namespace == namespace:
                return resource
        return None

    def keys(self) -> List[str]:
        return [r.key for r in self.resources]
