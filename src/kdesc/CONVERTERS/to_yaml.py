"""
Converters that write descriptors back out as Kubernetes manifests.
"""
from typing import Any, Dict, List
import yaml
from ..MODELS.manifest import Manifest
from ..MODELS.object_meta import ObjectMeta
from ..MODELS.service_descriptor import ServiceDescriptor, ServiceType, Protocol
from ..MODELS.workload_descriptor import WorkloadDescriptor, ContainerSpec
from ..MODELS.route_descriptor import RouteDescriptor


def _compact(mapping: Dict[str, Any]) -> Dict[str, Any]:
    """Drops unset and empty entries."""
    return {k: v for k, v in mapping.items() if v not in (None, {}, [])}


class ManifestSerializer:
    """
    Serializes a manifest into Kubernetes-shaped documents.

    Defaults (ClusterIP, TCP, the default namespace) are left out so the
    output stays close to hand-written manifests.
    """
    def to_documents(self, manifest: Manifest) -> List[Dict[str, Any]]:
        return [self.to_document(r) for r in manifest]

    def to_yaml(self, manifest: Manifest) -> str:
        """
        Renders the manifest as a multi-document YAML stream.
        """
        return yaml.safe_dump_all(self.to_documents(manifest), sort_keys=False, explicit_start=True)

    def to_document(self, resource) -> Dict[str, Any]:
        if isinstance(resource, ServiceDescriptor):
            spec = self._service_spec(resource)
        elif isinstance(resource, WorkloadDescriptor):
            spec = self._deployment_spec(resource)
        elif isinstance(resource, RouteDescriptor):
            spec = self._ingress_spec(resource)
        else:
            raise TypeError(f"Cannot serialize {type(resource).__name__}")
        return {
            'apiVersion': resource.api_version,
            'kind': resource.kind,
            'metadata': self._metadata(resource.metadata),
            'spec': spec,
        }

    def _metadata(self, meta: ObjectMeta) -> Dict[str, Any]:
        return _compact({
            'name': meta.name,
            'namespace': None if meta.namespace == "default" else meta.namespace,
            'labels': dict(meta.labels),
            'annotations': dict(meta.annotations),
        })

    def _service_spec(self, service: ServiceDescriptor) -> Dict[str, Any]:
        ports = [
            _compact({
                'name': p.name,
                'port': p.port,
                'targetPort': p.target_port,
                'protocol': None if p.protocol == Protocol.TCP else p.protocol.value,
            })
            for p in service.ports
        ]
        return _compact({
            'type': None if service.service_type == ServiceType.CLUSTER_IP else service.service_type.value,
            'ports': ports,
            'selector': dict(service.selector),
        })

    def _container(self, container: ContainerSpec) -> Dict[str, Any]:
        return _compact({
            'name': container.name,
            'image': container.image,
            'env': [_compact({'name': e.name, 'value': e.value, 'valueFrom': e.value_from}) for e in container.env],
            'ports': [
                _compact({
                    'containerPort': p.container_port,
                    'name': p.name,
                    'protocol': None if p.protocol == Protocol.TCP else p.protocol.value,
                })
                for p in container.ports
            ],
        })

    def _deployment_spec(self, workload: WorkloadDescriptor) -> Dict[str, Any]:
        strategy = workload.strategy
        return {
            'replicas': workload.replicas,
            'strategy': _compact({
                'type': strategy.type.value,
                'rollingUpdate': _compact({
                    'maxSurge': strategy.max_surge,
                    'maxUnavailable': strategy.max_unavailable,
                }),
            }),
            'selector': {'matchLabels': dict(workload.selector)},
            'template': {
                'metadata': {'labels': dict(workload.template.labels)},
                'spec': {'containers': [self._container(c) for c in workload.template.containers]},
            },
        }

    def _ingress_spec(self, route: RouteDescriptor) -> Dict[str, Any]:
        rules = []
        for rule in route.rules:
            paths = []
            for p in rule.paths:
                port = ({'name': p.backend_service_port_name} if p.backend_service_port_name is not None
                        else {'number': p.backend_service_port_number})
                paths.append({
                    'path': p.path,
                    'pathType': p.path_type.value,
                    'backend': {'service': {'name': p.backend_service_name, 'port': port}},
                })
            rules.append(_compact({'host': rule.host, 'http': {'paths': paths}}))
        return _compact({
            'ingressClassName': route.ingress_class_name,
            'rules': rules,
            'tls': [_compact({'hosts': list(t.hosts), 'secretName': t.secret_name}) for t in route.tls],
        })
