"""
Cross-resource checks: names, backend references and label selection.
"""
from collections import Counter
from typing import List
from ..MODELS.manifest import Manifest
from ..MODELS.service_descriptor import ServiceDescriptor
from ..MODELS.workload_descriptor import WorkloadDescriptor
from ..MODELS.validation_report import ValidationReport
from ..UTILS.label_selector import matches

PORT_ENV_SUFFIX = "_PORT"


def selected_workloads(service: ServiceDescriptor, manifest: Manifest) -> List[WorkloadDescriptor]:
    """
    Workloads in the service's namespace whose pod labels the service selects.
    """
    return [
        w for w in manifest.workloads
        if w.namespace == service.namespace and matches(service.selector, w.pod_labels)
    ]


def check_unique_names(manifest: Manifest, report: ValidationReport) -> None:
    counts = Counter(r.qualified_key for r in manifest)
    for key, count in counts.items():
        if count > 1:
            kind, namespace, name = key.split("/", 2)
            report.error(f"{kind}/{name}", "metadata.name",
                         f"declared {count} times in namespace {namespace}")


def check_route_backends(manifest: Manifest, report: ValidationReport) -> None:
    """
    Every route backend must name an existing service and one of its ports.
    """
    for route in manifest.routes:
        for i, rule in enumerate(route.rules):
            for j, path in enumerate(rule.paths):
                where = f"rules[{i}].paths[{j}].backend"
                service = manifest.get("Service", path.backend_service_name, route.namespace)
                if service is None:
                    report.error(route.key, f"{where}.service.name",
                                 f"service {path.backend_service_name} does not exist")
                    continue
                if service.find_port(path.backend_port) is None:
                    known = ", ".join(service.port_names or [str(p.port) for p in service.ports])
                    report.error(route.key, f"{where}.service.port",
                                 f"service {service.name} has no port {path.backend_port} (ports: {known})")


def check_service_selection(manifest: Manifest, report: ValidationReport) -> None:
    """
    Services should select a workload, and their target ports should exist on it.
    """
    for service in manifest.services:
        if not service.selector:
            continue
        workloads = selected_workloads(service, manifest)
        if not workloads:
            labels = ", ".join(f"{k}={v}" for k, v in service.selector.items())
            report.warning(service.key, "selector", f"selector {labels} matches no workload in the manifest")
            continue

        for i, port in enumerate(service.ports):
            target = port.effective_target_port
            for workload in workloads:
                if not any(c.find_port(target) for c in workload.template.containers):
                    report.warning(service.key, f"ports[{i}].target_port",
                                   f"target port {target} is not declared by {workload.key}")


def check_port_env(manifest: Manifest, report: ValidationReport) -> None:
    """
    Numeric ``*_PORT`` environment values should match a declared container port.
    """
    for workload in manifest.workloads:
        for i, container in enumerate(workload.template.containers):
            declared = {p.container_port for p in container.ports}
            if not declared:
                continue
            for j, env in enumerate(container.env):
                if not env.name.endswith(PORT_ENV_SUFFIX) or not env.value or not env.value.isdigit():
                    continue
                if int(env.value) not in declared:
                    report.warning(workload.key, f"template.containers[{i}].env[{j}].value",
                                   f"{env.name}={env.value} does not match any container port "
                                   f"({', '.join(str(p) for p in sorted(declared))})")


def check_references(manifest: Manifest, report: ValidationReport) -> None:
    check_unique_names(manifest, report)
    check_route_backends(manifest, report)
    check_service_selection(manifest, report)
    check_port_env(manifest, report)
