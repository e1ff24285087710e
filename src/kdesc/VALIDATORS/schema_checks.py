"""
Per-resource checks that go beyond field types and ranges.
"""
import re
import ipaddress
from collections import Counter
from typing import Iterable, List, Optional, Pattern
from ..MODELS.service_descriptor import ServiceDescriptor
from ..MODELS.workload_descriptor import WorkloadDescriptor
from ..MODELS.route_descriptor import RouteDescriptor, PathType
from ..MODELS.validation_report import ValidationReport
from ..UTILS.image_reference import ImageReference
from ..UTILS.label_selector import unsatisfied
from ..errors import ImageReferenceError

_DNS_LABEL = r'[a-z0-9]([-a-z0-9]*[a-z0-9])?'
_HOST = re.compile(rf'^(\*\.)?{_DNS_LABEL}(\.{_DNS_LABEL})*$')


def _duplicates(names: Iterable[Optional[str]]) -> List[str]:
    counts = Counter(n for n in names if n)
    return sorted(n for n, c in counts.items() if c > 1)


def check_service(service: ServiceDescriptor, report: ValidationReport) -> None:
    """
    Checks port naming rules of a service.
    """
    for name in _duplicates(p.name for p in service.ports):
        report.error(service.key, "ports", f"duplicate port name {name}")

    if len(service.ports) > 1:
        for i, port in enumerate(service.ports):
            if not port.name:
                report.error(service.key, f"ports[{i}].name", "ports must be named when a service exposes more than one")

    seen = set()
    for i, port in enumerate(service.ports):
        if (port.port, port.protocol) in seen:
            report.error(service.key, f"ports[{i}].port", f"port {port.port}/{port.protocol.value} is declared twice")
        seen.add((port.port, port.protocol))


def check_workload(workload: WorkloadDescriptor, report: ValidationReport) -> None:
    """
    Checks selector satisfiability, uniqueness within containers and image references.
    """
    if not workload.selector:
        report.error(workload.key, "selector", "selector must not be empty")
    else:
        missing = unsatisfied(workload.selector, workload.pod_labels)
        if missing:
            report.error(workload.key, "template.labels",
                         f"pod template labels do not satisfy the selector on {', '.join(missing)}")

    for name in _duplicates(c.name for c in workload.template.containers):
        report.error(workload.key, "template.containers", f"duplicate container name {name}")

    for i, container in enumerate(workload.template.containers):
        path = f"template.containers[{i}]"
        for name in _duplicates(e.name for e in container.env):
            report.error(workload.key, f"{path}.env", f"duplicate environment variable {name}")
        for name in _duplicates(p.name for p in container.ports):
            report.error(workload.key, f"{path}.ports", f"duplicate container port name {name}")
        try:
            ImageReference.parse(container.image)
        except ImageReferenceError as e:
            report.error(workload.key, f"{path}.image", str(e))


def check_route(route: RouteDescriptor, report: ValidationReport) -> None:
    """
    Checks hosts, paths and TLS coverage of a route.
    """
    for i, rule in enumerate(route.rules):
        if rule.host is not None:
            problem = host_problem(rule.host)
            if problem:
                report.error(route.key, f"rules[{i}].host", problem)
        for j, path in enumerate(rule.paths):
            if path.path_type != PathType.IMPLEMENTATION_SPECIFIC and not path.path.startswith("/"):
                report.error(route.key, f"rules[{i}].paths[{j}].path",
                             f"{path.path_type.value} paths must be absolute")

    served = {h.lower() for h in route.hosts}
    for i, tls in enumerate(route.tls):
        for host in tls.hosts:
            if host.lower() not in served:
                report.warning(route.key, f"tls[{i}].hosts", f"TLS host {host} is not served by any rule")


def host_problem(host: str) -> Optional[str]:
    """
    Returns why a rule host is unusable, or None when it is valid.

    Hosts are compared case-insensitively, as DNS names are.
    """
    try:
        ipaddress.ip_address(host)
        return f"host {host} must be a DNS name, not an IP address"
    except ValueError:
        pass
    if len(host) > 253 or not _HOST.match(host.lower()):
        return f"host {host} is not a valid DNS subdomain"
    return None


def check_placeholders(resource, patterns: List[Pattern], report: ValidationReport) -> None:
    """
    Warns about values that still look like template placeholders.
    """
    def scan(path: str, value: Optional[str]):
        if value and any(p.search(value) for p in patterns):
            report.warning(resource.key, path, f"value {value!r} looks like an unsubstituted placeholder")

    if isinstance(resource, WorkloadDescriptor):
        for i, container in enumerate(resource.template.containers):
            scan(f"template.containers[{i}].image", container.image)
            for j, env in enumerate(container.env):
                scan(f"template.containers[{i}].env[{j}].value", env.value)
    elif isinstance(resource, RouteDescriptor):
        for i, rule in enumerate(resource.rules):
            scan(f"rules[{i}].host", rule.host)
