"""
Dependency resolution for descriptors to determine apply and delete order.
"""
from typing import Dict, List
from ..MODELS.manifest import Manifest
from ..errors import CircularDependencyError
from ..VALIDATORS.reference_checks import selected_workloads


class DependencyResolver:
    """
    Orders resources so that everything a resource references is applied before it.

    A route depends on its backend services and a service on the workloads it selects.
    """
    def dependencies(self, manifest: Manifest) -> Dict[str, List[str]]:
        """
        Builds the dependency graph of a manifest.

        References to resources outside the manifest are ignored.

        :param manifest: The parsed manifest.
        :return: Qualified key -> qualified keys it depends on.
        """
        graph: Dict[str, List[str]] = {r.qualified_key: [] for r in manifest}

        for service in manifest.services:
            graph[service.qualified_key] = [w.qualified_key for w in selected_workloads(service, manifest)]

        for route in manifest.routes:
            deps = []
            for path in route.backends():
                service = manifest.get("Service", path.backend_service_name, route.namespace)
                if service is not None and service.qualified_key not in deps:
                    deps.append(service.qualified_key)
            graph[route.qualified_key] = deps

        return graph

    def resolve_order(self, manifest: Manifest) -> List[str]:
        """
        Determines the apply order using topological sort. Document order breaks ties.

        :param manifest: The parsed manifest.
        :return: Qualified keys in the order they should be applied.
        :raises CircularDependencyError: If a circular dependency is detected.
        """
        dependencies = self.dependencies(manifest)

        ordered = []
        visited = set()
        processing = set()

        def visit(key):
            if key in processing:
                raise CircularDependencyError(f"Circular dependency detected involving {key}")
            if key not in visited:
                processing.add(key)
                for dep in dependencies.get(key, []):
                    visit(dep)
                processing.remove(key)
                visited.add(key)
                ordered.append(key)

        for key in dependencies:
            visit(key)

        return ordered

    def resolve_delete_order(self, manifest: Manifest) -> List[str]:
        """
        Delete order: dependents go first.
        """
        return list(reversed(self.resolve_order(manifest)))
