"""
Static validation of a parsed manifest.
"""
import re
import logging
from typing import Optional
from ..MODELS.manifest import Manifest
from ..MODELS.settings import Settings
from ..MODELS.service_descriptor import ServiceDescriptor
from ..MODELS.workload_descriptor import WorkloadDescriptor
from ..MODELS.route_descriptor import RouteDescriptor
from ..MODELS.validation_report import ValidationReport
from ..errors import KdescError
from .schema_checks import check_service, check_workload, check_route, check_placeholders
from .reference_checks import check_references

logger = logging.getLogger(__name__)


class ManifestValidator:
    """
    Runs per-resource and cross-resource checks over a manifest.
    """
    def __init__(self, settings: Optional[Settings] = None):
        """
        :param settings: Tool settings; supplies the placeholder patterns.
        :raises KdescError: If a placeholder pattern is not a valid regular expression.
        """
        self.settings = settings or Settings()
        try:
            self.placeholder_patterns = [re.compile(p) for p in self.settings.placeholder_patterns]
        except re.error as e:
            raise KdescError(f"Invalid placeholder pattern: {e}") from e

    def validate(self, manifest: Manifest) -> ValidationReport:
        """
        Validates the manifest.

        :param manifest: Parsed manifest.
        :return: Report with every issue found.
        """
        report = ValidationReport(source=manifest.source)

        for resource in manifest:
            if isinstance(resource, ServiceDescriptor):
                check_service(resource, report)
            elif isinstance(resource, WorkloadDescriptor):
                check_workload(resource, report)
            elif isinstance(resource, RouteDescriptor):
                check_route(resource, report)
            check_placeholders(resource, self.placeholder_patterns, report)

        check_references(manifest, report)

        logger.info("Validated %d resource(s): %d error(s), %d warning(s)",
                    len(manifest), len(report.errors), len(report.warnings))
        return report

    def passes(self, report: ValidationReport) -> bool:
        """
        Whether a report is acceptable under the configured strictness.
        """
        return report.ok_strict if self.settings.strict else report.ok
