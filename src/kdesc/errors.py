"""
Exception hierarchy shared by the parsers, validators and managers.
"""
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .MODELS.validation_report import Issue, ValidationReport


class KdescError(Exception):
    """Base class for every error raised by kdesc."""


class InterpolationError(KdescError, KeyError):
    """
    Raised when a manifest references variables that have no value and no default.
    """
    def __init__(self, missing: List[str]):
        self.missing = sorted(set(missing))
        super().__init__(f"Variables not found in context: {', '.join(self.missing)}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ManifestParseError(KdescError):
    """
    Raised when one or more documents of a manifest cannot be turned into descriptors.
    """
    def __init__(self, issues: List["Issue"], source: Optional[str] = None):
        self.issues = issues
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"{len(issues)} problem(s) found while parsing manifest{where}")


class ManifestValidationError(KdescError):
    """Raised when a manifest is applied while its validation report has errors."""
    def __init__(self, report: "ValidationReport"):
        self.report = report
        super().__init__(f"Manifest has {len(report.errors)} validation error(s)")


class CircularDependencyError(KdescError):
    """Raised when resources reference each other in a loop."""


class ImageReferenceError(KdescError, ValueError):
    """Raised for container image references that cannot be parsed."""


class StateStoreError(KdescError):
    """Raised when the desired state file cannot be read or written."""
