"""
Models for validation results.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Issue(BaseModel):
    """
    A single finding about a manifest.

    ``resource`` is the short key of the offending descriptor (or the
    document position when no descriptor could be built) and ``path`` the
    dotted field path inside it.
    """
    severity: Severity
    resource: str
    path: str = ""
    message: str

    def __str__(self) -> str:
        where = f"{self.resource}.{self.path}" if self.path else self.resource
        return f"[{self.severity.value}] {where}: {self.message}"


class ValidationReport(BaseModel):
    """
    All issues found for a manifest.
    """
    issues: List[Issue] = []
    source: Optional[str] = None

    def add(self, severity: Severity, resource: str, path: str, message: str) -> None:
        self.issues.append(Issue(severity=severity, resource=resource, path=path, message=message))

    def error(self, resource: str, path: str, message: str) -> None:
        self.add(Severity.ERROR, resource, path, message)

    def warning(self, resource: str, path: str, message: str) -> None:
        self.add(Severity.WARNING, resource, path, message)

    def extend(self, issues: List[Issue]) -> None:
        self.issues.extend(issues)

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def ok_strict(self) -> bool:
        """True only when there are neither errors nor warnings."""
        return not self.issues
