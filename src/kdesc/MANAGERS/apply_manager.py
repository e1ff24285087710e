# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Apply and delete of manifests against the recorded desired state.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from ..MODELS.manifest import Manifest
from ..MODELS.settings import Settings
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..VALIDATORS.manifest_validator import ManifestValidator
from ..UTILS.state_diff import diff_fields
from ..errors import ManifestValidationError
from .desired_state import DesiredStateStore

logger = logging.getLogger(__name__)


class ChangeAction(str, Enum):
    CREATED = "created"
    CONFIGURED = "configured"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    NOT_FOUND = "not found"


class ResourceChange(BaseModel):
    """
    What happened (or would happen) to one resource.
    """
    key: str
    action: ChangeAction
    changed_fields: List[str] = []


class ApplyResult(BaseModel):
    changes: List[ResourceChange] = []
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        return any(c.action not in (ChangeAction.UNCHANGED, ChangeAction.NOT_FOUND) for c in self.changes)

    def by_action(self, action: ChangeAction) -> List[str]:
        return [c.key for c in self.changes if c.action == action]


def to_record(resource) -> Dict[str, Any]:
    """
    The stored form of a descriptor.
    """
    return {
        'apiVersion': resource.api_version,
        'kind': resource.kind,
        'spec': resource.model_dump(mode="json"),
    }


class ApplyManager:
    """
    Validates manifests and records them in dependency order.

    Applying the same manifest twice leaves the state untouched the second
    time; every resource reports ``unchanged``.
    """
    def __init__(self, store: DesiredStateStore, settings: Optional[Settings] = None):
        """
        :param store: Where desired state is recorded.
        :param settings: Tool settings, used for validation strictness.
        """
        self.store = store
        self.settings = settings or Settings()
        self.validator = ManifestValidator(self.settings)
        self.resolver = DependencyResolver()

    def _check(self, manifest: Manifest) -> None:
        report = self.validator.validate(manifest)
        for issue in report.warnings:
            logger.warning("%s", issue)
        if not self.validator.passes(report):
            raise ManifestValidationError(report)

    def apply(self, manifest: Manifest, dry_run: bool = False) -> ApplyResult:
        """
        Records every resource of the manifest as desired state.

        :param manifest: The manifest to apply.
        :param dry_run: Compute the changes without recording them.
        :return: Per-resource outcome, in apply order.
        :raises ManifestValidationError: If the manifest does not validate.
        """
        self._check(manifest)
        resources = {r.qualified_key: r for r in manifest}
        result = ApplyResult(dry_run=dry_run)

        for key in self.resolver.resolve_order(manifest):
            record = to_record(resources[key])
            existing = self.store.get(key)
            if existing is None:
                change = ResourceChange(key=key, action=ChangeAction.CREATED)
            else:
                changed = diff_fields(existing, record)
                action = ChangeAction.CONFIGURED if changed else ChangeAction.UNCHANGED
                change = ResourceChange(key=key, action=action, changed_fields=changed)

            if change.action != ChangeAction.UNCHANGED and not dry_run:
                self.store.put(key, record)
            logger.info("%s %s", key, change.action.value)
            result.changes.append(change)

        if result.changed and not dry_run:
            self.store.save()
        return result

    def delete(self, manifest: Manifest, dry_run: bool = False) -> ApplyResult:
        """
        Removes the manifest's resources from the desired state, dependents first.

        :param manifest: The manifest whose resources should be removed.
        :param dry_run: Report without removing.
        :return: Per-resource outcome, in delete order.
        """
        result = ApplyResult(dry_run=dry_run)
        for key in self.resolver.resolve_delete_order(manifest):
            if key not in self.store:
                action = ChangeAction.NOT_FOUND
            else:
                action = ChangeAction.DELETED
                if not dry_run:
                    self.store.remove(key)
            logger.info("%s %s", key, action.value)
            result.changes.append(ResourceChange(key=key, action=action))

        if result.changed and not dry_run:
            self.store.save()
        return result
