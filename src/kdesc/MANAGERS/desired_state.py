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
Record of the last applied desired state, keyed by resource identity.
"""
import os
import logging
from typing import Any, Dict, List, Optional
import yaml
from ..errors import StateStoreError

logger = logging.getLogger(__name__)


class DesiredStateStore:
    """
    Holds the last applied record of every resource.

    Records are plain JSON-like mappings. When a path is given the store
    is persisted as YAML; without one it lives in memory only.
    """
    def __init__(self, path: Optional[str] = None):
        """
        :param path: State file location, or None for an in-memory store.
        """
        self.path = path
        self.records: Dict[str, Dict[str, Any]] = {}

    def load(self) -> "DesiredStateStore":
        """
        Reads the state file. A missing file means an empty state.

        :return: The store itself.
        :raises StateStoreError: If the file is not a valid state document.
        """
        if not self.path or not os.path.exists(self.path):
            return self

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StateStoreError(f"Cannot read state file {self.path}: {e}") from e

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise StateStoreError(f"State file {self.path} is not valid YAML: {e}") from e

        resources = data.get('resources', {}) if isinstance(data, dict) else None
        if not isinstance(resources, dict):
            raise StateStoreError(f"State file {self.path} has no resources mapping")

        for key, record in resources.items():
            if not _valid_key(key) or not isinstance(record, dict):
                raise StateStoreError(f"State file {self.path} has an invalid record {key!r}; "
                                      f"expected Kind/namespace/name mapped to a resource")

        self.records = resources
        logger.debug("Loaded %d record(s) from %s", len(self.records), self.path)
        return self

    def save(self) -> None:
        """
        Writes the state file, if the store has one.
        """
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                yaml.safe_dump({'resources': self.records}, f, sort_keys=True)
        except OSError as e:
            raise StateStoreError(f"Cannot write state file {self.path}: {e}") from e
        logger.debug("Saved %d record(s) to %s", len(self.records), self.path)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self.records.get(key)

    def put(self, key: str, record: Dict[str, Any]) -> None:
        self.records[key] = record

    def remove(self, key: str) -> bool:
        """
        Drops a record.

        :return: True if the record existed.
        """
        return self.records.pop(key, None) is not None

    def list(self) -> List[str]:
        return sorted(self.records)

    def __contains__(self, key: str) -> bool:
        return key in self.records

    def __len__(self) -> int:
        return len(self.records)


def _valid_key(key: Any) -> bool:
    """
    Checks that a record key has the ``Kind/namespace/name`` shape.
    """
    return isinstance(key, str) and len(key.split("/")) == 3 and all(key.split("/"))
