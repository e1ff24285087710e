"""
Loading of substitution values for manifest templates.
"""
import os
import logging
from typing import Dict, Iterable, Optional
from dotenv import dotenv_values
from ..errors import KdescError

logger = logging.getLogger(__name__)


class ValuesParser:
    """
    Builds the interpolation context from .env style files and KEY=VALUE overrides.
    """
    @staticmethod
    def parse(values_path: str) -> Dict[str, str]:
        """
        Parses a dotenv file. Keys declared without a value are skipped.

        :param values_path: Path to the file.
        :return: Variables defined in the file.
        :raises KdescError: If the file does not exist or cannot be read.
        """
        if not os.path.exists(values_path):
            raise KdescError(f"Values file {values_path} not found")
        try:
            values = dotenv_values(values_path, encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise KdescError(f"Cannot read values file {values_path}: {e}") from e
        return {k: v for k, v in values.items() if v is not None}

    @staticmethod
    def parse_override(item: str) -> Dict[str, str]:
        """
        Parses a single ``KEY=VALUE`` override.
        """
        if '=' not in item:
            raise KdescError(f"Invalid value override {item!r}, expected KEY=VALUE")
        key, value = item.split('=', 1)
        key = key.strip()
        if not key:
            raise KdescError(f"Invalid value override {item!r}, empty key")
        return {key: value}

    @classmethod
    def build_context(cls,
                      values_files: Iterable[str] = (),
                      overrides: Iterable[str] = (),
                      base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Merges a base context, values files and overrides.

        Later files override earlier ones; overrides win over everything.

        :param values_files: dotenv files to load.
        :param overrides: ``KEY=VALUE`` strings.
        :param base: Starting context. Defaults to the process environment.
        :return: The merged context.
        """
        context = dict(os.environ) if base is None else dict(base)
        for path in values_files:
            file_values = cls.parse(path)
            logger.debug("Loaded %d value(s) from %s", len(file_values), path)
            context.update(file_values)
        for item in overrides:
            context.update(cls.parse_override(item))
        return context
