"""
Tool configuration, read from a YAML file.
"""
import os
import logging
from typing import List, Optional
import yaml
from pydantic import BaseModel, ValidationError
from ..errors import KdescError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "kdesc.yml"

DEFAULT_PLACEHOLDER_PATTERNS = [
    r"\*\*.*\*\*",
    r"\bYour[A-Z][A-Za-z]*",
]


class Settings(BaseModel):
    """
    Behaviour switches for parsing, validation and state tracking.

    strict:               treat warnings as failures.
    ignore_unknown_kinds: skip documents of unrecognized kinds instead of failing.
    placeholder_patterns: regular expressions that mark template values
                          still waiting for operator substitution.
    state_file:           where applied desired state is recorded.
    """
    strict: bool = False
    ignore_unknown_kinds: bool = False
    placeholder_patterns: List[str] = list(DEFAULT_PLACEHOLDER_PATTERNS)
    state_file: str = os.path.join(".kdesc", "state.yaml")


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Loads settings from a YAML file.

    When no path is given, ``kdesc.yml`` in the working directory is used
    if it exists; otherwise defaults apply.

    :param path: Explicit configuration file.
    :return: The settings.
    :raises KdescError: If an explicit file is missing or the content is invalid.
    """
    if path is None:
        if not os.path.exists(DEFAULT_CONFIG_FILE):
            return Settings()
        path = DEFAULT_CONFIG_FILE
    elif not os.path.exists(path):
        raise KdescError(f"Configuration file {path} not found")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise KdescError(f"Cannot read configuration file {path}: {e}") from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise KdescError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise KdescError(f"Configuration file {path} must contain a mapping")

    try:
        settings = Settings(**data)
    except ValidationError as e:
        raise KdescError(f"Invalid configuration in {path}: {e}") from e
    logger.debug("Loaded settings from %s", path)
    return settings
