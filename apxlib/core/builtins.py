"""Built-in command vocabulary for ApX.

The vocabulary lives in ``registry/builtins.yaml`` and is validated against
``registry/schema.json`` when first loaded.  Set ``APX_BUILTIN_REGISTRY`` to
the path of another YAML file to replace it (for example to track a newer
interpreter release without upgrading ``apxlib``).
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

import jsonschema
import yaml

logger = logging.getLogger(__name__)

REGISTRY_DIR = Path(__file__).resolve().parent / "registry"
DEFAULT_REGISTRY_PATH = REGISTRY_DIR / "builtins.yaml"
SCHEMA_PATH = REGISTRY_DIR / "schema.json"
REGISTRY_ENV_VAR = "APX_BUILTIN_REGISTRY"


class RegistryError(Exception):
    """Raised when the built-in registry cannot be loaded or is malformed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def registry_path() -> Path:
    """Return the registry file in effect, honouring ``APX_BUILTIN_REGISTRY``."""
    override = os.environ.get(REGISTRY_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_REGISTRY_PATH


def load_schema() -> dict:
    with open(SCHEMA_PATH) as f:
        return json.load(f)


def load_registry(path: Path | None = None) -> dict:
    """Load and validate a registry file.

    Args:
        path: YAML file to load. Defaults to :func:`registry_path`.

    Returns:
        The registry mapping as read from YAML.

    Raises:
        RegistryError: If the file is missing, is not valid YAML, or does not
            match the registry schema.
    """
    path = path or registry_path()
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise RegistryError(f"Registry file not found: {path}", path) from e
    except yaml.YAMLError as e:
        raise RegistryError(f"Invalid YAML in {path}: {e}", path) from e

    try:
        jsonschema.validate(instance=data, schema=load_schema())
    except jsonschema.ValidationError as e:
        where = " -> ".join(str(p) for p in e.path)
        message = f"Registry {path} does not match schema: {e.message}"
        if where:
            message += f" (at {where})"
        raise RegistryError(message, path) from e

    logger.debug("Loaded built-in registry %s (version %s)", path, data["version"])
    return data


@lru_cache(maxsize=None)
def _command_categories() -> dict[str, str]:
    registry = load_registry()
    table: dict[str, str] = {}
    for category, entry in registry["categories"].items():
        for name in entry["commands"]:
            # A name listed under several categories keeps its first one.
            table.setdefault(name, category)
    logger.debug("Built-in vocabulary has %d commands", len(table))
    return table


def builtin_commands() -> frozenset[str]:
    """Return the set of built-in command names."""
    return frozenset(_command_categories())


def is_builtin_command(name: str) -> bool:
    """Return True if *name* is a built-in command."""
    return name in _command_categories()


def builtin_category(name: str) -> str | None:
    """Return the registry category of a built-in command, or None."""
    return _command_categories().get(name)


def reload_builtins() -> None:
    """Forget the cached vocabulary so the next lookup reloads the registry."""
    _command_categories.cache_clear()
