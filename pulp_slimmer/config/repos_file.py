"""
Declared Mirrors Loader — Load and validate the repos-to-mirror YAML file.

File format:

    pulp-base-os:
      url: https://mirror.example.com/os/x86_64/
      rpms:
        - bash
        - glibc
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import ValidationError

from ..engine.errors import ConfigError
from ..models.repos import RepoSpec


def load_yaml(path: Path) -> Any:
    """Load a YAML file and return its contents."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_repos(data: Any) -> List[RepoSpec]:
    """Validate a declared-mirrors mapping, keeping declaration order."""
    if not isinstance(data, dict):
        raise ConfigError("Declared mirrors must be a mapping of repo name to settings")

    specs: List[RepoSpec] = []
    for name, entry in data.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Repo '{name}': expected a mapping, got {type(entry).__name__}")
        fields: Dict[str, Any] = {"name": str(name), **entry}
        fields["rpms"] = fields.get("rpms") or []
        try:
            specs.append(RepoSpec(**fields))
        except ValidationError as e:
            raise ConfigError(f"Repo '{name}': {e}") from e
    return specs


def load_repos(path: Path) -> List[RepoSpec]:
    """
    Load the declared-mirrors file.

    Raises:
        ConfigError: If the file is missing, not YAML, or has invalid entries
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Could not find declared mirrors file: '{path}'")
    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in '{path}': {e}") from e
    return parse_repos(data)
