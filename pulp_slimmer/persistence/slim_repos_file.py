"""
Slim Repos File — YAML output of a use-existing run.

The file maps slim repo name to its Pulp hrefs and distribution URL:

    testbuild-base-os:
      pulp_href: /pulp/api/v3/repositories/rpm/rpm/.../
      source_repo_name: pulp-base-os
      publication_href: /pulp/api/v3/publications/rpm/rpm/.../
      distro_href: /pulp/api/v3/distributions/rpm/rpm/.../
      distro_url: http://pulp.example.com/pulp/content/testbuild-base-os/

Each run overwrites the file; nothing is merged.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable

import yaml
from pydantic import ValidationError

from ..engine.errors import ConfigError
from ..models.repos import SlimRepoRecord

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "_slim_repos.yaml"


def save_slim_repos(records: Iterable[SlimRepoRecord], path: Path) -> None:
    """
    Write the slim repo records to ``path``.

    Uses atomic write (write to temp, then rename) so a crashed run never
    leaves a half-written file behind.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        record.name: record.model_dump(exclude={"name"})
        for record in records
    }

    temp_path = path.with_suffix(path.suffix + ".tmp")
    with temp_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    temp_path.replace(path)
    logger.info(f"Slim repos written: {len(data)} repo(s) → {path}")


def load_slim_repos(path: Path) -> Dict[str, SlimRepoRecord]:
    """
    Load a previous run's output.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Slim repos file not found: '{path}'")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in slim repos file '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Slim repos file '{path}' is not a mapping")

    try:
        return {
            name: SlimRepoRecord(name=name, **fields)
            for name, fields in data.items()
        }
    except (TypeError, ValidationError) as e:
        raise ConfigError(f"Slim repos file '{path}' has an invalid entry: {e}") from e
