"""Templating configuration and YAML scope files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from layoutel.el.context import DEFAULT_MAX_MERGE_DEPTH, ResolutionContext

logger = logging.getLogger(__name__)

# Scope file section -> ResolutionContext field
SCOPE_SECTIONS = {
    "attributes": "attributes",
    "session": "session",
    "application": "application",
    "pageSession": "page_session",
    "requestParameters": "request_parameters",
    "templateParams": "template_params",
    "resourceBundles": "resource_bundles",
}


@dataclass
class TemplatingConfig:
    """Settings for resolving templates outside of a host application."""

    max_merge_depth: int = DEFAULT_MAX_MERGE_DEPTH
    scope_file: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> TemplatingConfig:
        """Create config from environment variables.

        LAYOUTEL_MAX_MERGE_DEPTH: Limit on recursive #{...} merges
        LAYOUTEL_SCOPE_FILE: YAML file with scope values
        LAYOUTEL_LOG_LEVEL: Logging level name
        """
        config = cls()

        depth = os.environ.get("LAYOUTEL_MAX_MERGE_DEPTH")
        if depth:
            try:
                config.max_merge_depth = int(depth)
            except ValueError:
                raise ValueError(
                    f"LAYOUTEL_MAX_MERGE_DEPTH must be an integer, got '{depth}'"
                ) from None

        scope_file = os.environ.get("LAYOUTEL_SCOPE_FILE")
        if scope_file:
            config.scope_file = Path(scope_file)

        log_level = os.environ.get("LAYOUTEL_LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        return config

    def create_context(self) -> ResolutionContext:
        """Context seeded from the scope file, if one is configured."""
        if self.scope_file is not None:
            return load_scope_file(self.scope_file, self)
        return ResolutionContext(max_merge_depth=self.max_merge_depth)


def load_scope_file(path: Path | str, config: TemplatingConfig | None = None) -> ResolutionContext:
    """Build a ResolutionContext from a YAML scope file.

    Example file:
        attributes:
          user: admin
        templateParams:
          action: "#{bean.save}"
        resourceBundles:
          msgs:
            greeting: "Hello {0}"

    Raises:
        ValueError: For unknown sections or sections that are not mappings
    """
    path = Path(path)
    with open(path) as f:
        data: Any = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Scope file {path} must contain a mapping")

    kwargs: dict[str, Any] = {}
    for section, values in data.items():
        field_name = SCOPE_SECTIONS.get(section)
        if field_name is None:
            raise ValueError(
                f"Unknown section '{section}' in scope file {path}. "
                f"Expected one of: {', '.join(SCOPE_SECTIONS)}"
            )
        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise ValueError(f"Section '{section}' in scope file {path} must be a mapping")
        kwargs[field_name] = dict(values)

    if config is not None:
        kwargs["max_merge_depth"] = config.max_merge_depth

    logger.debug("Loaded scope file %s with sections: %s", path, ", ".join(data))
    return ResolutionContext(**kwargs)
