"""Environment-aware path resolution for build step inputs."""

import os
from string import Template
from typing import Mapping, Optional

from testfairyuploader.errors import MissingFileError
from testfairyuploader.errors_catalog import actionable_error


class PathResolver:
    """Expands ``$VAR``/``${VAR}`` references and checks the result exists."""

    def __init__(self, logger):
        self.logger = logger

    @staticmethod
    def expand(text: Optional[str], variables: Mapping[str, str]) -> str:
        if not text:
            return ""
        # Unknown variables stay as written, the way the CI host expands them.
        return Template(text).safe_substitute(variables)

    def resolve(
        self,
        raw_path: Optional[str],
        variables: Mapping[str, str],
        required: bool,
        label: str = "file",
    ) -> Optional[str]:
        expanded = self.expand(raw_path, variables).strip()

        if not expanded:
            if required:
                raise MissingFileError(actionable_error("missing_file_empty", label=label))
            self.logger.debug("No %s configured.", label)
            return None

        if os.path.exists(expanded):
            self.logger.debug("Resolved %s: %s", label, expanded)
            return expanded

        if required:
            raise MissingFileError(
                actionable_error("missing_file", label=label, path=expanded, original=raw_path or "")
            )

        self.logger.info("Optional %s not found at %s, skipping it.", label, expanded)
        return None
