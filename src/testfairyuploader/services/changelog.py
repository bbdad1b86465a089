"""Release notes extraction for uploads."""

import os
from typing import Iterable, Mapping, Optional

from testfairyuploader.constants import CHANGE_LOG_FILE
from testfairyuploader.models import BuildContext, ChangeSetEntry
from testfairyuploader.services.path_resolver import PathResolver


class ChangeLogExtractor:
    """Picks the changelog from the first available source.

    Sources are tried in order: a ``testfairy_change_log`` build artifact,
    the same file inside the job's build directory on the CI host, and
    finally the source control change set. Extraction never fails; any
    read error falls through to the next source.
    """

    def __init__(self, logger):
        self.logger = logger

    def extract(
        self,
        build: BuildContext,
        variables: Mapping[str, str],
        change_set: Iterable[ChangeSetEntry],
    ) -> str:
        text = self._from_artifacts(build.artifacts_dir)
        if text is not None:
            self.logger.info("Loading custom change log from artifacts")
            return text

        file_name = self.build_dir_change_log_path(variables)
        text = self._from_file(file_name)
        if text:
            self.logger.info("Loading custom changeLog from %s", file_name)
            return text

        self.logger.info("Loading changeLog from source control")
        return self.from_change_set(list(change_set))

    @staticmethod
    def build_dir_change_log_path(variables: Mapping[str, str]) -> str:
        def expand(name: str) -> str:
            return PathResolver.expand(f"${name}", variables)

        return os.path.join(
            expand("JENKINS_HOME"),
            "jobs",
            expand("JOB_NAME"),
            "builds",
            expand("BUILD_ID"),
            CHANGE_LOG_FILE,
        )

    @staticmethod
    def from_change_set(change_set) -> str:
        header = "Changes" if change_set else "No changes since last build"
        parts = ["\n\n", header, "\n"]
        for number, entry in enumerate(change_set, start=1):
            parts.append(f"\n{number}. {entry.message} — {entry.author}")
        return "".join(parts)

    def _from_artifacts(self, artifacts_dir: Optional[str]) -> Optional[str]:
        if not artifacts_dir:
            return None

        try:
            names = os.listdir(artifacts_dir)
        except OSError:
            return None

        for name in names:
            path = os.path.join(artifacts_dir, name)
            if name != CHANGE_LOG_FILE or not os.access(path, os.R_OK):
                continue
            try:
                with open(path, "r", encoding="utf-8") as file_obj:
                    lines = file_obj.read().splitlines()
            except (OSError, UnicodeDecodeError):
                continue
            return os.linesep.join(lines)

        return None

    def _from_file(self, file_name: str) -> Optional[str]:
        try:
            with open(file_name, "r", encoding="utf-8") as file_obj:
                return "".join(f"{line}{os.linesep}" for line in file_obj.read().splitlines())
        except (OSError, UnicodeDecodeError):
            return None
