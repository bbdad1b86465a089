"""Source control change set collection."""

from typing import List, Mapping

from testfairyuploader.errors import TestFairyError
from testfairyuploader.models import ChangeSetEntry

FIELD_SEPARATOR = "\x1f"
RECORD_SEPARATOR = "\x1e"


class ChangeSetCollector:
    """Reads the commits built since the last successful build from git.

    The range comes from ``GIT_PREVIOUS_SUCCESSFUL_COMMIT`` and
    ``GIT_COMMIT``, as exported by the CI git integration. Without a
    previous commit the change set is empty.
    """

    def __init__(self, command_runner, logger, git_executable: str = "git"):
        self.command_runner = command_runner
        self.logger = logger
        self.git_executable = git_executable

    def collect(self, variables: Mapping[str, str], repo_dir: str = ".") -> List[ChangeSetEntry]:
        previous = variables.get("GIT_PREVIOUS_SUCCESSFUL_COMMIT") or variables.get(
            "GIT_PREVIOUS_COMMIT"
        )
        current = variables.get("GIT_COMMIT") or "HEAD"
        if not previous or previous == current:
            self.logger.debug("No previous commit known, change set is empty.")
            return []

        cmd = [
            self.git_executable,
            "-C",
            repo_dir,
            "log",
            f"--format=%s{FIELD_SEPARATOR}%an{RECORD_SEPARATOR}",
            f"{previous}..{current}",
        ]
        try:
            result = self.command_runner.run(cmd, check=True, capture_output=True)
        except TestFairyError as exc:
            self.logger.warning("Could not read the change set from git: %s", exc)
            return []

        return self.parse_log(result.stdout or "")

    @staticmethod
    def parse_log(output: str) -> List[ChangeSetEntry]:
        entries = []
        for record in output.split(RECORD_SEPARATOR):
            record = record.strip("\n")
            if not record:
                continue
            message, _, author = record.partition(FIELD_SEPARATOR)
            entries.append(ChangeSetEntry(message=message.strip(), author=author.strip()))
        # git lists newest first; the change set is reported oldest first.
        entries.reverse()
        return entries
