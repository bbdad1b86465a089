"""Subprocess execution service for TestFairy Uploader."""

import subprocess
from typing import Iterable, List, Optional, Type

from testfairyuploader.errors import TestFairyError, ToolNotFoundError

REDACTED = "****"


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    @staticmethod
    def format_command(cmd: List[str], secrets: Iterable[str] = ()) -> str:
        hidden = {secret for secret in secrets if secret}
        return " ".join(REDACTED if part in hidden else part for part in cmd)

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        secrets: Iterable[str] = (),
        error_cls: Type[TestFairyError] = TestFairyError,
    ) -> subprocess.CompletedProcess:
        cmd_str = self.format_command(cmd, secrets)
        self.logger.info("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise error_cls(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except Exception as exc:
            raise error_cls(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise error_cls(message)

        self.logger.warning(message)
        return result
