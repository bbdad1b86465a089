"""APK, tool and build step configuration validation."""

import os
import shutil
from dataclasses import dataclass
from typing import List

from testfairyuploader.constants import (
    API_KEY_LENGTH,
    MAX_DURATION_CHOICES,
    SCREENSHOT_INTERVAL_CHOICES,
    VIDEO_QUALITY_CHOICES,
)
from testfairyuploader.errors import InvalidPackageError, TestFairyError, ToolNotFoundError
from testfairyuploader.errors_catalog import actionable_error
from testfairyuploader.models import BuildEnvironment, SigningCredentials, UploadRequest


@dataclass(frozen=True)
class ConfigIssue:
    level: str
    field: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.level == "error"


class ValidationService:
    """Validates the APK signature, external tools and user configuration."""

    VERIFIED_MARKER = "jar verified"

    def __init__(self, command_runner, logger, which=shutil.which):
        self.command_runner = command_runner
        self.logger = logger
        self.which = which

    def is_valid_program(self, path: str, name: str) -> str:
        if not path:
            raise ToolNotFoundError(actionable_error("tool_not_found", name=name, path="<empty>"))

        if os.path.isabs(path):
            if os.path.isfile(path) and os.access(path, os.X_OK):
                return path
            raise ToolNotFoundError(actionable_error("tool_not_found", name=name, path=path))

        located = self.which(path)
        if not located:
            raise ToolNotFoundError(actionable_error("tool_not_found", name=name, path=path))

        self.logger.debug("Using %s at %s", name, located)
        return located

    def validate_environment(self, environment: BuildEnvironment):
        self.is_valid_program(environment.jarsigner_path, "jarsigner")
        self.is_valid_program(environment.zipalign_path, "zipalign")

    def validate_apk(self, jarsigner_path: str, apk_path: str):
        cmd = [jarsigner_path, "-verify", apk_path]
        failure = actionable_error("invalid_apk", command=" ".join(cmd))

        try:
            result = self.command_runner.run(
                cmd,
                check=False,
                capture_output=True,
                error_cls=InvalidPackageError,
            )
        except ToolNotFoundError:
            raise
        except TestFairyError as exc:
            raise InvalidPackageError(f"{failure} {exc}") from exc

        output = result.stdout or ""
        if result.returncode != 0 or self.VERIFIED_MARKER not in output.lower():
            raise InvalidPackageError(failure)

        self.logger.info("APK signature verified: %s", apk_path)

    def validate_config(
        self,
        upload_request: UploadRequest,
        credentials: SigningCredentials,
    ) -> List[ConfigIssue]:
        issues: List[ConfigIssue] = []

        api_key = upload_request.api_key.get_plain_text()
        if not api_key:
            issues.append(ConfigIssue("error", "api_key", "Please set an API key."))
        elif len(api_key) != API_KEY_LENGTH:
            issues.append(ConfigIssue("warning", "api_key", "This is an invalid API key."))

        if not upload_request.app_file:
            issues.append(ConfigIssue("error", "app_file", "Please set the APK file path."))

        for field_name, value in (
            ("app_file", upload_request.app_file),
            ("mapping_file", upload_request.mapping_file),
            ("keystore_path", credentials.keystore_path),
        ):
            if value and not value.startswith("$") and not os.path.isabs(value):
                issues.append(
                    ConfigIssue("warning", field_name, f"Path is not absolute: {value}")
                )

        for field_name, value, choices in (
            ("max_duration", upload_request.max_duration, MAX_DURATION_CHOICES),
            ("screenshot_interval", upload_request.screenshot_interval, SCREENSHOT_INTERVAL_CHOICES),
            ("video_quality", upload_request.video_quality, VIDEO_QUALITY_CHOICES),
        ):
            if value not in choices:
                allowed = ", ".join(choices)
                issues.append(
                    ConfigIssue("error", field_name, f"Invalid value '{value}'. Allowed: {allowed}")
                )

        return issues
